"""Taskboard: project boards, task transitions and derived analytics."""

__version__ = "0.1.0"
