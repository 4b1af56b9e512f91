"""Taskboard exceptions.

Every failure the core surfaces to a caller is one of three kinds:
the referenced entity is absent, a structural invariant was violated,
or a repository collaborator failed for some other reason.
"""

from collections.abc import Iterator
from contextlib import contextmanager


class TaskboardError(Exception):
    """Base exception for taskboard errors."""

    def __init__(self, message: str, code: str = "TASKBOARD_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(TaskboardError):
    """Referenced entity does not exist in its repository."""

    def __init__(self, entity: str, entity_id: int | str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            message=f"{entity} {entity_id} not found",
            code="NOT_FOUND",
        )


class ValidationFailedError(TaskboardError):
    """Caller-supplied fields violate a structural invariant.

    Raised for things like a task status that matches no column of the
    task's project, not for ordinary form validation.
    """

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message=message, code="VALIDATION_FAILED")


class RepositoryFailureError(TaskboardError):
    """A repository operation failed for a reason the core treats opaquely."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(
            message=f"{operation} failed: {message}",
            code="REPOSITORY_FAILURE",
        )


@contextmanager
def repository_errors(operation: str) -> Iterator[None]:
    """Re-raise collaborator failures as RepositoryFailureError.

    Taskboard errors raised by the collaborator (NotFoundError in
    particular) pass through unchanged.
    """
    try:
        yield
    except TaskboardError:
        raise
    except Exception as exc:
        raise RepositoryFailureError(operation, str(exc) or type(exc).__name__) from exc
