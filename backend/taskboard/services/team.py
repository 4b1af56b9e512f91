"""Team roster helpers."""

from collections.abc import Iterable

from taskboard.schemas import User, UserRole


def filter_users(
    users: Iterable[User],
    search: str = "",
    role: UserRole | str = "all",
) -> list[User]:
    """Users whose name or email contains ``search`` (case-insensitive), optionally of one role."""
    needle = search.strip().lower()
    role = role.value if isinstance(role, UserRole) else role
    return [
        user
        for user in users
        if (not needle or needle in user.name.lower() or needle in user.email.lower())
        and (role == "all" or user.role.value == role)
    ]
