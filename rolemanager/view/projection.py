"""Filtering, sorting and pagination over an in-memory user list.

These are pure functions; :class:`~rolemanager.view.role_view.RoleManagerView`
composes them into the projection shown on the admin page.
"""

from __future__ import annotations

import math
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from rolemanager.common import User

ALL_ROLES = "all"
PAGE_SIZE = 5


class SortField(StrEnum):
    NAME = "name"
    EMAIL = "email"


class SortDirection(StrEnum):
    ASC = "asc"
    DESC = "desc"

    def flipped(self) -> SortDirection:
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


def filter_users(users: Sequence[User], role_filter: str) -> list[User]:
    """Keep the users holding ``role_filter``, or everyone for ``"all"``."""
    if role_filter == ALL_ROLES:
        return list(users)
    return [user for user in users if user.has_role(role_filter)]


def sort_users(
    users: Sequence[User],
    field: SortField | None,
    direction: SortDirection = SortDirection.ASC,
) -> list[User]:
    """Sort users by name or email, case-insensitively.

    The sort is stable in both directions, so equal keys keep their input
    order. ``field=None`` returns the users in input order.
    """
    if field is None:
        return list(users)

    attribute = SortField(field).value
    return sorted(
        users,
        key=lambda user: getattr(user, attribute).casefold(),
        reverse=SortDirection(direction) is SortDirection.DESC,
    )


def page_count(total: int, page_size: int = PAGE_SIZE) -> int:
    """Number of pages needed for ``total`` items; zero when there are none."""
    if page_size < 1:
        msg = f"Page size must be positive, got: {page_size}"
        raise ValueError(msg)
    return math.ceil(total / page_size)


def paginate(users: Sequence[User], page: int, page_size: int = PAGE_SIZE) -> list[User]:
    """Return the 1-based ``page`` of ``users``.

    The last page may be shorter than ``page_size``; pages outside the
    range are empty.
    """
    if page_size < 1:
        msg = f"Page size must be positive, got: {page_size}"
        raise ValueError(msg)
    if page < 1:
        return []
    start = (page - 1) * page_size
    return list(users[start : start + page_size])
