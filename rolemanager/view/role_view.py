"""Stateful view model behind the role management page."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from rolemanager.common import UpdateUserRolesRequest
from rolemanager.store import CachePolicy, OperationFailedError

from .projection import (
    ALL_ROLES,
    PAGE_SIZE,
    SortDirection,
    SortField,
    filter_users,
    page_count,
    paginate,
    sort_users,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from rolemanager.common import Role, User
    from rolemanager.store import RoleStore

LOGGER = logging.getLogger(__name__)

UPDATE_SUCCESS_MESSAGE = "User roles updated successfully"


class NotificationVariant(StrEnum):
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


@dataclass(frozen=True)
class Notification:
    """A transient message for the user, rendered as a toast by the page.

    :param title: Short heading, ``Success`` or ``Error``
    :param description: Message body; for errors, the error message
    :param variant: Visual variant of the message
    """

    title: str
    description: str
    variant: NotificationVariant = NotificationVariant.DEFAULT

    @classmethod
    def success(cls, description: str) -> Notification:
        return cls("Success", description)

    @classmethod
    def error(cls, description: str) -> Notification:
        return cls("Error", description, NotificationVariant.DESTRUCTIVE)

    @property
    def is_error(self) -> bool:
        return self.variant is NotificationVariant.DESTRUCTIVE


class RoleManagerView:
    """Holds the page state and derives the visible table from it.

    State is the role filter, the sort field and direction, the current
    page, and the ``loading`` / ``mutating`` flags. Role edits go through
    the store; afterwards the local copy of the users is patched or
    refetched to match the store's cache policy.

    :param store: Data access layer the view reads from and writes to
    :param page_size: Users shown per page
    """

    def __init__(self, store: RoleStore, page_size: int = PAGE_SIZE) -> None:
        if page_size < 1:
            msg = f"Page size must be positive, got: {page_size}"
            raise ValueError(msg)

        self.store = store
        self.page_size = page_size

        self.role_filter: str = ALL_ROLES
        self.sort_field: SortField | None = SortField.NAME
        self.sort_direction = SortDirection.ASC
        self.current_page = 1

        self.loading = False
        self.mutating = False

        self.users: list[User] = []
        self.roles: list[Role] = []
        self.notifications: list[Notification] = []

    async def load(self) -> None:
        """Fetch users and roles concurrently and wait for both.

        :raises OperationFailedError: If either collection fails to load
        """
        self.loading = True
        try:
            self.users, self.roles = await asyncio.gather(
                self.store.list_users(),
                self.store.list_roles(),
            )
        except OperationFailedError as e:
            LOGGER.warning("Loading user data failed: %s", e)
            self._notify(Notification.error(str(e)))
            raise
        finally:
            self.loading = False

    async def refresh_users(self) -> None:
        self.users = await self.store.list_users()

    @property
    def can_edit(self) -> bool:
        """Whether the role controls are enabled."""
        return not (self.loading or self.mutating)

    def set_filter(self, role_filter: str) -> None:
        self.role_filter = role_filter or ALL_ROLES
        self.current_page = 1

    def clear_filter(self) -> None:
        self.set_filter(ALL_ROLES)

    def toggle_sort(self, field: SortField | str) -> None:
        """Sort by ``field``; choosing the active field again flips the direction."""
        field = SortField(field)
        if self.sort_field is field:
            self.sort_direction = self.sort_direction.flipped()
        else:
            self.sort_field = field
            self.sort_direction = SortDirection.ASC

    def go_to_page(self, page: int) -> None:
        self.current_page = min(max(page, 1), max(self.total_pages, 1))

    def next_page(self) -> None:
        self.go_to_page(self.current_page + 1)

    def previous_page(self) -> None:
        self.go_to_page(self.current_page - 1)

    @property
    def visible_users(self) -> list[User]:
        """Users passing the filter, in sort order."""
        filtered = filter_users(self.users, self.role_filter)
        return sort_users(filtered, self.sort_field, self.sort_direction)

    @property
    def user_count(self) -> int:
        return len(self.visible_users)

    @property
    def total_pages(self) -> int:
        return page_count(self.user_count, self.page_size)

    @property
    def page_users(self) -> list[User]:
        return paginate(self.visible_users, self.current_page, self.page_size)

    @property
    def role_options(self) -> list[str]:
        return [role.name for role in self.roles]

    def options_for(self, user: User) -> list[str]:
        """Role names offered for ``user``.

        Names the user holds that are not in the role collection follow
        the known roles, so saving the row keeps them.
        """
        options = self.role_options
        return options + [name for name in user.roles if name not in options]

    async def change_roles(self, user_id: str, roles: Sequence[str]) -> Notification:
        """Submit a user's full new role list.

        Controls are disabled while the request is in flight. Failures are
        reported as an error notification and leave the view unchanged.

        :param user_id: User whose roles are replaced
        :param roles: The complete new role list
        :return: The notification describing the outcome
        """
        self.mutating = True
        try:
            updated = await self.store.apply_update(
                UpdateUserRolesRequest(user_id=user_id, roles=list(roles)),
            )
            await self._reconcile(updated)
        except OperationFailedError as e:
            LOGGER.info("Role update for user %s failed: %s", user_id, e)
            return self._notify(Notification.error(str(e)))
        finally:
            self.mutating = False

        return self._notify(Notification.success(UPDATE_SUCCESS_MESSAGE))

    def drain_notifications(self) -> list[Notification]:
        pending, self.notifications = self.notifications, []
        return pending

    async def _reconcile(self, updated: User) -> None:
        if self.store.cache_policy is CachePolicy.INVALIDATE:
            await self.refresh_users()
            return

        self.users = [updated if user.id == updated.id else user for user in self.users]

    def _notify(self, notification: Notification) -> Notification:
        self.notifications.append(notification)
        return notification
