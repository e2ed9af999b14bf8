"""Cached access to users and roles on top of a backing source.

:class:`RoleStore` is the only owner of the cached collections. It is built
once by the application factory and handed to the routers and views, which
invalidate it explicitly instead of touching shared module state.

**Update sequence:**

1. Wait the simulated update delay
2. Ask the fault injector whether this call fails
3. Find the user in the cached (or freshly loaded) collection and patch it
4. Notify persistence sinks and, if enabled, write back to the source
5. Apply the cache policy and return a copy of the updated user

A failure in step 4 restores the user's previous record in the cache.
Persisting is serialized and always writes the whole cached collection, so
concurrent updates to different users are all kept. Concurrent updates to
the same user are not ordered; the last one to be patched wins.
"""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import TYPE_CHECKING

from .errors import SimulatedFailureError, UserNotFoundError
from .faults import FaultInjector, Latency, simulate_delay
from .sources import copy_roles, copy_users

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from rolemanager.common import Role, UpdateUserRolesRequest, User

    from .persistence import PersistenceSink
    from .sources import UserRoleSource

LOGGER = logging.getLogger(__name__)

SIMULATED_FAILURE_MESSAGE = "Failed to update user roles. Please try again."


class CachePolicy(StrEnum):
    """What the store does with its users cache after a successful update.

    :cvar PATCH: Replace the updated record in the cached collection
    :cvar INVALIDATE: Drop the cache so the next read refetches the source
    """

    PATCH = "patch"
    INVALIDATE = "invalidate"


class RoleStore:
    """Data access layer for users and roles.

    :param source: Backing source the collections are loaded from
    :param faults: Decides when an update fails; never fails by default
    :param latency: Simulated delays; none by default
    :param cache_policy: Cache handling after an update
    :param write_back: Save the updated user collection into the source
    :param sinks: Extra persistence sinks notified after each update
    """

    def __init__(
        self,
        source: UserRoleSource,
        faults: FaultInjector | None = None,
        latency: Latency | None = None,
        cache_policy: CachePolicy = CachePolicy.PATCH,
        *,
        write_back: bool = False,
        sinks: Iterable[PersistenceSink] = (),
    ) -> None:
        self.source = source
        self.faults = faults or FaultInjector.never()
        self.latency = latency or Latency.none()
        self.cache_policy = CachePolicy(cache_policy)
        self.write_back = write_back
        self.sinks: list[PersistenceSink] = list(sinks)

        self._users: list[User] | None = None
        self._roles: list[Role] | None = None
        self._users_lock = asyncio.Lock()
        self._roles_lock = asyncio.Lock()
        self._persist_lock = asyncio.Lock()

    @property
    def users_cached(self) -> bool:
        return self._users is not None

    @property
    def roles_cached(self) -> bool:
        return self._roles is not None

    async def list_users(self) -> list[User]:
        """Return every user, loading the source on a cold cache.

        :return: Copies of the cached users
        :raises SourceUnavailableError: If the source cannot be loaded
        """
        await simulate_delay(self.latency.users)
        return copy_users(await self._cached_users())

    async def list_roles(self) -> list[Role]:
        """Return every role, loading the source on a cold cache.

        :return: Copies of the cached roles
        :raises SourceUnavailableError: If the source cannot be loaded
        """
        await simulate_delay(self.latency.roles)
        async with self._roles_lock:
            if self._roles is None:
                LOGGER.info("Loading roles from %s source", self.source.name)
                self._roles = await self.source.load_roles()
            return copy_roles(self._roles)

    async def update_user_roles(self, user_id: str, roles: Sequence[str]) -> User:
        """Replace a user's role list.

        Role names are stored as given; they are not checked against the
        role collection.

        :param user_id: Identifier of the user to update
        :param roles: Full replacement role list
        :return: A copy of the updated user
        :raises SimulatedFailureError: If the fault injector fails the call
        :raises UserNotFoundError: If no user has ``user_id``
        :raises OperationFailedError: If persisting the update fails
        """
        await simulate_delay(self.latency.update)

        if self.faults.should_fail():
            LOGGER.warning("Injected failure while updating user %s", user_id)
            raise SimulatedFailureError(SIMULATED_FAILURE_MESSAGE)

        users = await self._cached_users()
        index = _find_user_index(users, user_id)
        if index is None:
            LOGGER.info("Role update for unknown user %s", user_id)
            raise UserNotFoundError(user_id)

        previous = users[index]
        updated = previous.model_copy(update={"roles": list(roles)})
        users[index] = updated
        try:
            await self._persist(users)
        except Exception:
            if users[index] is updated:
                users[index] = previous
            raise

        if self.cache_policy is CachePolicy.INVALIDATE:
            self.invalidate_users()

        LOGGER.info("Updated roles for user %s: %s", user_id, updated.roles)
        return updated.model_copy(deep=True)

    async def apply_update(self, request: UpdateUserRolesRequest) -> User:
        """Apply a submitted role update.

        :param request: The user and their full replacement role list
        :return: A copy of the updated user
        """
        return await self.update_user_roles(request.user_id, request.roles)

    async def _persist(self, users: list[User]) -> None:
        # snapshots are taken under the lock so the last write holds every
        # change patched into the cache before it
        async with self._persist_lock:
            if not self.sinks and not self.write_back:
                return
            snapshot = copy_users(users)
            for sink in self.sinks:
                await sink.persist(snapshot)
            if self.write_back:
                await self.source.save_users(snapshot)

    def invalidate_users(self) -> None:
        LOGGER.debug("Invalidating users cache")
        self._users = None

    def invalidate_roles(self) -> None:
        LOGGER.debug("Invalidating roles cache")
        self._roles = None

    def invalidate(self) -> None:
        """Drop both cached collections."""
        self.invalidate_users()
        self.invalidate_roles()

    async def _cached_users(self) -> list[User]:
        # one load at a time, so concurrent callers share the same list
        async with self._users_lock:
            if self._users is None:
                LOGGER.info("Loading users from %s source", self.source.name)
                self._users = await self.source.load_users()
            return self._users


def _find_user_index(users: Sequence[User], user_id: str) -> int | None:
    for index, user in enumerate(users):
        if user.id == user_id:
            return index
    return None
