"""JSON routes for listing users and roles and updating role assignments."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, status

from rolemanager.common import Role, UpdateUserRolesRequest, User
from rolemanager.store import OperationFailedError, UserNotFoundError

from .models import HealthResponse, RolesUpdate

if TYPE_CHECKING:
    from rolemanager.store import RoleStore

LOGGER = logging.getLogger(__name__)


def operation_failed(error: OperationFailedError) -> HTTPException:
    """Translate a store error into the HTTP error returned to clients.

    :param error: The error raised by the store
    :return: 404 for unknown users, 503 for every other failure
    """
    if isinstance(error, UserNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=str(error),
    )


async def _list_users(store: RoleStore) -> list[User]:
    try:
        return await store.list_users()
    except OperationFailedError as e:
        raise operation_failed(e) from e


async def _list_roles(store: RoleStore) -> list[Role]:
    try:
        return await store.list_roles()
    except OperationFailedError as e:
        raise operation_failed(e) from e


async def _update_user_roles(
    store: RoleStore,
    user_id: str,
    update: RolesUpdate,
) -> User:
    try:
        return await store.apply_update(
            UpdateUserRolesRequest(user_id=user_id, roles=update.roles),
        )
    except OperationFailedError as e:
        LOGGER.debug("Role update for %s rejected: %s", user_id, e)
        raise operation_failed(e) from e


def configure_api_router(router: APIRouter, store: RoleStore) -> APIRouter:
    """Configure the JSON API router.

    :param router: The APIRouter to configure
    :param store: The data access layer shared by every route
    :return: The configured APIRouter
    """

    @router.get("/users", response_model=list[User])
    async def list_users() -> list[User]:
        return await _list_users(store)

    @router.get("/roles", response_model=list[Role])
    async def list_roles() -> list[Role]:
        return await _list_roles(store)

    @router.put("/users/{user_id}/roles", response_model=User)
    async def update_user_roles(user_id: str, update: RolesUpdate) -> User:
        """Replace the user's roles with the submitted list."""
        return await _update_user_roles(store, user_id, update)

    @router.post("/cache/invalidate")
    def invalidate_cache() -> str:
        """Drop the cached collections so the next read refetches the source."""
        store.invalidate()
        return "Success"

    @router.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(backend=store.source.name)

    return router
