"""Server-rendered role management page.

Every request builds a fresh :class:`~rolemanager.view.RoleManagerView` from
the query string; the view state (filter, sort, page) lives in the URL and
the data lives in the shared store.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Annotated
from urllib.parse import urlencode

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from rolemanager.store import OperationFailedError
from rolemanager.view import ALL_ROLES, RoleManagerView, SortDirection, SortField

if TYPE_CHECKING:
    from collections.abc import Callable

    from rolemanager.store import RoleStore

LOGGER = logging.getLogger(__name__)

TEMPLATES = Jinja2Templates(directory=Path(__file__).parent.parent / "templates")
PAGE_TEMPLATE = "role_manager.html"


def page_query(view: RoleManagerView, **overrides: str | int) -> str:
    """Build the query string that reproduces ``view``'s state.

    :param view: View whose state is encoded
    :param overrides: Parameters replacing the view's current values
    :return: The encoded query string, without the leading ``?``
    """
    params: dict[str, str | int] = {
        "role": view.role_filter,
        "sort": view.sort_field or SortField.NAME,
        "direction": view.sort_direction,
        "page": view.current_page,
    }
    params.update(overrides)
    return urlencode({key: str(value) for key, value in params.items()})


def sort_query(view: RoleManagerView) -> Callable[[str], str]:
    """Return a helper giving the query string for clicking a column header."""

    def for_field(field: str) -> str:
        field = SortField(field)
        direction = (
            view.sort_direction.flipped()
            if view.sort_field is field
            else SortDirection.ASC
        )
        return page_query(view, sort=field, direction=direction, page=1)

    return for_field


async def _build_view(
    store: RoleStore,
    page_size: int,
    role: str,
    sort: SortField,
    direction: SortDirection,
) -> RoleManagerView:
    view = RoleManagerView(store, page_size=page_size)
    view.set_filter(role)
    view.sort_field = sort
    view.sort_direction = direction
    try:
        await view.load()
    except OperationFailedError:
        # the view already holds an error notification for the page
        LOGGER.debug("Rendering role manager page without data")
    return view


def _render(request: Request, view: RoleManagerView, page: int) -> HTMLResponse:
    view.go_to_page(page)
    return TEMPLATES.TemplateResponse(
        request,
        PAGE_TEMPLATE,
        {
            "view": view,
            "all_roles": ALL_ROLES,
            "notifications": view.drain_notifications(),
            "page_query": lambda **overrides: page_query(view, **overrides),
            "sort_query": sort_query(view),
        },
    )


def configure_page_router(
    router: APIRouter,
    store: RoleStore,
    page_size: int,
) -> APIRouter:
    """Configure the router serving the admin page.

    :param router: The APIRouter to configure
    :param store: The data access layer shared by every request
    :param page_size: Users shown per table page
    :return: The configured APIRouter
    """

    @router.get("/", response_class=HTMLResponse)
    async def role_manager_page(
        request: Request,
        role: str = ALL_ROLES,
        sort: SortField = SortField.NAME,
        direction: SortDirection = SortDirection.ASC,
        page: int = 1,
    ) -> HTMLResponse:
        view = await _build_view(store, page_size, role, sort, direction)
        return _render(request, view, page)

    @router.post("/users/{user_id}/roles", response_class=HTMLResponse)
    async def submit_user_roles(
        request: Request,
        user_id: str,
        roles: Annotated[list[str] | None, Form()] = None,
        role: Annotated[str, Form()] = ALL_ROLES,
        sort: Annotated[SortField, Form()] = SortField.NAME,
        direction: Annotated[SortDirection, Form()] = SortDirection.ASC,
        page: Annotated[int, Form()] = 1,
    ) -> HTMLResponse:
        """Apply the roles chosen in a table row and re-render the page."""
        view = await _build_view(store, page_size, role, sort, direction)
        if not view.notifications:
            await view.change_roles(user_id, roles or [])
        return _render(request, view, page)

    return router
