"""Role management view model and the projections it is built from."""

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
from .role_view import Notification, NotificationVariant, RoleManagerView

__all__ = [
    "ALL_ROLES",
    "PAGE_SIZE",
    "Notification",
    "NotificationVariant",
    "RoleManagerView",
    "SortDirection",
    "SortField",
    "filter_users",
    "page_count",
    "paginate",
    "sort_users",
]
