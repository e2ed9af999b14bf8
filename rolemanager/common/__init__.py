"""Common data models for the application."""

from .user import Role, UpdateUserRolesRequest, User

__all__ = ["Role", "UpdateUserRolesRequest", "User"]
