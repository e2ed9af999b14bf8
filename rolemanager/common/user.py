"""Fundamental user and role data models for the app."""

from pydantic import BaseModel, Field


class Role(BaseModel):
    """A named permission group.

    :param id: Unique role identifier
    :param name: Role name, referenced from :attr:`User.roles`
    :param description: Free text shown on the admin page
    """

    id: str
    name: str
    description: str = ""


class User(BaseModel):
    """Data structure representing a user.

    Role entries are plain names and are not checked against the role
    collection, so unknown names are kept as-is.

    :param id: Unique user identifier
    :param name: Display name
    :param email: Email address
    :param roles: Assigned role names
    """

    id: str
    name: str
    email: str
    roles: list[str] = Field(default_factory=list)

    def has_role(self, role_name: str) -> bool:
        return role_name in self.roles


class UpdateUserRolesRequest(BaseModel):
    """Full replacement of a user's role list, not a delta."""

    user_id: str
    roles: list[str]
