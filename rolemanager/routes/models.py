"""Request and response models for the JSON API."""

from pydantic import BaseModel, Field


class RolesUpdate(BaseModel):
    """Body of a role update: the complete new role list.

    :param roles: Role names to assign, replacing the current ones
    """

    roles: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str = "ok"
    backend: str
