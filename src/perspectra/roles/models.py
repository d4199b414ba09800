"""Role data models.

``RolesConfig`` mirrors the external configuration format (``name`` and
``prompt`` per role id); ``RoleConfig`` is the resolved, immutable view the
rest of the system works with.
"""

from pydantic import BaseModel, ConfigDict, Field


class RoleDefinition(BaseModel):
    """One entry of the role configuration source."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, description="Display name, e.g. 产品经理")
    prompt: str = Field(description="Perspective description used in prompts")


class RolesConfig(BaseModel):
    """Role id to definition mapping, loaded once at startup."""

    model_config = ConfigDict(frozen=True)

    roles: dict[str, RoleDefinition] = Field(default_factory=dict)


class RoleConfig(BaseModel):
    """A resolved role."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Role identifier from the configured set")
    display_name: str = Field(description="Human readable role name")
    perspective_text: str = Field(description="What this role cares about")
