"""Role lookup.

The registry is constructed from an explicit ``RolesConfig`` at startup and
never changes afterwards. Resolution is the only place role ids are
validated; there is no implicit defaulting.
"""

from ..errors import RoleConfigurationMissingError, RoleNotFoundError, RoleSide
from .models import RoleConfig, RolesConfig


class RoleRegistry:
    """Resolves role ids to ``RoleConfig``.

    A registry built with ``config=None`` models a process started without a
    role mapping: every lookup fails with ``RoleConfigurationMissingError``,
    which is distinct from an unknown id.
    """

    def __init__(self, config: RolesConfig | None):
        self._roles: dict[str, RoleConfig] | None = None
        if config is not None:
            self._roles = {
                role_id: RoleConfig(
                    id=role_id,
                    display_name=definition.name,
                    perspective_text=definition.prompt,
                )
                for role_id, definition in config.roles.items()
            }

    @property
    def available(self) -> bool:
        """Whether a role mapping was supplied."""
        return self._roles is not None

    @property
    def role_ids(self) -> list[str]:
        """Configured role ids in configuration order (empty when unavailable)."""
        return list(self._roles or {})

    def roles(self) -> list[RoleConfig]:
        """All configured roles in configuration order."""
        return list((self._roles or {}).values())

    def __contains__(self, role_id: object) -> bool:
        return self._roles is not None and role_id in self._roles

    def resolve(self, role_id: str, side: RoleSide | None = None) -> RoleConfig:
        """Look up a role.

        Args:
            role_id: Role identifier
            side: Whether the id was given as source or target (for the error)

        Returns:
            The resolved role

        Raises:
            RoleConfigurationMissingError: No role mapping is configured
            RoleNotFoundError: The id is not in the configured set
        """
        if self._roles is None:
            raise RoleConfigurationMissingError()

        role = self._roles.get(role_id)
        if role is None:
            raise RoleNotFoundError(role_id, side)
        return role
