"""Role configuration and lookup."""

from .loader import DEFAULT_ROLES_FILE, load_roles_config
from .models import RoleConfig, RoleDefinition, RolesConfig
from .registry import RoleRegistry

__all__ = [
    "DEFAULT_ROLES_FILE",
    "RoleConfig",
    "RoleDefinition",
    "RoleRegistry",
    "RolesConfig",
    "load_roles_config",
]
