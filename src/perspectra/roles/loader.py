"""Role configuration source.

Reads the ``{roles: {<id>: {name, prompt}}}`` YAML mapping. The packaged
``default_roles.yaml`` is used when no file is given.
"""

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from ..errors import RoleConfigurationError
from .models import RolesConfig

logger = logging.getLogger(__name__)

DEFAULT_ROLES_FILE = Path(__file__).parent / "default_roles.yaml"


def load_roles_config(path: str | Path | None = None) -> RolesConfig | None:
    """Load the role mapping.

    Args:
        path: YAML file to read; the bundled defaults when None

    Returns:
        Parsed configuration, or None when an explicit path does not exist.
        A missing mapping is reported later, when a session needs it.

    Raises:
        RoleConfigurationError: The file exists but is not a valid mapping
    """
    file_path = Path(path).expanduser() if path else DEFAULT_ROLES_FILE

    if not file_path.exists():
        logger.warning("Role configuration file not found: %s", file_path)
        return None

    try:
        data = yaml.safe_load(file_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise RoleConfigurationError(f"Failed to parse {file_path}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("roles"), dict):
        raise RoleConfigurationError(
            f"Role configuration {file_path} must contain a 'roles' mapping"
        )

    try:
        config = RolesConfig.model_validate(data)
    except ValidationError as e:
        raise RoleConfigurationError(f"Invalid role configuration {file_path}: {e}") from e

    logger.info("Loaded %d roles from %s", len(config.roles), file_path)
    return config
