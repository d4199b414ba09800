"""Exception hierarchy for perspective conversion.

Validation errors are answered at the HTTP boundary; everything raised
after a stream has been accepted is turned into a terminal ``Error`` event
by the session.
"""

from enum import Enum


class PerspectraError(Exception):
    """Base class for perspectra errors."""


class RoleSide(str, Enum):
    """Which side of a conversion a role id was given for."""

    SOURCE = "source"
    TARGET = "target"


class RoleConfigurationError(PerspectraError):
    """Role configuration file exists but cannot be used."""


class RoleConfigurationMissingError(PerspectraError):
    """No role mapping was supplied to the registry."""

    def __init__(self, message: str = "角色配置未找到"):
        super().__init__(message)


class RoleNotFoundError(PerspectraError):
    """A role id is not part of the configured role set."""

    _LABELS = {RoleSide.SOURCE: "源角色", RoleSide.TARGET: "目标角色"}

    def __init__(self, role_id: str, side: RoleSide | None = None):
        label = self._LABELS.get(side, "角色")
        super().__init__(f'{label} "{role_id}" 不存在')
        self.role_id = role_id
        self.side = side


class InvalidRequestError(PerspectraError):
    """Request body failed validation (mapped to HTTP 400)."""

    def __init__(self, message: str, allowed: list[str] | None = None):
        super().__init__(message)
        self.allowed = list(allowed or [])


class CompletionError(PerspectraError):
    """Language-model backend failed."""


class EmptyCompletionError(CompletionError):
    """Backend answered without any choice."""

    def __init__(self, message: str = "No response received from OpenAI"):
        super().__init__(message)


class SessionStateError(PerspectraError):
    """Operation not allowed in the session's current state."""
