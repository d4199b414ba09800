"""Prompt management module.

Externalizes prompts to text files for easy customization.
Prompts can be overridden by placing files in the working directory.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from ..llm.models import ChatMessage
from ..roles.models import RoleConfig

# Default prompts directory (package location)
_PROMPTS_DIR = Path(__file__).parent


@lru_cache(maxsize=16)
def load_prompt(name: str) -> str:
    """Load a prompt from file.

    Search order:
    1. Current working directory: ./prompts/{name}.txt
    2. Package prompts directory: perspectra/prompts/{name}.txt

    Args:
        name: Prompt name (without .txt extension)

    Returns:
        Prompt text content

    Raises:
        FileNotFoundError: If prompt file not found in any location
    """
    filename = f"{name}.txt"

    # Check working directory first (allows user overrides)
    local_path = Path.cwd() / "prompts" / filename
    if local_path.exists():
        return local_path.read_text(encoding="utf-8")

    package_path = _PROMPTS_DIR / filename
    if package_path.exists():
        return package_path.read_text(encoding="utf-8")

    raise FileNotFoundError(
        f"Prompt '{name}' not found. Searched:\n"
        f"  - {local_path}\n"
        f"  - {package_path}"
    )


def clear_cache() -> None:
    """Clear the prompt cache (useful after modifying prompt files)."""
    load_prompt.cache_clear()


class PerspectivePrompt(BaseModel):
    """System and user prompt for one perspective conversion."""

    model_config = ConfigDict(frozen=True)

    system_prompt: str
    user_prompt: str

    def to_messages(self) -> list[ChatMessage]:
        """Messages in the order the backend expects them."""
        return [
            ChatMessage(role="system", content=self.system_prompt),
            ChatMessage(role="user", content=self.user_prompt),
        ]


def build_prompts(source: RoleConfig, target: RoleConfig, content: str) -> PerspectivePrompt:
    """Compose the conversion prompts for a source/target role pair.

    ``content`` is embedded verbatim: it is passed as a format argument, so
    braces, newlines and non-ASCII text in it are never interpreted or
    altered.
    """
    system_prompt = load_prompt("perspective_system").rstrip("\n").format(
        source_name=source.display_name,
        source_prompt=source.perspective_text,
        target_name=target.display_name,
        target_prompt=target.perspective_text,
    )
    user_prompt = load_prompt("perspective_user").rstrip("\n").format(
        content=content,
        target_name=target.display_name,
    )
    return PerspectivePrompt(
        system_prompt=system_prompt,
        user_prompt=user_prompt,
    )


__all__ = [
    "PerspectivePrompt",
    "build_prompts",
    "clear_cache",
    "load_prompt",
]
