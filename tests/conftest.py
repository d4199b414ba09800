"""Pytest configuration and shared fixtures."""
import asyncio
import os
from typing import Any

import pytest

from perspectra.config import Settings
from perspectra.llm.base import CompletionSource
from perspectra.llm.models import CancelHandle, ChatMessage, CompletionStream, Delta, LLMResponse
from perspectra.roles import RoleRegistry, load_roles_config


class CountingCancelHandle(CancelHandle):
    """Cancel handle that records every ``cancel()`` call."""

    def __init__(self) -> None:
        super().__init__()
        self.calls = 0

    def cancel(self) -> None:
        self.calls += 1
        super().cancel()


class ScriptedCompletionSource(CompletionSource):
    """Completion source replaying a fixed list of deltas.

    Args:
        deltas: Texts or ``Delta`` objects to yield, in order
        error: Raised after the deltas instead of ending normally
        hold_after: Block (until cancelled) once this many deltas were yielded
        reply: Content returned by ``chat_completion``
        chat_error: Raised by ``chat_completion``
        start_error: Raised by ``start`` itself
    """

    def __init__(
        self,
        deltas: list[str | Delta] | None = None,
        error: Exception | None = None,
        hold_after: int | None = None,
        reply: str = "ok",
        chat_error: Exception | None = None,
        start_error: Exception | None = None,
    ):
        self.deltas = [d if isinstance(d, Delta) else Delta(text=d) for d in deltas or []]
        self.error = error
        self.hold_after = hold_after
        self.reply = reply
        self.chat_error = chat_error
        self.start_error = start_error
        self.requests: list[list[ChatMessage]] = []
        self.handles: list[CountingCancelHandle] = []
        self.yielded = 0
        self.released = 0
        self.closed = False

    def start(self, messages: list[ChatMessage], **kwargs: Any) -> tuple[CompletionStream, CancelHandle]:
        self.requests.append(list(messages))
        if self.start_error is not None:
            raise self.start_error
        handle = CountingCancelHandle()
        self.handles.append(handle)
        return CompletionStream(self._generate(), handle), handle

    async def _generate(self):
        try:
            for index, delta in enumerate(self.deltas):
                if self.hold_after is not None and index >= self.hold_after:
                    await asyncio.Event().wait()
                await asyncio.sleep(0)
                self.yielded += 1
                yield delta
            if self.hold_after is not None and self.hold_after >= len(self.deltas):
                await asyncio.Event().wait()
            if self.error is not None:
                raise self.error
        finally:
            self.released += 1

    async def chat_completion(self, messages: list[ChatMessage], **kwargs: Any) -> LLMResponse:
        self.requests.append(list(messages))
        if self.chat_error is not None:
            raise self.chat_error
        return LLMResponse(content=self.reply, model="scripted")

    async def close(self) -> None:
        self.closed = True


@pytest.fixture(scope="session")
def api_keys():
    """Return API keys from environment."""
    return {
        "openai": os.getenv("OPENAI_API_KEY"),
        "deepseek": os.getenv("DEEPSEEK_API_KEY")
    }


@pytest.fixture
def registry():
    """Registry over the bundled roles."""
    return RoleRegistry(load_roles_config())


@pytest.fixture
def empty_registry():
    """Registry of a process started without a role mapping."""
    return RoleRegistry(None)


@pytest.fixture
def settings():
    """Settings that never touch the environment."""
    return Settings(openai_api_key="fake-key")


@pytest.fixture
def conversion_deltas():
    """Deltas of the product-manager to developer example."""
    return ["从", "技术", "视角", "来看"]


@pytest.fixture
def roles_yaml(tmp_path):
    """Write a small role mapping and return its path."""
    path = tmp_path / "roles.yaml"
    path.write_text(
        "roles:\n"
        "  writer:\n"
        "    name: 作者\n"
        "    prompt: 关注表达\n"
        "  reader:\n"
        "    name: 读者\n"
        "    prompt: 关注理解\n",
        encoding="utf-8",
    )
    return path
