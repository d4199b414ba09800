"""Message list backing one conversion view."""

from .api import PerspectiveClient, UpdateCallback
from .models import Message, MessageStatus

SAME_ROLE_WARNING = "源角色和目标角色不能相同"
EMPTY_CONTENT_WARNING = "请输入要转换的内容"


class Conversation:
    """User requests and the assistant replies streamed for them.

    Each user message is rendered as ``[源 → 目标] text`` using the role
    labels; the raw request is kept so a reply can be regenerated.
    """

    def __init__(self, client: PerspectiveClient, role_labels: dict[str, str] | None = None):
        self._client = client
        self._labels = role_labels or {}
        self._messages: list[Message] = []
        self._requests: dict[str, tuple[str, str, str]] = {}

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def label(self, role_id: str) -> str:
        return self._labels.get(role_id, role_id)

    async def send(
        self,
        source_role: str,
        target_role: str,
        content: str,
        on_update: UpdateCallback | None = None,
    ) -> Message:
        """Append a user message and stream the assistant reply.

        Raises:
            ValueError: Empty content, or source and target are the same role
        """
        if not content.strip():
            raise ValueError(EMPTY_CONTENT_WARNING)
        if source_role == target_role:
            raise ValueError(SAME_ROLE_WARNING)

        user = Message(
            role="user",
            content=f"[{self.label(source_role)} → {self.label(target_role)}] {content}",
            status=MessageStatus.SUCCESS,
        )
        self._messages.append(user)
        return await self._reply(source_role, target_role, content, on_update)

    async def regenerate(self, message_id: str, on_update: UpdateCallback | None = None) -> Message:
        """Drop an assistant reply (and everything after it) and stream it again.

        Raises:
            KeyError: No assistant reply with this id
        """
        request = self._requests.get(message_id)
        index = next((i for i, m in enumerate(self._messages) if m.id == message_id), None)
        if request is None or index is None:
            raise KeyError(message_id)

        for dropped in self._messages[index:]:
            self._requests.pop(dropped.id, None)
        del self._messages[index:]
        return await self._reply(*request, on_update)

    def clear(self) -> None:
        self._messages.clear()
        self._requests.clear()

    async def _reply(
        self,
        source_role: str,
        target_role: str,
        content: str,
        on_update: UpdateCallback | None,
    ) -> Message:
        reply = Message(role="assistant", status=MessageStatus.LOADING)
        self._messages.append(reply)
        self._requests[reply.id] = (source_role, target_role, content)
        return await self._client.convert(
            source_role, target_role, content, on_update=on_update, message=reply
        )
