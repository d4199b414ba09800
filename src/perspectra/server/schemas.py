"""HTTP request and error bodies."""

from pydantic import BaseModel, ConfigDict, Field

from ..errors import RoleSide

_SIDE_LABELS = {RoleSide.SOURCE: "源角色", RoleSide.TARGET: "目标角色"}


class PerspectiveConvertBody(BaseModel):
    """Body of ``POST /llm/perspective-convert``."""

    model_config = ConfigDict(populate_by_name=True)

    source_role: str = Field(alias="sourceRole", min_length=1)
    target_role: str = Field(alias="targetRole", min_length=1)
    content: str = Field(min_length=1)


class ChatBody(BaseModel):
    """Body of ``POST /llm/chat``."""

    message: str = Field(min_length=1)


class ChatReply(BaseModel):
    response: str


def role_choice_message(side: RoleSide, role_ids: list[str]) -> str:
    """Validation message naming the allowed role ids."""
    return f"{_SIDE_LABELS[side]}必须是：{', '.join(role_ids)} 之一"


def error_body(status_code: int, message: str, error: str) -> dict:
    return {"statusCode": status_code, "message": message, "error": error}
