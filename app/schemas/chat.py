"""Chat relay request/response schemas."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ChatTurn(BaseModel):
    """One transcript entry as sent by the client."""
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages: list[ChatTurn] = []
    project_id: str | None = Field(default=None, alias="projectId")
    action: Literal["get_context"] | None = None


class ContextResponse(BaseModel):
    context: dict[str, Any]


class ErrorResponse(BaseModel):
    error: str
