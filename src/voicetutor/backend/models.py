"""Wire models for the assistant backend endpoint."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from voicetutor.core.base import Message
from voicetutor.costs.accumulator import UsageDelta


class RequestType(str, Enum):
    NORMAL = "normal"
    IELTS_SCORE = "ielts_score"


class HistoryEntry(BaseModel):
    role: str
    content: str
    timestamp: datetime

    @classmethod
    def from_message(cls, message: Message) -> "HistoryEntry":
        return cls(role=message.role.value, content=message.content, timestamp=message.timestamp)


class ChatRequest(BaseModel):
    """POST body. ``conversation_history`` never includes ``message`` itself."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    conversation_history: list[HistoryEntry] = Field(
        default_factory=list, alias="conversationHistory"
    )
    request_type: RequestType = Field(default=RequestType.NORMAL, alias="requestType")

    @classmethod
    def build(
        cls,
        message: str,
        history: list[Message],
        request_type: RequestType = RequestType.NORMAL,
    ) -> "ChatRequest":
        return cls(
            message=message,
            conversation_history=[HistoryEntry.from_message(m) for m in history],
            request_type=request_type,
        )

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class UsagePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt_tokens: int = Field(ge=0, alias="promptTokens")
    completion_tokens: int = Field(ge=0, alias="completionTokens")
    total_tokens: int = Field(ge=0, alias="totalTokens")

    def to_delta(self) -> UsageDelta:
        return UsageDelta(
            prompt_tokens=self.prompt_tokens,
            completion_tokens=self.completion_tokens,
            total_tokens=self.total_tokens,
        )


class ChatResponse(BaseModel):
    """Successful (2xx) response body."""

    response: str
    usage: UsagePayload | None = None


class ErrorResponse(BaseModel):
    """Non-success response body; the detail is logged, never shown."""

    error: str = ""
