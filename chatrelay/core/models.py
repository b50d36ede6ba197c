"""Request-scoped transport models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, Field

from chatrelay.core.errors import ValidationError


EMPTY_MESSAGE_ERROR = "Message cannot be empty."


class ChatMessage(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    message: str

    @classmethod
    def from_payload(cls, payload: Any) -> "ChatRequest":
        """Validate the inbound body; anything but a non-blank ``message`` string is rejected."""
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object.")
        raw = payload.get("message")
        if not isinstance(raw, str) or not raw.strip():
            raise ValidationError(EMPTY_MESSAGE_ERROR)
        return cls(message=raw.strip())


class DecodingParameters(BaseModel):
    method: str = "greedy"
    max_new_tokens: int = 500
    temperature: float = 0.7
    stop_sequences: list[str] = Field(default_factory=list)

    def to_upstream(self) -> dict[str, Any]:
        params: dict[str, Any] = {
            "decoding_method": self.method,
            "max_new_tokens": self.max_new_tokens,
            "temperature": self.temperature,
        }
        if self.stop_sequences:
            params["stop_sequences"] = list(self.stop_sequences)
        return params


class InferencePayload(BaseModel):
    """Either completion-style (``input`` + ``parameters``) or chat-style (``messages``)."""

    model_id: str = ""
    project_id: str = ""
    input: str | None = None
    messages: list[ChatMessage] | None = None
    parameters: DecodingParameters | None = None

    def to_upstream(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if self.messages is not None:
            body["messages"] = [message.model_dump() for message in self.messages]
        if self.input is not None:
            body["input"] = self.input
        if self.parameters is not None:
            body["parameters"] = self.parameters.to_upstream()
        if self.model_id:
            body["model_id"] = self.model_id
        if self.project_id:
            body["project_id"] = self.project_id
        return body


class AssistantMessage(BaseModel):
    content: str
    role: Literal["assistant"] = "assistant"


class ChatChoice(BaseModel):
    index: int = 0
    message: AssistantMessage


class ChatResponse(BaseModel):
    """Canonical envelope returned to the frontend."""

    choices: list[ChatChoice]

    @classmethod
    def from_text(cls, text: str) -> "ChatResponse":
        return cls(choices=[ChatChoice(index=0, message=AssistantMessage(content=text))])


@dataclass(slots=True, frozen=True)
class AccessToken:
    value: str
    obtained_at: float
    expires_at: float | None = None

    def is_fresh(self, now: float, margin_seconds: float = 0.0) -> bool:
        if self.expires_at is None:
            return False
        return now < self.expires_at - margin_seconds
