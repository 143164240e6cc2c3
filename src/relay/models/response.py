"""Response data models."""

import time
import uuid
from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Usage(BaseModel):
    """Token usage. 1min.ai does not report tokens, so counts stay zero."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class AssistantMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str


class Choice(BaseModel):
    index: int = 0
    message: AssistantMessage
    finish_reason: str = "stop"


class ChatCompletionResponse(BaseModel):
    """OpenAI ``chat.completion`` object."""

    id: str = Field(default_factory=lambda: f"chatcmpl-{uuid.uuid4().hex}")
    object: Literal["chat.completion"] = "chat.completion"
    created: int = Field(default_factory=lambda: int(time.time()))
    model: str
    choices: list[Choice]
    usage: Usage = Field(default_factory=Usage)

    @classmethod
    def from_text(cls, model: str, text: str) -> "ChatCompletionResponse":
        return cls(model=model, choices=[Choice(message=AssistantMessage(content=text))])


class AnthropicUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0


class AnthropicTextOutput(BaseModel):
    type: Literal["text"] = "text"
    text: str


class AnthropicMessageResponse(BaseModel):
    """Anthropic ``message`` object."""

    id: str = Field(default_factory=lambda: f"msg_{uuid.uuid4().hex}")
    type: Literal["message"] = "message"
    role: Literal["assistant"] = "assistant"
    model: str
    content: list[AnthropicTextOutput]
    stop_reason: str = "end_turn"
    stop_sequence: str | None = None
    usage: AnthropicUsage = Field(default_factory=AnthropicUsage)

    @classmethod
    def from_text(cls, model: str, text: str) -> "AnthropicMessageResponse":
        return cls(model=model, content=[AnthropicTextOutput(text=text)])


class ModelInfo(BaseModel):
    """Entry of the OpenAI-style model list."""

    id: str
    object: Literal["model"] = "model"
    created: int = 0
    owned_by: str = "1min.ai"
    vision: bool = False


class ModelsResponse(BaseModel):
    """Response for the models listing endpoint."""

    object: Literal["list"] = "list"
    data: list[ModelInfo]


class HealthStatus(str, Enum):
    """Health status values."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ComponentHealth(BaseModel):
    """Health status for a single dependency."""

    model_config = ConfigDict(use_enum_values=True)

    status: HealthStatus
    latency_ms: int | None = None
    error: str | None = None
    message: str | None = None


class HealthResponse(BaseModel):
    """Health check response model."""

    model_config = ConfigDict(use_enum_values=True)

    status: HealthStatus
    version: str
    timestamp: datetime
    checks: dict[str, ComponentHealth]
