"""Chat request data models for the OpenAI and Anthropic routes."""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


# Part types kept after boundary normalization
CONTENT_PART_TYPES = frozenset({"text", "image_url"})


def _anthropic_image_to_image_url(block: dict[str, Any]) -> dict[str, Any] | None:
    """Convert an Anthropic ``image`` block into an ``image_url`` part.

    Base64 sources become ``data:`` URIs; url sources are passed through.
    """
    source = block.get("source")
    if not isinstance(source, dict):
        return None

    if source.get("type") == "base64" and source.get("data"):
        media_type = source.get("media_type") or "image/png"
        url = f"data:{media_type};base64,{source['data']}"
    elif source.get("type") == "url" and source.get("url"):
        url = source["url"]
    else:
        return None

    return {"type": "image_url", "image_url": {"url": url}}


def normalize_content_parts(content: Any) -> Any:
    """Normalize raw content parts before validation.

    Anthropic ``image`` blocks are rewritten as ``image_url`` parts and any
    other part type the relay does not forward (``tool_use``, ``document``,
    ...) is dropped. Strings pass through untouched.

    Args:
        content: Raw message content from the request.

    Returns:
        Content containing only text and image_url parts.
    """
    if not isinstance(content, list):
        return content

    normalized = []
    for part in content:
        # Dict from JSON - filter by type field
        if isinstance(part, dict):
            part_type = part.get("type")
            if part_type == "image":
                converted = _anthropic_image_to_image_url(part)
                if converted is not None:
                    normalized.append(converted)
            elif part_type in CONTENT_PART_TYPES:
                normalized.append(part)
        # Already a Pydantic model - pass through (already validated)
        elif isinstance(part, BaseModel):
            normalized.append(part)

    return normalized


class TextContent(BaseModel):
    """Text content part of a message."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ImageUrl(BaseModel):
    """Image reference: an http(s) URL or a ``data:`` URI."""

    model_config = ConfigDict(frozen=True)

    url: str
    detail: Literal["auto", "low", "high"] | None = None


class ImageContent(BaseModel):
    """Image content part of a message."""

    model_config = ConfigDict(frozen=True)

    type: Literal["image_url"] = "image_url"
    image_url: ImageUrl


ContentPart = Annotated[
    Union[TextContent, ImageContent],
    Field(discriminator="type"),
]

MessageContent = Union[str, list[ContentPart]]


class Message(BaseModel):
    """A chat message with plain or mixed text/image content."""

    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"]
    content: Annotated[MessageContent, BeforeValidator(normalize_content_parts)]


class ChatCompletionRequest(BaseModel):
    """Request body for ``POST /v1/chat/completions``."""

    model_config = ConfigDict(extra="allow")

    model: str = Field(..., description="Model identifier, optionally with ':online'")
    messages: list[Message] = Field(..., min_length=1)
    stream: bool = False
    temperature: float | None = None
    max_tokens: int | None = None


class AnthropicTextBlock(BaseModel):
    """Text block of an Anthropic ``system`` prompt."""

    type: Literal["text"] = "text"
    text: str


class AnthropicMessagesRequest(BaseModel):
    """Request body for ``POST /v1/messages``."""

    model_config = ConfigDict(extra="allow")

    model: str
    messages: list[Message] = Field(..., min_length=1)
    system: str | list[AnthropicTextBlock] | None = None
    max_tokens: int = Field(default=4096, ge=1)
    stream: bool = False
    temperature: float | None = None

    def system_text(self) -> str:
        """Return the system prompt as a single string."""
        if self.system is None:
            return ""
        if isinstance(self.system, str):
            return self.system
        return "\n".join(block.text for block in self.system)
