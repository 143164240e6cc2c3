"""Message content normalization and image extraction."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import httpx

from relay.config import Settings
from relay.core.images import resolve_image, upload_image
from relay.models.request import ContentPart, ImageContent, Message, MessageContent, TextContent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessedMessages:
    """Normalized messages plus whether any of them carries an image."""

    processed_messages: list[Message]
    has_images: bool


def _is_image_part(part: ContentPart) -> bool:
    return isinstance(part, ImageContent) and bool(part.image_url.url)


def extract_text_from_content(content: Sequence[ContentPart]) -> str:
    """Extract text content from mixed content parts.

    Text parts are joined with newlines in input order; other parts are
    ignored.

    Args:
        content: List of content parts.

    Returns:
        Combined text content, or an empty string if there is none.
    """
    return "\n".join(part.text for part in content if isinstance(part, TextContent))


def extract_image_from_content(content: MessageContent) -> str | None:
    """Return the first image URL in the content, if any."""
    if isinstance(content, str):
        return None

    for part in content:
        if _is_image_part(part):
            return part.image_url.url

    return None


def _normalize_message(message: Message) -> tuple[Message, bool]:
    if isinstance(message.content, str):
        return message, False

    parts = [
        part
        for part in message.content
        if not isinstance(part, ImageContent) or _is_image_part(part)
    ]
    has_images = any(_is_image_part(part) for part in parts)

    if not has_images:
        # Text-only content is forwarded as a flat string
        return message.model_copy(update={"content": extract_text_from_content(parts)}), False

    return message.model_copy(update={"content": parts}), True


def process_messages(messages: Sequence[Message]) -> ProcessedMessages:
    """Normalize message content and detect images in a single pass.

    String content passes through unchanged. Part lists keep their order,
    lose image parts without a URL, and are flattened to a string when no
    image remains.

    Args:
        messages: Messages as received.

    Returns:
        ProcessedMessages in input order.
    """
    processed: list[Message] = []
    has_images = False

    for message in messages:
        normalized, message_has_images = _normalize_message(message)
        processed.append(normalized)
        has_images = has_images or message_has_images

    return ProcessedMessages(processed_messages=processed, has_images=has_images)


def collect_image_urls(messages: Sequence[Message]) -> list[str]:
    """Collect every image URL, in message order then part order."""
    urls = []
    for message in messages:
        if isinstance(message.content, str):
            continue
        urls.extend(part.image_url.url for part in message.content if _is_image_part(part))
    return urls


async def upload_message_images(
    messages: Sequence[Message],
    api_key: str,
    settings: Settings,
    client: httpx.AsyncClient | None = None,
) -> list[str]:
    """Resolve and upload every image in the messages.

    Images are processed one at a time so the returned asset paths line up
    with :func:`collect_image_urls`.

    Args:
        messages: Processed messages.
        api_key: Caller's API key for the asset API.
        settings: Application settings.
        client: Optional shared HTTP client.

    Returns:
        Asset paths in input order.
    """
    urls = collect_image_urls(messages)
    if not urls:
        return []

    logger.info(f"Uploading {len(urls)} image(s) to asset store")

    paths = []
    for url in urls:
        image = await resolve_image(url, settings, client)
        paths.append(await upload_image(image, api_key, settings, client))
    return paths
