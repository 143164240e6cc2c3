"""Client for the 1min.ai features API."""

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from relay.config import Settings
from relay.core.messages import extract_text_from_content
from relay.core.model_parser import WebSearchConfig
from relay.models.request import Message
from relay.utils.errors import ApiError, AuthenticationError, RateLimitError, truncate_error

logger = logging.getLogger(__name__)

CHAT_FEATURE = "CHAT_WITH_AI"
IMAGE_CHAT_FEATURE = "CHAT_WITH_IMAGE"

ROLE_LABELS = {
    "system": "System",
    "user": "User",
    "assistant": "Assistant",
}


def message_text(message: Message) -> str:
    """Return the text of a message, ignoring image parts."""
    if isinstance(message.content, str):
        return message.content
    return extract_text_from_content(message.content)


def build_prompt(messages: Sequence[Message], system: str = "") -> str:
    """Flatten a conversation into the single prompt string 1min.ai expects.

    System text comes first, wherever system messages appear in the
    conversation; the other messages keep their order.

    Args:
        messages: Processed messages in conversation order.
        system: Extra system prompt placed before everything else.

    Returns:
        The prompt text.
    """
    system_sections = [f"System: {system}"] if system else []
    sections = []

    for message in messages:
        text = message_text(message)
        if not text:
            continue
        target = system_sections if message.role == "system" else sections
        target.append(f"{ROLE_LABELS[message.role]}: {text}")

    return "\n\n".join(system_sections + sections)


def build_feature_request(
    model: str,
    prompt: str,
    web_search_config: WebSearchConfig | None = None,
    image_paths: Sequence[str] = (),
) -> dict[str, Any]:
    """Build the JSON body for a chat feature request."""
    prompt_object: dict[str, Any] = {
        "prompt": prompt,
        "isMixed": False,
        "webSearch": False,
    }
    if web_search_config is not None:
        prompt_object.update(
            webSearch=web_search_config.web_search,
            numOfSite=web_search_config.num_of_site,
            maxWord=web_search_config.max_word,
        )
    if image_paths:
        prompt_object["imageList"] = list(image_paths)

    return {
        "type": IMAGE_CHAT_FEATURE if image_paths else CHAT_FEATURE,
        "model": model,
        "promptObject": prompt_object,
    }


def extract_result_text(payload: Any) -> str:
    """Pull the completion text out of a feature response.

    Raises:
        ApiError: If the response does not contain a result.
    """
    try:
        result = payload["aiRecord"]["aiRecordDetail"]["resultObject"]
    except (KeyError, TypeError):
        raise ApiError("Unexpected response from upstream API") from None

    if isinstance(result, list):
        result = "".join(str(item) for item in result)
    if not isinstance(result, str):
        raise ApiError("Unexpected response from upstream API")
    return result


def _raise_for_upstream_status(response: httpx.Response) -> None:
    if response.is_success:
        return

    status = response.status_code
    if status in (401, 403):
        raise AuthenticationError("Invalid API key provided to upstream API")
    if status == 429:
        raise RateLimitError("Upstream rate limit exceeded")
    raise ApiError(
        truncate_error(
            f"Upstream API error: {status} {response.reason_phrase} - {response.text}"
        ),
        upstream_status=status,
    )


async def _post_feature(
    body: dict[str, Any],
    api_key: str,
    settings: Settings,
    client: httpx.AsyncClient,
) -> str:
    try:
        response = await client.post(
            settings.upstream.api_url,
            headers={"API-KEY": api_key},
            json=body,
        )
    except httpx.TimeoutException as e:
        raise ApiError("Upstream API timed out", status=504) from e
    except httpx.HTTPError as e:
        raise ApiError(f"Upstream API unreachable: {type(e).__name__}", status=502) from e

    _raise_for_upstream_status(response)

    try:
        payload = response.json()
    except ValueError:
        raise ApiError("Upstream API returned invalid JSON") from None

    return extract_result_text(payload)


async def send_chat_request(
    body: dict[str, Any],
    api_key: str,
    settings: Settings,
    client: httpx.AsyncClient | None = None,
) -> str:
    """Send a feature request and return the completion text.

    Args:
        body: Request body from :func:`build_feature_request`.
        api_key: Caller's API key.
        settings: Application settings.
        client: Optional shared HTTP client.

    Returns:
        The completion text.

    Raises:
        AuthenticationError: If upstream rejects the key.
        RateLimitError: If upstream rate limits the request.
        ApiError: For any other upstream failure.
    """
    logger.debug(f"Sending {body['type']} request for model {body['model']}")

    if client is not None:
        return await _post_feature(body, api_key, settings, client)

    async with httpx.AsyncClient(timeout=settings.upstream.timeout_seconds) as own_client:
        return await _post_feature(body, api_key, settings, own_client)
