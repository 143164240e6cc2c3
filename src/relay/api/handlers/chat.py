"""OpenAI-compatible chat completions endpoint."""

import logging

import httpx
from fastapi import APIRouter

from relay.api.deps import ApiKeyDep, RegistryDep, RequestIdDep, SettingsDep
from relay.config import Settings
from relay.core.messages import upload_message_images
from relay.core.upstream import build_feature_request, build_prompt, send_chat_request
from relay.core.validation import ValidatedModel, validate_model_and_messages
from relay.models.request import ChatCompletionRequest
from relay.models.response import ChatCompletionResponse
from relay.utils.errors import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()


def reject_streaming(stream: bool) -> None:
    """Raise if the caller asked for a streamed response."""
    if stream:
        raise ValidationError(
            "Streaming responses are not supported by this relay",
            "stream",
            "unsupported_parameter",
        )


async def complete(
    validated: ValidatedModel,
    api_key: str,
    settings: Settings,
    system: str = "",
) -> str:
    """Upload request images, call the upstream API and return its text."""
    async with httpx.AsyncClient(timeout=settings.upstream.timeout_seconds) as client:
        image_paths = await upload_message_images(
            validated.processed_messages, api_key, settings, client
        )
        body = build_feature_request(
            validated.clean_model,
            build_prompt(validated.processed_messages, system=system),
            web_search_config=validated.web_search_config,
            image_paths=image_paths,
        )
        return await send_chat_request(body, api_key, settings, client)


@router.post("/v1/chat/completions", response_model=ChatCompletionResponse)
async def chat_completions(
    request_body: ChatCompletionRequest,
    settings: SettingsDep,
    registry: RegistryDep,
    api_key: ApiKeyDep,
    request_id: RequestIdDep,
) -> ChatCompletionResponse:
    """Handle OpenAI-style chat completion requests.

    Failures propagate to the global error handler, which renders them in
    the OpenAI error envelope.
    """
    reject_streaming(request_body.stream)

    validated = await validate_model_and_messages(
        request_body.model, request_body.messages, settings, registry
    )

    logger.info(
        f"Chat completion request: model={validated.clean_model}, "
        f"messages={len(validated.processed_messages)}, "
        f"web_search={'enabled' if validated.web_search_config else 'disabled'}",
        extra={"request_id": request_id},
    )

    text = await complete(validated, api_key, settings)
    return ChatCompletionResponse.from_text(validated.clean_model, text)
