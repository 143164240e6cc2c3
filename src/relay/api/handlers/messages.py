"""Anthropic-compatible messages endpoint."""

import logging

from fastapi import APIRouter

from relay.api.deps import ApiKeyDep, RegistryDep, RequestIdDep, SettingsDep
from relay.api.handlers.chat import complete, reject_streaming
from relay.core.validation import validate_model_and_messages
from relay.models.request import AnthropicMessagesRequest
from relay.models.response import AnthropicMessageResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/v1/messages", response_model=AnthropicMessageResponse)
async def create_message(
    request_body: AnthropicMessagesRequest,
    settings: SettingsDep,
    registry: RegistryDep,
    api_key: ApiKeyDep,
    request_id: RequestIdDep,
) -> AnthropicMessageResponse:
    """Handle Anthropic-style message requests.

    Errors raised here are rendered in the Anthropic envelope because the
    path starts with ``/v1/messages``.
    """
    reject_streaming(request_body.stream)

    validated = await validate_model_and_messages(
        request_body.model, request_body.messages, settings, registry
    )

    logger.info(
        f"Messages request: model={validated.clean_model}, "
        f"messages={len(validated.processed_messages)}",
        extra={"request_id": request_id},
    )

    text = await complete(validated, api_key, settings, system=request_body.system_text())
    return AnthropicMessageResponse.from_text(validated.clean_model, text)
