"""Model and message validation shared by every chat route."""

from collections.abc import Sequence

from pydantic import BaseModel

from relay.config import Settings
from relay.core.catalog import ModelRegistry
from relay.core.messages import process_messages
from relay.core.model_parser import WebSearchConfig, parse_model
from relay.models.request import Message
from relay.utils.errors import ModelNotFoundError, ValidationError


class ValidatedModel(BaseModel):
    """A request whose model and messages passed validation."""

    clean_model: str
    web_search_config: WebSearchConfig | None = None
    processed_messages: list[Message]


async def validate_model_and_messages(
    raw_model: str,
    messages: Sequence[Message],
    settings: Settings,
    registry: ModelRegistry,
) -> ValidatedModel:
    """Validate the model name and normalize messages in one step.

    Checks run cheapest first: the model name is parsed before the catalog
    is consulted, and capability checks that need no message work run before
    messages are processed.

    Args:
        raw_model: Model name as sent by the caller.
        messages: Request messages.
        settings: Application settings.
        registry: Source of the model catalog snapshot.

    Returns:
        The validated model and processed messages.

    Raises:
        ValidationError: If the model name is malformed, names an image
            generation model, or cannot accept the request's images.
        ModelNotFoundError: If the model is not in the catalog.
    """
    parsed = parse_model(raw_model, settings)
    if parsed.error:
        raise ValidationError(parsed.error, "model", "model_not_found")

    clean_model = parsed.clean_model
    catalog = await registry.get_catalog()

    if clean_model not in catalog.chat_model_ids:
        if clean_model in catalog.image_model_ids:
            raise ValidationError(
                f"Model '{clean_model}' is an image generation model. "
                "Use POST /v1/images/generations instead.",
                "model",
                "model_not_supported",
            )
        raise ModelNotFoundError(clean_model)

    result = process_messages(messages)
    if result.has_images and clean_model not in catalog.vision_model_ids:
        raise ValidationError(
            f"Model '{clean_model}' does not support image inputs",
            "model",
            "model_not_supported",
        )

    return ValidatedModel(
        clean_model=clean_model,
        web_search_config=parsed.web_search_config,
        processed_messages=result.processed_messages,
    )
