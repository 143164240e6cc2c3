"""Models endpoint handler."""

import logging

from fastapi import APIRouter

from relay.api.deps import RegistryDep
from relay.models.response import ModelInfo, ModelsResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/v1/models", response_model=ModelsResponse)
async def list_models(registry: RegistryDep) -> ModelsResponse:
    """List chat models from the current catalog snapshot.

    Image generation models are not listed since they cannot be used with
    the chat endpoints.
    """
    catalog = await registry.get_catalog()

    models = [
        ModelInfo(id=model_id, vision=model_id in catalog.vision_model_ids)
        for model_id in sorted(catalog.chat_model_ids)
    ]

    logger.debug(f"Returning {len(models)} models")

    return ModelsResponse(data=models)
