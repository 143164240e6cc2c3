"""Shared test fixtures."""

import pytest

from relay.config import CatalogSettings, Settings
from relay.core.catalog import ModelCatalog, ModelRegistry

CHAT_MODELS = ["gpt-4o", "gpt-4o-mini", "text-only-1"]
VISION_MODELS = ["gpt-4o"]
IMAGE_MODELS = ["img-gen-1"]


@pytest.fixture
def settings():
    """Settings with a small static catalog."""
    return Settings(
        catalog=CatalogSettings(
            chat_models=CHAT_MODELS,
            vision_models=VISION_MODELS,
            image_models=IMAGE_MODELS,
        )
    )


@pytest.fixture
def catalog():
    """Catalog snapshot matching the settings fixture."""
    return ModelCatalog.from_lists(CHAT_MODELS, IMAGE_MODELS, VISION_MODELS)


@pytest.fixture
def registry(settings):
    """Registry serving the static catalog from settings."""
    return ModelRegistry(settings)
