"""Model catalog snapshot and its time-bounded cache."""

import asyncio
import logging
import time
from collections.abc import Iterable
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, model_validator

from relay.config import Settings
from relay.utils.errors import ApiError

logger = logging.getLogger(__name__)


class ModelCatalog(BaseModel):
    """Read-only classification of model ids.

    Every vision model is also a chat model, and image generation models are
    never chat models; construction enforces both.
    """

    model_config = ConfigDict(frozen=True)

    chat_model_ids: frozenset[str] = frozenset()
    image_model_ids: frozenset[str] = frozenset()
    vision_model_ids: frozenset[str] = frozenset()

    @model_validator(mode="before")
    @classmethod
    def normalize_membership(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        image = set(data.get("image_model_ids") or ())
        vision = set(data.get("vision_model_ids") or ())
        chat = (set(data.get("chat_model_ids") or ()) | vision) - image
        return {
            "chat_model_ids": frozenset(chat),
            "image_model_ids": frozenset(image),
            "vision_model_ids": frozenset(vision & chat),
        }

    @classmethod
    def from_lists(
        cls,
        chat: Iterable[str] = (),
        image: Iterable[str] = (),
        vision: Iterable[str] = (),
    ) -> "ModelCatalog":
        return cls(
            chat_model_ids=frozenset(chat),
            image_model_ids=frozenset(image),
            vision_model_ids=frozenset(vision),
        )

    @classmethod
    def from_payload(cls, payload: Any) -> "ModelCatalog":
        """Build a catalog from a remote catalog document.

        Accepts either ``{"models": [{"id", "type", "vision"}]}`` or
        ``{"chat": [...], "image": [...], "vision": [...]}``.

        Raises:
            ValueError: If the payload has neither shape.
        """
        if not isinstance(payload, dict):
            raise ValueError("catalog payload must be a JSON object")

        if isinstance(payload.get("models"), list):
            chat, image, vision = set(), set(), set()
            for entry in payload["models"]:
                if not isinstance(entry, dict) or not entry.get("id"):
                    continue
                model_id = str(entry["id"])
                if entry.get("type", "chat") == "image":
                    image.add(model_id)
                else:
                    chat.add(model_id)
                    if entry.get("vision"):
                        vision.add(model_id)
            return cls.from_lists(chat, image, vision)

        if any(key in payload for key in ("chat", "image", "vision")):
            return cls.from_lists(
                payload.get("chat") or (),
                payload.get("image") or (),
                payload.get("vision") or (),
            )

        raise ValueError("catalog payload has no 'models' or 'chat' entries")


class ModelRegistry:
    """Serves catalog snapshots, refreshing them after ``cache_ttl_seconds``.

    The snapshot is replaced as a whole, never mutated. Concurrent refreshes
    collapse into one fetch. If a refresh fails, the previous snapshot keeps
    being served.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        self.settings = settings
        self._client = client
        self._snapshot: ModelCatalog | None = None
        self._fetched_at = 0.0
        self._lock = asyncio.Lock()

    @property
    def snapshot(self) -> ModelCatalog | None:
        """Current snapshot without triggering a refresh."""
        return self._snapshot

    def _is_fresh(self) -> bool:
        if self._snapshot is None:
            return False
        ttl = self.settings.catalog.cache_ttl_seconds
        return time.monotonic() - self._fetched_at < ttl

    async def get_catalog(self) -> ModelCatalog:
        """Return a fresh-enough catalog snapshot.

        Raises:
            ApiError: If no snapshot could ever be loaded.
        """
        if self._is_fresh():
            return self._snapshot

        async with self._lock:
            # Another task may have refreshed while we waited
            if self._is_fresh():
                return self._snapshot

            try:
                catalog = await self._load()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if self._snapshot is not None:
                    logger.warning(f"Model catalog refresh failed, serving stale snapshot: {e}")
                    return self._snapshot
                logger.error(f"Model catalog unavailable: {e}")
                raise ApiError("Model catalog unavailable", status=503) from e

            self._snapshot = catalog
            self._fetched_at = time.monotonic()
            logger.debug(
                f"Model catalog refreshed: {len(catalog.chat_model_ids)} chat, "
                f"{len(catalog.vision_model_ids)} vision, "
                f"{len(catalog.image_model_ids)} image"
            )
            return catalog

    async def _load(self) -> ModelCatalog:
        catalog_settings = self.settings.catalog
        if not catalog_settings.url:
            return ModelCatalog.from_lists(
                catalog_settings.chat_models,
                catalog_settings.image_models,
                catalog_settings.vision_models,
            )

        if self._client is not None:
            return await self._fetch(self._client, catalog_settings.url)

        async with httpx.AsyncClient(timeout=self.settings.upstream.timeout_seconds) as client:
            return await self._fetch(client, catalog_settings.url)

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> ModelCatalog:
        response = await client.get(url, headers={"User-Agent": self.settings.upstream.user_agent})
        response.raise_for_status()
        return ModelCatalog.from_payload(response.json())
