"""Background model catalog warm-up."""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from relay.core.catalog import ModelRegistry

logger = logging.getLogger(__name__)

# Strong references to running tasks; the event loop only keeps weak ones
_background_tasks: set[asyncio.Task] = set()


def _discard_result(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug(f"Background task failed: {type(exc).__name__}: {exc}")


def fire_and_forget(coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
    """Run a coroutine in the background without awaiting it.

    Failures are logged and discarded.
    """
    task = asyncio.create_task(coro)
    _background_tasks.add(task)
    task.add_done_callback(_discard_result)
    return task


class CatalogWarmupMiddleware(BaseHTTPMiddleware):
    """Start a catalog refresh before each request is handled.

    The request never waits on the refresh. When a handler later needs the
    catalog it awaits the registry, which reuses the snapshot or joins the
    refresh already in flight.
    """

    def __init__(self, app, registry: ModelRegistry):
        super().__init__(app)
        self.registry = registry

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        fire_and_forget(self.registry.get_catalog())
        return await call_next(request)
