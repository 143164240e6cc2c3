"""Tests for background catalog warm-up."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from relay.middleware import warmup
from relay.middleware.warmup import CatalogWarmupMiddleware, fire_and_forget


class TestFireAndForget:
    """Tests for fire_and_forget."""

    @pytest.mark.asyncio
    async def test_runs_in_background(self):
        """Test the coroutine runs without being awaited by the caller."""
        done = asyncio.Event()

        async def work():
            done.set()

        task = fire_and_forget(work())
        assert task in warmup._background_tasks

        await asyncio.wait_for(done.wait(), timeout=1)
        await task
        # Done callbacks run on the next loop iteration
        await asyncio.sleep(0)
        assert task not in warmup._background_tasks

    @pytest.mark.asyncio
    async def test_failure_swallowed(self, caplog):
        """Test a failing task is logged and discarded."""

        async def broken():
            raise RuntimeError("refresh failed")

        task = fire_and_forget(broken())
        with caplog.at_level("DEBUG", logger="relay.middleware.warmup"):
            await asyncio.gather(task, return_exceptions=True)
            await asyncio.sleep(0)

        assert task not in warmup._background_tasks
        assert "refresh failed" in caplog.text


class TestCatalogWarmupMiddleware:
    """Tests for CatalogWarmupMiddleware."""

    def test_response_not_delayed_by_failure(self):
        """Test the wrapped route responds even when the refresh fails."""
        registry = MagicMock()
        registry.get_catalog = AsyncMock(side_effect=RuntimeError("down"))

        app = FastAPI()
        app.add_middleware(CatalogWarmupMiddleware, registry=registry)

        @app.get("/ping")
        async def ping():
            return {"ok": True}

        response = TestClient(app).get("/ping")

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        registry.get_catalog.assert_called_once()
