"""Dependency injection for API handlers."""

from typing import Annotated

from fastapi import Depends, Request

from relay.config import Settings, get_settings
from relay.core.catalog import ModelRegistry
from relay.utils.errors import AuthenticationError


def get_settings_dependency() -> Settings:
    """Get application settings.

    This is a thin wrapper around get_settings() to allow for
    easier testing via dependency override.
    """
    return get_settings()


SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]


def get_registry(request: Request) -> ModelRegistry:
    """Return the model registry created by the app factory."""
    return request.app.state.registry


RegistryDep = Annotated[ModelRegistry, Depends(get_registry)]


def get_request_id(request: Request) -> str | None:
    """Extract request ID from request state.

    The request ID is set by the request ID middleware.
    """
    return getattr(request.state, "request_id", None)


RequestIdDep = Annotated[str | None, Depends(get_request_id)]


def get_api_key(request: Request) -> str:
    """Extract the caller's 1min.ai API key.

    Accepts ``Authorization: Bearer <key>`` (OpenAI clients) or
    ``x-api-key: <key>`` (Anthropic clients).

    Raises:
        AuthenticationError: If no key was sent.
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        api_key = auth_header[7:].strip()
    else:
        api_key = request.headers.get("x-api-key", "").strip()

    if not api_key:
        raise AuthenticationError("Missing API key. Provide it as a Bearer token or x-api-key header.")

    return api_key


ApiKeyDep = Annotated[str, Depends(get_api_key)]
