"""API route registration."""

from fastapi import APIRouter

from relay.api.handlers.chat import router as chat_router
from relay.api.handlers.health import router as health_router
from relay.api.handlers.messages import router as messages_router
from relay.api.handlers.models import router as models_router

# Main API router that aggregates all endpoint routers
api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(models_router, tags=["models"])
api_router.include_router(chat_router, tags=["openai"])
api_router.include_router(messages_router, tags=["anthropic"])
