"""Error taxonomy and translation utilities."""

from relay.utils.errors import (
    ApiError,
    AuthenticationError,
    ErrorKind,
    ModelNotFoundError,
    RateLimitError,
    RelayError,
    ValidationError,
    render_error,
    to_anthropic_error,
    to_openai_error,
)

__all__ = [
    "ApiError",
    "AuthenticationError",
    "ErrorKind",
    "ModelNotFoundError",
    "RateLimitError",
    "RelayError",
    "ValidationError",
    "render_error",
    "to_anthropic_error",
    "to_openai_error",
]
