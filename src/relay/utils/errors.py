"""Error taxonomy and translation into OpenAI and Anthropic error envelopes.

Every failure raised by the relay is a :class:`RelayError` tagged with an
:class:`ErrorKind`. The translators match on the kind; anything that is not a
``RelayError`` is first passed through :func:`classify_exception` and, if it
is still unrecognized, rendered as a generic internal error.
"""

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Closed set of failure categories."""

    VALIDATION = "validation_error"
    MODEL_NOT_FOUND = "model_not_found"
    AUTHENTICATION = "authentication_error"
    RATE_LIMIT = "rate_limit_error"
    API = "api_error"


# Default HTTP status by error kind
DEFAULT_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.MODEL_NOT_FOUND: 404,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.RATE_LIMIT: 429,
    ErrorKind.API: 500,
}

# Status used for an ApiError that wraps a failed upstream response
BAD_GATEWAY_STATUS = 502

DEFAULT_USER_MESSAGE = "An unexpected error occurred"
INTERNAL_STATUS = 500

# Maximum length for error messages sent to callers
MAX_ERROR_LENGTH = 500


class RelayError(Exception):
    """Base class for typed relay failures.

    Subclasses fix ``kind``; the translators dispatch on it rather than on
    the concrete class.

    Attributes:
        kind: The taxonomy kind, used to pick status and wire type.
        message: Human-readable message, safe to return to the caller.
        param: Request field the error refers to, if any.
        code: Machine-readable code, if any.
        status: HTTP status to respond with.
        upstream_status: Status returned by an upstream service, if any.
    """

    kind: ErrorKind = ErrorKind.API

    def __init__(
        self,
        message: str,
        *,
        param: str | None = None,
        code: str | None = None,
        status: int | None = None,
        upstream_status: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.param = param
        self.code = code
        self.upstream_status = upstream_status
        self.status = status if status is not None else DEFAULT_STATUS[self.kind]

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, param={self.param!r}, "
            f"code={self.code!r}, status={self.status})"
        )


class ValidationError(RelayError):
    """Malformed or unsupported request."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, param: str | None = None, code: str | None = None):
        super().__init__(message, param=param, code=code)


class ModelNotFoundError(RelayError):
    """Referenced model does not exist in the catalog."""

    kind = ErrorKind.MODEL_NOT_FOUND

    def __init__(self, model: str):
        super().__init__(
            f"The model '{model}' does not exist",
            param="model",
            code="model_not_found",
        )
        self.model = model


class AuthenticationError(RelayError):
    """Missing or invalid credentials."""

    kind = ErrorKind.AUTHENTICATION

    def __init__(self, message: str = "Invalid API key provided"):
        super().__init__(message, code="invalid_api_key")


class RateLimitError(RelayError):
    """Upstream or local quota exceeded."""

    kind = ErrorKind.RATE_LIMIT

    def __init__(self, message: str = "Rate limit exceeded"):
        super().__init__(message, code="rate_limit_exceeded")


class ApiError(RelayError):
    """Generic upstream or provider failure.

    Wrapping an upstream status defaults the response status to 502.
    """

    kind = ErrorKind.API

    def __init__(
        self,
        message: str,
        status: int | None = None,
        upstream_status: int | None = None,
    ):
        if status is None and upstream_status is not None:
            status = BAD_GATEWAY_STATUS
        super().__init__(message, status=status, upstream_status=upstream_status)


class OpenAIErrorData(BaseModel):
    """Rendered OpenAI-style error."""

    status: int
    message: str
    type: str
    param: str | None = None
    code: str | None = None


class AnthropicErrorData(BaseModel):
    """Rendered Anthropic-style error."""

    status: int
    type: str
    message: str


def truncate_error(error: str, max_length: int = MAX_ERROR_LENGTH) -> str:
    """Truncate error message if too long.

    Args:
        error: The error message.
        max_length: Maximum allowed length.

    Returns:
        Truncated error message.
    """
    if len(error) <= max_length:
        return error

    return error[: max_length - 3] + "..."


def _safe_status(status: Any) -> int:
    if isinstance(status, int) and not isinstance(status, bool) and 400 <= status <= 599:
        return status
    return INTERNAL_STATUS


def _describe_validation_errors(errors: list[dict[str, Any]]) -> tuple[str, str | None]:
    """Summarize pydantic error dicts as a message and a dotted param path."""
    if not errors:
        return "Request validation failed", None
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part != "body"]
    param = ".".join(loc) or None
    message = first.get("msg", "Request validation failed")
    if param:
        message = f"{param}: {message}"
    return message, param


def classify_exception(exc: BaseException) -> RelayError | None:
    """Map a non-taxonomy exception onto the taxonomy when it is recognizable.

    Args:
        exc: The exception to classify.

    Returns:
        A RelayError describing the failure, or None if it is unexpected.
    """
    # Import here to avoid circular imports
    import httpx
    from fastapi.exceptions import RequestValidationError
    from pydantic import ValidationError as PydanticValidationError

    if isinstance(exc, RelayError):
        return exc

    if isinstance(exc, (RequestValidationError, PydanticValidationError)):
        message, param = _describe_validation_errors(list(exc.errors()))
        return ValidationError(message, param=param, code="invalid_request")

    # HTTP errors from upstream
    if isinstance(exc, httpx.HTTPStatusError):
        status_code = exc.response.status_code
        if status_code in (401, 403):
            return AuthenticationError()
        if status_code == 429:
            return RateLimitError()
        return ApiError(
            f"Upstream request failed with status {status_code}",
            upstream_status=status_code,
        )

    if isinstance(exc, httpx.TimeoutException):
        return ApiError("Upstream request timed out", status=504)

    if isinstance(exc, httpx.TransportError):
        return ApiError("Upstream service unavailable", status=BAD_GATEWAY_STATUS)

    return None


# Wire type names by kind, per protocol
_OPENAI_TYPES: dict[ErrorKind, str] = {
    ErrorKind.VALIDATION: "invalid_request_error",
    ErrorKind.MODEL_NOT_FOUND: "invalid_request_error",
    ErrorKind.AUTHENTICATION: "authentication_error",
    ErrorKind.RATE_LIMIT: "rate_limit_error",
    ErrorKind.API: "api_error",
}

_ANTHROPIC_TYPES: dict[ErrorKind, str] = {
    ErrorKind.VALIDATION: "invalid_request_error",
    ErrorKind.MODEL_NOT_FOUND: "not_found_error",
    ErrorKind.AUTHENTICATION: "authentication_error",
    ErrorKind.RATE_LIMIT: "rate_limit_error",
    ErrorKind.API: "api_error",
}


def _classify_quietly(err: BaseException) -> RelayError | None:
    try:
        return classify_exception(err)
    except Exception:
        logger.exception("Failed to classify exception")
        return None


def to_openai_error(err: BaseException) -> OpenAIErrorData:
    """Render any failure as OpenAI error data. Never raises."""
    relay_error = _classify_quietly(err)
    if relay_error is None:
        return OpenAIErrorData(
            status=INTERNAL_STATUS,
            message=DEFAULT_USER_MESSAGE,
            type="internal_error",
            code="internal_error",
        )

    match relay_error.kind:
        case ErrorKind.MODEL_NOT_FOUND:
            code = relay_error.code or "model_not_found"
        case ErrorKind.AUTHENTICATION:
            code = relay_error.code or "invalid_api_key"
        case ErrorKind.RATE_LIMIT:
            code = relay_error.code or "rate_limit_exceeded"
        case ErrorKind.API:
            code = relay_error.code or "api_error"
        case _:
            code = relay_error.code

    return OpenAIErrorData(
        status=_safe_status(relay_error.status),
        message=truncate_error(str(relay_error.message)),
        type=_OPENAI_TYPES.get(relay_error.kind, "api_error"),
        param=relay_error.param,
        code=code,
    )


def to_anthropic_error(err: BaseException) -> AnthropicErrorData:
    """Render any failure as Anthropic error data. Never raises."""
    relay_error = _classify_quietly(err)
    if relay_error is None:
        return AnthropicErrorData(
            status=INTERNAL_STATUS,
            type="api_error",
            message=DEFAULT_USER_MESSAGE,
        )

    return AnthropicErrorData(
        status=_safe_status(relay_error.status),
        type=_ANTHROPIC_TYPES.get(relay_error.kind, "api_error"),
        message=truncate_error(str(relay_error.message)),
    )


ANTHROPIC_PATH_PREFIX = "/v1/messages"


def is_anthropic_path(path: str) -> bool:
    """Whether errors for this request path use the Anthropic envelope."""
    return path.startswith(ANTHROPIC_PATH_PREFIX)


def render_error(err: BaseException, path: str) -> tuple[int, dict[str, Any]]:
    """Render a failure as (status, JSON body) for the protocol of ``path``."""
    if is_anthropic_path(path):
        data = to_anthropic_error(err)
        return data.status, {
            "type": "error",
            "error": {"type": data.type, "message": data.message},
        }

    data = to_openai_error(err)
    return data.status, {
        "error": {
            "message": data.message,
            "type": data.type,
            "param": data.param,
            "code": data.code,
        }
    }


def log_error(
    exc: BaseException,
    request_id: str | None = None,
    **context: Any,
) -> None:
    """Log an error with context.

    Expected taxonomy errors are logged at info level; anything else is logged
    with its traceback, since it is never echoed to the caller.

    Args:
        exc: The exception that occurred.
        request_id: Optional request ID.
        **context: Additional context to include in log.
    """
    log_extra = {
        "error_type": type(exc).__name__,
        "request_id": request_id,
        **context,
    }

    relay_error = _classify_quietly(exc)
    if relay_error is not None:
        log_extra["error_code"] = relay_error.code
        logger.info(
            f"Request error [{relay_error.kind.value}]: {relay_error.message}",
            extra=log_extra,
        )
    else:
        logger.error("Unhandled error", exc_info=exc, extra=log_extra)
