"""Image detection, fetching, decoding and re-upload to the asset store."""

import base64
import binascii
import logging
import re
import uuid
from dataclasses import dataclass

import httpx

from relay.config import Settings
from relay.utils.errors import ApiError, ValidationError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp")
DATA_URI_PREFIX = "data:"
DATA_URI_IMAGE_PREFIX = "data:image/"
BASE64_MARKER = "base64"

DEFAULT_MIME_TYPE = "image/png"
DEFAULT_EXTENSION = ".png"

MIME_TO_EXT: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}

SUPPORTED_MIME_TYPES = frozenset(MIME_TO_EXT)

_DATA_URI_MIME_RE = re.compile(r"^data:([^;,]+)")


@dataclass(frozen=True)
class ImageData:
    """Raw image bytes with their MIME type."""

    data: bytes
    mime_type: str


def is_image_url(url: str) -> bool:
    """Heuristically check whether a URL refers to an image.

    Args:
        url: URL to check.

    Returns:
        True if the URL has an image extension or carries inline image data.
    """
    lower_url = url.lower()
    return (
        any(ext in lower_url for ext in IMAGE_EXTENSIONS)
        or DATA_URI_IMAGE_PREFIX in lower_url
        or BASE64_MARKER in lower_url
    )


def mime_to_extension(mime_type: str) -> str:
    """Map a MIME type to a file extension, defaulting to ``.png``."""
    return MIME_TO_EXT.get(mime_type, DEFAULT_EXTENSION)


def _decode_data_uri(url: str) -> ImageData:
    match = _DATA_URI_MIME_RE.match(url)
    mime_type = match.group(1) if match else DEFAULT_MIME_TYPE

    _, _, payload = url.partition(",")
    if not payload:
        raise ValidationError(
            "Invalid base64 image format",
            param="messages",
            code="invalid_image_format",
        )

    payload = "".join(payload.split())
    # Padding is optional in data URIs
    payload += "=" * (-len(payload) % 4)

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError(
            "Invalid base64 image format",
            param="messages",
            code="invalid_image_format",
        ) from None

    return ImageData(data=data, mime_type=mime_type)


def _trusted_mime_type(content_type: str | None) -> str:
    """Return the response MIME type if it is a supported image type."""
    if not content_type:
        return DEFAULT_MIME_TYPE
    raw_mime = content_type.split(";", 1)[0].strip().lower()
    return raw_mime if raw_mime in SUPPORTED_MIME_TYPES else DEFAULT_MIME_TYPE


async def _fetch_image(url: str, settings: Settings, client: httpx.AsyncClient) -> ImageData:
    try:
        response = await client.get(
            url,
            headers={"User-Agent": settings.upstream.user_agent},
            follow_redirects=True,
        )
    except httpx.HTTPError as e:
        raise ApiError(f"Failed to fetch image: {type(e).__name__}") from e

    if not response.is_success:
        raise ApiError(
            f"Failed to fetch image: {response.status_code} {response.reason_phrase}",
            upstream_status=response.status_code,
        )

    return ImageData(
        data=response.content,
        mime_type=_trusted_mime_type(response.headers.get("content-type")),
    )


async def resolve_image(
    url: str,
    settings: Settings,
    client: httpx.AsyncClient | None = None,
) -> ImageData:
    """Resolve an image reference into bytes and a MIME type.

    ``data:image/...`` URIs are decoded locally and their declared media type
    is taken as-is. Anything else is fetched over HTTP, and the response's
    content type is only trusted if it is a supported image type.

    Args:
        url: HTTP(S) URL or data URI.
        settings: Application settings (user agent, timeouts).
        client: Optional HTTP client; a short-lived one is created if omitted.

    Returns:
        The resolved image data.

    Raises:
        ValidationError: If a data URI is not an image or has no or
            undecodable payload.
        ApiError: If the image could not be fetched.
    """
    if url.startswith(DATA_URI_IMAGE_PREFIX):
        return _decode_data_uri(url)

    if url.lower().startswith(DATA_URI_PREFIX):
        raise ValidationError(
            "Unsupported data URI, only image data is accepted",
            param="messages",
            code="invalid_image_format",
        )

    if client is not None:
        return await _fetch_image(url, settings, client)

    async with httpx.AsyncClient(timeout=settings.upstream.timeout_seconds) as own_client:
        return await _fetch_image(url, settings, own_client)


async def _post_asset(
    image: ImageData,
    api_key: str,
    settings: Settings,
    client: httpx.AsyncClient,
) -> str:
    if image.mime_type not in MIME_TO_EXT:
        logger.warning(
            f"Unsupported MIME type {image.mime_type!r}, defaulting to {DEFAULT_EXTENSION}"
        )
    filename = f"relay{uuid.uuid4().hex}{mime_to_extension(image.mime_type)}"

    try:
        response = await client.post(
            settings.upstream.asset_url,
            headers={"API-KEY": api_key},
            files={"asset": (filename, image.data, image.mime_type)},
        )
    except httpx.HTTPError as e:
        raise ApiError(f"Failed to upload image: {type(e).__name__}") from e

    if not response.is_success:
        raise ApiError(
            f"Failed to upload image: {response.status_code} "
            f"{response.reason_phrase} - {response.text}",
            upstream_status=response.status_code,
        )

    try:
        result = response.json()
    except ValueError:
        result = None

    path = None
    if isinstance(result, dict) and isinstance(result.get("fileContent"), dict):
        path = result["fileContent"].get("path")
    if not path or not isinstance(path, str):
        raise ApiError("No image path returned from asset API")

    logger.debug(f"Uploaded image as {filename}", extra={"asset_path": path})
    return path


async def upload_image(
    image: ImageData,
    api_key: str,
    settings: Settings,
    client: httpx.AsyncClient | None = None,
) -> str:
    """Upload image bytes to the asset API.

    Args:
        image: Image bytes and MIME type.
        api_key: Caller's API key, sent as ``API-KEY``.
        settings: Application settings (asset URL, timeouts).
        client: Optional HTTP client; a short-lived one is created if omitted.

    Returns:
        The asset path reported by the asset API.

    Raises:
        ApiError: On a non-2xx response or a response without ``fileContent.path``.
    """
    if client is not None:
        return await _post_asset(image, api_key, settings, client)

    async with httpx.AsyncClient(timeout=settings.upstream.timeout_seconds) as own_client:
        return await _post_asset(image, api_key, settings, own_client)
