"""Validates a raw recognition request body before any upstream call."""

import base64
import binascii
import json
import re
from typing import Any

from app.relay.exceptions import ErrorKind, RequestValidationError
from app.relay.models import RelayLimits, TranscriptionRequest

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,", re.IGNORECASE)


def validate_request(body: bytes, limits: RelayLimits) -> TranscriptionRequest:
    """Check size, shape, encoding and media type, in that order.

    Raises:
        RequestValidationError: with kind PAYLOAD_TOO_LARGE, INVALID_REQUEST
            or UNSUPPORTED_MEDIA_TYPE.
    """
    if len(body) > limits.max_payload_bytes:
        raise RequestValidationError(
            f"Payload of {len(body)} bytes exceeds {limits.max_payload_bytes}",
            kind=ErrorKind.PAYLOAD_TOO_LARGE,
        )
    data = _parse_json(body)
    image_data = _require_string(data, "imageData")
    mime_type = _require_string(data, "mimeType").strip().lower()
    domain = _optional_string(data, "domain")
    image_data = _strip_data_url(image_data)
    _require_base64(image_data)
    if mime_type not in limits.accepted_mime_types:
        raise RequestValidationError(
            f"Media type {mime_type!r} is not accepted",
            kind=ErrorKind.UNSUPPORTED_MEDIA_TYPE,
        )
    return TranscriptionRequest(image_data=image_data, mime_type=mime_type, domain=domain)


def _parse_json(body: bytes) -> dict[str, Any]:
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise RequestValidationError(f"Body is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise RequestValidationError("Body must be a JSON object")
    return data


def _require_string(data: dict[str, Any], field: str) -> str:
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        raise RequestValidationError(f"'{field}' must be a non-empty string")
    return value


def _optional_string(data: dict[str, Any], field: str) -> str | None:
    value = data.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise RequestValidationError(f"'{field}' must be a string")
    return value.strip() or None


def _strip_data_url(image_data: str) -> str:
    match = _DATA_URL_RE.match(image_data)
    if match is None:
        return image_data.strip()
    return image_data[match.end() :].strip()


def _require_base64(image_data: str) -> None:
    if not image_data:
        raise RequestValidationError("'imageData' is empty")
    try:
        base64.b64decode(image_data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise RequestValidationError(f"'imageData' is not valid base64: {exc}") from exc
