"""Tests for request validation before any upstream call."""

import json

import pytest

from app.relay.exceptions import ErrorKind, RequestValidationError
from app.relay.models import RelayLimits
from app.relay.validator import validate_request

LIMITS = RelayLimits(max_payload_bytes=1024)


def _body(**fields: object) -> bytes:
    return json.dumps(fields).encode("utf-8")


class TestValidRequests:
    def test_builds_request(self, png_base64: str) -> None:
        request = validate_request(_body(imageData=png_base64, mimeType="image/png"), LIMITS)
        assert request.image_data == png_base64
        assert request.mime_type == "image/png"
        assert request.domain is None

    def test_strips_data_url_prefix(self, png_base64: str) -> None:
        body = _body(imageData=f"data:image/png;base64,{png_base64}", mimeType="image/png")
        assert validate_request(body, LIMITS).image_data == png_base64

    def test_mime_type_is_case_insensitive(self, png_base64: str) -> None:
        body = _body(imageData=png_base64, mimeType="IMAGE/PNG", domain="handwritten")
        request = validate_request(body, LIMITS)
        assert request.mime_type == "image/png"
        assert request.domain == "handwritten"
        assert request.data_url.startswith("data:image/png;base64,")


class TestRejectedRequests:
    def test_payload_too_large(self, png_base64: str) -> None:
        body = _body(imageData=png_base64 * 100, mimeType="image/png")
        with pytest.raises(RequestValidationError) as exc_info:
            validate_request(body, LIMITS)
        assert exc_info.value.kind is ErrorKind.PAYLOAD_TOO_LARGE

    @pytest.mark.parametrize(
        "body",
        [
            b"not json",
            b"[1, 2]",
            json.dumps({"mimeType": "image/png"}).encode(),
            json.dumps({"imageData": "", "mimeType": "image/png"}).encode(),
            json.dumps({"imageData": "aGk=", "mimeType": ""}).encode(),
            json.dumps({"imageData": "not base64!", "mimeType": "image/png"}).encode(),
            json.dumps({"imageData": "aGk=", "mimeType": "image/png", "domain": 3}).encode(),
        ],
    )
    def test_invalid_request(self, body: bytes) -> None:
        with pytest.raises(RequestValidationError) as exc_info:
            validate_request(body, LIMITS)
        assert exc_info.value.kind is ErrorKind.INVALID_REQUEST

    def test_unsupported_media_type(self, png_base64: str) -> None:
        with pytest.raises(RequestValidationError) as exc_info:
            validate_request(_body(imageData=png_base64, mimeType="image/bmp"), LIMITS)
        assert exc_info.value.kind is ErrorKind.UNSUPPORTED_MEDIA_TYPE

    def test_invalid_fields_reported_before_media_type(self) -> None:
        with pytest.raises(RequestValidationError) as exc_info:
            validate_request(_body(imageData="???", mimeType="image/bmp"), LIMITS)
        assert exc_info.value.kind is ErrorKind.INVALID_REQUEST
