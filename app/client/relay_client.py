"""HTTP client for the relay's event stream."""

import base64
import json
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

import httpx

from app.client.exceptions import IncompleteStreamError, RelayClientError
from app.logging.logger import Log


@dataclass(frozen=True)
class RelayFrame:
    """One data frame of the stream: a text fragment or the quality score."""

    text: str = ""
    quality: float | None = None


class RelayClient:
    """Posts images to the relay and yields what comes back."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 90.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "RelayClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def stream(
        self, image: bytes, mime_type: str, domain: str | None = None
    ) -> AsyncIterator[RelayFrame]:
        """Yield frames until ``done``; error frames and truncation raise."""
        payload = _payload(image, mime_type, domain)
        async with self._client.stream("POST", "/api/recognize", json=payload) as response:
            if response.status_code != 200:
                await response.aread()
                raise _error_from_response(response)
            async for event, data in _iter_sse(response.aiter_lines()):
                if event == "done":
                    return
                if event == "error":
                    error = data.get("error") or {}
                    raise RelayClientError(
                        error.get("message", "stream failed"),
                        code=error.get("code", "internal_error"),
                    )
                yield RelayFrame(text=data.get("text") or "", quality=data.get("quality"))
        raise IncompleteStreamError("Stream closed before completion", code="incomplete_stream")

    async def fragments(
        self, image: bytes, mime_type: str, domain: str | None = None
    ) -> AsyncIterator[str]:
        async for frame in self.stream(image, mime_type, domain):
            if frame.text:
                yield frame.text

    async def recognize_sync(
        self, image: bytes, mime_type: str, domain: str | None = None
    ) -> dict[str, Any]:
        response = await self._client.post(
            "/api/recognize/sync", json=_payload(image, mime_type, domain)
        )
        if response.status_code != 200:
            raise _error_from_response(response)
        return response.json()


def _payload(image: bytes, mime_type: str, domain: str | None) -> dict[str, str]:
    payload = {
        "imageData": base64.b64encode(image).decode("ascii"),
        "mimeType": mime_type,
    }
    if domain:
        payload["domain"] = domain
    return payload


def _error_from_response(response: httpx.Response) -> RelayClientError:
    try:
        error = response.json().get("error") or {}
    except (json.JSONDecodeError, AttributeError):
        error = {}
    message = error.get("message") or f"Relay answered {response.status_code}"
    Log.warning(f"Relay request failed with {response.status_code}: {message}")
    return RelayClientError(
        message,
        code=error.get("code", "internal_error"),
        status=response.status_code,
    )


async def _iter_sse(lines: AsyncIterator[str]) -> AsyncIterator[tuple[str, dict[str, Any]]]:
    """Group SSE lines into ``(event, data)`` pairs; the default event is ``message``."""
    event = "message"
    data_lines: list[str] = []
    async for line in lines:
        if not line:
            if data_lines:
                yield event, json.loads("\n".join(data_lines))
            event, data_lines = "message", []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        value = value[1:] if value.startswith(" ") else value
        if field == "event":
            event = value
        elif field == "data":
            data_lines.append(value)
    if data_lines:
        yield event, json.loads("\n".join(data_lines))
