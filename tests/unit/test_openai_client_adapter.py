"""Tests for OpenAIClientAdapter streaming and error wrapping."""

from collections.abc import AsyncIterator
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from app.relay.exceptions import ErrorKind, UpstreamError
from app.relay.openai_client_adapter import OpenAIClientAdapter

_REQUEST = httpx.Request("POST", "https://api.example.test/v1/chat/completions")


def _chunk(content: str | None) -> MagicMock:
    choice = MagicMock()
    choice.delta.content = content
    chunk = MagicMock()
    chunk.choices = [choice]
    return chunk


class FakeStream:
    def __init__(self, chunks: list[MagicMock], error: Exception | None = None) -> None:
        self._chunks = chunks
        self._error = error
        self.closed = False

    def __aiter__(self) -> AsyncIterator[MagicMock]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[MagicMock]:
        for chunk in self._chunks:
            yield chunk
        if self._error is not None:
            raise self._error

    async def close(self) -> None:
        self.closed = True


def _adapter(create: AsyncMock) -> tuple[OpenAIClientAdapter, MagicMock]:
    mock_client = MagicMock()
    mock_client.chat.completions.create = create
    with patch(
        "app.relay.openai_client_adapter.openai.AsyncOpenAI",
        return_value=mock_client,
    ) as mock_cls:
        adapter = OpenAIClientAdapter(api_key="k", timeout_seconds=30, base_url=None)
    return adapter, mock_cls


async def _open(adapter: OpenAIClientAdapter) -> AsyncIterator[str]:
    return await adapter.open_stream(
        model="m",
        temperature=1.0,
        max_tokens=100,
        prompt="transcribe",
        image_data_url="data:image/png;base64,aGk=",
    )


class TestOpenAIClientAdapter:
    @pytest.mark.asyncio
    async def test_yields_delta_content(self) -> None:
        stream = FakeStream([_chunk("Hel"), _chunk(None), _chunk("lo")])
        adapter, _ = _adapter(AsyncMock(return_value=stream))
        fragments = [f async for f in await _open(adapter)]
        assert fragments == ["Hel", "lo"]
        assert stream.closed

    @pytest.mark.asyncio
    async def test_skips_chunks_without_choices(self) -> None:
        empty = MagicMock()
        empty.choices = []
        adapter, _ = _adapter(AsyncMock(return_value=FakeStream([empty, _chunk("x")])))
        assert [f async for f in await _open(adapter)] == ["x"]

    @pytest.mark.asyncio
    async def test_sends_image_as_data_url_and_streams(self) -> None:
        create = AsyncMock(return_value=FakeStream([]))
        adapter, _ = _adapter(create)
        await _open(adapter)
        kwargs = create.call_args.kwargs
        assert kwargs["stream"] is True
        assert kwargs["max_tokens"] == 100
        content = kwargs["messages"][0]["content"]
        assert content[0] == {"type": "text", "text": "transcribe"}
        assert content[1]["image_url"]["url"] == "data:image/png;base64,aGk="

    def test_client_configured_with_timeout(self) -> None:
        _, mock_cls = _adapter(AsyncMock())
        mock_cls.assert_called_once_with(api_key="k", timeout=30, base_url=None)

    @pytest.mark.asyncio
    async def test_connection_error_is_network(self) -> None:
        adapter, _ = _adapter(AsyncMock(side_effect=openai.APIConnectionError(request=_REQUEST)))
        with pytest.raises(UpstreamError, match="network error") as exc_info:
            await _open(adapter)
        assert exc_info.value.kind is ErrorKind.NETWORK

    @pytest.mark.asyncio
    async def test_timeout_is_timeout(self) -> None:
        adapter, _ = _adapter(AsyncMock(side_effect=openai.APITimeoutError(request=_REQUEST)))
        with pytest.raises(UpstreamError) as exc_info:
            await _open(adapter)
        assert exc_info.value.kind is ErrorKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_authentication_error_is_configuration(self) -> None:
        error = openai.AuthenticationError(
            "bad key", response=httpx.Response(401, request=_REQUEST), body=None
        )
        adapter, _ = _adapter(AsyncMock(side_effect=error))
        with pytest.raises(UpstreamError) as exc_info:
            await _open(adapter)
        assert exc_info.value.kind is ErrorKind.CONFIGURATION

    @pytest.mark.asyncio
    async def test_rate_limit_is_quota(self) -> None:
        error = openai.RateLimitError(
            "slow down", response=httpx.Response(429, request=_REQUEST), body=None
        )
        adapter, _ = _adapter(AsyncMock(side_effect=error))
        with pytest.raises(UpstreamError) as exc_info:
            await _open(adapter)
        assert exc_info.value.kind is ErrorKind.QUOTA

    @pytest.mark.asyncio
    async def test_generic_api_error_keeps_provider_message(self) -> None:
        error = openai.APIError(message="Invalid image data", request=_REQUEST, body=None)
        adapter, _ = _adapter(AsyncMock(side_effect=error))
        with pytest.raises(UpstreamError, match="Invalid image data") as exc_info:
            await _open(adapter)
        assert exc_info.value.kind is ErrorKind.UNKNOWN

    @pytest.mark.asyncio
    async def test_error_during_stream_is_wrapped(self) -> None:
        stream = FakeStream([_chunk("a")], error=httpx.ReadError("reset"))
        adapter, _ = _adapter(AsyncMock(return_value=stream))
        fragments = await _open(adapter)
        assert await anext(fragments) == "a"
        with pytest.raises(UpstreamError) as exc_info:
            await anext(fragments)
        assert exc_info.value.kind is ErrorKind.NETWORK
        assert stream.closed
