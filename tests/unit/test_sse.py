"""Tests for server-sent event encoding."""

import json
from collections.abc import AsyncIterator

import pytest

from app.api.sse import SSE_HEADERS, encode_events, format_event
from app.relay.models import RelayEvent


class TestFormatEvent:
    def test_fragment(self) -> None:
        frame = format_event(RelayEvent.fragment("Héllo"))
        assert frame == 'data: {"text": "Héllo"}\n\n'

    def test_quality(self) -> None:
        frame = format_event(RelayEvent.quality_score(0.85))
        payload = json.loads(frame.removeprefix("data: "))
        assert payload == {"text": "", "quality": 0.85}

    def test_done(self) -> None:
        assert format_event(RelayEvent.done()) == "event: done\ndata: {}\n\n"

    def test_error(self) -> None:
        frame = format_event(RelayEvent.error("timeout", "too slow"))
        event_line, data_line, *_ = frame.split("\n")
        assert event_line == "event: error"
        assert json.loads(data_line.removeprefix("data: ")) == {
            "error": {"code": "timeout", "message": "too slow"}
        }

    def test_every_frame_ends_with_blank_line(self) -> None:
        assert format_event(RelayEvent.fragment("a\nb")).endswith("\n\n")
        assert "\n" not in format_event(RelayEvent.fragment("a\nb"))[:-2]


class TestEncodeEvents:
    @pytest.mark.asyncio
    async def test_encodes_utf8(self) -> None:
        async def events() -> AsyncIterator[RelayEvent]:
            yield RelayEvent.fragment("é")
            yield RelayEvent.done()

        frames = [frame async for frame in encode_events(events())]
        assert frames[0] == 'data: {"text": "é"}\n\n'.encode("utf-8")
        assert frames[1] == b"event: done\ndata: {}\n\n"

    def test_headers_disable_buffering(self) -> None:
        assert SSE_HEADERS["Cache-Control"].startswith("no-cache")
        assert SSE_HEADERS["X-Accel-Buffering"] == "no"
