import json
from collections.abc import AsyncIterator

from app.relay.models import EventType, RelayEvent

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_event(event: RelayEvent) -> str:
    """Serialize one relay event as an SSE frame."""
    if event.type == EventType.FRAGMENT:
        return _frame({"text": event.text})
    if event.type == EventType.QUALITY:
        return _frame({"text": "", "quality": event.quality})
    if event.type == EventType.DONE:
        return _frame({}, event="done")
    return _frame({"error": {"code": event.code, "message": event.message}}, event="error")


def _frame(data: dict[str, object], event: str | None = None) -> str:
    payload = json.dumps(data, ensure_ascii=False)
    prefix = f"event: {event}\n" if event else ""
    return f"{prefix}data: {payload}\n\n"


async def encode_events(events: AsyncIterator[RelayEvent]) -> AsyncIterator[bytes]:
    async for event in events:
        yield format_event(event).encode("utf-8")
