import time
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from enum import Enum

from app.config.settings import Settings


@dataclass(frozen=True)
class TranscriptionRequest:
    """A validated recognition request; ``image_data`` is bare base64."""

    image_data: str
    mime_type: str
    domain: str | None = None

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.image_data}"


@dataclass(frozen=True)
class RelayLimits:
    """Immutable relay configuration derived from settings at startup."""

    request_timeout_seconds: float = 60.0
    read_timeout_seconds: float = 30.0
    max_payload_bytes: int = 10 * 1024 * 1024
    accepted_mime_types: frozenset[str] = frozenset(
        {"image/png", "image/jpeg", "image/webp", "image/gif"}
    )
    emit_quality: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "RelayLimits":
        return cls(
            request_timeout_seconds=settings.request_timeout_seconds,
            read_timeout_seconds=settings.read_timeout_seconds,
            max_payload_bytes=settings.max_payload_bytes,
            accepted_mime_types=frozenset(m.lower() for m in settings.accepted_mime_types),
            emit_quality=settings.emit_quality,
        )


@dataclass
class StreamSession:
    """State of one relay invocation; never shared between requests."""

    request: TranscriptionRequest
    fragments: AsyncIterator[str]
    deadline: float
    raw: str = ""
    fragment_count: int = 0
    cancelled: bool = False
    started_at: float = field(default_factory=time.monotonic)

    def remaining(self) -> float:
        return self.deadline - time.monotonic()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at


class EventType(str, Enum):
    FRAGMENT = "fragment"
    QUALITY = "quality"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class RelayEvent:
    """One event forwarded to the client."""

    type: EventType
    text: str = ""
    quality: float | None = None
    code: str | None = None
    message: str | None = None

    @classmethod
    def fragment(cls, text: str) -> "RelayEvent":
        return cls(type=EventType.FRAGMENT, text=text)

    @classmethod
    def quality_score(cls, score: float) -> "RelayEvent":
        return cls(type=EventType.QUALITY, quality=score)

    @classmethod
    def done(cls) -> "RelayEvent":
        return cls(type=EventType.DONE)

    @classmethod
    def error(cls, code: str, message: str) -> "RelayEvent":
        return cls(type=EventType.ERROR, code=code, message=message)
