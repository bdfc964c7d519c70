"""Forwards one generation call to the client as a bounded event stream."""

import asyncio
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TypeVar

from app.annotation.annotator import count_error_patterns, quality_score
from app.logging.logger import Log
from app.normalization.base import BaseNormalizer
from app.normalization.normalizer import IncrementalNormalizer
from app.relay.client_base import BaseGenerationClient
from app.relay.exceptions import ErrorKind, RelayTimeoutError, as_relay_error
from app.relay.models import RelayEvent, RelayLimits, StreamSession, TranscriptionRequest
from app.relay.prompt_loader import build_prompt, load_prompt_template

T = TypeVar("T")

DisconnectCheck = Callable[[], Awaitable[bool]]


async def race_deadline(awaitable: Awaitable[T], timeout: float, label: str) -> T:
    """Await ``awaitable`` unless ``timeout`` elapses first.

    Whichever settles first wins and the other is cancelled. A work item that
    fails before the deadline re-raises its own error.
    """
    if timeout <= 0:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise RelayTimeoutError(f"{label} exceeded its deadline")
    work = asyncio.ensure_future(awaitable)
    timer = asyncio.ensure_future(asyncio.sleep(timeout))
    try:
        await asyncio.wait({work, timer}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        timer.cancel()
        if not work.done():
            work.cancel()
            await asyncio.gather(work, return_exceptions=True)
    if work.cancelled():
        raise RelayTimeoutError(f"{label} did not settle within {timeout:.1f}s")
    return work.result()


class StreamRelay:
    """Opens exactly one generation call per request and relays its fragments."""

    def __init__(
        self,
        *,
        client: BaseGenerationClient,
        model: str,
        temperature: float = 1.0,
        max_tokens: int = 8192,
        limits: RelayLimits | None = None,
        normalizer: BaseNormalizer | None = None,
        prompt_template: str | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._limits = limits or RelayLimits()
        self._normalizer = normalizer or IncrementalNormalizer()
        self._prompt_template = (
            prompt_template if prompt_template is not None else load_prompt_template()
        )

    @property
    def limits(self) -> RelayLimits:
        return self._limits

    @property
    def model(self) -> str:
        return self._model

    async def open(self, request: TranscriptionRequest) -> StreamSession:
        """Start the generation call; failures here happen before any output."""
        deadline = time.monotonic() + self._limits.request_timeout_seconds
        Log.info(f"Opening generation call: model={self._model}, mime={request.mime_type}")
        try:
            fragments = await race_deadline(
                self._client.open_stream(
                    model=self._model,
                    temperature=self._temperature,
                    max_tokens=self._max_tokens,
                    prompt=build_prompt(self._prompt_template, request.domain),
                    image_data_url=request.data_url,
                ),
                deadline - time.monotonic(),
                "generation call",
            )
        except Exception as exc:
            error = as_relay_error(exc)
            if error is exc or error.kind is ErrorKind.UNKNOWN:
                raise
            raise error from exc
        return StreamSession(request=request, fragments=fragments, deadline=deadline)

    async def events(
        self,
        session: StreamSession,
        is_disconnected: DisconnectCheck | None = None,
    ) -> AsyncIterator[RelayEvent]:
        """Relay events of an open session.

        After the first event has been produced a failure can only be reported
        in-band, so it becomes a final error event.
        """
        try:
            async for text in self._read(session, is_disconnected):
                yield RelayEvent.fragment(text)
            if session.cancelled:
                return
            if self._limits.emit_quality:
                yield RelayEvent.quality_score(self.quality_of(session.raw))
            yield RelayEvent.done()
            Log.info(
                f"Relayed {session.fragment_count} fragments in {session.elapsed:.2f}s"
            )
        except Exception as exc:
            error = as_relay_error(exc)
            Log.error(f"Relay failed after {session.fragment_count} fragments: {error}")
            yield RelayEvent.error(error.kind.code, error.kind.message)

    async def collect(self, request: TranscriptionRequest) -> str:
        """Run a whole generation call and return its raw text."""
        session = await self.open(request)
        try:
            async for _ in self._read(session, None):
                pass
        except Exception as exc:
            error = as_relay_error(exc)
            if error is exc or error.kind is ErrorKind.UNKNOWN:
                raise
            raise error from exc
        return session.raw

    def quality_of(self, raw: str) -> float:
        normalized = self._normalizer.normalize(raw, final=True)
        return quality_score(count_error_patterns(normalized))

    async def _read(
        self,
        session: StreamSession,
        is_disconnected: DisconnectCheck | None,
    ) -> AsyncIterator[str]:
        try:
            while True:
                if is_disconnected is not None and await is_disconnected():
                    session.cancelled = True
                    Log.info(
                        f"Client disconnected after {session.fragment_count} fragments"
                    )
                    return
                timeout = min(self._limits.read_timeout_seconds, session.remaining())
                try:
                    text = await race_deadline(
                        anext(session.fragments), timeout, "generation read"
                    )
                except StopAsyncIteration:
                    return
                session.raw += text
                session.fragment_count += 1
                yield text
        finally:
            await self._close_upstream(session)

    @staticmethod
    async def _close_upstream(session: StreamSession) -> None:
        aclose = getattr(session.fragments, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception as exc:
            Log.warning(f"Closing the generation stream failed: {exc}")
