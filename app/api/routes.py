from fastapi import APIRouter, Request
from starlette.responses import StreamingResponse

from app.annotation.annotator import QualityAnnotator
from app.annotation.models import AnnotationContext
from app.api.sse import SSE_HEADERS, encode_events
from app.logging.logger import Log
from app.relay.exceptions import ErrorKind, RelayError, RequestValidationError
from app.relay.models import RelayLimits, TranscriptionRequest
from app.relay.relay import StreamRelay
from app.relay.validator import validate_request

router = APIRouter(prefix="/api", tags=["recognize"])


@router.post("/recognize")
async def recognize(request: Request) -> StreamingResponse:
    """Relay one transcription as ``text/event-stream``."""
    transcription = await _read_request(request)
    relay = _relay(request)
    session = await relay.open(transcription)
    return StreamingResponse(
        encode_events(relay.events(session, request.is_disconnected)),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/recognize/sync")
async def recognize_sync(request: Request) -> dict[str, object]:
    """Collect the whole transcription, then normalize and annotate it."""
    transcription = await _read_request(request)
    relay = _relay(request)
    annotator: QualityAnnotator = request.app.state.annotator
    raw = await relay.collect(transcription)
    normalized = request.app.state.normalizer.normalize(raw, final=True)
    result = annotator.annotate(normalized, AnnotationContext.from_domain(transcription.domain))
    return {
        "text": result.document,
        "quality": result.quality_score,
        "needsReview": result.needs_review,
        "annotations": [
            {"start": a.start, "end": a.end, "kind": a.kind.value, "text": a.text}
            for a in result.annotations
        ],
    }


@router.get("/health")
async def health(request: Request) -> dict[str, object]:
    relay: StreamRelay | None = request.app.state.relay
    return {"status": "ok", "configured": relay is not None}


async def _read_request(request: Request) -> TranscriptionRequest:
    limits: RelayLimits = request.app.state.limits
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limits.max_payload_bytes:
        raise RequestValidationError(
            f"Declared payload of {declared} bytes exceeds {limits.max_payload_bytes}",
            kind=ErrorKind.PAYLOAD_TOO_LARGE,
        )
    transcription = validate_request(await request.body(), limits)
    Log.debug(f"Accepted {transcription.mime_type} request, domain={transcription.domain}")
    return transcription


def _relay(request: Request) -> StreamRelay:
    relay: StreamRelay | None = request.app.state.relay
    if relay is None:
        error = request.app.state.relay_error
        raise RelayError(str(error), kind=error.kind)
    return relay
