from collections.abc import AsyncIterable

from app.annotation.annotator import QualityAnnotator
from app.annotation.models import AnnotationContext
from app.logging.logger import Log
from app.transcription.document import TranscriptionDocument


class TranscriptionRunner:
    """Drive one document from a fragment source to its annotated final text."""

    def __init__(self, annotator: QualityAnnotator) -> None:
        self._annotator = annotator

    async def run(
        self,
        document: TranscriptionDocument,
        fragments: AsyncIterable[str],
        context: AnnotationContext | None = None,
    ) -> TranscriptionDocument:
        Log.info(f"Transcribing {document.image_id}")
        document.start_streaming()
        try:
            async for text in fragments:
                document.apply_fragment(text)
            result = self._annotator.annotate(document.buffer.finish(), context)
        except Exception as exc:
            Log.error(f"Transcription of {document.image_id} failed: {exc}")
            document.fail()
            return document
        document.complete(result)
        Log.info(
            f"Transcribed {document.image_id}: {len(document.buffer)} fragments, "
            f"quality {result.quality_score}"
        )
        return document
