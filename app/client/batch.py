from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from app.annotation.models import AnnotationContext
from app.client.relay_client import RelayClient
from app.transcription.document import TranscriptionDocument
from app.transcription.runner import TranscriptionRunner
from app.transcription.scheduler import DEFAULT_POOL_SIZE, BoundedScheduler, JobOutcome


@dataclass(frozen=True)
class ImageJob:
    document: TranscriptionDocument
    image: bytes
    mime_type: str
    domain: str | None = None


async def transcribe_batch(
    client: RelayClient,
    runner: TranscriptionRunner,
    jobs: list[ImageJob],
    limit: int = DEFAULT_POOL_SIZE,
) -> list[JobOutcome[TranscriptionDocument]]:
    """Transcribe several images with at most ``limit`` relay calls in flight."""
    scheduler = BoundedScheduler(limit)

    def make(job: ImageJob) -> Callable[[], Awaitable[TranscriptionDocument]]:
        async def run() -> TranscriptionDocument:
            return await runner.run(
                job.document,
                client.fragments(job.image, job.mime_type, job.domain),
                AnnotationContext.from_domain(job.domain),
            )

        return run

    return await scheduler.run_all(make(job) for job in jobs)
