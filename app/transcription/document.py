from dataclasses import dataclass, field
from enum import Enum

from app.annotation.models import Annotation, AnnotationResult
from app.editor.export import to_plain_text
from app.editor.parser import parse
from app.editor.render import render_html
from app.normalization.base import BaseNormalizer
from app.normalization.buffer import Fragment, IncrementBuffer
from app.transcription.exceptions import InvalidStateError

FAILURE_MESSAGE = "transcription failed, please retry"


class DocumentState(str, Enum):
    STREAMING = "streaming"
    RENDERED = "rendered"
    EDITING = "editing"


@dataclass
class TranscriptionDocument:
    """The canonical text of one image and everything derived from it.

    ``text`` is written by the normalizer while streaming and by the editor
    while editing, never by both.
    """

    image_id: str
    normalizer: BaseNormalizer
    text: str = ""
    state: DocumentState = DocumentState.RENDERED
    annotations: list[Annotation] = field(default_factory=list)
    quality_score: float | None = None
    needs_review: bool = False
    error: str | None = None
    buffer: IncrementBuffer = field(init=False)

    def __post_init__(self) -> None:
        self.buffer = IncrementBuffer(normalizer=self.normalizer)

    def start_streaming(self) -> None:
        if self.state == DocumentState.EDITING:
            raise InvalidStateError(f"Document {self.image_id} is being edited")
        self.buffer = IncrementBuffer(normalizer=self.normalizer)
        self.text = ""
        self.annotations = []
        self.quality_score = None
        self.needs_review = False
        self.error = None
        self.state = DocumentState.STREAMING

    def apply_fragment(self, text: str) -> Fragment:
        if self.state != DocumentState.STREAMING:
            raise InvalidStateError(f"Document {self.image_id} is not streaming")
        fragment = self.buffer.append(text)
        self.text = self.buffer.normalized
        return fragment

    def complete(self, result: AnnotationResult) -> None:
        if self.state != DocumentState.STREAMING:
            raise InvalidStateError(f"Document {self.image_id} is not streaming")
        self.text = result.document
        self.annotations = list(result.annotations)
        self.quality_score = result.quality_score
        self.needs_review = result.needs_review
        self.state = DocumentState.RENDERED

    def fail(self, message: str = FAILURE_MESSAGE) -> None:
        """Keep whatever text arrived and record a readable error."""
        self.error = message
        self.state = DocumentState.RENDERED

    @property
    def failed(self) -> bool:
        return self.error is not None

    def render(self) -> str:
        """HTML for the read-only view, in any state but editing."""
        if self.state == DocumentState.EDITING:
            raise InvalidStateError(f"Document {self.image_id} is being edited")
        return render_html(parse(self.text))

    def copy_text(self) -> str:
        """Plain text for the copy action; tables and markup are dropped."""
        return to_plain_text(self.text)
