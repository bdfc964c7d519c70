"""Per-image documents with a single mounted editor."""

from app.editor.session import EditorSession
from app.logging.logger import Log
from app.transcription.document import DocumentState, TranscriptionDocument
from app.transcription.exceptions import InvalidStateError, UnknownDocumentError


class Workspace:
    """Holds one document per image; at most one of them is being edited.

    Leaving a document that is being edited (navigation or discard) first
    serializes the editor tree into the document, then unmounts the editor.
    """

    def __init__(self) -> None:
        self._documents: dict[str, TranscriptionDocument] = {}
        self._active_id: str | None = None
        self._editor: EditorSession | None = None

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, image_id: object) -> bool:
        return image_id in self._documents

    @property
    def image_ids(self) -> list[str]:
        return list(self._documents)

    @property
    def active(self) -> TranscriptionDocument | None:
        if self._active_id is None:
            return None
        return self._documents[self._active_id]

    @property
    def editor(self) -> EditorSession | None:
        return self._editor

    def get(self, image_id: str) -> TranscriptionDocument:
        try:
            return self._documents[image_id]
        except KeyError as exc:
            raise UnknownDocumentError(f"No document for image {image_id}") from exc

    def add(self, document: TranscriptionDocument) -> None:
        if document.image_id in self._documents:
            raise InvalidStateError(f"Document {document.image_id} already exists")
        self._documents[document.image_id] = document
        if self._active_id is None:
            self._active_id = document.image_id

    def select(self, image_id: str) -> TranscriptionDocument:
        """Navigate to another document; it shows its stored text, not editing."""
        document = self.get(image_id)
        if image_id == self._active_id:
            return document
        self._leave_editing()
        self._active_id = image_id
        return document

    def begin_editing(self) -> EditorSession:
        document = self.active
        if document is None:
            raise InvalidStateError("No document selected")
        if document.state == DocumentState.EDITING and self._editor is not None:
            return self._editor
        if document.state == DocumentState.STREAMING:
            raise InvalidStateError(f"Document {document.image_id} is still streaming")
        self._editor = EditorSession(document.text)
        document.state = DocumentState.EDITING
        Log.debug(f"Editor mounted for {document.image_id}")
        return self._editor

    def record_input(self) -> str:
        """Store the editor's serialization as the active document's text."""
        document = self.active
        if self._editor is None or document is None:
            raise InvalidStateError("No editor is mounted")
        document.text = self._editor.on_input()
        return document.text

    def finish_editing(self) -> None:
        self._leave_editing()

    def discard(self, image_id: str) -> TranscriptionDocument:
        document = self.get(image_id)
        if image_id == self._active_id:
            self._leave_editing()
            remaining = [key for key in self._documents if key != image_id]
            self._active_id = remaining[0] if remaining else None
        del self._documents[image_id]
        Log.info(f"Discarded document {image_id}")
        return document

    def _leave_editing(self) -> None:
        document = self.active
        if self._editor is None or document is None:
            return
        document.text = self._editor.on_input()
        document.state = DocumentState.RENDERED
        self._editor = None
        Log.debug(f"Editor unmounted for {document.image_id}")
