from dataclasses import dataclass, field

from app.normalization.base import BaseNormalizer


@dataclass(frozen=True)
class Fragment:
    """One chunk of raw text as delivered by the generation service."""

    index: int
    text: str


@dataclass
class IncrementBuffer:
    """Append-only raw text for one document plus its normalized view."""

    normalizer: BaseNormalizer
    fragments: list[Fragment] = field(default_factory=list)
    raw: str = ""
    normalized: str = ""

    def append(self, text: str) -> Fragment:
        """Record the next fragment and re-normalize the whole raw buffer."""
        fragment = Fragment(index=len(self.fragments), text=text)
        self.fragments.append(fragment)
        self.raw += text
        self.normalized = self.normalizer.normalize(self.raw)
        return fragment

    def finish(self) -> str:
        """Normalize once more now that no fragment is left to close a span."""
        self.normalized = self.normalizer.normalize(self.raw, final=True)
        return self.normalized

    def __len__(self) -> int:
        return len(self.fragments)
