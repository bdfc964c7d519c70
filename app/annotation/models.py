from dataclasses import dataclass, field
from enum import Enum

from app.config.settings import Settings


class AnnotationKind(str, Enum):
    UNCERTAIN = "uncertain"
    CORRECTED = "corrected"


@dataclass(frozen=True)
class Annotation:
    """A marked span of the final document.

    ``start``/``end`` index the span content inside the annotated document,
    excluding the emphasis markers around it.
    """

    start: int
    end: int
    kind: AnnotationKind
    text: str


@dataclass(frozen=True)
class AnnotationContext:
    """What is known about the source image of the document."""

    low_quality: bool = False
    handwritten: bool = False

    @classmethod
    def from_domain(cls, domain: str | None, low_quality: bool = False) -> "AnnotationContext":
        return cls(
            low_quality=low_quality,
            handwritten=(domain or "").strip().lower() == "handwritten",
        )


@dataclass(frozen=True)
class ConfidenceThresholds:
    """Immutable scoring configuration derived from settings at startup."""

    printed: float = 0.8
    handwritten: float = 0.7
    dynamic_enabled: bool = True
    base: float = 0.6
    image_quality_factor: float = 0.3
    content_type_factor: float = 0.2
    stroke_complexity_ceiling: float = 4.0
    structure_anomaly_weight: float = 0.5
    min_quality_score: float = 0.7

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConfidenceThresholds":
        return cls(
            printed=settings.confidence_threshold_printed,
            handwritten=settings.confidence_threshold_handwritten,
            dynamic_enabled=settings.dynamic_threshold_enabled,
            base=settings.dynamic_threshold_base,
            image_quality_factor=settings.image_quality_factor,
            content_type_factor=settings.content_type_factor,
            stroke_complexity_ceiling=settings.stroke_complexity_ceiling,
            structure_anomaly_weight=settings.structure_anomaly_weight,
            min_quality_score=settings.min_quality_score,
        )

    def effective(self, context: AnnotationContext) -> float:
        """Threshold a span's uncertainty score must exceed to be marked."""
        if not self.dynamic_enabled:
            return self.handwritten if context.handwritten else self.printed
        return (
            self.base
            + self.image_quality_factor * float(context.low_quality)
            + self.content_type_factor * float(context.handwritten)
        )


@dataclass(frozen=True)
class SpanScore:
    """Heuristic uncertainty features of one prose span."""

    rare: float = 0.0
    complexity: float = 0.0
    anomaly: float = 0.0

    @property
    def total(self) -> float:
        return self.rare + self.complexity + self.anomaly


@dataclass
class AnnotationResult:
    """Output of the post-completion annotation pass."""

    document: str
    annotations: list[Annotation] = field(default_factory=list)
    removed_lines: list[str] = field(default_factory=list)
    quality_score: float = 1.0
    error_pattern_count: int = 0
    threshold: float = 0.0
    needs_review: bool = False

    def of_kind(self, kind: AnnotationKind) -> list[Annotation]:
        return [a for a in self.annotations if a.kind == kind]
