from app.annotation.annotator import QualityAnnotator
from app.annotation.models import (
    Annotation,
    AnnotationContext,
    AnnotationKind,
    AnnotationResult,
    ConfidenceThresholds,
)

__all__ = [
    "Annotation",
    "AnnotationContext",
    "AnnotationKind",
    "AnnotationResult",
    "ConfidenceThresholds",
    "QualityAnnotator",
]
