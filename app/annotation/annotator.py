"""Post-completion quality pass over a finished transcription.

Processing flow:
1. Deduplicate repeated lines.
2. Score the deduplicated text against known degenerate patterns.
3. Report emphasis the generation service already placed (bold means
   uncertain, italic means corrected).
4. Score the remaining prose spans and wrap those above the effective
   threshold in bold.
"""

import re

from app.annotation.dedup import deduplicate_lines
from app.annotation.features import SpanScorer
from app.annotation.models import (
    Annotation,
    AnnotationContext,
    AnnotationKind,
    AnnotationResult,
    ConfidenceThresholds,
)
from app.logging.logger import Log
from app.normalization.steps import TABLE_ROW_RE, is_table_block

_PROTECTED_RE = re.compile(
    r"(?P<math>\$\$.+?\$\$|\$[^$\n]+?\$)"
    r"|\*\*(?P<strong>[^*\n]+?)\*\*"
    r"|(?<!\*)\*(?P<em>[^*\s](?:[^*\n]*?[^*\s])?)\*(?!\*)",
    re.DOTALL,
)
_SENTENCE_RE = re.compile(r"[^.!?;\n。！？；]+[.!?;。！？；]*")

_EMPHASIS_RUN_RE = re.compile(r"\*{3,}|_{3,}")
_REPEATED_WHITESPACE_RE = re.compile(r"(?<=\S)[ \t]{2,}(?=\S)")
_MALFORMED_HEADING_RE = re.compile(r"^#{2,}", re.MULTILINE)
_ERROR_PATTERNS = (_EMPHASIS_RUN_RE, _REPEATED_WHITESPACE_RE, _MALFORMED_HEADING_RE)

_MAX_PENALTY = 0.4
_PENALTY_PER_PATTERN = 0.1


def count_error_patterns(document: str) -> int:
    prose = "\n".join(
        line for line in document.split("\n") if not TABLE_ROW_RE.match(line)
    )
    return sum(len(pattern.findall(prose)) for pattern in _ERROR_PATTERNS)


def quality_score(error_pattern_count: int) -> float:
    return round(1.0 - min(_MAX_PENALTY, _PENALTY_PER_PATTERN * error_pattern_count), 4)


class _Builder:
    """Accumulates output text and the annotations pointing into it."""

    def __init__(self) -> None:
        self.parts: list[str] = []
        self.length = 0
        self.annotations: list[Annotation] = []

    def emit(self, text: str) -> None:
        self.parts.append(text)
        self.length += len(text)

    def emit_marked(self, inner: str, marker: str, kind: AnnotationKind) -> None:
        self.emit(marker)
        self.annotations.append(
            Annotation(start=self.length, end=self.length + len(inner), kind=kind, text=inner)
        )
        self.emit(inner)
        self.emit(marker)

    def text(self) -> str:
        return "".join(self.parts)


class QualityAnnotator:
    """Flags uncertain spans, deduplicates lines and scores a finished document."""

    def __init__(
        self,
        thresholds: ConfidenceThresholds,
        scorer: SpanScorer | None = None,
    ) -> None:
        self._thresholds = thresholds
        self._scorer = scorer or SpanScorer(
            stroke_complexity_ceiling=thresholds.stroke_complexity_ceiling,
            structure_anomaly_weight=thresholds.structure_anomaly_weight,
        )

    @property
    def thresholds(self) -> ConfidenceThresholds:
        return self._thresholds

    def annotate(
        self,
        document: str,
        context: AnnotationContext | None = None,
    ) -> AnnotationResult:
        context = context or AnnotationContext()
        threshold = self._thresholds.effective(context)

        deduplicated, removed = deduplicate_lines(document)
        for line in removed:
            Log.debug(f"Dropped repeated line: {line[:80]!r}")

        error_count = count_error_patterns(deduplicated)
        score = quality_score(error_count)

        builder = _Builder()
        for index, block in enumerate(deduplicated.split("\n\n")):
            if index:
                builder.emit("\n\n")
            if is_table_block(block) or block.startswith("$$"):
                builder.emit(block)
            else:
                self._annotate_prose(block, threshold, builder)

        result = AnnotationResult(
            document=builder.text(),
            annotations=builder.annotations,
            removed_lines=removed,
            quality_score=score,
            error_pattern_count=error_count,
            threshold=threshold,
            needs_review=score < self._thresholds.min_quality_score,
        )
        uncertain = len(result.of_kind(AnnotationKind.UNCERTAIN))
        Log.info(
            f"Annotation complete: {uncertain} uncertain spans, "
            f"{len(removed)} repeated lines dropped, quality {score}"
        )
        if result.needs_review:
            Log.warning(
                f"Quality {score} is below {self._thresholds.min_quality_score}, "
                "document needs review"
            )
        return result

    def is_uncertain(self, uncertainty: float, threshold: float) -> bool:
        return uncertainty > threshold

    def _annotate_prose(self, block: str, threshold: float, builder: _Builder) -> None:
        pos = 0
        for match in _PROTECTED_RE.finditer(block):
            self._mark_spans(block[pos : match.start()], threshold, builder)
            if match.group("strong") is not None:
                builder.emit_marked(match.group("strong"), "**", AnnotationKind.UNCERTAIN)
            elif match.group("em") is not None:
                builder.emit_marked(match.group("em"), "*", AnnotationKind.CORRECTED)
            else:
                builder.emit(match.group(0))
            pos = match.end()
        self._mark_spans(block[pos:], threshold, builder)

    def _mark_spans(self, text: str, threshold: float, builder: _Builder) -> None:
        pos = 0
        for match in _SENTENCE_RE.finditer(text):
            builder.emit(text[pos : match.start()])
            pos = match.end()
            span = match.group(0)
            core = span.strip()
            if not core or "*" in core:
                builder.emit(span)
                continue
            if not self.is_uncertain(self._scorer.score(core).total, threshold):
                builder.emit(span)
                continue
            lead = span[: len(span) - len(span.lstrip())]
            trail = span[len(span.rstrip()) :]
            builder.emit(lead)
            builder.emit_marked(core, "**", AnnotationKind.UNCERTAIN)
            builder.emit(trail)
        builder.emit(text[pos:])
