"""Incremental normalizer for partially-arrived transcription text."""

from collections.abc import Sequence

from app.logging.logger import Log
from app.normalization.base import BaseNormalizer
from app.normalization.exceptions import EmptyPipelineError
from app.normalization.pipeline import NormalizationContext, NormalizationStep
from app.normalization.steps import default_steps, strip_placeholders


class IncrementalNormalizer(BaseNormalizer):
    """Runs the ordered repair pipeline over the full raw buffer.

    The pipeline always starts from the raw buffer, never from a previous
    normalized view, because repairs such as closing a table need lookback.
    """

    def __init__(self, steps: Sequence[NormalizationStep] | None = None) -> None:
        self._steps = list(steps) if steps is not None else default_steps()
        if not self._steps:
            raise EmptyPipelineError("Normalizer needs at least one step")

    @property
    def step_names(self) -> list[str]:
        return [step.name for step in self._steps]

    def normalize(self, raw: str, final: bool = False) -> str:
        return self.run(raw, final).text

    def run(self, raw: str, final: bool = False) -> NormalizationContext:
        """Normalize ``raw`` and keep the sealed tables and formulas."""
        context = NormalizationContext(text=self._prepare(raw), final=final)
        if not raw:
            return context
        for step in self._steps:
            context = step.run(context)
        Log.debug(
            f"Normalized {len(raw)} raw chars into {len(context.text)} chars "
            f"({len(context.tables)} tables, {len(context.formulas)} formulas, "
            f"{len(context.pending)} pending)"
        )
        return context

    @staticmethod
    def _prepare(raw: str) -> str:
        text = raw.replace("\r\n", "\n").replace("\r", "\n")
        return strip_placeholders(text)
