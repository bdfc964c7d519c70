from abc import ABC, abstractmethod
from dataclasses import dataclass, field

PLACEHOLDER_OPEN = "\ue000"
PLACEHOLDER_CLOSE = "\ue001"


@dataclass(slots=True)
class NormalizationContext:
    """Text flowing through the normalization steps plus sealed spans.

    Sealed spans are swapped out of ``text`` behind private-use placeholder
    tokens so that later steps never see their content. ``pending`` spans are
    constructs whose closing half may still be on its way; they come back
    verbatim and are decided again on the next increment. With ``final`` set
    the buffer is known to be complete and nothing is left pending except an
    unclosed ``$$``.
    """

    text: str
    final: bool = False
    tables: list[str] = field(default_factory=list)
    formulas: list[str] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)

    def seal_table(self, table: str) -> str:
        self.tables.append(table)
        return _token("T", len(self.tables) - 1)

    def seal_formula(self, formula: str) -> str:
        self.formulas.append(formula)
        return _token("F", len(self.formulas) - 1)

    def seal_pending(self, span: str) -> str:
        self.pending.append(span)
        return _token("P", len(self.pending) - 1)


def _token(kind: str, index: int) -> str:
    return f"{PLACEHOLDER_OPEN}{kind}{index}{PLACEHOLDER_CLOSE}"


class NormalizationStep(ABC):
    """One pure ``text -> text`` repair; must be idempotent on its own output."""

    name: str = ""

    @abstractmethod
    def run(self, context: NormalizationContext) -> NormalizationContext:
        raise NotImplementedError
