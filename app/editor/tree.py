"""Rich-text tree mounted into the editing surface.

Nodes are mutable: edits change them in place, and the editor serializes the
tree back to canonical text after every input event.
"""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class Text:
    text: str = ""
    marker: ClassVar[str] = ""


@dataclass
class Strong:
    text: str = ""
    marker: ClassVar[str] = "**"


@dataclass
class Emphasis:
    text: str = ""
    marker: ClassVar[str] = "*"


@dataclass
class InlineMath:
    text: str = ""
    display: bool = False

    @property
    def marker(self) -> str:
        return "$$" if self.display else "$"


Inline = Text | Strong | Emphasis | InlineMath


@dataclass
class Paragraph:
    inlines: list[Inline] = field(default_factory=list)


@dataclass
class TableRow:
    """One pipe row; cell strings keep their padding and escaped pipes."""

    cells: list[str] = field(default_factory=list)
    indent: str = ""
    trailing: str = ""


@dataclass
class Table:
    rows: list[TableRow] = field(default_factory=list)

    @property
    def header(self) -> TableRow | None:
        return self.rows[0] if self.rows else None

    @property
    def body(self) -> list[TableRow]:
        return self.rows[2:]


@dataclass
class MathBlock:
    tex: str = ""


@dataclass
class RawBlock:
    """Construct the parser does not model; passed through untouched."""

    text: str = ""


Block = Paragraph | Table | MathBlock | RawBlock


@dataclass
class DocumentTree:
    blocks: list[Block] = field(default_factory=list)
