"""Mounted editing surface for one document.

The tree is parsed once when the editor mounts. Input events serialize the
tree and store the result as the new canonical text without re-parsing, so
the caret never jumps while the user types. ``sync`` re-parses only when the
canonical text changed from outside the tree.
"""

from app.editor.cursor import Cursor, cursor_to_offset, offset_to_cursor
from app.editor.exceptions import InvalidEditError, RoundTripError
from app.editor.parser import parse, parse_row
from app.editor.serializer import serialize
from app.editor.tree import (
    Block,
    DocumentTree,
    Inline,
    MathBlock,
    Paragraph,
    Table,
    Text,
)
from app.logging.logger import Log


class EditorSession:
    """Rich-text tree plus the canonical text it was last synced with."""

    def __init__(self, canonical: str) -> None:
        self._tree = parse(canonical)
        self._last_canonical = canonical
        self._cursor = Cursor()
        self._reparse_count = 0
        self._check_round_trip()

    @property
    def tree(self) -> DocumentTree:
        return self._tree

    @property
    def last_canonical(self) -> str:
        return self._last_canonical

    @property
    def cursor(self) -> Cursor:
        return self._cursor

    @property
    def reparse_count(self) -> int:
        return self._reparse_count

    # ------------------------------------------------------------------
    # Synchronization
    # ------------------------------------------------------------------

    def on_input(self) -> str:
        """Serialize the tree after a user input event; returns the new text."""
        self._last_canonical = serialize(self._tree)
        return self._last_canonical

    def sync(self, canonical: str) -> bool:
        """Bring the tree in line with ``canonical``; True when it was re-parsed."""
        if serialize(self._tree) == canonical:
            self._last_canonical = canonical
            return False
        offset = cursor_to_offset(self._tree, self._cursor)
        self._tree = parse(canonical)
        self._last_canonical = canonical
        self._cursor = offset_to_cursor(self._tree, offset)
        self._reparse_count += 1
        self._check_round_trip()
        Log.debug(f"Editor re-parsed {len(canonical)} chars, caret at offset {offset}")
        return True

    def _check_round_trip(self) -> None:
        if serialize(self._tree) != self._last_canonical:
            raise RoundTripError("Editor tree diverged from its canonical text")

    # ------------------------------------------------------------------
    # Caret
    # ------------------------------------------------------------------

    def move_cursor(self, block: int, inline: int = 0, offset: int = 0) -> Cursor:
        target = self._block(block)
        if isinstance(target, Paragraph) and target.inlines:
            inline = max(0, min(inline, len(target.inlines) - 1))
            offset = max(0, min(offset, len(target.inlines[inline].text)))
        else:
            inline = 0
            offset = max(0, offset)
        self._cursor = Cursor(block=block, inline=inline, offset=offset)
        return self._cursor

    # ------------------------------------------------------------------
    # Edits; each one ends with an input event
    # ------------------------------------------------------------------

    def insert_text(self, text: str) -> str:
        node = self._inline_at_cursor()
        offset = min(self._cursor.offset, len(node.text))
        node.text = node.text[:offset] + text + node.text[offset:]
        self._cursor = Cursor(self._cursor.block, self._cursor.inline, offset + len(text))
        return self.on_input()

    def delete_backward(self, count: int = 1) -> str:
        node = self._inline_at_cursor()
        offset = min(self._cursor.offset, len(node.text))
        start = max(0, offset - count)
        node.text = node.text[:start] + node.text[offset:]
        self._cursor = Cursor(self._cursor.block, self._cursor.inline, start)
        return self.on_input()

    def set_inline_text(self, block: int, inline: int, text: str) -> str:
        self._inline(block, inline).text = text
        return self.on_input()

    def set_table_cell(self, block: int, row: int, column: int, text: str) -> str:
        table = self._block(block)
        if not isinstance(table, Table):
            raise InvalidEditError(f"Block {block} is not a table")
        try:
            cells = table.rows[row].cells
            old = cells[column]
        except IndexError as exc:
            raise InvalidEditError(f"No cell ({row}, {column}) in block {block}") from exc
        escaped = text.replace("\n", " ").replace("|", "\\|")
        lead = " " if old.startswith(" ") else ""
        trail = " " if old.endswith(" ") else ""
        cells[column] = f"{lead}{escaped}{trail}"
        return self.on_input()

    def add_table_row(self, block: int, cells: list[str]) -> str:
        table = self._block(block)
        if not isinstance(table, Table):
            raise InvalidEditError(f"Block {block} is not a table")
        escaped = [cell.replace("\n", " ").replace("|", "\\|") for cell in cells]
        table.rows.append(parse_row("| " + " | ".join(escaped) + " |"))
        return self.on_input()

    def set_formula(self, block: int, tex: str) -> str:
        target = self._block(block)
        if not isinstance(target, MathBlock):
            raise InvalidEditError(f"Block {block} is not a formula")
        target.tex = tex
        return self.on_input()

    def insert_paragraph(self, after: int, text: str = "") -> str:
        if after < -1 or after >= len(self._tree.blocks):
            raise InvalidEditError(f"Cannot insert after block {after}")
        self._tree.blocks.insert(after + 1, Paragraph(inlines=[Text(text)]))
        self._cursor = Cursor(block=after + 1, inline=0, offset=len(text))
        return self.on_input()

    def delete_block(self, block: int) -> str:
        self._block(block)
        del self._tree.blocks[block]
        if not self._tree.blocks:
            self._tree.blocks.append(Paragraph())
        self._cursor = Cursor(block=max(0, min(block, len(self._tree.blocks) - 1)))
        return self.on_input()

    # ------------------------------------------------------------------
    # Addressing
    # ------------------------------------------------------------------

    def _block(self, index: int) -> Block:
        if not 0 <= index < len(self._tree.blocks):
            raise InvalidEditError(f"No block at index {index}")
        return self._tree.blocks[index]

    def _inline(self, block: int, inline: int) -> Inline:
        target = self._block(block)
        if not isinstance(target, Paragraph):
            raise InvalidEditError(f"Block {block} is not a paragraph")
        if not 0 <= inline < len(target.inlines):
            raise InvalidEditError(f"No inline {inline} in block {block}")
        return target.inlines[inline]

    def _inline_at_cursor(self) -> Inline:
        target = self._block(self._cursor.block)
        if not isinstance(target, Paragraph):
            raise InvalidEditError("Text can only be typed into a paragraph")
        if not target.inlines:
            target.inlines.append(Text())
        return self._inline(self._cursor.block, min(self._cursor.inline, len(target.inlines) - 1))
