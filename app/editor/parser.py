"""Canonical text -> rich-text tree.

Blocks are the ``"\\n\\n"``-separated chunks of the document; a ``$$``
formula that spans blank lines is merged back into one block. Anything the
parser does not recognise becomes a ``RawBlock`` so that
``serialize(parse(text)) == text`` holds for every string.
"""

import re

from app.editor.tree import (
    Block,
    DocumentTree,
    Emphasis,
    Inline,
    InlineMath,
    MathBlock,
    Paragraph,
    RawBlock,
    Strong,
    Table,
    TableRow,
    Text,
)
from app.normalization.steps import is_table_block

BLOCK_SEPARATOR = "\n\n"

_INLINE_RE = re.compile(
    r"(?<!\\)\$\$(?P<display>.+?)(?<!\\)\$\$"
    r"|(?<![\\$])\$(?P<math>[^$\n]+?)(?<!\\)\$(?!\d)"
    r"|\*\*(?P<strong>[^*\n]+?)\*\*"
    r"|(?<!\*)\*(?P<em>[^*\s](?:[^*\n]*?[^*\s])?)\*(?!\*)",
    re.DOTALL,
)
_CELL_SPLIT_RE = re.compile(r"(?<!\\)\|")
_BLOCK_DELIMITER_RE = re.compile(r"(?<!\\)\$\$")


def parse(text: str) -> DocumentTree:
    chunks = text.split(BLOCK_SEPARATOR)
    blocks: list[Block] = []
    i = 0
    while i < len(chunks):
        chunk = chunks[i]
        if chunk.startswith("$$"):
            merged = chunk
            while not _has_closing_delimiter(merged) and i + 1 < len(chunks):
                i += 1
                merged += BLOCK_SEPARATOR + chunks[i]
            blocks.append(_parse_formula_block(merged))
        elif is_table_block(chunk):
            blocks.append(Table(rows=[parse_row(line) for line in chunk.split("\n")]))
        else:
            blocks.append(Paragraph(inlines=parse_inlines(chunk)))
        i += 1
    return DocumentTree(blocks=blocks)


def _has_closing_delimiter(block: str) -> bool:
    return _BLOCK_DELIMITER_RE.search(block, 2) is not None


def _parse_formula_block(block: str) -> Block:
    delimiters = [m.start() for m in _BLOCK_DELIMITER_RE.finditer(block, 2)]
    if len(block) >= 4 and delimiters == [len(block) - 2]:
        return MathBlock(tex=block[2:-2])
    return RawBlock(text=block)


def parse_row(line: str) -> TableRow:
    unindented = line.lstrip(" \t")
    core = unindented.rstrip(" \t")
    return TableRow(
        cells=_CELL_SPLIT_RE.split(core[1:-1]),
        indent=line[: len(line) - len(unindented)],
        trailing=unindented[len(core) :],
    )


def parse_inlines(text: str) -> list[Inline]:
    inlines: list[Inline] = []
    pos = 0
    for match in _INLINE_RE.finditer(text):
        if match.start() > pos:
            inlines.append(Text(text[pos : match.start()]))
        if match.group("display") is not None:
            inlines.append(InlineMath(match.group("display"), display=True))
        elif match.group("math") is not None:
            inlines.append(InlineMath(match.group("math")))
        elif match.group("strong") is not None:
            inlines.append(Strong(match.group("strong")))
        else:
            inlines.append(Emphasis(match.group("em")))
        pos = match.end()
    if pos < len(text):
        inlines.append(Text(text[pos:]))
    return inlines
