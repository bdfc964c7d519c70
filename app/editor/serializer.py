"""Rich-text tree -> canonical text; the exact inverse of ``parse``."""

from app.editor.tree import (
    Block,
    DocumentTree,
    Inline,
    MathBlock,
    Paragraph,
    RawBlock,
    Table,
    TableRow,
)

BLOCK_SEPARATOR = "\n\n"


def serialize(tree: DocumentTree) -> str:
    return BLOCK_SEPARATOR.join(serialize_block(block) for block in tree.blocks)


def serialize_block(block: Block) -> str:
    if isinstance(block, Paragraph):
        return "".join(serialize_inline(inline) for inline in block.inlines)
    if isinstance(block, Table):
        return "\n".join(serialize_row(row) for row in block.rows)
    if isinstance(block, MathBlock):
        return f"$${block.tex}$$"
    if isinstance(block, RawBlock):
        return block.text
    raise TypeError(f"Unknown block type: {type(block).__name__}")


def serialize_row(row: TableRow) -> str:
    return f"{row.indent}|{'|'.join(row.cells)}|{row.trailing}"


def serialize_inline(inline: Inline) -> str:
    return f"{inline.marker}{inline.text}{inline.marker}"
