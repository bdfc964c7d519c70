"""Caret positions inside the tree and their absolute text offsets."""

from dataclasses import dataclass

from app.editor.serializer import BLOCK_SEPARATOR, serialize_block, serialize_inline
from app.editor.tree import DocumentTree, Paragraph


@dataclass(frozen=True)
class Cursor:
    """Caret location: block index, inline index and offset in node text.

    For non-paragraph blocks ``inline`` is always 0 and ``offset`` counts
    characters of the serialized block.
    """

    block: int = 0
    inline: int = 0
    offset: int = 0


def cursor_to_offset(tree: DocumentTree, cursor: Cursor) -> int:
    if not tree.blocks:
        return 0
    block_index = min(cursor.block, len(tree.blocks) - 1)
    offset = sum(
        len(serialize_block(block)) + len(BLOCK_SEPARATOR)
        for block in tree.blocks[:block_index]
    )
    block = tree.blocks[block_index]
    if not isinstance(block, Paragraph) or not block.inlines:
        return offset + min(cursor.offset, len(serialize_block(block)))
    inline_index = min(cursor.inline, len(block.inlines) - 1)
    offset += sum(len(serialize_inline(inline)) for inline in block.inlines[:inline_index])
    inline = block.inlines[inline_index]
    return offset + len(inline.marker) + min(cursor.offset, len(inline.text))


def offset_to_cursor(tree: DocumentTree, offset: int) -> Cursor:
    """Map an absolute offset to the closest caret position in ``tree``."""
    if not tree.blocks:
        return Cursor()
    start = 0
    for block_index, block in enumerate(tree.blocks):
        length = len(serialize_block(block))
        is_last = block_index == len(tree.blocks) - 1
        if offset <= start + length or is_last:
            local = max(0, min(offset - start, length))
            return _cursor_in_block(tree, block_index, local)
        start += length + len(BLOCK_SEPARATOR)
    return Cursor()


def _cursor_in_block(tree: DocumentTree, block_index: int, local: int) -> Cursor:
    block = tree.blocks[block_index]
    if not isinstance(block, Paragraph) or not block.inlines:
        return Cursor(block=block_index, offset=local)
    start = 0
    for inline_index, inline in enumerate(block.inlines):
        length = len(serialize_inline(inline))
        is_last = inline_index == len(block.inlines) - 1
        if local <= start + length or is_last:
            inner = local - start - len(inline.marker)
            return Cursor(
                block=block_index,
                inline=inline_index,
                offset=max(0, min(inner, len(inline.text))),
            )
        start += length
    return Cursor(block=block_index)
