import html

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
)


def render_html(tree: DocumentTree) -> str:
    """Render the tree for the read-only streaming and rendered views."""
    return "\n".join(_render_block(block) for block in tree.blocks if not _is_empty(block))


def _is_empty(block: Block) -> bool:
    return isinstance(block, Paragraph) and not block.inlines


def _render_block(block: Block) -> str:
    if isinstance(block, Paragraph):
        return f"<p>{''.join(_render_inline(inline) for inline in block.inlines)}</p>"
    if isinstance(block, Table):
        return _render_table(block)
    if isinstance(block, MathBlock):
        return f'<div class="math math-display">{html.escape(block.tex.strip())}</div>'
    if isinstance(block, RawBlock):
        return f'<p class="raw">{html.escape(block.text)}</p>'
    raise TypeError(f"Unknown block type: {type(block).__name__}")


def _render_inline(inline: Inline) -> str:
    content = html.escape(inline.text)
    if isinstance(inline, Strong):
        return f"<strong>{content}</strong>"
    if isinstance(inline, Emphasis):
        return f"<em>{content}</em>"
    if isinstance(inline, InlineMath):
        kind = "math-display" if inline.display else "math-inline"
        return f'<span class="math {kind}">{content}</span>'
    return content


def _render_cells(row: TableRow, tag: str) -> str:
    cells = "".join(
        f"<{tag}>{html.escape(cell.strip().replace(chr(92) + '|', '|'))}</{tag}>"
        for cell in row.cells
    )
    return f"<tr>{cells}</tr>"


def _render_table(table: Table) -> str:
    head = _render_cells(table.header, "th") if table.header else ""
    body = "".join(_render_cells(row, "td") for row in table.body)
    return (
        '<div class="table-scroll"><table class="markdown-table">'
        f"<thead>{head}</thead><tbody>{body}</tbody></table></div>"
    )
