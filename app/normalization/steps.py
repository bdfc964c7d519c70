"""Ordered repairs applied to the raw buffer on every increment.

Each step is a pure rewrite of ``NormalizationContext.text`` and is
idempotent on its own output, so the full pipeline can be re-run from
scratch whenever a new fragment arrives. A construct whose closing half
may still be streaming in is sealed as pending and decided again on the
next increment, so a rendered table or formula never falls back to raw
text when more input arrives.
"""

import re

from app.normalization.pipeline import (
    PLACEHOLDER_CLOSE,
    PLACEHOLDER_OPEN,
    NormalizationContext,
    NormalizationStep,
)

_ROW = r"[ \t]*\|[^\n]*\|[ \t]*"
_SEPARATOR = r"[ \t]*\|[ \t]*:?-+:?[ \t]*(?:\|[ \t]*:?-+:?[ \t]*)*\|[ \t]*"
# Only valid on the last line of the buffer, where the line is still arriving.
_OPEN_SEPARATOR = r"[ \t]*\|[ \t]*:?-[-|: \t]*"
_OPEN_ROW = r"[ \t]*\|[^\n]*"

TABLE_RE = re.compile(
    rf"^{_ROW}\n(?:{_OPEN_SEPARATOR}\Z|{_SEPARATOR}(?:\n{_ROW})*(?:\n{_OPEN_ROW}\Z|$))",
    re.MULTILINE,
)
TABLE_ROW_RE = re.compile(rf"^{_ROW}$")
TABLE_SEPARATOR_RE = re.compile(rf"^{_SEPARATOR}$")


class ProtectTablesStep(NormalizationStep):
    """Swap pipe tables for placeholders before anything else can touch them.

    A table whose separator or last row is still arriving at the end of the
    buffer is already protected.
    """

    name = "protect_tables"

    def run(self, context: NormalizationContext) -> NormalizationContext:
        context.text = TABLE_RE.sub(
            lambda m: context.seal_table(m.group(0)), context.text
        )
        return context


class CanonicalizeMathStep(NormalizationStep):
    """Rewrite formula delimiters to ``$``/``$$`` and seal closed formulas.

    ``\\(...\\)`` and ``\\[...\\]`` are converted only once both halves
    have arrived, the body is non-empty and holds no ``$``, and the result
    would read back as the same formula. An unclosed ``$$`` or ``\\[``
    seals everything after it verbatim, as does an inline formula still
    open on the last line.
    """

    name = "canonicalize_math"

    def run(self, context: NormalizationContext) -> NormalizationContext:
        context.text = _MathScanner(context).scan()
        return context


_PAREN_OPEN_RE = re.compile(r"\\{1,2}\(")
_PAREN_CLOSE_RE = re.compile(r"\\{1,2}\)")
_BRACKET_CLOSE_RE = re.compile(r"(?<!\\)\\\]")


class _MathScanner:
    """One left-to-right pass over the text for ``CanonicalizeMathStep``."""

    def __init__(self, context: NormalizationContext) -> None:
        self.context = context
        self.text = context.text
        # Past this offset there is only whitespace, so a delimiter found
        # there may still be completed by the next fragment.
        self.limit = len(self.text.rstrip())
        self.out: list[str] = []
        # An unmatched ``$`` earlier on the current line.
        self.line_open = False

    def scan(self) -> str:
        text = self.text
        i = 0
        while i < len(text):
            ch = text[i]
            if ch == "\\":
                i = self._backslash(i)
            elif ch == "$":
                i = self._dollar(i)
            else:
                if ch == "\n":
                    self.line_open = False
                self.out.append(ch)
                i += 1
        return "".join(self.out)

    def _backslash(self, i: int) -> int:
        text = self.text
        if text.startswith("$", i + 1):
            self.out.append("\\$")
            return i + 2
        if text.startswith("[", i + 1) and not _escaped(text, i):
            return self._bracket_block(i)
        opener = _PAREN_OPEN_RE.match(text, i)
        if opener is not None:
            return self._paren_inline(i, opener.end())
        self.out.append("\\")
        return i + 1

    def _dollar(self, i: int) -> int:
        text = self.text
        final = self.context.final
        if text.startswith("$$", i):
            close = _find_block_close(text, i + 2)
            if close < 0:
                self.out.append("\n\n" + self.context.seal_pending(text[i:].rstrip()))
                return len(text)
            body = text[i + 2 : close]
            if not body.strip():
                self.out.append(text[i : close + 2])
                return close + 2
            return self._block(body, close + 2)
        close = self._inline_close(i + 1)
        if close == _BUFFER_END and not final:
            return self._hold(i)
        if close < 0:
            self.line_open = True
            self.out.append("$")
            return i + 1
        if close + 1 >= self.limit and not final:
            return self._hold(i)
        body = text[i + 1 : close]
        if not body.strip():
            self.out.append(text[i : close + 1])
        else:
            self.out.append(self.context.seal_formula(f"${_trim(body)}$"))
        return close + 1

    def _paren_inline(self, start: int, body_start: int) -> int:
        text = self.text
        if self.line_open or (start > 0 and text[start - 1] in "$\\"):
            return self._literal(start, body_start)
        line_end = text.find("\n", body_start)
        if line_end < 0:
            line_end = len(text)
        close = _PAREN_CLOSE_RE.search(text, body_start, line_end)
        if close is None:
            if line_end >= self.limit and not self.context.final:
                return self._hold(start)
            return self._literal(start, body_start)
        body = text[body_start : close.start()]
        if not body.strip() or "$" in body:
            return self._literal(start, body_start)
        end = close.end()
        if end >= self.limit and not self.context.final:
            return self._hold(start)
        if end < len(text) and (text[end].isdigit() or text[end] == "$"):
            return self._literal(start, body_start)
        self.out.append(self.context.seal_formula(f"${_trim(body)}$"))
        return end

    def _bracket_block(self, start: int) -> int:
        text = self.text
        close = _BRACKET_CLOSE_RE.search(text, start + 2)
        if close is None:
            if self.context.final:
                return self._literal(start, start + 2)
            self.out.append("\n\n" + self.context.seal_pending(text[start:].rstrip()))
            return len(text)
        body = text[start + 2 : close.start()]
        if not body.strip() or "$" in body:
            return self._literal(start, start + 2)
        return self._block(body, close.end())

    def _block(self, body: str, end: int) -> int:
        self.out.append("\n\n" + self.context.seal_formula(f"$${_trim(body)}$$") + "\n\n")
        self.line_open = False
        while end < len(self.text) and self.text[end] in " \t":
            end += 1
        return end

    def _literal(self, start: int, end: int) -> int:
        self.out.append(self.text[start:end])
        return end

    def _hold(self, start: int) -> int:
        self.out.append(self.context.seal_pending(self.text[start:].rstrip()))
        return len(self.text)

    def _inline_close(self, start: int) -> int:
        # A closing ``$`` followed by a digit reads as currency, not a delimiter.
        text = self.text
        j = start
        while j < self.limit:
            ch = text[j]
            if ch == "\n":
                return _LINE_END
            if ch == "\\":
                j += 2
                continue
            if ch == "$":
                if j + 1 < len(text) and text[j + 1].isdigit():
                    return _LINE_END
                return j
            j += 1
        return _BUFFER_END


_LINE_END = -1
_BUFFER_END = -2


def _escaped(text: str, i: int) -> bool:
    return i > 0 and text[i - 1] == "\\"


def _trim(body: str) -> str:
    body = body.strip()
    # A trailing backslash or dollar would swallow the closing delimiter.
    return body + " " if body.endswith(("\\", "$")) else body


def _find_block_close(text: str, start: int) -> int:
    pos = start
    while True:
        idx = text.find("$$", pos)
        if idx < 0:
            return -1
        if idx > 0 and text[idx - 1] == "\\":
            pos = idx + 1
            continue
        return idx


class UnwrapFencesStep(NormalizationStep):
    """Drop code-fence markers and keep their content as prose.

    A fence on its own line goes with its language tag and line break. A
    fence inside a line leaves a space behind when it sat between two words.
    """

    name = "unwrap_fences"

    _LINE_FENCE_RE = re.compile(r"^[ \t]*`{3,}[\w+#.-]*[ \t]*(?:\n|\Z)", re.MULTILINE)
    _INLINE_FENCE_RE = re.compile(r"`{3,}")

    def run(self, context: NormalizationContext) -> NormalizationContext:
        text = self._LINE_FENCE_RE.sub("", context.text)
        context.text = self._INLINE_FENCE_RE.sub(self._gap, text)
        return context

    @staticmethod
    def _gap(match: re.Match[str]) -> str:
        text = match.string
        before = text[match.start() - 1] if match.start() > 0 else "\n"
        after = text[match.end()] if match.end() < len(text) else "\n"
        return "" if before.isspace() or after.isspace() else " "


class SuppressListMarkersStep(NormalizationStep):
    """Remove the space after leading list, quote and heading markers.

    ``"1. Item"`` becomes ``"1.Item"``; the renderer then treats the line as
    prose. A line holding only a number marker is joined to the next line.
    """

    name = "suppress_list_markers"

    _NUMBER_ONLY_LINE_RE = re.compile(
        rf"^([ \t]*\d+[.)])[ \t]*\n+(?=[^\s{PLACEHOLDER_OPEN}])", re.MULTILINE
    )
    _MARKER_RUN_RE = re.compile(
        r"^([ \t]*)((?:(?:\d+[.)]|[-*+>#]+)[ \t]+)+)(?=\S)", re.MULTILINE
    )
    _WHITESPACE_RE = re.compile(r"[ \t]+")

    def run(self, context: NormalizationContext) -> NormalizationContext:
        text = self._NUMBER_ONLY_LINE_RE.sub(r"\1 ", context.text)
        context.text = self._MARKER_RUN_RE.sub(self._squeeze, text)
        return context

    def _squeeze(self, match: re.Match[str]) -> str:
        return match.group(1) + self._WHITESPACE_RE.sub("", match.group(2))


class NormalizeParagraphsStep(NormalizationStep):
    """Every line break becomes a paragraph break; blank runs collapse."""

    name = "normalize_paragraphs"

    _SINGLE_BREAK_RE = re.compile(r"(?<=[^\n])\n(?=[^\n])")
    _BLANK_RUN_RE = re.compile(r"\n{3,}")

    def run(self, context: NormalizationContext) -> NormalizationContext:
        text = "\n".join(line.rstrip() for line in context.text.split("\n"))
        text = self._SINGLE_BREAK_RE.sub("\n\n", text)
        text = self._BLANK_RUN_RE.sub("\n\n", text)
        context.text = text.strip()
        return context


class RestorePlaceholdersStep(NormalizationStep):
    """Put sealed spans back, each table in its own block."""

    name = "restore_placeholders"

    _TABLE_TOKEN_RE = re.compile(
        f"\n*{PLACEHOLDER_OPEN}T(\\d+){PLACEHOLDER_CLOSE}\n*"
    )
    _SPAN_TOKEN_RE = re.compile(f"{PLACEHOLDER_OPEN}([FP])(\\d+){PLACEHOLDER_CLOSE}")

    def run(self, context: NormalizationContext) -> NormalizationContext:
        # Formula and pending spans may hold table tokens, so they go first.
        text = self._SPAN_TOKEN_RE.sub(
            lambda m: self._span(context, m.group(1), int(m.group(2))), context.text
        )
        text = self._TABLE_TOKEN_RE.sub(
            lambda m: "\n\n" + context.tables[int(m.group(1))] + "\n\n", text
        )
        context.text = text.strip("\n")
        return context

    @staticmethod
    def _span(context: NormalizationContext, kind: str, index: int) -> str:
        return context.formulas[index] if kind == "F" else context.pending[index]


def strip_placeholders(text: str) -> str:
    """Remove placeholder delimiters that would collide with sealed tokens."""
    return text.replace(PLACEHOLDER_OPEN, "").replace(PLACEHOLDER_CLOSE, "")


def default_steps() -> list[NormalizationStep]:
    return [
        ProtectTablesStep(),
        CanonicalizeMathStep(),
        UnwrapFencesStep(),
        SuppressListMarkersStep(),
        NormalizeParagraphsStep(),
        RestorePlaceholdersStep(),
    ]


def is_table_block(block: str) -> bool:
    """True when every line of ``block`` is a table row under a separator."""
    lines = block.split("\n")
    return (
        len(lines) >= 2
        and all(TABLE_ROW_RE.match(line) for line in lines)
        and TABLE_SEPARATOR_RE.match(lines[1]) is not None
    )
