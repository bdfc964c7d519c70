"""Plain-text export of a document, as used by the copy action."""

import re
from collections.abc import Callable

Replacement = str | Callable[[re.Match[str]], str]

# Order matters: tables go before currency can be read as formulas, bold
# goes before italic.
_PLAIN_TEXT_RULES: tuple[tuple[re.Pattern[str], Replacement], ...] = (
    (
        re.compile(
            r"^[ \t]*\|.*\|[ \t]*\n[ \t]*\|[-| :]+\|[ \t]*(?:\n[ \t]*\|.*\|[ \t]*)*",
            re.MULTILINE,
        ),
        "",
    ),
    (re.compile(r"\$\$(.*?)\$\$", re.DOTALL), lambda m: f"\n{m.group(1).strip()}\n"),
    (re.compile(r"\$(.*?)\$"), r"\1"),
    (re.compile(r"```[\s\S]*?```"), ""),
    (re.compile(r"`([^`]+)`"), r"\1"),
    (re.compile(r"!\[(.*?)\]\(.*?\)"), r"\1"),
    (re.compile(r"\[(.*?)\]\(.*?\)"), r"\1"),
    (re.compile(r"(\*\*|__)(.*?)\1"), r"\2"),
    (re.compile(r"(\*|_)(.*?)\1"), r"\2"),
    (re.compile(r"~~(.*?)~~"), r"\1"),
    (re.compile(r"^#+[ \t]*", re.MULTILINE), ""),
    (re.compile(r"^[ \t]*>[ \t]*", re.MULTILINE), ""),
    (re.compile(r"^[ \t]*[-*+][ \t]+", re.MULTILINE), ""),
    (re.compile(r"^[ \t]*\d+\.[ \t]+", re.MULTILINE), ""),
    (re.compile(r"\n{3,}"), "\n\n"),
)


def to_plain_text(document: str) -> str:
    text = document
    for pattern, replacement in _PLAIN_TEXT_RULES:
        text = pattern.sub(replacement, text)
    return text.strip()
