import hashlib
import re

from app.normalization.steps import TABLE_ROW_RE

_BLANK_RUN_RE = re.compile(r"\n{3,}")
_BLOCK_DELIMITER_RE = re.compile(r"(?<!\\)\$\$")


def line_digest(line: str) -> str:
    return hashlib.sha256(line.rstrip().encode("utf-8")).hexdigest()


def deduplicate_lines(document: str) -> tuple[str, list[str]]:
    """Drop every line whose content was already seen earlier in the document.

    Blank lines, table rows and lines inside a multi-line ``$$`` formula are
    never dropped. Returns the deduplicated text and the removed lines in
    document order.
    """
    seen: set[str] = set()
    kept: list[str] = []
    removed: list[str] = []
    in_formula = False
    for line in document.split("\n"):
        toggles = len(_BLOCK_DELIMITER_RE.findall(line)) % 2 == 1
        exempt = in_formula or toggles or not line.strip() or TABLE_ROW_RE.match(line)
        if toggles:
            in_formula = not in_formula
        if exempt:
            kept.append(line)
            continue
        digest = line_digest(line)
        if digest in seen:
            removed.append(line)
            continue
        seen.add(digest)
        kept.append(line)
    text = _BLANK_RUN_RE.sub("\n\n", "\n".join(kept)).strip("\n")
    return text, removed
