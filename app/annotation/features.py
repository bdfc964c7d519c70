"""Heuristic uncertainty features for prose spans.

Each feature lands in ``[0, 1]`` before weighting:

- rare characters: private-use, unassigned, symbol-other, astral and CJK
  extension/compatibility codepoints;
- stroke complexity: per-glyph complexity proxy (ideographs and stacked
  diacritics count more) above plain Latin, relative to a ceiling;
- anomalous glyphs: replacement characters, stray control or format
  characters, orphan combining marks and mixed-script words.
"""

import re

import icu  # type: ignore[import-untyped]

from app.annotation.models import SpanScore

_RARE_SCALE = 5.0
_MAX_ANOMALIES = 3

_RARE_CATEGORIES = frozenset(
    {
        icu.UCharCategory.PRIVATE_USE_CHAR,
        icu.UCharCategory.UNASSIGNED,
        icu.UCharCategory.OTHER_SYMBOL,
    }
)
_NFD = icu.Normalizer2.getNFDInstance()
_RARE_RANGES: tuple[tuple[int, int], ...] = (
    (0x3400, 0x4DBF),  # CJK extension A
    (0xF900, 0xFAFF),  # CJK compatibility ideographs
    (0x2E80, 0x2FDF),  # CJK radicals
)
_IDEOGRAPH_RANGES: tuple[tuple[int, int], ...] = (
    (0x4E00, 0x9FFF),
    (0x3400, 0x4DBF),
    (0xF900, 0xFAFF),
    (0x20000, 0x3FFFF),
)
# Scripts shared by every writing system, and scripts that mix inside one
# word in ordinary CJK text.
_NEUTRAL_SCRIPTS = frozenset({"Common", "Inherited", "Unknown"})
_SCRIPT_FAMILIES = {"Hiragana": "Han", "Katakana": "Han", "Hangul": "Han"}
_WORD_RE = re.compile(r"\w+")


def _in_ranges(code: int, ranges: tuple[tuple[int, int], ...]) -> bool:
    return any(lo <= code <= hi for lo, hi in ranges)


def _is_mark(ch: str) -> bool:
    return icu.Char.getCombiningClass(ord(ch)) > 0


def is_rare(ch: str) -> bool:
    code = ord(ch)
    if code > 0xFFFF:
        return True
    return icu.Char.charType(code) in _RARE_CATEGORIES or _in_ranges(code, _RARE_RANGES)


def glyph_complexity(ch: str) -> float:
    code = ord(ch)
    if _in_ranges(code, _IDEOGRAPH_RANGES):
        return 4.0 if is_rare(ch) else 2.5
    marks = sum(1 for c in _NFD.normalize(ch) if _is_mark(c))
    return 1.0 + marks


def count_anomalies(text: str) -> int:
    count = 0
    previous = " "
    for ch in text:
        category = icu.Char.charType(ord(ch))
        if ch == "\ufffd":
            count += 1
        elif category == icu.UCharCategory.CONTROL_CHAR and ch not in "\t\n":
            count += 1
        elif category == icu.UCharCategory.FORMAT_CHAR:
            count += 1
        elif _is_mark(ch) and previous.isspace():
            count += 1
        previous = ch
    for word in _WORD_RE.findall(text):
        if len(_scripts_of(word)) > 1:
            count += 1
    return count


def _scripts_of(word: str) -> set[str]:
    scripts: set[str] = set()
    for ch in word:
        name = icu.Script.getScript(ch).getName()
        if name in _NEUTRAL_SCRIPTS:
            continue
        scripts.add(_SCRIPT_FAMILIES.get(name, name))
    return scripts


class SpanScorer:
    """Scores prose spans; higher means less trustworthy."""

    def __init__(self, stroke_complexity_ceiling: float, structure_anomaly_weight: float) -> None:
        self._ceiling = max(stroke_complexity_ceiling, 1.0)
        self._anomaly_weight = structure_anomaly_weight

    def score(self, text: str) -> SpanScore:
        glyphs = [ch for ch in text if not ch.isspace()]
        if not glyphs:
            return SpanScore()
        rare_ratio = sum(1 for ch in glyphs if is_rare(ch)) / len(glyphs)
        avg_complexity = sum(glyph_complexity(ch) for ch in glyphs) / len(glyphs)
        anomalies = min(count_anomalies(text), _MAX_ANOMALIES)
        return SpanScore(
            rare=min(1.0, rare_ratio * _RARE_SCALE),
            complexity=min(1.0, max(0.0, avg_complexity - 1.0) / self._ceiling),
            anomaly=self._anomaly_weight * anomalies,
        )
