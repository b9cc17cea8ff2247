"""Text normalisation helpers for generated profile summaries."""

from __future__ import annotations

import re
import unicodedata

_WHITESPACE_RUN = re.compile(r"\s+")
_WORD_PATTERN = re.compile(r"\b[\w'-]+\b")
_HEADING_LINE = re.compile(r"^\s*(#{1,6}\s+.*|\*\*[^*]+\*\*\s*:?\s*)$")
_LABEL_PREFIX = re.compile(r"^\s*(profile\s+)?summary\s*:\s*", re.IGNORECASE)


def collapse_whitespace(text: str) -> str:
    """Collapse consecutive whitespace characters into single spaces."""

    if not text:
        return ""
    return _WHITESPACE_RUN.sub(" ", text).strip()


def word_count(text: str | None) -> int:
    if not text:
        return 0
    return len(_WORD_PATTERN.findall(text))


def clean_generated_summary(text: str | None) -> str:
    """Strip markdown headings and label prefixes and return a single NFKC-normalised paragraph."""

    if not text:
        return ""

    kept = [line for line in text.splitlines() if not _HEADING_LINE.match(line)]
    collapsed = collapse_whitespace(" ".join(kept))
    collapsed = _LABEL_PREFIX.sub("", collapsed)
    return unicodedata.normalize("NFKC", collapsed).strip()
