"""Error-line normalization and signatures.

Variable substrings (timestamps, paths, positions, quoted values, hashes,
long ids) are replaced with fixed placeholders so that lines differing only
in those parts share one signature. The rewrite is idempotent.
"""

from __future__ import annotations

import re

from ..models import ErrorParts
from .patterns import MAX_LINE_LENGTH, extract_error_parts

_SOURCE_EXTENSIONS = (
    "tsx|ts|jsx|js|mjs|cjs|py|pyi|go|rs|java|kt|kts|scala|c|cc|cpp|cxx|h|hh|hpp|cs|rb|php|"
    "swift|m|mm|vue|svelte|json|ya?ml|toml|css|scss|sass|less|html?|md|sh"
)

_WS_RE = re.compile(r"\s+")

# Order matters: timestamps before positions, paths before numeric ids.
_SUBSTITUTIONS: tuple[tuple[re.Pattern[str], str], ...] = (
    (
        re.compile(
            r"\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(?::\d{2})?(?:[.,]\d+)?(?:Z|[+-]\d{2}:?\d{2})?"
        ),
        "<TIMESTAMP>",
    ),
    (re.compile(r"\b\d{1,4}/\d{1,2}/\d{1,4}[ T]\d{1,2}:\d{2}(?::\d{2})?(?:[.,]\d+)?"), "<TIMESTAMP>"),
    (re.compile(r"\b\d{1,2}:\d{2}:\d{2}(?:[.,]\d+)?\b"), "<TIMESTAMP>"),
    (
        re.compile(
            r"(?<![\w\-./\\<])(?:[A-Za-z]:\\|\.{1,2}/|/)?(?:[\w\-.@]+[/\\])*[\w\-.@]+\.(?:"
            + _SOURCE_EXTENSIONS
            + r")(?![\w])"
        ),
        "<FILE>",
    ),
    (re.compile(r"\(\d+,\s*\d+\)"), "(<LINE>)"),
    (re.compile(r"\[\d+,\s*\d+\]"), "[<LINE>]"),
    (re.compile(r":\d+:\d+\b"), ":<LINE>"),
    (re.compile(r"(?<=<FILE>):\d+\b"), ":<LINE>"),
    (re.compile(r"\bline\s+\d+\b", re.IGNORECASE), "line <LINE>"),
    (re.compile(r"\bcol(?:umn)?\s+\d+\b", re.IGNORECASE), "col <LINE>"),
    (re.compile(r"\b(?:0x)?[0-9a-fA-F]{32,}\b"), "<HASH>"),
    (re.compile(r"\b\d{5,}\b"), "<ID>"),
    (re.compile(r"(?<!\w)'[^'\n]*'(?!\w)"), "'<VALUE>'"),
    (re.compile(r'"[^"\n]*"'), '"<VALUE>"'),
    (re.compile(r"`[^`\n]*`"), "`<VALUE>`"),
)

# A substitution can expose a match for an earlier rule; passes repeat until stable.
_MAX_PASSES = 8


def _rewrite(text: str) -> str:
    for pattern, placeholder in _SUBSTITUTIONS:
        text = pattern.sub(placeholder, text)
    return _WS_RE.sub(" ", text).strip()


def normalize_error_line(line: str) -> str:
    """Replace variable parts of an error line with placeholders."""
    out = _WS_RE.sub(" ", line[:MAX_LINE_LENGTH]).strip()
    for _ in range(_MAX_PASSES):
        nxt = _rewrite(out)
        if nxt == out:
            break
        out = nxt
    return out


def create_signature(parts: ErrorParts) -> str:
    """Signature = `code: normalized message` (or just the normalized message)."""
    message = normalize_error_line(parts.message)
    if parts.code:
        return f"{parts.code}: {message}"
    return message


def signature_for(text: str) -> str:
    """Signature of free text (e.g. a log message), structured when recognized."""
    parts = extract_error_parts(text)
    if parts is None:
        return normalize_error_line(text)
    return create_signature(parts)


def format_location(parts: ErrorParts) -> str | None:
    """Render `file:line:col` from whatever position parts are present."""
    if not parts.file and parts.line is None:
        return None
    loc = parts.file or ""
    if parts.line is not None:
        loc = f"{loc}:{parts.line}" if loc else f"line {parts.line}"
        if parts.column is not None:
            loc = f"{loc}:{parts.column}"
    return loc
