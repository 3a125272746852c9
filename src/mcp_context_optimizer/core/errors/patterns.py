"""Per-tool error-line extractors.

Each extractor is a pure function `(line) -> ErrorParts | None`. They are
tried in a fixed order (structured, language-specific shapes before generic
bracket/colon shapes); the first match wins.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from ..models import ErrorParts

MAX_LINE_LENGTH = 4096

ErrorExtractor = Callable[[str], ErrorParts | None]

_TS_PAREN_RE = re.compile(r"^(?P<file>.+?)\((?P<line>\d+),(?P<col>\d+)\):\s*error\s+(?P<code>TS\d+):\s*(?P<msg>.+)$")
_TS_COLON_RE = re.compile(r"^(?P<file>.+?):(?P<line>\d+):(?P<col>\d+)\s+-\s+error\s+(?P<code>TS\d+):\s*(?P<msg>.+)$")
_ESLINT_RE = re.compile(r"^\s*(?P<line>\d+):(?P<col>\d+)\s+(?:error|warning)\s+(?P<msg>.+?)\s{2,}(?P<rule>[@\w/-]+)\s*$")
_GCC_RE = re.compile(
    r"^(?P<file>[^\s:][^:]*?):(?P<line>\d+):(?P<col>\d+):\s*(?:fatal\s+)?(?:error|warning):\s*(?P<msg>.+)$"
)
_PY_FRAME_RE = re.compile(r'^\s*File "(?P<file>.+?)", line (?P<line>\d+)(?:, in (?P<func>.+))?\s*$')
_PY_EXC_RE = re.compile(r"^(?P<code>(?:[A-Za-z_][\w]*\.)*[A-Za-z_]\w*(?:Error|Exception|Warning)):\s*(?P<msg>.+)$")
_GO_RE = re.compile(r"^(?:\./)?(?P<file>[^\s:]+\.go):(?P<line>\d+)(?::(?P<col>\d+))?:\s*(?P<msg>.+)$")
_RUST_DIAG_RE = re.compile(r"^(?:error|warning)\[(?P<code>E\d+)\]:\s*(?P<msg>.+)$")
_RUST_LOC_RE = re.compile(r"^\s*-->\s*(?P<file>[^\s:]+):(?P<line>\d+):(?P<col>\d+)\s*$")
_BRACKET_RE = re.compile(r"^\s*\[(?P<level>ERROR|ERR|FATAL|CRITICAL|WARN|WARNING)\]\s*(?P<msg>.+)$", re.IGNORECASE)
_COLON_RE = re.compile(r"^\s*(?P<level>error|fatal|failure|exception)\s*:\s*(?P<msg>.+)$", re.IGNORECASE)

_LIKELY_ERROR_RE = re.compile(
    r"\b(?:errors?|fail(?:s|ed|ure|ing)?|exception|cannot|can't|unable to|invalid|unexpected|"
    r"missing|undefined|not found|does not exist|is not defined|not defined|type mismatch|"
    r"syntax\s?error)\b",
    re.IGNORECASE,
)
_CARET_RE = re.compile(r"^\s*\^+~*\s*$")


def _int(value: str | None) -> int | None:
    return int(value) if value else None


def typescript(line: str) -> ErrorParts | None:
    m = _TS_PAREN_RE.match(line) or _TS_COLON_RE.match(line)
    if not m:
        return None
    return ErrorParts(
        file=m.group("file").strip(),
        line=_int(m.group("line")),
        column=_int(m.group("col")),
        code=m.group("code"),
        message=m.group("msg").strip(),
        raw=line,
    )


def eslint(line: str) -> ErrorParts | None:
    m = _ESLINT_RE.match(line)
    if not m:
        return None
    return ErrorParts(
        line=_int(m.group("line")),
        column=_int(m.group("col")),
        code=m.group("rule"),
        message=m.group("msg").strip(),
        raw=line,
    )


def gcc(line: str) -> ErrorParts | None:
    m = _GCC_RE.match(line)
    if not m:
        return None
    return ErrorParts(
        file=m.group("file"),
        line=_int(m.group("line")),
        column=_int(m.group("col")),
        message=m.group("msg").strip(),
        raw=line,
    )


def python_frame(line: str) -> ErrorParts | None:
    m = _PY_FRAME_RE.match(line)
    if not m:
        return None
    func = m.group("func")
    return ErrorParts(
        file=m.group("file"),
        line=_int(m.group("line")),
        message=f"in {func.strip()}" if func else line.strip(),
        raw=line,
    )


def python_exception(line: str) -> ErrorParts | None:
    m = _PY_EXC_RE.match(line.strip())
    if not m:
        return None
    return ErrorParts(code=m.group("code"), message=m.group("msg").strip(), raw=line)


def go(line: str) -> ErrorParts | None:
    m = _GO_RE.match(line.strip())
    if not m:
        return None
    return ErrorParts(
        file=m.group("file"),
        line=_int(m.group("line")),
        column=_int(m.group("col")),
        message=m.group("msg").strip(),
        raw=line,
    )


def rust_diagnostic(line: str) -> ErrorParts | None:
    m = _RUST_DIAG_RE.match(line.strip())
    if not m:
        return None
    return ErrorParts(code=m.group("code"), message=m.group("msg").strip(), raw=line)


def rust_location(line: str) -> ErrorParts | None:
    m = _RUST_LOC_RE.match(line)
    if not m:
        return None
    return ErrorParts(
        file=m.group("file"),
        line=_int(m.group("line")),
        column=_int(m.group("col")),
        message=line.strip(),
        raw=line,
    )


def generic_bracket(line: str) -> ErrorParts | None:
    m = _BRACKET_RE.match(line)
    if not m:
        return None
    return ErrorParts(message=m.group("msg").strip(), raw=line)


def generic_colon(line: str) -> ErrorParts | None:
    m = _COLON_RE.match(line)
    if not m:
        return None
    return ErrorParts(message=m.group("msg").strip(), raw=line)


ERROR_EXTRACTORS: tuple[ErrorExtractor, ...] = (
    typescript,
    eslint,
    gcc,
    python_frame,
    python_exception,
    go,
    rust_diagnostic,
    rust_location,
    generic_bracket,
    generic_colon,
)


def is_likely_error(line: str) -> bool:
    """Keyword fallback for lines no structured extractor recognized."""
    return bool(_LIKELY_ERROR_RE.search(line) or _CARET_RE.match(line))


def extract_error_parts(line: str) -> ErrorParts | None:
    """Return structured parts for an error line, or None for non-error lines."""
    capped = line[:MAX_LINE_LENGTH].rstrip()
    if not capped.strip():
        return None
    for extractor in ERROR_EXTRACTORS:
        parts = extractor(capped)
        if parts is not None:
            return parts
    if is_likely_error(capped):
        return ErrorParts(message=capped.strip(), raw=capped)
    return None
