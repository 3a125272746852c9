"""Content-type detection.

Classifies raw text by sampling indicator density over the first N non-blank
lines. Sampling bounds the cost on very large inputs and keeps the result
stable when blank lines are appended.
"""

from __future__ import annotations

import re

from .errors.patterns import MAX_LINE_LENGTH
from .models import ContentType

DEFAULT_SAMPLE_LINES = 100

_STACK_RES = (
    re.compile(r"^\s+at\s+\S.*\(.*:\d+(?::\d+)?\)\s*$"),  # JS / Java frames
    re.compile(r"^\s+at\s+[\w.$<>\[\]/]+\s*(?:\(|$)"),
    re.compile(r"^Traceback \(most recent call last\):"),
    re.compile(r'^\s+File ".+", line \d+'),
    re.compile(r"^(?:[\w.]+\.)?\w*(?:Error|Exception)(?::|$)"),
    re.compile(r"^goroutine \d+ \["),
    re.compile(r"panicked at "),
    re.compile(r"^\s+\d+:\s+0x[0-9a-f]+ - "),  # rust backtrace frame
    re.compile(r"^Caused by: "),
)

_LOG_RES = (
    re.compile(r"\[\s*(?:ERROR|ERR|WARN|WARNING|INFO|DEBUG|TRACE|FATAL|CRITICAL)\s*\]", re.IGNORECASE),
    re.compile(r"^\[?\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(?::\d{2})?"),
    re.compile(r"^\[?\d{2}:\d{2}:\d{2}"),
    re.compile(r"^\[?\d{4}/\d{2}/\d{2} \d{2}:\d{2}"),
    re.compile(r"^\S*\s*(?:ERROR|WARN|WARNING|INFO|DEBUG|TRACE|FATAL)\b[:\s]"),
    re.compile(r"\b(?:GET|POST|PUT|DELETE|PATCH|HEAD|OPTIONS)\s+/\S*\s+(?:HTTP/\S+\"?\s+)?\d{3}\b"),
    re.compile(r"\blevel=(?:error|warn|warning|info|debug)\b", re.IGNORECASE),
)

_CODE_RES = (
    re.compile(r"^\s*(?:```|~~~)"),
    re.compile(
        r"^\s*(?:def|class|import|from\s+\S+\s+import|function|const|let|var|export|"
        r"async\s+function|public|private|protected|func|fn|struct|interface|type|enum|"
        r"package|#include|using)\b"
    ),
    re.compile(r"[{;]\s*$"),
    re.compile(r"^\s*[})\]]+[;,]?\s*$"),
    re.compile(r"^\s*(?:return|if|for|while|elif|else)\b.*[:{]?\s*$"),
)

_BUILD_RES = (
    re.compile(r"\b(?:error|warning) TS\d+"),
    re.compile(r"^\s*error\[E\d+\]"),
    re.compile(r"^\s*(?:error|fatal error):\s"),
    re.compile(r"\.[A-Za-z]\w*:\d+:\d+:?\s*(?:fatal\s+)?error\b"),
    re.compile(r"^npm ERR!"),
    re.compile(r"^ERROR in "),
)

# Fraction of sampled lines an indicator family must reach to fire.
_STACK_THRESHOLD = 0.2
_LOG_THRESHOLD = 0.3
_CODE_THRESHOLD = 0.3

_LABELS = {
    ContentType.LOGS: "application/server logs",
    ContentType.STACKTRACE: "stack trace / error output",
    ContentType.CODE: "source code",
    ContentType.GENERIC: "plain text",
}


def sample_lines(text: str, limit: int = DEFAULT_SAMPLE_LINES) -> list[str]:
    """Return up to `limit` non-blank lines, each capped at MAX_LINE_LENGTH."""
    out: list[str] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        out.append(line[:MAX_LINE_LENGTH])
        if len(out) >= limit:
            break
    return out


def _hits(lines: list[str], patterns: tuple[re.Pattern[str], ...]) -> int:
    return sum(1 for line in lines if any(p.search(line) for p in patterns))


def detect_content_type(text: str, *, sample_size: int = DEFAULT_SAMPLE_LINES) -> ContentType:
    """Classify text as logs, stacktrace, code or generic.

    Priority when several families fire: stacktrace > logs > code.
    """
    lines = sample_lines(text, sample_size)
    if not lines:
        return ContentType.GENERIC

    n = len(lines)
    stack = _hits(lines, _STACK_RES) / n
    logs = _hits(lines, _LOG_RES) / n
    code = _hits(lines, _CODE_RES) / n

    if stack >= _STACK_THRESHOLD:
        return ContentType.STACKTRACE
    if logs >= _LOG_THRESHOLD:
        return ContentType.LOGS
    if code >= _CODE_THRESHOLD:
        return ContentType.CODE
    return ContentType.GENERIC


def is_build_output(text: str, *, sample_size: int = DEFAULT_SAMPLE_LINES) -> bool:
    """Return True when compiler/linter-style error markers are present."""
    lines = sample_lines(text, sample_size)
    if not lines:
        return False
    hits = _hits(lines, _BUILD_RES)
    return hits >= max(1, len(lines) // 20)


def describe_content_type(content_type: ContentType) -> str:
    return _LABELS[content_type]
