"""Line-level log parsing helpers shared by every summarizer."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import UTC, datetime

from ..errors import signature_for
from ..errors.patterns import MAX_LINE_LENGTH
from ..models import LogEntry, LogLevel, Timespan

# Time-only stamps are anchored to this date so durations stay deterministic.
_ANCHOR_DATE = datetime(1970, 1, 1, tzinfo=UTC)

_TIMESTAMP_RES = (
    re.compile(
        r"^\[?(?P<ts>\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}(?:[.,]\d+)?(?:Z|[+-]\d{2}:?\d{2})?)\]?\s*"
    ),
    re.compile(r"^\[?(?P<ts>\d{4}/\d{2}/\d{2} \d{2}:\d{2}:\d{2})\]?\s*"),
    re.compile(r"^\[?(?P<ts>\d{2}:\d{2}:\d{2}(?:\.\d+)?)\]?\s*"),
)
_CLF_TIMESTAMP_RE = re.compile(r"\[(?P<ts>\d{2}/\w{3}/\d{4}:\d{2}:\d{2}:\d{2} [+-]\d{4})\]")

_LEVEL_RES: tuple[tuple[LogLevel, re.Pattern[str]], ...] = (
    (LogLevel.ERROR, re.compile(r"\b(?:ERROR|ERR|FATAL|CRITICAL)\b", re.IGNORECASE)),
    (LogLevel.WARNING, re.compile(r"\bWARN(?:ING)?\b", re.IGNORECASE)),
    (LogLevel.INFO, re.compile(r"\bINFO\b", re.IGNORECASE)),
    (LogLevel.DEBUG, re.compile(r"\b(?:DEBUG|TRACE|VERBOSE)\b", re.IGNORECASE)),
)
_LEVEL_PREFIX_RE = re.compile(
    r"^[\[(]?\s*(?:ERROR|ERR|FATAL|CRITICAL|WARN|WARNING|INFO|DEBUG|TRACE|VERBOSE)\s*[\])]?\s*[:\-|]?\s*",
    re.IGNORECASE,
)

_KEY_EVENT_RES = (
    re.compile(r"\b(?:start(?:ed|ing)?|stop(?:ped|ping)?|shut(?:ting)?\s*down|restart(?:ed|ing)?)\b", re.IGNORECASE),
    re.compile(r"\b(?:connect(?:ed|ing)?|disconnect(?:ed|ing)?)\b", re.IGNORECASE),
    re.compile(r"\b(?:initiali[sz]ed|ready|listening)\b", re.IGNORECASE),
    re.compile(r"\b(?:crash(?:ed)?|panic|abort(?:ed)?)\b", re.IGNORECASE),
    re.compile(r"\b(?:deploy(?:ed|ing)?|release[d]?|version)\b", re.IGNORECASE),
    re.compile(r"\b(?:ERROR|FATAL|CRITICAL)\b"),
    re.compile(r"\bport\s+\d+\b", re.IGNORECASE),
    re.compile(r"\bserver\b", re.IGNORECASE),
)

_DATETIME_FORMATS = (
    "%Y/%m/%d %H:%M:%S",
    "%d/%b/%Y:%H:%M:%S %z",
)


def extract_timestamp(line: str) -> tuple[str | None, str]:
    """Split a leading timestamp off a line; returns (timestamp, rest)."""
    for pattern in _TIMESTAMP_RES:
        m = pattern.match(line)
        if m:
            return m.group("ts"), line[m.end() :]
    m = _CLF_TIMESTAMP_RE.search(line)
    if m:
        return m.group("ts"), line
    return None, line


def parse_level(text: str) -> LogLevel:
    """First matching level family wins; default is info."""
    for level, pattern in _LEVEL_RES:
        if pattern.search(text):
            return level
    return LogLevel.INFO


def parse_log_line(line: str) -> LogEntry | None:
    """Parse one line into a LogEntry (None for blank lines)."""
    capped = line[:MAX_LINE_LENGTH].rstrip()
    if not capped.strip():
        return None
    timestamp, rest = extract_timestamp(capped.strip())
    level = parse_level(rest)
    message = _LEVEL_PREFIX_RE.sub("", rest, count=1).strip() or rest.strip()
    return LogEntry(level=level, message=message, raw=capped, timestamp=timestamp)


def parse_log_lines(lines: Iterable[str]) -> list[LogEntry]:
    out = []
    for line in lines:
        entry = parse_log_line(line)
        if entry is not None:
            out.append(entry)
    return out


def parse_timestamp(value: str) -> datetime | None:
    """Parse the timestamp shapes recognized by `extract_timestamp`.

    Naive values are assumed UTC; time-only values are anchored to a fixed date.
    """
    s = value.strip()
    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00").replace(",", "."))
    except ValueError:
        dt = None
    if dt is None:
        for fmt in _DATETIME_FORMATS:
            try:
                dt = datetime.strptime(s, fmt)
                break
            except ValueError:
                continue
    if dt is None:
        m = re.fullmatch(r"(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?", s)
        if not m:
            return None
        micro = int((m.group(4) or "0")[:6].ljust(6, "0"))
        try:
            return _ANCHOR_DATE.replace(
                hour=int(m.group(1)), minute=int(m.group(2)), second=int(m.group(3)), microsecond=micro
            )
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def format_duration(ms: float) -> str:
    if ms < 1000:
        return f"{round(ms)}ms"
    if ms < 60_000:
        return f"{ms / 1000:.1f}s"
    if ms < 3_600_000:
        minutes = int(ms // 60_000)
        seconds = int((ms % 60_000) // 1000)
        return f"{minutes}m {seconds}s"
    hours = int(ms // 3_600_000)
    minutes = int((ms % 3_600_000) // 60_000)
    return f"{hours}h {minutes}m"


def calculate_timespan(entries: Sequence[LogEntry]) -> Timespan | None:
    """Earliest/latest parseable timestamps and the duration between them."""
    stamped: list[tuple[datetime, str]] = []
    for e in entries:
        if e.timestamp is None:
            continue
        dt = parse_timestamp(e.timestamp)
        if dt is not None:
            stamped.append((dt, e.timestamp))
    if not stamped:
        return None
    start = min(stamped, key=lambda x: x[0])
    end = max(stamped, key=lambda x: x[0])
    ms = (end[0] - start[0]).total_seconds() * 1000
    return Timespan(start=start[1], end=end[1], duration=format_duration(ms))


def filter_by_timeframe(
    entries: Sequence[LogEntry],
    since: str | None = None,
    until: str | None = None,
) -> list[LogEntry]:
    """Keep entries within [since, until]; entries without timestamps are kept."""
    if since is None and until is None:
        return list(entries)
    lo = _bound(since, "since")
    hi = _bound(until, "until")
    out = []
    for e in entries:
        dt = parse_timestamp(e.timestamp) if e.timestamp else None
        if dt is None:
            out.append(e)
            continue
        if lo is not None and dt < lo:
            continue
        if hi is not None and dt > hi:
            continue
        out.append(e)
    return out


def _bound(value: str | None, name: str) -> datetime | None:
    if value is None:
        return None
    dt = parse_timestamp(value)
    if dt is None:
        raise ValueError(f"{name} must be an ISO-8601 datetime, got '{value}'")
    return dt


def is_key_event(line: str) -> bool:
    return any(p.search(line) for p in _KEY_EVENT_RES)


def deduplicate_entries(entries: Iterable[LogEntry]) -> list[LogEntry]:
    """Merge entries sharing a message signature, most frequent first.

    The first-seen entry is the representative; ties keep first-seen order.
    """
    merged: dict[str, LogEntry] = {}
    counts: dict[str, int] = {}
    for e in entries:
        key = signature_for(e.message)
        if key not in merged:
            merged[key] = e
            counts[key] = 0
        counts[key] += e.count
    out = [replace(e, count=counts[key]) for key, e in merged.items()]
    out.sort(key=lambda e: -e.count)
    return out
