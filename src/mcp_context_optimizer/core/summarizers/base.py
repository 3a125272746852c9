"""Summarizer interface, options and shared assembly helpers."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from ..models import DetailLevel, LogEntry, LogLevel, LogStatistics, LogSummary
from .parsing import calculate_timespan, deduplicate_entries, filter_by_timeframe

DEFAULT_SAMPLE_LINES = 100


@dataclass(frozen=True, slots=True)
class EntryLimits:
    errors: int
    warnings: int
    events: int


MAX_ENTRIES: dict[DetailLevel, EntryLimits] = {
    DetailLevel.MINIMAL: EntryLimits(errors=5, warnings=3, events=5),
    DetailLevel.NORMAL: EntryLimits(errors=10, warnings=5, events=10),
    DetailLevel.DETAILED: EntryLimits(errors=20, warnings=10, events=20),
}


@dataclass(frozen=True, slots=True)
class SummarizeOptions:
    detail: DetailLevel = DetailLevel.NORMAL
    since: str | None = None  # ISO-8601 lower bound for timestamped entries
    until: str | None = None


class Summarizer(Protocol):
    """Summarizer interface: a cheap applicability probe plus summarize()."""

    name: str
    log_type: str

    def can_summarize(self, text: str) -> bool:
        ...

    def summarize(self, text: str, options: SummarizeOptions) -> LogSummary:
        ...


def sample(text: str, limit: int = DEFAULT_SAMPLE_LINES) -> list[str]:
    """First `limit` non-blank lines."""
    out: list[str] = []
    for line in text.splitlines():
        if line.strip():
            out.append(line)
            if len(out) >= limit:
                break
    return out


def hit_rate(lines: Sequence[str], matcher: Callable[[str], object]) -> float:
    """Fraction of lines for which `matcher(line)` is truthy."""
    if not lines:
        return 0.0
    return sum(1 for line in lines if matcher(line)) / len(lines)


def apply_timeframe(entries: list[LogEntry], options: SummarizeOptions) -> list[LogEntry]:
    return filter_by_timeframe(entries, options.since, options.until)


def level_counts(entries: Sequence[LogEntry]) -> dict[LogLevel, int]:
    counts = {level: 0 for level in LogLevel}
    for e in entries:
        counts[e.level] += e.count
    return counts


def truncate(entries: list[LogEntry], limit: int) -> tuple[list[LogEntry], int]:
    """Cap a list; returns (kept, omitted)."""
    return entries[:limit], max(len(entries) - limit, 0)


def base_statistics(entries: Sequence[LogEntry], total_lines: int, **extra: Any) -> LogStatistics:
    counts = level_counts(entries)
    return LogStatistics(
        total_lines=total_lines,
        error_count=counts[LogLevel.ERROR],
        warning_count=counts[LogLevel.WARNING],
        info_count=counts[LogLevel.INFO],
        debug_count=counts[LogLevel.DEBUG],
        timespan=calculate_timespan(entries),
        **extra,
    )


def assemble_summary(
    log_type: str,
    overview: str,
    *,
    errors: list[LogEntry],
    warnings: list[LogEntry],
    events: list[LogEntry],
    statistics: LogStatistics,
    detail: DetailLevel,
) -> LogSummary:
    """Deduplicate errors/warnings by signature, then cap every list."""
    limits = MAX_ENTRIES[detail]
    kept_errors, more_errors = truncate(deduplicate_entries(errors), limits.errors)
    kept_warnings, more_warnings = truncate(deduplicate_entries(warnings), limits.warnings)
    kept_events, more_events = truncate(events, limits.events)
    omitted = {
        name: n
        for name, n in (("errors", more_errors), ("warnings", more_warnings), ("key_events", more_events))
        if n
    }
    return LogSummary(
        log_type=log_type,
        overview=overview,
        errors=kept_errors,
        warnings=kept_warnings,
        key_events=kept_events,
        statistics=statistics,
        omitted=omitted,
    )
