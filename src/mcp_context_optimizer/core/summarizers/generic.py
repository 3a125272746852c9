"""Fallback summarizer: level classification plus key events."""

from __future__ import annotations

from dataclasses import dataclass

from ..models import LogLevel, LogSummary
from .base import SummarizeOptions, apply_timeframe, assemble_summary, base_statistics
from .parsing import is_key_event, parse_log_lines


@dataclass(frozen=True, slots=True)
class GenericLogSummarizer:
    name: str = "generic-logs"
    log_type: str = "generic"

    def can_summarize(self, text: str) -> bool:
        return True

    def summarize(self, text: str, options: SummarizeOptions) -> LogSummary:
        entries = apply_timeframe(parse_log_lines(text.splitlines()), options)
        errors = [e for e in entries if e.level is LogLevel.ERROR]
        warnings = [e for e in entries if e.level is LogLevel.WARNING]
        events = [
            e for e in entries if e.level not in (LogLevel.ERROR, LogLevel.WARNING) and is_key_event(e.raw)
        ]
        stats = base_statistics(entries, len(entries))

        overview = f"{len(entries)} lines - {len(errors)} errors, {len(warnings)} warnings"
        if stats.timespan is not None:
            overview += f" over {stats.timespan.duration}"
        return assemble_summary(
            self.log_type,
            overview,
            errors=errors,
            warnings=warnings,
            events=events,
            statistics=stats,
            detail=options.detail,
        )
