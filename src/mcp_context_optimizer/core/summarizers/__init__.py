"""Log summarizers.

The registry below is the single place that fixes discovery order:
server -> test -> build -> generic. The first applicable summarizer wins and
the generic one always applies.
"""

from __future__ import annotations

from ..models import LogSummary
from .base import MAX_ENTRIES, EntryLimits, SummarizeOptions, Summarizer
from .build import BuildLogSummarizer, classify_build_line, detect_build_tool
from .generic import GenericLogSummarizer
from .parsing import (
    calculate_timespan,
    deduplicate_entries,
    filter_by_timeframe,
    format_duration,
    is_key_event,
    parse_level,
    parse_log_line,
    parse_timestamp,
)
from .render import render_summary
from .server import ServerLogSummarizer, normalize_path, parse_request
from .testrun import TestLogSummarizer

SUMMARIZERS: tuple[Summarizer, ...] = (
    ServerLogSummarizer(),
    TestLogSummarizer(),
    BuildLogSummarizer(),
    GenericLogSummarizer(),
)


def get_summarizer(text: str, preferred: str | None = None) -> Summarizer:
    """Return the preferred summarizer by log type, else the first applicable."""
    if preferred:
        for s in SUMMARIZERS:
            if s.log_type == preferred or s.name == preferred:
                return s
        valid = ", ".join(s.log_type for s in SUMMARIZERS)
        raise ValueError(f"Unknown log type '{preferred}'. Valid values: {valid}.")
    for s in SUMMARIZERS:
        if s.can_summarize(text):
            return s
    return SUMMARIZERS[-1]


def summarize_logs(
    text: str,
    options: SummarizeOptions | None = None,
    *,
    log_type: str | None = None,
) -> LogSummary:
    return get_summarizer(text, log_type).summarize(text, options or SummarizeOptions())


__all__ = [
    "MAX_ENTRIES",
    "SUMMARIZERS",
    "BuildLogSummarizer",
    "EntryLimits",
    "GenericLogSummarizer",
    "ServerLogSummarizer",
    "SummarizeOptions",
    "Summarizer",
    "TestLogSummarizer",
    "calculate_timespan",
    "classify_build_line",
    "deduplicate_entries",
    "detect_build_tool",
    "filter_by_timeframe",
    "format_duration",
    "get_summarizer",
    "is_key_event",
    "normalize_path",
    "parse_level",
    "parse_log_line",
    "parse_request",
    "parse_timestamp",
    "render_summary",
    "summarize_logs",
]
