"""Core data models for content optimization.

Every structure here is created per call and discarded once the caller has
consumed the result; nothing is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ContentType(str, Enum):
    """Closed set of categories produced by the content detector."""

    LOGS = "logs"
    STACKTRACE = "stacktrace"
    CODE = "code"
    GENERIC = "generic"


class DetailLevel(str, Enum):
    """Three-tier verbosity knob for summaries and compression budgets."""

    MINIMAL = "minimal"
    NORMAL = "normal"
    DETAILED = "detailed"


class LogLevel(str, Enum):
    """Normalized severity levels used by the summarizers."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    DEBUG = "debug"


class SegmentType(str, Enum):
    SENTENCE = "sentence"
    LINE = "line"
    PARAGRAPH = "paragraph"
    CODE_BLOCK = "code-block"


@dataclass(frozen=True, slots=True)
class Segment:
    """Contiguous slice of input text that is scored independently."""

    text: str
    start_line: int
    end_line: int
    type: SegmentType
    position: float  # 0..1, relative to total lines
    tokens: int
    is_preserved: bool = False


@dataclass(frozen=True, slots=True)
class SegmentScores:
    tfidf: float
    position: float
    keyword: float
    combined: float


@dataclass(frozen=True, slots=True)
class ScoredSegment:
    """Segment plus its importance; never mutated after scoring."""

    segment: Segment
    importance: float
    scores: SegmentScores

    @property
    def text(self) -> str:
        return self.segment.text

    @property
    def start_line(self) -> int:
        return self.segment.start_line

    @property
    def tokens(self) -> int:
        return self.segment.tokens

    @property
    def is_preserved(self) -> bool:
        return self.segment.is_preserved


@dataclass(frozen=True, slots=True)
class ErrorParts:
    """Structured pieces extracted from one error line."""

    message: str
    raw: str
    file: str | None = None
    line: int | None = None
    column: int | None = None
    code: str | None = None


@dataclass(frozen=True, slots=True)
class LogEntry:
    """One parsed log line; `count` only grows through deduplication."""

    level: LogLevel
    message: str
    raw: str
    timestamp: str | None = None
    count: int = 1
    context: str | None = None


@dataclass(frozen=True, slots=True)
class Timespan:
    start: str
    end: str
    duration: str


@dataclass(frozen=True, slots=True)
class EndpointStats:
    """Aggregated request statistics for one normalized endpoint."""

    endpoint: str
    count: int
    avg_response_time: float | None
    error_count: int


@dataclass(frozen=True, slots=True)
class LogStatistics:
    """Aggregate counts shared by every summarizer plus family extensions."""

    total_lines: int
    error_count: int
    warning_count: int
    info_count: int
    debug_count: int
    timespan: Timespan | None = None

    # server logs
    request_count: int | None = None
    status_codes: dict[int, int] | None = None
    endpoints: list[EndpointStats] | None = None

    # test runs
    pass_count: int | None = None
    fail_count: int | None = None
    skip_count: int | None = None
    test_duration: int | None = None  # milliseconds

    # builds
    build_tool: str | None = None
    build_duration: int | None = None  # milliseconds
    bundle_size: str | None = None
    error_codes: dict[str, int] | None = None


@dataclass(frozen=True, slots=True)
class LogSummary:
    """Terminal, read-only output of one summarize call."""

    log_type: str
    overview: str
    errors: list[LogEntry]
    warnings: list[LogEntry]
    key_events: list[LogEntry]
    statistics: LogStatistics
    omitted: dict[str, int] = field(default_factory=dict)  # "+N more" per section


@dataclass(frozen=True, slots=True)
class CompressionStats:
    original_tokens: int
    compressed_tokens: int
    reduction_percent: float
    technique: str
    original_lines: int | None = None
    compressed_lines: int | None = None


@dataclass(frozen=True, slots=True)
class CompressionResult:
    """Output of every compression strategy.

    `reduction_percent` may be <= 0 for tiny inputs; callers must tolerate it.
    """

    compressed: str
    stats: CompressionStats
    omitted_info: str | None = None
    preserved_segments: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)


def reduction_percent(original_tokens: int, compressed_tokens: int) -> float:
    """Token-based reduction, rounded to one decimal (0 when original is empty)."""
    if original_tokens <= 0:
        return 0.0
    return round((1 - compressed_tokens / original_tokens) * 100, 1)
