"""Error-line extraction, normalization and signature grouping."""

from __future__ import annotations

from .grouping import (
    ErrorGroup,
    GroupingResult,
    GroupingStats,
    calculate_stats,
    compile_custom_pattern,
    format_groups,
    group_by_signature,
)
from .normalize import create_signature, format_location, normalize_error_line, signature_for
from .patterns import ERROR_EXTRACTORS, extract_error_parts, is_likely_error

__all__ = [
    "ERROR_EXTRACTORS",
    "ErrorGroup",
    "GroupingResult",
    "GroupingStats",
    "calculate_stats",
    "compile_custom_pattern",
    "create_signature",
    "extract_error_parts",
    "format_groups",
    "format_location",
    "group_by_signature",
    "is_likely_error",
    "normalize_error_line",
    "signature_for",
]
