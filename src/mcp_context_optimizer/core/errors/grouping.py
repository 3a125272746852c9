"""Group error lines by normalized signature."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal

from ..models import ErrorParts, reduction_percent
from ..tokens import TokenCounter, count_tokens
from .normalize import create_signature, format_location
from .patterns import MAX_LINE_LENGTH, extract_error_parts

logger = logging.getLogger(__name__)

OutputFormat = Literal["plain", "markdown"]


@dataclass(slots=True)
class ErrorGroup:
    """All lines sharing one signature; built once by `group_by_signature`."""

    signature: str
    representative: str
    first_occurrence: int  # 1-based input line number
    count: int = 0
    code: str | None = None
    message: str = ""
    locations: list[str] = field(default_factory=list)
    members: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class GroupingResult:
    groups: dict[str, ErrorGroup]  # insertion order = first occurrence
    non_error_lines: list[str]
    total_error_lines: int
    raw_lines: list[str]


@dataclass(frozen=True, slots=True)
class GroupingStats:
    original_lines: int
    deduplicated_lines: int
    unique_errors: int
    total_duplicates: int
    original_tokens: int
    compressed_tokens: int
    reduction_percent: float


def _representative(parts: ErrorParts) -> str:
    if parts.code:
        return f"{parts.code}: {parts.message}"
    return parts.raw.strip()


def compile_custom_pattern(pattern: str | None) -> re.Pattern[str] | None:
    """Compile a caller-supplied error regex, failing loudly on bad syntax."""
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ValueError(f"Invalid error pattern '{pattern}': {e}") from e


def group_by_signature(
    lines: Iterable[str],
    *,
    custom_pattern: re.Pattern[str] | None = None,
) -> GroupingResult:
    """Bucket lines by signature, preserving first-seen order.

    Lines matched by `custom_pattern` are always treated as errors, even when
    no known shape or keyword recognizes them.
    """
    groups: dict[str, ErrorGroup] = {}
    non_error: list[str] = []
    raw_lines: list[str] = []
    total = 0

    for line_no, line in enumerate(lines, start=1):
        line = line.rstrip()
        if not line.strip():
            continue
        raw_lines.append(line)

        parts = extract_error_parts(line)
        if parts is None and custom_pattern is not None and custom_pattern.search(line[:MAX_LINE_LENGTH]):
            capped = line[:MAX_LINE_LENGTH]
            parts = ErrorParts(message=capped.strip(), raw=capped)
        if parts is None:
            non_error.append(line)
            continue

        total += 1
        sig = create_signature(parts)
        group = groups.get(sig)
        if group is None:
            group = ErrorGroup(
                signature=sig,
                representative=_representative(parts),
                first_occurrence=line_no,
                code=parts.code,
                message=parts.message,
            )
            groups[sig] = group
        group.count += 1
        group.members.append(line)
        loc = format_location(parts)
        if loc and loc not in group.locations:
            group.locations.append(loc)

    logger.debug("Grouped %s error lines into %s signatures", total, len(groups))
    return GroupingResult(
        groups=groups,
        non_error_lines=non_error,
        total_error_lines=total,
        raw_lines=raw_lines,
    )


def format_groups(
    result: GroupingResult,
    *,
    fmt: OutputFormat = "plain",
    max_locations: int = 0,
) -> str:
    """Render one line per group in first-occurrence order."""
    out: list[str] = []
    for group in result.groups.values():
        suffix = f" (×{group.count})" if group.count > 1 else ""
        if fmt == "markdown":
            out.append(f"- `{group.representative}`{suffix}")
        else:
            out.append(f"{group.representative}{suffix}")

        if max_locations > 0 and group.locations:
            shown = ", ".join(group.locations[:max_locations])
            extra = len(group.locations) - max_locations
            more = f" (+{extra} more)" if extra > 0 else ""
            prefix = "  - at " if fmt == "markdown" else "    at "
            out.append(f"{prefix}{shown}{more}")
    return "\n".join(out)


def calculate_stats(result: GroupingResult, counter: TokenCounter | None = None) -> GroupingStats:
    """Token-based statistics of the rendered groups versus the raw input."""
    unique = len(result.groups)
    original_tokens = count_tokens("\n".join(result.raw_lines), counter)
    compressed_tokens = count_tokens(format_groups(result), counter)
    return GroupingStats(
        original_lines=len(result.raw_lines),
        deduplicated_lines=unique + len(result.non_error_lines),
        unique_errors=unique,
        total_duplicates=result.total_error_lines - unique,
        original_tokens=original_tokens,
        compressed_tokens=compressed_tokens,
        reduction_percent=reduction_percent(original_tokens, compressed_tokens),
    )
