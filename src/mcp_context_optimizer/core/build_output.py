"""Build-output analysis: group compiler/linter errors by signature."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .errors import GroupingResult, GroupingStats, calculate_stats, format_groups, group_by_signature
from .models import DetailLevel, LogLevel
from .summarizers import classify_build_line, detect_build_tool
from .tokens import TokenCounter

_LOCATIONS_PER_DETAIL = {
    DetailLevel.MINIMAL: 0,
    DetailLevel.NORMAL: 1,
    DetailLevel.DETAILED: 3,
}


@dataclass(frozen=True, slots=True)
class BuildAnalysis:
    tool: str
    grouping: GroupingResult
    stats: GroupingStats
    warning_count: int
    text: str

    @property
    def detected_type(self) -> str:
        return f"build-{self.tool}"


def analyze_build_output(
    content: str,
    *,
    detail: DetailLevel = DetailLevel.NORMAL,
    fmt: Literal["plain", "markdown"] = "plain",
    counter: TokenCounter | None = None,
) -> BuildAnalysis:
    tool = detect_build_tool(content)
    lines = content.splitlines()
    grouping = group_by_signature(lines)
    stats = calculate_stats(grouping, counter)
    warnings = sum(1 for line in lines if classify_build_line(line) is LogLevel.WARNING)

    header = (
        f"{tool} build: {stats.unique_errors} unique errors "
        f"({grouping.total_error_lines} total), {warnings} warnings"
    )
    body = format_groups(grouping, fmt=fmt, max_locations=_LOCATIONS_PER_DETAIL[detail])
    text = f"{header}\n{body}" if body else header
    return BuildAnalysis(tool=tool, grouping=grouping, stats=stats, warning_count=warnings, text=text)
