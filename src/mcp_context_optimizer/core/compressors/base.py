"""Shared compressor interface, options and selection helpers."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from ..models import CompressionResult, CompressionStats, DetailLevel, ScoredSegment, reduction_percent
from ..scoring.segments import DEFAULT_MAX_SEGMENTS, DEFAULT_WEIGHTS, ScoringWeights
from ..tokens import TokenCounter, count_tokens

MIN_COMPRESS_TOKENS = 50

# Share of the original token count kept per detail level.
BUDGET_RATIOS: dict[DetailLevel, float] = {
    DetailLevel.MINIMAL: 0.3,
    DetailLevel.NORMAL: 0.5,
    DetailLevel.DETAILED: 0.7,
}


@dataclass(frozen=True, slots=True)
class CompressOptions:
    detail: DetailLevel = DetailLevel.NORMAL
    target_ratio: float | None = None  # overrides the detail budget when set
    preserve_patterns: tuple[str, ...] = ()
    weights: ScoringWeights = DEFAULT_WEIGHTS
    min_tokens: int = MIN_COMPRESS_TOKENS
    max_segments: int = DEFAULT_MAX_SEGMENTS
    counter: TokenCounter | None = None

    def __post_init__(self) -> None:
        if self.target_ratio is not None and not 0.0 < self.target_ratio <= 1.0:
            raise ValueError(f"target_ratio must be within (0, 1], got {self.target_ratio}")

    def budget_ratio(self) -> float:
        if self.target_ratio is not None:
            return self.target_ratio
        return BUDGET_RATIOS[self.detail]


class Compressor(Protocol):
    """Strategy interface: never raises on malformed content."""

    name: str

    def compress(self, content: str, options: CompressOptions) -> CompressionResult:
        ...


def build_result(
    original: str,
    compressed: str,
    technique: str,
    counter: TokenCounter | None = None,
    *,
    omitted_info: str | None = None,
    preserved_segments: Sequence[str] = (),
    extra: dict[str, Any] | None = None,
) -> CompressionResult:
    original_tokens = count_tokens(original, counter)
    compressed_tokens = count_tokens(compressed, counter)
    return CompressionResult(
        compressed=compressed,
        stats=CompressionStats(
            original_tokens=original_tokens,
            compressed_tokens=compressed_tokens,
            reduction_percent=reduction_percent(original_tokens, compressed_tokens),
            technique=technique,
            original_lines=len(original.splitlines()),
            compressed_lines=len(compressed.splitlines()),
        ),
        omitted_info=omitted_info,
        preserved_segments=list(preserved_segments),
        extra=dict(extra or {}),
    )


def unchanged(
    content: str,
    counter: TokenCounter | None = None,
    *,
    technique: str = "none",
    extra: dict[str, Any] | None = None,
) -> CompressionResult:
    """Return the input as-is with zero reduction."""
    return build_result(content, content, technique, counter, extra=extra)


def select_segments(scored: Sequence[ScoredSegment], budget: int) -> list[ScoredSegment]:
    """Pick segments for a token budget and return them in document order.

    Preserved segments are always kept. The rest are added by descending
    importance (ties by position) while they still fit the budget.
    """
    keep = {i for i, s in enumerate(scored) if s.is_preserved}
    used = sum(scored[i].tokens for i in keep)
    candidates = sorted(
        (i for i in range(len(scored)) if i not in keep),
        key=lambda i: (-scored[i].importance, i),
    )
    for i in candidates:
        if used + scored[i].tokens <= budget:
            keep.add(i)
            used += scored[i].tokens
    return [scored[i] for i in sorted(keep)]
