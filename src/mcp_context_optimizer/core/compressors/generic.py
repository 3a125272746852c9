"""Importance-filtering compressor for arbitrary text."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from ..models import CompressionResult, ScoredSegment, Segment
from ..scoring.segments import cap_segments, compile_patterns, score_segments, segment_lines, segment_paragraphs
from ..tokens import count_tokens
from .base import CompressOptions, build_result, select_segments, unchanged

logger = logging.getLogger(__name__)


def collapse_repeats(lines: list[str]) -> list[str]:
    """Collapse runs of identical consecutive lines into `line (×N)`."""
    out: list[str] = []
    prev: str | None = None
    run = 0
    for line in lines:
        if line == prev and line.strip():
            run += 1
            continue
        if prev is not None:
            out.append(f"{prev} (×{run})" if run > 1 else prev)
        prev, run = line, 1
    if prev is not None:
        out.append(f"{prev} (×{run})" if run > 1 else prev)
    return out


def _has_paragraphs(lines: list[str]) -> bool:
    blank = sum(1 for line in lines if not line.strip())
    if blank < 2:
        return False
    return (len(lines) - blank) / (blank + 1) >= 2


def _span(segment: Segment) -> int:
    return segment.end_line - segment.start_line + 1


def render_selection(
    segments: list[Segment],
    kept: list[ScoredSegment],
    *,
    joiner: str = "\n",
) -> tuple[str, int]:
    """Render kept segments in document order with omission markers.

    Returns the text and the number of omitted segments.
    """
    kept_starts = {(s.segment.start_line, s.segment.text) for s in kept}
    parts: list[str] = []
    omitted_lines = 0
    omitted_segments = 0
    for seg in segments:
        if (seg.start_line, seg.text) in kept_starts:
            if omitted_lines:
                parts.append(f"[... {omitted_lines} lines omitted ...]")
                omitted_lines = 0
            parts.append(seg.text)
        else:
            omitted_lines += _span(seg)
            omitted_segments += 1
    if omitted_lines:
        parts.append(f"[... {omitted_lines} lines omitted ...]")
    return joiner.join(parts), omitted_segments


@dataclass(frozen=True, slots=True)
class GenericCompressor:
    """Keep the most important segments within a detail-driven token budget."""

    name: str = "importance-filtering"

    def compress(self, content: str, options: CompressOptions) -> CompressionResult:
        counter = options.counter
        original_tokens = count_tokens(content, counter)
        if original_tokens <= options.min_tokens:
            return unchanged(content, counter)

        preserve = compile_patterns(options.preserve_patterns)
        lines = collapse_repeats(content.splitlines())
        text = "\n".join(lines)

        if _has_paragraphs(lines):
            segments = segment_paragraphs(text, preserve=preserve, counter=counter)
            joiner = "\n\n"
        else:
            segments = segment_lines(text, preserve=preserve, counter=counter)
            joiner = "\n"
        segments = cap_segments(segments, options.max_segments, joiner=joiner)
        if len(segments) <= 1:
            if text == content:
                return unchanged(content, counter)
            # Only repeat collapsing applied.
            collapsed = build_result(content, text, self.name, counter)
            if collapsed.stats.compressed_tokens >= original_tokens:
                return unchanged(content, counter)
            return collapsed

        budget = math.ceil(original_tokens * options.budget_ratio())
        kept = select_segments(score_segments(segments, options.weights), budget)
        compressed, omitted = render_selection(segments, kept, joiner=joiner)

        result = build_result(
            content,
            compressed,
            self.name,
            counter,
            omitted_info=f"{omitted} of {len(segments)} segments omitted" if omitted else None,
            preserved_segments=[s.text for s in kept if s.is_preserved],
        )
        if result.stats.compressed_tokens >= original_tokens:
            logger.debug("Importance filtering did not shrink input; returning original")
            return unchanged(content, counter)
        return result
