"""Ratio-driven semantic compressor for long prose."""

from __future__ import annotations

import math
from dataclasses import dataclass

from ..models import CompressionResult
from ..scoring.segments import (
    cap_segments,
    compile_patterns,
    score_segments,
    segment_paragraphs,
    segment_sentences,
)
from ..scoring.tfidf import top_terms
from ..tokens import count_tokens
from .base import CompressOptions, build_result, select_segments, unchanged

DEFAULT_TARGET_RATIO = 0.5


@dataclass(frozen=True, slots=True)
class SemanticCompressor:
    """Keep roughly `target_ratio` of the tokens, chosen by importance.

    Paragraphs and fenced code blocks are the unit of selection; a single
    long paragraph is split into sentences instead.
    """

    name: str = "semantic-compression"

    def compress(self, content: str, options: CompressOptions) -> CompressionResult:
        counter = options.counter
        original_tokens = count_tokens(content, counter)
        if original_tokens <= options.min_tokens:
            return unchanged(content, counter, technique=f"{self.name} (no-op: content too small)")

        preserve = compile_patterns(options.preserve_patterns)
        segments = segment_paragraphs(content, preserve=preserve, counter=counter)
        joiner = "\n\n"
        if len(segments) == 1:
            segments = segment_sentences(content, preserve=preserve, counter=counter)
            joiner = " "
        if len(segments) <= 1:
            return unchanged(content, counter, technique=f"{self.name} (no-op: single segment)")
        segments = cap_segments(segments, options.max_segments, joiner=joiner)

        ratio = options.target_ratio if options.target_ratio is not None else DEFAULT_TARGET_RATIO
        budget = math.ceil(original_tokens * ratio)
        scored = score_segments(segments, options.weights)
        kept = select_segments(scored, budget)
        if not kept:
            # Budget smaller than every segment: keep the single best one.
            best = min(range(len(scored)), key=lambda i: (-scored[i].importance, i))
            kept = [scored[best]]

        compressed = joiner.join(s.text for s in kept)
        kept_ids = {id(s) for s in kept}
        dropped = [s.text for s in scored if id(s) not in kept_ids]
        omitted_info = None
        if dropped:
            topics = ", ".join(top_terms(dropped, 5))
            omitted_info = f"{len(dropped)} of {len(scored)} segments omitted"
            if topics:
                omitted_info += f" (topics: {topics})"

        result = build_result(
            content,
            compressed,
            self.name,
            counter,
            omitted_info=omitted_info,
            preserved_segments=[s.text for s in kept if s.is_preserved],
        )
        if result.stats.compressed_tokens >= original_tokens:
            return unchanged(content, counter)
        return result
