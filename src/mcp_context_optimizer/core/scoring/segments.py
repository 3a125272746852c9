"""Segmentation and importance scoring.

Segments are scored by a weighted sum of three normalized signals:
rarity (TF-IDF), position (U-shaped, favoring the start and the end) and
keyword salience. Every compression strategy builds on this module.
"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from dataclasses import dataclass

from ..models import ScoredSegment, Segment, SegmentScores, SegmentType
from ..tokens import TokenCounter, count_tokens
from .tfidf import compute_tfidf_scores

DEFAULT_MAX_SEGMENTS = 2000
_WEIGHT_TOLERANCE = 1e-6


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    tfidf: float = 0.4
    position: float = 0.3
    keyword: float = 0.3

    def __post_init__(self) -> None:
        for name in ("tfidf", "position", "keyword"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"weight '{name}' must be within [0, 1], got {value}")
        total = self.tfidf + self.position + self.keyword
        if abs(total - 1.0) > _WEIGHT_TOLERANCE:
            raise ValueError(f"scoring weights must sum to 1.0, got {total:.4f}")


DEFAULT_WEIGHTS = ScoringWeights()

_KEYWORD_BOOSTS: tuple[tuple[re.Pattern[str], float], ...] = (
    (
        re.compile(
            r"\b(?:errors?|fail(?:s|ed|ure)?|exception|fatal|crash(?:ed)?|panic|critical|bug)\b",
            re.IGNORECASE,
        ),
        0.4,
    ),
    (
        re.compile(
            r"\b(?:must|should|required|important|note|warning|todo|fixme|never|always)\b",
            re.IGNORECASE,
        ),
        0.3,
    ),
    (re.compile(r"```|~~~|`[^`\n]+`"), 0.2),
    (re.compile(r"^\s*(?:#{1,6}\s|[-*+]\s|\d+[.)]\s|>\s?)", re.MULTILINE), 0.15),
    (
        re.compile(
            r"\b(?:function|class|def|return|import|export|const|let|var|async|await|"
            r"interface|struct|enum|impl|fn)\b"
        ),
        0.1,
    ),
    (re.compile(r"\?\s*$"), 0.15),
    (re.compile(r"https?://\S+|(?<!\w)@\w+|(?<!\w)#\w+"), 0.1),
)

_FENCE_RE = re.compile(r"^\s*(```|~~~)")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+(?=\S)")
_ERROR_LINE_RE = _KEYWORD_BOOSTS[0][0]


def compile_patterns(patterns: Sequence[str] | None) -> list[re.Pattern[str]]:
    """Compile caller-supplied preserve patterns; invalid regexes raise ValueError."""
    out: list[re.Pattern[str]] = []
    for p in patterns or ():
        try:
            out.append(re.compile(p))
        except re.error as e:
            raise ValueError(f"Invalid preserve pattern '{p}': {e}") from e
    return out


def position_weight(position: float) -> float:
    """U-shaped step function over a 0..1 relative position."""
    if position <= 0.1 or position >= 0.9:
        return 1.0
    if position <= 0.2 or position >= 0.8:
        return 0.85
    if position <= 0.3 or position >= 0.7:
        return 0.7
    return 0.6


def keyword_boost(text: str) -> float:
    """Sum the boosts of every matching keyword class, capped at 1.0."""
    total = sum(boost for pattern, boost in _KEYWORD_BOOSTS if pattern.search(text))
    return min(total, 1.0)


def create_segment(
    text: str,
    start_line: int,
    end_line: int,
    total_lines: int,
    segment_type: SegmentType,
    *,
    preserve: Sequence[re.Pattern[str]] = (),
    counter: TokenCounter | None = None,
) -> Segment:
    """Build a Segment; line numbers are 0-based."""
    position = start_line / max(total_lines - 1, 1)
    return Segment(
        text=text,
        start_line=start_line,
        end_line=end_line,
        type=segment_type,
        position=min(max(position, 0.0), 1.0),
        tokens=count_tokens(text, counter),
        is_preserved=any(p.search(text) for p in preserve),
    )


def score_segment(
    segment: Segment,
    tfidf_score: float,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> ScoredSegment:
    pos = position_weight(segment.position)
    kw = keyword_boost(segment.text)
    tfidf = min(max(tfidf_score, 0.0), 1.0)
    combined = weights.tfidf * tfidf + weights.position * pos + weights.keyword * kw
    combined = min(max(combined, 0.0), 1.0)
    return ScoredSegment(
        segment=segment,
        importance=combined,
        scores=SegmentScores(tfidf=tfidf, position=pos, keyword=kw, combined=combined),
    )


def score_segments(
    segments: Sequence[Segment],
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[ScoredSegment]:
    """Score every segment once, preserving input order."""
    tfidf = compute_tfidf_scores([s.text for s in segments])
    return [score_segment(s, t, weights) for s, t in zip(segments, tfidf)]


def segment_lines(
    text: str,
    *,
    preserve: Sequence[re.Pattern[str]] = (),
    counter: TokenCounter | None = None,
) -> list[Segment]:
    """One segment per non-blank line."""
    lines = text.splitlines()
    total = len(lines)
    return [
        create_segment(line, i, i, total, SegmentType.LINE, preserve=preserve, counter=counter)
        for i, line in enumerate(lines)
        if line.strip()
    ]


def segment_paragraphs(
    text: str,
    *,
    preserve: Sequence[re.Pattern[str]] = (),
    counter: TokenCounter | None = None,
) -> list[Segment]:
    """Split on blank lines; fenced code blocks stay whole.

    Paragraphs that mention errors are split into lines so individual error
    lines can be kept without their neighbours.
    """
    lines = text.splitlines()
    total = len(lines)
    segments: list[Segment] = []
    buf: list[str] = []
    buf_start = 0

    def flush(end: int) -> None:
        if not buf:
            return
        para = "\n".join(buf)
        if len(buf) > 1 and _ERROR_LINE_RE.search(para):
            for offset, line in enumerate(buf):
                if line.strip():
                    segments.append(
                        create_segment(
                            line,
                            buf_start + offset,
                            buf_start + offset,
                            total,
                            SegmentType.LINE,
                            preserve=preserve,
                            counter=counter,
                        )
                    )
        else:
            segments.append(
                create_segment(
                    para, buf_start, end, total, SegmentType.PARAGRAPH, preserve=preserve, counter=counter
                )
            )
        buf.clear()

    i = 0
    while i < total:
        line = lines[i]
        fence = _FENCE_RE.match(line)
        if fence:
            flush(i - 1)
            marker = fence.group(1)
            start = i
            i += 1
            while i < total and not lines[i].strip().startswith(marker):
                i += 1
            end = min(i, total - 1)
            block = "\n".join(lines[start : end + 1])
            segments.append(
                create_segment(
                    block, start, end, total, SegmentType.CODE_BLOCK, preserve=preserve, counter=counter
                )
            )
            i = end + 1
            continue
        if not line.strip():
            flush(i - 1)
        else:
            if not buf:
                buf_start = i
            buf.append(line)
        i += 1
    flush(total - 1)
    return segments


def segment_sentences(
    text: str,
    *,
    preserve: Sequence[re.Pattern[str]] = (),
    counter: TokenCounter | None = None,
) -> list[Segment]:
    """Split prose into sentences; line numbers refer to the source line."""
    lines = text.splitlines()
    total = len(lines)
    segments: list[Segment] = []
    for i, line in enumerate(lines):
        for sentence in _SENTENCE_SPLIT_RE.split(line.strip()):
            if sentence:
                segments.append(
                    create_segment(
                        sentence, i, i, total, SegmentType.SENTENCE, preserve=preserve, counter=counter
                    )
                )
    return segments


def cap_segments(
    segments: list[Segment],
    max_segments: int = DEFAULT_MAX_SEGMENTS,
    *,
    joiner: str = "\n",
) -> list[Segment]:
    """Merge runs of adjacent segments so at most `max_segments` remain."""
    if max_segments < 1 or len(segments) <= max_segments:
        return segments
    run = math.ceil(len(segments) / max_segments)
    merged: list[Segment] = []
    for i in range(0, len(segments), run):
        chunk = segments[i : i + run]
        first = chunk[0]
        merged.append(
            Segment(
                text=joiner.join(s.text for s in chunk),
                start_line=first.start_line,
                end_line=chunk[-1].end_line,
                type=first.type,
                position=first.position,
                tokens=sum(s.tokens for s in chunk),
                is_preserved=any(s.is_preserved for s in chunk),
            )
        )
    return merged
