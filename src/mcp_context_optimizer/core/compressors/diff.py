"""Diff-aware compression for unified diffs / patches."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from enum import Enum

from ..models import CompressionResult, Segment, SegmentType
from ..scoring.segments import score_segments
from ..tokens import TokenCounter, count_tokens
from .base import CompressOptions, build_result, select_segments, unchanged

logger = logging.getLogger(__name__)

_DIFF_GIT_RE = re.compile(r"^diff --git a/(?P<a>\S+) b/(?P<b>\S+)")
_OLD_FILE_RE = re.compile(r"^--- (?:a/)?(?P<path>\S+)")
_NEW_FILE_RE = re.compile(r"^\+\+\+ (?:b/)?(?P<path>\S+)")
_HUNK_RE = re.compile(
    r"^@@ -(?P<old>\d+)(?:,(?P<old_count>\d+))? \+(?P<new>\d+)(?:,(?P<new_count>\d+))? @@(?P<ctx>.*)$"
)

CONTEXT_LINES = 1


class DiffStrategy(str, Enum):
    HUNKS_ONLY = "hunks-only"
    SUMMARY = "summary"
    SEMANTIC = "semantic"


@dataclass(slots=True)
class Hunk:
    header: str
    context: str
    new_start: int
    lines: list[str] = field(default_factory=list)

    @property
    def additions(self) -> int:
        return sum(1 for line in self.lines if line.startswith("+"))

    @property
    def deletions(self) -> int:
        return sum(1 for line in self.lines if line.startswith("-"))

    def text(self) -> str:
        return "\n".join([self.header, *self.lines])


@dataclass(slots=True)
class FileDiff:
    path: str
    hunks: list[Hunk] = field(default_factory=list)

    @property
    def additions(self) -> int:
        return sum(h.additions for h in self.hunks)

    @property
    def deletions(self) -> int:
        return sum(h.deletions for h in self.hunks)


def parse_unified_diff(text: str) -> list[FileDiff]:
    """Parse a unified diff into files and hunks; unknown lines are skipped.

    Hunk bodies are consumed using the line counts from the `@@` header, so
    removed lines that start with `--` are not mistaken for file headers.
    """
    files: list[FileDiff] = []
    current: FileDiff | None = None
    hunk: Hunk | None = None
    old_left = new_left = 0

    for line in text.splitlines():
        if hunk is not None and (old_left > 0 or new_left > 0):
            tag = line[:1]
            if tag == " " or line == "":
                old_left -= 1
                new_left -= 1
                hunk.lines.append(line or " ")
                continue
            if tag == "-":
                old_left -= 1
                hunk.lines.append(line)
                continue
            if tag == "+":
                new_left -= 1
                hunk.lines.append(line)
                continue
            if tag == "\\":
                hunk.lines.append(line)
                continue
            hunk = None  # truncated hunk
        elif hunk is not None and line.startswith("\\"):
            hunk.lines.append(line)
            continue

        m = _DIFF_GIT_RE.match(line)
        if m:
            current = FileDiff(path=m.group("b"))
            files.append(current)
            hunk = None
            continue
        if _OLD_FILE_RE.match(line):
            hunk = None
            continue
        m = _NEW_FILE_RE.match(line)
        if m:
            path = m.group("path")
            if current is None or current.hunks:
                current = FileDiff(path=path)
                files.append(current)
            elif path != "/dev/null":
                current.path = path
            hunk = None
            continue
        m = _HUNK_RE.match(line)
        if m:
            if current is None:
                current = FileDiff(path="(unknown)")
                files.append(current)
            hunk = Hunk(header=line, context=m.group("ctx").strip(), new_start=int(m.group("new")))
            old_left = int(m.group("old_count") or 1)
            new_left = int(m.group("new_count") or 1)
            current.hunks.append(hunk)
            continue
        hunk = None

    return [f for f in files if f.hunks]


def is_diff(text: str) -> bool:
    return bool(parse_unified_diff(text))


def _hunks_only(hunk: Hunk) -> list[str]:
    """Changed lines plus CONTEXT_LINES of context; longer runs collapsed."""
    changed = [i for i, line in enumerate(hunk.lines) if line[:1] in ("+", "-")]
    keep: set[int] = set()
    for i in changed:
        keep.update(range(max(0, i - CONTEXT_LINES), min(len(hunk.lines), i + CONTEXT_LINES + 1)))

    out = [hunk.header]
    skipped = 0
    for i, line in enumerate(hunk.lines):
        if i in keep:
            if skipped:
                out.append(f" ... ({skipped} unchanged lines)")
                skipped = 0
            out.append(line)
        else:
            skipped += 1
    if skipped:
        out.append(f" ... ({skipped} unchanged lines)")
    return out


def _summary_lines(files: list[FileDiff]) -> list[str]:
    out: list[str] = []
    for f in files:
        touched = sorted({h.context for h in f.hunks if h.context})
        line = f"{f.path}: +{f.additions} -{f.deletions} ({len(f.hunks)} hunks)"
        if touched:
            line += f" in {', '.join(touched)}"
        out.append(line)
    additions = sum(f.additions for f in files)
    deletions = sum(f.deletions for f in files)
    out.append(f"{len(files)} files changed, +{additions} -{deletions}")
    return out


def _semantic(
    files: list[FileDiff],
    max_tokens: int,
    options: CompressOptions,
) -> tuple[list[str], int]:
    hunks = [(f, h) for f in files for h in f.hunks]
    total = len(hunks)
    segments = [
        Segment(
            text=h.text(),
            start_line=i,
            end_line=i,
            type=SegmentType.CODE_BLOCK,
            position=i / max(total - 1, 1),
            tokens=count_tokens(h.text(), options.counter),
        )
        for i, (_, h) in enumerate(hunks)
    ]
    kept = {s.start_line for s in select_segments(score_segments(segments, options.weights), max_tokens)}

    out: list[str] = []
    last_file: FileDiff | None = None
    omitted = 0
    for i, (f, h) in enumerate(hunks):
        if i not in kept:
            omitted += 1
            continue
        if f is not last_file:
            out.append(f"+++ {f.path}")
            last_file = f
        out.append(h.text())
    if omitted:
        out.append(f"[... {omitted} hunks omitted ...]")
    return out, omitted


@dataclass(frozen=True, slots=True)
class DiffCompressor:
    """Keep hunk headers and changed lines; collapse unchanged context."""

    strategy: DiffStrategy = DiffStrategy.HUNKS_ONLY
    max_tokens: int | None = None  # semantic strategy budget; default 50% of input
    name: str = "diff"

    def compress(self, content: str, options: CompressOptions) -> CompressionResult:
        counter = options.counter
        files = parse_unified_diff(content)
        if not files:
            return unchanged(content, counter)

        technique = f"diff:{self.strategy.value}"
        omitted_info = None
        if self.strategy is DiffStrategy.SUMMARY:
            out = _summary_lines(files)
        elif self.strategy is DiffStrategy.SEMANTIC:
            original_tokens = count_tokens(content, counter)
            budget = self.max_tokens if self.max_tokens is not None else math.ceil(original_tokens * 0.5)
            out, omitted = _semantic(files, budget, options)
            if omitted:
                omitted_info = f"{omitted} hunks omitted"
        else:
            out = []
            for f in files:
                out.append(f"+++ {f.path}")
                for h in f.hunks:
                    out.extend(_hunks_only(h))

        extra = diff_metadata(files)
        result = build_result(content, "\n".join(out), technique, counter, omitted_info=omitted_info, extra=extra)
        if result.stats.compressed_tokens >= result.stats.original_tokens:
            logger.debug("Diff compression (%s) did not shrink input", self.strategy.value)
            result = unchanged(content, counter, extra=extra)
        return result


def diff_metadata(files: list[FileDiff]) -> dict[str, object]:
    return {
        "files_changed": [f.path for f in files],
        "additions": sum(f.additions for f in files),
        "deletions": sum(f.deletions for f in files),
        "summary": "\n".join(_summary_lines(files)),
    }


def compress_diff(
    content: str,
    strategy: DiffStrategy | str = DiffStrategy.HUNKS_ONLY,
    *,
    max_tokens: int | None = None,
    counter: TokenCounter | None = None,
) -> CompressionResult:
    """Convenience wrapper; unknown strategies raise ValueError."""
    try:
        strat = DiffStrategy(strategy)
    except ValueError as e:
        valid = ", ".join(s.value for s in DiffStrategy)
        raise ValueError(f"Unknown diff strategy '{strategy}'. Valid values: {valid}.") from e
    if max_tokens is not None and max_tokens < 1:
        raise ValueError("max_tokens must be >= 1")
    return DiffCompressor(strategy=strat, max_tokens=max_tokens).compress(
        content, CompressOptions(counter=counter)
    )
