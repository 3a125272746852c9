"""Optimization orchestrator: detect -> dispatch -> execute.

`optimize` is the single entry point used by the serving layer. It keeps no
state between calls; callers that want running totals record the returned
result into their own `SessionStats`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Literal

from .build_output import analyze_build_output
from .compressors import compress_content
from .config import OptimizerConfig, resolve_config
from .detection import detect_content_type, is_build_output
from .errors import format_groups, group_by_signature
from .models import ContentType, DetailLevel, reduction_percent
from .summarizers import SummarizeOptions, render_summary, summarize_logs
from .tokens import TokenCounter, count_tokens, get_counter

logger = logging.getLogger(__name__)

OutputFormat = Literal["plain", "markdown"]

BELOW_THRESHOLD_NOTE = "Content below optimization threshold ({limit} chars); returned unchanged."
NOT_SMALLER_NOTE = "Optimization did not reduce size; returned unchanged."


class OptimizeHint(str, Enum):
    AUTO = "auto"
    BUILD = "build"
    LOGS = "logs"
    ERRORS = "errors"
    CODE = "code"


@dataclass(frozen=True, slots=True)
class OptimizationResult:
    optimized_content: str
    detected_type: str
    original_tokens: int
    optimized_tokens: int
    savings_percent: float
    method: str
    note: str | None = None


@dataclass(frozen=True, slots=True)
class _Outcome:
    text: str
    detected_type: str
    method: str


def parse_hint(hint: OptimizeHint | str) -> OptimizeHint:
    if isinstance(hint, OptimizeHint):
        return hint
    try:
        return OptimizeHint(str(hint).strip().lower())
    except ValueError as e:
        valid = ", ".join(h.value for h in OptimizeHint)
        raise ValueError(f"Unknown content hint '{hint}'. Valid values: {valid}.") from e


def _build(content: str, detail: DetailLevel, fmt: OutputFormat, counter: TokenCounter) -> _Outcome:
    analysis = analyze_build_output(content, detail=detail, fmt=fmt, counter=counter)
    return _Outcome(analysis.text, analysis.detected_type, "error-grouping")


def _logs(content: str, detail: DetailLevel, fmt: OutputFormat) -> _Outcome:
    summary = summarize_logs(content, SummarizeOptions(detail=detail))
    return _Outcome(render_summary(summary, fmt), f"logs-{summary.log_type}", "log-summarization")


def _errors(content: str, fmt: OutputFormat, detected: str) -> _Outcome | None:
    grouping = group_by_signature(content.splitlines())
    if not grouping.groups:
        return None
    header = f"{len(grouping.groups)} unique errors ({grouping.total_error_lines} total)"
    return _Outcome(f"{header}\n{format_groups(grouping, fmt=fmt)}", detected, "error-deduplication")


def _compress(
    content: str,
    ctype: ContentType | None,
    detail: DetailLevel,
    cfg: OptimizerConfig,
    counter: TokenCounter,
) -> _Outcome:
    result = compress_content(
        content,
        ctype,
        detail=detail,
        min_tokens=cfg.min_compress_tokens,
        max_segments=cfg.max_segments,
        counter=counter,
    )
    detected = result.stats.technique.split(":", 1)[0]
    return _Outcome(result.compressed, detected, result.stats.technique)


def _dispatch(
    content: str,
    hint: OptimizeHint,
    detail: DetailLevel,
    fmt: OutputFormat,
    cfg: OptimizerConfig,
    counter: TokenCounter,
) -> _Outcome:
    if hint is OptimizeHint.BUILD:
        return _build(content, detail, fmt, counter)
    if hint is OptimizeHint.LOGS:
        return _logs(content, detail, fmt)
    if hint is OptimizeHint.ERRORS:
        return _errors(content, fmt, "errors") or _compress(content, None, detail, cfg, counter)
    if hint is OptimizeHint.CODE:
        return _compress(content, ContentType.CODE, detail, cfg, counter)

    if is_build_output(content, sample_size=cfg.detection_sample_lines):
        logger.debug("Auto dispatch: build output")
        return _build(content, detail, fmt, counter)

    ctype = detect_content_type(content, sample_size=cfg.detection_sample_lines)
    logger.debug("Auto dispatch: detected %s", ctype.value)
    if ctype is ContentType.LOGS:
        return _logs(content, detail, fmt)
    if ctype is ContentType.STACKTRACE:
        outcome = _errors(content, fmt, ctype.value)
        if outcome is not None:
            return outcome
    return _compress(content, ctype, detail, cfg, counter)


def optimize(
    content: str,
    hint: OptimizeHint | str = OptimizeHint.AUTO,
    *,
    aggressive: bool = False,
    fmt: OutputFormat = "plain",
    config: OptimizerConfig | None = None,
    counter: TokenCounter | None = None,
) -> OptimizationResult:
    """Pick a strategy for `content` and return the reduced text with stats.

    Short inputs are returned unchanged with a note. Results that are not
    smaller than the input fall back to the input with method "none".
    """
    parsed = parse_hint(hint)
    if fmt not in ("plain", "markdown"):
        raise ValueError(f"Unknown output format '{fmt}'. Valid values: plain, markdown.")

    cfg = config or resolve_config()
    counter = counter or get_counter(cfg.tokenizer)
    original_tokens = count_tokens(content, counter)

    if len(content) < cfg.min_optimize_chars:
        return OptimizationResult(
            optimized_content=content,
            detected_type="none",
            original_tokens=original_tokens,
            optimized_tokens=original_tokens,
            savings_percent=0.0,
            method="none",
            note=BELOW_THRESHOLD_NOTE.format(limit=cfg.min_optimize_chars),
        )

    detail = DetailLevel.MINIMAL if aggressive else DetailLevel.NORMAL
    outcome = _dispatch(content, parsed, detail, fmt, cfg, counter)
    optimized_tokens = count_tokens(outcome.text, counter)

    if optimized_tokens >= original_tokens:
        logger.debug("Method %s did not reduce size (%d >= %d)", outcome.method, optimized_tokens, original_tokens)
        return OptimizationResult(
            optimized_content=content,
            detected_type=outcome.detected_type,
            original_tokens=original_tokens,
            optimized_tokens=original_tokens,
            savings_percent=0.0,
            method="none",
            note=NOT_SMALLER_NOTE,
        )

    return OptimizationResult(
        optimized_content=outcome.text,
        detected_type=outcome.detected_type,
        original_tokens=original_tokens,
        optimized_tokens=optimized_tokens,
        savings_percent=reduction_percent(original_tokens, optimized_tokens),
        method=outcome.method,
    )
