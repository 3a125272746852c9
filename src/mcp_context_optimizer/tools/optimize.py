"""MCP tool implementations.

This module contains the *implementation* behind the exposed MCP tools.
Keep this layer thin: validate inputs, translate them into core calls, and
return JSON-serializable data structures.
"""

from __future__ import annotations

import dataclasses
import logging
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from mcp_context_optimizer.core.build_output import analyze_build_output
from mcp_context_optimizer.core.cache import ResultCache, cache_key
from mcp_context_optimizer.core.compressors import (
    CompressOptions,
    DiffStrategy,
    FileContext,
    MultiFileOptions,
    MultiFileStrategy,
    SemanticCompressor,
    analyze_content,
    compress_content,
    compress_diff,
    compress_multi_file,
)
from mcp_context_optimizer.core.config import resolve_config
from mcp_context_optimizer.core.errors import calculate_stats, compile_custom_pattern, format_groups, group_by_signature
from mcp_context_optimizer.core.loading import load_file_contexts
from mcp_context_optimizer.core.models import CompressionResult, ContentType, DetailLevel
from mcp_context_optimizer.core.optimizer import OptimizeHint, optimize
from mcp_context_optimizer.core.session import SessionStats
from mcp_context_optimizer.core.summarizers import SummarizeOptions, render_summary, summarize_logs
from mcp_context_optimizer.core.tokens import TokenCounter, get_counter

LOGGER = logging.getLogger(__name__)

OutputFormat = Literal["plain", "markdown"]
MAX_FILES = 200


# --- argument models ---------------------------------------------------------


class OptimizeArgs(BaseModel):
    content: str
    hint: OptimizeHint = OptimizeHint.AUTO
    aggressive: bool = False
    format: OutputFormat = "plain"


class CompressArgs(BaseModel):
    content: str
    content_type: ContentType | None = None
    detail: DetailLevel = DetailLevel.NORMAL
    target_ratio: float | None = Field(default=None, gt=0.0, le=1.0)
    preserve_patterns: list[str] = Field(default_factory=list)


class DeduplicateArgs(BaseModel):
    content: str
    format: OutputFormat = "plain"
    max_locations: int = Field(default=0, ge=0, le=50)
    error_pattern: str | None = None


class SummarizeArgs(BaseModel):
    content: str
    log_type: Literal["server", "test", "build", "generic"] | None = None
    detail: DetailLevel = DetailLevel.NORMAL
    since: str | None = None
    until: str | None = None
    format: OutputFormat = "plain"


class DiffArgs(BaseModel):
    content: str
    strategy: DiffStrategy = DiffStrategy.HUNKS_ONLY
    max_tokens: int | None = Field(default=None, ge=1)


class FileInput(BaseModel):
    path: str = Field(min_length=1, description="File path, also used to resolve relative imports.")
    content: str | None = Field(default=None, description="Inline content; read from disk when omitted.")
    language: str | None = None


class MultiFileArgs(BaseModel):
    files: list[FileInput] = Field(min_length=1, max_length=MAX_FILES)
    strategy: MultiFileStrategy = MultiFileStrategy.DEDUPLICATE
    max_tokens: int = Field(default=50000, ge=1)
    entry_points: list[str] = Field(default_factory=list)
    dependency_depth: int = Field(default=1, ge=0)
    preserve_patterns: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_paths(self) -> MultiFileArgs:
        paths = [f.path for f in self.files]
        if len(set(paths)) != len(paths):
            raise ValueError("file paths must be unique")
        return self


# --- response models ---------------------------------------------------------


class OptimizeResponse(BaseModel):
    optimized_content: str
    detected_type: str
    original_tokens: int = Field(ge=0)
    optimized_tokens: int = Field(ge=0)
    savings_percent: float
    method: str
    note: str | None = None
    cached: bool = False


class CompressResponse(BaseModel):
    compressed: str
    original_tokens: int = Field(ge=0)
    compressed_tokens: int = Field(ge=0)
    reduction_percent: float
    technique: str
    original_lines: int | None = None
    compressed_lines: int | None = None
    omitted_info: str | None = None
    preserved_segments: list[str] = Field(default_factory=list)
    extra: dict[str, Any] = Field(default_factory=dict)
    cached: bool = False


# --- helpers -----------------------------------------------------------------


def _plain(value: Any) -> Any:
    """Convert dataclasses/enums into JSON-friendly builtins."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _plain(getattr(value, f.name)) for f in dataclasses.fields(value) if not f.name.startswith("_")}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(_plain(k)): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def _counter() -> TokenCounter:
    return get_counter(resolve_config().tokenizer)


def _compression_to_dict(result: CompressionResult) -> dict[str, Any]:
    s = result.stats
    return CompressResponse(
        compressed=result.compressed,
        original_tokens=s.original_tokens,
        compressed_tokens=s.compressed_tokens,
        reduction_percent=s.reduction_percent,
        technique=s.technique,
        original_lines=s.original_lines,
        compressed_lines=s.compressed_lines,
        omitted_info=result.omitted_info,
        preserved_segments=list(result.preserved_segments),
        extra=_plain(result.extra),
    ).model_dump()


def _record(session: SessionStats | None, original: int, optimized: int, method: str) -> None:
    if session is not None:
        session.record(original, optimized, method)


def _cached(cache: ResultCache | None, key: str) -> dict[str, Any] | None:
    if cache is None:
        return None
    lookup = cache.get(key)
    if not lookup.hit:
        return None
    LOGGER.debug("Cache hit %s", key[:12])
    return {**lookup.value, "cached": True}


# --- tools -------------------------------------------------------------------


def optimize_impl(
    *,
    content: str,
    hint: str = "auto",
    aggressive: bool = False,
    format: str = "plain",
    session: SessionStats | None = None,
    cache: ResultCache | None = None,
) -> dict[str, Any]:
    """Implementation for the `optimize` MCP tool."""
    args = OptimizeArgs(content=content, hint=hint, aggressive=aggressive, format=format)
    key = cache_key(args.content, "optimize", {"hint": args.hint.value, "aggressive": args.aggressive, "format": args.format})
    hit = _cached(cache, key)
    if hit is not None:
        return hit

    result = optimize(args.content, args.hint, aggressive=args.aggressive, fmt=args.format)
    out = OptimizeResponse(**_plain(result)).model_dump()
    _record(session, result.original_tokens, result.optimized_tokens, result.method)
    if cache is not None:
        cache.set(key, out, token_count=result.original_tokens - result.optimized_tokens)
    return out


def compress_context_impl(
    *,
    content: str,
    content_type: str | None = None,
    detail: str = "normal",
    target_ratio: float | None = None,
    preserve_patterns: list[str] | None = None,
    session: SessionStats | None = None,
    cache: ResultCache | None = None,
) -> dict[str, Any]:
    """Implementation for the `compress_context` MCP tool."""
    args = CompressArgs(
        content=content,
        content_type=content_type,
        detail=detail,
        target_ratio=target_ratio,
        preserve_patterns=preserve_patterns or [],
    )
    options = {
        "content_type": args.content_type.value if args.content_type else None,
        "detail": args.detail.value,
        "target_ratio": args.target_ratio,
        "preserve_patterns": args.preserve_patterns,
    }
    key = cache_key(args.content, "compress_context", options)
    hit = _cached(cache, key)
    if hit is not None:
        return hit

    cfg = resolve_config()
    result = compress_content(
        args.content,
        args.content_type,
        detail=args.detail,
        target_ratio=args.target_ratio,
        preserve_patterns=args.preserve_patterns,
        min_tokens=cfg.min_compress_tokens,
        max_segments=cfg.max_segments,
        counter=get_counter(cfg.tokenizer),
    )
    out = _compression_to_dict(result)
    _record(session, result.stats.original_tokens, result.stats.compressed_tokens, result.stats.technique)
    if cache is not None:
        cache.set(key, out, token_count=result.stats.original_tokens - result.stats.compressed_tokens)
    return out


def semantic_compress_impl(
    *,
    content: str,
    target_ratio: float = 0.5,
    preserve_patterns: list[str] | None = None,
    session: SessionStats | None = None,
) -> dict[str, Any]:
    """Implementation for the `semantic_compress` MCP tool."""
    args = CompressArgs(content=content, target_ratio=target_ratio, preserve_patterns=preserve_patterns or [])
    cfg = resolve_config()
    options = CompressOptions(
        target_ratio=args.target_ratio,
        preserve_patterns=tuple(args.preserve_patterns),
        min_tokens=cfg.min_compress_tokens,
        max_segments=cfg.max_segments,
        counter=get_counter(cfg.tokenizer),
    )
    result = SemanticCompressor().compress(args.content, options)
    _record(session, result.stats.original_tokens, result.stats.compressed_tokens, result.stats.technique)
    return _compression_to_dict(result)


def deduplicate_errors_impl(
    *,
    content: str,
    format: str = "plain",
    max_locations: int = 0,
    error_pattern: str | None = None,
    session: SessionStats | None = None,
) -> dict[str, Any]:
    """Implementation for the `deduplicate_errors` MCP tool."""
    args = DeduplicateArgs(content=content, format=format, max_locations=max_locations, error_pattern=error_pattern)
    pattern = compile_custom_pattern(args.error_pattern)
    grouping = group_by_signature(args.content.splitlines(), custom_pattern=pattern)
    stats = calculate_stats(grouping, _counter())
    _record(session, stats.original_tokens, stats.compressed_tokens, "error-deduplication")
    return {
        "deduplicated": format_groups(grouping, fmt=args.format, max_locations=args.max_locations),
        "groups": [
            {
                "signature": g.signature,
                "representative": g.representative,
                "count": g.count,
                "first_occurrence": g.first_occurrence,
                "code": g.code,
                "locations": g.locations,
            }
            for g in grouping.groups.values()
        ],
        "stats": _plain(stats),
    }


def analyze_build_output_impl(
    *,
    content: str,
    detail: str = "normal",
    format: str = "plain",
    session: SessionStats | None = None,
) -> dict[str, Any]:
    """Implementation for the `analyze_build_output` MCP tool."""
    args = SummarizeArgs(content=content, detail=detail, format=format)
    analysis = analyze_build_output(args.content, detail=args.detail, fmt=args.format, counter=_counter())
    _record(session, analysis.stats.original_tokens, analysis.stats.compressed_tokens, "error-grouping")
    return {
        "build_tool": analysis.tool,
        "detected_type": analysis.detected_type,
        "summary": analysis.text,
        "unique_errors": analysis.stats.unique_errors,
        "total_errors": analysis.grouping.total_error_lines,
        "warnings": analysis.warning_count,
        "stats": _plain(analysis.stats),
    }


def summarize_logs_impl(
    *,
    content: str,
    log_type: str | None = None,
    detail: str = "normal",
    since: str | None = None,
    until: str | None = None,
    format: str = "plain",
) -> dict[str, Any]:
    """Implementation for the `summarize_logs` MCP tool.

    Notes
    -----
    - log_type forces a summarizer; otherwise the first applicable one in
      the order server, test, build, generic is used.
    - since/until are ISO-8601 bounds; entries without timestamps are kept.
    """
    args = SummarizeArgs(content=content, log_type=log_type, detail=detail, since=since, until=until, format=format)
    summary = summarize_logs(
        args.content,
        SummarizeOptions(detail=args.detail, since=args.since, until=args.until),
        log_type=args.log_type,
    )
    return {
        "log_type": summary.log_type,
        "rendered": render_summary(summary, args.format),
        "summary": _plain(summary),
    }


def diff_compress_impl(
    *,
    content: str,
    strategy: str = "hunks-only",
    max_tokens: int | None = None,
    session: SessionStats | None = None,
) -> dict[str, Any]:
    """Implementation for the `diff_compress` MCP tool."""
    args = DiffArgs(content=content, strategy=strategy, max_tokens=max_tokens)
    result = compress_diff(args.content, args.strategy, max_tokens=args.max_tokens, counter=_counter())
    _record(session, result.stats.original_tokens, result.stats.compressed_tokens, result.stats.technique)
    return _compression_to_dict(result)


def analyze_content_impl(*, content: str) -> dict[str, Any]:
    """Implementation for the `analyze_content` MCP tool."""
    counter = _counter()
    out: dict[str, Any] = dict(analyze_content(content))
    out["tokens"] = counter.count(content)
    out["lines"] = len(content.splitlines())
    return out


async def compress_multifile_impl(
    *,
    files: list[dict[str, Any]],
    strategy: str = "deduplicate",
    max_tokens: int = 50000,
    entry_points: list[str] | None = None,
    dependency_depth: int = 1,
    preserve_patterns: list[str] | None = None,
    session: SessionStats | None = None,
) -> dict[str, Any]:
    """Implementation for the `compress_multifile` MCP tool.

    Files given without inline content are read from disk (restricted to
    CONTEXT_OPT_BASE_DIR).
    """
    args = MultiFileArgs(
        files=files,
        strategy=strategy,
        max_tokens=max_tokens,
        entry_points=entry_points or [],
        dependency_depth=dependency_depth,
        preserve_patterns=preserve_patterns or [],
    )
    to_load = [f.path for f in args.files if f.content is None]
    loaded = {fc.path: fc.content for fc in await load_file_contexts(to_load)} if to_load else {}
    contexts = [
        FileContext(path=f.path, content=f.content if f.content is not None else loaded[f.path], language=f.language)
        for f in args.files
    ]

    result = compress_multi_file(
        contexts,
        MultiFileOptions(
            strategy=args.strategy,
            max_tokens=args.max_tokens,
            entry_points=tuple(args.entry_points),
            dependency_depth=args.dependency_depth,
            preserve_patterns=tuple(args.preserve_patterns),
            counter=_counter(),
        ),
    )
    _record(session, result.stats.original_tokens, result.stats.compressed_tokens, f"multi-file:{args.strategy.value}")
    return {
        "compressed": result.compressed,
        "stats": _plain(result.stats),
        "shared": {
            "imports": sorted(result.shared.imports),
            "types": len(result.shared.types),
            "constants": sorted(result.shared.constants),
        },
        "chunks": [{"files": c.files, "tokens": c.tokens} for c in result.chunks],
    }


def session_stats_impl(*, session: SessionStats, cache: ResultCache | None = None) -> dict[str, Any]:
    """Implementation for the `session_stats` MCP tool."""
    out = session.snapshot()
    if cache is not None:
        out["cache"] = _plain(cache.get_stats())
    return out
