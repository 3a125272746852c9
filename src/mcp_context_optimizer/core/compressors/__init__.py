"""Compression strategies and content-type routing."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

from ..detection import describe_content_type, detect_content_type
from ..models import CompressionResult, ContentType, DetailLevel
from ..scoring.segments import DEFAULT_MAX_SEGMENTS
from ..tokens import TokenCounter
from .base import BUDGET_RATIOS, MIN_COMPRESS_TOKENS, CompressOptions, Compressor, select_segments
from .diff import DiffCompressor, DiffStrategy, compress_diff, is_diff, parse_unified_diff
from .generic import GenericCompressor, collapse_repeats
from .multifile import (
    FileContext,
    MultiFileOptions,
    MultiFileResult,
    MultiFileStrategy,
    RegexStructureExtractor,
    StructureExtractor,
    build_dependency_graph,
    compress_multi_file,
    create_chunks,
    extract_shared_elements,
    extract_skeleton,
    remove_shared_imports,
)
from .semantic import SemanticCompressor

# Lines always kept when compressing content of a given type.
PRESERVE_PATTERNS: dict[ContentType, tuple[str, ...]] = {
    ContentType.LOGS: (r"\b(?:ERROR|FATAL|CRITICAL|PANIC)\b", r"\b\w*(?:Error|Exception)\b:"),
    ContentType.STACKTRACE: (
        r"^Traceback \(most recent call last\)",
        r"^(?:[\w.]+\.)?\w*(?:Error|Exception)\b",
        r"^Caused by:",
    ),
    ContentType.CODE: (r"^\s*(?:export\s+)?(?:async\s+)?(?:def|class|function|interface|type)\s",),
    ContentType.GENERIC: (),
}

_ESTIMATED_REDUCTION: dict[ContentType, str] = {
    ContentType.LOGS: "60-90%",
    ContentType.STACKTRACE: "50-80%",
    ContentType.CODE: "20-40%",
    ContentType.GENERIC: "30-60%",
}


def compress_content(
    content: str,
    content_type: ContentType | None = None,
    *,
    detail: DetailLevel = DetailLevel.NORMAL,
    target_ratio: float | None = None,
    preserve_patterns: Sequence[str] = (),
    min_tokens: int = MIN_COMPRESS_TOKENS,
    max_segments: int = DEFAULT_MAX_SEGMENTS,
    counter: TokenCounter | None = None,
) -> CompressionResult:
    """Route content through importance filtering with type-specific preserves."""
    ctype = content_type or detect_content_type(content)
    options = CompressOptions(
        detail=detail,
        target_ratio=target_ratio,
        preserve_patterns=(*PRESERVE_PATTERNS[ctype], *preserve_patterns),
        min_tokens=min_tokens,
        max_segments=max_segments,
        counter=counter,
    )
    result = GenericCompressor().compress(content, options)
    stats = replace(result.stats, technique=f"{ctype.value}:{result.stats.technique}")
    return replace(result, stats=stats)


def analyze_content(content: str) -> dict[str, str]:
    """Describe how content would be compressed without compressing it."""
    ctype = detect_content_type(content)
    return {
        "content_type": ctype.value,
        "description": describe_content_type(ctype),
        "compressor": f"{ctype.value}:{GenericCompressor().name}",
        "estimated_reduction": _ESTIMATED_REDUCTION[ctype],
    }


__all__ = [
    "BUDGET_RATIOS",
    "MIN_COMPRESS_TOKENS",
    "PRESERVE_PATTERNS",
    "CompressOptions",
    "Compressor",
    "DiffCompressor",
    "DiffStrategy",
    "FileContext",
    "GenericCompressor",
    "MultiFileOptions",
    "MultiFileResult",
    "MultiFileStrategy",
    "RegexStructureExtractor",
    "SemanticCompressor",
    "StructureExtractor",
    "analyze_content",
    "build_dependency_graph",
    "collapse_repeats",
    "compress_content",
    "compress_diff",
    "compress_multi_file",
    "create_chunks",
    "extract_shared_elements",
    "extract_skeleton",
    "is_diff",
    "parse_unified_diff",
    "remove_shared_imports",
    "select_segments",
]
