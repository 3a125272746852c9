from __future__ import annotations

import pytest

from mcp_context_optimizer.core.compressors import (
    CompressOptions,
    GenericCompressor,
    SemanticCompressor,
    analyze_content,
    collapse_repeats,
    compress_content,
)
from mcp_context_optimizer.core.models import ContentType, DetailLevel

TOPICS = ("caching", "routing", "billing", "auth", "search", "metrics")


def _numbered_lines() -> str:
    lines = [f"processing item {i} with value {i * 7}" for i in range(60)]
    lines.insert(30, "CRITICAL: disk failure on /dev/sda1")
    return "\n".join(lines)


def _topic_paragraphs() -> str:
    return "\n\n".join(
        f"Paragraph about {t} covers the {t} subsystem in depth and explains how {t} interacts with storage."
        for t in TOPICS
    )


def test_generic_returns_small_content_unchanged() -> None:
    result = GenericCompressor().compress("tiny input", CompressOptions())
    assert result.compressed == "tiny input"
    assert result.stats.technique == "none"
    assert result.stats.reduction_percent == 0.0


def test_generic_keeps_preserved_lines_and_marks_gaps() -> None:
    content = _numbered_lines()

    result = GenericCompressor().compress(content, CompressOptions(preserve_patterns=(r"CRITICAL",)))

    assert "CRITICAL: disk failure on /dev/sda1" in result.compressed
    assert result.preserved_segments == ["CRITICAL: disk failure on /dev/sda1"]
    assert "lines omitted ...]" in result.compressed
    assert result.stats.technique == "importance-filtering"
    assert result.stats.reduction_percent > 20
    assert result.stats.compressed_tokens < result.stats.original_tokens
    assert result.omitted_info is not None and result.omitted_info.endswith("of 61 segments omitted")


def test_detail_level_controls_budget() -> None:
    content = _numbered_lines()
    minimal = GenericCompressor().compress(content, CompressOptions(detail=DetailLevel.MINIMAL))
    detailed = GenericCompressor().compress(content, CompressOptions(detail=DetailLevel.DETAILED))
    assert minimal.stats.compressed_tokens < detailed.stats.compressed_tokens


@pytest.mark.parametrize("ratio", [0.0, -0.5, 1.5])
def test_target_ratio_must_be_in_range(ratio: float) -> None:
    with pytest.raises(ValueError, match="target_ratio"):
        CompressOptions(target_ratio=ratio)


def test_collapse_repeats_skips_blank_runs() -> None:
    assert collapse_repeats(["a", "a", "a", "b", "", "", ""]) == ["a (×3)", "b", "", "", ""]
    assert collapse_repeats([]) == []


def test_generic_single_repeated_line_is_collapsed() -> None:
    content = "WARN retrying connection to upstream service\n" * 200

    result = GenericCompressor().compress(content, CompressOptions())

    assert result.compressed == "WARN retrying connection to upstream service (×200)"
    assert result.stats.technique == "importance-filtering"
    assert result.stats.reduction_percent > 90
    assert compress_content(content, ContentType.GENERIC).stats.technique == "generic:importance-filtering"


def test_compress_content_prefixes_content_type() -> None:
    lines = [f"2025-01-15 10:00:{i:02d} INFO tick number {i}" for i in range(40)]
    lines.insert(20, "2025-01-15 10:00:20 ERROR worker pool exhausted")
    content = "\n".join(lines)

    result = compress_content(content, ContentType.LOGS)

    assert result.stats.technique == "logs:importance-filtering"
    assert "ERROR worker pool exhausted" in result.compressed


def test_analyze_content_describes_plan() -> None:
    content = "\n".join(f"2025-01-15 10:00:{i:02d} INFO tick {i}" for i in range(10))
    info = analyze_content(content)
    assert info == {
        "content_type": "logs",
        "description": "application/server logs",
        "compressor": "logs:importance-filtering",
        "estimated_reduction": "60-90%",
    }


def test_semantic_noop_cases() -> None:
    small = SemanticCompressor().compress("short text", CompressOptions())
    assert small.stats.technique == "semantic-compression (no-op: content too small)"

    single = SemanticCompressor().compress("word " * 100, CompressOptions())
    assert single.stats.technique == "semantic-compression (no-op: single segment)"
    assert single.compressed == "word " * 100


def test_semantic_keeps_ratio_and_reports_topics() -> None:
    content = _topic_paragraphs()

    result = SemanticCompressor().compress(content, CompressOptions(target_ratio=0.4))

    assert result.stats.technique == "semantic-compression"
    assert result.stats.compressed_tokens < result.stats.original_tokens
    assert result.omitted_info is not None
    assert "of 6 segments omitted (topics: " in result.omitted_info
    kept = result.compressed.split("\n\n")
    assert all(p in content for p in kept)


def test_semantic_honours_preserve_patterns() -> None:
    content = _topic_paragraphs()
    result = SemanticCompressor().compress(
        content, CompressOptions(target_ratio=0.3, preserve_patterns=(r"\bbilling\b",))
    )
    assert "Paragraph about billing" in result.compressed
    assert result.preserved_segments and "billing" in result.preserved_segments[0]
