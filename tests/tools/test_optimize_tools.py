from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from pydantic import ValidationError

from mcp_context_optimizer.core.cache import MemoryResultCache
from mcp_context_optimizer.core.session import SessionStats
from mcp_context_optimizer.tools.optimize import (
    analyze_build_output_impl,
    analyze_content_impl,
    compress_context_impl,
    compress_multifile_impl,
    deduplicate_errors_impl,
    diff_compress_impl,
    optimize_impl,
    semantic_compress_impl,
    session_stats_impl,
    summarize_logs_impl,
)

MIXED = "\n".join(
    [
        "src/a.ts(1,1): error TS2304: Cannot find name 'foo'.",
        "Compiling...",
        "src/b.ts(2,2): error TS2304: Cannot find name 'bar'.",
        "src/c.ts(3,3): error TS2322: Type 'string' is not assignable to type 'number'.",
    ]
)


def test_optimize_impl_records_and_caches(ts_build_output: str) -> None:
    session = SessionStats()
    cache = MemoryResultCache()

    first = optimize_impl(content=ts_build_output, session=session, cache=cache)
    second = optimize_impl(content=ts_build_output, session=session, cache=cache)

    assert first["cached"] is False
    assert second["cached"] is True
    assert first["method"] == second["method"] == "error-grouping"
    assert first["detected_type"] == "build-tsc"
    assert session.snapshot()["calls"] == 1
    assert cache.get_stats().hits == 1


def test_optimize_impl_cache_key_includes_options(ts_build_output: str) -> None:
    cache = MemoryResultCache()
    optimize_impl(content=ts_build_output, cache=cache)
    aggressive = optimize_impl(content=ts_build_output, aggressive=True, cache=cache)
    assert aggressive["cached"] is False
    assert cache.get_stats().entries == 2


def test_optimize_impl_rejects_unknown_hint() -> None:
    with pytest.raises(ValidationError):
        optimize_impl(content="x", hint="bogus")


def test_compress_context_impl() -> None:
    content = "\n".join(f"processing item {i} with value {i * 7}" for i in range(60))

    out = compress_context_impl(content=content, content_type="generic", detail="minimal")

    assert out["technique"] == "generic:importance-filtering"
    assert out["compressed_tokens"] < out["original_tokens"]
    assert out["original_lines"] == 60
    assert out["cached"] is False

    with pytest.raises(ValidationError):
        compress_context_impl(content=content, target_ratio=1.5)


def test_semantic_compress_impl_small_input() -> None:
    out = semantic_compress_impl(content="too short to bother")
    assert out["technique"] == "semantic-compression (no-op: content too small)"
    assert out["compressed"] == "too short to bother"


def test_deduplicate_errors_impl() -> None:
    session = SessionStats()

    out = deduplicate_errors_impl(content=MIXED, max_locations=1, session=session)

    assert [g["count"] for g in out["groups"]] == [2, 1]
    assert out["groups"][0]["code"] == "TS2304"
    assert out["groups"][0]["locations"] == ["src/a.ts:1:1", "src/b.ts:2:2"]
    assert out["stats"]["unique_errors"] == 2
    assert "    at src/a.ts:1:1 (+1 more)" in out["deduplicated"]
    assert session.snapshot()["by_method"] == {"error-deduplication": 1}


def test_deduplicate_errors_impl_bad_pattern() -> None:
    with pytest.raises(ValueError, match="Invalid error pattern"):
        deduplicate_errors_impl(content=MIXED, error_pattern="(")


def test_analyze_build_output_impl(ts_build_output: str) -> None:
    out = analyze_build_output_impl(content=ts_build_output)
    assert out["build_tool"] == "tsc"
    assert out["detected_type"] == "build-tsc"
    assert (out["unique_errors"], out["total_errors"], out["warnings"]) == (2, 11, 0)
    assert out["summary"].startswith("tsc build: 2 unique errors (11 total), 0 warnings")


def test_summarize_logs_impl(server_log: str) -> None:
    out = summarize_logs_impl(content=server_log, format="markdown")

    assert out["log_type"] == "server"
    assert out["rendered"].startswith("## Server log summary")
    stats = out["summary"]["statistics"]
    assert stats["request_count"] == 18
    assert stats["status_codes"] == {"200": 13, "201": 3, "404": 2}
    assert stats["endpoints"][0]["endpoint"] == "GET /api/users/:id"


def test_summarize_logs_impl_validates_inputs(generic_log: str) -> None:
    with pytest.raises(ValidationError):
        summarize_logs_impl(content=generic_log, log_type="bogus")
    with pytest.raises(ValueError, match="until must be an ISO-8601 datetime"):
        summarize_logs_impl(content=generic_log, until="later")


def test_diff_compress_impl(unified_diff: str) -> None:
    out = diff_compress_impl(content=unified_diff, strategy="summary")
    assert out["technique"] == "diff:summary"
    assert out["extra"]["files_changed"] == ["src/app.py"]

    with pytest.raises(ValidationError):
        diff_compress_impl(content=unified_diff, strategy="everything")


def test_analyze_content_impl(python_traceback: str) -> None:
    out = analyze_content_impl(content=python_traceback)
    assert out["content_type"] == "stacktrace"
    assert out["lines"] == 24
    assert out["tokens"] > 0


@pytest.mark.asyncio
async def test_compress_multifile_impl_inline(ts_sources: dict[str, str]) -> None:
    session = SessionStats()
    files = [{"path": p, "content": c} for p, c in ts_sources.items()]

    out = await compress_multifile_impl(files=files, session=session)

    assert out["shared"] == {"imports": ["react"], "types": 1, "constants": ["API_URL"]}
    assert out["stats"]["files_processed"] == 3
    assert out["compressed"].count("from 'react'") == 1
    assert session.snapshot()["by_method"] == {"multi-file:deduplicate": 1}


@pytest.mark.asyncio
async def test_compress_multifile_impl_reads_files(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    write_sources: Callable[[Path], list[str]],
) -> None:
    monkeypatch.setenv("CONTEXT_OPT_BASE_DIR", str(tmp_path))
    paths = write_sources(tmp_path)

    out = await compress_multifile_impl(
        files=[{"path": p} for p in paths],
        strategy="smart-chunk",
        max_tokens=3000,
    )

    assert [c["files"] for c in out["chunks"]] == [["src/a.ts", "src/utils.ts"], ["src/b.ts"]]


@pytest.mark.asyncio
async def test_compress_multifile_impl_rejects_escaping_paths(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONTEXT_OPT_BASE_DIR", str(tmp_path))
    with pytest.raises(ValueError, match="Path escapes base dir"):
        await compress_multifile_impl(files=[{"path": "../outside.ts"}])


@pytest.mark.asyncio
async def test_compress_multifile_impl_missing_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONTEXT_OPT_BASE_DIR", str(tmp_path))
    with pytest.raises(FileNotFoundError):
        await compress_multifile_impl(files=[{"path": "nope.ts"}])


@pytest.mark.asyncio
async def test_compress_multifile_impl_duplicate_paths() -> None:
    files = [{"path": "a.ts", "content": "x"}, {"path": "a.ts", "content": "y"}]
    with pytest.raises(ValidationError, match="file paths must be unique"):
        await compress_multifile_impl(files=files)


def test_session_stats_impl_includes_cache() -> None:
    session = SessionStats()
    session.record(100, 25, "error-grouping")

    out = session_stats_impl(session=session, cache=MemoryResultCache())

    assert out["tokens_saved"] == 75
    assert out["savings_percent"] == 75.0
    assert out["cache"]["entries"] == 0
    assert out["cache"]["hit_rate"] == 0.0
