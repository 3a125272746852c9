from __future__ import annotations

import pytest

from mcp_context_optimizer.core.models import DetailLevel
from mcp_context_optimizer.core.summarizers import (
    BuildLogSummarizer,
    GenericLogSummarizer,
    ServerLogSummarizer,
    SummarizeOptions,
    TestLogSummarizer,
    detect_build_tool,
    get_summarizer,
    normalize_path,
    parse_request,
    render_summary,
    summarize_logs,
)

JEST_OUTPUT = "\n".join(
    [
        "PASS src/math.test.ts",
        "  ✓ adds numbers (3 ms)",
        "  ✕ subtracts numbers (2 ms)",
        "    Expected: 3",
        "5 passed, 1 failed in 2.3s",
    ]
)

TSC_OUTPUT = "\n".join(
    [
        "src/a.ts(1,1): error TS2304: Cannot find name 'foo'.",
        "src/b.ts(2,2): error TS2304: Cannot find name 'bar'.",
        "src/c.ts(3,3): error TS2322: Type 'string' is not assignable to type 'number'.",
        "Found 3 errors.",
    ]
)

VITE_OUTPUT = "\n".join(
    [
        "vite v5.0.0 building for production...",
        "✓ 34 modules transformed.",
        "dist/assets/index.js   142.50 kB",
        "✓ built in 1.2s",
    ]
)


def test_server_log_summary(server_log: str) -> None:
    assert isinstance(get_summarizer(server_log), ServerLogSummarizer)

    summary = summarize_logs(server_log)
    stats = summary.statistics

    assert summary.log_type == "server"
    assert stats.request_count == 18
    assert stats.status_codes == {200: 13, 201: 3, 404: 2}
    assert stats.endpoints is not None
    assert [e.endpoint for e in stats.endpoints] == ["GET /api/users/:id", "GET /api/health", "POST /api/orders"]
    top = stats.endpoints[0]
    assert (top.count, top.error_count, top.avg_response_time) == (12, 2, 45.5)
    assert summary.errors == []
    assert [(w.message, w.count) for w in summary.warnings] == [("GET /api/users/:id -> 404", 2)]
    assert summary.overview.startswith("18 requests - 3 endpoints - 2 client errors (4xx)")
    assert "top: GET /api/users/:id (12)" in summary.overview
    assert stats.timespan is not None
    assert stats.timespan.duration == "25.0s"


def test_test_run_summary() -> None:
    assert isinstance(get_summarizer(JEST_OUTPUT), TestLogSummarizer)

    summary = summarize_logs(JEST_OUTPUT)
    stats = summary.statistics

    assert (stats.pass_count, stats.fail_count, stats.skip_count) == (5, 1, 0)
    assert stats.test_duration == 2300
    assert summary.overview == "6 tests: 5 passed, 1 failed, 0 skipped (83% pass rate) in 2.3s"
    assert [e.message for e in summary.errors] == ["FAIL subtracts numbers", "Expected: 3"]
    assert [e.message for e in summary.key_events] == ["PASS src/math.test.ts"]


def test_bare_summary_line_is_a_test_run() -> None:
    summary = summarize_logs("5 passed, 1 failed in 2.3s")
    assert summary.log_type == "test"
    assert (summary.statistics.pass_count, summary.statistics.fail_count) == (5, 1)
    assert summary.statistics.test_duration == 2300


def test_build_summary() -> None:
    assert isinstance(get_summarizer(TSC_OUTPUT), BuildLogSummarizer)

    summary = summarize_logs(TSC_OUTPUT)
    stats = summary.statistics

    assert stats.build_tool == "tsc"
    assert stats.error_codes == {"TS2304": 2, "TS2322": 1}
    assert stats.error_count == 3
    assert summary.overview == "tsc build - failed - 3 errors - [TS2304(2), TS2322(1)]"
    assert summary.errors[0].message == "TS2304: Cannot find name 'foo'."
    assert summary.errors[0].count == 2


def test_vite_build_duration_and_size() -> None:
    assert detect_build_tool(VITE_OUTPUT) == "vite"
    summary = BuildLogSummarizer().summarize(VITE_OUTPUT, SummarizeOptions())
    assert summary.statistics.build_duration == 1200
    assert summary.statistics.bundle_size == "142.5 KB"
    assert summary.overview.startswith("vite build - completed in 1.2s - 0 errors")


def test_generic_summary_and_timeframe(generic_log: str) -> None:
    assert isinstance(get_summarizer(generic_log), GenericLogSummarizer)

    summary = summarize_logs(generic_log)
    assert summary.overview == "5 lines - 2 errors, 1 warnings over 20m 0s"
    assert [(e.message, e.count) for e in summary.errors] == [("connection refused to db", 2)]
    assert [e.message for e in summary.key_events] == ["service started"]

    recent = summarize_logs(generic_log, SummarizeOptions(since="2025-01-15T10:12:00Z"))
    assert recent.statistics.total_lines == 2
    assert recent.statistics.error_count == 1


def test_entry_lists_are_capped_per_detail() -> None:
    text = "\n".join(f"[ERROR] worker {i} crashed" for i in range(1, 13))

    summary = summarize_logs(text, SummarizeOptions(detail=DetailLevel.MINIMAL))

    assert [e.message for e in summary.errors] == [f"worker {i} crashed" for i in range(1, 6)]
    assert summary.omitted == {"errors": 7}
    assert "  ... +7 more" in render_summary(summary).splitlines()


def test_render_plain_and_markdown(generic_log: str) -> None:
    summary = summarize_logs(generic_log)

    plain = render_summary(summary).splitlines()
    assert plain[0] == "[generic] 5 lines - 2 errors, 1 warnings over 20m 0s"
    assert "Errors:" in plain
    assert "  [2025-01-15T10:10:00Z] connection refused to db (×2)" in plain
    assert plain[-1] == "Timespan: 2025-01-15T10:00:00Z -> 2025-01-15T10:20:00Z (20m 0s)"

    markdown = render_summary(summary, "markdown").splitlines()
    assert markdown[0] == "## Generic log summary"
    assert "- [2025-01-15T10:10:00Z] `connection refused to db` (×2)" in markdown


def test_render_server_endpoints(server_log: str) -> None:
    rendered = render_summary(summarize_logs(server_log))
    assert "  GET /api/users/:id: 12 requests, avg 45.5ms, 2 errors" in rendered.splitlines()


def test_get_summarizer_preferences() -> None:
    assert isinstance(get_summarizer("anything", "build"), BuildLogSummarizer)
    assert isinstance(get_summarizer("anything", "generic-logs"), GenericLogSummarizer)
    with pytest.raises(ValueError, match="Unknown log type 'bogus'"):
        get_summarizer("anything", "bogus")


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/api/users/123?expand=1", "/api/users/:id"),
        ("/api/items/550e8400-e29b-41d4-a716-446655440000", "/api/items/:uuid"),
        ("/api/docs/507f1f77bcf86cd799439011", "/api/docs/:id"),
        ("/health", "/health"),
        ("", "/"),
    ],
)
def test_normalize_path(path: str, expected: str) -> None:
    assert normalize_path(path) == expected


def test_parse_request_shapes() -> None:
    combined = parse_request('127.0.0.1 - - [15/Jan/2025:10:00:00 +0000] "GET /index.html HTTP/1.1" 200 512')
    assert combined is not None
    assert (combined.method, combined.path, combined.status) == ("GET", "/index.html", 200)

    kv = parse_request("method=POST path=/api/orders status=201 duration=1.5s")
    assert kv is not None
    assert (kv.method, kv.status, kv.response_time) == ("POST", 201, 1500.0)

    assert parse_request("no request here") is None
