from __future__ import annotations

import pytest

from mcp_context_optimizer.resources.registry import SAMPLE_BUILD_OUTPUT, SAMPLE_SERVER_LOG, effective_config
from mcp_context_optimizer.tools.optimize import analyze_build_output_impl, summarize_logs_impl


def test_effective_config_defaults() -> None:
    cfg = effective_config()

    assert cfg["engine"]["min_optimize_chars"] == 500
    assert cfg["engine"]["tokenizer"] == "heuristic"
    assert cfg["budget_ratios"] == {"minimal": 0.3, "normal": 0.5, "detailed": 0.7}
    assert cfg["max_entries"]["normal"] == {"errors": 10, "warnings": 5, "events": 10}
    assert cfg["summarizers"] == ["server", "test", "build", "generic"]
    assert cfg["preserve_patterns"]["generic"] == []


def test_effective_config_reflects_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONTEXT_OPT_MIN_CHARS", "42")
    assert effective_config()["engine"]["min_optimize_chars"] == 42


def test_sample_resources_match_their_tools() -> None:
    build = analyze_build_output_impl(content=SAMPLE_BUILD_OUTPUT)
    assert build["build_tool"] == "tsc"
    assert build["summary"].splitlines()[1] == "TS2304: Cannot find name 'foo'. (×5)"

    logs = summarize_logs_impl(content=SAMPLE_SERVER_LOG)
    assert logs["log_type"] == "server"
    assert logs["summary"]["statistics"]["request_count"] == 6
