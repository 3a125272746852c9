"""MCP server entrypoint (stdio transport).

This module wires together:
- Tools: content optimization actions backed by the core engine
- Resources: help text, effective configuration and response schemas
- Prompts: reusable templates for common reduction workflows

Run locally (stdio):
    python -m mcp_context_optimizer.server.context_server
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence
from typing import Any

from mcp.server.fastmcp import FastMCP

from mcp_context_optimizer.core.cache import MemoryResultCache
from mcp_context_optimizer.core.session import SessionStats
from mcp_context_optimizer.prompts.registry import register_prompts
from mcp_context_optimizer.resources.registry import register_resources
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

LOGGER = logging.getLogger(__name__)

SESSION = SessionStats()
CACHE = MemoryResultCache()


def _configure_logging() -> None:
    """Configure logging on stderr; stdout carries the stdio transport."""
    level_name = os.getenv("CONTEXT_OPT_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


mcp = FastMCP("context-optimizer", json_response=True)

register_resources(mcp)
register_prompts(mcp)


@mcp.tool()
def optimize(
    content: str,
    hint: str = "auto",
    aggressive: bool = False,
    format: str = "plain",
) -> dict[str, Any]:
    """Detect the content type and reduce it with the best-fitting strategy.

    Parameters
    ----------
    content:
        Raw tool output, logs, stack traces, code or prose.
    hint:
        One of auto, build, logs, errors, code. "auto" runs detection.
    aggressive:
        Use the minimal detail level (smaller output, fewer entries).
    format:
        plain or markdown rendering for summaries and grouped errors.

    Returns
    -------
    dict:
        {"optimized_content", "detected_type", "original_tokens",
         "optimized_tokens", "savings_percent", "method", "note", "cached"}
    """
    return optimize_impl(content=content, hint=hint, aggressive=aggressive, format=format, session=SESSION, cache=CACHE)


@mcp.tool()
def compress_context(
    content: str,
    content_type: str | None = None,
    detail: str = "normal",
    target_ratio: float | None = None,
    preserve_patterns: Sequence[str] | None = None,
) -> dict[str, Any]:
    """Keep the most important lines/paragraphs within a token budget.

    content_type (logs, stacktrace, code, generic) skips detection.
    detail picks the budget (minimal 30%, normal 50%, detailed 70%) unless
    target_ratio in (0, 1] is given. preserve_patterns are regexes for lines
    that must always be kept.
    """
    return compress_context_impl(
        content=content,
        content_type=content_type,
        detail=detail,
        target_ratio=target_ratio,
        preserve_patterns=list(preserve_patterns or []),
        session=SESSION,
        cache=CACHE,
    )


@mcp.tool()
def semantic_compress(
    content: str,
    target_ratio: float = 0.5,
    preserve_patterns: Sequence[str] | None = None,
) -> dict[str, Any]:
    """Select paragraphs (or sentences) by TF-IDF, position and keywords."""
    return semantic_compress_impl(
        content=content,
        target_ratio=target_ratio,
        preserve_patterns=list(preserve_patterns or []),
        session=SESSION,
    )


@mcp.tool()
def deduplicate_errors(
    content: str,
    format: str = "plain",
    max_locations: int = 0,
    error_pattern: str | None = None,
) -> dict[str, Any]:
    """Group repeated compiler/linter/runtime errors by normalized signature."""
    return deduplicate_errors_impl(
        content=content,
        format=format,
        max_locations=max_locations,
        error_pattern=error_pattern,
        session=SESSION,
    )


@mcp.tool()
def analyze_build_output(content: str, detail: str = "normal", format: str = "plain") -> dict[str, Any]:
    """Identify the build tool and group its errors; counts warnings."""
    return analyze_build_output_impl(content=content, detail=detail, format=format, session=SESSION)


@mcp.tool()
def summarize_logs(
    content: str,
    log_type: str | None = None,
    detail: str = "normal",
    since: str | None = None,
    until: str | None = None,
    format: str = "plain",
) -> dict[str, Any]:
    """Summarize server, test, build or generic logs.

    since/until:
        ISO-8601 datetimes bounding timestamped entries (e.g., 2025-01-15T10:00:00Z).
    """
    return summarize_logs_impl(
        content=content,
        log_type=log_type,
        detail=detail,
        since=since,
        until=until,
        format=format,
    )


@mcp.tool()
def diff_compress(content: str, strategy: str = "hunks-only", max_tokens: int | None = None) -> dict[str, Any]:
    """Compress a unified diff (strategies: hunks-only, summary, semantic)."""
    return diff_compress_impl(content=content, strategy=strategy, max_tokens=max_tokens, session=SESSION)


@mcp.tool()
async def compress_multifile(
    files: list[dict[str, Any]],
    strategy: str = "deduplicate",
    max_tokens: int = 50000,
    entry_points: Sequence[str] | None = None,
    dependency_depth: int = 1,
    preserve_patterns: Sequence[str] | None = None,
) -> dict[str, Any]:
    """Compress several source files together.

    files:
        [{"path": ..., "content": ...}]; content may be omitted to read the
        file from CONTEXT_OPT_BASE_DIR.
    strategy:
        deduplicate (hoist shared imports/types/constants), skeleton
        (signatures only, entry points in full) or smart-chunk
        (dependency-grouped chunks).
    """
    return await compress_multifile_impl(
        files=files,
        strategy=strategy,
        max_tokens=max_tokens,
        entry_points=list(entry_points or []),
        dependency_depth=dependency_depth,
        preserve_patterns=list(preserve_patterns or []),
        session=SESSION,
    )


@mcp.tool()
def analyze_content(content: str) -> dict[str, Any]:
    """Report the detected content type and the strategy that would be used."""
    return analyze_content_impl(content=content)


@mcp.tool()
def session_stats() -> dict[str, Any]:
    """Return token savings accumulated since the server started."""
    return session_stats_impl(session=SESSION, cache=CACHE)


def main(argv: Sequence[str] | None = None) -> None:
    """Start the MCP server over stdio."""
    _configure_logging()
    LOGGER.debug("Starting MCP server (transport=stdio)")
    _ = argv or sys.argv[1:]
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
