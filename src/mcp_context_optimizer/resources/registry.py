"""MCP resource registry.

Resources are addressable by URI and can be fetched by the MCP client on demand.
"""

from __future__ import annotations

import dataclasses
from typing import Any

from mcp.server.fastmcp import FastMCP

from mcp_context_optimizer.core.compressors import BUDGET_RATIOS, PRESERVE_PATTERNS
from mcp_context_optimizer.core.config import resolve_config
from mcp_context_optimizer.core.loading import BASE_DIR_ENV, base_dir, read_text
from mcp_context_optimizer.core.summarizers import MAX_ENTRIES, SUMMARIZERS
from mcp_context_optimizer.tools.optimize import CompressResponse, OptimizeResponse

SAMPLE_BUILD_OUTPUT = "\n".join(
    [
        "src/a.ts(3,5): error TS2304: Cannot find name 'foo'.",
        "src/b.ts(10,1): error TS2304: Cannot find name 'foo'.",
        "src/c.ts(7,12): error TS2304: Cannot find name 'foo'.",
        "src/d.ts(1,1): error TS2304: Cannot find name 'foo'.",
        "src/e.ts(22,8): error TS2304: Cannot find name 'foo'.",
        "Found 5 errors.",
    ]
)

SAMPLE_SERVER_LOG = "\n".join(
    [
        "2025-01-15T10:00:00Z GET /api/users/123 200 45ms",
        "2025-01-15T10:00:01Z GET /api/users/456 200 38ms",
        "2025-01-15T10:00:02Z POST /api/orders 201 120ms",
        "2025-01-15T10:00:03Z GET /api/users/789 404 12ms",
        "2025-01-15T10:00:04Z GET /api/users/790 404 11ms",
        "2025-01-15T10:00:05Z GET /api/health 500 3ms",
    ]
)


def effective_config() -> dict[str, Any]:
    """Resolved engine configuration plus the fixed per-detail limits."""
    cfg = resolve_config()
    return {
        "engine": dataclasses.asdict(cfg),
        "budget_ratios": {d.value: r for d, r in BUDGET_RATIOS.items()},
        "max_entries": {d.value: dataclasses.asdict(limits) for d, limits in MAX_ENTRIES.items()},
        "preserve_patterns": {t.value: list(p) for t, p in PRESERVE_PATTERNS.items()},
        "summarizers": [s.log_type for s in SUMMARIZERS],
    }


def register_resources(mcp: FastMCP) -> None:
    """Register resource handlers on the MCP server."""

    @mcp.resource("app://context-optimizer/help")
    def help_resource() -> str:
        """Return a short list of available resource URIs."""
        return (
            "Resources:\n"
            "- app://context-optimizer/help\n"
            "- app://context-optimizer/config\n"
            "- app://context-optimizer/schemas/optimize-response\n"
            "- app://context-optimizer/schemas/compress-response\n"
            "- app://context-optimizer/examples/build-output\n"
            "- app://context-optimizer/examples/server-log\n"
            f"- file://{{path}} (restricted to {BASE_DIR_ENV})\n"
            f"\nBase directory: {base_dir()}\n"
        )

    @mcp.resource("app://context-optimizer/config")
    def config_resource() -> dict[str, Any]:
        """Return the effective configuration."""
        return effective_config()

    @mcp.resource("app://context-optimizer/schemas/optimize-response")
    def optimize_schema() -> dict[str, Any]:
        """Return the JSON schema of optimize responses."""
        return OptimizeResponse.model_json_schema()

    @mcp.resource("app://context-optimizer/schemas/compress-response")
    def compress_schema() -> dict[str, Any]:
        """Return the JSON schema of compression responses."""
        return CompressResponse.model_json_schema()

    @mcp.resource("app://context-optimizer/examples/build-output")
    def sample_build_output() -> str:
        return SAMPLE_BUILD_OUTPUT

    @mcp.resource("app://context-optimizer/examples/server-log")
    def sample_server_log() -> str:
        return SAMPLE_SERVER_LOG

    @mcp.resource("file://{path}")
    async def read_file(path: str) -> str:
        """Read a text file from within CONTEXT_OPT_BASE_DIR."""
        return await read_text(path)
