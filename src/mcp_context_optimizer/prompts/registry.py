"""MCP prompt registry.

Prompts are predefined conversation/workflow templates that the client can invoke explicitly.
"""

from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP


def register_prompts(mcp: FastMCP) -> None:
    """Register prompt templates on the MCP server."""

    @mcp.prompt()
    def fix_build_errors(file_path: str) -> list[dict[str, Any]]:
        """Build a prompt that reduces build output before fixing errors."""
        return [
            {
                "role": "system",
                "content": (
                    "You are a precise build engineer. Work from grouped errors, not raw output. "
                    "Fix root causes first; one missing symbol often explains many errors."
                ),
            },
            {
                "role": "user",
                "content": (
                    "Call analyze_build_output on the build log below (detail: normal), then:\n"
                    "1) List the unique errors with their counts\n"
                    "2) Name the most likely root cause for each group\n"
                    "3) Propose the smallest set of edits that clears them\n"
                ),
            },
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "Build log:"},
                    {"type": "resource", "uri": f"file://{file_path}"},
                ],
            },
        ]

    @mcp.prompt()
    def investigate_logs(file_path: str, since: str | None = None, until: str | None = None) -> list[dict[str, Any]]:
        """Build a prompt that summarizes a log file before analysis."""
        window = []
        if since is not None:
            window.append(f"- since: {since}")
        if until is not None:
            window.append(f"- until: {until}")
        window_block = "\n".join(window) if window else "- (full file)"
        return [
            {
                "role": "system",
                "content": (
                    "You are an incident triage assistant. Base every claim on the summary "
                    "returned by the tool; do not invent log lines."
                ),
            },
            {
                "role": "user",
                "content": (
                    "Call summarize_logs with format=markdown and this window:\n"
                    f"{window_block}\n\n"
                    "Then report:\n"
                    "1) What happened (1-3 bullets)\n"
                    "2) Top errors with counts\n"
                    "3) Next actions (2-4 bullets)\n"
                ),
            },
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "Log file:"},
                    {"type": "resource", "uri": f"file://{file_path}"},
                ],
            },
        ]
