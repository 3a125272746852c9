"""Plain-text and markdown rendering of a LogSummary."""

from __future__ import annotations

from typing import Literal

from ..models import LogEntry, LogSummary

OutputFormat = Literal["plain", "markdown"]

_SECTIONS = (("errors", "Errors"), ("warnings", "Warnings"), ("key_events", "Key events"))


def _entry_line(entry: LogEntry, fmt: OutputFormat) -> str:
    suffix = f" (×{entry.count})" if entry.count > 1 else ""
    stamp = f"[{entry.timestamp}] " if entry.timestamp else ""
    if fmt == "markdown":
        return f"- {stamp}`{entry.message}`{suffix}"
    return f"  {stamp}{entry.message}{suffix}"


def render_summary(summary: LogSummary, fmt: OutputFormat = "plain") -> str:
    """Render overview, capped entry lists with "+N more" markers, and stats."""
    out: list[str] = []
    if fmt == "markdown":
        out.append(f"## {summary.log_type.capitalize()} log summary")
        out.append(summary.overview)
    else:
        out.append(f"[{summary.log_type}] {summary.overview}")

    for attr, title in _SECTIONS:
        entries: list[LogEntry] = getattr(summary, attr)
        more = summary.omitted.get(attr, 0)
        if not entries and not more:
            continue
        out.append("")
        out.append(f"### {title}" if fmt == "markdown" else f"{title}:")
        out.extend(_entry_line(e, fmt) for e in entries)
        if more:
            out.append(f"{'- ' if fmt == 'markdown' else '  '}... +{more} more")

    stats = summary.statistics
    if stats.endpoints:
        out.append("")
        out.append("### Endpoints" if fmt == "markdown" else "Endpoints:")
        for ep in stats.endpoints[:10]:
            avg = f", avg {ep.avg_response_time}ms" if ep.avg_response_time is not None else ""
            errs = f", {ep.error_count} errors" if ep.error_count else ""
            prefix = "- " if fmt == "markdown" else "  "
            out.append(f"{prefix}{ep.endpoint}: {ep.count} requests{avg}{errs}")
    if stats.timespan is not None:
        out.append("")
        out.append(f"Timespan: {stats.timespan.start} -> {stats.timespan.end} ({stats.timespan.duration})")
    return "\n".join(out)
