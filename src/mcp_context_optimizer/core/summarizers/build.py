"""Build-tool output summarizer (webpack, vite, tsc, esbuild, rollup, npm)."""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass

from ..errors import extract_error_parts
from ..models import LogEntry, LogLevel, LogSummary
from .base import SummarizeOptions, apply_timeframe, assemble_summary, base_statistics, sample
from .parsing import format_duration, is_key_event, parse_log_lines

# Tie-break order when several tools have the same keyword count.
BUILD_TOOL_PATTERNS: dict[str, re.Pattern[str]] = {
    "webpack": re.compile(r"\bwebpack\b|compiled (?:successfully|with \d+ (?:errors?|warnings?))|^ERROR in |^WARNING in |^asset\s", re.IGNORECASE | re.MULTILINE),
    "vite": re.compile(r"\bvite\b|modules transformed|✓ built in", re.IGNORECASE),
    "tsc": re.compile(r"\berror TS\d+|\btsc\b|Found \d+ errors?\b"),
    "esbuild": re.compile(r"\besbuild\b|✘ \[ERROR\]|▲ \[WARNING\]|⚡"),
    "rollup": re.compile(r"\brollup\b|\bcreated \S+ in\b", re.IGNORECASE),
    "npm": re.compile(r"^npm (?:ERR!|WARN|notice)|^> \S+@\S+ \w+", re.MULTILINE),
}

_ERROR_RES = (
    re.compile(r"\berror\s+TS\d+:"),
    re.compile(r"^\s*\d+:\d+\s+error\s+"),  # eslint stylish
    re.compile(r"Module not found:"),
    re.compile(r"^ERROR(?: in)?\b"),
    re.compile(r"^npm ERR!"),
    re.compile(r"✘ \[ERROR\]"),
    re.compile(r"^error(?:\[E\d+\])?:"),
    re.compile(r"\.[A-Za-z]\w*:\d+:\d+:?\s*(?:fatal\s+)?error\b"),
    re.compile(r"\[(?:vite|plugin[^\]]*)\].*\berror\b", re.IGNORECASE),
)
_WARNING_RES = (
    re.compile(r"\bwarning\s+TS\d+:"),
    re.compile(r"^\s*\d+:\d+\s+warning\s+"),
    re.compile(r"^WARNING(?: in)?\b"),
    re.compile(r"^npm WARN\b"),
    re.compile(r"▲ \[WARNING\]"),
    re.compile(r"^warning(?:\[\w+\])?:"),
    re.compile(r"\.[A-Za-z]\w*:\d+:\d+:?\s*warning\b"),
)
_DURATION_RES = (
    re.compile(r"\bbuilt in (?P<value>\d+(?:\.\d+)?)\s*(?P<unit>ms|s)\b", re.IGNORECASE),
    re.compile(r"\bDone in (?P<value>\d+(?:\.\d+)?)\s*(?P<unit>ms|s)\b"),
    re.compile(r"^\s*Time:\s*(?P<value>\d+(?:\.\d+)?)\s*(?P<unit>ms|s)\b"),
    re.compile(r"\bcompiled(?: successfully)?(?: with .+?)? in (?P<value>\d+(?:\.\d+)?)\s*(?P<unit>ms|s)\b", re.IGNORECASE),
    re.compile(r"\bcreated \S+ in (?P<value>\d+(?:\.\d+)?)\s*(?P<unit>ms|s)\b"),
)
_SIZE_RE = re.compile(r"(?P<value>\d+(?:\.\d+)?)\s*(?P<unit>B|kB|KB|KiB|MB|MiB)\b")
_SIZE_LINE_RE = re.compile(r"\.(?:js|mjs|cjs|css|html|map|wasm)\b|\basset\b|\bchunk\b|\bbundle\b|\bdist/", re.IGNORECASE)
_TS_CODE_RE = re.compile(r"\b(TS\d{4,5})\b")

_KB = {"B": 1 / 1024, "kB": 1.0, "KB": 1.0, "KiB": 1.0, "MB": 1024.0, "MiB": 1024.0}


def detect_build_tool(text: str) -> str:
    """Tool with the highest keyword count in the sample; "unknown" if none."""
    head = "\n".join(sample(text))
    counts = {tool: len(pattern.findall(head)) for tool, pattern in BUILD_TOOL_PATTERNS.items()}
    best = max(counts.values())
    if best == 0:
        return "unknown"
    return next(tool for tool, n in counts.items() if n == best)


def classify_build_line(line: str) -> LogLevel | None:
    """Error or warning per the tool regex families; None for other lines."""
    if any(p.search(line) for p in _ERROR_RES):
        return LogLevel.ERROR
    if any(p.search(line) for p in _WARNING_RES):
        return LogLevel.WARNING
    return None


def _duration_ms(line: str) -> int | None:
    for pattern in _DURATION_RES:
        m = pattern.search(line)
        if m:
            value = float(m.group("value"))
            return round(value * 1000) if m.group("unit") == "s" else round(value)
    return None


def _message(line: str) -> str:
    parts = extract_error_parts(line)
    if parts is not None and parts.code:
        return f"{parts.code}: {parts.message}"
    return line.strip()


@dataclass(frozen=True, slots=True)
class BuildLogSummarizer:
    name: str = "build-logs"
    log_type: str = "build"

    def can_summarize(self, text: str) -> bool:
        if detect_build_tool(text) != "unknown":
            return True
        return any(classify_build_line(line) is not None for line in sample(text))

    def summarize(self, text: str, options: SummarizeOptions) -> LogSummary:
        tool = detect_build_tool(text)
        entries = apply_timeframe(parse_log_lines(text.splitlines()), options)

        errors: list[LogEntry] = []
        warnings: list[LogEntry] = []
        events: list[LogEntry] = []
        leveled: list[LogEntry] = []
        codes: Counter[str] = Counter()
        duration: int | None = None
        size_kb = 0.0
        sized = False

        for entry in entries:
            line = entry.raw
            if duration is None:
                duration = _duration_ms(line)
            if _SIZE_LINE_RE.search(line):
                for m in _SIZE_RE.finditer(line):
                    size_kb += float(m.group("value")) * _KB[m.group("unit")]
                    sized = True

            level = classify_build_line(line)
            if level is LogLevel.ERROR:
                codes.update(_TS_CODE_RE.findall(line))
                e = LogEntry(level=LogLevel.ERROR, message=_message(line), raw=line, timestamp=entry.timestamp)
                errors.append(e)
                leveled.append(e)
            elif level is LogLevel.WARNING:
                w = LogEntry(level=LogLevel.WARNING, message=_message(line), raw=line, timestamp=entry.timestamp)
                warnings.append(w)
                leveled.append(w)
            else:
                leveled.append(entry)
                if is_key_event(line) or _duration_ms(line) is not None:
                    events.append(entry)

        error_codes = dict(sorted(codes.items(), key=lambda kv: (-kv[1], kv[0])))
        bundle_size = f"{size_kb:.1f} KB" if sized else None
        stats = base_statistics(
            leveled,
            len(entries),
            build_tool=tool,
            build_duration=duration,
            bundle_size=bundle_size,
            error_codes=error_codes or None,
        )
        return assemble_summary(
            self.log_type,
            _overview(tool, duration, len(errors), error_codes, bundle_size),
            errors=errors,
            warnings=warnings,
            events=events,
            statistics=stats,
            detail=options.detail,
        )


def _overview(
    tool: str,
    duration: int | None,
    error_count: int,
    error_codes: dict[str, int],
    bundle_size: str | None,
) -> str:
    parts = [f"{tool} build"]
    if duration is not None:
        parts.append(f"completed in {format_duration(duration)}")
    elif error_count:
        parts.append("failed")
    parts.append(f"{error_count} errors")
    if error_codes:
        top = ", ".join(f"{code}({n})" for code, n in list(error_codes.items())[:5])
        parts.append(f"[{top}]")
    if bundle_size:
        parts.append(f"{bundle_size} total")
    return " - ".join(parts)
