"""HTTP / server log summarizer."""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..models import EndpointStats, LogEntry, LogLevel, LogSummary
from .base import SummarizeOptions, apply_timeframe, assemble_summary, base_statistics, hit_rate, sample
from .parsing import is_key_event, parse_log_lines

MIN_HIT_RATE = 0.1

_METHODS = "GET|POST|PUT|DELETE|PATCH|HEAD|OPTIONS"

_PLAIN_RE = re.compile(
    rf"\b(?P<method>{_METHODS})\s+(?P<path>/\S*)\s+(?P<status>\d{{3}})"
    r"(?:\s+(?P<time>\d+(?:\.\d+)?)\s*(?P<unit>ms|s)\b)?"
)
_COMBINED_RE = re.compile(
    rf'"(?P<method>{_METHODS})\s+(?P<path>\S+)(?:\s+HTTP/[\d.]+)?"\s+(?P<status>\d{{3}})'
    r"(?:\s+(?:\d+|-))?(?:.*?\s(?P<time>\d+(?:\.\d+)?)(?P<unit>ms|s)?\s*$)?"
)
_KV_PAIR_RE = re.compile(r'(?P<key>[\w.]+)=(?P<value>"[^"]*"|\S+)')

_UUID_RE = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")
_OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")

_TIME_KEYS = ("duration", "latency", "response_time", "elapsed", "took", "time")


@dataclass(frozen=True, slots=True)
class Request:
    method: str
    path: str
    status: int
    response_time: float | None  # milliseconds


def normalize_path(path: str) -> str:
    """Replace numeric, UUID and ObjectId segments; drop the query string."""
    path = path.split("?", 1)[0].split("#", 1)[0]
    segments = []
    for seg in path.split("/"):
        if seg.isdigit():
            segments.append(":id")
        elif _UUID_RE.match(seg):
            segments.append(":uuid")
        elif _OBJECT_ID_RE.match(seg):
            segments.append(":id")
        else:
            segments.append(seg)
    return "/".join(segments) or "/"


def _to_ms(value: str | None, unit: str | None) -> float | None:
    if value is None:
        return None
    ms = float(value)
    return ms * 1000 if unit == "s" else ms


def _parse_kv(line: str) -> Request | None:
    pairs = {m.group("key").lower(): m.group("value").strip('"') for m in _KV_PAIR_RE.finditer(line)}
    method = pairs.get("method", "").upper()
    path = pairs.get("path") or pairs.get("url") or pairs.get("uri")
    status = pairs.get("status") or pairs.get("status_code")
    if method not in _METHODS.split("|") or not path or not status or not status.isdigit():
        return None
    time_ms = None
    for key in _TIME_KEYS:
        raw = pairs.get(key)
        if raw:
            m = re.fullmatch(r"(\d+(?:\.\d+)?)(ms|s)?", raw)
            if m:
                time_ms = _to_ms(m.group(1), m.group(2) or "ms")
                break
    return Request(method, path, int(status), time_ms)


def parse_request(line: str) -> Request | None:
    """Parse a request line in plain, combined-log or key=value shape."""
    for pattern in (_COMBINED_RE, _PLAIN_RE):
        m = pattern.search(line)
        if m:
            return Request(
                method=m.group("method"),
                path=m.group("path"),
                status=int(m.group("status")),
                response_time=_to_ms(m.group("time"), m.group("unit")),
            )
    if "=" in line:
        return _parse_kv(line)
    return None


@dataclass(slots=True)
class _EndpointAcc:
    count: int = 0
    errors: int = 0
    total_ms: float = 0.0
    timed: int = 0


@dataclass(frozen=True, slots=True)
class ServerLogSummarizer:
    name: str = "server-logs"
    log_type: str = "server"

    def can_summarize(self, text: str) -> bool:
        return hit_rate(sample(text), parse_request) >= MIN_HIT_RATE

    def summarize(self, text: str, options: SummarizeOptions) -> LogSummary:
        entries = apply_timeframe(parse_log_lines(text.splitlines()), options)

        endpoints: dict[str, _EndpointAcc] = {}
        status_codes: dict[int, int] = {}
        errors: list[LogEntry] = []
        warnings: list[LogEntry] = []
        events: list[LogEntry] = []
        leveled: list[LogEntry] = []

        for entry in entries:
            req = parse_request(entry.raw)
            if req is None:
                leveled.append(entry)
                if entry.level is LogLevel.ERROR:
                    errors.append(entry)
                elif entry.level is LogLevel.WARNING:
                    warnings.append(entry)
                elif is_key_event(entry.raw):
                    events.append(entry)
                continue

            key = f"{req.method} {normalize_path(req.path)}"
            acc = endpoints.setdefault(key, _EndpointAcc())
            acc.count += 1
            if req.response_time is not None:
                acc.total_ms += req.response_time
                acc.timed += 1
            status_codes[req.status] = status_codes.get(req.status, 0) + 1

            if req.status >= 400:
                acc.errors += 1
                level = LogLevel.ERROR if req.status >= 500 else LogLevel.WARNING
                classified = LogEntry(
                    level=level,
                    message=f"{key} -> {req.status}",
                    raw=entry.raw,
                    timestamp=entry.timestamp,
                )
                leveled.append(classified)
                (errors if level is LogLevel.ERROR else warnings).append(classified)
            else:
                leveled.append(LogEntry(level=LogLevel.INFO, message=key, raw=entry.raw, timestamp=entry.timestamp))

        endpoint_stats = [
            EndpointStats(
                endpoint=key,
                count=acc.count,
                avg_response_time=round(acc.total_ms / acc.timed, 1) if acc.timed else None,
                error_count=acc.errors,
            )
            for key, acc in endpoints.items()
        ]
        endpoint_stats.sort(key=lambda s: (-s.count, s.endpoint))

        request_count = sum(acc.count for acc in endpoints.values())
        stats = base_statistics(
            leveled,
            len(entries),
            request_count=request_count,
            status_codes=dict(sorted(status_codes.items())),
            endpoints=endpoint_stats,
        )
        return assemble_summary(
            self.log_type,
            _overview(request_count, endpoint_stats, status_codes),
            errors=errors,
            warnings=warnings,
            events=events,
            statistics=stats,
            detail=options.detail,
        )


def _overview(request_count: int, endpoints: list[EndpointStats], status_codes: dict[int, int]) -> str:
    server_errors = sum(n for code, n in status_codes.items() if code >= 500)
    client_errors = sum(n for code, n in status_codes.items() if 400 <= code < 500)
    parts = [f"{request_count} requests", f"{len(endpoints)} endpoints"]
    if server_errors:
        parts.append(f"{server_errors} server errors (5xx)")
    if client_errors:
        parts.append(f"{client_errors} client errors (4xx)")
    timed = [e.avg_response_time for e in endpoints if e.avg_response_time is not None]
    if timed:
        parts.append(f"avg {sum(timed) / len(timed):.1f}ms")
    if endpoints:
        top = endpoints[0]
        parts.append(f"top: {top.endpoint} ({top.count})")
    return " - ".join(parts)
