"""Test-runner output summarizer (Jest/Vitest, Mocha, pytest, Go, bracket styles)."""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..models import LogEntry, LogLevel, LogSummary
from .base import SummarizeOptions, apply_timeframe, assemble_summary, base_statistics, sample
from .parsing import format_duration, parse_log_lines

_PASS, _FAIL, _SKIP = "pass", "fail", "skip"

# (outcome, pattern) pairs; each pattern exposes a `name` group.
_TEST_LINE_RES: tuple[tuple[str, re.Pattern[str]], ...] = (
    (_PASS, re.compile(r"^\s*[✓✔√]\s+(?P<name>.+?)(?:\s+\(\d+(?:\.\d+)?\s*m?s\))?\s*$")),
    (_FAIL, re.compile(r"^\s*[✕✗×✘]\s+(?P<name>.+?)(?:\s+\(\d+(?:\.\d+)?\s*m?s\))?\s*$")),
    (_SKIP, re.compile(r"^\s*[○↓]\s+(?:skipped\s+)?(?P<name>.+?)\s*$")),
    (_FAIL, re.compile(r"^\s*\d+\)\s+(?P<name>.+?)\s*$")),  # mocha failure index
    (_PASS, re.compile(r"^(?P<name>\S+::\S+)\s+PASSED\b")),
    (_FAIL, re.compile(r"^(?P<name>\S+::\S+)\s+(?:FAILED|ERROR)\b")),
    (_SKIP, re.compile(r"^(?P<name>\S+::\S+)\s+(?:SKIPPED|XFAIL)\b")),
    (_FAIL, re.compile(r"^(?:FAILED|ERROR)\s+(?P<name>\S+::\S+)")),  # pytest short summary
    (_PASS, re.compile(r"^\s*--- PASS: (?P<name>\S+)")),
    (_FAIL, re.compile(r"^\s*--- FAIL: (?P<name>\S+)")),
    (_SKIP, re.compile(r"^\s*--- SKIP: (?P<name>\S+)")),
    (_PASS, re.compile(r"^\s*\[(?:PASS|PASSED|OK)\]\s+(?P<name>.+?)\s*$")),
    (_FAIL, re.compile(r"^\s*\[(?:FAIL|FAILED)\]\s+(?P<name>.+?)\s*$")),
    (_SKIP, re.compile(r"^\s*\[(?:SKIP|SKIPPED)\]\s+(?P<name>.+?)\s*$")),
)
_TEST_FILE_RE = re.compile(r"^\s*(?P<result>PASS|FAIL)\s+(?P<file>\S+)")

_COUNT_RES = {
    _PASS: re.compile(r"\b(\d+)\s+(?:passed|passing)\b", re.IGNORECASE),
    _FAIL: re.compile(r"\b(\d+)\s+(?:failed|failing)\b", re.IGNORECASE),
    _SKIP: re.compile(r"\b(\d+)\s+(?:skipped|pending|todo)\b", re.IGNORECASE),
}
_SUMMARY_RE = re.compile(r"\b\d+\s+(?:passed|failed|passing|failing)\b", re.IGNORECASE)
_SUITE_SUMMARY_RE = re.compile(r"^\s*Test Suites:", re.IGNORECASE)
_DURATION_RES = (
    re.compile(r"\bin\s+(?P<value>\d+(?:\.\d+)?)\s*(?P<unit>ms|s)\b"),
    re.compile(r"^\s*Time:\s+(?P<value>\d+(?:\.\d+)?)\s*(?P<unit>ms|s)\b"),
    re.compile(r"\d+\s+passing\s+\((?P<value>\d+(?:\.\d+)?)(?P<unit>ms|s)\)"),
    re.compile(r"^(?:ok|FAIL)\s+\S+\s+(?P<value>\d+(?:\.\d+)?)(?P<unit>s)\b"),  # go test
)
_FAILURE_DETAIL_RE = re.compile(
    r"^\s*(?:AssertionError|assert\s|Expected|Received|E\s{2,}|Error:|\w+Error:)"
)


def classify_test_line(line: str) -> tuple[str, str] | None:
    """Return (outcome, test name) for a per-test result line."""
    for outcome, pattern in _TEST_LINE_RES:
        m = pattern.match(line)
        if m:
            return outcome, m.group("name")
    return None


def is_summary_line(line: str) -> bool:
    return bool(_SUMMARY_RE.search(line)) and not _SUITE_SUMMARY_RE.match(line) and classify_test_line(line) is None


def _duration_ms(line: str) -> int | None:
    for pattern in _DURATION_RES:
        m = pattern.search(line)
        if m:
            value = float(m.group("value"))
            return round(value * 1000) if m.group("unit") == "s" else round(value)
    return None


@dataclass(frozen=True, slots=True)
class TestLogSummarizer:
    __test__ = False  # not a pytest test class

    name: str = "test-logs"
    log_type: str = "test"

    def can_summarize(self, text: str) -> bool:
        lines = sample(text)
        if any(is_summary_line(line) for line in lines):
            return True
        hits = sum(1 for line in lines if classify_test_line(line) or _TEST_FILE_RE.match(line))
        return hits >= 2

    def summarize(self, text: str, options: SummarizeOptions) -> LogSummary:
        entries = apply_timeframe(parse_log_lines(text.splitlines()), options)

        counted = {_PASS: 0, _FAIL: 0, _SKIP: 0}
        summary_counts: dict[str, int] | None = None
        duration: int | None = None
        errors: list[LogEntry] = []
        warnings: list[LogEntry] = []
        events: list[LogEntry] = []
        leveled: list[LogEntry] = []

        for entry in entries:
            line = entry.raw
            if _SUITE_SUMMARY_RE.match(line):
                continue
            if is_summary_line(line):
                # mocha prints one count per line, so merge across summary lines
                summary_counts = summary_counts or {_PASS: 0, _FAIL: 0, _SKIP: 0}
                for outcome, pattern in _COUNT_RES.items():
                    m = pattern.search(line)
                    if m:
                        summary_counts[outcome] = int(m.group(1))
                duration = _duration_ms(line) or duration
                continue
            if duration is None and line.lstrip().startswith("Time:"):
                duration = _duration_ms(line)
                continue

            result = classify_test_line(line)
            if result is not None:
                outcome, name = result
                counted[outcome] += 1
                if outcome == _FAIL:
                    failed = LogEntry(level=LogLevel.ERROR, message=f"FAIL {name}", raw=line, timestamp=entry.timestamp)
                    errors.append(failed)
                    leveled.append(failed)
                else:
                    leveled.append(LogEntry(level=LogLevel.INFO, message=name, raw=line, timestamp=entry.timestamp))
                continue

            file_result = _TEST_FILE_RE.match(line)
            if file_result:
                events.append(
                    LogEntry(
                        level=LogLevel.ERROR if file_result.group("result") == "FAIL" else LogLevel.INFO,
                        message=f"{file_result.group('result')} {file_result.group('file')}",
                        raw=line,
                        timestamp=entry.timestamp,
                    )
                )
                continue

            if _FAILURE_DETAIL_RE.match(line):
                detail = LogEntry(level=LogLevel.ERROR, message=line.strip(), raw=line, timestamp=entry.timestamp)
                errors.append(detail)
                leveled.append(detail)
                continue

            leveled.append(entry)
            if entry.level is LogLevel.WARNING:
                warnings.append(entry)

        counts = summary_counts if summary_counts is not None else counted
        stats = base_statistics(
            leveled,
            len(entries),
            pass_count=counts[_PASS],
            fail_count=counts[_FAIL],
            skip_count=counts[_SKIP],
            test_duration=duration,
        )
        return assemble_summary(
            self.log_type,
            _overview(counts, duration),
            errors=errors,
            warnings=warnings,
            events=events,
            statistics=stats,
            detail=options.detail,
        )


def _overview(counts: dict[str, int], duration: int | None) -> str:
    total = counts[_PASS] + counts[_FAIL] + counts[_SKIP]
    ran = counts[_PASS] + counts[_FAIL]
    rate = f"{counts[_PASS] / ran * 100:.0f}% pass rate" if ran else "no tests ran"
    text = (
        f"{total} tests: {counts[_PASS]} passed, {counts[_FAIL]} failed, "
        f"{counts[_SKIP]} skipped ({rate})"
    )
    if duration is not None:
        text += f" in {format_duration(duration)}"
    return text
