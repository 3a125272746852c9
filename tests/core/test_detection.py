from __future__ import annotations

import pytest

from mcp_context_optimizer.core.detection import describe_content_type, detect_content_type, is_build_output
from mcp_context_optimizer.core.models import ContentType

LOG_TEXT = "\n".join(
    [
        "2025-01-15 10:00:00 INFO server started",
        "2025-01-15 10:00:01 WARN slow query",
        "2025-01-15 10:00:02 ERROR connection refused",
    ]
)

CODE_TEXT = "\n".join(
    [
        "def add(a, b):",
        "    return a + b",
        "",
        "class Foo:",
        "    pass",
    ]
)

PROSE = "The quick brown fox jumps over the lazy dog.\nIt was a sunny day in the park."


def test_detects_python_traceback(python_traceback: str) -> None:
    assert detect_content_type(python_traceback) is ContentType.STACKTRACE


def test_detects_logs() -> None:
    assert detect_content_type(LOG_TEXT) is ContentType.LOGS


def test_detects_code() -> None:
    assert detect_content_type(CODE_TEXT) is ContentType.CODE


def test_detects_generic_prose_and_empty() -> None:
    assert detect_content_type(PROSE) is ContentType.GENERIC
    assert detect_content_type("") is ContentType.GENERIC
    assert detect_content_type("\n\n   \n") is ContentType.GENERIC


@pytest.mark.parametrize("text", [LOG_TEXT, CODE_TEXT, PROSE])
def test_detection_stable_under_trailing_blank_lines(text: str) -> None:
    assert detect_content_type(text + "\n\n\n   \n") is detect_content_type(text)


def test_detection_only_samples_leading_lines() -> None:
    text = LOG_TEXT + "\n" + "\n".join(["plain words here"] * 500)
    assert detect_content_type(text, sample_size=3) is ContentType.LOGS


def test_is_build_output(ts_build_output: str) -> None:
    assert is_build_output(ts_build_output)
    assert is_build_output("main.c:3:10: error: expected ';' before '}' token")
    assert not is_build_output(PROSE)
    assert not is_build_output("")


def test_timestamped_app_logs_are_not_build_output() -> None:
    assert not is_build_output(LOG_TEXT)
    assert not is_build_output("2025-01-15 10:00:05 error: worker 3 lost its lease")
    assert is_build_output("src/app.c:10:5: fatal error: stdio.h: No such file or directory")


def test_describe_content_type() -> None:
    assert describe_content_type(ContentType.LOGS) == "application/server logs"
