from __future__ import annotations

import pytest

from mcp_context_optimizer.core.compressors import compress_diff, is_diff, parse_unified_diff
from mcp_context_optimizer.core.compressors.base import unchanged

TWO_FILES = "\n".join(
    [
        "--- a/a.txt",
        "+++ b/a.txt",
        "@@ -1 +1 @@",
        "-old a",
        "+new a",
        "--- a/b.txt",
        "+++ b/b.txt",
        "@@ -1 +1 @@",
        "-old b",
        "+new b",
    ]
)


def test_parse_unified_diff(unified_diff: str) -> None:
    files = parse_unified_diff(unified_diff)
    assert [f.path for f in files] == ["src/app.py"]
    hunk = files[0].hunks[0]
    assert hunk.context == "def main"
    assert hunk.new_start == 1
    assert (files[0].additions, files[0].deletions) == (1, 1)


def test_removed_line_that_looks_like_file_header() -> None:
    diff = "\n".join(
        [
            "--- a/x.txt",
            "+++ b/x.txt",
            "@@ -1,3 +1,2 @@",
            " keep",
            "--- legacy",
            " end",
        ]
    )
    files = parse_unified_diff(diff)
    assert len(files) == 1
    assert files[0].path == "x.txt"
    assert files[0].hunks[0].lines == [" keep", "--- legacy", " end"]
    assert files[0].deletions == 1


def test_hunks_only_collapses_context(unified_diff: str) -> None:
    result = compress_diff(unified_diff)

    assert result.stats.technique == "diff:hunks-only"
    lines = result.compressed.splitlines()
    assert lines[0] == "+++ src/app.py"
    assert lines[1].startswith("@@ -1,11 +1,11 @@")
    assert " ... (3 unchanged lines)" in lines
    assert " ... (5 unchanged lines)" in lines
    assert '-    print("hello")' in lines
    assert '+    print("hello, world")' in lines
    assert result.stats.compressed_tokens < result.stats.original_tokens


def test_summary_strategy(unified_diff: str) -> None:
    result = compress_diff(unified_diff, "summary")
    assert result.stats.technique == "diff:summary"
    assert result.compressed.splitlines() == [
        "src/app.py: +1 -1 (1 hunks) in def main",
        "1 files changed, +1 -1",
    ]


def test_semantic_strategy_budget() -> None:
    roomy = compress_diff(TWO_FILES, "semantic", max_tokens=1000)
    assert roomy.stats.technique == "diff:semantic"
    assert roomy.omitted_info is None
    assert roomy.compressed.splitlines()[0] == "+++ a.txt"
    assert "+++ b.txt" in roomy.compressed

    tight = compress_diff(TWO_FILES, "semantic", max_tokens=1)
    assert tight.compressed == "[... 2 hunks omitted ...]"
    assert tight.omitted_info == "2 hunks omitted"


def test_diff_metadata_in_extra() -> None:
    result = compress_diff(TWO_FILES)
    assert result.extra["files_changed"] == ["a.txt", "b.txt"]
    assert (result.extra["additions"], result.extra["deletions"]) == (2, 2)


def test_unchanged_result_copies_extra() -> None:
    meta = {"files_changed": ["a.txt"]}
    result = unchanged("text", extra=meta)
    assert result.extra == meta
    assert result.extra is not meta
    assert unchanged("text").extra == {}


def test_non_diff_input_unchanged() -> None:
    result = compress_diff("just some text\nnothing to see")
    assert result.compressed == "just some text\nnothing to see"
    assert result.stats.technique == "none"
    assert not is_diff("just some text")


def test_compress_diff_rejects_bad_arguments(unified_diff: str) -> None:
    with pytest.raises(ValueError, match="Unknown diff strategy"):
        compress_diff(unified_diff, "bogus")
    with pytest.raises(ValueError, match="max_tokens must be >= 1"):
        compress_diff(unified_diff, "semantic", max_tokens=0)
