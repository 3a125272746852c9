from __future__ import annotations

import pytest

from mcp_context_optimizer.core.compressors import (
    FileContext,
    MultiFileOptions,
    MultiFileStrategy,
    build_dependency_graph,
    compress_multi_file,
    create_chunks,
    extract_shared_elements,
    extract_skeleton,
    remove_shared_imports,
)

PY_MODULE = """import os

CONSTANT = 1

class Foo:
    def bar(self, x):
        return x + 1

async def run():
    await thing()
"""


@pytest.fixture
def files(ts_sources: dict[str, str]) -> list[FileContext]:
    return [FileContext(path, content) for path, content in ts_sources.items()]


def test_extract_shared_elements(files: list[FileContext]) -> None:
    shared = extract_shared_elements(files)

    assert shared.imports == {"react": ["import { useState } from 'react';"]}
    assert shared.import_names == {"react": ("useState",)}
    assert shared.types == ["User"]
    assert shared.constants == {"API_URL": "'https://api.example.com'"}
    assert shared.item_count == 3


def test_remove_shared_imports(files: list[FileContext]) -> None:
    shared = extract_shared_elements(files)
    body = remove_shared_imports(files[1], shared)
    assert "react" not in body
    assert body.startswith("export const API_URL")


def test_deduplicate_strategy(files: list[FileContext]) -> None:
    result = compress_multi_file(files)

    assert result.compressed.count("from 'react'") == 1
    assert result.compressed.count("API_URL") == 1
    assert "// interface User: see src/a.ts" in result.compressed
    assert "=== shared types: User ===" in result.compressed
    assert "=== src/utils.ts ===" in result.compressed
    assert result.stats.files_processed == 3
    assert result.stats.deduplicated_items == 3


def test_dependency_graph(files: list[FileContext]) -> None:
    assert build_dependency_graph(files) == {
        "src/a.ts": ["src/utils.ts"],
        "src/b.ts": [],
        "src/utils.ts": [],
    }


def test_python_dependency_graph() -> None:
    files = [
        FileContext("pkg/app.py", "from .models import User\nimport pkg.util\n"),
        FileContext("pkg/models.py", "class User:\n    pass\n"),
        FileContext("pkg/util.py", "X = 1\n"),
    ]
    graph = build_dependency_graph(files)
    assert graph["pkg/app.py"] == ["pkg/models.py", "pkg/util.py"]


def test_create_chunks_follows_dependencies(files: list[FileContext]) -> None:
    chunks = create_chunks(files, 1000)
    assert [c.files for c in chunks] == [["src/a.ts", "src/utils.ts"], ["src/b.ts"]]

    tight = create_chunks(files, 1)
    assert [c.files for c in tight] == [["src/a.ts"], ["src/b.ts"], ["src/utils.ts"]]


def test_typescript_skeleton(ts_sources: dict[str, str]) -> None:
    skeleton = extract_skeleton(FileContext("src/utils.ts", ts_sources["src/utils.ts"]))
    assert skeleton == "export function helper(x: number): number { ... }"

    b = extract_skeleton(FileContext("src/b.ts", ts_sources["src/b.ts"]))
    assert "export function B() { ... }" in b
    assert "  name: string;" in b
    assert "useState(1)" not in b


def test_python_skeleton() -> None:
    skeleton = extract_skeleton(FileContext("mod.py", PY_MODULE))
    assert skeleton.splitlines() == [
        "import os",
        "CONSTANT = 1",
        "class Foo:",
        "    def bar(self, x):",
        "        ...",
        "async def run():",
        "    ...",
    ]


def test_skeleton_strategy_renders_entry_points_in_full(files: list[FileContext]) -> None:
    result = compress_multi_file(
        files,
        MultiFileOptions(strategy=MultiFileStrategy.SKELETON, entry_points=("src/a.ts",)),
    )
    assert "=== src/a.ts (full) ===" in result.compressed
    assert "=== src/b.ts (skeleton) ===" in result.compressed
    assert "=== src/utils.ts (full) ===" in result.compressed

    shallow = compress_multi_file(
        files,
        MultiFileOptions(strategy=MultiFileStrategy.SKELETON, entry_points=("src/a.ts",), dependency_depth=0),
    )
    assert "=== src/utils.ts (skeleton) ===" in shallow.compressed


def test_smart_chunk_strategy(files: list[FileContext]) -> None:
    result = compress_multi_file(files, MultiFileOptions(strategy=MultiFileStrategy.SMART_CHUNK, max_tokens=3000))
    assert len(result.chunks) == 2
    assert "=== chunk 1/2 (2 files" in result.compressed
    assert "--- src/utils.ts ---" in result.compressed


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [({"max_tokens": 0}, "max_tokens"), ({"dependency_depth": -1}, "dependency_depth")],
)
def test_multifile_options_validation(kwargs: dict[str, int], message: str) -> None:
    with pytest.raises(ValueError, match=message):
        MultiFileOptions(**kwargs)


@pytest.mark.parametrize(
    ("path", "language", "expected"),
    [
        ("src/App.tsx", None, "typescript"),
        ("lib/index.mjs", None, "javascript"),
        ("pkg\\mod.py", None, "python"),
        ("README", None, "unknown"),
        ("script", "Python", "python"),
    ],
)
def test_file_context_language(path: str, language: str | None, expected: str) -> None:
    assert FileContext(path, "", language).lang == expected
