from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest


@pytest.fixture
def ts_build_output() -> str:
    return "\n".join(
        f"src/components/feature{i}/Widget{i}.tsx({i * 10 + 3},{i + 5}): error TS2304: Cannot find name 'foo'."
        for i in range(1, 11)
    ) + "\nFound 10 errors."


@pytest.fixture
def server_log() -> str:
    lines = []
    for i in range(12):
        status = 404 if i in (4, 9) else 200
        lines.append(f"2025-01-15T10:00:{i:02d}Z GET /api/users/{100 + i} {status} {40 + i}ms")
    lines += [
        "2025-01-15T10:00:20Z POST /api/orders 201 120ms",
        "2025-01-15T10:00:21Z POST /api/orders 201 110ms",
        "2025-01-15T10:00:22Z GET /api/health 200 2ms",
        "2025-01-15T10:00:23Z GET /api/health 200 3ms",
        "2025-01-15T10:00:24Z GET /api/health 200 2ms",
        "2025-01-15T10:00:25Z POST /api/orders 201 130ms",
    ]
    return "\n".join(lines) + "\n"


@pytest.fixture
def generic_log() -> str:
    return "\n".join(
        [
            "2025-01-15T10:00:00Z [INFO] service started",
            "2025-01-15T10:05:00Z [WARN] cache miss rate high",
            "2025-01-15T10:10:00Z [ERROR] connection refused to db",
            "2025-01-15T10:15:00Z [ERROR] connection refused to db",
            "2025-01-15T10:20:00Z [INFO] request handled",
        ]
    ) + "\n"


@pytest.fixture
def python_traceback() -> str:
    blocks = []
    for payload in (100001, 100002, 100003, 100004):
        blocks.append(
            "\n".join(
                [
                    "Traceback (most recent call last):",
                    '  File "/srv/app/main.py", line 42, in handle',
                    "    result = process(payload)",
                    '  File "/srv/app/worker.py", line 17, in process',
                    '    raise ValueError(f"bad payload {payload}")',
                    f"ValueError: bad payload {payload}",
                ]
            )
        )
    return "\n".join(blocks) + "\n"


@pytest.fixture
def unified_diff() -> str:
    return "\n".join(
        [
            "diff --git a/src/app.py b/src/app.py",
            "index 1234567..89abcde 100644",
            "--- a/src/app.py",
            "+++ b/src/app.py",
            "@@ -1,11 +1,11 @@ def main",
            " import os",
            " import sys",
            " ",
            " def main():",
            '-    print("hello")',
            '+    print("hello, world")',
            "     x = 1",
            "     y = 2",
            "     z = 3",
            "     a = 4",
            "     b = 5",
            "     c = 6",
        ]
    ) + "\n"


@pytest.fixture
def ts_sources() -> dict[str, str]:
    return {
        "src/a.ts": (
            "import { useState } from 'react';\n"
            "import { helper } from './utils';\n"
            "\n"
            "export const API_URL = 'https://api.example.com';\n"
            "\n"
            "export interface User {\n"
            "  id: number;\n"
            "  name: string;\n"
            "}\n"
            "\n"
            "export function A() {\n"
            "  const [s, setS] = useState(0);\n"
            "  return helper(s);\n"
            "}\n"
        ),
        "src/b.ts": (
            "import { useState } from 'react';\n"
            "\n"
            "export const API_URL = 'https://api.example.com';\n"
            "\n"
            "export interface User {\n"
            "  id: number;\n"
            "  name: string;\n"
            "}\n"
            "\n"
            "export function B() {\n"
            "  const [v, setV] = useState(1);\n"
            "  return v;\n"
            "}\n"
        ),
        "src/utils.ts": (
            "export function helper(x: number): number {\n"
            "  return x * 2;\n"
            "}\n"
        ),
    }


@pytest.fixture
def write_sources(ts_sources: dict[str, str]) -> Callable[[Path], list[str]]:
    def _write(root: Path) -> list[str]:
        for rel, content in ts_sources.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return list(ts_sources)

    return _write


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "CONTEXT_OPT_MIN_CHARS",
        "CONTEXT_OPT_SAMPLE_LINES",
        "CONTEXT_OPT_MAX_SEGMENTS",
        "CONTEXT_OPT_TOKENIZER",
        "CONTEXT_OPT_BASE_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
