"""Async file loading for tools that accept paths instead of inline content.

Paths are resolved under CONTEXT_OPT_BASE_DIR (default: current directory);
anything escaping it is rejected.
"""

from __future__ import annotations

import asyncio
import gzip
import os
from collections.abc import Sequence
from contextlib import asynccontextmanager
from pathlib import Path

import aiofiles
from aiofiles.threadpool import wrap

from .compressors import FileContext

BASE_DIR_ENV = "CONTEXT_OPT_BASE_DIR"
TEXT_ENCODING = "utf-8"
TEXT_ERRORS = "replace"
MAX_FILE_BYTES = 2_000_000


def base_dir() -> Path:
    raw = os.getenv(BASE_DIR_ENV, os.getcwd())
    return Path(raw).resolve()


def safe_resolve(path: str) -> Path:
    """Resolve a path under the configured base directory."""
    base = base_dir()
    p = Path(path).expanduser()
    if not p.is_absolute():
        p = base / p
    p = p.resolve()
    if base not in p.parents and p != base:
        raise ValueError(f"Path escapes base dir: {path}")
    return p


@asynccontextmanager
async def _open_text(path: Path):
    if path.suffix.lower() == ".gz":
        af = wrap(gzip.open(path, mode="rt", encoding=TEXT_ENCODING, errors=TEXT_ERRORS))
        try:
            yield af
        finally:
            await af.close()
    else:
        async with aiofiles.open(path, encoding=TEXT_ENCODING, errors=TEXT_ERRORS) as f:
            yield f


async def read_text(path: str) -> str:
    resolved = safe_resolve(path)
    if not resolved.is_file():
        raise FileNotFoundError(f"File not found: {resolved}")
    if resolved.stat().st_size > MAX_FILE_BYTES:
        raise ValueError(f"File too large (> {MAX_FILE_BYTES} bytes): {path}")
    async with _open_text(resolved) as f:
        return await f.read()


async def load_file_contexts(paths: Sequence[str]) -> list[FileContext]:
    """Read every path concurrently, keeping the caller's order."""
    contents = await asyncio.gather(*(read_text(p) for p in paths))
    return [FileContext(path=p, content=c) for p, c in zip(paths, contents)]
