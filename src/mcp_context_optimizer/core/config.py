"""Engine configuration and environment overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

TOKENIZERS = ("heuristic", "tiktoken")


@dataclass(frozen=True, slots=True)
class OptimizerConfig:
    # Inputs shorter than this are returned untouched by the orchestrator.
    min_optimize_chars: int = 500
    # Strategies return inputs at/below this many tokens unchanged.
    min_compress_tokens: int = 50
    detection_sample_lines: int = 100
    max_segments: int = 2000
    tokenizer: str = "heuristic"


def _env_int(name: str, *, minimum: int) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def resolve_config(cfg: OptimizerConfig | None = None) -> OptimizerConfig:
    """Return config with optional env overrides applied.

    Recognized variables:
    - CONTEXT_OPT_MIN_CHARS
    - CONTEXT_OPT_SAMPLE_LINES
    - CONTEXT_OPT_MAX_SEGMENTS
    - CONTEXT_OPT_TOKENIZER (heuristic | tiktoken)
    """
    if cfg is None:
        cfg = OptimizerConfig()

    changes: dict[str, object] = {}

    min_chars = _env_int("CONTEXT_OPT_MIN_CHARS", minimum=0)
    if min_chars is not None:
        changes["min_optimize_chars"] = min_chars

    sample_lines = _env_int("CONTEXT_OPT_SAMPLE_LINES", minimum=1)
    if sample_lines is not None:
        changes["detection_sample_lines"] = sample_lines

    max_segments = _env_int("CONTEXT_OPT_MAX_SEGMENTS", minimum=2)
    if max_segments is not None:
        changes["max_segments"] = max_segments

    tokenizer = os.getenv("CONTEXT_OPT_TOKENIZER")
    if tokenizer:
        tokenizer = tokenizer.strip().lower()
        if tokenizer not in TOKENIZERS:
            raise ValueError(f"CONTEXT_OPT_TOKENIZER must be one of: {', '.join(TOKENIZERS)}")
        changes["tokenizer"] = tokenizer

    if not changes:
        return cfg
    return replace(cfg, **changes)
