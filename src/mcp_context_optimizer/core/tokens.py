"""Approximate token counting.

The default counter is a character/word heuristic. A tokenizer-accurate
backend (tiktoken) can be swapped in through the same protocol.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Protocol

CHARS_PER_TOKEN = 4


class TokenCounter(Protocol):
    """Counter interface: deterministic, pure, never raises."""

    def count(self, text: str) -> int:
        ...


@dataclass(frozen=True, slots=True)
class HeuristicTokenCounter:
    """~4 characters per token, never fewer tokens than whitespace words."""

    chars_per_token: int = CHARS_PER_TOKEN

    def count(self, text: str) -> int:
        if not text:
            return 0
        by_chars = math.ceil(len(text) / self.chars_per_token)
        return max(by_chars, len(text.split()))


@dataclass(slots=True)
class TiktokenCounter:
    """BPE counter backed by tiktoken (optional extra)."""

    encoding_name: str = "cl100k_base"
    _encoding: Any = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        try:
            import tiktoken
        except ImportError as e:  # pragma: no cover
            raise RuntimeError(
                "tiktoken is required for this tokenizer. Install with: pip install '.[tiktoken]'"
            ) from e
        self._encoding = tiktoken.get_encoding(self.encoding_name)

    def count(self, text: str) -> int:
        if not text:
            return 0
        return len(self._encoding.encode(text, disallowed_special=()))


DEFAULT_COUNTER: TokenCounter = HeuristicTokenCounter()


def get_counter(name: str = "heuristic") -> TokenCounter:
    """Return a counter by name ("heuristic" or "tiktoken")."""
    key = name.strip().lower()
    if key == "heuristic":
        return DEFAULT_COUNTER
    if key == "tiktoken":
        return TiktokenCounter()
    raise ValueError(f"Unknown tokenizer '{name}'. Valid values: heuristic, tiktoken.")


def count_tokens(text: str, counter: TokenCounter | None = None) -> int:
    """Count tokens with the given counter (heuristic by default)."""
    return (counter or DEFAULT_COUNTER).count(text)
