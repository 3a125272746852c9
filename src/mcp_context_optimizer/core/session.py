"""Running totals for one serving session.

The engine itself keeps no state; callers own a SessionStats and record
results into it explicitly.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass(slots=True)
class SessionStats:
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    calls: int = 0
    original_tokens: int = 0
    optimized_tokens: int = 0
    by_method: dict[str, int] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, original_tokens: int, optimized_tokens: int, method: str) -> None:
        with self._lock:
            self.calls += 1
            self.original_tokens += original_tokens
            self.optimized_tokens += optimized_tokens
            self.by_method[method] = self.by_method.get(method, 0) + 1

    @property
    def tokens_saved(self) -> int:
        return max(self.original_tokens - self.optimized_tokens, 0)

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            saved = max(self.original_tokens - self.optimized_tokens, 0)
            pct = round(saved / self.original_tokens * 100, 1) if self.original_tokens else 0.0
            return {
                "started_at": self.started_at.isoformat(),
                "calls": self.calls,
                "original_tokens": self.original_tokens,
                "optimized_tokens": self.optimized_tokens,
                "tokens_saved": saved,
                "savings_percent": pct,
                "by_method": dict(sorted(self.by_method.items())),
            }

    def reset(self) -> None:
        with self._lock:
            self.started_at = datetime.now(UTC)
            self.calls = 0
            self.original_tokens = 0
            self.optimized_tokens = 0
            self.by_method = {}

    def record_result(self, result: Any) -> None:
        """Record anything exposing original_tokens, optimized_tokens and method."""
        self.record(result.original_tokens, result.optimized_tokens, result.method)
