"""Lightweight in-memory metrics collector."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass
from typing import Dict


@dataclass
class MetricSnapshot:
    total_turns: int
    event_kinds: Dict[str, int]
    resulting_states: Dict[str, int]
    cart_failures: int


class MetricsCollector:
    """Thread-safe counter storage for dialog turn metrics."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total_turns = 0
        self._kinds: Counter[str] = Counter()
        self._states: Counter[str] = Counter()
        self._cart_failures = 0

    def record_turn(self, kind: str, state: str) -> None:
        with self._lock:
            self._total_turns += 1
            self._kinds[kind] += 1
            self._states[state] += 1

    def record_cart_failure(self) -> None:
        with self._lock:
            self._cart_failures += 1

    def snapshot(self) -> MetricSnapshot:
        with self._lock:
            return MetricSnapshot(
                total_turns=self._total_turns,
                event_kinds=dict(self._kinds),
                resulting_states=dict(self._states),
                cart_failures=self._cart_failures,
            )
