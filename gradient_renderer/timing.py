"""
Render Timing Utilities

Per-phase wall-clock totals for loop ticks, renders and export stages,
printed by the CLI's --timing switch.
"""

import time
from collections import defaultdict
from contextlib import contextmanager
from typing import Optional


class RenderTimings:
    """Total seconds and call count per named phase"""

    def __init__(self):
        self.totals = defaultdict(float)
        self.counts = defaultdict(int)

    def record(self, phase: str, seconds: float) -> None:
        self.totals[phase] += seconds
        self.counts[phase] += 1

    def format_summary(self, title: str = "Render Timing Summary") -> str:
        """Table of phases, slowest total first"""
        if not self.totals:
            return f"{title}: No timing data collected"

        lines = [
            '=' * 70,
            title,
            '=' * 70,
            f"{'Phase':<35} {'Total (ms)':>12} {'Avg (ms)':>12} {'Count':>8}",
            '-' * 70,
        ]
        for phase in sorted(self.totals, key=self.totals.get, reverse=True):
            total_ms = self.totals[phase] * 1000
            count = self.counts[phase]
            lines.append(f"{phase:<35} {total_ms:>12.3f} {total_ms / count:>12.4f} {count:>8}")
        lines.append('=' * 70)
        return "\n".join(lines)


@contextmanager
def time_operation(timings: Optional[RenderTimings], phase: str):
    """Record the duration of the with-block under `phase`; no-op without timings"""
    if timings is None:
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        timings.record(phase, time.perf_counter() - start)
