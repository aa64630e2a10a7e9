"""
Timing helpers shared by the oracle benchmarks.

``timed_trials`` runs a callable repeatedly after warmup and summarizes the
wall-clock samples (mean, sample stddev, 95% CI, extremes).
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Any, Callable


DEFAULT_TRIALS = 20
DEFAULT_WARMUP = 2


@dataclass
class TrialStats:
    """Summary of timed trials, all durations in seconds."""

    mean: float
    std: float
    ci95_low: float
    ci95_high: float
    min: float
    max: float
    n: int

    def mean_ms(self) -> float:
        return round(self.mean * 1000, 3)

    def to_dict(self) -> dict[str, Any]:
        return {
            "mean_ms": self.mean_ms(),
            "std_ms": round(self.std * 1000, 3),
            "ci95_ms": [round(self.ci95_low * 1000, 3), round(self.ci95_high * 1000, 3)],
            "min_ms": round(self.min * 1000, 3),
            "max_ms": round(self.max * 1000, 3),
            "n_trials": self.n,
        }


def timed_trials(
    fn: Callable[[], Any],
    n: int = DEFAULT_TRIALS,
    warmup: int = DEFAULT_WARMUP,
) -> TrialStats:
    """Time *n* calls of *fn* after *warmup* untimed calls."""
    for _ in range(warmup):
        fn()

    samples: list[float] = []
    for _ in range(n):
        start = time.perf_counter()
        fn()
        samples.append(time.perf_counter() - start)

    mean = sum(samples) / n
    variance = sum((t - mean) ** 2 for t in samples) / (n - 1) if n > 1 else 0.0
    std = math.sqrt(variance)
    margin = _t_critical(n - 1) * std / math.sqrt(n) if n > 1 else 0.0

    return TrialStats(
        mean=mean,
        std=std,
        ci95_low=mean - margin,
        ci95_high=mean + margin,
        min=min(samples),
        max=max(samples),
        n=n,
    )


# ── Two-tailed 95% t critical values ──


_T_TABLE = {
    1: 12.706, 2: 4.303, 3: 3.182, 4: 2.776, 5: 2.571,
    6: 2.447, 7: 2.365, 8: 2.306, 9: 2.262, 10: 2.228,
    15: 2.131, 19: 2.093, 20: 2.086, 29: 2.045, 30: 2.042,
    60: 2.000, 120: 1.980,
}


def _t_critical(df: int) -> float:
    if df >= 120:
        return 1.96
    if df in _T_TABLE:
        return _T_TABLE[df]
    keys = sorted(_T_TABLE)
    for lo, hi in zip(keys, keys[1:]):
        if lo < df < hi:
            frac = (df - lo) / (hi - lo)
            return _T_TABLE[lo] + frac * (_T_TABLE[hi] - _T_TABLE[lo])
    return 1.96
