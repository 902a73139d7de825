"""Statistical helpers for benchmark aggregation.

Descriptive statistics, IQR outlier flags and a percentile bootstrap
confidence interval for the ratio of two samples' summary statistics
(how many times slower one candidate is than another).

References:
    Bootstrap CI: Efron, B. & Tibshirani, R. J. (1993). "An
        Introduction to the Bootstrap."
"""

from __future__ import annotations

import math
import random
import statistics
from dataclasses import dataclass
from typing import Callable, Sequence

SUMMARY_STATISTICS = ("mean", "median", "min")


# ---------------------------------------------------------------------------
# Descriptive statistics
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DescriptiveStats:
    """Summary statistics for a sample of timings."""

    n: int
    mean: float
    median: float
    stdev: float
    min: float
    max: float
    q1: float  # 25th percentile
    q3: float  # 75th percentile
    cv: float  # coefficient of variation (stdev/mean)
    n_outliers: int = 0

    @property
    def iqr(self) -> float:
        """Interquartile range."""
        return self.q3 - self.q1

    def summary(self, statistic: str) -> float:
        """Return the named summary statistic (mean, median or min)."""
        if statistic not in SUMMARY_STATISTICS:
            raise ValueError(f"Unknown summary statistic: {statistic!r}")
        return float(getattr(self, statistic))

    def to_dict(self) -> dict[str, float | int]:
        """Serialize to a dict with rounded values."""
        return {
            "n": self.n,
            "mean": round(self.mean, 9),
            "median": round(self.median, 9),
            "stdev": round(self.stdev, 9),
            "min": round(self.min, 9),
            "max": round(self.max, 9),
            "q1": round(self.q1, 9),
            "q3": round(self.q3, 9),
            "cv": round(self.cv, 6),
            "n_outliers": self.n_outliers,
        }


def describe(values: Sequence[float]) -> DescriptiveStats:
    """Compute descriptive statistics for a sample.

    An empty sample yields NaN everywhere; with a single value the
    stdev and CV are 0.0.
    """
    if not values:
        nan = float("nan")
        return DescriptiveStats(0, nan, nan, nan, nan, nan, nan, nan, nan)

    sorted_v = sorted(values)
    n = len(sorted_v)
    mean = statistics.fmean(sorted_v)

    if n >= 2:
        stdev = statistics.stdev(sorted_v)
        cv = stdev / mean if mean != 0 else float("inf")
    else:
        stdev = 0.0
        cv = 0.0

    return DescriptiveStats(
        n=n,
        mean=mean,
        median=statistics.median(sorted_v),
        stdev=stdev,
        min=sorted_v[0],
        max=sorted_v[-1],
        q1=_percentile(sorted_v, 0.25),
        q3=_percentile(sorted_v, 0.75),
        cv=cv,
        n_outliers=sum(detect_outliers(sorted_v)),
    )


def _percentile(sorted_values: Sequence[float], p: float) -> float:
    """Linear-interpolation percentile of an ascending sequence.

    Matches ``numpy.percentile(..., method="linear")``.
    """
    n = len(sorted_values)
    if n == 0:
        return float("nan")
    if n == 1:
        return sorted_values[0]

    k = (n - 1) * p
    lo = math.floor(k)
    hi = math.ceil(k)
    if lo == hi:
        return sorted_values[int(k)]
    frac = k - lo
    return sorted_values[lo] * (1 - frac) + sorted_values[hi] * frac


# ---------------------------------------------------------------------------
# Outlier detection
# ---------------------------------------------------------------------------


def detect_outliers(
    values: Sequence[float],
    *,
    factor: float = 1.5,
) -> list[bool]:
    """Flag values outside ``[Q1 - factor*IQR, Q3 + factor*IQR]``.

    Samples with fewer than 4 values never have outliers.
    """
    if len(values) < 4:
        return [False] * len(values)

    sorted_v = sorted(values)
    q1 = _percentile(sorted_v, 0.25)
    q3 = _percentile(sorted_v, 0.75)
    iqr = q3 - q1

    lower = q1 - factor * iqr
    upper = q3 + factor * iqr
    return [v < lower or v > upper for v in values]


# ---------------------------------------------------------------------------
# Bootstrap confidence interval of a ratio
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BootstrapCI:
    """Percentile bootstrap confidence interval."""

    lower: float
    upper: float
    confidence_level: float
    n_bootstrap: int
    point_estimate: float

    def contains(self, value: float) -> bool:
        """True if *value* lies inside the interval."""
        return self.lower <= value <= self.upper

    def to_dict(self) -> dict[str, float | int]:
        """Serialize to a dict with rounded values."""
        return {
            "lower": round(self.lower, 6),
            "upper": round(self.upper, 6),
            "confidence_level": self.confidence_level,
            "n_bootstrap": self.n_bootstrap,
            "point_estimate": round(self.point_estimate, 6),
        }


def _stat_fn(statistic: str) -> Callable[[Sequence[float]], float]:
    if statistic == "mean":
        return statistics.fmean
    if statistic == "median":
        return statistics.median
    if statistic == "min":
        return min
    raise ValueError(f"Unknown summary statistic: {statistic!r}")


def _ratio(numerator: float, denominator: float) -> float:
    if denominator > 0:
        return numerator / denominator
    return 1.0 if numerator == denominator else float("inf")


def bootstrap_ratio_ci(
    baseline: Sequence[float],
    candidate: Sequence[float],
    *,
    statistic: str = "mean",
    confidence: float = 0.95,
    n_bootstrap: int = 2000,
    seed: int | None = None,
) -> BootstrapCI:
    """Bootstrap CI for ``statistic(candidate) / statistic(baseline)``.

    Both samples are resampled independently with replacement
    *n_bootstrap* times; the interval bounds are the matching
    percentiles of the resampled ratios.

    Returns a CI of NaNs if either sample is empty.
    """
    if not baseline or not candidate or n_bootstrap < 1:
        nan = float("nan")
        return BootstrapCI(nan, nan, confidence, 0, nan)

    rng = random.Random(seed)
    stat = _stat_fn(statistic)
    list_a = list(baseline)
    list_b = list(candidate)

    point = _ratio(stat(list_b), stat(list_a))

    ratios = sorted(
        _ratio(
            stat(rng.choices(list_b, k=len(list_b))),
            stat(rng.choices(list_a, k=len(list_a))),
        )
        for _ in range(n_bootstrap)
    )

    alpha = 1 - confidence
    lower_idx = int(math.floor(alpha / 2 * n_bootstrap))
    upper_idx = int(math.ceil((1 - alpha / 2) * n_bootstrap)) - 1
    lower_idx = max(0, min(lower_idx, n_bootstrap - 1))
    upper_idx = max(0, min(upper_idx, n_bootstrap - 1))

    return BootstrapCI(
        lower=ratios[lower_idx],
        upper=ratios[upper_idx],
        confidence_level=confidence,
        n_bootstrap=n_bootstrap,
        point_estimate=point,
    )
