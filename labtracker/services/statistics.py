"""
Closed-form and robust statistics shared by the analysis services.

Every helper returns ``None`` instead of NaN/Infinity when the input cannot
support the estimate (too few points, zero variance, near-zero denominators).
"""
import math
from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np
from scipy import stats

EPSILON = 1e-6


@dataclass(frozen=True)
class LinearFit:
    slope: float
    intercept: float
    r_squared: float

    def predict(self, x: float) -> float:
        return self.intercept + self.slope * x


def finite_or_none(value) -> float | None:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def round_to(value: float | None, digits: int) -> float | None:
    number = finite_or_none(value)
    if number is None:
        return None
    return round(number, digits)


def round_adaptive(value: float | None) -> float | None:
    """2 decimals for large magnitudes, 3 for small ones."""
    number = finite_or_none(value)
    if number is None:
        return None
    return round(number, 2 if abs(number) >= 10 else 3)


def clip(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _finite_array(values: Iterable[float]) -> np.ndarray:
    array = np.asarray([float(v) for v in values], dtype=float)
    return array[np.isfinite(array)]


def mean(values: Iterable[float]) -> float | None:
    array = _finite_array(values)
    if array.size == 0:
        return None
    return float(np.mean(array))


def std_dev(values: Iterable[float]) -> float:
    """Population standard deviation; 0 for fewer than two values."""
    array = _finite_array(values)
    if array.size < 2:
        return 0.0
    return float(np.std(array))


def median(values: Iterable[float]) -> float | None:
    array = _finite_array(values)
    if array.size == 0:
        return None
    return float(np.median(array))


def median_absolute_deviation(values: Iterable[float]) -> float | None:
    array = _finite_array(values)
    if array.size == 0:
        return None
    return float(stats.median_abs_deviation(array))


def linear_regression(xs: Sequence[float], ys: Sequence[float]) -> LinearFit | None:
    if len(xs) < 2 or len(xs) != len(ys):
        return None
    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
        return None

    x_centered = x - x.mean()
    sxx = float(np.sum(x_centered**2))
    if len(x) * sxx < EPSILON:
        return None

    slope = float(np.sum(x_centered * (y - y.mean())) / sxx)
    intercept = float(y.mean() - slope * x.mean())
    residuals = y - (intercept + slope * x)
    ss_res = float(np.sum(residuals**2))
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    r_squared = 0.0 if ss_tot <= EPSILON else clip(1 - ss_res / ss_tot, 0.0, 1.0)
    return LinearFit(slope=slope, intercept=intercept, r_squared=r_squared)


def theil_sen(xs: Sequence[float], ys: Sequence[float]) -> LinearFit | None:
    """Median of pairwise slopes; intercept is the median of ``y - slope * x``."""
    if len(xs) < 2 or len(xs) != len(ys):
        return None
    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    if np.unique(x).size < 2:
        return None

    slope = float(stats.theilslopes(y, x)[0])
    if not math.isfinite(slope):
        return None
    intercept = float(np.median(y - slope * x))

    ss_res = float(np.sum((y - (intercept + slope * x)) ** 2))
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    r_squared = 0.0 if ss_tot <= EPSILON else clip(1 - ss_res / ss_tot, 0.0, 1.0)
    return LinearFit(slope=slope, intercept=intercept, r_squared=r_squared)


def pearson(xs: Sequence[float], ys: Sequence[float]) -> float | None:
    if len(xs) < 3 or len(xs) != len(ys):
        return None
    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
        return None

    spread = math.sqrt(float(np.sum((x - x.mean()) ** 2)) * float(np.sum((y - y.mean()) ** 2)))
    if len(x) * spread <= EPSILON:
        return None
    r = finite_or_none(stats.pearsonr(x, y)[0])
    return None if r is None else clip(r, -1.0, 1.0)
