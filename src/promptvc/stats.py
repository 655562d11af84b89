# Copyright (c) Syntropy Systems
"""Welch's two-sample t-test for comparing prompt versions.

The p-value and critical values are practical approximations:
- df > 30: normal approximation (Abramowitz-Stegun erf)
- df <= 30: regularized incomplete beta via continued fraction
- critical t: tabulated for df 1-30, 1.96 beyond
"""
from __future__ import annotations

import math
import statistics
from typing import TYPE_CHECKING

from promptvc.models.experiment import StatisticalComparison, TTestResult

if TYPE_CHECKING:
    from collections.abc import Sequence

    from promptvc.models.experiment import VersionResult

SIGNIFICANCE_LEVEL = 0.05
NORMAL_APPROX_MIN_DF = 30
NORMAL_CRITICAL_VALUE = 1.96
BETA_MAX_ITERATIONS = 200
BETA_EPSILON = 1e-10

# Two-tailed 95% critical values of Student's t
T_CRITICAL_95: dict[int, float] = {
    1: 12.706, 2: 4.303, 3: 3.182, 4: 2.776, 5: 2.571,
    6: 2.447, 7: 2.365, 8: 2.306, 9: 2.262, 10: 2.228,
    11: 2.201, 12: 2.179, 13: 2.160, 14: 2.145, 15: 2.131,
    16: 2.120, 17: 2.110, 18: 2.101, 19: 2.093, 20: 2.086,
    21: 2.080, 22: 2.074, 23: 2.069, 24: 2.064, 25: 2.060,
    26: 2.056, 27: 2.052, 28: 2.048, 29: 2.045, 30: 2.042,
}

# Abramowitz & Stegun 7.1.26
_ERF_A = (0.254829592, -0.284496736, 1.421413741, -1.453152027, 1.061405429)
_ERF_P = 0.3275911


def erf(x: float) -> float:
    """Error function, max absolute error about 1.5e-7."""
    sign = -1.0 if x < 0 else 1.0
    x = abs(x)
    t = 1.0 / (1.0 + _ERF_P * x)
    a1, a2, a3, a4, a5 = _ERF_A
    poly = ((((a5 * t + a4) * t + a3) * t + a2) * t + a1) * t
    return sign * (1.0 - poly * math.exp(-x * x))


def _beta_continued_fraction(x: float, a: float, b: float) -> float:
    """Continued fraction for the incomplete beta function."""
    am = 1.0
    bm = 1.0
    az = 1.0
    qab = a + b
    qap = a + 1.0
    qam = a - 1.0
    bz = 1.0 - qab * x / qap

    for m in range(1, BETA_MAX_ITERATIONS + 1):
        m2 = 2 * m
        d = m * (b - m) * x / ((qam + m2) * (a + m2))
        ap = az + d * am
        bp = bz + d * bm
        d = -(a + m) * (qab + m) * x / ((a + m2) * (qap + m2))
        app = ap + d * az
        bpp = bp + d * bz
        aold = az
        am = ap / bpp
        bm = bp / bpp
        az = app / bpp
        bz = 1.0
        if abs(az - aold) < BETA_EPSILON * abs(az):
            break

    return az


def regularized_incomplete_beta(x: float, a: float, b: float) -> float:
    """I_x(a, b) for 0 <= x <= 1."""
    if x <= 0:
        return 0.0
    if x >= 1:
        return 1.0

    log_front = (
        math.lgamma(a + b) - math.lgamma(a) - math.lgamma(b)
        + a * math.log(x) + b * math.log(1.0 - x)
    )
    front = math.exp(log_front)

    if x < (a + 1.0) / (a + b + 2.0):
        return front * _beta_continued_fraction(x, a, b) / a
    # Symmetry: I_x(a, b) = 1 - I_{1-x}(b, a)
    return 1.0 - front * _beta_continued_fraction(1.0 - x, b, a) / b


def p_value(t_statistic: float, df: float) -> float:
    """Two-tailed p-value for a t statistic."""
    t_abs = abs(t_statistic)
    if t_abs == 0 or df <= 0:
        return 1.0

    if df > NORMAL_APPROX_MIN_DF:
        cdf = 0.5 * (1.0 + erf(t_abs / math.sqrt(2.0)))
        return min(2.0 * (1.0 - cdf), 1.0)

    x = df / (df + t_abs * t_abs)
    return min(regularized_incomplete_beta(x, df / 2.0, 0.5), 1.0)


def critical_t(df: float) -> float:
    """Two-tailed 95% critical t value, interpolated between integer df."""
    if df > 100:
        return NORMAL_CRITICAL_VALUE
    if df == int(df) and int(df) in T_CRITICAL_95:
        return T_CRITICAL_95[int(df)]

    lower = math.floor(df)
    upper = math.ceil(df)
    if lower >= 1 and upper <= NORMAL_APPROX_MIN_DF:
        t1 = T_CRITICAL_95[lower]
        t2 = T_CRITICAL_95[upper]
        return t1 + (t2 - t1) * (df - lower)

    return NORMAL_CRITICAL_VALUE


def _mean(sample: Sequence[float]) -> float:
    return statistics.fmean(sample) if sample else 0.0


def _stdev(sample: Sequence[float]) -> float:
    return statistics.stdev(sample) if len(sample) > 1 else 0.0


def t_test(sample_a: Sequence[float], sample_b: Sequence[float]) -> TTestResult:
    """Welch's unequal-variance t-test of ``mean(b) - mean(a)``."""
    n_a = len(sample_a)
    n_b = len(sample_b)
    mean_a = _mean(sample_a)
    mean_b = _mean(sample_b)
    difference = mean_b - mean_a

    sd_a = _stdev(sample_a)
    sd_b = _stdev(sample_b)
    se_a = sd_a / math.sqrt(n_a) if n_a else 0.0
    se_b = sd_b / math.sqrt(n_b) if n_b else 0.0
    standard_error = math.sqrt(se_a * se_a + se_b * se_b)

    t_statistic = difference / standard_error if standard_error > 0 else 0.0

    df: float = n_a + n_b - 2
    if sd_a > 0 and sd_b > 0:
        var_a = sd_a * sd_a
        var_b = sd_b * sd_b
        numerator = (var_a / n_a + var_b / n_b) ** 2
        denominator = (var_a * var_a) / (n_a * n_a * (n_a - 1)) + (var_b * var_b) / (
            n_b * n_b * (n_b - 1)
        )
        if denominator > 0:
            df = numerator / denominator

    p = p_value(t_statistic, df)
    margin = critical_t(df) * standard_error

    return TTestResult(
        mean_a=round(mean_a, 4),
        mean_b=round(mean_b, 4),
        difference=round(difference, 4),
        p_value=round(p, 6),
        significant=p < SIGNIFICANCE_LEVEL,
        confidence_interval=(round(difference - margin, 4), round(difference + margin, 4)),
        sample_size_a=n_a,
        sample_size_b=n_b,
    )


def compare_versions(result_a: VersionResult, result_b: VersionResult) -> StatisticalComparison:
    """Compare latency, cost and total tokens of the successful cases."""
    successes_a = [tc for tc in result_a.test_cases if tc.success]
    successes_b = [tc for tc in result_b.test_cases if tc.success]

    return StatisticalComparison(
        latency=t_test([tc.latency for tc in successes_a], [tc.latency for tc in successes_b]),
        cost=t_test([tc.cost for tc in successes_a], [tc.cost for tc in successes_b]),
        tokens=t_test(
            [tc.total_tokens for tc in successes_a],
            [tc.total_tokens for tc in successes_b],
        ),
    )
