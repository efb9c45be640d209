import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from scipy import stats

logger = logging.getLogger(__name__)

MIN_WEIBULL_SAMPLES = 3
# Bernard's approximation of the median rank
RANK_OFFSET = 0.3
RANK_DENOMINATOR_OFFSET = 0.4
# First sample of curves, keeps the hazard finite when beta < 1
CURVE_TIME_OFFSET = 1e-3
CURVE_HORIZON_CAP = 20000.0
TBF_HISTOGRAM_BINS = 15

ArrayLike = Union[float, Sequence[float], np.ndarray]


@dataclass(frozen=True)
class InsufficientData:
    """Returned by estimators when the input cannot support a fit."""
    reason: str
    sample_count: int = 0


@dataclass(frozen=True)
class WeibullParameters:
    """Two-parameter Weibull fit from median rank regression."""
    beta: float
    eta: float
    r_squared: float
    points: Tuple[Tuple[float, float], ...] = ()

    def fit_line(self, margin: float = 0.5) -> Tuple[Tuple[float, float], Tuple[float, float]]:
        """
        Endpoints of the fitted line on the linearised probability plot.

        Args:
            margin: Extension beyond the scatter on the ln(t) axis

        Returns:
            ((x_min, y_min), (x_max, y_max))
        """
        xs = [p[0] for p in self.points] or [np.log(self.eta)]
        x_lo, x_hi = min(xs) - margin, max(xs) + margin
        offset = self.beta * np.log(self.eta)
        return (
            (float(x_lo), float(self.beta * x_lo - offset)),
            (float(x_hi), float(self.beta * x_hi - offset)),
        )


@dataclass(frozen=True)
class HistogramBin:
    start: float
    end: float
    mid: float
    count: int
    expected: float


@dataclass(frozen=True)
class CurvePoint:
    t: float
    reliability: float
    pdf: float
    hazard: float


def is_fitted(result: object) -> bool:
    """True for a computed model, False for InsufficientData and friends."""
    return not isinstance(result, InsufficientData)


def _validate_parameters(beta: float, eta: float) -> None:
    """Validate distribution parameters."""
    if beta <= 0:
        raise ValueError("Shape parameter beta must be positive")
    if eta <= 0:
        raise ValueError("Scale parameter eta must be positive")


def _as_time(t: ArrayLike) -> np.ndarray:
    values = np.asarray(t, dtype=float)
    if np.any(values < 0):
        raise ValueError("Time must be non-negative")
    return values


def _unwrap(values: np.ndarray) -> Union[float, np.ndarray]:
    return float(values) if values.ndim == 0 else values


def reliability(t: ArrayLike, beta: float, eta: float) -> Union[float, np.ndarray]:
    """
    Survival function R(t) = exp(-(t/eta)^beta).

    Args:
        t: Time or array of times
        beta: Shape parameter
        eta: Scale parameter

    Returns:
        Probability of surviving past t
    """
    _validate_parameters(beta, eta)
    times = _as_time(t)
    return _unwrap(np.exp(-np.power(times / eta, beta)))


def failure_probability(t: ArrayLike, beta: float, eta: float) -> Union[float, np.ndarray]:
    """Probability of failure by t, in percent."""
    return _unwrap(100.0 * (1.0 - np.asarray(reliability(t, beta, eta))))


def hazard(t: ArrayLike, beta: float, eta: float) -> Union[float, np.ndarray]:
    """
    Instantaneous failure rate h(t) = (beta/eta) (t/eta)^(beta-1).

    Unbounded at t = 0 when beta < 1; evaluates to inf there.
    """
    _validate_parameters(beta, eta)
    times = _as_time(t)
    with np.errstate(divide='ignore'):
        rate = (beta / eta) * np.power(times / eta, beta - 1)
    return _unwrap(rate)


def pdf(t: ArrayLike, beta: float, eta: float) -> Union[float, np.ndarray]:
    """Probability density f(t) = h(t) R(t)."""
    h = np.asarray(hazard(t, beta, eta))
    r = np.asarray(reliability(t, beta, eta))
    with np.errstate(invalid='ignore'):
        density = h * r
    return _unwrap(density)


def b_life(p: float, beta: float, eta: float) -> float:
    """
    Age by which a fraction p of the population has failed (B10 for p=0.1).

    Args:
        p: Failed fraction, strictly between 0 and 1
        beta: Shape parameter
        eta: Scale parameter

    Returns:
        Quantile t_p = eta (-ln(1-p))^(1/beta)
    """
    _validate_parameters(beta, eta)
    if not 0 < p < 1:
        raise ValueError("Fraction p must lie strictly between 0 and 1")
    return float(eta * (-np.log(1.0 - p)) ** (1.0 / beta))


def median_ranks(n: int) -> np.ndarray:
    """Bernard's approximation of the median rank for n ordered samples."""
    i = np.arange(n, dtype=float)
    return (i + 1 - RANK_OFFSET) / (n + RANK_DENOMINATOR_OFFSET)


def calculate_weibull(tbf: Sequence[float]) -> Union[WeibullParameters, InsufficientData]:
    """
    Fit a two-parameter Weibull distribution by median rank regression.

    The ordered samples are plotted as x = ln(t), y = ln(-ln(1 - F)) and
    y is regressed on x; the slope is beta and eta = exp(-intercept/beta).

    Args:
        tbf: Time-between-failure samples in hours

    Returns:
        WeibullParameters, or InsufficientData when fewer than three
        usable samples exist or the regression is degenerate
    """
    samples = np.asarray(tbf, dtype=float)
    usable = samples[samples > 0]
    if len(usable) < len(samples):
        logger.warning(f"Excluded {len(samples) - len(usable)} non-positive samples from Weibull fit")

    n = len(usable)
    if n < MIN_WEIBULL_SAMPLES:
        logger.warning(f"Weibull fit needs {MIN_WEIBULL_SAMPLES} samples, got {n}")
        return InsufficientData("fewer than 3 failure intervals", n)

    x = np.log(np.sort(usable))
    y = np.log(-np.log(1.0 - median_ranks(n)))

    denominator = n * np.sum(x ** 2) - np.sum(x) ** 2
    if denominator == 0 or np.ptp(x) == 0:
        logger.warning("Weibull regression is degenerate: all intervals are identical")
        return InsufficientData("identical failure intervals", n)

    fit = stats.linregress(x, y)
    beta, intercept = float(fit.slope), float(fit.intercept)
    if beta <= 0:
        return InsufficientData("non-positive fitted shape", n)
    eta = float(np.exp(-intercept / beta))

    residuals = y - (beta * x + intercept)
    ss_tot = np.sum((y - np.mean(y)) ** 2)
    r_squared = 1 - (np.sum(residuals ** 2) / ss_tot) if ss_tot > 0 else 1.0

    logger.info(f"Weibull fit on {n} samples: beta={beta:.3f}, eta={eta:.2f}, R2={r_squared:.4f}")
    return WeibullParameters(
        beta=beta,
        eta=eta,
        r_squared=float(r_squared),
        points=tuple(zip(x.tolist(), y.tolist()))
    )


def failure_pattern(result: Union[WeibullParameters, InsufficientData]) -> str:
    """
    Classify the bathtub-curve region implied by the shape parameter.

    Returns:
        'no_data', 'early_life' (beta < 0.9), 'random' (0.9-1.2) or 'wear_out'
    """
    if not is_fitted(result):
        return 'no_data'
    if result.beta < 0.9:
        return 'early_life'
    if result.beta <= 1.2:
        return 'random'
    return 'wear_out'


def reliability_curve(
    beta: float,
    eta: float,
    points: int = 100,
    horizon: Optional[float] = None
) -> List[CurvePoint]:
    """
    Sample R(t), f(t) and h(t) for plotting.

    Sampling starts slightly above zero so the hazard stays finite for beta < 1.

    Args:
        beta: Shape parameter
        eta: Scale parameter
        points: Number of samples
        horizon: Last time sampled, defaults to min(2.5 eta, 20000)

    Returns:
        List of curve points
    """
    _validate_parameters(beta, eta)
    if points < 2:
        raise ValueError("A curve needs at least 2 points")
    end = horizon if horizon is not None else min(2.5 * eta, CURVE_HORIZON_CAP)
    t = np.linspace(min(CURVE_TIME_OFFSET, end / points), end, points)
    r = reliability(t, beta, eta)
    f = pdf(t, beta, eta)
    h = hazard(t, beta, eta)
    return [CurvePoint(float(ti), float(ri), float(fi), float(hi)) for ti, ri, fi, hi in zip(t, r, f, h)]


def generate_histogram(
    tbf: Sequence[float],
    weibull: Optional[Union[WeibullParameters, InsufficientData]] = None,
    bins: int = 10
) -> List[HistogramBin]:
    """
    Bin the empirical intervals and overlay the fitted density.

    The expected count of a bin is f(mid) * N * width, which puts the density
    on the same axis as the empirical counts.

    Args:
        tbf: Time-between-failure samples
        weibull: Fit used for the expected counts, zero when absent
        bins: Number of equal-width bins over [0, max(tbf)]

    Returns:
        List of histogram bins, empty when there is nothing to bin
    """
    if bins < 1:
        raise ValueError("Histogram needs at least one bin")
    samples = np.asarray(tbf, dtype=float)
    if samples.size == 0:
        return []
    max_t = float(np.max(samples))
    if max_t <= 0:
        return []

    width = max_t / bins
    indices = np.minimum(np.floor(np.clip(samples, 0, None) / width).astype(int), bins - 1)
    counts = np.bincount(indices, minlength=bins)

    fitted = weibull is not None and is_fitted(weibull)
    n = samples.size
    histogram = []
    for i in range(bins):
        start = i * width
        mid = start + width / 2
        expected = float(pdf(mid, weibull.beta, weibull.eta)) * n * width if fitted else 0.0
        histogram.append(HistogramBin(
            start=start,
            end=(i + 1) * width,
            mid=mid,
            count=int(counts[i]),
            expected=expected
        ))
    return histogram


def generate_tbf_histogram(tbf: Sequence[float], target_bins: int = TBF_HISTOGRAM_BINS) -> List[HistogramBin]:
    """
    Histogram with readable bin edges for the interval distribution chart.

    The width is max(tbf)/target_bins rounded up to a whole hour, and up to
    the next multiple of ten once it exceeds ten, so fewer bins than
    requested may result.
    """
    if target_bins < 1:
        raise ValueError("Histogram needs at least one bin")
    samples = np.asarray(tbf, dtype=float)
    if samples.size < 2:
        return []
    max_t = float(np.max(samples))
    if max_t <= 0:
        return []

    width = max(1, int(np.ceil(max_t / target_bins)))
    if width > 10:
        width = int(np.ceil(width / 10)) * 10
    bins = int(np.ceil(max_t / width))

    indices = np.minimum(np.floor(np.clip(samples, 0, None) / width).astype(int), bins - 1)
    counts = np.bincount(indices, minlength=bins)
    return [
        HistogramBin(
            start=float(i * width),
            end=float((i + 1) * width),
            mid=i * width + width / 2,
            count=int(counts[i]),
            expected=0.0
        )
        for i in range(bins)
    ]
