import logging
from dataclasses import dataclass
from datetime import date
from typing import Sequence, Tuple, Union

import numpy as np
from scipy import stats

from reliability_metrics import chronological_failures
from reliability_records import EventRecord
from weibull_analysis import InsufficientData, is_fitted

logger = logging.getLogger(__name__)

MIN_GROWTH_POINTS = 3
STABLE_BAND = 0.05


@dataclass(frozen=True)
class GrowthPoint:
    cumulative_time: float  # hours since the first failure
    cumulative_failures: int
    date: date


@dataclass(frozen=True)
class GrowthModel:
    """Fitted Crow-AMSAA power law N(t) = lambda * t^beta."""
    beta: float
    lambda_: float
    r_squared: float
    points: Tuple[GrowthPoint, ...] = ()


class CrowAMSAA:
    """Implementation of Crow-AMSAA (NHPP) model for reliability growth."""

    def __init__(self):
        """Initialize Crow-AMSAA model."""
        self.beta = None
        self.lambda_ = None
        self.fit_statistics = {}

    @staticmethod
    def model(t: np.ndarray, beta: float, lambda_: float) -> np.ndarray:
        """
        Crow-AMSAA model function.

        Args:
            t: Cumulative operating time
            beta: Growth parameter
            lambda_: Intensity parameter

        Returns:
            Expected number of cumulative failures
        """
        return lambda_ * np.power(t, beta)

    @staticmethod
    def growth_points(records: Sequence[EventRecord]) -> Tuple[GrowthPoint, ...]:
        """
        Cumulative time and failure count at each unplanned failure.

        The first failure opens the clock at t = 0, where ln(t) is undefined,
        so only points with positive cumulative time are kept.
        """
        failures = chronological_failures(records)
        if not failures:
            return ()
        origin = failures[0].start_time
        points = (
            GrowthPoint(
                cumulative_time=(f.start_time - origin).total_seconds() / 3600.0,
                cumulative_failures=i + 1,
                date=f.start_time.date()
            )
            for i, f in enumerate(failures)
        )
        return tuple(p for p in points if p.cumulative_time > 0)

    def fit(self, records: Sequence[EventRecord]) -> Union[GrowthModel, InsufficientData]:
        """
        Fit Crow-AMSAA model to failure data by log-log regression.

        Args:
            records: Filtered event records

        Returns:
            GrowthModel, or InsufficientData with fewer than 3 usable points
        """
        points = self.growth_points(records)
        if len(points) < MIN_GROWTH_POINTS:
            logger.warning(f"Crow-AMSAA needs {MIN_GROWTH_POINTS} points after the first failure, got {len(points)}")
            return InsufficientData("fewer than 3 failures after the first", len(points))

        log_t = np.log([p.cumulative_time for p in points])
        log_n = np.log([p.cumulative_failures for p in points])
        if np.ptp(log_t) == 0:
            return InsufficientData("all failures share one timestamp", len(points))

        fit = stats.linregress(log_t, log_n)
        self.beta = float(fit.slope)
        self.lambda_ = float(np.exp(fit.intercept))

        # Calculate goodness of fit statistics
        residuals = log_n - (fit.slope * log_t + fit.intercept)
        ss_tot = np.sum((log_n - np.mean(log_n)) ** 2)
        r_squared = 1 - (np.sum(residuals ** 2) / ss_tot) if ss_tot > 0 else 1.0

        self.fit_statistics = {
            "beta": self.beta,
            "lambda": self.lambda_,
            "r_squared": float(r_squared),
            "std_err_beta": float(fit.stderr)
        }
        logger.info(f"Crow-AMSAA fit on {len(points)} points: beta={self.beta:.3f}, lambda={self.lambda_:.4g}")

        return GrowthModel(
            beta=self.beta,
            lambda_=self.lambda_,
            r_squared=float(r_squared),
            points=points
        )

    def _require_fit(self) -> None:
        if self.beta is None or self.lambda_ is None:
            raise ValueError("Model must be fitted before making predictions")

    def predict(self, time_points: np.ndarray) -> np.ndarray:
        """
        Predict cumulative failures using fitted model.

        Args:
            time_points: Array of cumulative operating times

        Returns:
            Predicted cumulative failures
        """
        self._require_fit()
        return self.model(np.asarray(time_points, dtype=float), self.beta, self.lambda_)

    def instantaneous_mtbf(self, t: float) -> float:
        """
        Instantaneous MTBF 1 / (lambda beta t^(beta-1)) at time t.

        Args:
            t: Cumulative operating time, positive

        Returns:
            MTBF value
        """
        self._require_fit()
        if t <= 0:
            raise ValueError("Time must be positive")
        return 1 / (self.beta * self.lambda_ * t ** (self.beta - 1))

    def trend(self) -> str:
        """'improving' for beta < 1, 'deteriorating' for beta > 1, else 'stable'."""
        self._require_fit()
        if self.beta < 1 - STABLE_BAND:
            return 'improving'
        if self.beta > 1 + STABLE_BAND:
            return 'deteriorating'
        return 'stable'


def calculate_crow_amsaa(records: Sequence[EventRecord]) -> Union[GrowthModel, InsufficientData]:
    """Fit the Crow-AMSAA power law to the unplanned failures of a record view."""
    return CrowAMSAA().fit(records)


def growth_trend(model: Union[GrowthModel, InsufficientData]) -> str:
    """Trend label of a fit result, 'no_data' when nothing was fitted."""
    if not is_fitted(model):
        return 'no_data'
    crow = CrowAMSAA()
    crow.beta, crow.lambda_ = model.beta, model.lambda_
    return crow.trend()
