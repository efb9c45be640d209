import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Sequence, Union

import numpy as np
from scipy.integrate import trapezoid
from scipy.optimize import minimize_scalar

from weibull_analysis import reliability

logger = logging.getLogger(__name__)

DEFAULT_CURVE_POINTS = 50
DEFAULT_CURVE_START = 0.1  # fraction of eta
DEFAULT_CURVE_END = 2.0
DEFAULT_INTEGRATION_STEPS = 20
MIN_CORRECTIVE_REPAIR_HOURS = 0.1


@dataclass
class CostBreakdown:
    """Cost of one maintenance event: fixed material plus hourly rates."""
    material: float = 0.0
    labor_rate: float = 0.0
    production_loss_rate: float = 0.0

    def total(self, hours: float) -> float:
        return self.material + (self.labor_rate + self.production_loss_rate) * hours


@dataclass
class MaintenanceCost:
    """Preventive and corrective cost structure used by the optimizer."""
    preventive: CostBreakdown = field(default_factory=CostBreakdown)
    corrective: CostBreakdown = field(default_factory=CostBreakdown)

    def preventive_total(self, pm_duration: float) -> float:
        """Cost of one planned intervention lasting pm_duration hours."""
        return self.preventive.total(pm_duration)

    def corrective_total(self, mttr: float, failure_count: int) -> float:
        """
        Cost of one failure repaired in mttr hours.

        Repair time is floored at 0.1 h when failures exist; without
        failures only the material cost remains.
        """
        repair_hours = max(MIN_CORRECTIVE_REPAIR_HOURS, mttr) if failure_count > 0 else 0.0
        return self.corrective.total(repair_hours)

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MaintenanceCost':
        return cls(
            preventive=CostBreakdown(**data.get('preventive', {})),
            corrective=CostBreakdown(**data.get('corrective', {}))
        )


@dataclass(frozen=True)
class NoOptimum:
    """Age-based replacement does not pay off; run to failure instead."""
    reason: str


@dataclass(frozen=True)
class PMOptimum:
    interval: float
    cost_rate: float


@dataclass(frozen=True)
class CostPoint:
    interval: float
    cost: float


@dataclass(frozen=True)
class OptimumCheck:
    """Closed-form optimum compared with the numerically sampled curve."""
    closed_form_interval: float
    closed_form_cost: float
    numerical_interval: float
    numerical_cost: float
    relative_cost_gap: float
    within_tolerance: bool


def expected_cycle_length(
    interval: float,
    beta: float,
    eta: float,
    integration_steps: int = DEFAULT_INTEGRATION_STEPS
) -> float:
    """
    Expected renewal cycle length M(T), the integral of R(x) over [0, T].

    Integrated with the composite trapezoid rule.
    """
    if integration_steps < 1:
        raise ValueError("Integration needs at least one step")
    x = np.linspace(0.0, interval, integration_steps + 1)
    return float(trapezoid(reliability(x, beta, eta), x))


def cost_rate(
    interval: float,
    beta: float,
    eta: float,
    cp: float,
    cc: float,
    integration_steps: int = DEFAULT_INTEGRATION_STEPS
) -> float:
    """
    Long-run cost per unit time of replacing at age T or at failure.

    C(T) = (cp R(T) + cc (1 - R(T))) / M(T)

    Args:
        interval: Replacement age T, positive
        beta: Weibull shape
        eta: Weibull scale
        cp: Cost of a preventive replacement
        cc: Cost of a corrective replacement
        integration_steps: Trapezoid sub-intervals for M(T)

    Returns:
        Cost rate at T
    """
    if interval <= 0:
        raise ValueError("Replacement interval must be positive")
    r = reliability(interval, beta, eta)
    return (cp * r + cc * (1 - r)) / expected_cycle_length(interval, beta, eta, integration_steps)


def calculate_optimal_pm(
    beta: float,
    eta: float,
    cp: float,
    cc: float
) -> Union[PMOptimum, NoOptimum]:
    """
    Closed-form age-replacement interval for a Weibull life.

    T* = eta (cp / (cc (beta - 1)))^(1/beta). This approximation ignores the
    T-dependence of M(T); check it with validate_optimum against the curve.

    Args:
        beta: Weibull shape
        eta: Weibull scale
        cp: Preventive cost per intervention
        cc: Corrective cost per failure

    Returns:
        PMOptimum, or NoOptimum when wear-out or the cost advantage is missing
    """
    if beta <= 1:
        return NoOptimum("no wear-out: beta <= 1, scheduled replacement cannot lower the failure rate")
    if eta <= 0:
        return NoOptimum("scale parameter is not positive")
    if cp <= 0:
        return NoOptimum("preventive cost is not positive")
    if cp >= cc:
        return NoOptimum("preventive cost is not lower than corrective cost")

    interval = float(eta * (cp / (cc * (beta - 1))) ** (1 / beta))
    optimum = PMOptimum(interval=interval, cost_rate=cost_rate(interval, beta, eta, cp, cc))
    logger.info(f"Optimal PM interval {interval:.1f} h at cost rate {optimum.cost_rate:.4g}")
    return optimum


def generate_cost_curve(
    beta: float,
    eta: float,
    cp: float,
    cc: float,
    points: int = DEFAULT_CURVE_POINTS,
    start: float = DEFAULT_CURVE_START,
    end: float = DEFAULT_CURVE_END,
    integration_steps: int = DEFAULT_INTEGRATION_STEPS
) -> List[CostPoint]:
    """
    Sample the cost rate over replacement ages from start*eta to end*eta.

    Args:
        beta: Weibull shape
        eta: Weibull scale
        cp: Preventive cost
        cc: Corrective cost
        points: Number of replacement ages
        start: First age as a fraction of eta
        end: Last age as a fraction of eta
        integration_steps: Trapezoid sub-intervals per point

    Returns:
        List of (interval, cost) points, empty without a valid distribution
    """
    if beta <= 0 or eta <= 0:
        return []
    if points < 2 or not 0 < start < end:
        raise ValueError("Cost curve needs at least 2 points over a positive range")

    intervals = np.linspace(start * eta, end * eta, points)
    return [
        CostPoint(float(t), float(cost_rate(t, beta, eta, cp, cc, integration_steps)))
        for t in intervals
    ]


def find_numerical_optimum(
    beta: float,
    eta: float,
    cp: float,
    cc: float,
    start: float = DEFAULT_CURVE_START,
    end: float = DEFAULT_CURVE_END,
    integration_steps: int = DEFAULT_INTEGRATION_STEPS
) -> Union[PMOptimum, NoOptimum]:
    """Minimise C(T) on [start*eta, end*eta] with a bounded scalar search."""
    if beta <= 0 or eta <= 0:
        return NoOptimum("distribution parameters are not positive")
    result = minimize_scalar(
        lambda t: cost_rate(t, beta, eta, cp, cc, integration_steps),
        bounds=(start * eta, end * eta),
        method='bounded'
    )
    if not result.success:
        logger.warning(f"Cost rate minimisation did not converge: {result.message}")
        return NoOptimum("numerical minimisation did not converge")
    return PMOptimum(interval=float(result.x), cost_rate=float(result.fun))


def validate_optimum(
    optimum: PMOptimum,
    curve: Sequence[CostPoint],
    tolerance: float = 0.05
) -> OptimumCheck:
    """
    Compare the closed-form interval with the minimum of the sampled curve.

    The check passes when the closed-form cost exceeds the curve minimum by
    at most `tolerance` (relative).

    Args:
        optimum: Closed-form result
        curve: Output of generate_cost_curve for the same inputs
        tolerance: Allowed relative cost gap

    Returns:
        OptimumCheck
    """
    if not curve:
        raise ValueError("Cannot validate against an empty cost curve")
    best = min(curve, key=lambda p: p.cost)
    gap = (optimum.cost_rate - best.cost) / best.cost if best.cost > 0 else 0.0
    check = OptimumCheck(
        closed_form_interval=optimum.interval,
        closed_form_cost=optimum.cost_rate,
        numerical_interval=best.interval,
        numerical_cost=best.cost,
        relative_cost_gap=gap,
        within_tolerance=gap <= tolerance
    )
    if not check.within_tolerance:
        logger.warning(
            f"Closed-form PM interval {optimum.interval:.1f} h costs {gap:.1%} more "
            f"than the curve minimum at {best.interval:.1f} h"
        )
    return check
