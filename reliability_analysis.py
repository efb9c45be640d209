import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple, Union

from pm_optimization import (
    CostPoint,
    MaintenanceCost,
    NoOptimum,
    OptimumCheck,
    PMOptimum,
    calculate_optimal_pm,
    generate_cost_curve,
    validate_optimum,
)
from reliability_config import AnalysisConfig
from reliability_growth import GrowthModel, calculate_crow_amsaa, growth_trend
from reliability_metrics import (
    ReliabilityMetrics,
    RollingMetric,
    calculate_metrics,
    calculate_rolling_metrics,
    calculate_time_between_failures,
)
from reliability_records import EventRecord, RecordFilter
from weibull_analysis import (
    CurvePoint,
    HistogramBin,
    InsufficientData,
    WeibullParameters,
    b_life,
    calculate_weibull,
    failure_pattern,
    generate_histogram,
    generate_tbf_histogram,
    is_fitted,
    reliability_curve,
)

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResults:
    """Everything derived from one filtered view of the records."""
    records: Tuple[EventRecord, ...]
    metrics: ReliabilityMetrics
    tbf: List[float]
    weibull: Union[WeibullParameters, InsufficientData]
    failure_pattern: str
    b_life: Optional[float]
    histogram: List[HistogramBin]
    reliability_curve: List[CurvePoint]
    growth: Union[GrowthModel, InsufficientData]
    growth_trend: str
    rolling: List[RollingMetric]
    preventive_cost: float
    corrective_cost: float
    pm_optimum: Union[PMOptimum, NoOptimum]
    cost_curve: List[CostPoint] = field(default_factory=list)
    optimum_check: Optional[OptimumCheck] = None
    tbf_histogram: List[HistogramBin] = field(default_factory=list)


class ReliabilityAnalysis:
    """Class to manage the complete reliability analysis workflow."""

    def __init__(self, config: Optional[AnalysisConfig] = None):
        """
        Initialize reliability analysis.

        Args:
            config: Analysis configuration, defaults when omitted
        """
        self.config = config or AnalysisConfig()

    def run_analysis(
        self,
        records: Iterable[EventRecord],
        record_filter: Optional[RecordFilter] = None,
        costs: Optional[MaintenanceCost] = None
    ) -> AnalysisResults:
        """
        Run every estimator over one filtered view of the records.

        Args:
            records: Source event records, left untouched
            record_filter: Selection applied first, everything when omitted
            costs: Cost structure overriding the configured one

        Returns:
            AnalysisResults
        """
        config = self.config
        view = (record_filter or RecordFilter()).apply(records)

        metrics = calculate_metrics(view, config.input_mode)
        tbf = calculate_time_between_failures(view, config.input_mode)
        weibull = calculate_weibull(tbf)
        fitted = is_fitted(weibull)

        growth = calculate_crow_amsaa(view)

        cost_model = costs or config.costs
        cp = cost_model.preventive_total(config.pm_duration_hours)
        cc = cost_model.corrective_total(metrics.mttr, metrics.failure_count)
        cost_curve, optimum, check = self._optimize_pm(weibull, cp, cc)

        results = AnalysisResults(
            records=view,
            metrics=metrics,
            tbf=tbf,
            weibull=weibull,
            failure_pattern=failure_pattern(weibull),
            b_life=b_life(config.b_life_fraction, weibull.beta, weibull.eta) if fitted else None,
            histogram=generate_histogram(tbf, weibull, config.histogram_bins),
            reliability_curve=(
                reliability_curve(weibull.beta, weibull.eta, config.reliability_curve_points)
                if fitted else []
            ),
            growth=growth,
            growth_trend=growth_trend(growth),
            rolling=calculate_rolling_metrics(view, config.rolling_window),
            preventive_cost=cp,
            corrective_cost=cc,
            pm_optimum=optimum,
            cost_curve=cost_curve,
            optimum_check=check,
            tbf_histogram=generate_tbf_histogram(tbf)
        )
        self._log_summary(results)
        return results

    def _optimize_pm(
        self,
        weibull: Union[WeibullParameters, InsufficientData],
        cp: float,
        cc: float
    ) -> Tuple[List[CostPoint], Union[PMOptimum, NoOptimum], Optional[OptimumCheck]]:
        """Closed-form optimum, cost curve and their cross-check."""
        if not is_fitted(weibull):
            return [], NoOptimum(f"no Weibull fit: {weibull.reason}"), None

        config = self.config
        optimum = calculate_optimal_pm(weibull.beta, weibull.eta, cp, cc)
        curve = generate_cost_curve(
            weibull.beta, weibull.eta, cp, cc,
            points=config.cost_curve_points,
            start=config.cost_curve_start,
            end=config.cost_curve_end,
            integration_steps=config.integration_steps
        )
        check = None
        if isinstance(optimum, PMOptimum) and curve:
            check = validate_optimum(optimum, curve, config.optimum_tolerance)
        return curve, optimum, check

    @staticmethod
    def _log_summary(results: AnalysisResults) -> None:
        metrics = results.metrics
        logger.info(
            f"Analysed {len(results.records)} records: {metrics.failure_count} failures, "
            f"MTBF={metrics.mtbf:.2f} h, MTTR={metrics.mttr:.2f} h, "
            f"availability={metrics.availability:.1f}%"
        )
        logger.info(f"Failure pattern: {results.failure_pattern}, growth trend: {results.growth_trend}")
        if isinstance(results.pm_optimum, NoOptimum):
            logger.info(f"No PM optimum: {results.pm_optimum.reason}")
