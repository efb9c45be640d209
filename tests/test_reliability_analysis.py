"""
Integration tests for the ReliabilityAnalysis workflow.
"""
import numpy as np
import pytest

from pm_optimization import CostBreakdown, MaintenanceCost, NoOptimum, PMOptimum
from reliability_analysis import ReliabilityAnalysis
from reliability_config import AnalysisConfig
from reliability_growth import GrowthModel
from reliability_records import EventRecord, InputMode, RecordFilter, StoppageType
from weibull_analysis import InsufficientData, WeibullParameters, median_ranks
from conftest import make_event


def wear_out_history(beta=3.0, eta=200.0, n=21):
    """Failures whose gaps sit on the median-rank quantiles of Weibull(beta, eta)."""
    gaps = eta * (-np.log(1 - median_ranks(n - 1))) ** (1 / beta)
    rng = np.random.default_rng(11)
    rng.shuffle(gaps)
    starts = np.concatenate(([0.0], np.cumsum(gaps)))
    return [
        make_event(float(t), duration_minutes=0, record_id=f"F{i}", location='Compressor')
        for i, t in enumerate(starts)
    ]


@pytest.fixture
def costs():
    return MaintenanceCost(
        preventive=CostBreakdown(material=100.0),
        corrective=CostBreakdown(material=1000.0)
    )


class TestRunAnalysis:
    """Tests for ReliabilityAnalysis.run_analysis."""

    def test_full_wear_out_analysis(self, costs):
        config = AnalysisConfig(costs=costs)
        results = ReliabilityAnalysis(config).run_analysis(wear_out_history())

        assert results.metrics.failure_count == 21
        assert len(results.tbf) == 20
        assert isinstance(results.weibull, WeibullParameters)
        assert results.weibull.beta == pytest.approx(3.0, rel=1e-4)
        assert results.weibull.eta == pytest.approx(200.0, rel=1e-4)
        assert results.failure_pattern == 'wear_out'
        assert results.b_life == pytest.approx(200.0 * (-np.log(0.9)) ** (1 / 3), rel=1e-3)

        assert sum(b.count for b in results.histogram) == 20
        assert sum(b.count for b in results.tbf_histogram) == 20
        assert len(results.reliability_curve) == config.reliability_curve_points
        assert isinstance(results.growth, GrowthModel)
        assert len(results.rolling) == 21 - config.rolling_window

        assert results.preventive_cost == pytest.approx(100.0)
        assert results.corrective_cost == pytest.approx(1000.0)
        assert isinstance(results.pm_optimum, PMOptimum)
        assert len(results.cost_curve) == 50
        assert results.optimum_check is not None
        assert results.optimum_check.within_tolerance

    def test_filter_is_applied_first(self, mixed_records):
        results = ReliabilityAnalysis().run_analysis(mixed_records, RecordFilter(asset='Fan B'))
        assert len(results.records) == 2
        assert results.metrics.failure_count == 1

    def test_source_records_are_untouched(self, mixed_records):
        before = list(mixed_records)
        ReliabilityAnalysis().run_analysis(mixed_records, RecordFilter(failure_mode='Seal leak'))
        assert list(mixed_records) == before

    def test_insufficient_data(self, event_factory):
        results = ReliabilityAnalysis().run_analysis([event_factory(0), event_factory(10)])
        assert isinstance(results.weibull, InsufficientData)
        assert results.failure_pattern == 'no_data'
        assert results.b_life is None
        assert results.reliability_curve == []
        assert isinstance(results.growth, InsufficientData)
        assert results.growth_trend == 'no_data'
        assert results.rolling == []
        assert isinstance(results.pm_optimum, NoOptimum)
        assert results.cost_curve == []
        assert results.optimum_check is None

    def test_run_to_failure_has_curve_but_no_optimum(self, costs):
        # decreasing hazard: scheduled replacement never pays off
        config = AnalysisConfig(costs=costs)
        results = ReliabilityAnalysis(config).run_analysis(wear_out_history(beta=0.8))
        assert results.failure_pattern == 'early_life'
        assert isinstance(results.pm_optimum, NoOptimum)
        assert len(results.cost_curve) == 50
        assert results.optimum_check is None

    def test_corrective_only_costs(self):
        config = AnalysisConfig(costs=MaintenanceCost(corrective=CostBreakdown(material=1000.0)))
        results = ReliabilityAnalysis(config).run_analysis(wear_out_history())
        assert results.preventive_cost == 0.0
        assert isinstance(results.pm_optimum, NoOptimum)
        assert len(results.cost_curve) == 50
        assert results.optimum_check is None

    def test_manual_mode(self, costs):
        records = [
            EventRecord(f"M{i}", time_to_failure=t, duration_minutes=30)
            for i, t in enumerate([120.0, 80.0, 200.0, 150.0, 95.0])
        ]
        records.append(EventRecord('P1', time_to_failure=999.0, stoppage_type=StoppageType.PLANNED))
        config = AnalysisConfig(input_mode=InputMode.MANUAL_TTF, costs=costs)
        results = ReliabilityAnalysis(config).run_analysis(records)
        assert results.tbf == [120.0, 80.0, 200.0, 150.0, 95.0]
        assert results.metrics.total_uptime == pytest.approx(645.0)
        assert isinstance(results.weibull, WeibullParameters)
        # no timestamps, so no growth model or rolling trend
        assert isinstance(results.growth, InsufficientData)
        assert results.rolling == []

    def test_cost_override(self, costs, event_factory):
        records = [event_factory(0), event_factory(10)]
        override = MaintenanceCost(preventive=CostBreakdown(material=5.0))
        results = ReliabilityAnalysis(AnalysisConfig(costs=costs)).run_analysis(records, costs=override)
        assert results.preventive_cost == pytest.approx(5.0)
