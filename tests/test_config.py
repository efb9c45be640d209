"""
Unit tests for AnalysisConfig.
"""
import json

import pytest

from pm_optimization import CostBreakdown, MaintenanceCost
from reliability_config import AnalysisConfig
from reliability_records import InputMode


class TestAnalysisConfig:
    """Tests for defaults, validation and JSON persistence."""

    def test_defaults(self):
        config = AnalysisConfig()
        assert config.input_mode is InputMode.TIMESTAMP
        assert config.rolling_window == 5
        assert config.histogram_bins == 10
        assert config.cost_curve_points == 50
        assert config.integration_steps == 20
        assert config.costs == MaintenanceCost()

    def test_input_mode_from_string(self):
        assert AnalysisConfig(input_mode='manual_ttf').input_mode is InputMode.MANUAL_TTF

    def test_unknown_input_mode(self):
        with pytest.raises(ValueError):
            AnalysisConfig(input_mode='hourly')

    @pytest.mark.parametrize('overrides', [
        {'rolling_window': 0},
        {'histogram_bins': 0},
        {'cost_curve_points': 1},
        {'b_life_fraction': 1.0},
        {'cost_curve_start': 2.0, 'cost_curve_end': 1.0},
        {'cost_curve_start': 0.0},
        {'integration_steps': 0},
        {'optimum_tolerance': -0.1},
        {'pm_duration_hours': -1.0},
    ])
    def test_invalid_values(self, overrides):
        with pytest.raises(ValueError):
            AnalysisConfig(**overrides)

    def test_costs_from_dict(self):
        config = AnalysisConfig(costs={'preventive': {'material': 100.0, 'labor_rate': 40.0}})
        assert config.costs.preventive == CostBreakdown(material=100.0, labor_rate=40.0)

    def test_json_round_trip(self, tmp_path):
        config = AnalysisConfig(
            input_mode=InputMode.MANUAL_TTF,
            rolling_window=7,
            costs=MaintenanceCost(corrective=CostBreakdown(1500.0, 80.0, 400.0))
        )
        path = tmp_path / 'analysis.json'
        config.to_json(path)
        assert AnalysisConfig.from_json(path) == config

    def test_json_is_plain_data(self, tmp_path):
        path = tmp_path / 'analysis.json'
        AnalysisConfig().to_json(path)
        with open(path) as f:
            data = json.load(f)
        assert data['input_mode'] == 'timestamp'
        assert data['costs']['preventive']['material'] == 0.0

    def test_from_json_rejects_unknown_keys(self, tmp_path):
        path = tmp_path / 'analysis.json'
        path.write_text(json.dumps({'window': 3}))
        with pytest.raises(TypeError):
            AnalysisConfig.from_json(path)
