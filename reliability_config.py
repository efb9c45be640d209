import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Union

from pm_optimization import MaintenanceCost
from reliability_records import InputMode

logger = logging.getLogger(__name__)


@dataclass
class AnalysisConfig:
    """Configuration parameters for a reliability analysis run."""
    input_mode: InputMode = InputMode.TIMESTAMP
    rolling_window: int = 5
    histogram_bins: int = 10
    reliability_curve_points: int = 100
    b_life_fraction: float = 0.1
    cost_curve_points: int = 50
    cost_curve_start: float = 0.1
    cost_curve_end: float = 2.0
    integration_steps: int = 20
    optimum_tolerance: float = 0.05
    pm_duration_hours: float = 4.0
    costs: MaintenanceCost = field(default_factory=MaintenanceCost)

    def __post_init__(self):
        if not isinstance(self.input_mode, InputMode):
            self.input_mode = InputMode(self.input_mode)
        if isinstance(self.costs, dict):
            self.costs = MaintenanceCost.from_dict(self.costs)
        self._validate()

    def _validate(self) -> None:
        """Validate configuration values."""
        if self.rolling_window < 1:
            raise ValueError("Rolling window must be at least 1")
        if self.histogram_bins < 1:
            raise ValueError("Histogram needs at least one bin")
        if self.reliability_curve_points < 2 or self.cost_curve_points < 2:
            raise ValueError("Curves need at least 2 points")
        if not 0 < self.b_life_fraction < 1:
            raise ValueError("B-life fraction must lie strictly between 0 and 1")
        if not 0 < self.cost_curve_start < self.cost_curve_end:
            raise ValueError("Cost curve range must be positive and increasing")
        if self.integration_steps < 1:
            raise ValueError("Integration needs at least one step")
        if self.optimum_tolerance < 0:
            raise ValueError("Optimum tolerance must be non-negative")
        if self.pm_duration_hours < 0:
            raise ValueError("PM duration must be non-negative")

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'AnalysisConfig':
        return cls(**config_dict)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.__dict__)
        data['input_mode'] = self.input_mode.value
        data['costs'] = self.costs.to_dict()
        return data

    @classmethod
    def from_json(cls, json_path: Union[str, Path]) -> 'AnalysisConfig':
        """Load configuration from a JSON file."""
        with open(json_path, 'r') as f:
            config_dict = json.load(f)
        logger.debug(f"Loaded analysis configuration from {json_path}")
        return cls.from_dict(config_dict)

    def to_json(self, json_path: Union[str, Path]) -> None:
        """Save configuration to a JSON file."""
        with open(json_path, 'w') as f:
            json.dump(self.to_dict(), f, indent=4)
