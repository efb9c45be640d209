import re
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


class StoppageType(Enum):
    """Classification of a recorded stoppage."""
    UNPLANNED = 'Unplanned'
    PLANNED = 'Planned'
    EXTERNAL = 'External'


class InputMode(Enum):
    """Which record field is authoritative for time-between-failures."""
    TIMESTAMP = 'timestamp'
    MANUAL_TTF = 'manual_ttf'


class ExecutorType(Enum):
    INTERNAL = 'Internal'
    CONTRACTOR = 'Contractor'
    BOTH = 'Internal + Contractor'


@dataclass(frozen=True)
class EventRecord:
    """A single maintenance/failure event as delivered by ingestion."""
    record_id: str
    start_time: Optional[datetime] = None
    time_to_failure: Optional[float] = None  # operating hours
    duration_minutes: float = 0.0
    stoppage_type: StoppageType = StoppageType.UNPLANNED
    description: str = ''
    location: str = ''
    failure_mode: str = ''
    delay_type: str = ''

    @property
    def is_failure(self) -> bool:
        return self.stoppage_type is StoppageType.UNPLANNED

    @property
    def downtime_hours(self) -> float:
        return self.duration_minutes / 60.0

    @property
    def end_time(self) -> Optional[datetime]:
        if self.start_time is None:
            return None
        return self.start_time + timedelta(minutes=self.duration_minutes)


@dataclass(frozen=True)
class MaintenanceTask:
    """A task of a preventive maintenance plan."""
    asset: str
    task_description: str
    frequency: str
    trade: str = ''
    estimated_duration: float = 0.0  # hours per execution
    shutdown_required: bool = False
    executor_count: int = 1
    executor_type: ExecutorType = ExecutorType.INTERNAL
    task_type: str = ''
    criticality: str = 'Medium'


@dataclass(frozen=True)
class ResourceCapacity:
    """Labour supply of one trade."""
    trade: str
    headcount: int
    weekly_hours: float
    utilization_rate: float


_ALL = 'All'


def _matches(value: str, wanted: Optional[str]) -> bool:
    return wanted is None or wanted == _ALL or value == wanted


@dataclass(frozen=True)
class RecordFilter:
    """
    Selection applied to event records before any computation.

    A field left as None (or set to "All") does not constrain the selection.
    """
    asset: Optional[str] = None
    failure_mode: Optional[str] = None
    delay_type: Optional[str] = None
    stoppage_type: Optional[StoppageType] = None

    def apply(self, records: Iterable[EventRecord]) -> Tuple[EventRecord, ...]:
        """
        Build a read-only view of the records matching this filter.

        Args:
            records: Source collection, never modified

        Returns:
            Tuple of matching records in source order
        """
        selected = tuple(
            r for r in records
            if _matches(r.location, self.asset)
            and _matches(r.failure_mode, self.failure_mode)
            and _matches(r.delay_type, self.delay_type)
            and (self.stoppage_type is None or r.stoppage_type is self.stoppage_type)
        )
        logger.debug(f"Filter {self} selected {len(selected)} records")
        return selected


_RECORD_FIELDS = ('location', 'failure_mode', 'delay_type', 'description')
_PARETO_DEFAULTS = {'location': 'Unknown Asset', 'failure_mode': 'Uncategorized'}


def distinct_values(records: Iterable[EventRecord], field_name: str) -> List[str]:
    """Sorted distinct non-empty values of a text field, e.g. for filter choices."""
    if field_name not in _RECORD_FIELDS:
        raise ValueError(f"Unsupported record field: {field_name}")
    return sorted({getattr(r, field_name) for r in records if getattr(r, field_name)})


def pareto(
    records: Iterable[EventRecord],
    group_by: str = 'location',
    value: str = 'downtime',
    limit: Optional[int] = 15
) -> List[Tuple[str, float]]:
    """
    Aggregate unplanned events by asset or failure mode.

    Args:
        records: Filtered event records
        group_by: 'location' or 'failure_mode'
        value: 'downtime' (hours) or 'count'
        limit: Maximum number of groups returned, None for all

    Returns:
        (group, value) pairs sorted by value, largest first
    """
    if group_by not in _PARETO_DEFAULTS:
        raise ValueError(f"Cannot group by '{group_by}'")
    if value not in ('downtime', 'count'):
        raise ValueError(f"Unknown Pareto value '{value}'")

    totals: Dict[str, float] = defaultdict(float)
    for record in records:
        if not record.is_failure:
            continue
        key = getattr(record, group_by) or _PARETO_DEFAULTS[group_by]
        totals[key] += 1 if value == 'count' else record.downtime_hours

    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return ranked[:limit] if limit is not None else ranked


_NUMBER = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)$')

# Checked in order, first hit wins
_FREQUENCY_KEYWORDS = (
    (('day', 'dai'), 365.0),
    (('week',), 52.0),
    (('quarter', 'qtr'), 4.0),
    (('year', 'annual'), 1.0),
    (('semi',), 2.0),
    (('month',), 12.0),
)


def normalize_frequency(descriptor: str) -> float:
    """
    Convert a maintenance frequency descriptor into occurrences per year.

    A bare number is read as an interval in months ("6" -> 2 per year).
    Text is matched against cadence keywords; anything unrecognised
    contributes nothing.

    Args:
        descriptor: Raw frequency text from the maintenance plan

    Returns:
        Annual number of occurrences, 0 when unknown
    """
    if not isinstance(descriptor, str):
        return 0.0
    text = descriptor.strip().lower()
    if not text:
        return 0.0

    if _NUMBER.match(text):
        months = float(text)
        return 12.0 / months if months > 0 else 0.0

    for keywords, per_year in _FREQUENCY_KEYWORDS:
        if any(k in text for k in keywords):
            if per_year == 1.0 and 'semi' in text:
                continue
            return per_year

    logger.debug(f"Unrecognised frequency descriptor '{descriptor}'")
    return 0.0


def annual_man_hours(task: MaintenanceTask) -> float:
    """Yearly labour demand of a task: occurrences * duration * executors."""
    people = task.executor_count if task.executor_count and task.executor_count > 0 else 1
    return normalize_frequency(task.frequency) * task.estimated_duration * people


def workload_by_trade(
    tasks: Iterable[MaintenanceTask],
    include_contractors: bool = True
) -> Dict[str, float]:
    """
    Annual man-hours per trade, largest first.

    Args:
        tasks: Maintenance plan tasks
        include_contractors: Whether contractor-only tasks count as demand

    Returns:
        Mapping of trade to annual hours
    """
    hours: Dict[str, float] = defaultdict(float)
    for task in tasks:
        if not include_contractors and task.executor_type is ExecutorType.CONTRACTOR:
            continue
        hours[task.trade or 'Other'] += annual_man_hours(task)
    return dict(sorted(hours.items(), key=lambda item: item[1], reverse=True))


def workload_by_executor(tasks: Iterable[MaintenanceTask]) -> Dict[str, float]:
    """Annual man-hours split between internal staff, contractors and mixed crews."""
    split = {'Internal': 0.0, 'Contractor': 0.0, 'Mixed': 0.0}
    for task in tasks:
        hours = annual_man_hours(task)
        if task.executor_type is ExecutorType.CONTRACTOR:
            split['Contractor'] += hours
        elif task.executor_type is ExecutorType.BOTH:
            split['Mixed'] += hours
        else:
            split['Internal'] += hours
    return split


def resource_utilization(
    capacities: Sequence[ResourceCapacity],
    tasks: Iterable[MaintenanceTask]
) -> List[Dict[str, Any]]:
    """
    Compare internal labour supply with plan demand per trade.

    Contractor-only tasks are not internal demand and are left out.

    Args:
        capacities: Supply per trade
        tasks: Maintenance plan tasks

    Returns:
        One row per capacity with available, required, utilization (%) and gap hours
    """
    demand = workload_by_trade(tasks, include_contractors=False)
    rows = []
    for capacity in capacities:
        available = capacity.headcount * capacity.weekly_hours * 52 * capacity.utilization_rate
        required = demand.get(capacity.trade, 0.0)
        rows.append({
            'trade': capacity.trade,
            'available': available,
            'required': required,
            'utilization': (required / available) * 100 if available > 0 else 0.0,
            'gap': available - required,
        })
    return rows
