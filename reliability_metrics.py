import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Sequence, Union

import numpy as np

from reliability_records import EventRecord, InputMode

logger = logging.getLogger(__name__)

DEFAULT_ROLLING_WINDOW = 5


@dataclass(frozen=True)
class ReliabilityMetrics:
    """Point-in-time reliability indicators of a record view (hours, %)."""
    mtbf: float
    mttr: float
    availability: float
    total_uptime: float
    total_downtime: float
    failure_count: int
    mtbf_cov: float = 0.0


@dataclass(frozen=True)
class RollingMetric:
    date: date
    mtbf: float
    mttr: float


def _mode(mode: Union[InputMode, str]) -> InputMode:
    return mode if isinstance(mode, InputMode) else InputMode(mode)


def _hours(seconds: float) -> float:
    return seconds / 3600.0


def chronological_failures(records: Iterable[EventRecord]) -> List[EventRecord]:
    """Unplanned records carrying a start timestamp, oldest first."""
    failures = [r for r in records if r.is_failure and r.start_time is not None]
    return sorted(failures, key=lambda r: r.start_time)


def calculate_time_between_failures(
    records: Sequence[EventRecord],
    mode: Union[InputMode, str] = InputMode.TIMESTAMP
) -> List[float]:
    """
    Derive time-between-failure samples (hours) from event records.

    In manual mode the recorded time-to-failure of each unplanned record is
    used as is. In timestamp mode the gap between the end of one failure and
    the start of the next is used; overlapping or simultaneous events give
    non-positive gaps, which are dropped.

    Args:
        records: Filtered event records
        mode: Which record field is authoritative

    Returns:
        List of positive intervals
    """
    if _mode(mode) is InputMode.MANUAL_TTF:
        return [
            float(r.time_to_failure) for r in records
            if r.is_failure and r.time_to_failure is not None and r.time_to_failure > 0
        ]

    failures = chronological_failures(records)
    tbf = []
    for current, following in zip(failures, failures[1:]):
        gap = _hours((following.start_time - current.end_time).total_seconds())
        if gap > 0:
            tbf.append(gap)

    dropped = max(0, len(failures) - 1) - len(tbf)
    if dropped:
        logger.debug(f"Dropped {dropped} non-positive gaps between overlapping failures")
    return tbf


def _total_uptime(records: Sequence[EventRecord], mode: InputMode, total_downtime: float) -> float:
    if mode is InputMode.MANUAL_TTF:
        return sum(
            r.time_to_failure for r in records
            if r.is_failure and r.time_to_failure is not None
        )

    # Planned and external stoppages share the operating timeline, so all
    # timestamped records define the observation span.
    timed = [r for r in records if r.start_time is not None]
    if not timed:
        return 0.0
    start = min(r.start_time for r in timed)
    end = max(r.end_time for r in timed)
    return max(0.0, _hours((end - start).total_seconds()) - total_downtime)


def calculate_metrics(
    records: Sequence[EventRecord],
    mode: Union[InputMode, str] = InputMode.TIMESTAMP
) -> ReliabilityMetrics:
    """
    Compute MTBF, MTTR and availability of a record view.

    With no failures MTBF reports the total uptime itself. This mirrors
    established dashboards but is not a statistically sound MTBF.

    Args:
        records: Filtered event records
        mode: Which record field is authoritative

    Returns:
        ReliabilityMetrics, all zero for empty input
    """
    mode = _mode(mode)
    failures = [r for r in records if r.is_failure]
    failure_count = len(failures)
    total_downtime = sum(r.downtime_hours for r in failures)
    total_uptime = _total_uptime(records, mode, total_downtime)

    mtbf = total_uptime / failure_count if failure_count > 0 else total_uptime
    mttr = total_downtime / failure_count if failure_count > 0 else 0.0
    total_time = total_uptime + total_downtime
    availability = (total_uptime / total_time) * 100 if total_time > 0 else 0.0

    tbf = np.asarray(calculate_time_between_failures(records, mode))
    mtbf_cov = float(np.std(tbf) / np.mean(tbf)) if tbf.size > 1 and np.mean(tbf) > 0 else 0.0

    return ReliabilityMetrics(
        mtbf=mtbf,
        mttr=mttr,
        availability=availability,
        total_uptime=total_uptime,
        total_downtime=total_downtime,
        failure_count=failure_count,
        mtbf_cov=mtbf_cov
    )


def calculate_rolling_metrics(
    records: Sequence[EventRecord],
    window_size: int = DEFAULT_ROLLING_WINDOW
) -> List[RollingMetric]:
    """
    Sliding-window MTBF/MTTR over chronologically ordered failures.

    The first window is emitted once more than `window_size` failures
    exist; exactly `window_size` failures yield an empty series.

    Args:
        records: Filtered event records
        window_size: Failures per window

    Returns:
        One RollingMetric per window, dated by the window's last failure
    """
    if window_size < 1:
        raise ValueError("Window size must be at least 1")

    failures = chronological_failures(records)
    series = []
    for i in range(window_size, len(failures)):
        window = failures[i - window_size:i]
        span = _hours((window[-1].start_time - window[0].start_time).total_seconds())
        downtime = sum(r.downtime_hours for r in window)
        uptime = max(0.0, span - downtime)
        series.append(RollingMetric(
            date=window[-1].start_time.date(),
            mtbf=uptime / window_size,
            mttr=downtime / window_size
        ))
    return series
