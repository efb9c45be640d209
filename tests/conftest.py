"""
Pytest fixtures for the reliability analysis tests.
"""
from datetime import datetime, timedelta

import pytest

from reliability_records import EventRecord, StoppageType

BASE_TIME = datetime(2024, 1, 1, 8, 0)


def make_event(hours_after_base, duration_minutes=60.0, stoppage_type=StoppageType.UNPLANNED,
               record_id=None, **kwargs):
    """Event starting a given number of hours after BASE_TIME."""
    return EventRecord(
        record_id=record_id or f"EV-{hours_after_base}",
        start_time=BASE_TIME + timedelta(hours=hours_after_base),
        duration_minutes=duration_minutes,
        stoppage_type=stoppage_type,
        **kwargs
    )


@pytest.fixture
def event_factory():
    return make_event


@pytest.fixture
def mixed_records():
    """Failures on two assets plus planned and external stoppages."""
    return (
        make_event(0, 60, location='Pump A', failure_mode='Seal leak', delay_type='Mechanical'),
        make_event(100, 120, location='Pump A', failure_mode='Bearing', delay_type='Mechanical'),
        make_event(150, 240, StoppageType.PLANNED, location='Pump A', failure_mode='', delay_type='PM'),
        make_event(250, 30, location='Fan B', failure_mode='Seal leak', delay_type='Electrical'),
        make_event(400, 90, location='Pump A', failure_mode='Seal leak', delay_type='Mechanical'),
        make_event(500, 600, StoppageType.EXTERNAL, location='Fan B', failure_mode='', delay_type='Power'),
    )
