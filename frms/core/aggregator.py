"""
Rolling Cumulative Aggregation
==============================

Turns a crew member's duty history into CumulativeTotals:
- rolling flight time over 7 days, the fleet's rolling period and 365 days
  (by calendar date)
- rolling duty time over 7 and 14 days (daily sign-on to sign-off spans),
  and the 7-day share on late night or back of clock days
- run-length counters over duty days: consecutive duties, consecutive early
  starts, consecutive late nights, duty days in the trailing 11 days

Malformed records are coerced at the boundary and logged; aggregation never
raises on bad numeric data. Records are deduplicated and sorted once per call.
"""

import logging
import math
from collections import OrderedDict
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Union

from frms.core.parameters import FleetProfile, FRMSConfig
from frms.core.time_classifier import (
    TimezoneLike, as_zone, classify_operation_time_of_day, to_local,
)
from frms.models.data_models import (
    CumulativeTotals, DailyDutySummary, DutyRecord, OperationTimeClass,
)

logger = logging.getLogger(__name__)

_CLASS_SEVERITY = {
    OperationTimeClass.DAY: 0,
    OperationTimeClass.LATE_NIGHT: 1,
    OperationTimeClass.BACK_OF_CLOCK: 2,
}


def _clean_hours(record: DutyRecord, name: str) -> float:
    value = getattr(record, name)
    if value is None:
        return 0.0
    try:
        value = float(value)
    except (TypeError, ValueError):
        logger.warning(f"[{record.duty_id}] Non-numeric {name} {value!r}; using 0")
        return 0.0
    if not math.isfinite(value) or value < 0:
        logger.warning(f"[{record.duty_id}] Invalid {name} {value}; using 0")
        return 0.0
    return value


def sanitize_record(record: DutyRecord) -> DutyRecord:
    """Coerce invalid fields to safe defaults, logging each coercion"""
    changes = {}

    if record.sign_off_utc <= record.sign_on_utc:
        logger.warning(
            f"[{record.duty_id}] Sign-off {record.sign_off_utc.isoformat()} is not after "
            f"sign-on {record.sign_on_utc.isoformat()}; duty time set to 0"
        )
        changes['sign_off_utc'] = record.sign_on_utc

    for name in ('flight_hours', 'night_hours'):
        cleaned = _clean_hours(record, name)
        if cleaned != getattr(record, name):
            changes[name] = cleaned

    sectors = _clean_sectors(record)
    if sectors != record.sectors or type(sectors) is not type(record.sectors):
        changes['sectors'] = sectors

    return replace(record, **changes) if changes else record


def _clean_sectors(record: DutyRecord) -> int:
    """Whole-number sector counts (2 or 2.0) pass; anything else becomes 0"""
    value = record.sectors
    if isinstance(value, float) and value.is_integer() and value >= 0:
        return int(value)
    if not isinstance(value, int) or value < 0:
        logger.warning(f"[{record.duty_id}] Invalid sector count {value!r}; using 0")
        return 0
    return value


def prepare_records(records: Iterable[DutyRecord]) -> List[DutyRecord]:
    """Sanitise, deduplicate by duty_id (last supplied wins) and sort once"""
    unique: Dict[str, DutyRecord] = OrderedDict()
    for record in records:
        unique[record.duty_id] = sanitize_record(record)
    return sorted(unique.values(), key=lambda r: (r.date, r.sign_on_utc))


class RollingAggregator:
    """Rolling totals and run-length counters for one home base and fleet"""

    def __init__(self, home_base_timezone: TimezoneLike, fleet_profile: FleetProfile):
        self.tz = as_zone(home_base_timezone)
        self.profile = fleet_profile

    @classmethod
    def from_config(cls, config: FRMSConfig) -> 'RollingAggregator':
        return cls(config.tz, config.fleet_profile)

    def _as_of_date(self, as_of: Union[datetime, date]) -> date:
        if isinstance(as_of, datetime):
            return to_local(as_of, self.tz).date()
        return as_of

    def daily_summaries(self, records: List[DutyRecord]) -> List[DailyDutySummary]:
        """
        Group prepared records by home base local sign-on date.

        Each day's classification is the most severe of its records.
        """
        groups: Dict[date, List[DutyRecord]] = OrderedDict()
        for record in records:
            local_date = to_local(record.sign_on_utc, self.tz).date()
            groups.setdefault(local_date, []).append(record)

        summaries = []
        for day, day_records in groups.items():
            earliest = min(r.sign_on_utc for r in day_records)
            operation_time = OperationTimeClass.DAY
            for r in day_records:
                time_class = classify_operation_time_of_day(r.sign_on_utc, r.sign_off_utc, self.tz)
                if _CLASS_SEVERITY[time_class] > _CLASS_SEVERITY[operation_time]:
                    operation_time = time_class
            summaries.append(DailyDutySummary(
                date=day,
                records=day_records,
                earliest_local_sign_on=to_local(earliest, self.tz),
                operation_time=operation_time,
            ))
        summaries.sort(key=lambda s: s.date)
        return summaries

    def calculate(self, records: Iterable[DutyRecord],
                  as_of: Union[datetime, date]) -> CumulativeTotals:
        as_of_date = self._as_of_date(as_of)
        prepared = prepare_records(records)
        period = self.profile.rolling_period_days

        start_7 = as_of_date - timedelta(days=6)
        start_14 = as_of_date - timedelta(days=13)
        start_period = as_of_date - timedelta(days=period - 1)
        start_365 = as_of_date - timedelta(days=364)
        start_11 = as_of_date - timedelta(days=10)

        flight_7 = flight_period = flight_365 = 0.0
        for record in prepared:
            if record.date > as_of_date or record.date < start_365:
                continue
            flight_365 += record.flight_hours
            if record.date >= start_period:
                flight_period += record.flight_hours
            if record.date >= start_7:
                flight_7 += record.flight_hours

        summaries = [s for s in self.daily_summaries(prepared) if s.date <= as_of_date]

        duty_7 = duty_14 = late_night_7 = 0.0
        days_in_11 = days_in_period = 0
        for summary in summaries:
            if summary.date >= start_14:
                duty_14 += summary.duty_hours
            if summary.date >= start_7:
                duty_7 += summary.duty_hours
                if summary.operation_time != OperationTimeClass.DAY:
                    late_night_7 += summary.duty_hours
            if summary.date >= start_11:
                days_in_11 += 1
            if summary.date >= start_period:
                days_in_period += 1

        run = self._current_run(summaries, as_of_date)
        consecutive = len(run) if self.profile.has_consecutive_limits else 0

        return CumulativeTotals(
            as_of_date=as_of_date,
            fleet_profile=self.profile,
            flight_time_7_days=flight_7,
            flight_time_period=flight_period,
            flight_time_365_days=flight_365,
            duty_time_7_days=duty_7,
            duty_time_14_days=duty_14,
            consecutive_duties=consecutive,
            consecutive_early_starts=_leading_count(run, lambda s: s.is_early_start),
            consecutive_late_nights=_leading_count(run, lambda s: s.is_late_night),
            duty_days_in_11_days=days_in_11,
            days_off_in_period=period - days_in_period,
            late_night_duty_hours_7_days=late_night_7,
        )

    @staticmethod
    def _current_run(summaries: List[DailyDutySummary], as_of_date: date) -> List[DailyDutySummary]:
        """Duty days ending at the as-of date (or the day before), most recent first"""
        if not summaries:
            return []
        by_date = {s.date: s for s in summaries}
        latest = summaries[-1].date
        if (as_of_date - latest).days > 1:
            return []

        run = []
        day = latest
        while day in by_date:
            run.append(by_date[day])
            day -= timedelta(days=1)
        return run


def _leading_count(run: List[DailyDutySummary], predicate) -> int:
    count = 0
    for summary in run:
        if not predicate(summary):
            break
        count += 1
    return count


def calculate_cumulative_totals(records: Iterable[DutyRecord], as_of: Union[datetime, date],
                                config: FRMSConfig) -> CumulativeTotals:
    return RollingAggregator.from_config(config).calculate(records, as_of)
