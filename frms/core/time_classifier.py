"""
Local Time-of-Day Classification
================================

Converts UTC instants to home base civil time and classifies them:
- classify_local_start_time: early / afternoon / night sign-on band
- classify_sign_on_window: widebody planning sign-on windows
- classify_operation_time_of_day: day / late night / back of clock duty

Window minutes are measured by closed-form intersection of the duty span with
fixed local windows, one local day at a time. Window boundaries are localised
with pytz, so a daylight saving transition inside the duty is measured in
elapsed time rather than wall-clock time.
"""

from datetime import datetime, time, timedelta
from typing import List, Tuple, Union

import pytz

from frms.core.parameters import resolve_timezone
from frms.models.data_models import LocalStartTime, OperationTimeClass, SignOnWindow

# (start, end, end falls on the following local day)
LocalWindow = Tuple[time, time, bool]

BACK_OF_CLOCK_WINDOWS: List[LocalWindow] = [(time(1, 0), time(5, 0), False)]
LATE_NIGHT_WINDOWS: List[LocalWindow] = [
    (time(0, 0), time(5, 30), False),
    (time(23, 0), time(0, 0), True),
]
LOCAL_NIGHT_WINDOW: LocalWindow = (time(22, 0), time(6, 0), True)

BACK_OF_CLOCK_MIN_MINUTES = 120
LATE_NIGHT_MIN_MINUTES = 30          # strictly more than this
EARLY_START_BEFORE_HOUR = 7

TimezoneLike = Union[str, pytz.BaseTzInfo]


def as_zone(tz: TimezoneLike) -> pytz.BaseTzInfo:
    if isinstance(tz, str):
        return resolve_timezone(tz)
    return tz


def _as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return pytz.utc.localize(instant)
    return instant.astimezone(pytz.utc)


def to_local(instant: datetime, tz: TimezoneLike) -> datetime:
    return _as_utc(instant).astimezone(as_zone(tz))


def local_hhmm(instant: datetime, tz: TimezoneLike) -> int:
    """Local civil time encoded as an integer HHMM, e.g. 04:59 -> 459"""
    local = to_local(instant, tz)
    return local.hour * 100 + local.minute


def classify_local_start_time(sign_on_utc: datetime, tz: TimezoneLike) -> LocalStartTime:
    """
    Early [0500,1459], afternoon [1500,1959]; anything else is night
    (2000 through midnight to 0459).
    """
    hhmm = local_hhmm(sign_on_utc, tz)
    if 500 <= hhmm <= 1459:
        return LocalStartTime.EARLY
    if 1500 <= hhmm <= 1959:
        return LocalStartTime.AFTERNOON
    return LocalStartTime.NIGHT


def classify_sign_on_window(sign_on_utc: datetime, tz: TimezoneLike) -> SignOnWindow:
    hhmm = local_hhmm(sign_on_utc, tz)
    if 500 <= hhmm <= 759:
        return SignOnWindow.W0500_0759
    if 800 <= hhmm <= 1359:
        return SignOnWindow.W0800_1359
    if 1400 <= hhmm <= 1559:
        return SignOnWindow.W1400_1559
    return SignOnWindow.W1600_0459


def is_early_start(sign_on_utc: datetime, tz: TimezoneLike) -> bool:
    return to_local(sign_on_utc, tz).hour < EARLY_START_BEFORE_HOUR


def _window_bounds(zone: pytz.BaseTzInfo, day, window: LocalWindow) -> Tuple[datetime, datetime]:
    start_t, end_t, next_day = window
    end_day = day + timedelta(days=1) if next_day else day
    start = zone.normalize(zone.localize(datetime.combine(day, start_t)))
    end = zone.normalize(zone.localize(datetime.combine(end_day, end_t)))
    return start.astimezone(pytz.utc), end.astimezone(pytz.utc)


def minutes_in_local_windows(start_utc: datetime, end_utc: datetime,
                             tz: TimezoneLike, windows: List[LocalWindow]) -> float:
    """Minutes of [start, end) that fall inside the given local windows"""
    zone = as_zone(tz)
    start_utc, end_utc = _as_utc(start_utc), _as_utc(end_utc)
    if end_utc <= start_utc:
        return 0.0

    first_day = start_utc.astimezone(zone).date() - timedelta(days=1)
    last_day = end_utc.astimezone(zone).date()

    seconds = 0.0
    day = first_day
    while day <= last_day:
        for window in windows:
            w_start, w_end = _window_bounds(zone, day, window)
            overlap = (min(end_utc, w_end) - max(start_utc, w_start)).total_seconds()
            if overlap > 0:
                seconds += overlap
        day += timedelta(days=1)
    return seconds / 60


def classify_operation_time_of_day(sign_on_utc: datetime, sign_off_utc: datetime,
                                   tz: TimezoneLike) -> OperationTimeClass:
    """
    Back of clock when at least 120 minutes fall in [0100,0500) local;
    otherwise late night when more than 30 minutes fall in [2300,0530);
    otherwise day. The two outcomes are mutually exclusive.
    """
    zone = as_zone(tz)
    boc = minutes_in_local_windows(sign_on_utc, sign_off_utc, zone, BACK_OF_CLOCK_WINDOWS)
    if boc >= BACK_OF_CLOCK_MIN_MINUTES:
        return OperationTimeClass.BACK_OF_CLOCK
    late = minutes_in_local_windows(sign_on_utc, sign_off_utc, zone, LATE_NIGHT_WINDOWS)
    if late > LATE_NIGHT_MIN_MINUTES:
        return OperationTimeClass.LATE_NIGHT
    return OperationTimeClass.DAY


def rest_includes_local_night(rest_start_utc: datetime, rest_end_utc: datetime,
                              tz: TimezoneLike) -> bool:
    """True when the rest period contains a whole 2200-0600 local night"""
    zone = as_zone(tz)
    rest_start_utc, rest_end_utc = _as_utc(rest_start_utc), _as_utc(rest_end_utc)
    day = rest_start_utc.astimezone(zone).date() - timedelta(days=1)
    last_day = rest_end_utc.astimezone(zone).date()
    while day <= last_day:
        night_start, night_end = _window_bounds(zone, day, LOCAL_NIGHT_WINDOW)
        if rest_start_utc <= night_start and night_end <= rest_end_utc:
            return True
        day += timedelta(days=1)
    return False
