"""
Fleet Profiles & Engine Configuration
=====================================

Per-fleet cumulative limits and the caller-supplied configuration:
- ConsecutiveDutyLimits: run-length limits (narrowbody only)
- FleetProfile: immutable cumulative ceilings for one fleet
- FLEET_PROFILES: the fleet table; adding a fleet is a data insertion
- FRMSConfig: home base, fleet, default limit type and warning threshold

References: Operator FRMS flight and duty limits, FD13 / FD23 (A320/B737),
FD3 / FD10 (A380/A330/B787)
"""

from dataclasses import dataclass
from typing import Dict, Optional, Union

import pytz

from frms.core.errors import ConfigurationError
from frms.models.data_models import CrewComplement, Fleet, LimitType


@dataclass(frozen=True)
class ConsecutiveDutyLimits:
    """Run-length limits; counters are compared with >= (see ComplianceEvaluator)"""
    max_consecutive_duties: int = 6
    max_consecutive_early_starts: int = 4
    max_consecutive_late_nights: int = 4
    max_duty_days_in_11_days: int = 9

    # Late night operations (FD14.3 / FD24.3)
    max_late_night_duty_hours_7_nights: float = 40.0
    late_nights_before_continue_only: int = 2

    # Rest at the end of a multi-day pattern
    pattern_end_days: int = 3
    pattern_end_rest_hours: float = 15.0


@dataclass(frozen=True)
class FleetProfile:
    """Cumulative flight and duty time ceilings for one fleet"""
    fleet: Fleet
    display_name: str

    # Flight time, measured by calendar date
    flight_time_7_days: Optional[float]     # None: no 7-day limit for this fleet
    flight_time_period: float
    rolling_period_days: int                # 28 or 30
    flight_time_365_days: float

    # Duty time, measured over daily sign-on to sign-off spans
    duty_time_7_days: float = 60.0
    duty_time_14_days: float = 100.0

    consecutive_limits: Optional[ConsecutiveDutyLimits] = None
    has_base_turnaround: bool = False       # MBTT applies after trips

    def __post_init__(self):
        if self.rolling_period_days not in (28, 30):
            raise ValueError(
                f"Rolling period must be 28 or 30 days, got {self.rolling_period_days}"
            )

    @property
    def has_consecutive_limits(self) -> bool:
        return self.consecutive_limits is not None


FLEET_PROFILES: Dict[Fleet, FleetProfile] = {
    Fleet.NARROWBODY: FleetProfile(
        fleet=Fleet.NARROWBODY,
        display_name="A320/B737",
        flight_time_7_days=None,
        flight_time_period=100.0,
        rolling_period_days=28,
        flight_time_365_days=1000.0,
        duty_time_7_days=60.0,
        duty_time_14_days=100.0,
        consecutive_limits=ConsecutiveDutyLimits(),
    ),
    Fleet.WIDEBODY: FleetProfile(
        fleet=Fleet.WIDEBODY,
        display_name="A380/A330/B787",
        flight_time_7_days=30.0,
        flight_time_period=100.0,
        rolling_period_days=30,
        flight_time_365_days=900.0,
        duty_time_7_days=60.0,
        duty_time_14_days=100.0,
        has_base_turnaround=True,
    ),
}

# Aircraft-type spellings accepted in place of the fleet name
_FLEET_ALIASES = {
    "a320/b737": Fleet.NARROWBODY,
    "a320": Fleet.NARROWBODY,
    "b737": Fleet.NARROWBODY,
    "a380/a330/b787": Fleet.WIDEBODY,
    "a380": Fleet.WIDEBODY,
    "a330": Fleet.WIDEBODY,
    "b787": Fleet.WIDEBODY,
}


def resolve_fleet(identifier: Union[Fleet, str]) -> Fleet:
    """Map a fleet name or aircraft type to a Fleet; ConfigurationError if unknown"""
    if isinstance(identifier, Fleet):
        return identifier
    key = str(identifier).strip().lower()
    try:
        return Fleet(key)
    except ValueError:
        pass
    if key in _FLEET_ALIASES:
        return _FLEET_ALIASES[key]
    raise ConfigurationError(f"Unknown fleet identifier: {identifier!r}")


def get_fleet_profile(identifier: Union[Fleet, str]) -> FleetProfile:
    return FLEET_PROFILES[resolve_fleet(identifier)]


def resolve_crew_complement(value: Union[CrewComplement, int, str]) -> CrewComplement:
    """Accepts 2, 3, 4 (as int or str) or a CrewComplement"""
    if isinstance(value, CrewComplement):
        return value
    try:
        return CrewComplement(int(value))
    except (TypeError, ValueError):
        raise ConfigurationError(f"Unknown crew complement: {value!r}") from None


def resolve_timezone(name: str) -> pytz.BaseTzInfo:
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise ConfigurationError(f"Unknown timezone identifier: {name!r}") from None


@dataclass
class FRMSConfig:
    """
    Caller-supplied configuration, threaded explicitly into every evaluation.

    Nothing here is looked up internally: the home base timezone, fleet,
    default limit type and warning threshold all come from the caller.
    """
    home_base: str
    home_base_timezone: str
    fleet: Union[Fleet, str] = Fleet.NARROWBODY
    default_limit_type: LimitType = LimitType.OPERATIONAL
    warning_threshold: float = 0.9

    def __post_init__(self):
        self.fleet = resolve_fleet(self.fleet)
        self.tz = resolve_timezone(self.home_base_timezone)
        if isinstance(self.default_limit_type, str):
            try:
                self.default_limit_type = LimitType(self.default_limit_type)
            except ValueError:
                raise ConfigurationError(
                    f"Unknown limit type: {self.default_limit_type!r}"
                ) from None
        if not 0.0 < self.warning_threshold <= 1.0:
            raise ConfigurationError(
                f"Warning threshold must be in (0, 1], got {self.warning_threshold}"
            )

    @property
    def fleet_profile(self) -> FleetProfile:
        return FLEET_PROFILES[self.fleet]

    @classmethod
    def narrowbody(cls, home_base: str = "SYD", home_base_timezone: str = "Australia/Sydney", **kwargs):
        return cls(home_base, home_base_timezone, fleet=Fleet.NARROWBODY, **kwargs)

    @classmethod
    def widebody(cls, home_base: str = "SYD", home_base_timezone: str = "Australia/Sydney", **kwargs):
        return cls(home_base, home_base_timezone, fleet=Fleet.WIDEBODY, **kwargs)

    @classmethod
    def planning(cls, home_base: str, home_base_timezone: str, fleet: Union[Fleet, str]):
        """Rostering configuration: planning limits and the standard 90% warning"""
        return cls(home_base, home_base_timezone, fleet=fleet,
                   default_limit_type=LimitType.PLANNING)
