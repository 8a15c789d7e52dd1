"""
Core Data Models for the FRMS Compliance Engine
===============================================

Duty records, derived daily summaries, cumulative totals and the result
types returned by the evaluators.

All instants are timezone-aware UTC datetimes. Local (home base) time is
only ever used for classification; duty time arithmetic stays in UTC.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from frms.core.parameters import FleetProfile


# ============================================================================
# ENUMERATIONS
# ============================================================================

class Fleet(Enum):
    """Fleet groupings that share one set of FRMS limits"""
    NARROWBODY = "narrowbody"      # A320 / B737
    WIDEBODY = "widebody"          # A380 / A330 / B787


class CrewComplement(Enum):
    """Number of pilots rostered on the duty"""
    TWO_PILOT = 2
    THREE_PILOT = 3
    FOUR_PILOT = 4

    @property
    def is_augmented(self) -> bool:
        return self.value > 2


class RestFacilityClass(Enum):
    """In-flight rest facility fitted to the aircraft"""
    NONE = "none"
    CLASS_2 = "class2"
    CLASS_1 = "class1"
    MIXED = "mixed"               # one class 1 and one class 2 facility


class DutyType(Enum):
    OPERATING = "operating"
    DEADHEAD = "deadhead"
    STANDBY = "standby"
    SIMULATOR = "simulator"
    GROUND = "ground"


class LocalStartTime(Enum):
    """Home base local sign-on band used by the two-pilot duty tables"""
    EARLY = "early"               # 0500-1459
    AFTERNOON = "afternoon"       # 1500-1959
    NIGHT = "night"               # 2000-0459


class SignOnWindow(Enum):
    """Widebody planning sign-on windows (local time)"""
    W0500_0759 = "0500-0759"
    W0800_1359 = "0800-1359"
    W1400_1559 = "1400-1559"
    W1600_0459 = "1600-0459"


class OperationTimeClass(Enum):
    """Time-of-day characterisation of a whole duty period"""
    DAY = "day"
    LATE_NIGHT = "lateNight"
    BACK_OF_CLOCK = "backOfClock"


class LimitType(Enum):
    """Planning limits apply when rostering, operational limits on the day"""
    PLANNING = "planning"
    OPERATIONAL = "operational"


class RestDirection(Enum):
    PRE_DUTY = "pre-duty"
    POST_DUTY = "post-duty"


class RestDutyKind(Enum):
    """Kind of duty a rest requirement is keyed on"""
    OPERATING = "operating"
    DEADHEAD = "deadhead"


class LateNightRecovery(Enum):
    """Recovery required after a run of late night duties"""
    NO_RESTRICTION = "No restriction"
    CONTINUE_ON_LATE_NIGHTS = "Continue on late night operations"
    REQUIRE_24_HOURS_OFF = "Require at least 24 hours off before day duty"


class ComplianceLevel(Enum):
    COMPLIANT = "compliant"
    WARNING = "warning"
    VIOLATION = "violation"

    @property
    def severity(self) -> int:
        return _LEVEL_SEVERITY[self]


_LEVEL_SEVERITY = {
    ComplianceLevel.COMPLIANT: 0,
    ComplianceLevel.WARNING: 1,
    ComplianceLevel.VIOLATION: 2,
}


class Metric(Enum):
    """Fixed metric set reported for every fleet, in reporting order"""
    FLIGHT_TIME_7_DAYS = "flight_time_7_days"
    FLIGHT_TIME_PERIOD = "flight_time_period"
    FLIGHT_TIME_365_DAYS = "flight_time_365_days"
    DUTY_TIME_7_DAYS = "duty_time_7_days"
    DUTY_TIME_14_DAYS = "duty_time_14_days"
    CONSECUTIVE_DUTIES = "consecutive_duties"
    CONSECUTIVE_EARLY_STARTS = "consecutive_early_starts"
    CONSECUTIVE_LATE_NIGHTS = "consecutive_late_nights"
    DUTY_DAYS_IN_11_DAYS = "duty_days_in_11_days"


# ============================================================================
# DUTY RECORDS
# ============================================================================

@dataclass(frozen=True)
class DutyRecord:
    """
    One duty period as supplied by the storage layer.

    Records are never mutated; a correction replaces the record carrying the
    same duty_id. Optional fields default safely: missing night time is 0 and
    a missing crew complement is None.
    """
    duty_id: str
    date: date                              # calendar date of the duty
    sign_on_utc: datetime
    sign_off_utc: datetime
    duty_type: DutyType = DutyType.OPERATING
    crew_complement: Optional[CrewComplement] = None
    rest_facility: RestFacilityClass = RestFacilityClass.NONE
    flight_hours: float = 0.0
    night_hours: float = 0.0                # flight time in darkness
    sectors: int = 0
    is_international: bool = False

    @property
    def duty_hours(self) -> float:
        """Sign-on to sign-off in decimal hours, measured in UTC"""
        return (self.sign_off_utc - self.sign_on_utc).total_seconds() / 3600

    @property
    def is_deadhead(self) -> bool:
        return self.duty_type == DutyType.DEADHEAD

    @property
    def rest_duty_kind(self) -> RestDutyKind:
        return RestDutyKind.DEADHEAD if self.is_deadhead else RestDutyKind.OPERATING


@dataclass
class DailyDutySummary:
    """
    All duty records that sign on on one home base local date.

    Duty time is the continuous span from the earliest sign-on to the latest
    sign-off of the group, not the sum of the individual durations.
    """
    date: date
    records: List[DutyRecord]
    earliest_local_sign_on: datetime
    operation_time: OperationTimeClass = OperationTimeClass.DAY

    @property
    def earliest_sign_on_utc(self) -> datetime:
        return min(r.sign_on_utc for r in self.records)

    @property
    def latest_sign_off_utc(self) -> datetime:
        return max(r.sign_off_utc for r in self.records)

    @property
    def duty_hours(self) -> float:
        return (self.latest_sign_off_utc - self.earliest_sign_on_utc).total_seconds() / 3600

    @property
    def flight_hours(self) -> float:
        return sum(r.flight_hours for r in self.records)

    @property
    def sectors(self) -> int:
        return sum(r.sectors for r in self.records)

    @property
    def is_early_start(self) -> bool:
        """Earliest local sign-on before 0700"""
        return self.earliest_local_sign_on.hour < 7

    @property
    def is_late_night(self) -> bool:
        return self.operation_time == OperationTimeClass.LATE_NIGHT


# ============================================================================
# AGGREGATES
# ============================================================================

@dataclass(frozen=True)
class CumulativeTotals:
    """Rolling sums and run-length counters as of one home base local date"""
    as_of_date: date
    fleet_profile: 'FleetProfile'

    flight_time_7_days: float = 0.0
    flight_time_period: float = 0.0          # rolling period (28 or 30 days)
    flight_time_365_days: float = 0.0
    duty_time_7_days: float = 0.0
    duty_time_14_days: float = 0.0

    consecutive_duties: int = 0
    consecutive_early_starts: int = 0
    consecutive_late_nights: int = 0
    duty_days_in_11_days: int = 0
    days_off_in_period: int = 0
    late_night_duty_hours_7_days: float = 0.0   # late night and back of clock days only

    @property
    def rolling_period_days(self) -> int:
        return self.fleet_profile.rolling_period_days


# ============================================================================
# COMPLIANCE RESULTS
# ============================================================================

@dataclass(frozen=True)
class ComplianceStatus:
    """Tagged compliance value: compliant, warning(reason) or violation(reason)"""
    level: ComplianceLevel
    reason: Optional[str] = None

    @classmethod
    def compliant(cls) -> 'ComplianceStatus':
        return cls(ComplianceLevel.COMPLIANT)

    @classmethod
    def warning(cls, reason: str) -> 'ComplianceStatus':
        return cls(ComplianceLevel.WARNING, reason)

    @classmethod
    def violation(cls, reason: str) -> 'ComplianceStatus':
        return cls(ComplianceLevel.VIOLATION, reason)

    @property
    def is_compliant(self) -> bool:
        return self.level == ComplianceLevel.COMPLIANT

    @property
    def is_warning(self) -> bool:
        return self.level == ComplianceLevel.WARNING

    @property
    def is_violation(self) -> bool:
        return self.level == ComplianceLevel.VIOLATION


@dataclass(frozen=True)
class ComplianceReport:
    """Per-metric status over the fixed metric set"""
    statuses: Dict[Metric, ComplianceStatus]

    def __getitem__(self, metric: Metric) -> ComplianceStatus:
        return self.statuses[metric]

    def __iter__(self):
        return iter(self.statuses.items())

    @property
    def overall(self) -> ComplianceLevel:
        worst = ComplianceLevel.COMPLIANT
        for status in self.statuses.values():
            if status.level.severity > worst.severity:
                worst = status.level
        return worst

    @property
    def issues(self) -> List[Tuple[Metric, ComplianceStatus]]:
        """Non-compliant metrics, violations first"""
        flagged = [(m, s) for m, s in self.statuses.items() if not s.is_compliant]
        return sorted(flagged, key=lambda item: -item[1].level.severity)


# ============================================================================
# NEXT DUTY
# ============================================================================

@dataclass(frozen=True)
class ProposedDuty:
    """What is known about a duty before it is flown"""
    sign_on_utc: datetime
    crew_complement: CrewComplement = CrewComplement.TWO_PILOT
    rest_facility: RestFacilityClass = RestFacilityClass.NONE
    sectors: int = 1
    scheduled_duty_hours: Optional[float] = None
    darkness_hours: float = 0.0
    single_day_pattern: bool = False        # widebody planning 0800-1359 variant
    relevant_sector: bool = False           # four-pilot sector planned beyond 18 hours


@dataclass(frozen=True)
class FlightDeckLimit:
    """Augmented-crew limit on time spent in the flight deck"""
    continuous_hours: float
    total_hours: Optional[float] = None


@dataclass(frozen=True)
class ReducedRest:
    """A lower minimum rest available when a stated condition is met"""
    hours: float
    condition: str
    requires_local_night: bool = False     # rest must include 2200-0600 local


@dataclass(frozen=True)
class DutyWindow:
    """
    Two-pilot duty ceilings for one sign-on band, by sector count.

    A window is available when the earliest permitted sign-on falls inside it;
    with no preceding rest constraint every window is available.
    """
    start_band: Enum                                     # LocalStartTime or SignOnWindow
    max_duty_by_sectors: Tuple[Tuple[int, float], ...]   # (sectors, max duty hours)
    max_flight_hours: float                              # single sector, no darkness
    is_available: bool = True

    def max_duty(self, sectors: int) -> Optional[float]:
        for count, hours in self.max_duty_by_sectors:
            if count == sectors:
                return hours
        return None


@dataclass(frozen=True)
class SignOnLimit:
    """One row of the limits available to a crew complement (a window or a rest facility)"""
    label: str
    max_duty_hours: float
    max_flight_hours: float
    max_sectors: Optional[int] = None
    sector_limit: Optional[str] = None
    flight_deck_limit: Optional[FlightDeckLimit] = None
    note: str = ""


@dataclass(frozen=True)
class LateNightStatus:
    consecutive_late_nights: int
    max_consecutive_late_nights: int
    duty_hours_in_7_nights: float
    max_duty_hours_in_7_nights: float
    recovery: LateNightRecovery = LateNightRecovery.NO_RESTRICTION

    @property
    def exceeds_duty_hours(self) -> bool:
        return self.duty_hours_in_7_nights > self.max_duty_hours_in_7_nights


@dataclass(frozen=True)
class PatternEndRequirement:
    """Rest owed when the current run of duty days ends"""
    pattern_days: int
    minimum_rest_hours: float
    reason: str


@dataclass
class NextDutyEnvelope:
    """Maximum allowed envelope for the next duty"""
    max_duty_hours: float
    max_flight_hours: float
    max_sectors: Optional[int]              # None = unconstrained
    min_rest_hours: float
    earliest_sign_on_utc: Optional[datetime] = None
    flight_deck_limit: Optional[FlightDeckLimit] = None
    reduced_rest: Tuple[ReducedRest, ...] = ()
    restrictions: List[str] = field(default_factory=list)

    duty_windows: Tuple[DutyWindow, ...] = ()        # two-pilot proposals only
    sign_on_limits: Tuple[SignOnLimit, ...] = ()
    late_night_status: Optional[LateNightStatus] = None
    pattern_end: Optional[PatternEndRequirement] = None

    @property
    def is_compliant(self) -> bool:
        return True


@dataclass(frozen=True)
class NoCompliantEnvelope:
    """No rule row admits the proposed duty; the caller must not roster it"""
    reason: str
    table: Optional[str] = None
    discriminator: Dict[str, object] = field(default_factory=dict)

    @property
    def is_compliant(self) -> bool:
        return False


@dataclass(frozen=True)
class BaseTurnaround:
    """Minimum base turnaround time (rest at home base after a trip)"""
    days_away: int
    credited_flight_hours: float
    local_nights: int = 0
    minimum_hours: Optional[float] = None   # set only when hours, not nights, apply
    reasons: Tuple[str, ...] = ()

    @property
    def description(self) -> str:
        if self.minimum_hours is not None:
            return f"{self.minimum_hours:g} hours"
        noun = "night" if self.local_nights == 1 else "nights"
        return f"{self.local_nights} local {noun}"
