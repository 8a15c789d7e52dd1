"""
Regulatory Rule Tables
======================

Immutable lookup tables of flight/duty limits. Every table is a RuleTable:
a list of rows keyed by a discriminator tuple whose components are exact
values, ANY, OneOf(...) or numeric Bands. Rows within one table are checked
for pairwise disjointness when the table is built, so a lookup matches at
most one row.

Tables per fleet (FleetRules):
- two_pilot:  limit type x sign-on band x sector band x single-day pattern
- augmented:  limit type x crew complement x rest facility
- rest:       limit type x crew complement x direction x duty kind
              x preceding duty band x preceding flight time band

References:
    A320/B737: FD13 (planning), FD23 (operational)
    A380/A330/B787: FD3 (planning), FD10 (operational), FD3.4 relevant sectors
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Generic, Iterator, Optional, Sequence, Tuple, TypeVar

from frms.core.errors import NoApplicableRuleError
from frms.core.time_classifier import classify_local_start_time, classify_sign_on_window
from frms.models.data_models import (
    CrewComplement, Fleet, FlightDeckLimit, LimitType, LocalStartTime, ReducedRest,
    RestDirection, RestDutyKind, RestFacilityClass, SignOnWindow,
)

logger = logging.getLogger(__name__)

R = TypeVar('R')


# ============================================================================
# DISCRIMINATOR MATCHERS
# ============================================================================

class _AnyValue:
    """Wildcard discriminator component"""

    def __repr__(self):
        return 'ANY'


ANY = _AnyValue()


class OneOf:
    """Matches any of a fixed set of values"""

    __slots__ = ('values',)

    def __init__(self, *values):
        self.values = frozenset(values)

    def __eq__(self, other):
        return isinstance(other, OneOf) and other.values == self.values

    def __hash__(self):
        return hash(self.values)

    def __repr__(self):
        names = sorted(str(getattr(v, 'value', v)) for v in self.values)
        return f"OneOf({', '.join(names)})"


@dataclass(frozen=True)
class Band:
    """Numeric interval; None on either side means unbounded"""
    low: Optional[float] = None
    high: Optional[float] = None
    low_inclusive: bool = False
    high_inclusive: bool = True

    @classmethod
    def at_most(cls, high: float) -> 'Band':
        return cls(None, high, high_inclusive=True)

    @classmethod
    def less_than(cls, high: float) -> 'Band':
        return cls(None, high, high_inclusive=False)

    @classmethod
    def more_than(cls, low: float) -> 'Band':
        return cls(low, None, low_inclusive=False)

    @classmethod
    def at_least(cls, low: float) -> 'Band':
        return cls(low, None, low_inclusive=True)

    @classmethod
    def above(cls, low: float, up_to: float) -> 'Band':
        """(low, up_to]"""
        return cls(low, up_to, low_inclusive=False, high_inclusive=True)

    @classmethod
    def between(cls, low: float, high: float) -> 'Band':
        """[low, high], used for sector counts"""
        return cls(low, high, low_inclusive=True, high_inclusive=True)

    @classmethod
    def exactly(cls, value: float) -> 'Band':
        return cls.between(value, value)

    def _lower(self) -> Tuple[float, bool]:
        if self.low is None:
            return -math.inf, False
        return self.low, self.low_inclusive

    def _upper(self) -> Tuple[float, bool]:
        if self.high is None:
            return math.inf, False
        return self.high, self.high_inclusive

    def contains(self, value: float) -> bool:
        low, low_inc = self._lower()
        high, high_inc = self._upper()
        above_low = value > low or (low_inc and value == low)
        below_high = value < high or (high_inc and value == high)
        return above_low and below_high

    def overlaps(self, other: 'Band') -> bool:
        (a_low, a_low_inc), (b_low, b_low_inc) = self._lower(), other._lower()
        (a_high, a_high_inc), (b_high, b_high_inc) = self._upper(), other._upper()

        if a_low != b_low:
            low, low_inc = (a_low, a_low_inc) if a_low > b_low else (b_low, b_low_inc)
        else:
            low, low_inc = a_low, a_low_inc and b_low_inc
        if a_high != b_high:
            high, high_inc = (a_high, a_high_inc) if a_high < b_high else (b_high, b_high_inc)
        else:
            high, high_inc = a_high, a_high_inc and b_high_inc

        if low < high:
            return True
        return low == high and low_inc and high_inc

    def __str__(self):
        if self.low is not None and self.high is not None and self.low == self.high:
            return f"{self.low:g}"
        parts = []
        if self.low is not None:
            parts.append(f"{'>=' if self.low_inclusive else '>'} {self.low:g}")
        if self.high is not None:
            parts.append(f"{'<=' if self.high_inclusive else '<'} {self.high:g}")
        return ' '.join(parts) or 'any'


def _component_matches(matcher: Any, value: Any) -> bool:
    if matcher is ANY:
        return True
    if isinstance(matcher, Band):
        return isinstance(value, (int, float)) and matcher.contains(value)
    if isinstance(matcher, OneOf):
        return value in matcher.values
    return matcher == value


def _components_overlap(a: Any, b: Any) -> bool:
    if a is ANY or b is ANY:
        return True
    if isinstance(a, Band) and isinstance(b, Band):
        return a.overlaps(b)
    if isinstance(a, OneOf) and isinstance(b, OneOf):
        return bool(a.values & b.values)
    if isinstance(a, OneOf):
        return _component_matches(a, b)
    if isinstance(b, OneOf) or isinstance(b, Band):
        return _component_matches(b, a)
    if isinstance(a, Band):
        return _component_matches(a, b)
    return a == b


# ============================================================================
# GENERIC TABLE
# ============================================================================

@dataclass(frozen=True)
class RuleRow(Generic[R]):
    key: Tuple[Any, ...]
    result: R
    reference: str = ""


class RuleTable(Generic[R]):
    """
    Disjointness-checked rule table with first-match lookup.

    Lookups are made by field name, e.g.
        table.lookup(limit_type=LimitType.OPERATIONAL, start_band=..., sectors=4)
    """

    def __init__(self, name: str, fields: Sequence[str], rows: Sequence[RuleRow[R]]):
        self.name = name
        self.fields = tuple(fields)
        self.rows = tuple(rows)
        for row in self.rows:
            if len(row.key) != len(self.fields):
                raise ValueError(
                    f"Rule table '{name}': row key {row.key} does not match fields {self.fields}"
                )
        self._check_disjoint()

    def _check_disjoint(self):
        for i, first in enumerate(self.rows):
            for second in self.rows[i + 1:]:
                if all(_components_overlap(a, b) for a, b in zip(first.key, second.key)):
                    raise ValueError(
                        f"Rule table '{self.name}': rows {first.key} and {second.key} overlap"
                    )

    def _values(self, key: Dict[str, Any]) -> Tuple[Any, ...]:
        unknown = set(key) - set(self.fields)
        missing = set(self.fields) - set(key)
        if unknown or missing:
            raise TypeError(
                f"Rule table '{self.name}' expects fields {self.fields}; "
                f"unknown={sorted(unknown)} missing={sorted(missing)}"
            )
        return tuple(key[f] for f in self.fields)

    def find_row(self, **key) -> Optional[RuleRow[R]]:
        values = self._values(key)
        for row in self.rows:
            if all(_component_matches(m, v) for m, v in zip(row.key, values)):
                return row
        return None

    def find(self, **key) -> Optional[R]:
        row = self.find_row(**key)
        return row.result if row is not None else None

    def lookup(self, **key) -> R:
        row = self.find_row(**key)
        if row is None:
            raise NoApplicableRuleError(self.name, key)
        logger.debug(f"{self.name}: matched {row.key} ({row.reference})")
        return row.result

    def __iter__(self) -> Iterator[RuleRow[R]]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)


# ============================================================================
# RESULT ROWS
# ============================================================================

@dataclass(frozen=True)
class FlightTimeCeiling:
    """
    Flight time ceiling chosen by a fixed priority order:
    darkness first, then sector count.
    """
    darkness: float = 9.5
    multi_sector: float = 10.0
    single_sector: float = 10.5
    darkness_threshold_hours: float = 7.0

    @classmethod
    def flat(cls, hours: float) -> 'FlightTimeCeiling':
        return cls(hours, hours, hours)

    def select(self, sectors: int, darkness_hours: float = 0.0) -> float:
        if darkness_hours > self.darkness_threshold_hours:
            return self.darkness
        if sectors > 1:
            return self.multi_sector
        return self.single_sector


STANDARD_FLIGHT_TIME = FlightTimeCeiling()


def select_flight_time_ceiling(sectors: int, darkness_hours: float = 0.0,
                               ceiling: FlightTimeCeiling = STANDARD_FLIGHT_TIME) -> float:
    return ceiling.select(sectors, darkness_hours)


@dataclass(frozen=True)
class SectorRestriction:
    """Sector cap that applies only when scheduled duty exceeds a threshold"""
    duty_threshold_hours: float
    max_sectors: int

    def applies_to(self, scheduled_duty_hours: Optional[float]) -> bool:
        return scheduled_duty_hours is not None and scheduled_duty_hours > self.duty_threshold_hours

    @property
    def description(self) -> str:
        noun = "sector" if self.max_sectors == 1 else "sectors"
        return (f"Max {self.max_sectors} {noun} if scheduled duty exceeds "
                f"{self.duty_threshold_hours:g} hours")


@dataclass(frozen=True)
class DutyCeiling:
    max_duty_hours: float
    flight_time: FlightTimeCeiling = STANDARD_FLIGHT_TIME
    max_sectors: Optional[int] = None
    sector_restriction: Optional[SectorRestriction] = None
    flight_deck: Optional[FlightDeckLimit] = None
    note: str = ""

    def sector_limit(self, scheduled_duty_hours: Optional[float]) -> Optional[int]:
        """Sector cap for a scheduled duty; None means unconstrained"""
        restriction = self.sector_restriction
        if restriction is not None and restriction.applies_to(scheduled_duty_hours):
            if self.max_sectors is None:
                return restriction.max_sectors
            return min(self.max_sectors, restriction.max_sectors)
        return self.max_sectors


@dataclass(frozen=True)
class RestFormula:
    """
    base + increment per block of duty beyond overrun_from_hours.

    whole_blocks counts each started block ("or part thereof");
    at_least_duty makes the rest no shorter than the preceding duty.
    """
    base_hours: float
    increment_hours: float = 0.0
    block_hours: float = 1.0
    overrun_from_hours: float = 0.0
    whole_blocks: bool = True
    at_least_duty: bool = False
    minimum_hours: float = 0.0
    description: str = ""

    def evaluate(self, duty_hours: float) -> float:
        overrun = max(0.0, duty_hours - self.overrun_from_hours)
        blocks = overrun / self.block_hours
        if self.whole_blocks:
            blocks = math.ceil(round(blocks, 6))
        hours = self.base_hours + self.increment_hours * blocks
        if self.at_least_duty:
            hours = max(hours, duty_hours)
        return max(hours, self.minimum_hours)


@dataclass(frozen=True)
class RestRequirement:
    hours: Optional[float] = None
    formula: Optional[RestFormula] = None
    reduced: Tuple[ReducedRest, ...] = ()
    note: str = ""

    def __post_init__(self):
        if (self.hours is None) == (self.formula is None):
            raise ValueError("A rest requirement needs exactly one of hours or formula")

    def minimum_rest(self, duty_hours: float) -> float:
        if self.formula is not None:
            return self.formula.evaluate(duty_hours)
        return self.hours


# ============================================================================
# FACILITY VOCABULARY
# ============================================================================

class AugmentedSeat(Enum):
    """Narrowbody augmented crew rest"""
    SEPARATE_SCREENED_SEAT = "separate screened seat"
    PASSENGER_COMPARTMENT_SEAT = "passenger compartment seat"


class CrewRestFacility(Enum):
    """Widebody augmented crew rest combinations"""
    SEAT_IN_PASSENGER_COMPARTMENT = "seat in passenger compartment"
    CLASS_2 = "class 2"
    CLASS_1 = "class 1"
    TWO_CLASS_2 = "2 x class 2"
    ONE_CLASS_1_ONE_CLASS_2 = "1 x class 1 + 1 x class 2"
    TWO_CLASS_1 = "2 x class 1"
    TWO_CLASS_1_RELEVANT_SECTOR = "2 x class 1 (relevant sector)"


def resolve_narrowbody_facility(crew: CrewComplement, facility: RestFacilityClass,
                                relevant_sector: bool = False) -> AugmentedSeat:
    if facility == RestFacilityClass.CLASS_1:
        return AugmentedSeat.SEPARATE_SCREENED_SEAT
    return AugmentedSeat.PASSENGER_COMPARTMENT_SEAT


_WIDEBODY_THREE_PILOT = {
    RestFacilityClass.NONE: CrewRestFacility.SEAT_IN_PASSENGER_COMPARTMENT,
    RestFacilityClass.CLASS_2: CrewRestFacility.CLASS_2,
    RestFacilityClass.CLASS_1: CrewRestFacility.CLASS_1,
    RestFacilityClass.MIXED: CrewRestFacility.CLASS_1,
}

_WIDEBODY_FOUR_PILOT = {
    RestFacilityClass.NONE: CrewRestFacility.SEAT_IN_PASSENGER_COMPARTMENT,
    RestFacilityClass.CLASS_2: CrewRestFacility.TWO_CLASS_2,
    RestFacilityClass.CLASS_1: CrewRestFacility.TWO_CLASS_1,
    RestFacilityClass.MIXED: CrewRestFacility.ONE_CLASS_1_ONE_CLASS_2,
}


def resolve_widebody_facility(crew: CrewComplement, facility: RestFacilityClass,
                              relevant_sector: bool = False) -> CrewRestFacility:
    if crew == CrewComplement.FOUR_PILOT:
        resolved = _WIDEBODY_FOUR_PILOT[facility]
        if relevant_sector and resolved == CrewRestFacility.TWO_CLASS_1:
            return CrewRestFacility.TWO_CLASS_1_RELEVANT_SECTOR
        return resolved
    return _WIDEBODY_THREE_PILOT[facility]


# ============================================================================
# SHARED FIELD LAYOUTS
# ============================================================================

TWO_PILOT_FIELDS = ('limit_type', 'start_band', 'sectors', 'single_day_pattern')
AUGMENTED_FIELDS = ('limit_type', 'crew_complement', 'facility')
REST_FIELDS = ('limit_type', 'crew_complement', 'direction', 'duty_kind',
               'duty_hours', 'flight_hours')

OP = LimitType.OPERATIONAL
PLAN = LimitType.PLANNING
TWO = CrewComplement.TWO_PILOT
THREE = CrewComplement.THREE_PILOT
FOUR = CrewComplement.FOUR_PILOT
AUGMENTED_CREW = OneOf(THREE, FOUR)
PRE = RestDirection.PRE_DUTY
POST = RestDirection.POST_DUTY
OPERATING = RestDutyKind.OPERATING
DEADHEAD = RestDutyKind.DEADHEAD


# ============================================================================
# A320 / B737 (narrowbody)
# ============================================================================

def _nb_ceiling(hours: float) -> DutyCeiling:
    return DutyCeiling(max_duty_hours=hours, max_sectors=6)


_EARLY, _AFTERNOON, _NIGHT = LocalStartTime.EARLY, LocalStartTime.AFTERNOON, LocalStartTime.NIGHT
_UP_TO_4 = Band.at_most(4)

NARROWBODY_TWO_PILOT = RuleTable('A320/B737 two-pilot duty', TWO_PILOT_FIELDS, [
    # FD23 operational
    RuleRow((OP, _EARLY, _UP_TO_4, ANY), _nb_ceiling(14), "FD23"),
    RuleRow((OP, _EARLY, Band.exactly(5), ANY), _nb_ceiling(13), "FD23"),
    RuleRow((OP, _EARLY, Band.exactly(6), ANY), _nb_ceiling(12), "FD23"),
    RuleRow((OP, _AFTERNOON, _UP_TO_4, ANY), _nb_ceiling(13), "FD23"),
    RuleRow((OP, _AFTERNOON, Band.exactly(5), ANY), _nb_ceiling(12), "FD23"),
    RuleRow((OP, _AFTERNOON, Band.exactly(6), ANY), _nb_ceiling(11), "FD23"),
    RuleRow((OP, _NIGHT, _UP_TO_4, ANY), _nb_ceiling(12), "FD23"),
    RuleRow((OP, _NIGHT, Band.exactly(5), ANY), _nb_ceiling(12), "FD23"),
    RuleRow((OP, _NIGHT, Band.exactly(6), ANY), _nb_ceiling(11), "FD23"),
    # FD13 planning
    RuleRow((PLAN, _EARLY, _UP_TO_4, ANY), _nb_ceiling(12), "FD13"),
    RuleRow((PLAN, _EARLY, Band.between(5, 6), ANY), _nb_ceiling(11), "FD13"),
    RuleRow((PLAN, _AFTERNOON, _UP_TO_4, ANY), _nb_ceiling(11), "FD13"),
    RuleRow((PLAN, _AFTERNOON, Band.between(5, 6), ANY), _nb_ceiling(10), "FD13"),
    RuleRow((PLAN, _NIGHT, _UP_TO_4, ANY), _nb_ceiling(10), "FD13"),
    RuleRow((PLAN, _NIGHT, Band.between(5, 6), ANY), _nb_ceiling(10), "FD13"),
])

_NB_AUGMENTED_FLIGHT = FlightTimeCeiling.flat(10.5)

NARROWBODY_AUGMENTED = RuleTable('A320/B737 augmented duty', AUGMENTED_FIELDS, [
    RuleRow((ANY, AUGMENTED_CREW, AugmentedSeat.SEPARATE_SCREENED_SEAT),
            DutyCeiling(16, _NB_AUGMENTED_FLIGHT,
                        sector_restriction=SectorRestriction(14, 2)), "FD13/FD23"),
    RuleRow((ANY, AUGMENTED_CREW, AugmentedSeat.PASSENGER_COMPARTMENT_SEAT),
            DutyCeiling(14, _NB_AUGMENTED_FLIGHT), "FD13/FD23"),
])

_NB_REST_SHORT = RestFormula(10, at_least_duty=True,
                             description="Preceding duty length, minimum 10 hours")
_NB_REST_LONG = RestFormula(12, increment_hours=1.5, block_hours=1.0, overrun_from_hours=12,
                            whole_blocks=False,
                            description="12 hours + 1.5 hours per hour of duty beyond 12")
_NB_REST_LONG_AUGMENTED = RestFormula(12, increment_hours=1.5, block_hours=1.0,
                                      overrun_from_hours=12, whole_blocks=False,
                                      minimum_hours=24,
                                      description="12 hours + 1.5 hours per hour beyond 12, minimum 24")
_NB_REDUCED = (ReducedRest(9, "previous duty <= 10 hours and rest includes 2200-0600 local",
                           requires_local_night=True),)

NARROWBODY_REST = RuleTable('A320/B737 rest', REST_FIELDS, [
    RuleRow((OP, TWO, ANY, ANY, Band.at_most(10), ANY),
            RestRequirement(formula=_NB_REST_SHORT, reduced=_NB_REDUCED), "FD23"),
    RuleRow((OP, TWO, ANY, ANY, Band.above(10, 12), ANY),
            RestRequirement(formula=_NB_REST_SHORT), "FD23"),
    RuleRow((PLAN, TWO, ANY, ANY, Band.at_most(12), ANY),
            RestRequirement(formula=_NB_REST_SHORT), "FD13"),
    RuleRow((ANY, TWO, ANY, ANY, Band.more_than(12), ANY),
            RestRequirement(formula=_NB_REST_LONG), "FD13/FD23"),
    RuleRow((ANY, AUGMENTED_CREW, ANY, ANY, Band.at_most(12), ANY),
            RestRequirement(formula=_NB_REST_SHORT), "FD13/FD23"),
    RuleRow((ANY, AUGMENTED_CREW, ANY, ANY, Band.above(12, 16), ANY),
            RestRequirement(formula=_NB_REST_LONG), "FD13/FD23"),
    RuleRow((ANY, AUGMENTED_CREW, ANY, ANY, Band.more_than(16), ANY),
            RestRequirement(formula=_NB_REST_LONG_AUGMENTED), "FD13/FD23"),
])


# ============================================================================
# A380 / A330 / B787 (widebody)
# ============================================================================

_FLIGHT_DECK = FlightDeckLimit(continuous_hours=8, total_hours=14)
_ACTIVE_DUTY = FlightDeckLimit(continuous_hours=8)
_FLIGHT_DECK_TIME = FlightTimeCeiling.flat(14)
_SEAT_FLIGHT_TIME = FlightTimeCeiling.flat(8)
_TWO_SECTORS_OVER_14 = SectorRestriction(14, 2)

WIDEBODY_TWO_PILOT = RuleTable('A380/A330/B787 two-pilot duty', TWO_PILOT_FIELDS, [
    RuleRow((OP, ANY, ANY, ANY),
            DutyCeiling(12, max_sectors=4, note="Planned 11 hours, 12 hours with discretion"),
            "FD10.1"),
    RuleRow((PLAN, SignOnWindow.W0500_0759, ANY, ANY),
            DutyCeiling(11, FlightTimeCeiling.flat(8), max_sectors=4,
                        note="1 sector if any sector flight time exceeds 6 hours"), "FD3.1"),
    RuleRow((PLAN, SignOnWindow.W0800_1359, ANY, False),
            DutyCeiling(11, FlightTimeCeiling.flat(8.5), max_sectors=4,
                        note="1 sector if any sector flight time exceeds 6 hours"), "FD3.1"),
    RuleRow((PLAN, SignOnWindow.W0800_1359, ANY, True),
            DutyCeiling(12, FlightTimeCeiling.flat(9.5), max_sectors=4,
                        note="Single day pattern"), "FD3.1"),
    RuleRow((PLAN, SignOnWindow.W1400_1559, ANY, ANY),
            DutyCeiling(11, FlightTimeCeiling.flat(8.5), max_sectors=4,
                        note="1 sector if any sector flight time exceeds 6 hours"), "FD3.1"),
    RuleRow((PLAN, SignOnWindow.W1600_0459, ANY, ANY),
            DutyCeiling(10, FlightTimeCeiling.flat(8), max_sectors=3,
                        note="1 sector if any sector flight time exceeds 6 hours; "
                             "2 if sign-on 2100-0300 local or any sector exceeds 2 hours"),
            "FD3.1"),
])

_F = CrewRestFacility

WIDEBODY_AUGMENTED = RuleTable('A380/A330/B787 augmented duty', AUGMENTED_FIELDS, [
    # FD10.1 operational
    RuleRow((OP, THREE, _F.SEAT_IN_PASSENGER_COMPARTMENT),
            DutyCeiling(14, _SEAT_FLIGHT_TIME, flight_deck=_ACTIVE_DUTY,
                        note="8 consecutive hours of active duty"), "FD10.1"),
    RuleRow((OP, THREE, _F.CLASS_2),
            DutyCeiling(16, _FLIGHT_DECK_TIME, sector_restriction=_TWO_SECTORS_OVER_14,
                        flight_deck=_FLIGHT_DECK), "FD10.1"),
    RuleRow((OP, THREE, _F.CLASS_1),
            DutyCeiling(18, _FLIGHT_DECK_TIME, sector_restriction=_TWO_SECTORS_OVER_14,
                        flight_deck=_FLIGHT_DECK), "FD10.1"),
    RuleRow((OP, FOUR, _F.SEAT_IN_PASSENGER_COMPARTMENT),
            DutyCeiling(14, _SEAT_FLIGHT_TIME, flight_deck=_ACTIVE_DUTY,
                        note="8 consecutive hours of active duty"), "FD10.1"),
    RuleRow((OP, FOUR, _F.TWO_CLASS_2),
            DutyCeiling(16, _FLIGHT_DECK_TIME, sector_restriction=_TWO_SECTORS_OVER_14,
                        flight_deck=_FLIGHT_DECK), "FD10.1"),
    RuleRow((OP, FOUR, _F.ONE_CLASS_1_ONE_CLASS_2),
            DutyCeiling(20, _FLIGHT_DECK_TIME, sector_restriction=_TWO_SECTORS_OVER_14,
                        flight_deck=_FLIGHT_DECK), "FD10.1"),
    RuleRow((OP, FOUR, _F.TWO_CLASS_1),
            DutyCeiling(20, _FLIGHT_DECK_TIME, sector_restriction=_TWO_SECTORS_OVER_14,
                        flight_deck=_FLIGHT_DECK), "FD10.1"),
    RuleRow((ANY, FOUR, _F.TWO_CLASS_1_RELEVANT_SECTOR),
            DutyCeiling(21, _FLIGHT_DECK_TIME, flight_deck=_FLIGHT_DECK,
                        note="A380 and B787 only; relevant sector beyond 18 hours"), "FD3.4"),
    # FD3.1 planning
    RuleRow((PLAN, THREE, _F.CLASS_2),
            DutyCeiling(12, FlightTimeCeiling.flat(8.5), max_sectors=4,
                        sector_restriction=SectorRestriction(11, 3)), "FD3.1"),
    RuleRow((PLAN, THREE, _F.CLASS_1),
            DutyCeiling(14, FlightTimeCeiling.flat(12.5), max_sectors=4,
                        sector_restriction=SectorRestriction(11, 3)), "FD3.1"),
    RuleRow((PLAN, FOUR, _F.TWO_CLASS_2),
            DutyCeiling(16, _FLIGHT_DECK_TIME, sector_restriction=_TWO_SECTORS_OVER_14,
                        flight_deck=_FLIGHT_DECK), "FD3.1"),
    RuleRow((PLAN, FOUR, _F.ONE_CLASS_1_ONE_CLASS_2),
            DutyCeiling(17.5, _FLIGHT_DECK_TIME, sector_restriction=_TWO_SECTORS_OVER_14,
                        flight_deck=_FLIGHT_DECK,
                        note="Higher class of rest facility to the landing crew"), "FD3.1"),
    RuleRow((PLAN, FOUR, _F.TWO_CLASS_1),
            DutyCeiling(20, _FLIGHT_DECK_TIME, sector_restriction=SectorRestriction(16, 1),
                        flight_deck=_FLIGHT_DECK), "FD3.1"),
])

_WB_TWO_PILOT_EXTENSION = RestFormula(
    10, increment_hours=1, block_hours=0.25, overrun_from_hours=11,
    description="10 hours + 1 hour for each 15 minutes or part thereof beyond 11 hours",
)
_DISCRETION_REDUCED = (ReducedRest(
    10, "12 hours rest rostered between the duties, first duty <= 11 hours "
        "and both duties total <= 24 hours"),)
_PAX_TO_BASE = "operate then pax to base or posting"
_ACCLIMATED = "acclimated crew"
_WEST_COAST = "within West Coast North America"
_HOME_BASE_SHORT_DUTY = "next duty is to home base or posting, augmented crew, duty < 5 hours"


def _fixed(hours: float, *reduced: ReducedRest, note: str = "") -> RestRequirement:
    return RestRequirement(hours=hours, reduced=tuple(reduced), note=note)


WIDEBODY_REST = RuleTable('A380/A330/B787 rest', REST_FIELDS, [
    # FD10.1 operational, two pilot
    RuleRow((OP, TWO, PRE, ANY, Band.at_most(11), ANY), _fixed(10), "FD10.1"),
    RuleRow((OP, TWO, PRE, ANY, Band.more_than(11), ANY), _fixed(12), "FD10.1"),
    RuleRow((OP, TWO, POST, ANY, Band.at_most(11), Band.at_most(9)), _fixed(10), "FD10.1"),
    RuleRow((OP, TWO, POST, ANY, Band.above(11, 12), Band.at_most(9)),
            RestRequirement(formula=_WB_TWO_PILOT_EXTENSION,
                            note="12 hours if the next duty is solely deadheading"), "FD10.1"),
    RuleRow((OP, TWO, POST, ANY, Band.at_most(12), Band.more_than(9)), _fixed(24), "FD10.1"),
    RuleRow((OP, TWO, POST, ANY, Band.more_than(12), ANY), _fixed(24), "FD10.1"),
    # FD10.1 operational, three pilot
    RuleRow((OP, THREE, PRE, ANY, ANY, ANY), _fixed(12, *_DISCRETION_REDUCED), "FD10.1"),
    RuleRow((OP, THREE, POST, ANY, Band.at_most(16), ANY), _fixed(12), "FD10.1"),
    RuleRow((OP, THREE, POST, ANY, Band.more_than(16), ANY), _fixed(24), "FD10.1"),
    # FD10.1 operational, four pilot
    RuleRow((OP, FOUR, PRE, ANY, Band.at_most(18), ANY), _fixed(12, *_DISCRETION_REDUCED), "FD10.1"),
    RuleRow((OP, FOUR, PRE, ANY, Band.more_than(18), ANY),
            _fixed(22, note="Relevant sector"), "FD3.4"),
    RuleRow((OP, FOUR, POST, ANY, Band.at_most(16), ANY), _fixed(12), "FD10.1"),
    RuleRow((OP, FOUR, POST, ANY, Band.above(16, 18), ANY), _fixed(24), "FD10.1"),
    RuleRow((OP, FOUR, POST, ANY, Band.above(18, 20), ANY),
            _fixed(27, note="Relevant sector; 36 hours when captain and first officer are both affected"),
            "FD3.4"),
    RuleRow((OP, FOUR, POST, ANY, Band.more_than(20), ANY),
            _fixed(36, note="Relevant sector"), "FD3.4"),

    # FD3.1 planning, two pilot
    RuleRow((PLAN, TWO, PRE, OPERATING, Band.at_most(11), Band.less_than(8)), _fixed(11), "FD3.1"),
    RuleRow((PLAN, TWO, PRE, OPERATING, Band.at_most(11), Band.at_least(8)), _fixed(22), "FD3.1"),
    RuleRow((PLAN, TWO, PRE, OPERATING, Band.more_than(11), ANY),
            _fixed(22, ReducedRest(11, _PAX_TO_BASE)), "FD3.1"),
    RuleRow((PLAN, TWO, POST, OPERATING, Band.at_most(11), Band.less_than(8)), _fixed(11), "FD3.1"),
    RuleRow((PLAN, TWO, POST, OPERATING, Band.at_most(11), Band.at_least(8)), _fixed(22), "FD3.1"),
    RuleRow((PLAN, TWO, POST, OPERATING, Band.more_than(11), ANY), _fixed(22), "FD3.1"),
    # FD3.1 planning, three pilot
    RuleRow((PLAN, THREE, PRE, OPERATING, Band.at_most(12), ANY), _fixed(12), "FD3.1"),
    RuleRow((PLAN, THREE, PRE, OPERATING, Band.more_than(12), ANY),
            _fixed(22, ReducedRest(12, _PAX_TO_BASE)), "FD3.1"),
    RuleRow((PLAN, THREE, POST, OPERATING, Band.at_most(12), Band.less_than(9)), _fixed(12), "FD3.1"),
    RuleRow((PLAN, THREE, POST, OPERATING, Band.at_most(12), Band.at_least(9)), _fixed(18), "FD3.1"),
    RuleRow((PLAN, THREE, POST, OPERATING, Band.more_than(12), ANY),
            _fixed(32, ReducedRest(22, _ACCLIMATED)), "FD3.1"),
    # FD3.1 planning, four pilot
    RuleRow((PLAN, FOUR, PRE, OPERATING, Band.at_most(14), ANY), _fixed(12), "FD3.1"),
    RuleRow((PLAN, FOUR, PRE, OPERATING, Band.above(14, 16), ANY),
            _fixed(22, ReducedRest(12, _PAX_TO_BASE)), "FD3.1"),
    RuleRow((PLAN, FOUR, PRE, OPERATING, Band.more_than(16), ANY),
            _fixed(48, ReducedRest(32, _WEST_COAST),
                   ReducedRest(22, "prior duty was deadheading")), "FD3.1"),
    RuleRow((PLAN, FOUR, POST, OPERATING, Band.at_most(12), Band.at_most(9.5)), _fixed(12), "FD3.1"),
    RuleRow((PLAN, FOUR, POST, OPERATING, Band.at_most(12), Band.more_than(9.5)), _fixed(18), "FD3.1"),
    RuleRow((PLAN, FOUR, POST, OPERATING, Band.above(12, 14), ANY),
            _fixed(32, ReducedRest(22, f"{_ACCLIMATED}, between two four-pilot duties, "
                                       f"or {_HOME_BASE_SHORT_DUTY}")), "FD3.1"),
    RuleRow((PLAN, FOUR, POST, OPERATING, Band.above(14, 16), ANY),
            _fixed(32, ReducedRest(22, f"{_ACCLIMATED} or {_HOME_BASE_SHORT_DUTY}")), "FD3.1"),
    RuleRow((PLAN, FOUR, POST, OPERATING, Band.more_than(16), ANY),
            _fixed(48, ReducedRest(32, _WEST_COAST),
                   ReducedRest(22, _HOME_BASE_SHORT_DUTY)), "FD3.1"),
    # FD3.1 planning, solely deadheading (any crew complement)
    RuleRow((PLAN, ANY, PRE, DEADHEAD, Band.at_most(12), ANY), _fixed(11), "FD3.1"),
    RuleRow((PLAN, ANY, PRE, DEADHEAD, Band.more_than(12), ANY),
            _fixed(18, ReducedRest(12, "pax to base or posting")), "FD3.1"),
    RuleRow((PLAN, ANY, POST, DEADHEAD, Band.at_most(12), ANY), _fixed(11), "FD3.1"),
    RuleRow((PLAN, ANY, POST, DEADHEAD, Band.more_than(12), ANY), _fixed(18), "FD3.1"),
])


# ============================================================================
# FLEET RULE SETS
# ============================================================================

@dataclass(frozen=True)
class FleetRules:
    """All rule tables for one fleet plus the classifiers that key them"""
    fleet: Fleet
    two_pilot: RuleTable[DutyCeiling]
    augmented: RuleTable[DutyCeiling]
    rest: RuleTable[RestRequirement]
    start_band: Callable[[datetime, Any], Enum]
    resolve_facility: Callable[[CrewComplement, RestFacilityClass, bool], Enum]
    start_bands: Tuple[Enum, ...] = ()          # every value start_band can return
    facility_options: Tuple[Enum, ...] = ()     # every value resolve_facility can return


RULE_SETS: Dict[Fleet, FleetRules] = {
    Fleet.NARROWBODY: FleetRules(
        fleet=Fleet.NARROWBODY,
        two_pilot=NARROWBODY_TWO_PILOT,
        augmented=NARROWBODY_AUGMENTED,
        rest=NARROWBODY_REST,
        start_band=classify_local_start_time,
        resolve_facility=resolve_narrowbody_facility,
        start_bands=tuple(LocalStartTime),
        facility_options=tuple(AugmentedSeat),
    ),
    Fleet.WIDEBODY: FleetRules(
        fleet=Fleet.WIDEBODY,
        two_pilot=WIDEBODY_TWO_PILOT,
        augmented=WIDEBODY_AUGMENTED,
        rest=WIDEBODY_REST,
        start_band=classify_sign_on_window,
        resolve_facility=resolve_widebody_facility,
        start_bands=tuple(SignOnWindow),
        facility_options=tuple(CrewRestFacility),
    ),
}


def get_fleet_rules(fleet: Fleet) -> FleetRules:
    return RULE_SETS[fleet]
