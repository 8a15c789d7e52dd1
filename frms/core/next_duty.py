"""
Next Duty Envelope
==================

Maximum allowed envelope for a proposed next duty:
1. Classify the proposed sign-on (start band for two pilots, rest facility
   for augmented crews)
2. Look up the duty ceiling for the fleet and limit type
3. Select the flight time ceiling (darkness, then sector count)
4. Apply the augmented sector cap when scheduled duty exceeds its threshold
5. Minimum rest from the *preceding* duty's rest requirement row
6. Informational context: the duty windows open from the earliest sign-on,
   every limit row available to the crew complement, late night status and
   the rest owed at the end of a multi-day pattern

A lookup that matches no row, or a proposal that breaks the sector cap, is
reported as NoCompliantEnvelope. It is never relaxed to a base ceiling.

Also here: compliance of a proposed duty against the current totals, and the
minimum base turnaround time (MBTT) after a widebody trip.

References: FD3 / FD9 / FD10 (A380/A330/B787), FD13 / FD23 (A320/B737)
"""

import logging
import math
from datetime import datetime, time, timedelta
from typing import List, Optional, Tuple, Union

from frms.core.aggregator import sanitize_record
from frms.core.errors import ConfigurationError, NoApplicableRuleError
from frms.core.parameters import FleetProfile, FRMSConfig, resolve_crew_complement
from frms.core.rule_tables import ANY, DutyCeiling, FleetRules, RestRequirement, get_fleet_rules
from frms.core.time_classifier import (
    TimezoneLike, as_zone, classify_operation_time_of_day, rest_includes_local_night, to_local,
)
from frms.models.data_models import (
    BaseTurnaround, ComplianceStatus, CrewComplement, CumulativeTotals, DutyRecord,
    DutyWindow, LateNightRecovery, LateNightStatus, LimitType, NextDutyEnvelope,
    NoCompliantEnvelope, OperationTimeClass, PatternEndRequirement, ProposedDuty,
    RestDirection, RestFacilityClass, SignOnLimit,
)

logger = logging.getLogger(__name__)

BACK_OF_CLOCK_EARLIEST_LOCAL = time(10, 0)
LONG_DUTY_HOURS = 12.0
REMAINING_HOURS_NOTE = 20.0
REMAINING_7_DAY_FLIGHT_NOTE = 10.0
RELEVANT_SECTOR_HOURS = 18.0
MAX_WINDOW_SECTORS = 6

NextDutyResult = Union[NextDutyEnvelope, NoCompliantEnvelope]


def rest_period(hours: float) -> timedelta:
    """Rest hours as a whole number of minutes, never shorter than required"""
    return timedelta(minutes=math.ceil(hours * 60 - 1e-9))


def _sign_on_limit(label: str, ceiling: DutyCeiling) -> SignOnLimit:
    restriction = ceiling.sector_restriction
    return SignOnLimit(
        label=label,
        max_duty_hours=ceiling.max_duty_hours,
        max_flight_hours=ceiling.flight_time.select(1),
        max_sectors=ceiling.max_sectors,
        sector_limit=restriction.description if restriction is not None else None,
        flight_deck_limit=ceiling.flight_deck,
        note=ceiling.note,
    )


def resolve_rest_facility(value: Union[RestFacilityClass, str, None]) -> RestFacilityClass:
    if value is None:
        return RestFacilityClass.NONE
    if isinstance(value, RestFacilityClass):
        return value
    try:
        return RestFacilityClass(value)
    except ValueError:
        raise ConfigurationError(f"Unknown rest facility class: {value!r}") from None


class NextDutyCalculator:
    """Next duty envelope, proposed duty checks and MBTT for one home base and fleet"""

    def __init__(self, home_base_timezone: TimezoneLike, fleet_profile: FleetProfile,
                 default_limit_type: LimitType = LimitType.OPERATIONAL,
                 rules: Optional[FleetRules] = None,
                 warning_threshold: float = 0.9):
        if not 0.0 < warning_threshold <= 1.0:
            raise ConfigurationError(
                f"Warning threshold must be in (0, 1], got {warning_threshold}"
            )
        self.tz = as_zone(home_base_timezone)
        self.profile = fleet_profile
        self.default_limit_type = default_limit_type
        self.rules = rules or get_fleet_rules(fleet_profile.fleet)
        self.warning_threshold = warning_threshold

    @classmethod
    def from_config(cls, config: FRMSConfig) -> 'NextDutyCalculator':
        return cls(config.tz, config.fleet_profile, config.default_limit_type,
                   warning_threshold=config.warning_threshold)

    # ------------------------------------------------------------------
    # Rule lookups
    # ------------------------------------------------------------------

    def duty_ceiling(self, proposal: ProposedDuty,
                     limit_type: Optional[LimitType] = None) -> DutyCeiling:
        """Raises NoApplicableRuleError when no row admits the proposal"""
        limit_type = limit_type or self.default_limit_type
        crew = resolve_crew_complement(proposal.crew_complement)

        if not crew.is_augmented:
            band = self.rules.start_band(proposal.sign_on_utc, self.tz)
            return self.rules.two_pilot.lookup(
                limit_type=limit_type,
                start_band=band,
                sectors=proposal.sectors,
                single_day_pattern=proposal.single_day_pattern,
            )

        facility = self.rules.resolve_facility(
            crew, resolve_rest_facility(proposal.rest_facility), proposal.relevant_sector,
        )
        return self.rules.augmented.lookup(
            limit_type=limit_type, crew_complement=crew, facility=facility,
        )

    def rest_requirement(self, duty: DutyRecord, limit_type: Optional[LimitType] = None,
                         direction: RestDirection = RestDirection.POST_DUTY) -> RestRequirement:
        """Rest row keyed on the given duty; a missing crew complement is read as two pilots"""
        limit_type = limit_type or self.default_limit_type
        crew = duty.crew_complement or CrewComplement.TWO_PILOT
        return self.rules.rest.lookup(
            limit_type=limit_type,
            crew_complement=crew,
            direction=direction,
            duty_kind=duty.rest_duty_kind,
            duty_hours=duty.duty_hours,
            flight_hours=duty.flight_hours,
        )

    def minimum_rest(self, duty: DutyRecord, limit_type: Optional[LimitType] = None) -> float:
        return self.rest_requirement(duty, limit_type).minimum_rest(duty.duty_hours)

    def earliest_sign_on(self, preceding: DutyRecord, minimum_rest_hours: float) -> datetime:
        """
        Preceding sign-off plus minimum rest (rounded up to the minute); after
        a back-of-clock duty, not before 1000 local.
        """
        earliest = preceding.sign_off_utc + rest_period(minimum_rest_hours)
        time_class = classify_operation_time_of_day(
            preceding.sign_on_utc, preceding.sign_off_utc, self.tz,
        )
        if time_class == OperationTimeClass.BACK_OF_CLOCK:
            local_day = to_local(earliest, self.tz).date()
            ten_am = self.tz.localize(datetime.combine(local_day, BACK_OF_CLOCK_EARLIEST_LOCAL))
            if earliest < ten_am:
                earliest = ten_am.astimezone(earliest.tzinfo)
        return earliest

    # ------------------------------------------------------------------
    # Windows and limit rows
    # ------------------------------------------------------------------

    def duty_windows(self, limit_type: Optional[LimitType] = None,
                     earliest: Optional[datetime] = None) -> Tuple[DutyWindow, ...]:
        """
        Two-pilot ceilings per sign-on band, by sector count.

        Only the band holding the earliest permitted sign-on is available;
        without one every band is.
        """
        limit_type = limit_type or self.default_limit_type
        open_band = self.rules.start_band(earliest, self.tz) if earliest is not None else None

        windows = []
        for band in self.rules.start_bands:
            by_sectors = []
            first = None
            for sectors in range(1, MAX_WINDOW_SECTORS + 1):
                ceiling = self.rules.two_pilot.find(
                    limit_type=limit_type, start_band=band, sectors=sectors,
                    single_day_pattern=False,
                )
                if ceiling is None or (ceiling.max_sectors is not None and sectors > ceiling.max_sectors):
                    break
                first = first or ceiling
                by_sectors.append((sectors, ceiling.max_duty_hours))
            if first is None:
                continue
            windows.append(DutyWindow(
                start_band=band,
                max_duty_by_sectors=tuple(by_sectors),
                max_flight_hours=first.flight_time.select(1),
                is_available=open_band is None or band == open_band,
            ))
        return tuple(windows)

    def sign_on_limits(self, crew_complement: Union[CrewComplement, int, str],
                       limit_type: Optional[LimitType] = None) -> Tuple[SignOnLimit, ...]:
        """Every limit row open to a crew complement: per sign-on band or per rest facility"""
        limit_type = limit_type or self.default_limit_type
        crew = resolve_crew_complement(crew_complement)

        limits = []
        if crew.is_augmented:
            for facility in self.rules.facility_options:
                ceiling = self.rules.augmented.find(
                    limit_type=limit_type, crew_complement=crew, facility=facility,
                )
                if ceiling is not None:
                    limits.append(_sign_on_limit(facility.value, ceiling))
            return tuple(limits)

        table = self.rules.two_pilot
        seen = set()
        for band in self.rules.start_bands:
            for single_day in (False, True):
                row = table.find_row(limit_type=limit_type, start_band=band, sectors=1,
                                     single_day_pattern=single_day)
                if row is None or row.key in seen:
                    continue
                seen.add(row.key)
                key = dict(zip(table.fields, row.key))
                label = "All sign-on times" if key['start_band'] is ANY else band.value
                if key['single_day_pattern'] is True:
                    label += " (single day pattern)"
                limits.append(_sign_on_limit(label, row.result))
        return tuple(limits)

    # ------------------------------------------------------------------
    # Run-length context
    # ------------------------------------------------------------------

    def late_night_status(self, totals: CumulativeTotals) -> Optional[LateNightStatus]:
        """Late night run and recovery; None outside a run or without run-length limits"""
        limits = self.profile.consecutive_limits
        nights = totals.consecutive_late_nights
        if limits is None or nights == 0:
            return None

        if nights >= limits.max_consecutive_late_nights:
            recovery = LateNightRecovery.REQUIRE_24_HOURS_OFF
        elif nights >= limits.late_nights_before_continue_only:
            recovery = LateNightRecovery.CONTINUE_ON_LATE_NIGHTS
        else:
            recovery = LateNightRecovery.NO_RESTRICTION

        return LateNightStatus(
            consecutive_late_nights=nights,
            max_consecutive_late_nights=limits.max_consecutive_late_nights,
            duty_hours_in_7_nights=totals.late_night_duty_hours_7_days,
            max_duty_hours_in_7_nights=limits.max_late_night_duty_hours_7_nights,
            recovery=recovery,
        )

    def pattern_end(self, totals: CumulativeTotals) -> Optional[PatternEndRequirement]:
        limits = self.profile.consecutive_limits
        if limits is None or totals.consecutive_duties < limits.pattern_end_days:
            return None
        return PatternEndRequirement(
            pattern_days=totals.consecutive_duties,
            minimum_rest_hours=limits.pattern_end_rest_hours,
            reason=f"{totals.consecutive_duties} day pattern",
        )

    # ------------------------------------------------------------------
    # Envelope
    # ------------------------------------------------------------------

    def _no_envelope(self, reason: str, table: Optional[str], key: dict,
                     raise_on_failure: bool) -> NoCompliantEnvelope:
        logger.warning(f"No compliant envelope: {reason}")
        if raise_on_failure:
            raise NoApplicableRuleError(table or 'sector cap', key)
        return NoCompliantEnvelope(reason=reason, table=table, discriminator=dict(key))

    def calculate(self, proposal: ProposedDuty, totals: CumulativeTotals,
                  preceding: Optional[DutyRecord] = None,
                  limit_type: Optional[LimitType] = None,
                  raise_on_failure: bool = False) -> NextDutyResult:
        limit_type = limit_type or self.default_limit_type
        restrictions: List[str] = []

        try:
            ceiling = self.duty_ceiling(proposal, limit_type)
        except NoApplicableRuleError as exc:
            if raise_on_failure:
                raise
            return self._no_envelope(str(exc), exc.table, exc.key, False)
        crew = resolve_crew_complement(proposal.crew_complement)

        # Sector cap (hard gate)
        scheduled = proposal.scheduled_duty_hours
        max_sectors = ceiling.sector_limit(scheduled)
        if max_sectors is not None and proposal.sectors > max_sectors:
            reason = f"{proposal.sectors} sectors exceeds the maximum of {max_sectors}"
            if ceiling.sector_restriction is not None and ceiling.sector_restriction.applies_to(scheduled):
                reason += f" for a scheduled duty of {scheduled:g} hours"
            return self._no_envelope(
                reason, None,
                {'sectors': proposal.sectors, 'scheduled_duty_hours': scheduled,
                 'max_sectors': max_sectors},
                raise_on_failure,
            )
        if ceiling.sector_restriction is not None and scheduled is None:
            restrictions.append(ceiling.sector_restriction.description)
        if ceiling.note:
            restrictions.append(ceiling.note)

        max_duty = ceiling.max_duty_hours
        max_flight = ceiling.flight_time.select(proposal.sectors, proposal.darkness_hours)
        if scheduled is not None and scheduled > max_duty:
            restrictions.append(
                f"Scheduled duty of {scheduled:g} hours exceeds the {max_duty:g}-hour limit"
            )

        # Rest after the preceding duty
        min_rest = 0.0
        reduced = ()
        earliest = None
        if preceding is not None:
            try:
                requirement = self.rest_requirement(preceding, limit_type)
            except NoApplicableRuleError as exc:
                if raise_on_failure:
                    raise
                return self._no_envelope(str(exc), exc.table, exc.key, False)

            min_rest = requirement.minimum_rest(preceding.duty_hours)
            reduced = requirement.reduced
            earliest = self.earliest_sign_on(preceding, min_rest)
            if requirement.note:
                restrictions.append(requirement.note)
            if preceding.duty_hours > LONG_DUTY_HOURS:
                restrictions.append("Previous duty exceeded 12 hours")
            if earliest > preceding.sign_off_utc + rest_period(min_rest):
                restrictions.append("Back-of-clock operation: next duty not before 1000 local")
            for option in reduced:
                if option.requires_local_night and rest_includes_local_night(
                        preceding.sign_off_utc, proposal.sign_on_utc, self.tz):
                    restrictions.append(
                        f"Reduced rest of {option.hours:g} hours available: {option.condition}"
                    )
            if proposal.sign_on_utc < earliest:
                restrictions.append(
                    f"Proposed sign-on is before the earliest permitted sign-on "
                    f"{earliest.isoformat()}"
                )

        restrictions.extend(self._run_length_restrictions(totals))
        late_nights = self.late_night_status(totals)
        if late_nights is not None:
            if late_nights.exceeds_duty_hours:
                restrictions.append(
                    f"Exceeded {late_nights.max_duty_hours_in_7_nights:g} duty hours in 7 nights "
                    f"of late night operations"
                )
            if late_nights.recovery != LateNightRecovery.NO_RESTRICTION:
                restrictions.append(late_nights.recovery.value)
        pattern_end = self.pattern_end(totals)
        if pattern_end is not None:
            restrictions.append(
                f"{pattern_end.minimum_rest_hours:g} hours rest required at the end of a "
                f"{pattern_end.reason}"
            )

        # Remaining cumulative allowance
        profile = self.profile
        remaining_period = profile.flight_time_period - totals.flight_time_period
        flight_caps = [max_flight, remaining_period]
        if profile.flight_time_7_days is not None:
            remaining_7 = profile.flight_time_7_days - totals.flight_time_7_days
            flight_caps.append(remaining_7)
            if remaining_7 < REMAINING_7_DAY_FLIGHT_NOTE:
                restrictions.append("Limited by 7-day flight time limit")
        remaining_duty_7 = profile.duty_time_7_days - totals.duty_time_7_days
        remaining_duty_14 = profile.duty_time_14_days - totals.duty_time_14_days

        max_flight = max(0.0, min(flight_caps))
        max_duty = max(0.0, min(max_duty, remaining_duty_7, remaining_duty_14))

        if remaining_period < REMAINING_HOURS_NOTE:
            restrictions.append(f"Limited by {profile.rolling_period_days}-day flight time limit")
        if remaining_duty_7 < REMAINING_HOURS_NOTE:
            restrictions.append("Limited by 7-day duty time limit")

        return NextDutyEnvelope(
            max_duty_hours=max_duty,
            max_flight_hours=max_flight,
            max_sectors=max_sectors,
            min_rest_hours=min_rest,
            earliest_sign_on_utc=earliest,
            flight_deck_limit=ceiling.flight_deck,
            reduced_rest=reduced,
            restrictions=restrictions,
            duty_windows=() if crew.is_augmented else self.duty_windows(limit_type, earliest),
            sign_on_limits=self.sign_on_limits(crew, limit_type),
            late_night_status=late_nights,
            pattern_end=pattern_end,
        )

    def _run_length_restrictions(self, totals: CumulativeTotals) -> List[str]:
        limits = self.profile.consecutive_limits
        if limits is None:
            return []
        notes = []
        if totals.consecutive_duties >= limits.max_consecutive_duties:
            notes.append(f"Maximum {limits.max_consecutive_duties} consecutive duty days reached")
        if totals.duty_days_in_11_days >= limits.max_duty_days_in_11_days:
            notes.append(
                f"Maximum {limits.max_duty_days_in_11_days} duty days in 11-day period reached"
            )
        if totals.consecutive_early_starts >= limits.max_consecutive_early_starts:
            notes.append(
                f"Maximum {limits.max_consecutive_early_starts} consecutive early starts reached"
            )
        if totals.consecutive_late_nights >= limits.max_consecutive_late_nights:
            notes.append(
                f"Maximum {limits.max_consecutive_late_nights} consecutive late nights reached"
            )
        return notes

    # ------------------------------------------------------------------
    # Proposed duty check
    # ------------------------------------------------------------------

    def check_proposed_duty(self, duty: DutyRecord, totals: CumulativeTotals,
                            preceding: Optional[DutyRecord] = None,
                            limit_type: Optional[LimitType] = None,
                            warning_threshold: Optional[float] = None) -> ComplianceStatus:
        """
        Would flying this duty on top of the current totals be compliant?

        Both records are sanitised first, so a sign-off before sign-on counts
        as zero duty. The warning threshold defaults to the calculator's.
        """
        limit_type = limit_type or self.default_limit_type
        if warning_threshold is None:
            warning_threshold = self.warning_threshold
        duty = sanitize_record(duty)
        if preceding is not None:
            preceding = sanitize_record(preceding)
        profile = self.profile
        violations: List[str] = []
        warnings: List[str] = []

        if profile.flight_time_7_days is not None and \
                duty.flight_hours + totals.flight_time_7_days > profile.flight_time_7_days:
            violations.append(f"Would exceed {profile.flight_time_7_days:g} hours in 7 days")
        if duty.flight_hours + totals.flight_time_period > profile.flight_time_period:
            violations.append(
                f"Would exceed {profile.flight_time_period:g} hours in "
                f"{profile.rolling_period_days} days"
            )
        if duty.duty_hours + totals.duty_time_7_days > profile.duty_time_7_days:
            violations.append(f"Would exceed {profile.duty_time_7_days:g} duty hours in 7 days")
        if duty.duty_hours + totals.duty_time_14_days > profile.duty_time_14_days:
            violations.append(f"Would exceed {profile.duty_time_14_days:g} duty hours in 14 days")

        if preceding is not None:
            try:
                required = self.minimum_rest(preceding, limit_type)
            except NoApplicableRuleError as exc:
                violations.append(str(exc))
            else:
                rest = duty.sign_on_utc - preceding.sign_off_utc
                actual = rest.total_seconds() / 3600
                if rest < timedelta(hours=required):
                    violations.append(f"Insufficient rest: {actual:.1f}h (need {required:.1f}h)")

        limits = profile.consecutive_limits
        if limits is not None:
            if totals.consecutive_duties >= limits.max_consecutive_duties:
                violations.append(
                    f"Maximum {limits.max_consecutive_duties} consecutive duty days already reached"
                )
            if totals.duty_days_in_11_days >= limits.max_duty_days_in_11_days:
                violations.append(
                    f"Maximum {limits.max_duty_days_in_11_days} duty days in 11-day period "
                    f"already reached"
                )

        proposal = ProposedDuty(
            sign_on_utc=duty.sign_on_utc,
            crew_complement=duty.crew_complement or CrewComplement.TWO_PILOT,
            rest_facility=duty.rest_facility,
            sectors=max(duty.sectors, 1),
            scheduled_duty_hours=duty.duty_hours,
            darkness_hours=duty.night_hours,
        )
        try:
            ceiling = self.duty_ceiling(proposal, limit_type)
        except NoApplicableRuleError as exc:
            violations.append(str(exc))
        else:
            max_flight = ceiling.flight_time.select(proposal.sectors, proposal.darkness_hours)
            max_sectors = ceiling.sector_limit(proposal.scheduled_duty_hours)
            if duty.duty_hours > ceiling.max_duty_hours:
                violations.append(
                    f"Duty time {duty.duty_hours:.1f}h exceeds max {ceiling.max_duty_hours:.1f}h "
                    f"for {proposal.sectors} sectors"
                )
            elif duty.duty_hours > ceiling.max_duty_hours * warning_threshold:
                warnings.append(
                    f"Duty time approaching limit ({duty.duty_hours:.1f}h of "
                    f"{ceiling.max_duty_hours:.1f}h)"
                )
            if duty.flight_hours > max_flight:
                violations.append(
                    f"Flight time {duty.flight_hours:.1f}h exceeds max {max_flight:.1f}h"
                )
            if max_sectors is not None and proposal.sectors > max_sectors:
                violations.append(f"{proposal.sectors} sectors exceeds the maximum of {max_sectors}")

        if violations:
            return ComplianceStatus.violation("; ".join(violations))
        if warnings:
            return ComplianceStatus.warning("; ".join(warnings))
        return ComplianceStatus.compliant()

    # ------------------------------------------------------------------
    # Minimum base turnaround
    # ------------------------------------------------------------------

    def base_turnaround(self, days_away: int, credited_flight_hours: float,
                        planned_duty_over_18_hours: bool = False) -> Optional[BaseTurnaround]:
        """MBTT after a trip; None for fleets without base turnaround rules"""
        if not self.profile.has_base_turnaround:
            return None
        return calculate_base_turnaround(days_away, credited_flight_hours,
                                         planned_duty_over_18_hours)


def calculate_base_turnaround(days_away: int, credited_flight_hours: float,
                              planned_duty_over_18_hours: bool = False) -> BaseTurnaround:
    """
    Minimum base turnaround time (FD9).

    Days away set the base requirement; credited flight hours can raise the
    number of local nights; a planned duty over 18 hours adds one more night
    (FD3.4.2). Any night-based requirement replaces the 12-hour form.
    """
    if days_away < 1:
        raise ValueError(f"Days away must be at least 1, got {days_away}")

    reasons = []
    minimum_hours = None
    if days_away == 1:
        nights = 0
        minimum_hours = 12.0
        reasons.append("1 day away: 12 hours")
    elif days_away <= 4:
        nights = 1
    elif days_away <= 8:
        nights = 2
    elif days_away <= 12:
        nights = 3
    else:
        nights = 4
    if days_away > 1:
        noun = "night" if nights == 1 else "nights"
        reasons.append(f"{days_away} days away: {nights} local {noun}")

    for threshold, required in ((60, 4), (40, 3), (20, 2)):
        if credited_flight_hours > threshold:
            nights = max(nights, required)
            minimum_hours = None
            reasons.append(f">{threshold} credited flight hours: {required} local nights")
            break

    if planned_duty_over_18_hours:
        nights += 1
        minimum_hours = None
        reasons.append(f"Planned duty >{RELEVANT_SECTOR_HOURS:g} hours: +1 local night")

    return BaseTurnaround(
        days_away=days_away,
        credited_flight_hours=credited_flight_hours,
        local_nights=nights,
        minimum_hours=minimum_hours,
        reasons=tuple(reasons),
    )
