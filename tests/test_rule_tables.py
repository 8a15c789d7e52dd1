"""
test_rule_tables.py
===================

Rule table abstraction and the regulatory tables built on it:
- Part A: Bands, matchers and disjointness checking
- Part B: A320/B737 duty ceilings (FD13 / FD23)
- Part C: Flight time ceiling priority
- Part D: Rest requirements (both fleets)
- Part E: A380/A330/B787 ceilings and facility mapping

Run: python -m pytest tests/test_rule_tables.py -v
"""

import pytest

from frms.core.errors import NoApplicableRuleError
from frms.core.rule_tables import (
    ANY, Band, OneOf, RuleRow, RuleTable,
    AugmentedSeat, CrewRestFacility, FlightTimeCeiling, RestFormula, RestRequirement,
    NARROWBODY_AUGMENTED, NARROWBODY_REST, NARROWBODY_TWO_PILOT, RULE_SETS,
    WIDEBODY_AUGMENTED, WIDEBODY_REST, WIDEBODY_TWO_PILOT,
    resolve_narrowbody_facility, resolve_widebody_facility, select_flight_time_ceiling,
)
from frms.models.data_models import (
    CrewComplement, Fleet, LimitType, LocalStartTime, RestDirection, RestDutyKind,
    RestFacilityClass, SignOnWindow,
)


OP = LimitType.OPERATIONAL
PLAN = LimitType.PLANNING
TWO = CrewComplement.TWO_PILOT
THREE = CrewComplement.THREE_PILOT
FOUR = CrewComplement.FOUR_PILOT


def nb_duty(limit_type, band, sectors):
    return NARROWBODY_TWO_PILOT.lookup(
        limit_type=limit_type, start_band=band, sectors=sectors, single_day_pattern=False,
    ).max_duty_hours


def rest_hours(table, limit_type, crew, duty_hours, flight_hours=0.0,
               direction=RestDirection.POST_DUTY, kind=RestDutyKind.OPERATING):
    requirement = table.lookup(
        limit_type=limit_type, crew_complement=crew, direction=direction,
        duty_kind=kind, duty_hours=duty_hours, flight_hours=flight_hours,
    )
    return requirement.minimum_rest(duty_hours)


# ============================================================================
# PART A: GENERIC TABLE
# ============================================================================

class TestBand:

    def test_at_most_and_more_than_share_no_point(self):
        assert not Band.at_most(12).overlaps(Band.more_than(12))
        assert Band.at_most(12).contains(12)
        assert not Band.more_than(12).contains(12)

    def test_adjacent_closed_intervals_overlap(self):
        assert Band.between(1, 4).overlaps(Band.between(4, 6))

    def test_unbounded_bands(self):
        assert Band.at_least(8).overlaps(Band.more_than(100))
        assert not Band.less_than(8).overlaps(Band.at_least(8))

    def test_describe(self):
        assert str(Band.above(14, 16)) == '> 14 <= 16'
        assert str(Band.exactly(5)) == '5'


class TestRuleTable:

    def test_overlapping_rows_rejected(self):
        with pytest.raises(ValueError, match='overlap'):
            RuleTable('bad', ('crew', 'hours'), [
                RuleRow((TWO, Band.at_most(12)), 'a'),
                RuleRow((ANY, Band.above(10, 14)), 'b'),
            ])

    def test_one_of_overlap_detected(self):
        with pytest.raises(ValueError):
            RuleTable('bad', ('crew',), [
                RuleRow((OneOf(THREE, FOUR),), 'a'),
                RuleRow((FOUR,), 'b'),
            ])

    def test_disjoint_rows_accepted(self):
        table = RuleTable('ok', ('crew', 'hours'), [
            RuleRow((TWO, Band.at_most(12)), 'a'),
            RuleRow((TWO, Band.more_than(12)), 'b'),
            RuleRow((OneOf(THREE, FOUR), ANY), 'c'),
        ])
        assert len(table) == 3
        assert table.lookup(crew=TWO, hours=12) == 'a'
        assert table.lookup(crew=TWO, hours=12.01) == 'b'
        assert table.lookup(crew=FOUR, hours=30) == 'c'

    def test_key_length_must_match_fields(self):
        with pytest.raises(ValueError):
            RuleTable('bad', ('crew', 'hours'), [RuleRow((TWO,), 'a')])

    def test_no_match_raises_with_key(self):
        table = RuleTable('sectors', ('sectors',), [RuleRow((Band.at_most(4),), 'a')])
        with pytest.raises(NoApplicableRuleError) as info:
            table.lookup(sectors=5)
        assert info.value.table == 'sectors'
        assert info.value.key == {'sectors': 5}
        assert table.find(sectors=5) is None

    def test_wrong_field_names(self):
        table = RuleTable('t', ('sectors',), [RuleRow((ANY,), 'a')])
        with pytest.raises(TypeError):
            table.lookup(sector=1)

    def test_all_fleet_tables_are_disjoint(self):
        # Construction would have raised on any overlap
        for rules in RULE_SETS.values():
            assert len(rules.two_pilot) > 0
            assert len(rules.augmented) > 0
            assert len(rules.rest) > 0

    def test_fleet_vocabularies(self):
        narrowbody, widebody = RULE_SETS[Fleet.NARROWBODY], RULE_SETS[Fleet.WIDEBODY]
        assert narrowbody.start_bands == tuple(LocalStartTime)
        assert narrowbody.facility_options == tuple(AugmentedSeat)
        assert widebody.start_bands == tuple(SignOnWindow)
        assert widebody.facility_options == tuple(CrewRestFacility)


# ============================================================================
# PART B: A320/B737 DUTY CEILINGS
# ============================================================================

class TestNarrowbodyTwoPilot:

    @pytest.mark.parametrize('band,sectors,expected', [
        (LocalStartTime.EARLY, 1, 14), (LocalStartTime.EARLY, 4, 14),
        (LocalStartTime.EARLY, 5, 13), (LocalStartTime.EARLY, 6, 12),
        (LocalStartTime.AFTERNOON, 4, 13), (LocalStartTime.AFTERNOON, 5, 12),
        (LocalStartTime.AFTERNOON, 6, 11),
        (LocalStartTime.NIGHT, 4, 12), (LocalStartTime.NIGHT, 5, 12),
        (LocalStartTime.NIGHT, 6, 11),
    ])
    def test_operational(self, band, sectors, expected):
        assert nb_duty(OP, band, sectors) == expected

    @pytest.mark.parametrize('band,sectors,expected', [
        (LocalStartTime.EARLY, 4, 12), (LocalStartTime.EARLY, 6, 11),
        (LocalStartTime.AFTERNOON, 4, 11), (LocalStartTime.AFTERNOON, 5, 10),
        (LocalStartTime.NIGHT, 4, 10), (LocalStartTime.NIGHT, 6, 10),
    ])
    def test_planning(self, band, sectors, expected):
        assert nb_duty(PLAN, band, sectors) == expected

    @pytest.mark.parametrize('limit_type', [OP, PLAN])
    def test_ceilings_never_increase(self, limit_type):
        bands = [LocalStartTime.EARLY, LocalStartTime.AFTERNOON, LocalStartTime.NIGHT]
        for band in bands:
            values = [nb_duty(limit_type, band, s) for s in range(1, 7)]
            assert values == sorted(values, reverse=True)
        for sectors in range(1, 7):
            values = [nb_duty(limit_type, band, sectors) for band in bands]
            assert values == sorted(values, reverse=True)

    def test_seven_sectors_has_no_row(self):
        with pytest.raises(NoApplicableRuleError):
            nb_duty(OP, LocalStartTime.EARLY, 7)

    def test_augmented_sector_cap(self):
        seat = NARROWBODY_AUGMENTED.lookup(
            limit_type=OP, crew_complement=THREE,
            facility=AugmentedSeat.SEPARATE_SCREENED_SEAT)
        assert seat.max_duty_hours == 16
        assert seat.sector_limit(15) == 2
        assert seat.sector_limit(14) is None
        assert seat.sector_limit(None) is None

        passenger = NARROWBODY_AUGMENTED.lookup(
            limit_type=PLAN, crew_complement=FOUR,
            facility=AugmentedSeat.PASSENGER_COMPARTMENT_SEAT)
        assert passenger.max_duty_hours == 14
        assert passenger.sector_limit(15) is None


# ============================================================================
# PART C: FLIGHT TIME PRIORITY
# ============================================================================

class TestFlightTimeCeiling:

    @pytest.mark.parametrize('sectors,darkness,expected', [
        (1, 0.0, 10.5),
        (2, 0.0, 10.0),
        (6, 7.0, 10.0),         # exactly 7 hours is not "more than 7"
        (6, 7.5, 9.5),
        (1, 8.0, 9.5),          # darkness wins over a single sector
    ])
    def test_priority_order(self, sectors, darkness, expected):
        assert select_flight_time_ceiling(sectors, darkness) == expected

    def test_flat_ceiling_ignores_conditions(self):
        flat = FlightTimeCeiling.flat(14)
        assert flat.select(1, 0) == flat.select(3, 9) == 14


# ============================================================================
# PART D: REST REQUIREMENTS
# ============================================================================

class TestRestFormula:

    def test_whole_blocks_round_up(self):
        formula = RestFormula(10, increment_hours=1, block_hours=0.25, overrun_from_hours=11)
        assert formula.evaluate(11.0) == 10
        assert formula.evaluate(11.25) == 11
        assert formula.evaluate(11.26) == 12
        assert formula.evaluate(12.0) == 14

    def test_requirement_needs_hours_or_formula(self):
        with pytest.raises(ValueError):
            RestRequirement()
        with pytest.raises(ValueError):
            RestRequirement(hours=10, formula=RestFormula(10))


class TestNarrowbodyRest:

    @pytest.mark.parametrize('duty,expected', [
        (6.0, 10.0), (10.0, 10.0), (11.0, 11.0), (12.0, 12.0),
        (13.0, 13.5), (14.0, 15.0),
    ])
    def test_two_pilot(self, duty, expected):
        assert rest_hours(NARROWBODY_REST, OP, TWO, duty) == pytest.approx(expected)
        assert rest_hours(NARROWBODY_REST, PLAN, TWO, duty) == pytest.approx(expected)

    @pytest.mark.parametrize('duty,expected', [
        (12.0, 12.0), (16.0, 18.0), (17.0, 24.0), (20.0, 24.0), (22.0, 27.0),
    ])
    def test_augmented(self, duty, expected):
        assert rest_hours(NARROWBODY_REST, OP, THREE, duty) == pytest.approx(expected)

    def test_reduced_rest_only_operational_short_duty(self):
        def reduced(limit_type, duty):
            return NARROWBODY_REST.lookup(
                limit_type=limit_type, crew_complement=TWO,
                direction=RestDirection.POST_DUTY, duty_kind=RestDutyKind.OPERATING,
                duty_hours=duty, flight_hours=0,
            ).reduced

        assert reduced(OP, 9)[0].hours == 9
        assert reduced(OP, 9)[0].requires_local_night
        assert reduced(OP, 11) == ()
        assert reduced(PLAN, 9) == ()


class TestWidebodyRest:

    @pytest.mark.parametrize('duty,flight,expected', [
        (10.0, 8.0, 10),
        (11.0, 9.0, 10),
        (11.25, 8.0, 11),
        (11.5, 8.0, 12),
        (12.0, 8.0, 14),
        (10.0, 9.5, 24),
        (12.5, 8.0, 24),
    ])
    def test_operational_two_pilot_post_duty(self, duty, flight, expected):
        assert rest_hours(WIDEBODY_REST, OP, TWO, duty, flight) == expected

    @pytest.mark.parametrize('crew,duty,expected', [
        (THREE, 16.0, 12), (THREE, 16.5, 24),
        (FOUR, 16.0, 12), (FOUR, 17.0, 24), (FOUR, 19.0, 27), (FOUR, 21.0, 36),
    ])
    def test_operational_augmented_post_duty(self, crew, duty, expected):
        assert rest_hours(WIDEBODY_REST, OP, crew, duty) == expected

    @pytest.mark.parametrize('crew,duty,flight,expected', [
        (TWO, 10.0, 7.5, 11), (TWO, 10.0, 8.0, 22), (TWO, 11.5, 7.0, 22),
        (THREE, 12.0, 8.5, 12), (THREE, 12.0, 9.0, 18), (THREE, 13.0, 9.0, 32),
        (FOUR, 12.0, 9.5, 12), (FOUR, 12.0, 9.6, 18), (FOUR, 15.0, 10.0, 32),
        (FOUR, 17.0, 12.0, 48),
    ])
    def test_planning_post_duty(self, crew, duty, flight, expected):
        assert rest_hours(WIDEBODY_REST, PLAN, crew, duty, flight) == expected

    def test_planning_pre_duty_reduced_options(self):
        requirement = WIDEBODY_REST.lookup(
            limit_type=PLAN, crew_complement=FOUR, direction=RestDirection.PRE_DUTY,
            duty_kind=RestDutyKind.OPERATING, duty_hours=17, flight_hours=12,
        )
        assert requirement.hours == 48
        assert sorted(r.hours for r in requirement.reduced) == [22, 32]

    def test_solely_deadhead_rows_apply_to_any_crew(self):
        for crew in (TWO, THREE, FOUR):
            assert rest_hours(WIDEBODY_REST, PLAN, crew, 10, 0,
                              kind=RestDutyKind.DEADHEAD) == 11
            assert rest_hours(WIDEBODY_REST, PLAN, crew, 14, 0,
                              kind=RestDutyKind.DEADHEAD) == 18


# ============================================================================
# PART E: A380/A330/B787 CEILINGS
# ============================================================================

class TestWidebodyCeilings:

    def test_operational_two_pilot(self):
        ceiling = WIDEBODY_TWO_PILOT.lookup(
            limit_type=OP, start_band=SignOnWindow.W1600_0459, sectors=2,
            single_day_pattern=False)
        assert ceiling.max_duty_hours == 12
        assert ceiling.max_sectors == 4

    @pytest.mark.parametrize('window,pattern,duty,flight', [
        (SignOnWindow.W0500_0759, False, 11, 8),
        (SignOnWindow.W0800_1359, False, 11, 8.5),
        (SignOnWindow.W0800_1359, True, 12, 9.5),
        (SignOnWindow.W1400_1559, True, 11, 8.5),
        (SignOnWindow.W1600_0459, False, 10, 8),
    ])
    def test_planning_two_pilot_windows(self, window, pattern, duty, flight):
        ceiling = WIDEBODY_TWO_PILOT.lookup(
            limit_type=PLAN, start_band=window, sectors=1, single_day_pattern=pattern)
        assert ceiling.max_duty_hours == duty
        assert ceiling.flight_time.select(1) == flight

    @pytest.mark.parametrize('limit_type,crew,facility,expected', [
        (OP, THREE, CrewRestFacility.SEAT_IN_PASSENGER_COMPARTMENT, 14),
        (OP, THREE, CrewRestFacility.CLASS_2, 16),
        (OP, THREE, CrewRestFacility.CLASS_1, 18),
        (OP, FOUR, CrewRestFacility.TWO_CLASS_2, 16),
        (OP, FOUR, CrewRestFacility.ONE_CLASS_1_ONE_CLASS_2, 20),
        (OP, FOUR, CrewRestFacility.TWO_CLASS_1, 20),
        (OP, FOUR, CrewRestFacility.TWO_CLASS_1_RELEVANT_SECTOR, 21),
        (PLAN, THREE, CrewRestFacility.CLASS_2, 12),
        (PLAN, THREE, CrewRestFacility.CLASS_1, 14),
        (PLAN, FOUR, CrewRestFacility.ONE_CLASS_1_ONE_CLASS_2, 17.5),
        (PLAN, FOUR, CrewRestFacility.TWO_CLASS_1, 20),
    ])
    def test_augmented(self, limit_type, crew, facility, expected):
        ceiling = WIDEBODY_AUGMENTED.lookup(
            limit_type=limit_type, crew_complement=crew, facility=facility)
        assert ceiling.max_duty_hours == expected

    def test_flight_deck_limit_on_class_rows(self):
        ceiling = WIDEBODY_AUGMENTED.lookup(
            limit_type=OP, crew_complement=THREE, facility=CrewRestFacility.CLASS_2)
        assert ceiling.flight_deck.continuous_hours == 8
        assert ceiling.flight_deck.total_hours == 14

    def test_planning_seat_in_passenger_compartment_has_no_row(self):
        assert WIDEBODY_AUGMENTED.find(
            limit_type=PLAN, crew_complement=THREE,
            facility=CrewRestFacility.SEAT_IN_PASSENGER_COMPARTMENT) is None

    def test_planning_two_class_1_single_sector_beyond_16(self):
        ceiling = WIDEBODY_AUGMENTED.lookup(
            limit_type=PLAN, crew_complement=FOUR, facility=CrewRestFacility.TWO_CLASS_1)
        assert ceiling.sector_limit(16.5) == 1
        assert ceiling.sector_limit(16) is None


class TestFacilityMapping:

    @pytest.mark.parametrize('facility,expected', [
        (RestFacilityClass.NONE, CrewRestFacility.SEAT_IN_PASSENGER_COMPARTMENT),
        (RestFacilityClass.CLASS_2, CrewRestFacility.CLASS_2),
        (RestFacilityClass.CLASS_1, CrewRestFacility.CLASS_1),
        (RestFacilityClass.MIXED, CrewRestFacility.CLASS_1),
    ])
    def test_widebody_three_pilot(self, facility, expected):
        assert resolve_widebody_facility(THREE, facility) == expected

    @pytest.mark.parametrize('facility,expected', [
        (RestFacilityClass.NONE, CrewRestFacility.SEAT_IN_PASSENGER_COMPARTMENT),
        (RestFacilityClass.CLASS_2, CrewRestFacility.TWO_CLASS_2),
        (RestFacilityClass.CLASS_1, CrewRestFacility.TWO_CLASS_1),
        (RestFacilityClass.MIXED, CrewRestFacility.ONE_CLASS_1_ONE_CLASS_2),
    ])
    def test_widebody_four_pilot(self, facility, expected):
        assert resolve_widebody_facility(FOUR, facility) == expected

    def test_relevant_sector_needs_two_class_1(self):
        assert resolve_widebody_facility(FOUR, RestFacilityClass.CLASS_1, True) == \
            CrewRestFacility.TWO_CLASS_1_RELEVANT_SECTOR
        assert resolve_widebody_facility(FOUR, RestFacilityClass.CLASS_2, True) == \
            CrewRestFacility.TWO_CLASS_2

    def test_narrowbody(self):
        assert resolve_narrowbody_facility(THREE, RestFacilityClass.CLASS_1) == \
            AugmentedSeat.SEPARATE_SCREENED_SEAT
        for facility in (RestFacilityClass.NONE, RestFacilityClass.CLASS_2,
                         RestFacilityClass.MIXED):
            assert resolve_narrowbody_facility(FOUR, facility) == \
                AugmentedSeat.PASSENGER_COMPARTMENT_SEAT

    def test_rule_sets_keyed_by_fleet(self):
        assert RULE_SETS[Fleet.NARROWBODY].two_pilot is NARROWBODY_TWO_PILOT
        assert RULE_SETS[Fleet.WIDEBODY].rest is WIDEBODY_REST
