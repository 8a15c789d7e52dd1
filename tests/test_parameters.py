"""
test_parameters.py
==================

Fleet profiles and caller-supplied configuration.

Run: python -m pytest tests/test_parameters.py -v
"""

import pytest

from frms.core.errors import ConfigurationError
from frms.core.parameters import (
    FLEET_PROFILES, FleetProfile, FRMSConfig, get_fleet_profile, resolve_crew_complement,
    resolve_fleet, resolve_timezone,
)
from frms.models.data_models import CrewComplement, Fleet, LimitType


class TestFleetProfiles:

    def test_narrowbody_limits(self):
        profile = FLEET_PROFILES[Fleet.NARROWBODY]
        assert profile.flight_time_7_days is None
        assert profile.flight_time_period == 100
        assert profile.rolling_period_days == 28
        assert profile.flight_time_365_days == 1000
        assert profile.has_consecutive_limits
        assert profile.consecutive_limits.max_consecutive_duties == 6
        assert profile.consecutive_limits.max_duty_days_in_11_days == 9
        assert not profile.has_base_turnaround

    def test_widebody_limits(self):
        profile = FLEET_PROFILES[Fleet.WIDEBODY]
        assert profile.flight_time_7_days == 30
        assert profile.rolling_period_days == 30
        assert profile.flight_time_365_days == 900
        assert not profile.has_consecutive_limits
        assert profile.has_base_turnaround

    def test_shared_duty_limits(self):
        for profile in FLEET_PROFILES.values():
            assert profile.duty_time_7_days == 60
            assert profile.duty_time_14_days == 100

    def test_rolling_period_must_be_28_or_30(self):
        with pytest.raises(ValueError):
            FleetProfile(Fleet.NARROWBODY, "test", None, 100.0, 31, 1000.0)


class TestResolution:

    @pytest.mark.parametrize('identifier,expected', [
        (Fleet.WIDEBODY, Fleet.WIDEBODY),
        ('narrowbody', Fleet.NARROWBODY),
        ('A320', Fleet.NARROWBODY),
        (' b737 ', Fleet.NARROWBODY),
        ('A380/A330/B787', Fleet.WIDEBODY),
        ('b787', Fleet.WIDEBODY),
    ])
    def test_fleet_aliases(self, identifier, expected):
        assert resolve_fleet(identifier) == expected

    def test_unknown_fleet(self):
        with pytest.raises(ConfigurationError):
            resolve_fleet('dash8')

    def test_get_fleet_profile(self):
        assert get_fleet_profile('a330').display_name == "A380/A330/B787"

    @pytest.mark.parametrize('value', [3, '3', CrewComplement.THREE_PILOT])
    def test_crew_complement(self, value):
        assert resolve_crew_complement(value) == CrewComplement.THREE_PILOT

    @pytest.mark.parametrize('value', [5, 'two', None])
    def test_unknown_crew_complement(self, value):
        with pytest.raises(ConfigurationError):
            resolve_crew_complement(value)

    def test_timezone(self):
        assert resolve_timezone('Australia/Sydney').zone == 'Australia/Sydney'
        with pytest.raises(ConfigurationError):
            resolve_timezone('Nowhere/Special')


class TestFRMSConfig:

    def test_defaults(self):
        config = FRMSConfig('SYD', 'Australia/Sydney')
        assert config.fleet == Fleet.NARROWBODY
        assert config.default_limit_type == LimitType.OPERATIONAL
        assert config.warning_threshold == 0.9
        assert config.fleet_profile is FLEET_PROFILES[Fleet.NARROWBODY]

    def test_string_inputs_resolved(self):
        config = FRMSConfig('LAX', 'America/Los_Angeles', fleet='b787',
                            default_limit_type='planning')
        assert config.fleet == Fleet.WIDEBODY
        assert config.default_limit_type == LimitType.PLANNING
        assert config.tz.zone == 'America/Los_Angeles'

    def test_planning_preset(self):
        config = FRMSConfig.planning('MEL', 'Australia/Melbourne', 'a320')
        assert config.default_limit_type == LimitType.PLANNING
        assert config.fleet == Fleet.NARROWBODY

    def test_widebody_preset(self):
        assert FRMSConfig.widebody().fleet_profile.rolling_period_days == 30

    @pytest.mark.parametrize('kwargs', [
        {'home_base_timezone': 'Not/AZone'},
        {'fleet': 'concorde'},
        {'default_limit_type': 'rostered'},
        {'warning_threshold': 0.0},
        {'warning_threshold': 1.5},
    ])
    def test_invalid_configuration_fails_fast(self, kwargs):
        values = {'home_base': 'SYD', 'home_base_timezone': 'Australia/Sydney'}
        values.update(kwargs)
        with pytest.raises(ConfigurationError):
            FRMSConfig(**values)
