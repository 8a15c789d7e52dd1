"""
FRMS Compliance Engine Components
=================================

Main exports for classification, rule lookup, aggregation, compliance
evaluation and next-duty calculation.
"""

from frms.core.errors import ConfigurationError, NoApplicableRuleError
from frms.core.parameters import (
    ConsecutiveDutyLimits,
    FleetProfile,
    FLEET_PROFILES,
    FRMSConfig,
    get_fleet_profile,
    resolve_crew_complement,
    resolve_fleet,
    resolve_timezone,
)

from frms.core.time_classifier import (
    classify_local_start_time,
    classify_operation_time_of_day,
    classify_sign_on_window,
    rest_includes_local_night,
)
from frms.core.rule_tables import (
    ANY,
    Band,
    OneOf,
    RuleRow,
    RuleTable,
    DutyCeiling,
    FlightTimeCeiling,
    RestFormula,
    RestRequirement,
    FleetRules,
    get_fleet_rules,
    select_flight_time_ceiling,
)

from frms.core.aggregator import RollingAggregator, calculate_cumulative_totals
from frms.core.compliance import ComplianceEvaluator
from frms.core.next_duty import NextDutyCalculator, calculate_base_turnaround, rest_period

__all__ = [
    # Errors
    'ConfigurationError',
    'NoApplicableRuleError',
    # Configuration
    'ConsecutiveDutyLimits',
    'FleetProfile',
    'FLEET_PROFILES',
    'FRMSConfig',
    'get_fleet_profile',
    'resolve_crew_complement',
    'resolve_fleet',
    'resolve_timezone',
    # Time of day
    'classify_local_start_time',
    'classify_operation_time_of_day',
    'classify_sign_on_window',
    'rest_includes_local_night',
    # Rule tables
    'ANY',
    'Band',
    'OneOf',
    'RuleRow',
    'RuleTable',
    'DutyCeiling',
    'FlightTimeCeiling',
    'RestFormula',
    'RestRequirement',
    'FleetRules',
    'get_fleet_rules',
    'select_flight_time_ceiling',
    # Aggregation & evaluation
    'RollingAggregator',
    'calculate_cumulative_totals',
    'ComplianceEvaluator',
    'NextDutyCalculator',
    'calculate_base_turnaround',
    'rest_period',
]
