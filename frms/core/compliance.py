"""
FRMS Compliance Evaluation
==========================

Evaluates CumulativeTotals against a FleetProfile and reports one status per
metric over a fixed metric set. Metrics a fleet does not limit (e.g. the
widebody fleet has no consecutive-duty limits) always report compliant, so
callers can iterate the same metrics for every fleet.

Hours:    violation if value > limit, warning if value > limit x threshold
Counters: violation if count >= limit, warning if count >= limit - 1
"""

from typing import Dict, Optional

from frms.core.errors import ConfigurationError
from frms.core.parameters import FleetProfile, FRMSConfig
from frms.models.data_models import (
    ComplianceReport, ComplianceStatus, CumulativeTotals, Metric,
)

DEFAULT_WARNING_THRESHOLD = 0.9


def hours_status(value: float, limit: Optional[float], exceeded: str,
                 approaching: str, warning_threshold: float = DEFAULT_WARNING_THRESHOLD) -> ComplianceStatus:
    if limit is None:
        return ComplianceStatus.compliant()
    if value > limit:
        return ComplianceStatus.violation(exceeded)
    if value > limit * warning_threshold:
        return ComplianceStatus.warning(approaching)
    return ComplianceStatus.compliant()


def counter_status(count: int, limit: Optional[int], reached: str,
                   approaching: str) -> ComplianceStatus:
    """
    The limit is the number of completed instances allowed; reaching it
    forbids a further instance, hence >= rather than >.
    """
    if limit is None:
        return ComplianceStatus.compliant()
    if count >= limit:
        return ComplianceStatus.violation(reached)
    if count >= limit - 1:
        return ComplianceStatus.warning(approaching)
    return ComplianceStatus.compliant()


class ComplianceEvaluator:
    """Per-metric compliance for cumulative totals"""

    def __init__(self, warning_threshold: float = DEFAULT_WARNING_THRESHOLD):
        if not 0.0 < warning_threshold <= 1.0:
            raise ConfigurationError(
                f"Warning threshold must be in (0, 1], got {warning_threshold}"
            )
        self.warning_threshold = warning_threshold

    @classmethod
    def from_config(cls, config: FRMSConfig) -> 'ComplianceEvaluator':
        return cls(config.warning_threshold)

    def _hours(self, value: float, limit: Optional[float], exceeded: str,
               approaching: str) -> ComplianceStatus:
        return hours_status(value, limit, exceeded, approaching, self.warning_threshold)

    def evaluate(self, totals: CumulativeTotals,
                 profile: Optional[FleetProfile] = None) -> ComplianceReport:
        profile = profile or totals.fleet_profile
        period = profile.rolling_period_days
        statuses: Dict[Metric, ComplianceStatus] = {}

        limit = profile.flight_time_7_days
        statuses[Metric.FLIGHT_TIME_7_DAYS] = self._hours(
            totals.flight_time_7_days, limit,
            f"Exceeded {limit:g} hours in 7 days" if limit is not None else "",
            f"Approaching {limit:g}-hour limit" if limit is not None else "",
        )

        limit = profile.flight_time_period
        statuses[Metric.FLIGHT_TIME_PERIOD] = self._hours(
            totals.flight_time_period, limit,
            f"Exceeded {limit:g} hours in {period} days",
            f"Approaching {limit:g}-hour limit",
        )

        limit = profile.flight_time_365_days
        statuses[Metric.FLIGHT_TIME_365_DAYS] = self._hours(
            totals.flight_time_365_days, limit,
            f"Exceeded {limit:g} hours in 365 days",
            f"Approaching {limit:g}-hour limit",
        )

        limit = profile.duty_time_7_days
        statuses[Metric.DUTY_TIME_7_DAYS] = self._hours(
            totals.duty_time_7_days, limit,
            f"Exceeded {limit:g} duty hours in 7 days",
            f"Approaching {limit:g}-hour duty limit",
        )

        limit = profile.duty_time_14_days
        statuses[Metric.DUTY_TIME_14_DAYS] = self._hours(
            totals.duty_time_14_days, limit,
            f"Exceeded {limit:g} duty hours in 14 days",
            f"Approaching {limit:g}-hour duty limit",
        )

        consecutive = profile.consecutive_limits
        if consecutive is None:
            for metric in (Metric.CONSECUTIVE_DUTIES, Metric.CONSECUTIVE_EARLY_STARTS,
                           Metric.CONSECUTIVE_LATE_NIGHTS, Metric.DUTY_DAYS_IN_11_DAYS):
                statuses[metric] = ComplianceStatus.compliant()
            return ComplianceReport(statuses)

        limit = consecutive.max_consecutive_duties
        statuses[Metric.CONSECUTIVE_DUTIES] = counter_status(
            totals.consecutive_duties, limit,
            f"Maximum {limit} consecutive duty days reached",
            f"Approaching {limit}-day consecutive duty limit",
        )
        limit = consecutive.max_consecutive_early_starts
        statuses[Metric.CONSECUTIVE_EARLY_STARTS] = counter_status(
            totals.consecutive_early_starts, limit,
            f"Maximum {limit} consecutive early starts reached",
            f"Approaching {limit} consecutive early start limit",
        )
        limit = consecutive.max_consecutive_late_nights
        statuses[Metric.CONSECUTIVE_LATE_NIGHTS] = counter_status(
            totals.consecutive_late_nights, limit,
            f"Maximum {limit} consecutive late nights reached",
            f"Approaching {limit} consecutive late night limit",
        )
        limit = consecutive.max_duty_days_in_11_days
        statuses[Metric.DUTY_DAYS_IN_11_DAYS] = counter_status(
            totals.duty_days_in_11_days, limit,
            f"Maximum {limit} duty days in 11-day period reached",
            f"Approaching {limit} duty days in 11-day period limit",
        )
        return ComplianceReport(statuses)
