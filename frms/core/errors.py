"""
Engine Errors
=============

Exceptions raised at the engine boundary. Data problems inside duty records
are never raised; they are coerced and logged by the aggregator.
"""


class ConfigurationError(ValueError):
    """Raised when the caller supplies an unknown fleet, crew complement or timezone."""


class NoApplicableRuleError(LookupError):
    """Raised when a rule-table lookup matches no row."""

    def __init__(self, table: str, key: dict):
        self.table = table
        self.key = dict(key)
        described = ', '.join(f"{name}={_describe(value)}" for name, value in self.key.items())
        super().__init__(f"No applicable rule in '{table}' for {described}")


def _describe(value) -> str:
    return str(getattr(value, 'value', value))
