"""
Error types for timezone resolution and date/time parsing.

Zone resolution never raises: unknown zone labels degrade to the default
zone. Parsing a timestamp, date, or time string does raise, with one of the
TimeParsingError subclasses below.
"""

from typing import Optional


class TimeZoneError(Exception):
    """Base class for all errors raised by portal_timezones."""


class TimeParsingError(TimeZoneError, ValueError):
    """A date, time, or timestamp string could not be turned into an instant."""

    def __init__(self, message: str, value: Optional[str] = None):
        super().__init__(message)
        self.value = value


class InvalidTimestamp(TimeParsingError):
    """An ISO-8601 timestamp does not describe a valid instant."""


class InvalidDateTimeFormat(TimeParsingError):
    """Input does not match the required pattern (e.g. YYYY-MM-DD)."""

    def __init__(self, value: Optional[str], expected: str):
        super().__init__(
            f"Invalid date/time format: {value!r}. Expected format: {expected!r}",
            value,
        )
        self.expected = expected


class InvalidDateTimeValue(TimeParsingError):
    """Input matches its pattern but a field is out of range (month 13, hour 24)."""


class UnresolvableTimeZone(TimeZoneError, ValueError):
    """A configured zone is not a canonical IANA identifier."""

    def __init__(self, value: Optional[str], setting: str):
        super().__init__(
            f"Invalid timezone for {setting}: {value!r}. "
            "Use a canonical IANA identifier such as 'America/Chicago'."
        )
        self.value = value
        self.setting = setting
