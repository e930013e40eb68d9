"""
Date/time construction, conversion, and formatting in canonical zones.

Every zone argument goes through the normalizer first, so callers may pass
whatever label a profile record holds. Parsing problems raise one of the
TimeParsingError subclasses; zone problems never do.

Format patterns are strftime patterns. The ones used across the package:

    %Y-%m-%d          date              2024-03-15
    %H:%M             24-hour time      14:30
    %-I:%M %p         12-hour time      2:30 PM   (glibc/BSD strftime)
    %Y-%m-%dT%H:%M    local ISO         2024-03-15T14:30
    %A, %B %-d, %Y    long date         Friday, March 15, 2024
    %Z                zone abbreviation CDT
"""

import logging
import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

from portal_timezones.exceptions import (
    InvalidDateTimeFormat,
    InvalidDateTimeValue,
    InvalidTimestamp,
)
from portal_timezones.models import ConvertedTime, WallClockFields
from portal_timezones.normalizer import (
    ABBREVIATION_MAX_LENGTH,
    DEFAULT_TIMEZONE,
    TIMEZONE_ALIASES,
    ensure_iana_timezone,
    get_zone_info,
)

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r'^(\d{4})-(\d{2})-(\d{2})$')
TIME_PATTERN = re.compile(r'^(\d{2}):(\d{2})(?::(\d{2}))?$')
LOCAL_DATETIME_PATTERN = re.compile(r'^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2})(?::(\d{2}))?$')


def _normalize(value: datetime) -> datetime:
    """Re-derive wall-clock fields from the absolute instant (fixes times inside a DST gap)."""
    return value.astimezone(timezone.utc).astimezone(value.tzinfo)


def offset_minutes(value: datetime) -> int:
    """UTC offset of an aware datetime, in whole minutes."""
    return int(value.utcoffset().total_seconds() // 60)


def format_utc_offset(minutes: int) -> str:
    """Render an offset in minutes as +HH:MM / -HH:MM."""
    sign = '-' if minutes < 0 else '+'
    hours, mins = divmod(abs(minutes), 60)
    return f'{sign}{hours:02d}:{mins:02d}'


def _display_alias(zone_name: str) -> Optional[str]:
    for alias, zone in TIMEZONE_ALIASES:
        if zone == zone_name and len(alias) > ABBREVIATION_MAX_LENGTH:
            return ' '.join(word[:1].upper() + word[1:] for word in alias.split(' '))
    return None


class TimeZoneConverter:
    """Build, convert, and format aware datetimes for a portal user's zone."""

    DATE_FORMAT = '%Y-%m-%d'
    TIME_FORMAT_24 = '%H:%M'
    TIME_FORMAT_AMPM = '%-I:%M %p'
    LOCAL_DATETIME_FORMAT = '%Y-%m-%dT%H:%M'

    def __init__(self, default_timezone: str = DEFAULT_TIMEZONE):
        """
        Initialize the converter.

        Args:
            default_timezone: Zone used when a label cannot be resolved. Raw
                labels are normalized here; unresolvable ones fall back to
                DEFAULT_TIMEZONE.
        """
        self.default_timezone = ensure_iana_timezone(default_timezone)

    def resolve(self, zone: Optional[str]) -> str:
        """Return the canonical identifier for a raw zone label."""
        return ensure_iana_timezone(zone, self.default_timezone)

    def zone_info(self, zone: Optional[str]) -> ZoneInfo:
        return get_zone_info(zone, self.default_timezone)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def now(self, zone: Optional[str] = None) -> datetime:
        """Return the current instant in the given zone."""
        return datetime.now(self.zone_info(zone))

    def today(self, zone: Optional[str] = None) -> datetime:
        """Return the start of the current day in the given zone."""
        current = self.now(zone)
        return _normalize(current.replace(hour=0, minute=0, second=0, microsecond=0))

    def from_utc(self, utc_string: str, zone: Optional[str] = None) -> datetime:
        """
        Parse an ISO-8601 UTC timestamp and reproject it into a zone.

        A trailing 'Z' is accepted and a string without an offset is read as
        UTC, matching how appointment rows store start_at/end_at.

        Raises:
            InvalidTimestamp: If the string is not a valid instant
        """
        if not isinstance(utc_string, str) or not utc_string.strip():
            raise InvalidTimestamp(f'Invalid UTC timestamp: {utc_string!r}', utc_string)

        text = utc_string.strip()
        if text[-1:] in ('Z', 'z'):
            text = text[:-1] + '+00:00'

        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise InvalidTimestamp(f'Failed to convert UTC time {utc_string!r}: {e}', utc_string) from e

        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)

        return parsed.astimezone(self.zone_info(zone))

    convert_utc_to_local = from_utc

    def from_datetime(self, value: datetime, zone: Optional[str] = None) -> datetime:
        """Reproject a datetime into a zone. Naive values are taken as UTC."""
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(self.zone_info(zone))

    def _parse_date(self, date_str: str) -> tuple:
        match = DATE_PATTERN.match(date_str) if isinstance(date_str, str) else None
        if not match:
            raise InvalidDateTimeFormat(date_str, 'YYYY-MM-DD')
        return tuple(int(part) for part in match.groups())

    def _parse_time(self, time_str: str) -> tuple:
        match = TIME_PATTERN.match(time_str) if isinstance(time_str, str) else None
        if not match:
            raise InvalidDateTimeFormat(time_str, 'HH:MM')
        return int(match.group(1)), int(match.group(2))

    def _build(self, fields: WallClockFields, zone: Optional[str], source: str) -> datetime:
        try:
            return _normalize(fields.to_datetime(self.zone_info(zone)))
        except ValueError as e:
            raise InvalidDateTimeValue(f'Invalid date/time value {source!r}: {e}', source) from e

    def create_date_time(self, date_str: str, time_str: str, zone: Optional[str] = None) -> datetime:
        """
        Combine a 'YYYY-MM-DD' date and an 'HH:MM' time in a zone.

        Seconds in the time ('HH:MM:SS') are accepted and dropped.

        Raises:
            InvalidDateTimeFormat: If either string does not match its pattern
            InvalidDateTimeValue: If a field is out of range
        """
        year, month, day = self._parse_date(date_str)
        hour, minute = self._parse_time(time_str)
        fields = WallClockFields(year, month, day, hour, minute)
        return self._build(fields, zone, f'{date_str} {time_str}')

    def from_date_string(self, date_str: str, zone: Optional[str] = None) -> datetime:
        """Return midnight of a 'YYYY-MM-DD' date in a zone."""
        year, month, day = self._parse_date(date_str)
        return self._build(WallClockFields(year, month, day), zone, date_str)

    def from_time_string(self, time_str: str, zone: Optional[str] = None) -> datetime:
        """Return an 'HH:MM' time on today's date in a zone."""
        hour, minute = self._parse_time(time_str)
        current = self.now(zone)
        fields = WallClockFields(current.year, current.month, current.day, hour, minute)
        return self._build(fields, zone, time_str)

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def is_near_dst_transition(self, value: datetime) -> bool:
        """True if the UTC offset differs one hour before or after the instant."""
        instant = value.astimezone(timezone.utc)
        offsets = {
            offset_minutes(moment.astimezone(value.tzinfo))
            for moment in (instant - timedelta(hours=1), instant, instant + timedelta(hours=1))
        }
        return len(offsets) > 1

    def convert_local_to_utc(self, local_datetime_str: str, zone: Optional[str] = None) -> datetime:
        """
        Convert a local 'YYYY-MM-DDTHH:MM[:SS]' wall-clock string to UTC.

        Times near a DST transition are logged as an advisory and still
        converted. Ambiguous or skipped wall times resolve with fold=0,
        i.e. using the offset in effect before the transition.

        Raises:
            InvalidDateTimeFormat: If the string is not an ISO local date-time
            InvalidDateTimeValue: If a field is out of range
        """
        match = LOCAL_DATETIME_PATTERN.match(local_datetime_str) if isinstance(local_datetime_str, str) else None
        if not match:
            raise InvalidDateTimeFormat(local_datetime_str, 'YYYY-MM-DDTHH:MM')

        year, month, day, hour, minute = (int(part) for part in match.groups()[:5])
        second = int(match.group(6) or 0)
        zone_info = self.zone_info(zone)

        try:
            local = datetime(year, month, day, hour, minute, second, tzinfo=zone_info)
        except ValueError as e:
            raise InvalidDateTimeValue(
                f'Invalid date/time value {local_datetime_str!r}: {e}', local_datetime_str
            ) from e

        if self.is_near_dst_transition(local):
            logger.warning('Local time %s may be in a DST transition period for %s',
                           local_datetime_str, zone_info.key)

        return local.astimezone(timezone.utc)

    def convert_availability_time(
        self,
        time_str: str,
        from_zone: Optional[str],
        to_zone: Optional[str],
        on_date: Optional[date] = None
    ) -> ConvertedTime:
        """
        Reproject a clinician availability slot into a client's zone.

        Args:
            time_str: Slot start as 'HH:MM' in the clinician's zone
            from_zone: Clinician zone
            to_zone: Client zone
            on_date: Calendar date of the slot (default: today in from_zone)

        Returns:
            ConvertedTime with 24-hour and 12-hour renderings
        """
        if on_date is None:
            on_date = self.now(from_zone).date()
        slot = self.create_date_time(on_date.isoformat(), time_str, from_zone)
        client_time = slot.astimezone(self.zone_info(to_zone))
        return ConvertedTime(
            time=client_time.strftime(self.TIME_FORMAT_24),
            formatted_time=client_time.strftime(self.TIME_FORMAT_AMPM),
        )

    # ------------------------------------------------------------------
    # Formatting
    # ------------------------------------------------------------------

    def format_date(self, value: datetime, fmt: str = DATE_FORMAT) -> str:
        return value.strftime(fmt)

    def format_time(self, value: datetime, fmt: str = TIME_FORMAT_AMPM) -> str:
        return value.strftime(fmt)

    def format_time_24(self, value: datetime, fmt: str = TIME_FORMAT_24) -> str:
        return value.strftime(fmt)

    def format_date_time(self, value: datetime, fmt: str) -> str:
        return value.strftime(fmt)

    def format_utc_in_timezone(self, utc_string: str, zone: Optional[str], fmt: str = TIME_FORMAT_AMPM) -> str:
        """Format a stored UTC timestamp in a zone. Raises InvalidTimestamp on bad input."""
        return self.from_utc(utc_string, zone).strftime(fmt)

    def get_time_zone_display_name(self, zone: Optional[str], at: Optional[datetime] = None) -> str:
        """
        Human-friendly label with the current UTC offset.

        Examples: 'Central Time (-05:00)', 'London (+01:00)'.

        Args:
            zone: Raw timezone label
            at: Instant used for the offset (default: now)
        """
        zone_name = self.resolve(zone)
        moment = self.from_datetime(at, zone_name) if at is not None else self.now(zone_name)

        friendly = _display_alias(zone_name)
        if friendly is None:
            friendly = zone_name.split('/')[-1].replace('_', ' ')

        return f'{friendly} ({format_utc_offset(offset_minutes(moment))})'

    def get_time_zone_abbreviation(self, zone: Optional[str], at: Optional[datetime] = None) -> str:
        """Zone abbreviation in effect at an instant (e.g. 'CDT')."""
        zone_name = self.resolve(zone)
        moment = self.from_datetime(at, zone_name) if at is not None else self.now(zone_name)
        return moment.strftime('%Z') or zone_name

    # ------------------------------------------------------------------
    # Calendar helpers
    # ------------------------------------------------------------------

    def start_of_month(self, value: datetime) -> datetime:
        return _normalize(value.replace(day=1, hour=0, minute=0, second=0, microsecond=0))

    def end_of_month(self, value: datetime) -> datetime:
        last = value.replace(day=1) + relativedelta(months=1, days=-1)
        return _normalize(last.replace(hour=23, minute=59, second=59, microsecond=999999))

    def start_of_week(self, value: datetime) -> datetime:
        """Midnight of the ISO week's Monday."""
        monday = value - timedelta(days=value.weekday())
        return _normalize(monday.replace(hour=0, minute=0, second=0, microsecond=0))

    def end_of_week(self, value: datetime) -> datetime:
        """Last microsecond of the ISO week's Sunday."""
        sunday = value + timedelta(days=6 - value.weekday())
        return _normalize(sunday.replace(hour=23, minute=59, second=59, microsecond=999999))

    def each_day_of_interval(self, start: datetime, end: datetime) -> list:
        """One datetime per calendar day from start to end, inclusive, keeping start's wall time."""
        days = []
        step = 0
        current = start
        while current <= end:
            days.append(current)
            step += 1
            current = _normalize(start + timedelta(days=step))
        return days

    def is_same_day(self, first: datetime, second: datetime) -> bool:
        """Same calendar day, compared in the first value's zone."""
        return first.date() == second.astimezone(first.tzinfo).date()

    def add_days(self, value: datetime, days: int) -> datetime:
        """Add calendar days, keeping wall-clock time across DST changes."""
        return _normalize(value + timedelta(days=days))

    def add_months(self, value: datetime, months: int) -> datetime:
        """Add calendar months; the day is clamped to the target month's end."""
        return _normalize(value + relativedelta(months=months))


_default_converter = TimeZoneConverter()


def get_converter() -> TimeZoneConverter:
    """Return the shared converter bound to DEFAULT_TIMEZONE."""
    return _default_converter
