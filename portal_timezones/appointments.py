"""
Appointment time rendering for the patient portal.

Appointment rows store start_at/end_at as UTC ISO strings. The helpers here
render them in a client's zone with a small set of named presets, and
process whole lists of rows into display-ready DataFrames.
"""

import logging
from dataclasses import asdict, fields
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Optional

import pandas as pd

from portal_timezones.converter import TimeZoneConverter, get_converter
from portal_timezones.exceptions import TimeParsingError
from portal_timezones.models import Appointment

logger = logging.getLogger(__name__)

DATE_FORMATS = MappingProxyType({
    'FULL_DATETIME': '%m/%d/%Y %-I:%M %p',
    'DATE_ONLY': '%m/%d/%Y',
    'TIME_ONLY': '%-I:%M %p',
    'LONG_DATE': '%A, %B %-d, %Y',
    'SHORT_DATETIME': '%-m/%-d/%y %-I:%M %p',
})

DATE_UNAVAILABLE = 'Date unavailable'
TIME_UNAVAILABLE = 'Time unavailable'

APPOINTMENT_COLUMNS = [f.name for f in fields(Appointment)]
DISPLAY_COLUMNS = ['id', 'formatted_date', 'formatted_time', 'type', 'therapist', 'status', 'start_at', 'end_at']


def format_in_client_timezone(
    utc_timestamp: str,
    client_timezone: Optional[str],
    fmt: str = DATE_FORMATS['FULL_DATETIME'],
    converter: Optional[TimeZoneConverter] = None
) -> str:
    """
    Format a UTC timestamp in the client's zone.

    Raises:
        InvalidTimestamp: If the timestamp does not parse
    """
    converter = converter or get_converter()
    return converter.format_utc_in_timezone(utc_timestamp, client_timezone, fmt)


def format_time_in_user_timezone(
    time_str: str,
    user_timezone: Optional[str],
    fmt: str = DATE_FORMATS['TIME_ONLY'],
    date_str: Optional[str] = None,
    converter: Optional[TimeZoneConverter] = None
) -> str:
    """
    Format an 'HH:MM' slot on a date in the user's zone.

    Args:
        time_str: Time of day, 'HH:MM'
        user_timezone: Raw zone label
        fmt: strftime pattern
        date_str: 'YYYY-MM-DD' date of the slot (default: today in the zone)
    """
    converter = converter or get_converter()
    if date_str is None:
        date_str = converter.format_date(converter.today(user_timezone))
    value = converter.create_date_time(date_str, time_str, user_timezone)
    return converter.format_date_time(value, fmt)


class AppointmentTimeFormatter:
    """Render appointment timestamps in one user's zone."""

    def __init__(self, user_timezone: Optional[str], converter: Optional[TimeZoneConverter] = None):
        self.converter = converter or get_converter()
        self.timezone = self.converter.resolve(user_timezone)

    def format(self, utc_timestamp: str, preset: str = 'FULL_DATETIME') -> str:
        """Format with a named preset from DATE_FORMATS, or a raw strftime pattern."""
        fmt = DATE_FORMATS.get(preset, preset)
        return self.converter.format_utc_in_timezone(utc_timestamp, self.timezone, fmt)

    def format_date(self, utc_timestamp: str) -> str:
        return self.format(utc_timestamp, 'DATE_ONLY')

    def format_time(self, utc_timestamp: str) -> str:
        return self.format(utc_timestamp, 'TIME_ONLY')

    def format_long_date(self, utc_timestamp: str) -> str:
        return self.format(utc_timestamp, 'LONG_DATE')

    def format_time_range(self, start_at: str, end_at: str) -> str:
        """'2:00 PM - 3:00 PM'"""
        return f'{self.format_time(start_at)} - {self.format_time(end_at)}'

    def is_today(self, utc_timestamp: str, now: Optional[datetime] = None) -> bool:
        """True if the timestamp falls on the current day in the user's zone."""
        value = self.converter.from_utc(utc_timestamp, self.timezone)
        reference = self.converter.from_datetime(now, self.timezone) if now else self.converter.now(self.timezone)
        return self.converter.is_same_day(value, reference)

    @property
    def time_zone_display(self) -> str:
        return self.converter.get_time_zone_display_name(self.timezone)


def _format_or(value: Any, render: Callable[[str], str], fallback: str, row_id: Any) -> str:
    try:
        return render(value)
    except TimeParsingError as e:
        logger.warning('Error formatting appointment %s: %s', row_id, e)
        return fallback


def appointments_frame(records: list[dict[str, Any]]) -> pd.DataFrame:
    """Load raw rows through Appointment into a frame with APPOINTMENT_COLUMNS."""
    rows = [asdict(Appointment.from_record(record)) for record in records]
    return pd.DataFrame(rows, columns=APPOINTMENT_COLUMNS)


def process_appointment_data(
    records: list[dict[str, Any]],
    client_timezone: Optional[str],
    therapist_name: Optional[str] = None,
    converter: Optional[TimeZoneConverter] = None
) -> pd.DataFrame:
    """
    Process appointment rows into display-ready data.

    Args:
        records: Appointment rows as returned by the database
        client_timezone: Raw zone label from the client profile
        therapist_name: Assigned clinician's professional name, if known
        converter: Converter to use (default: shared converter)

    Returns:
        DataFrame with one row per appointment and DISPLAY_COLUMNS columns.
        Rows whose timestamps fail to parse show 'Date unavailable' /
        'Time unavailable' instead of failing the whole list.
    """
    if not records:
        return pd.DataFrame(columns=DISPLAY_COLUMNS)

    formatter = AppointmentTimeFormatter(client_timezone, converter)
    df = appointments_frame(records)

    df['formatted_date'] = [
        _format_or(start, formatter.format_date, DATE_UNAVAILABLE, row_id)
        for row_id, start in zip(df['id'], df['start_at'])
    ]
    df['formatted_time'] = [
        _format_or(start, formatter.format_time, TIME_UNAVAILABLE, row_id)
        for row_id, start in zip(df['id'], df['start_at'])
    ]

    df['therapist'] = therapist_name or 'Your Therapist'
    df['start_at'] = df['start_at'].fillna('')
    df['end_at'] = df['end_at'].fillna('')

    return df[DISPLAY_COLUMNS]


def select_past_appointments(
    records: list[dict[str, Any]],
    now: Optional[datetime] = None,
    limit: int = 20
) -> pd.DataFrame:
    """
    Select completed appointments, most recent first.

    Keeps rows whose end_at is before now and whose status is not
    'cancelled'. Rows with unparseable end_at are dropped.

    Args:
        records: Appointment rows
        now: Reference instant (default: current UTC time)
        limit: Maximum number of rows returned
    """
    df = appointments_frame(records)
    if df.empty:
        return df

    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    reference = pd.Timestamp(now).tz_convert('UTC')

    end_at = pd.to_datetime(df['end_at'], utc=True, errors='coerce', format='ISO8601')
    start_at = pd.to_datetime(df['start_at'], utc=True, errors='coerce', format='ISO8601')
    mask = (end_at < reference) & (df['status'] != 'cancelled')

    past = df[mask].copy()
    past['_start'] = start_at[mask]
    past = past.sort_values(by='_start', ascending=False, na_position='last')
    past = past.drop(columns=['_start']).head(limit).reset_index(drop=True)

    return past
