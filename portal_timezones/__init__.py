"""
Portal Timezones Package

Timezone normalization and appointment-time conversion for the patient portal.
"""

import logging

from portal_timezones.appointments import (
    DATE_FORMATS,
    AppointmentTimeFormatter,
    appointments_frame,
    format_in_client_timezone,
    format_time_in_user_timezone,
    process_appointment_data,
    select_past_appointments,
)
from portal_timezones.config_loader import TimeZoneSettings, load_config
from portal_timezones.converter import TimeZoneConverter, get_converter
from portal_timezones.exceptions import (
    InvalidDateTimeFormat,
    InvalidDateTimeValue,
    InvalidTimestamp,
    TimeParsingError,
    TimeZoneError,
    UnresolvableTimeZone,
)
from portal_timezones.models import Appointment, ConvertedTime, WallClockFields
from portal_timezones.normalizer import (
    DEFAULT_TIMEZONE,
    ensure_iana_timezone,
    get_effective_client_timezone,
    is_valid_iana_timezone,
    normalize_timezone,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
__all__ = [
    "DEFAULT_TIMEZONE",
    "DATE_FORMATS",
    "Appointment",
    "AppointmentTimeFormatter",
    "ConvertedTime",
    "InvalidDateTimeFormat",
    "InvalidDateTimeValue",
    "InvalidTimestamp",
    "TimeParsingError",
    "TimeZoneConverter",
    "TimeZoneError",
    "TimeZoneSettings",
    "UnresolvableTimeZone",
    "WallClockFields",
    "appointments_frame",
    "ensure_iana_timezone",
    "format_in_client_timezone",
    "format_time_in_user_timezone",
    "get_converter",
    "get_effective_client_timezone",
    "is_valid_iana_timezone",
    "load_config",
    "normalize_timezone",
    "process_appointment_data",
    "select_past_appointments",
]
