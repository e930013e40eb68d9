"""
Configuration loader for portal timezone handling.

Supports loading configuration from:
1. config.ini file ([TimeZone] section)
2. Environment variables (for automation/Docker)

Anything not configured falls back to the module constants.
"""

import configparser
import os
from dataclasses import dataclass

from portal_timezones.exceptions import UnresolvableTimeZone
from portal_timezones.normalizer import (
    CLIENT_FALLBACK_TIMEZONE,
    DEFAULT_TIMEZONE,
    is_valid_iana_timezone,
)

SECTION = 'TimeZone'


@dataclass
class TimeZoneSettings:
    """Deployment settings for timezone resolution."""

    default_timezone: str = DEFAULT_TIMEZONE                # Used when a zone label cannot be resolved
    client_fallback_timezone: str = CLIENT_FALLBACK_TIMEZONE  # Last resort for a client's zone
    past_appointment_limit: int = 20                         # Rows shown in past appointments

    def validate(self) -> None:
        """
        Check that configured zones are canonical IANA identifiers.

        Raises:
            UnresolvableTimeZone: If a zone setting is not canonical
            ValueError: If past_appointment_limit is not positive
        """
        for setting in ('default_timezone', 'client_fallback_timezone'):
            value = getattr(self, setting)
            if not is_valid_iana_timezone(value):
                raise UnresolvableTimeZone(value, setting)

        if self.past_appointment_limit < 1:
            raise ValueError(
                f"past_appointment_limit must be at least 1, got {self.past_appointment_limit}"
            )


class ConfigLoader:
    """Load configuration from various sources."""

    def __init__(self, config_file: str = "config.ini"):
        """
        Initialize config loader.

        Args:
            config_file: Path to config file (default: config.ini)
        """
        self.config_file = config_file
        self.config = None

    def load_from_file(self) -> bool:
        """
        Load configuration from INI file.

        Returns:
            True if file was loaded successfully, False otherwise
        """
        if not os.path.exists(self.config_file):
            return False

        self.config = configparser.ConfigParser()
        self.config.read(self.config_file)
        return True

    def get_settings(self) -> TimeZoneSettings:
        """
        Get timezone settings.

        Returns:
            Validated TimeZoneSettings

        Raises:
            UnresolvableTimeZone: If a configured zone is not canonical
            ValueError: If a numeric setting is invalid
        """
        settings = TimeZoneSettings()

        # Try config file first
        if self.config and self.config.has_section(SECTION):
            settings.default_timezone = self.config.get(
                SECTION, 'default_timezone', fallback=DEFAULT_TIMEZONE).strip()
            settings.client_fallback_timezone = self.config.get(
                SECTION, 'client_fallback_timezone', fallback=CLIENT_FALLBACK_TIMEZONE).strip()
            settings.past_appointment_limit = self.config.getint(
                SECTION, 'past_appointment_limit', fallback=20)
            settings.validate()
            return settings

        # Try environment variables
        settings.default_timezone = os.getenv('PORTAL_DEFAULT_TIMEZONE', DEFAULT_TIMEZONE).strip()
        settings.client_fallback_timezone = os.getenv(
            'PORTAL_CLIENT_FALLBACK_TIMEZONE', CLIENT_FALLBACK_TIMEZONE).strip()
        settings.past_appointment_limit = int(os.getenv('PORTAL_PAST_APPOINTMENT_LIMIT', '20'))

        settings.validate()
        return settings


def load_config(config_file: str = "config.ini") -> TimeZoneSettings:
    """
    Convenience function to load timezone settings.

    Args:
        config_file: Path to config file

    Returns:
        TimeZoneSettings

    Raises:
        UnresolvableTimeZone: If a configured zone is not canonical
    """
    loader = ConfigLoader(config_file)
    loader.load_from_file()
    return loader.get_settings()
