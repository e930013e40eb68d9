"""
Timezone name normalization.

Maps whatever a profile record, the runtime, or a form hands us
("Eastern Time (US & Canada)", "CST", "america/chicago", None) to a
canonical IANA identifier. Resolution never fails: anything we cannot map
resolves to the default zone.
"""

import logging
import os
import re
from functools import lru_cache
from types import MappingProxyType
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError, available_timezones

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = 'America/Chicago'

# Last resort of the client timezone chain (see get_effective_client_timezone)
CLIENT_FALLBACK_TIMEZONE = 'America/New_York'

# Aliases with at most this many characters are abbreviations: they only
# match as whole words and are never used as display names.
ABBREVIATION_MAX_LENGTH = 4

# Inputs shorter than this are never matched against the inside of an alias.
MIN_REVERSE_MATCH_LENGTH = 5

# Ordered: partial matching walks this tuple and the first hit wins.
# Per region: generic label, standard/daylight names, system labels, abbreviations.
TIMEZONE_ALIASES = (
    ('eastern time', 'America/New_York'),
    ('eastern standard time', 'America/New_York'),
    ('eastern standard time (est)', 'America/New_York'),
    ('eastern daylight time', 'America/New_York'),
    ('eastern time (us & canada)', 'America/New_York'),
    ('est', 'America/New_York'),
    ('edt', 'America/New_York'),
    ('et', 'America/New_York'),

    ('central time', 'America/Chicago'),
    ('central standard time', 'America/Chicago'),
    ('central standard time (cst)', 'America/Chicago'),
    ('central daylight time', 'America/Chicago'),
    ('central time (us & canada)', 'America/Chicago'),
    ('cst', 'America/Chicago'),
    ('cdt', 'America/Chicago'),
    ('ct', 'America/Chicago'),

    ('mountain time', 'America/Denver'),
    ('mountain standard time', 'America/Denver'),
    ('mountain standard time (mst)', 'America/Denver'),
    ('mountain daylight time', 'America/Denver'),
    ('mountain time (us & canada)', 'America/Denver'),
    ('mst', 'America/Denver'),
    ('mdt', 'America/Denver'),
    ('mt', 'America/Denver'),

    ('arizona time', 'America/Phoenix'),
    ('arizona', 'America/Phoenix'),

    ('pacific time', 'America/Los_Angeles'),
    ('pacific standard time', 'America/Los_Angeles'),
    ('pacific standard time (pst)', 'America/Los_Angeles'),
    ('pacific daylight time', 'America/Los_Angeles'),
    ('pacific time (us & canada)', 'America/Los_Angeles'),
    ('pst', 'America/Los_Angeles'),
    ('pdt', 'America/Los_Angeles'),
    ('pt', 'America/Los_Angeles'),

    ('alaska time', 'America/Anchorage'),
    ('alaska standard time', 'America/Anchorage'),
    ('alaska daylight time', 'America/Anchorage'),
    ('akst', 'America/Anchorage'),
    ('akdt', 'America/Anchorage'),
    ('ast', 'America/Anchorage'),

    ('hawaii time', 'Pacific/Honolulu'),
    ('hawaii standard time', 'Pacific/Honolulu'),
    ('hawaii-aleutian standard time', 'Pacific/Honolulu'),
    ('hst', 'Pacific/Honolulu'),
)

_ALIAS_LOOKUP = MappingProxyType(dict(TIMEZONE_ALIASES))

# Zones offered in profile forms, in display order.
TIMEZONE_OPTIONS = (
    ('America/New_York', 'Eastern Time (ET)'),
    ('America/Chicago', 'Central Time (CT)'),
    ('America/Denver', 'Mountain Time (MT)'),
    ('America/Phoenix', 'Mountain Time - Arizona (MST)'),
    ('America/Los_Angeles', 'Pacific Time (PT)'),
    ('America/Anchorage', 'Alaska Time (AKT)'),
    ('Pacific/Honolulu', 'Hawaii-Aleutian Time (HST)'),
)


# tz database names that are also alias keys, plus entries that are not
# places. These go through the alias table instead of the identity path.
ALIAS_SHADOWED_ZONES = frozenset({'EST', 'MST', 'HST', 'Factory', 'localtime'})


@lru_cache(maxsize=None)
def _canonical_zones() -> frozenset:
    """Every tz database name except ALIAS_SHADOWED_ZONES."""
    return frozenset(available_timezones() - ALIAS_SHADOWED_ZONES)


@lru_cache(maxsize=None)
def _canonical_spellings() -> MappingProxyType:
    """Lower-cased name -> canonical spelling."""
    return MappingProxyType({name.lower(): name for name in sorted(_canonical_zones())})


def is_valid_iana_timezone(value: Optional[str]) -> bool:
    """Return True if value is a canonical IANA identifier, spelled exactly."""
    if not isinstance(value, str) or not value:
        return False
    return value in _canonical_zones()


def _contains_alias(text: str, alias: str) -> bool:
    if len(alias) <= ABBREVIATION_MAX_LENGTH:
        return re.search(rf'(?<![a-z]){re.escape(alias)}(?![a-z])', text) is not None
    return alias in text


def _match_partial_alias(text: str) -> Optional[str]:
    for alias, zone in TIMEZONE_ALIASES:
        if _contains_alias(text, alias):
            return zone
        if len(text) >= MIN_REVERSE_MATCH_LENGTH and text in alias:
            return zone
    return None


def normalize_timezone(value: Optional[str], default: str = DEFAULT_TIMEZONE) -> str:
    """
    Resolve an arbitrary timezone label to a canonical IANA identifier.

    Args:
        value: Raw timezone text (profile field, TZ variable, form value)
        default: Identifier returned when nothing matches

    Returns:
        A canonical IANA identifier; never raises
    """
    if not isinstance(value, str) or not value.strip():
        return default

    if is_valid_iana_timezone(value):
        return value

    text = value.strip().lower()

    canonical = _canonical_spellings().get(text)
    if canonical:
        return canonical

    zone = _ALIAS_LOOKUP.get(text)
    if zone:
        logger.debug('Mapped timezone %r to %s', value, zone)
        return zone

    zone = _match_partial_alias(text)
    if zone:
        logger.debug('Partial timezone match: %r mapped to %s', value, zone)
        return zone

    logger.warning('Could not map timezone %r to an IANA zone, using default %s', value, default)
    return default


def ensure_iana_timezone(value: Optional[str], default: str = DEFAULT_TIMEZONE) -> str:
    """Normalize value and confirm the result loads; degrade to default otherwise."""
    if not is_valid_iana_timezone(default):
        default = normalize_timezone(default)
    zone_name = normalize_timezone(value, default)
    try:
        ZoneInfo(zone_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.warning('Timezone %r (normalized: %s) failed to load, using default %s: %s',
                       value, zone_name, default, e)
        return default
    return zone_name


def get_zone_info(value: Optional[str], default: str = DEFAULT_TIMEZONE) -> ZoneInfo:
    """Return the ZoneInfo for a raw timezone label."""
    return ZoneInfo(ensure_iana_timezone(value, default))


def _runtime_timezone_name() -> str:
    # POSIX allows a leading colon, e.g. TZ=":America/Chicago"
    return os.environ.get('TZ', '').strip().lstrip(':')


def get_local_timezone_name(default: str = DEFAULT_TIMEZONE) -> str:
    """Return the runtime timezone (TZ env), normalized, or the default."""
    return ensure_iana_timezone(_runtime_timezone_name(), default)


def get_local_timezone(default: str = DEFAULT_TIMEZONE) -> ZoneInfo:
    """Return the configured timezone (TZ env) or default to America/Chicago."""
    return ZoneInfo(get_local_timezone_name(default))


def get_effective_client_timezone(
    client_timezone: Optional[str],
    fallback_timezone: Optional[str] = None,
    last_resort: str = CLIENT_FALLBACK_TIMEZONE
) -> str:
    """
    Pick the zone to show a client's times in.

    Priority: the client's stored zone, the caller's fallback, the runtime
    zone, then last_resort. Each candidate must already be canonical.
    """
    for candidate in (client_timezone, fallback_timezone, _runtime_timezone_name()):
        if is_valid_iana_timezone(candidate):
            return candidate
    return last_resort


def is_supported_timezone(value: Optional[str]) -> bool:
    """Check that value is one of the zones offered in TIMEZONE_OPTIONS."""
    return any(zone == value for zone, _ in TIMEZONE_OPTIONS)


def ensure_supported_timezone(value: Optional[str], default: str = DEFAULT_TIMEZONE) -> str:
    return value if is_supported_timezone(value) else default


def get_user_timezone(default: str = DEFAULT_TIMEZONE) -> str:
    """Return the runtime zone if the portal offers it, else the default."""
    return ensure_supported_timezone(_runtime_timezone_name(), default)
