import os
import unittest
from zoneinfo import available_timezones

from portal_timezones.normalizer import (
    CLIENT_FALLBACK_TIMEZONE,
    DEFAULT_TIMEZONE,
    TIMEZONE_ALIASES,
    ALIAS_SHADOWED_ZONES,
    _ALIAS_LOOKUP,
    ensure_iana_timezone,
    ensure_supported_timezone,
    get_effective_client_timezone,
    get_local_timezone,
    get_local_timezone_name,
    get_user_timezone,
    get_zone_info,
    is_valid_iana_timezone,
    normalize_timezone,
)


class TzEnvMixin:
    def setUp(self):
        self.old_tz = os.environ.get('TZ')

    def tearDown(self):
        if self.old_tz is None:
            os.environ.pop('TZ', None)
        else:
            os.environ['TZ'] = self.old_tz


class NormalizeTimezoneTests(unittest.TestCase):
    def test_canonical_zones_are_returned_unchanged(self):
        for zone in ['America/Chicago', 'Europe/London', 'Asia/Kolkata', 'UTC', 'Etc/GMT+5', 'Pacific/Honolulu']:
            with self.subTest(zone=zone):
                self.assertEqual(normalize_timezone(zone), zone)

    def test_every_tz_database_name_is_returned_unchanged(self):
        for zone in sorted(available_timezones() - ALIAS_SHADOWED_ZONES):
            with self.subTest(zone=zone):
                self.assertEqual(normalize_timezone(zone), zone)
                self.assertTrue(is_valid_iana_timezone(zone))

    def test_zones_without_an_area_are_canonical(self):
        for zone in ['GMT', 'Zulu', 'UCT', 'Universal', 'Japan', 'Singapore', 'CET', 'NZ', 'Etc/UTC']:
            with self.subTest(zone=zone):
                with self.assertNoLogs('portal_timezones.normalizer', level='WARNING'):
                    self.assertEqual(normalize_timezone(zone), zone)
        self.assertEqual(normalize_timezone(' gmt '), 'GMT')

    def test_every_alias_maps_to_its_zone(self):
        for alias, zone in TIMEZONE_ALIASES:
            with self.subTest(alias=alias):
                self.assertEqual(normalize_timezone(alias), zone)
                self.assertEqual(normalize_timezone(alias.upper()), zone)
                self.assertEqual(normalize_timezone(f'  {alias}  '), zone)

    def test_legacy_tzdb_abbreviations_go_through_alias_table(self):
        self.assertEqual(normalize_timezone('EST'), 'America/New_York')
        self.assertEqual(normalize_timezone('MST'), 'America/Denver')
        self.assertEqual(normalize_timezone('HST'), 'Pacific/Honolulu')

    def test_canonical_zone_in_wrong_case_returns_canonical_spelling(self):
        self.assertEqual(normalize_timezone('america/chicago'), 'America/Chicago')
        self.assertEqual(normalize_timezone('  EUROPE/LONDON '), 'Europe/London')

    def test_empty_input_returns_default_without_logging(self):
        for value in [None, '', '   ']:
            with self.subTest(value=value):
                with self.assertNoLogs('portal_timezones.normalizer', level='DEBUG'):
                    self.assertEqual(normalize_timezone(value), DEFAULT_TIMEZONE)

    def test_non_string_input_returns_default(self):
        self.assertEqual(normalize_timezone(42), DEFAULT_TIMEZONE)

    def test_unknown_input_falls_back_to_default_and_logs(self):
        for value in ['garbage', 'Not/A_Zone', 'xyz123']:
            with self.subTest(value=value):
                with self.assertLogs('portal_timezones.normalizer', level='WARNING') as logs:
                    self.assertEqual(normalize_timezone(value), DEFAULT_TIMEZONE)
                self.assertIn('using default', logs.output[0])

    def test_custom_default_is_used_for_fallback(self):
        with self.assertLogs('portal_timezones.normalizer', level='WARNING'):
            self.assertEqual(normalize_timezone('garbage', default='Europe/London'), 'Europe/London')

    def test_verbose_labels_match_by_containment(self):
        self.assertEqual(normalize_timezone('Eastern Standard Time (EST) - New York'), 'America/New_York')
        self.assertEqual(normalize_timezone('GMT-6 Central Time (US & Canada)'), 'America/Chicago')

    def test_short_input_matches_inside_longer_alias(self):
        self.assertEqual(normalize_timezone('Mountain'), 'America/Denver')
        self.assertEqual(normalize_timezone('Eastern'), 'America/New_York')

    def test_abbreviations_only_match_whole_words(self):
        with self.assertLogs('portal_timezones.normalizer', level='WARNING'):
            self.assertEqual(normalize_timezone('Pacific Coast'), DEFAULT_TIMEZONE)

    def test_first_alias_in_table_order_wins(self):
        self.assertEqual(normalize_timezone('Central Time / Eastern Time'), 'America/New_York')

    def test_alias_lookup_is_read_only(self):
        with self.assertRaises(TypeError):
            _ALIAS_LOOKUP['gmt'] = 'Europe/London'


class ValidationTests(unittest.TestCase):
    def test_is_valid_iana_timezone(self):
        self.assertTrue(is_valid_iana_timezone('America/Chicago'))
        self.assertTrue(is_valid_iana_timezone('UTC'))
        self.assertFalse(is_valid_iana_timezone('america/chicago'))
        self.assertFalse(is_valid_iana_timezone('EST'))
        self.assertFalse(is_valid_iana_timezone('Central Time'))
        self.assertFalse(is_valid_iana_timezone(''))
        self.assertFalse(is_valid_iana_timezone(None))

    def test_ensure_iana_timezone(self):
        self.assertEqual(ensure_iana_timezone('Pacific Time'), 'America/Los_Angeles')
        self.assertEqual(ensure_iana_timezone(None), DEFAULT_TIMEZONE)

    def test_ensure_iana_timezone_normalizes_a_raw_default(self):
        with self.assertLogs('portal_timezones.normalizer', level='WARNING'):
            self.assertEqual(ensure_iana_timezone('garbage', default='Central Time'), 'America/Chicago')
        with self.assertLogs('portal_timezones.normalizer', level='WARNING'):
            self.assertEqual(get_zone_info('garbage', default='not a zone').key, DEFAULT_TIMEZONE)

    def test_get_zone_info(self):
        self.assertEqual(get_zone_info('CST').key, 'America/Chicago')

    def test_ensure_supported_timezone(self):
        self.assertEqual(ensure_supported_timezone('America/Denver'), 'America/Denver')
        self.assertEqual(ensure_supported_timezone('Europe/London'), DEFAULT_TIMEZONE)
        self.assertEqual(ensure_supported_timezone(None), DEFAULT_TIMEZONE)


class RuntimeTimezoneTests(TzEnvMixin, unittest.TestCase):
    def test_local_timezone_follows_tz_env(self):
        os.environ['TZ'] = 'America/New_York'
        self.assertEqual(get_local_timezone().key, 'America/New_York')
        self.assertEqual(get_local_timezone_name(), 'America/New_York')

    def test_local_timezone_accepts_posix_colon_prefix(self):
        os.environ['TZ'] = ':America/Denver'
        self.assertEqual(get_local_timezone_name(), 'America/Denver')

    def test_local_timezone_defaults_when_unset(self):
        os.environ.pop('TZ', None)
        self.assertEqual(get_local_timezone().key, DEFAULT_TIMEZONE)

    def test_user_timezone_must_be_an_offered_option(self):
        os.environ['TZ'] = 'America/Denver'
        self.assertEqual(get_user_timezone(), 'America/Denver')

        os.environ['TZ'] = 'Europe/London'
        self.assertEqual(get_user_timezone(), DEFAULT_TIMEZONE)


class EffectiveClientTimezoneTests(TzEnvMixin, unittest.TestCase):
    def test_stored_client_zone_wins(self):
        os.environ['TZ'] = 'America/Denver'
        self.assertEqual(
            get_effective_client_timezone('America/Phoenix', 'America/Chicago'),
            'America/Phoenix',
        )

    def test_fallback_used_when_client_zone_is_not_canonical(self):
        os.environ['TZ'] = 'America/Denver'
        self.assertEqual(get_effective_client_timezone('CST', 'America/Chicago'), 'America/Chicago')

    def test_runtime_zone_used_after_fallback(self):
        os.environ['TZ'] = 'America/Denver'
        self.assertEqual(get_effective_client_timezone(None, 'bogus'), 'America/Denver')

    def test_last_resort_when_nothing_is_usable(self):
        os.environ.pop('TZ', None)
        self.assertEqual(get_effective_client_timezone('', None), CLIENT_FALLBACK_TIMEZONE)


if __name__ == '__main__':
    unittest.main()
