"""Unit tests for birdcard settings helpers."""

import os
import unittest
import unittest.mock

from birdcard.app import settings


class TestEnvHelpers(unittest.TestCase):
    """Tests for the typed environment readers."""

    def test_int_default_when_unset(self) -> None:
        """Unset variables use the default."""
        with unittest.mock.patch.dict(os.environ, {}, clear=True):
            self.assertEqual(settings._env_int('SESSION_TTL_MINUTES', 15), 15)

    def test_int_parsed(self) -> None:
        """Integers are parsed."""
        with unittest.mock.patch.dict(os.environ, {'SESSION_TTL_MINUTES': '30'}):
            self.assertEqual(settings._env_int('SESSION_TTL_MINUTES', 15), 30)

    def test_int_malformed(self) -> None:
        """Malformed integers fall back to the default."""
        with unittest.mock.patch.dict(os.environ, {'SESSION_TTL_MINUTES': 'soon'}):
            with self.assertLogs('birdcard.app.settings', level='WARNING'):
                self.assertEqual(settings._env_int('SESSION_TTL_MINUTES', 15), 15)

    def test_float(self) -> None:
        """Floats are parsed and malformed ones fall back."""
        with unittest.mock.patch.dict(os.environ, {'HTTP_TIMEOUT_SECONDS': '2.5'}):
            self.assertEqual(settings._env_float('HTTP_TIMEOUT_SECONDS', 10.0), 2.5)
        with unittest.mock.patch.dict(os.environ, {'HTTP_TIMEOUT_SECONDS': 'fast'}):
            self.assertEqual(settings._env_float('HTTP_TIMEOUT_SECONDS', 10.0), 10.0)

    def test_bool(self) -> None:
        """Common truthy spellings are accepted."""
        cases = [('true', True), ('1', True), ('Yes', True), ('false', False), ('0', False)]
        for raw, expected in cases:
            with self.subTest(raw=raw):
                with unittest.mock.patch.dict(os.environ, {'CACHE_UNRESOLVED': raw}):
                    value = settings._env_bool('CACHE_UNRESOLVED', not expected)
                self.assertEqual(value, expected)
        with unittest.mock.patch.dict(os.environ, {}, clear=True):
            self.assertTrue(settings._env_bool('CACHE_UNRESOLVED', True))


class TestParseSentinels(unittest.TestCase):
    """Tests for parse_sentinels()."""

    def test_pairs(self) -> None:
        """Semicolon-separated pairs are parsed in order."""
        self.assertEqual(
            settings.parse_sentinels('0,0; 37.751,-97.822'),
            [(0.0, 0.0), (37.751, -97.822)],
        )

    def test_bad_entries_skipped(self) -> None:
        """Malformed entries are ignored."""
        self.assertEqual(settings.parse_sentinels('0,0;junk;1,2,3;a,b'), [(0.0, 0.0)])


if __name__ == '__main__':
    unittest.main()
