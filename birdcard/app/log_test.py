"""Unit tests for birdcard logging setup."""

import logging
import unittest

from birdcard.app import log


def access_record(path: str) -> logging.LogRecord:
    """Build a uvicorn access log record for *path*."""
    return logging.LogRecord(
        name='uvicorn.access',
        level=logging.INFO,
        pathname='',
        lineno=0,
        msg='%s - "%s %s HTTP/%s" %d',
        args=('127.0.0.1', 'GET', path, '1.1', 200),
        exc_info=None,
    )


class TestHealthCheckFilter(unittest.TestCase):
    """Tests for the HealthCheckFilter logging filter."""

    def test_health_path_filtered(self) -> None:
        """Health check requests are suppressed."""
        self.assertFalse(log.HealthCheckFilter().filter(access_record('/health')))

    def test_other_path_not_filtered(self) -> None:
        """Webhook requests are still logged."""
        self.assertTrue(log.HealthCheckFilter().filter(access_record('/api/v1/yoto/webhook')))


class TestConfigureLogging(unittest.TestCase):
    """Tests for configure_logging()."""

    def test_filter_installed_once(self) -> None:
        """Repeated calls leave a single HealthCheckFilter on uvicorn.access."""
        log.configure_logging('INFO')
        log.configure_logging('DEBUG')
        access_logger = logging.getLogger('uvicorn.access')
        filters = [f for f in access_logger.filters if isinstance(f, log.HealthCheckFilter)]
        self.assertEqual(len(filters), 1)

    def test_unknown_level_accepted(self) -> None:
        """An unknown level name does not raise."""
        log.configure_logging('CHATTY')


if __name__ == '__main__':
    unittest.main()
