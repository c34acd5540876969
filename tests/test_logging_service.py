"""
Tests for the logging and timing service.
"""
import json
import logging
import os
import shutil
import sys
import tempfile
import unittest
from datetime import datetime, timedelta

from mtls.models.config import Config
from mtls.services.logging_service import (
    PACKAGE_LOGGER, JSONFormatter, LoggingService, OperationTiming, PerformanceMonitor
)


class TestJSONFormatter(unittest.TestCase):
    """Test JSON formatter for structured logging."""

    def setUp(self):
        self.formatter = JSONFormatter()

    def test_format_basic_log_record(self):
        """Test formatting a basic log record."""
        logger = logging.getLogger('test')
        record = logger.makeRecord(
            name='mtls.security.mutual_tls',
            level=logging.INFO,
            fn='mutual_tls.py',
            lno=42,
            msg='Built %s context',
            args=('TLSv1.3',),
            exc_info=None
        )

        log_data = json.loads(self.formatter.format(record))

        self.assertIn('timestamp', log_data)
        self.assertEqual(log_data['level'], 'INFO')
        self.assertEqual(log_data['logger'], 'mtls.security.mutual_tls')
        self.assertEqual(log_data['message'], 'Built TLSv1.3 context')
        self.assertTrue(log_data['location'].endswith(':42'))
        self.assertIsNone(log_data['details'])
        self.assertIsNone(log_data['exception'])

    def test_format_log_record_with_exception(self):
        """Test formatting a log record with exception information."""
        logger = logging.getLogger('test')

        try:
            raise ValueError("Invalid PEM")
        except ValueError:
            record = logger.makeRecord(
                name='mtls.security.pem',
                level=logging.ERROR,
                fn='pem.py',
                lno=7,
                msg='Decoding failed',
                args=(),
                exc_info=sys.exc_info()
            )

        log_data = json.loads(self.formatter.format(record))

        self.assertEqual(log_data['exception']['type'], 'ValueError')
        self.assertEqual(log_data['exception']['message'], 'Invalid PEM')
        self.assertIsInstance(log_data['exception']['traceback'], list)

    def test_format_details(self):
        logger = logging.getLogger('test')
        record = logger.makeRecord(
            name='test', level=logging.INFO, fn='x.py', lno=1,
            msg='metric', args=(), exc_info=None,
            extra={'details': {'protocol': 'TLSv1.2'}}
        )

        log_data = json.loads(self.formatter.format(record))
        self.assertEqual(log_data['details'], {'protocol': 'TLSv1.2'})


class TestPerformanceMonitor(unittest.TestCase):
    """Test cases for PerformanceMonitor."""

    def setUp(self):
        self.monitor = PerformanceMonitor()

    def test_measure_successful_operation(self):
        with self.monitor.measure_operation("create_context", {'protocol': 'TLSv1.3'}):
            pass

        timings = self.monitor.get_timings()
        self.assertEqual(len(timings), 1)
        self.assertIsInstance(timings[0], OperationTiming)
        self.assertTrue(timings[0].success)
        self.assertGreaterEqual(timings[0].duration_ms, 0)
        self.assertEqual(timings[0].details, {'protocol': 'TLSv1.3'})

    def test_measure_failed_operation(self):
        with self.assertRaises(RuntimeError):
            with self.monitor.measure_operation("create_context"):
                raise RuntimeError("boom")

        timing = self.monitor.get_timings("create_context")[0]
        self.assertFalse(timing.success)
        self.assertEqual(timing.error_type, "RuntimeError")

    def test_operation_stats(self):
        for _ in range(3):
            with self.monitor.measure_operation("create_context"):
                pass
        with self.monitor.measure_operation("load_material"):
            pass

        stats = self.monitor.get_operation_stats("create_context")

        self.assertEqual(stats['total_calls'], 3)
        self.assertEqual(stats['failure_count'], 0)
        self.assertEqual(stats['success_rate'], 1.0)
        self.assertEqual(self.monitor.get_operation_stats("missing"), {})
        self.assertEqual(sorted(self.monitor.get_all_stats()), ["create_context", "load_material"])

    def test_timings_are_bounded(self):
        """Test that only the most recent timings are kept."""
        for _ in range(5000):
            with self.monitor.measure_operation("create_context"):
                pass

        self.assertEqual(len(self.monitor.get_timings()), self.monitor.max_timings)
        self.assertLessEqual(len(self.monitor.get_timings()), 1000)

    def test_custom_bound(self):
        monitor = PerformanceMonitor(max_timings=3)
        for index in range(5):
            with monitor.measure_operation("create_context", {'index': index}):
                pass

        self.assertEqual([t.details['index'] for t in monitor.get_timings()], [2, 3, 4])
        with self.assertRaises(ValueError):
            PerformanceMonitor(max_timings=0)

    def test_prune_drops_old_timings(self):
        with self.monitor.measure_operation("create_context"):
            pass
        with self.monitor.measure_operation("create_context"):
            pass
        self.monitor.get_timings()[0].finished_at = datetime.now() - timedelta(hours=48)

        self.assertEqual(self.monitor.prune(max_age_hours=24), 1)
        self.assertEqual(len(self.monitor.get_timings()), 1)


class TestLoggingService(unittest.TestCase):
    """Test cases for LoggingService."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.package_logger = logging.getLogger(PACKAGE_LOGGER)
        self.package_level = self.package_logger.level
        self.config = Config(
            log_level="DEBUG",
            log_file_path=os.path.join(self.temp_dir, "logs", "mtls.log")
        )

    def tearDown(self):
        self.package_logger.setLevel(self.package_level)
        shutil.rmtree(self.temp_dir)

    def _read_log(self):
        with open(self.config.log_file_path, encoding='utf-8') as f:
            return [json.loads(line) for line in f if line.strip()]

    def test_writes_json_log_file(self):
        """Test that package records end up as JSON lines in the log file."""
        service = LoggingService(self.config)
        logging.getLogger('mtls.security.mutual_tls').info(
            'Context built', extra={'details': {'protocol': 'TLSv1.3'}}
        )
        service.close()

        lines = self._read_log()
        messages = [line['message'] for line in lines]
        self.assertIn('Context built', messages)
        self.assertEqual(lines[messages.index('Context built')]['details'], {'protocol': 'TLSv1.3'})

    def test_root_handlers_untouched(self):
        """Test that only the package logger is configured."""
        root_handlers = logging.getLogger().handlers[:]
        service = LoggingService(self.config)
        try:
            self.assertEqual(logging.getLogger().handlers, root_handlers)
            self.assertEqual(len(self.package_logger.handlers), 2)
        finally:
            service.close()

        self.assertEqual(self.package_logger.handlers, [])

    def test_shares_given_monitor(self):
        monitor = PerformanceMonitor()
        service = LoggingService(self.config, monitor)
        try:
            self.assertIs(service.performance_monitor, monitor)
        finally:
            service.close()


if __name__ == '__main__':
    unittest.main()
