"""Tests for the logging helpers."""

import logging
import unittest

from logger import ProgressTracker, format_elapsed, redact


class TestLoggingHelpers(unittest.TestCase):
    def test_format_elapsed(self):
        self.assertEqual(format_elapsed(4.25), '4.2s')
        self.assertEqual(format_elapsed(185), '3m 5s')
        self.assertEqual(format_elapsed(3723), '1h 2m 3s')

    def test_redact_masks_secrets_only(self):
        config = {'backend': {'url': 'http://pb', 'token': 'abc', 'password': '', 'identity': 'me'},
                  'styles': {'command': ['npx', 'tool']}}

        safe = redact(config)

        self.assertEqual(safe['backend'], {'url': 'http://pb', 'token': '***', 'password': '', 'identity': 'me'})
        self.assertEqual(safe['styles']['command'], ['npx', 'tool'])
        self.assertEqual(config['backend']['token'], 'abc')

    def test_progress_tracker(self):
        logger = logging.getLogger('portfolio_export.tests.progress')

        with self.assertLogs(logger, level='INFO') as logs:
            with ProgressTracker(3, 'pages', logger) as tracker:
                for _ in range(3):
                    tracker.increment()

        self.assertEqual(tracker.done, 3)
        self.assertIn('Pages done: 3/3', logs.output[-1])

    def test_progress_tracker_reports_abort(self):
        logger = logging.getLogger('portfolio_export.tests.progress')

        with self.assertLogs(logger, level='ERROR') as logs:
            with self.assertRaises(RuntimeError):
                with ProgressTracker(5, 'pages', logger) as tracker:
                    tracker.increment()
                    raise RuntimeError('render failed')

        self.assertIn('Pages aborted after 1/5', logs.output[0])


if __name__ == '__main__':
    unittest.main()
