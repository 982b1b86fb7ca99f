"""Tests for the command line entry point and its exit codes."""

import io
import json
import logging
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest import mock

import export_site
from exporters import DownloadReport


class CLITestCase(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.root = Path(self.tmp.name)

        env = mock.patch.dict(os.environ, {}, clear=True)
        env.start()
        self.addCleanup(env.stop)
        self.addCleanup(self._reset_logging)

    @staticmethod
    def _reset_logging():
        logger = logging.getLogger('portfolio_export')
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)

    def main(self, *argv):
        stdout, stderr = io.StringIO(), io.StringIO()
        with redirect_stdout(stdout), redirect_stderr(stderr):
            code = export_site.main(list(argv))
        return code, stdout.getvalue(), stderr.getvalue()


class TestArguments(CLITestCase):
    def test_version(self):
        with redirect_stdout(io.StringIO()) as out:
            with self.assertRaises(SystemExit) as ctx:
                export_site.main(['--version'])

        self.assertEqual(ctx.exception.code, 0)
        self.assertIn(export_site.__version__, out.getvalue())

    def test_modes_are_mutually_exclusive(self):
        with redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                export_site.create_argument_parser().parse_args(['--download', '--preview-only'])
        self.assertEqual(ctx.exception.code, 2)

    def test_preview_requires_an_export(self):
        with redirect_stderr(io.StringIO()) as err:
            with self.assertRaises(SystemExit) as ctx:
                export_site.main(['--download-only', '--preview'])

        self.assertEqual(ctx.exception.code, 2)
        self.assertIn('--download-only', err.getvalue())

    def test_defaults(self):
        args = export_site.create_argument_parser().parse_args([])

        self.assertIsNone(args.config)
        self.assertFalse(args.download or args.download_only or args.preview_only or args.preview)
        self.assertEqual(args.verbose, 0)


class TestExitCodes(CLITestCase):
    def test_missing_backend_url(self):
        code, _, stderr = self.main('--download-only')

        self.assertEqual(code, 2)
        self.assertIn('backend.url', stderr)

    def test_missing_config_file(self):
        code, _, stderr = self.main('--config', str(self.root / 'missing.yaml'))

        self.assertEqual(code, 2)
        self.assertIn('missing.yaml', stderr)

    def test_invalid_yaml(self):
        path = self.root / 'export.yaml'
        path.write_text('backend: [unclosed', encoding='utf-8')

        code, _, stderr = self.main('--config', str(path))

        self.assertEqual(code, 2)
        self.assertIn('Invalid configuration file', stderr)

    def test_invalid_port_environment(self):
        os.environ.update({'BACKEND_URL': 'http://127.0.0.1:8090', 'PORT': 'eighty'})

        code, _, stderr = self.main()

        self.assertEqual(code, 2)
        self.assertIn('PORT', stderr)

    def test_unreachable_backend(self):
        os.environ['BACKEND_URL'] = 'http://127.0.0.1:9'

        code, _, stderr = self.main('--no-styles', '--output', str(self.root / 'dist'))

        self.assertEqual(code, 1)
        self.assertIn('ERROR:', stderr)
        self.assertFalse((self.root / 'dist').exists())

    def test_interrupt(self):
        os.environ['BACKEND_URL'] = 'http://127.0.0.1:8090'

        with mock.patch('export_site.run', side_effect=KeyboardInterrupt):
            code, _, stderr = self.main('--no-styles')

        self.assertEqual(code, 130)
        self.assertIn('interrupted', stderr)


class TestRun(CLITestCase):
    def setUp(self):
        super().setUp()
        os.environ['BACKEND_URL'] = 'http://127.0.0.1:8090'
        self.stats = {
            'page_count': 2,
            'pages': [
                {'url_path': '/', 'output_path': 'dist/index.html', 'kind': 'redirect', 'size_bytes': 5},
                {'url_path': '/404.html', 'output_path': 'dist/404.html', 'kind': 'not_found', 'size_bytes': 5},
            ],
            'output_directory': str(self.root / 'dist'),
        }

    def test_export_prints_summary_and_writes_report(self):
        report_path = self.root / 'report.json'
        pipeline = mock.AsyncMock(return_value=(None, self.stats))

        with mock.patch('export_site.run_pipeline', pipeline), mock.patch('export_site.serve') as serve:
            code, stdout, _ = self.main('--no-styles', '--report', str(report_path))

        self.assertEqual(code, 0)
        self.assertIn('Done! Generated 2 pages.', stdout)
        self.assertEqual(pipeline.await_args.kwargs['download'], False)
        self.assertEqual(pipeline.await_args.kwargs['export'], True)
        serve.assert_not_called()
        self.assertEqual(json.loads(report_path.read_text(encoding='utf-8'))['summary']['page_count'], 2)

    def test_download_only_skips_export(self):
        report = DownloadReport(downloaded=3)
        pipeline = mock.AsyncMock(return_value=(report, None))

        with mock.patch('export_site.run_pipeline', pipeline), mock.patch('export_site.serve') as serve:
            code, stdout, _ = self.main('--download-only')

        self.assertEqual(code, 0)
        self.assertEqual(pipeline.await_args.kwargs['download'], True)
        self.assertEqual(pipeline.await_args.kwargs['export'], False)
        self.assertNotIn('Done!', stdout)
        serve.assert_not_called()

    def test_preview_after_export(self):
        pipeline = mock.AsyncMock(return_value=(None, self.stats))
        output = str(self.root / 'dist')

        with mock.patch('export_site.run_pipeline', pipeline), mock.patch('export_site.serve') as serve:
            code, _, _ = self.main('--no-styles', '--preview', '--port', '4000', '--output', output)

        self.assertEqual(code, 0)
        serve.assert_called_once_with(output, '127.0.0.1', 4000)

    def test_preview_only_serves_without_backend(self):
        del os.environ['BACKEND_URL']
        os.environ['PORT'] = '5050'

        with mock.patch('export_site.run_pipeline') as pipeline, mock.patch('export_site.serve') as serve:
            code, _, _ = self.main('--preview-only', '--output', 'site')

        self.assertEqual(code, 0)
        pipeline.assert_not_called()
        serve.assert_called_once_with('site', '127.0.0.1', 5050)


if __name__ == '__main__':
    unittest.main()
