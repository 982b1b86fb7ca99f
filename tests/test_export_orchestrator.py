"""Tests for the export state machine."""

import logging
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from aiohttp.test_utils import AioHTTPTestCase

import export_site
from backend_client import BackendClient
from backend_fixtures import FakeBackend, make_config, record
from errors import BackendUnavailable, ConfigurationError, RenderFailure, StyleBuildError
from exporters.asset_downloader import DownloadReport
from exporters.style_builder import StyleBuilder
from orchestrator import ExportOrchestrator, ExportReport, ExportState, reset_output_dir


class OrchestratorTestCase(AioHTTPTestCase):
    async def get_application(self):
        self.fake = FakeBackend()
        return self.fake.make_app()

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)
        self.output = self.root / 'dist'
        self.static = self.root / 'public'
        (self.static / 'js').mkdir(parents=True)
        (self.static / 'js' / 'main.js').write_text('// client', encoding='utf-8')
        self.config = make_config(str(self.server.make_url('/')), self.root)
        self.backend = BackendClient.from_config(self.config)

    async def asyncTearDown(self):
        await self.backend.close()
        self.tmp.cleanup()
        await super().asyncTearDown()

    def orchestrator(self, **kwargs) -> ExportOrchestrator:
        return ExportOrchestrator(self.config, client=self.backend, **kwargs)


class TestExportRun(OrchestratorTestCase):
    async def test_full_run(self):
        orchestrator = self.orchestrator()
        stats = await orchestrator.run()

        self.assertEqual(orchestrator.state, ExportState.DONE)
        self.assertEqual(stats['page_count'], 16)
        self.assertEqual(stats['static_assets']['files_copied'], 1)
        self.assertTrue((self.output / 'js' / 'main.js').is_file())
        self.assertTrue((self.output / 'fr' / 'projects' / 'beta' / 'index.html').is_file())
        self.assertIsNone(stats['styles']['stylesheet'])

    async def test_previous_output_is_removed(self):
        self.output.mkdir()
        (self.output / 'stale.html').write_text('old', encoding='utf-8')
        (self.output / 'old-lang').mkdir()

        await self.orchestrator().run()

        self.assertFalse((self.output / 'stale.html').exists())
        self.assertFalse((self.output / 'old-lang').exists())

    async def test_asset_cache_is_published_with_the_site(self):
        cached = self.static / 'files' / 'settings' / 'set1' / 'favicon.ico'
        cached.parent.mkdir(parents=True)
        cached.write_bytes(b'ICO')

        await self.orchestrator().run()

        self.assertEqual((self.output / 'files' / 'settings' / 'set1' / 'favicon.ico').read_bytes(), b'ICO')
        home = (self.output / 'en' / 'index.html').read_text(encoding='utf-8')
        self.assertIn('href="/files/settings/set1/favicon.ico"', home)

    async def test_no_languages_is_a_configuration_error(self):
        self.fake.collections['languages'] = []
        self.output.mkdir()
        (self.output / 'keep.html').write_text('untouched', encoding='utf-8')

        orchestrator = self.orchestrator()
        with self.assertRaises(ConfigurationError):
            await orchestrator.run()

        self.assertEqual(orchestrator.state, ExportState.VALIDATE_LANGUAGES)
        self.assertTrue((self.output / 'keep.html').exists())

    async def test_duplicate_slug_keeps_previous_build(self):
        self.output.mkdir()
        (self.output / 'index.html').write_text('previous build', encoding='utf-8')
        self.fake.collections['categories'].append(
            record('categories', 'cat_dup', slug='talks', title_en='Again')
        )

        orchestrator = self.orchestrator()
        with self.assertRaises(ConfigurationError):
            await orchestrator.run()

        self.assertEqual(orchestrator.state, ExportState.VALIDATE_LANGUAGES)
        self.assertEqual((self.output / 'index.html').read_text(encoding='utf-8'), 'previous build')
        self.assertFalse((self.output / 'js').exists())

    async def test_unusable_language_code_keeps_previous_build(self):
        self.output.mkdir()
        (self.output / 'index.html').write_text('previous build', encoding='utf-8')
        self.fake.collections['languages'][1]['code'] = 'fr"><script>'

        with self.assertRaises(ConfigurationError):
            await self.orchestrator().run()

        self.assertTrue((self.output / 'index.html').exists())

    async def test_backend_failure_stops_before_output(self):
        self.fake.failing_collections.add('categories')

        orchestrator = self.orchestrator()
        with self.assertRaises(BackendUnavailable):
            await orchestrator.run()

        self.assertEqual(orchestrator.state, ExportState.FETCH_CONTENT)
        self.assertFalse(self.output.exists())

    async def test_render_failure_aborts_the_build(self):
        failure = RenderFailure('/en/projects/alpha', RuntimeError('boom'))
        orchestrator = self.orchestrator()

        with mock.patch('renderers.template_renderer.TemplateRenderer.render_project', side_effect=failure):
            with self.assertRaises(RenderFailure):
                await orchestrator.run()

        self.assertEqual(orchestrator.state, ExportState.GENERATE_PAGES)
        self.assertFalse((self.output / 'en' / 'talks').exists())

    async def test_style_failure_is_fatal(self):
        builder = mock.Mock(spec=StyleBuilder)
        builder.build.side_effect = StyleBuildError('Style tool exited with status 1')
        orchestrator = self.orchestrator(style_builder=builder)

        with self.assertRaises(StyleBuildError):
            await orchestrator.run()

        self.assertEqual(orchestrator.state, ExportState.BUILD_STYLES)
        self.assertFalse((self.output / 'index.html').exists())

    async def test_output_directory_overlapping_static_directory(self):
        self.config['export']['output_directory'] = str(self.static)

        with self.assertRaises(ConfigurationError):
            await self.orchestrator().run()
        self.assertTrue((self.static / 'js' / 'main.js').exists())

    async def test_pipeline_with_download_pre_pass(self):
        download_report, stats = await export_site.run_pipeline(
            self.config, download=True, export=True, logger=logging.getLogger('portfolio_export.cli')
        )

        self.assertEqual(download_report.downloaded, 4)
        self.assertEqual(stats['page_count'], 16)
        self.assertTrue((self.output / 'files' / 'resources' / 'res_all' / 'slides.pdf').is_file())


class TestResetOutputDir(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.output = Path(self.tmp.name) / 'dist'

    def test_creates_missing_directory(self):
        reset_output_dir(self.output)
        self.assertTrue(self.output.is_dir())

    def test_busy_directory_falls_back_to_deleting_children(self):
        (self.output / 'en' / 'projects').mkdir(parents=True)
        (self.output / 'index.html').write_text('x', encoding='utf-8')
        real_rmtree = shutil.rmtree

        def busy_root(path, *args, **kwargs):
            if Path(path) == self.output:
                raise OSError(16, 'Device or resource busy')
            return real_rmtree(path, *args, **kwargs)

        with mock.patch('orchestrator.export_orchestrator.shutil.rmtree', side_effect=busy_root):
            reset_output_dir(self.output)

        self.assertTrue(self.output.is_dir())
        self.assertEqual(list(self.output.iterdir()), [])

    def test_errors_while_deleting_children_propagate(self):
        (self.output / 'en').mkdir(parents=True)

        with mock.patch('orchestrator.export_orchestrator.shutil.rmtree',
                        side_effect=OSError(13, 'Permission denied')):
            with self.assertRaises(OSError):
                reset_output_dir(self.output)


class TestExportReport(unittest.TestCase):
    def test_console_report(self):
        stats = {
            'page_count': 3,
            'pages': [
                {'url_path': '/', 'output_path': 'dist/index.html', 'kind': 'redirect', 'size_bytes': 10},
                {'url_path': '/404.html', 'output_path': 'dist/404.html', 'kind': 'not_found', 'size_bytes': 20},
                {'url_path': '/en', 'output_path': 'dist/en/index.html', 'kind': 'home', 'size_bytes': 30},
            ],
            'output_directory': 'dist',
            'static_assets': {'files_copied': 2},
            'styles': {'stylesheet': None},
        }
        generator = ExportReport()
        report = generator.generate_report(stats, duration=1.5)
        text = generator.format_console_report(report)

        self.assertEqual(report['summary']['bytes_written'], 60)
        self.assertEqual(report['summary']['pages_by_kind'], {'redirect': 1, 'not_found': 1, 'home': 1})
        self.assertTrue(text.endswith('Done! Generated 3 pages.'))

    def test_download_only_report_has_no_page_line(self):
        generator = ExportReport()
        report = generator.generate_report(None, None, 0.2)

        self.assertNotIn('Done!', generator.format_console_report(report))

    def test_asset_section_reports_bytes(self):
        generator = ExportReport()
        report = generator.generate_report(None, DownloadReport(downloaded=2, skipped=1, bytes_downloaded=2048), 0.5)
        text = generator.format_console_report(report)

        self.assertEqual(report['assets']['bytes_downloaded'], 2048)
        self.assertIn('Bytes:       2048', text)
        self.assertIn('Cached:      1', text)

    def test_json_export(self):
        generator = ExportReport()
        report = generator.generate_report({'page_count': 0, 'output_directory': 'dist'})
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / 'report.json'
            generator.export_json_report(report, str(path))
            self.assertIn('"page_count": 0', path.read_text(encoding='utf-8'))


if __name__ == '__main__':
    unittest.main()
