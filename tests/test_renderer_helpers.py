"""Tests for the rendering helpers: accent theme, labels and icons."""

import tempfile
import unittest
from pathlib import Path

from bs4 import BeautifulSoup

from renderers import IconCache, Labels, accent_css
from renderers.theme import parse_hex_color

LUCIDE_SUN = """<!-- @license lucide-static v0.400.0 - ISC -->
<svg class="lucide lucide-sun" xmlns="http://www.w3.org/2000/svg" width="24" height="24" viewBox="0 0 24 24">
  <circle cx="12" cy="12" r="4" />
</svg>
"""


class TestTheme(unittest.TestCase):
    def test_parse_hex_color(self):
        self.assertEqual(parse_hex_color('#3366ff'), (51, 102, 255))
        self.assertEqual(parse_hex_color('36F'), (51, 102, 255))
        self.assertEqual(parse_hex_color(' #000000 '), (0, 0, 0))
        self.assertIsNone(parse_hex_color('#12345'))
        self.assertIsNone(parse_hex_color('blue'))
        self.assertIsNone(parse_hex_color(''))

    def test_accent_css(self):
        css = accent_css('#3366ff')

        self.assertIn(':root{--color-accent:#3366ff;', css)
        self.assertIn('--color-accent-hover:#2b57d9;', css)
        self.assertIn('--color-accent-subtle:rgba(51,102,255,0.1)', css)
        self.assertIn('.dark{--color-accent:#527dff;', css)

    def test_missing_or_invalid_color(self):
        self.assertIsNone(accent_css(None))
        self.assertIsNone(accent_css(''))
        with self.assertLogs('portfolio_export.renderers.theme', level='WARNING'):
            self.assertIsNone(accent_css('not-a-color'))


class TestLabels(unittest.TestCase):
    def test_fallbacks(self):
        labels = Labels({'fr': {'nav.home': 'Accueil', 'nav.more': ''}})

        self.assertEqual(labels.get('fr', 'nav.home'), 'Accueil')
        self.assertEqual(labels.get('fr', 'nav.projects'), 'Projects')
        self.assertEqual(labels.get('fr', 'nav.more'), 'More')
        self.assertEqual(labels.get('de', 'nav.home'), 'Home')
        self.assertEqual(labels.get('en', 'unknown.key'), 'unknown.key')

    def test_translator(self):
        t = Labels({'fr': {'notFound.home': "Retour à l'accueil"}}).translator('fr')

        self.assertEqual(t('notFound.home'), "Retour à l'accueil")
        self.assertEqual(t('skills.title'), 'Skills')

    def test_load_yaml(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / 'labels.yaml'
            path.write_text("fr:\n  nav.home: Accueil\nen:\n  nav.home: Start\n", encoding='utf-8')

            labels = Labels.load(str(path))

        self.assertEqual(labels.get('fr', 'nav.home'), 'Accueil')
        self.assertEqual(labels.get('en', 'nav.home'), 'Start')
        self.assertEqual(labels.get('fr', 'nav.more'), 'More')

    def test_load_without_path(self):
        self.assertEqual(Labels.load(None).get('en', 'nav.home'), 'Home')

    def test_load_rejects_malformed_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / 'labels.yaml'
            path.write_text("- just\n- a list\n", encoding='utf-8')

            with self.assertRaises(ValueError):
                Labels.load(str(path))


class TestIconCache(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.icons_dir = Path(self.tmp.name)
        (self.icons_dir / 'sun.svg').write_text(LUCIDE_SUN, encoding='utf-8')
        self.icons = IconCache(self.icons_dir)

    def test_lucide_icon(self):
        html = self.icons.render('lucide:sun', 'w-4 h-4')
        soup = BeautifulSoup(html, 'lxml')

        self.assertEqual(soup.span['class'], ['w-4', 'h-4'])
        self.assertIsNotNone(soup.span.svg)
        self.assertIsNone(soup.svg.get('class'))
        self.assertNotIn('@license', html)

    def test_lucide_icons_are_read_once(self):
        first = self.icons.lucide('sun')
        (self.icons_dir / 'sun.svg').unlink()

        self.assertEqual(self.icons.lucide('sun'), first)
        self.assertEqual(self.icons.stats, {'loaded': 1, 'missing': 0})

    def test_missing_lucide_icon_renders_nothing(self):
        self.assertEqual(str(self.icons.render('lucide:nope')), '')
        self.assertEqual(str(self.icons.render('lucide:nope')), '')
        self.assertEqual(self.icons.stats['missing'], 1)

    def test_no_icon_directory(self):
        icons = IconCache()
        self.assertEqual(icons.lucide('sun'), '')
        self.assertEqual(str(icons.render(None)), '')

    def test_raw_svg_is_normalized(self):
        html = str(self.icons.render('<svg width="48" height="48" viewBox="0 0 48 48"><path d="M0 0"/></svg>'))

        self.assertIn('<svg width="100%" height="100%" style="display:block" viewBox="0 0 48 48">', html)
        self.assertNotIn('width="48"', html)

    def test_text_icons_are_escaped(self):
        self.assertEqual(str(self.icons.render('🎤', 'icon')), '<span class="icon">🎤</span>')
        self.assertIn('&lt;b&gt;', str(self.icons.render('<b>')))

    def test_theme_script(self):
        script = str(self.icons.theme_script())

        self.assertTrue(script.startswith('<script>window._icons={sun:\'<svg'))
        self.assertIn("moon:''", script)
        self.assertNotIn('\n', script)


if __name__ == '__main__':
    unittest.main()
