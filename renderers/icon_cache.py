"""Icon resolution for templates: lucide names, inline SVG, or plain text."""

import logging
import re
from pathlib import Path
from typing import Dict, Optional

from markupsafe import Markup, escape

LUCIDE_PREFIX = 'lucide:'

_LICENSE_COMMENT = re.compile(r'<!--.*?-->\s*', re.DOTALL)
_CLASS_ATTR = re.compile(r'\s*class="[^"]*"')
_SIZE_ATTRS = re.compile(r'\s(width|height)=["\'][^"\']*["\']', re.IGNORECASE)


class IconCache:
    """
    Per-build icon cache.

    Lucide SVGs are read from ``icons_dir`` at most once per name; a missing
    icon is logged once and renders as nothing.
    """

    def __init__(self, icons_dir: Optional[Path] = None, logger: Optional[logging.Logger] = None):
        self.icons_dir = Path(icons_dir) if icons_dir else None
        self.logger = logger or logging.getLogger('portfolio_export.renderers.icons')
        self._cache: Dict[str, str] = {}
        self.stats = {'loaded': 0, 'missing': 0}

        if self.icons_dir is not None and not self.icons_dir.is_dir():
            self.logger.warning(f"Icon directory not found: {self.icons_dir}")

    def lucide(self, name: str) -> str:
        """SVG markup of a lucide icon, or an empty string if unavailable."""
        if name in self._cache:
            return self._cache[name]

        svg = ''
        path = self.icons_dir / f"{name}.svg" if self.icons_dir else None
        if path is not None and path.is_file():
            svg = path.read_text(encoding='utf-8')
            svg = _LICENSE_COMMENT.sub('', svg).strip()
            svg = _CLASS_ATTR.sub('', svg, count=1)
            self.stats['loaded'] += 1
        else:
            self.logger.debug(f"Lucide icon '{name}' not found")
            self.stats['missing'] += 1

        self._cache[name] = svg
        return svg

    def render(self, value: Optional[str], class_name: str = 'w-6 h-6') -> Markup:
        """
        Render an icon value to HTML.

        Supports "lucide:<name>", raw "<svg ..." strings, and plain text or emoji.
        """
        if not value:
            return Markup('')

        if value.startswith(LUCIDE_PREFIX):
            svg = self.lucide(value[len(LUCIDE_PREFIX):])
            if not svg:
                return Markup('')
            return Markup('<span class="{}" style="display:inline-flex">{}</span>').format(class_name, Markup(svg))

        if value.strip().startswith('<svg'):
            normalized = _SIZE_ATTRS.sub('', value)
            normalized = normalized.replace('<svg', '<svg width="100%" height="100%" style="display:block"', 1)
            return Markup('<span class="{}" style="display:inline-flex">{}</span>').format(class_name, Markup(normalized))

        return Markup('<span class="{}">{}</span>').format(class_name, escape(value))

    def theme_script(self) -> Markup:
        """Script exposing the theme toggle icons to the client-side toggle."""
        def js(name: str) -> str:
            return self.lucide(name).replace('\\', '\\\\').replace("'", "\\'").replace('\n', '')

        return Markup(
            f"<script>window._icons={{sun:'{js('sun')}',moon:'{js('moon')}',laptop:'{js('laptop')}'}}</script>"
        )
