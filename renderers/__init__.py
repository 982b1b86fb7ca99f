"""HTML rendering for the static export.

Package Structure:
- template_renderer: Jinja2 environment and one render method per page kind
- icon_cache: Per-build cache of icon markup (lucide SVGs, inline SVG, text)
- labels: Interface labels per language with English fallback
- theme: Accent color stylesheet derived from site settings
- templates/: Jinja2 templates shipped with the package
"""

from .icon_cache import IconCache
from .labels import Labels
from .template_renderer import TemplateRenderer
from .theme import accent_css

__all__ = [
    'IconCache',
    'Labels',
    'TemplateRenderer',
    'accent_css'
]
