"""Interface labels per language."""

import logging
from pathlib import Path
from typing import Dict, Optional

import yaml

from models import FALLBACK_LANGUAGE

logger = logging.getLogger('portfolio_export.renderers.labels')

DEFAULT_LABELS: Dict[str, Dict[str, str]] = {
    'en': {
        'nav.home': 'Home',
        'nav.projects': 'Projects',
        'nav.more': 'More',
        'nav.categories': 'Categories',
        'hero.contact': 'Contact me',
        'hero.resume': 'Resume',
        'projects.title': 'Projects',
        'projects.featured': 'Featured projects',
        'projects.viewAll': 'View all',
        'projects.all': 'All projects',
        'projects.empty': 'No projects yet.',
        'projects.demo': 'Live demo',
        'projects.repo': 'Source code',
        'projects.technologies': 'Technologies',
        'resources.title': 'Resources',
        'skills.title': 'Skills',
        'category.noItems': 'Nothing here yet.',
        'footer.rights': 'All rights reserved.',
        'theme.light': 'Light',
        'theme.dark': 'Dark',
        'theme.system': 'System',
        'notFound.message': "This page doesn't exist.",
        'notFound.home': 'Go home',
    },
}


class Labels:
    """Label lookup with fallback to English, then to the key itself."""

    def __init__(self, tables: Optional[Dict[str, Dict[str, str]]] = None):
        self.tables: Dict[str, Dict[str, str]] = {lang: dict(table) for lang, table in DEFAULT_LABELS.items()}
        for lang, table in (tables or {}).items():
            self.tables.setdefault(lang, {}).update(table)

    @classmethod
    def load(cls, path: Optional[str]) -> 'Labels':
        """
        Load label overrides from a YAML file mapping language code to labels.

        Args:
            path: YAML file path, or None for the built-in English labels

        Returns:
            Labels instance
        """
        if not path:
            return cls()

        with open(Path(path), 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict) or not all(isinstance(table, dict) for table in data.values()):
            raise ValueError(f"Label file must map language codes to label tables: {path}")

        logger.debug(f"Loaded labels for {sorted(data)} from {path}")
        return cls({str(lang): {str(k): str(v) for k, v in table.items()} for lang, table in data.items()})

    def get(self, lang: str, key: str) -> str:
        value = self.tables.get(lang, {}).get(key)
        if value:
            return value
        return self.tables.get(FALLBACK_LANGUAGE, {}).get(key, key)

    def translator(self, lang: str):
        """Single-language lookup function for templates."""
        return lambda key: self.get(lang, key)
