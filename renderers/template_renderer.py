"""Jinja2 page renderer."""

import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape
from markupsafe import escape

from errors import RenderFailure
from models import (
    Category, ContentSnapshot, FileRef, Item, Project, Resource, localize
)
from renderers.icon_cache import IconCache
from renderers.labels import Labels

TEMPLATE_DIR = Path(__file__).parent / 'templates'

# Header links shown before the rest move under "More"
MAX_VISIBLE_CATEGORIES = 2

RESOURCE_TYPE_ICONS = {
    'document': 'file-text',
    'image': 'image',
    'video': 'video',
    'link': 'link',
    'code': 'code',
}

REDIRECT_TEMPLATE = (
    '<!DOCTYPE html><html><head><meta charset="UTF-8">'
    '<meta http-equiv="refresh" content="0;url=/{code}"></head><body></body></html>'
)


def create_jinja_env(template_dir: Optional[Path] = None) -> Environment:
    """Create Jinja2 environment with the portfolio filters."""
    env = Environment(
        loader=FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
        autoescape=select_autoescape(['html']),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters['localize'] = localize
    env.globals['resource_icon'] = lambda resource_type: RESOURCE_TYPE_ICONS.get(resource_type, 'paperclip')
    return env


class TemplateRenderer:
    """
    Renders every page kind of the site.

    Constructed once per build with its icon cache and labels; any template
    exception surfaces as RenderFailure.
    """

    def __init__(
        self,
        icons: IconCache,
        labels: Labels,
        site_url: str = '',
        favicon_url: Optional[str] = None,
        accent_css: Optional[str] = None,
        files_url_prefix: str = '/files',
        site_title: str = 'Portfolio',
        site_description: str = 'Personal portfolio',
        template_dir: Optional[Path] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.icons = icons
        self.labels = labels
        self.site_url = (site_url or '').rstrip('/')
        self.favicon_url = favicon_url
        self.accent_css = accent_css
        self.files_url_prefix = files_url_prefix
        self.site_title = site_title
        self.site_description = site_description
        self.logger = logger or logging.getLogger('portfolio_export.renderers')

        self.env = create_jinja_env(template_dir)
        self.env.filters['file_url'] = self.file_url
        self.env.globals['icon'] = icons.render
        self.env.globals['icons_script'] = icons.theme_script

    def file_url(self, ref: Optional[FileRef]) -> str:
        return ref.url(self.files_url_prefix) if ref else ''

    def render(self, template_name: str, page: str, **context: Any) -> str:
        """
        Render a template.

        Args:
            template_name: Template file name
            page: Output URL path, used for og:url and error reporting
            **context: Template variables

        Returns:
            HTML text

        Raises:
            RenderFailure: If the template raises
        """
        base_context = {
            'page_url': f"{self.site_url}{page}" if self.site_url else '',
            'site_url': self.site_url,
            'favicon_url': self.favicon_url,
            'accent_css': self.accent_css,
            'site_title': self.site_title,
            'site_description': self.site_description,
            'year': date.today().year,
        }
        base_context.update(context)

        try:
            return self.env.get_template(template_name).render(**base_context)
        except Exception as e:
            self.logger.error(f"Template {template_name} failed for {page}: {e}")
            raise RenderFailure(page, e) from e

    def _language_context(self, snapshot: ContentSnapshot, lang: str) -> Dict[str, Any]:
        """Variables shared by every per-language page (header, sidebar, footer)."""
        return {
            'lang': lang,
            't': self.labels.translator(lang),
            'languages': snapshot.languages,
            'current_language': next(
                (language for language in snapshot.languages if language.code == lang),
                snapshot.languages[0] if snapshot.languages else None
            ),
            'profile': snapshot.profile,
            'socials': snapshot.socials,
            'categories': snapshot.categories,
            'visible_categories': snapshot.categories[:MAX_VISIBLE_CATEGORIES],
            'overflow_categories': snapshot.categories[MAX_VISIBLE_CATEGORIES:],
        }

    def render_redirect(self, default_code: str) -> str:
        """Root page redirecting to the default language."""
        return REDIRECT_TEMPLATE.format(code=escape(default_code))

    def render_not_found(self) -> str:
        return self.render('404.html', '/404.html', lang='en', t=self.labels.translator('en'))

    def render_home(self, snapshot: ContentSnapshot, lang: str) -> str:
        return self.render(
            'home.html', f"/{lang}",
            featured_projects=snapshot.featured_projects,
            skills=snapshot.skills,
            **self._language_context(snapshot, lang)
        )

    def render_projects_index(self, snapshot: ContentSnapshot, lang: str) -> str:
        return self.render(
            'projects.html', f"/{lang}/projects",
            projects=snapshot.projects,
            **self._language_context(snapshot, lang)
        )

    def render_project(self, snapshot: ContentSnapshot, lang: str, project: Project,
                       resources: List[Resource]) -> str:
        """Project detail page; ``resources`` are already filtered for ``lang``."""
        return self.render(
            'project.html', f"/{lang}/projects/{project.slug}",
            project=project,
            resources=resources,
            **self._language_context(snapshot, lang)
        )

    def render_category(self, snapshot: ContentSnapshot, lang: str, category: Category,
                        items: List[Item], item_resources: Dict[str, List[Resource]]) -> str:
        """Category page; ``item_resources`` are already filtered for ``lang``."""
        return self.render(
            'category.html', f"/{lang}/{category.slug}",
            category=category,
            items=items,
            item_resources=item_resources,
            **self._language_context(snapshot, lang)
        )


__all__ = ['TemplateRenderer', 'create_jinja_env', 'TEMPLATE_DIR', 'MAX_VISIBLE_CATEGORIES']
