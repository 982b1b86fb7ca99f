"""Page tree generation: enumerates, renders and writes every page of the site."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles

from errors import ConfigurationError
from fetchers.content_fetcher import ContentFetcher
from logger import ProgressTracker
from models import ContentSnapshot, filter_resources
from renderers.template_renderer import TemplateRenderer

INDEX_FILE = 'index.html'
NOT_FOUND_FILE = '404.html'

LANGUAGE_CODE_PATTERN = re.compile(r'[A-Za-z0-9_-]+')


@dataclass
class WrittenPage:
    """A page written to the output directory."""

    url_path: str
    output_path: Path
    kind: str
    size_bytes: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url_path': self.url_path,
            'output_path': str(self.output_path),
            'kind': self.kind,
            'size_bytes': self.size_bytes
        }


class PageTreeGenerator:
    """
    Expands a content snapshot into the page tree.

    Order: root redirect, shared 404, then per language the home page, the
    projects index, one page per published project and one page per category.
    Any render failure aborts generation.
    """

    def __init__(
        self,
        fetcher: ContentFetcher,
        renderer: TemplateRenderer,
        output_dir: Path,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the page tree generator.

        Args:
            fetcher: Content fetcher for per-page records (items, resources)
            renderer: Template renderer for this build
            output_dir: Output root
            logger: Logger instance
        """
        self.fetcher = fetcher
        self.renderer = renderer
        self.output_dir = Path(output_dir)
        self.logger = logger or logging.getLogger('portfolio_export.exporters.page_generator')
        self.pages: List[WrittenPage] = []

    async def generate(self, snapshot: ContentSnapshot) -> List[WrittenPage]:
        """
        Render and write every page.

        Args:
            snapshot: Content snapshot fetched for this build

        Returns:
            Written pages in generation order

        Raises:
            ConfigurationError: If there is no language or a slug is unusable
            RenderFailure: If a template raises
            BackendUnavailable: If a per-page fetch fails
        """
        if snapshot.default_language is None:
            raise ConfigurationError("No languages configured in the backend")

        check_slugs(snapshot)
        self.pages = []
        language_codes = snapshot.language_codes
        projects = [project for project in snapshot.projects if project.published]

        with ProgressTracker(snapshot.expected_page_count(), "pages", self.logger) as tracker:
            await self._write(
                '/', [INDEX_FILE], self.renderer.render_redirect(snapshot.default_language.code), 'redirect'
            )
            tracker.increment()

            await self._write('/404.html', [NOT_FOUND_FILE], self.renderer.render_not_found(), 'not_found')
            tracker.increment()

            for language in snapshot.languages:
                lang = language.code
                self.logger.info(f"Generating pages for language '{lang}'")

                await self._write(
                    f"/{lang}", [lang, INDEX_FILE], self.renderer.render_home(snapshot, lang), 'home'
                )
                tracker.increment()

                await self._write(
                    f"/{lang}/projects", [lang, 'projects', INDEX_FILE],
                    self.renderer.render_projects_index(snapshot, lang), 'projects'
                )
                tracker.increment()

                for project in projects:
                    resources = await self.fetcher.fetch_resources_by_project(project.id)
                    visible = filter_resources(resources, lang, language_codes)
                    await self._write(
                        f"/{lang}/projects/{project.slug}", [lang, 'projects', project.slug, INDEX_FILE],
                        self.renderer.render_project(snapshot, lang, project, visible), 'project'
                    )
                    tracker.increment()

                for category in snapshot.categories:
                    items = await self.fetcher.fetch_items_by_category(category.id)
                    grouped = await self.fetcher.fetch_resources_grouped_by_item(items)
                    visible_by_item = {
                        item_id: filter_resources(resources, lang, language_codes)
                        for item_id, resources in grouped.items()
                    }
                    await self._write(
                        f"/{lang}/{category.slug}", [lang, category.slug, INDEX_FILE],
                        self.renderer.render_category(snapshot, lang, category, items, visible_by_item),
                        'category'
                    )
                    tracker.increment()

        return list(self.pages)

    async def _write(self, url_path: str, parts: List[str], html: str, kind: str) -> WrittenPage:
        path = self.output_dir.joinpath(*parts)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = html.encode('utf-8')
        async with aiofiles.open(path, 'wb') as f:
            await f.write(data)

        page = WrittenPage(url_path=url_path, output_path=path, kind=kind, size_bytes=len(data))
        self.pages.append(page)
        self.logger.debug(f"Wrote {url_path} -> {path}")
        return page


def check_slugs(snapshot: ContentSnapshot) -> None:
    """
    Validate every path segment the page tree will use.

    Slugs must be single, non-empty segments, unique within their kind; a
    category may not shadow the projects index. Language codes are limited
    to letters, digits, ``-`` and ``_``.

    Raises:
        ConfigurationError: On the first unusable slug or language code
    """
    category_slugs = set()
    for category in snapshot.categories:
        _check_segment(category.slug, f"category {category.id}")
        if category.slug in category_slugs or category.slug == 'projects':
            raise ConfigurationError(f"Duplicate or reserved category slug '{category.slug}'")
        category_slugs.add(category.slug)

    project_slugs = set()
    for project in snapshot.projects:
        _check_segment(project.slug, f"project {project.id}")
        if project.slug in project_slugs:
            raise ConfigurationError(f"Duplicate project slug '{project.slug}'")
        project_slugs.add(project.slug)

    for language in snapshot.languages:
        if not LANGUAGE_CODE_PATTERN.fullmatch(language.code or ''):
            raise ConfigurationError(f"language {language.id} has an unusable code '{language.code}'")


def _check_segment(value: str, owner: str) -> None:
    if not value or value in ('.', '..') or '/' in value or '\\' in value:
        raise ConfigurationError(f"{owner} has an unusable slug '{value}'")


__all__ = ['PageTreeGenerator', 'WrittenPage', 'check_slugs']
