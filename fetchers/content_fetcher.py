"""Retrieval of backend records into typed models."""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from backend_client import BackendClient, equals_filter
from models import (
    Category, ContentSnapshot, Item, Language, Profile, Project, Resource,
    Settings, Skill, Social, select_default_language
)

# Backend collection names
LANGUAGES = 'languages'
PROFILE = 'profile'
SETTINGS = 'settings'
CATEGORIES = 'categories'
SOCIALS = 'socials'
SKILLS = 'skills'
PROJECTS = 'projects'
ITEMS = 'items'
RESOURCES = 'resources'

PUBLISHED_FILTER = equals_filter('published', True)
FEATURED_FILTER = f"{PUBLISHED_FILTER} && {equals_filter('featured', True)}"


class ContentFetcher:
    """Fetches the content snapshot and the per-page dependent records."""

    def __init__(self, client: BackendClient, config: Optional[Dict[str, Any]] = None,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize content fetcher.

        Args:
            client: Backend client
            config: Configuration dictionary (reads ``content.sort``)
            logger: Logger instance
        """
        self.client = client
        self.config = config or {}
        self.logger = logger or logging.getLogger('portfolio_export.fetcher')
        self.sort: Dict[str, str] = self.config.get('content', {}).get('sort') or {}

    def _sort(self, collection: str) -> Optional[str]:
        return self.sort.get(collection) or None

    async def fetch_snapshot(self) -> ContentSnapshot:
        """
        Issue the eight top-level fetches concurrently and join them.

        The first failure propagates; the snapshot is never partial.

        Returns:
            ContentSnapshot
        """
        self.logger.info("Fetching content from backend")

        (languages, profile, settings, categories, socials, skills,
         projects, featured) = await asyncio.gather(
            self.client.fetch_all(LANGUAGES, sort=self._sort(LANGUAGES)),
            self.client.fetch_first(PROFILE),
            self.client.fetch_first(SETTINGS),
            self.client.fetch_all(CATEGORIES, sort=self._sort(CATEGORIES)),
            self.client.fetch_all(SOCIALS, sort=self._sort(SOCIALS)),
            self.client.fetch_all(SKILLS, sort=self._sort(SKILLS)),
            self.client.fetch_all(PROJECTS, filter=PUBLISHED_FILTER, sort=self._sort(PROJECTS),
                                  expand='technologies'),
            self.client.fetch_all(PROJECTS, filter=FEATURED_FILTER, sort=self._sort(PROJECTS),
                                  expand='technologies'),
        )

        language_models = [Language.from_record(record) for record in languages]
        snapshot = ContentSnapshot(
            languages=language_models,
            default_language=select_default_language(language_models),
            profile=Profile.from_record(profile) if profile else None,
            settings=Settings.from_record(settings) if settings else None,
            categories=[Category.from_record(record) for record in categories],
            socials=[Social.from_record(record) for record in socials],
            skills=[Skill.from_record(record) for record in skills],
            projects=_published(projects),
            featured_projects=_published(featured)
        )

        self.logger.info(
            f"Fetched {len(snapshot.languages)} languages, {len(snapshot.categories)} categories, "
            f"{len(snapshot.projects)} published projects ({len(snapshot.featured_projects)} featured)"
        )
        return snapshot

    async def fetch_items_by_category(self, category_id: str) -> List[Item]:
        records = await self.client.fetch_by_field(ITEMS, 'category', category_id, sort=self._sort(ITEMS))
        return [Item.from_record(record) for record in records]

    async def fetch_resources_by_project(self, project_id: str) -> List[Resource]:
        records = await self.client.fetch_by_field(
            RESOURCES, 'project', project_id, sort=self._sort(RESOURCES), expand='lang'
        )
        return [Resource.from_record(record) for record in records]

    async def fetch_resources_by_item(self, item_id: str) -> List[Resource]:
        records = await self.client.fetch_by_field(
            RESOURCES, 'item', item_id, sort=self._sort(RESOURCES), expand='lang'
        )
        return [Resource.from_record(record) for record in records]

    async def fetch_resources_grouped_by_item(self, items: List[Item]) -> Dict[str, List[Resource]]:
        """
        Fetch the resources of every item concurrently, one request per item.

        Returns:
            Mapping of item id to its resources
        """
        results = await asyncio.gather(*(self.fetch_resources_by_item(item.id) for item in items))
        return {item.id: resources for item, resources in zip(items, results)}


def _published(records: List[Dict[str, Any]]) -> List[Project]:
    projects = [Project.from_record(record) for record in records]
    return [project for project in projects if project.published]


__all__ = ['ContentFetcher']
