"""Data models for the portfolio export pipeline."""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger('portfolio_export')

FALLBACK_LANGUAGE = 'en'

# Suffix of a localized backend field, e.g. the "fr" in "title_fr" or the "pt_BR" in "title_pt_BR"
LANGUAGE_SUFFIX_PATTERN = re.compile(r'^[a-z]{2,3}(?:_[A-Za-z]{2,4})?$')


def _as_str(record: Dict[str, Any], key: str) -> str:
    value = record.get(key)
    return value if isinstance(value, str) else ''


def _as_relation(record: Dict[str, Any], key: str) -> Optional[str]:
    """Single relation field: a record id, or None when the relation is empty."""
    value = record.get(key)
    if isinstance(value, list):
        value = value[0] if value else None
    return value or None


def _as_relation_list(record: Dict[str, Any], key: str) -> List[str]:
    value = record.get(key)
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, list):
        return [item for item in value if isinstance(item, str) and item]
    return []


def _expanded(record: Dict[str, Any], key: str) -> Any:
    expand = record.get('expand')
    if isinstance(expand, dict):
        return expand.get(key)
    return None


@dataclass
class LocalizedText:
    """Per-language values of a single text field, keyed by language code."""

    values: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: Dict[str, Any], field_name: str) -> 'LocalizedText':
        """
        Collect the ``<field>_<lang>`` keys of a raw record into a bundle.

        Args:
            record: Raw backend record
            field_name: Base field name (e.g. "title")

        Returns:
            LocalizedText with one entry per language suffix found
        """
        prefix = f"{field_name}_"
        values = {}
        for key, value in record.items():
            if not key.startswith(prefix) or not isinstance(value, str):
                continue
            suffix = key[len(prefix):]
            if LANGUAGE_SUFFIX_PATTERN.match(suffix):
                values[suffix] = value
        return cls(values)

    def get(self, lang: str, fallback: str = FALLBACK_LANGUAGE) -> str:
        """Value for ``lang``, or the fallback language value when missing or empty."""
        value = self.values.get(lang)
        if value:
            return value
        return self.values.get(fallback) or ''

    def __bool__(self) -> bool:
        return any(self.values.values())


def localize(entity: Any, field_name: str, lang: str) -> str:
    """
    Resolve a localized field of an entity for a language.

    Falls back to the English value when the requested language is missing or
    empty; returns an empty string only when the English value is empty too.

    Args:
        entity: Any model carrying a LocalizedText attribute
        field_name: Attribute name (e.g. "title")
        lang: Language code to render

    Returns:
        Localized text
    """
    if entity is None:
        return ''
    value = getattr(entity, field_name, None)
    if isinstance(value, LocalizedText):
        return value.get(lang)
    if isinstance(value, str):
        return value
    return ''


@dataclass(frozen=True)
class FileRef:
    """Reference to a file stored on a backend record."""

    collection: str
    record_id: str
    filename: str

    @classmethod
    def from_record(cls, record: Dict[str, Any], field_name: str) -> Optional['FileRef']:
        """Build a reference for a file field; None unless the value is a non-empty string."""
        filename = record.get(field_name)
        if not isinstance(filename, str) or not filename:
            return None
        return cls(
            collection=record.get('collectionName') or '',
            record_id=record.get('id') or '',
            filename=filename
        )

    @property
    def relative_path(self) -> str:
        """Cache layout path: ``<collection>/<record-id>/<filename>``."""
        return f"{self.collection}/{self.record_id}/{self.filename}"

    def url(self, prefix: str = '/files') -> str:
        """Public link to the mirrored copy of the file."""
        return f"{prefix.rstrip('/')}/{self.relative_path}"


@dataclass
class Language:
    """A site language; one output subtree per code."""

    id: str
    code: str
    name: str = ''
    is_default: bool = False
    flag: str = ''

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Language':
        return cls(
            id=record.get('id', ''),
            code=_as_str(record, 'code'),
            name=_as_str(record, 'name'),
            is_default=bool(record.get('is_default')),
            flag=_as_str(record, 'flag')
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize language to dictionary."""
        return {
            'id': self.id,
            'code': self.code,
            'name': self.name,
            'is_default': self.is_default,
            'flag': self.flag
        }


def select_default_language(languages: List[Language]) -> Optional[Language]:
    """First language flagged as default, else the first fetched language."""
    for language in languages:
        if language.is_default:
            return language
    return languages[0] if languages else None


@dataclass
class Profile:
    id: str
    full_name: LocalizedText
    headline: LocalizedText
    bio: LocalizedText
    email: str = ''
    avatar: Optional[FileRef] = None
    resume: Optional[FileRef] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Profile':
        return cls(
            id=record.get('id', ''),
            full_name=LocalizedText.from_record(record, 'full_name'),
            headline=LocalizedText.from_record(record, 'headline'),
            bio=LocalizedText.from_record(record, 'bio'),
            email=_as_str(record, 'email'),
            avatar=FileRef.from_record(record, 'avatar'),
            resume=FileRef.from_record(record, 'resume')
        )


@dataclass
class Settings:
    id: str
    accent_color: str = ''
    favicon: Optional[FileRef] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Settings':
        return cls(
            id=record.get('id', ''),
            accent_color=_as_str(record, 'accent_color'),
            favicon=FileRef.from_record(record, 'favicon')
        )


@dataclass
class Category:
    """Top-level grouping of items; the slug is the URL segment."""

    id: str
    slug: str
    title: LocalizedText
    icon: str = ''

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Category':
        return cls(
            id=record.get('id', ''),
            slug=_as_str(record, 'slug'),
            title=LocalizedText.from_record(record, 'title'),
            icon=_as_str(record, 'icon')
        )


@dataclass
class Item:
    id: str
    category_id: Optional[str]
    title: LocalizedText
    description: LocalizedText

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Item':
        return cls(
            id=record.get('id', ''),
            category_id=_as_relation(record, 'category'),
            title=LocalizedText.from_record(record, 'title'),
            description=LocalizedText.from_record(record, 'description')
        )


@dataclass
class Resource:
    """
    Attachment of a project or an item.

    ``lang_id`` is a reference to a Language record; None means the resource
    is shown on every language. ``lang_code`` carries the code when the
    backend expanded the relation.
    """

    id: str
    title: LocalizedText
    type: str = ''
    file: Optional[FileRef] = None
    url: str = ''
    lang_id: Optional[str] = None
    lang_code: Optional[str] = None
    project_id: Optional[str] = None
    item_id: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Resource':
        expanded_lang = _expanded(record, 'lang')
        lang_code = None
        if isinstance(expanded_lang, dict):
            lang_code = expanded_lang.get('code') or None
        return cls(
            id=record.get('id', ''),
            title=LocalizedText.from_record(record, 'title'),
            type=_as_str(record, 'type'),
            file=FileRef.from_record(record, 'file'),
            url=_as_str(record, 'url'),
            lang_id=_as_relation(record, 'lang'),
            lang_code=lang_code,
            project_id=_as_relation(record, 'project'),
            item_id=_as_relation(record, 'item')
        )

    def is_visible_in(self, lang: str, language_codes: Dict[str, str]) -> bool:
        """
        Check whether the resource is shown on pages of a language.

        Args:
            lang: Language code being rendered
            language_codes: Mapping of Language record id to code

        Returns:
            True for unscoped resources or resources scoped to ``lang``
        """
        if not self.lang_id:
            return True
        code = self.lang_code or language_codes.get(self.lang_id)
        if code is None:
            logger.debug(f"Resource {self.id} references unknown language {self.lang_id}; hidden")
            return False
        return code == lang


def filter_resources(resources: List[Resource], lang: str, language_codes: Dict[str, str]) -> List[Resource]:
    """Resources visible on pages of ``lang``, in backend order."""
    return [resource for resource in resources if resource.is_visible_in(lang, language_codes)]


@dataclass
class Skill:
    id: str
    name: LocalizedText
    icon: str = ''

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Skill':
        return cls(
            id=record.get('id', ''),
            name=LocalizedText.from_record(record, 'name'),
            icon=_as_str(record, 'icon')
        )


@dataclass
class Social:
    id: str
    name: str
    url: str
    icon: str = ''

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Social':
        return cls(
            id=record.get('id', ''),
            name=_as_str(record, 'name'),
            url=_as_str(record, 'url'),
            icon=_as_str(record, 'icon')
        )


@dataclass
class Project:
    """A portfolio project; only published projects are exported."""

    id: str
    slug: str
    title: LocalizedText
    tagline: LocalizedText
    description: LocalizedText
    published: bool = False
    featured: bool = False
    thumbnail: Optional[FileRef] = None
    hero_image: Optional[FileRef] = None
    technology_ids: List[str] = field(default_factory=list)
    technologies: List[Skill] = field(default_factory=list)
    demo_url: str = ''
    repo_url: str = ''

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Project':
        expanded = _expanded(record, 'technologies') or []
        if isinstance(expanded, dict):
            expanded = [expanded]
        return cls(
            id=record.get('id', ''),
            slug=_as_str(record, 'slug'),
            title=LocalizedText.from_record(record, 'title'),
            tagline=LocalizedText.from_record(record, 'tagline'),
            description=LocalizedText.from_record(record, 'description'),
            published=bool(record.get('published')),
            featured=bool(record.get('featured')),
            thumbnail=FileRef.from_record(record, 'thumbnail'),
            hero_image=FileRef.from_record(record, 'hero_image'),
            technology_ids=_as_relation_list(record, 'technologies'),
            technologies=[Skill.from_record(skill) for skill in expanded if isinstance(skill, dict)],
            demo_url=_as_str(record, 'demo_url'),
            repo_url=_as_str(record, 'repo_url')
        )

    @property
    def og_image(self) -> Optional[FileRef]:
        return self.thumbnail or self.hero_image


@dataclass
class ContentSnapshot:
    """
    Everything fetched before page generation starts.

    Immutable for the duration of a build; pages are a function of the
    snapshot plus the per-page resource and item fetches.
    """

    languages: List[Language]
    default_language: Optional[Language]
    profile: Optional[Profile] = None
    settings: Optional[Settings] = None
    categories: List[Category] = field(default_factory=list)
    socials: List[Social] = field(default_factory=list)
    skills: List[Skill] = field(default_factory=list)
    projects: List[Project] = field(default_factory=list)
    featured_projects: List[Project] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Resolve project technologies the backend did not expand."""
        skills_by_id = {skill.id: skill for skill in self.skills}
        for project in self.projects + self.featured_projects:
            if project.technologies or not project.technology_ids:
                continue
            project.technologies = [
                skills_by_id[skill_id] for skill_id in project.technology_ids if skill_id in skills_by_id
            ]

    @property
    def language_codes(self) -> Dict[str, str]:
        """Mapping of Language record id to code."""
        return {language.id: language.code for language in self.languages}

    def expected_page_count(self) -> int:
        """Pages a build of this snapshot writes: root redirect, 404, and per-language pages."""
        languages = len(self.languages)
        return 2 + languages * (2 + len(self.projects)) + languages * len(self.categories)

    def to_dict(self) -> Dict[str, Any]:
        """Summary counts for reports."""
        return {
            'languages': [language.code for language in self.languages],
            'default_language': self.default_language.code if self.default_language else None,
            'categories': len(self.categories),
            'projects': len(self.projects),
            'featured_projects': len(self.featured_projects),
            'skills': len(self.skills),
            'socials': len(self.socials),
            'has_profile': self.profile is not None,
            'has_settings': self.settings is not None
        }


__all__ = [
    'FALLBACK_LANGUAGE',
    'LocalizedText',
    'localize',
    'FileRef',
    'Language',
    'select_default_language',
    'Profile',
    'Settings',
    'Category',
    'Item',
    'Resource',
    'filter_resources',
    'Skill',
    'Social',
    'Project',
    'ContentSnapshot'
]
