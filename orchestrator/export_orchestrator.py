"""
Export orchestrator for sequencing a static build.

The build is a linear state machine without back-edges:
Init → FetchContent → ValidateLanguages → ResetOutputDir → BuildStyles →
CopyStaticAssets → GeneratePages → Done. Every fatal error propagates with
the failing state recorded.
"""

import logging
import shutil
import time
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from backend_client import BackendClient
from errors import ConfigurationError
from exporters.page_generator import PageTreeGenerator, check_slugs
from exporters.static_assets import copy_static_assets
from exporters.style_builder import StyleBuilder
from fetchers.content_fetcher import ContentFetcher
from logger import log_section
from models import ContentSnapshot
from renderers import IconCache, Labels, TemplateRenderer, accent_css


class ExportState(Enum):
    """Steps of a build, in execution order."""
    INIT = "init"
    FETCH_CONTENT = "fetch_content"
    VALIDATE_LANGUAGES = "validate_languages"
    RESET_OUTPUT_DIR = "reset_output_dir"
    BUILD_STYLES = "build_styles"
    COPY_STATIC_ASSETS = "copy_static_assets"
    GENERATE_PAGES = "generate_pages"
    DONE = "done"


class ExportOrchestrator:
    """Central coordinator running one static build from a clean output directory."""

    def __init__(
        self,
        config: Dict[str, Any],
        client: Optional[BackendClient] = None,
        style_builder: Optional[StyleBuilder] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize export orchestrator.

        Args:
            config: Configuration dictionary
            client: Backend client (created from config and closed after the run if omitted)
            style_builder: Style builder (created from config if omitted)
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger('portfolio_export.orchestrator')

        export_config = config.get('export', {})
        self.output_dir = Path(export_config.get('output_directory', 'dist'))
        self.static_dir = Path(export_config.get('static_directory', 'public'))

        self._client = client
        self._owns_client = client is None
        self.style_builder = style_builder or StyleBuilder(config, self.output_dir, self.logger)

        self.state = ExportState.INIT
        self.phase_stats: Dict[str, Any] = {}
        self.snapshot: Optional[ContentSnapshot] = None

    def _enter(self, state: ExportState) -> None:
        self.logger.debug(f"State: {self.state.value} -> {state.value}")
        self.state = state

    async def run(self) -> Dict[str, Any]:
        """
        Run the build.

        Returns:
            Phase statistics including ``page_count``

        Raises:
            ConfigurationError: No languages, unusable slugs, unsafe output directory
            BackendUnavailable: Backend failure during any fetch
            StyleBuildError: Style tool failure
            RenderFailure: Template failure
        """
        start_time = time.time()
        self._check_output_dir()
        client = self._client or BackendClient.from_config(self.config)

        try:
            fetcher = ContentFetcher(client, self.config, self.logger.getChild('fetcher'))

            self._enter(ExportState.FETCH_CONTENT)
            log_section("Fetching content")
            snapshot = await fetcher.fetch_snapshot()
            self.snapshot = snapshot
            self.phase_stats['content'] = snapshot.to_dict()

            self._enter(ExportState.VALIDATE_LANGUAGES)
            if not snapshot.languages:
                raise ConfigurationError("No languages configured in the backend")
            check_slugs(snapshot)
            self.logger.info(f"Default language: {snapshot.default_language.code}")

            self._enter(ExportState.RESET_OUTPUT_DIR)
            reset_output_dir(self.output_dir, self.logger)

            self._enter(ExportState.BUILD_STYLES)
            log_section("Building styles")
            stylesheet = self.style_builder.build()
            self.phase_stats['styles'] = {'stylesheet': str(stylesheet) if stylesheet else None}

            self._enter(ExportState.COPY_STATIC_ASSETS)
            copied = copy_static_assets(self.static_dir, self.output_dir, self.logger)
            self.phase_stats['static_assets'] = {'files_copied': copied}

            self._enter(ExportState.GENERATE_PAGES)
            log_section("Generating pages")
            renderer = self._create_renderer(snapshot)
            generator = PageTreeGenerator(fetcher, renderer, self.output_dir, self.logger.getChild('pages'))
            pages = await generator.generate(snapshot)
            self.phase_stats['pages'] = [page.to_dict() for page in pages]
            self.phase_stats['icons'] = dict(renderer.icons.stats)

            self._enter(ExportState.DONE)
        except Exception:
            self.logger.error(f"Export failed during {self.state.value}")
            raise
        finally:
            if self._owns_client:
                await client.close()

        self.phase_stats['page_count'] = len(pages)
        self.phase_stats['duration'] = time.time() - start_time
        self.phase_stats['output_directory'] = str(self.output_dir)
        self.phase_stats['requests'] = client.stats.get('requests', 0)
        return self.phase_stats

    def _create_renderer(self, snapshot: ContentSnapshot) -> TemplateRenderer:
        """Build the per-build renderer with a fresh icon cache."""
        site = self.config.get('site', {})
        content = self.config.get('content', {})
        files_prefix = content.get('files_url_prefix', '/files')
        settings = snapshot.settings

        return TemplateRenderer(
            icons=IconCache(site.get('icons_directory'), self.logger.getChild('icons')),
            labels=Labels.load(site.get('labels_file')),
            site_url=site.get('url', ''),
            favicon_url=settings.favicon.url(files_prefix) if settings and settings.favicon else None,
            accent_css=accent_css(settings.accent_color) if settings else None,
            files_url_prefix=files_prefix,
            site_title=site.get('title', 'Portfolio'),
            site_description=site.get('description', 'Personal portfolio'),
            logger=self.logger.getChild('renderer')
        )

    def _check_output_dir(self) -> None:
        """The output directory is wiped on every run; refuse locations that hold inputs."""
        output = self.output_dir.resolve()
        static = self.static_dir.resolve()
        if output == Path(output.anchor) or output == Path.cwd().resolve():
            raise ConfigurationError(f"Refusing to use {self.output_dir} as output directory")
        if output == static or output in static.parents or static in output.parents:
            raise ConfigurationError(
                f"Output directory {self.output_dir} overlaps the static directory {self.static_dir}"
            )


def reset_output_dir(path: Path, logger: Optional[logging.Logger] = None) -> None:
    """
    Empty and recreate the output directory.

    When the directory itself cannot be removed (busy, e.g. served by a
    running preview), its children are removed one by one instead; errors
    in that second pass propagate.
    """
    logger = logger or logging.getLogger('portfolio_export.orchestrator')
    path = Path(path)

    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove {path} ({e}); removing its contents instead")
        for child in path.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()

    path.mkdir(parents=True, exist_ok=True)


__all__ = ['ExportOrchestrator', 'ExportState', 'reset_output_dir']
