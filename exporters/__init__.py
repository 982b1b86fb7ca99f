"""Export package writing the static site.

Package Structure:
- page_generator: Expands the content snapshot into the page tree and writes it
- asset_downloader: Mirrors backend files into the local asset cache
- style_builder: Runs the external CSS tool
- static_assets: Copies the static directory into the output root

Configuration Referenced:
- export.output_directory / export.static_directory
- assets.cache_directory, assets.concurrency, assets.file_fields
- styles.enabled, styles.command
"""

from .asset_downloader import AssetDownloader, DownloadReport
from .page_generator import PageTreeGenerator, WrittenPage, check_slugs
from .static_assets import copy_static_assets
from .style_builder import StyleBuilder

__all__ = [
    'AssetDownloader',
    'DownloadReport',
    'PageTreeGenerator',
    'WrittenPage',
    'check_slugs',
    'StyleBuilder',
    'copy_static_assets'
]
