"""Asset downloader mirroring backend files into the local asset cache."""

import asyncio
import logging
import os
import sys
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import aiofiles
from tqdm import tqdm

from backend_client import BackendClient
from config_loader import DEFAULT_FILE_FIELDS
from errors import AssetDownloadFailure, BackendUnavailable
from models import FileRef

DOWNLOADED = 'downloaded'
SKIPPED = 'skipped'
FAILED = 'failed'


@dataclass
class DownloadReport:
    """Outcome of one mirroring run."""

    downloaded: int = 0
    skipped: int = 0
    failed: int = 0
    bytes_downloaded: int = 0
    failures: List[AssetDownloadFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.downloaded + self.skipped + self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            'downloaded': self.downloaded,
            'skipped': self.skipped,
            'failed': self.failed,
            'bytes_downloaded': self.bytes_downloaded,
            'failures': [failure.to_dict() for failure in self.failures]
        }


class AssetDownloader:
    """
    Mirrors record file fields to ``<cache>/<collection>/<record-id>/<filename>``.

    This downloader:
    1. Lists every collection that carries file fields
    2. Skips files already present in the cache
    3. Downloads the rest concurrently, bounded by ``assets.concurrency``
    4. Writes each file to a temporary sibling, then renames it into place
    5. Counts non-2xx responses as failures without aborting the run

    Cache hits are trusted as-is; contents are never re-verified.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        client: BackendClient,
        cache_dir: Optional[Path] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the asset downloader.

        Args:
            config: Configuration dictionary
            client: Backend client used for listings and file downloads
            cache_dir: Cache root (defaults to ``assets.cache_directory``)
            logger: Logger instance
        """
        self.config = config
        self.client = client
        self.logger = logger or logging.getLogger('portfolio_export.exporters.asset_downloader')

        asset_config = config.get('assets', {})
        self.cache_dir = Path(cache_dir or asset_config.get('cache_directory', 'public/files'))
        self.file_fields: Dict[str, List[str]] = asset_config.get('file_fields') or DEFAULT_FILE_FIELDS
        self.concurrency = asset_config.get('concurrency', 8)
        self.show_progress = asset_config.get('progress_bars', True)

        self._semaphore = asyncio.Semaphore(self.concurrency)
        self._locks: Dict[Path, asyncio.Lock] = {}

    def target_path(self, ref: FileRef) -> Path:
        """Cache path of a file reference."""
        return self.cache_dir / ref.collection / ref.record_id / ref.filename

    async def collect_refs(self) -> List[FileRef]:
        """
        List every configured collection and gather its non-empty file fields.

        Raises:
            BackendUnavailable: If a collection listing fails
        """
        collections = list(self.file_fields)
        listings = await asyncio.gather(*(self.client.fetch_all(name) for name in collections))

        refs = []
        for collection, records in zip(collections, listings):
            for record in records:
                for field_name in self.file_fields[collection]:
                    filename = record.get(field_name)
                    if isinstance(filename, str) and filename:
                        refs.append(FileRef(collection, record.get('id', ''), filename))

        self.logger.debug(f"Found {len(refs)} file reference(s) in {len(collections)} collection(s)")
        return refs

    async def download_all(self) -> DownloadReport:
        """Mirror every file referenced by the configured collections."""
        refs = await self.collect_refs()
        return await self.mirror(refs)

    async def mirror(self, refs: Iterable[FileRef]) -> DownloadReport:
        """
        Mirror file references into the cache.

        Duplicate references collapse to one download; each target path is
        written at most once.

        Args:
            refs: File references to mirror

        Returns:
            DownloadReport with per-outcome counts
        """
        unique: Dict[Path, FileRef] = {}
        for ref in refs:
            unique.setdefault(self.target_path(ref), ref)

        report = DownloadReport()

        with tqdm(total=len(unique), desc="Assets", unit="file", leave=False,
                  disable=not self._should_show_progress()) as progress:

            async def run(ref: FileRef) -> None:
                outcome = await self._mirror_one(ref, report)
                setattr(report, outcome, getattr(report, outcome) + 1)
                progress.update(1)

            await asyncio.gather(*(run(ref) for ref in unique.values()))

        self.logger.info(
            f"Done: {report.downloaded} downloaded, {report.skipped} cached, {report.failed} failed "
            f"({report.bytes_downloaded} bytes)."
        )
        return report

    async def _mirror_one(self, ref: FileRef, report: DownloadReport) -> str:
        """Download a single file unless it is already cached; returns the outcome."""
        if not _is_safe_segment(ref.filename) or not _is_safe_segment(ref.record_id):
            self._record_failure(report, ref, "unsafe file name")
            return FAILED

        target = self.target_path(ref)
        lock = self._locks.setdefault(target, asyncio.Lock())

        async with lock:
            if target.exists():
                self.logger.debug(f"Cached: {ref.relative_path}")
                return SKIPPED

            async with self._semaphore:
                try:
                    status, body = await self.client.download_file(ref.collection, ref.record_id, ref.filename)
                except BackendUnavailable as e:
                    self._record_failure(report, ref, str(e))
                    return FAILED

            if body is None:
                self._record_failure(report, ref, f"HTTP {status}")
                return FAILED

            try:
                await _write_atomic(target, body)
            except OSError as e:
                self._record_failure(report, ref, f"write failed: {e}")
                return FAILED

        report.bytes_downloaded += len(body)
        self.logger.debug(f"Downloaded: {ref.relative_path} ({len(body)} bytes)")
        return DOWNLOADED

    def _record_failure(self, report: DownloadReport, ref: FileRef, reason: str) -> None:
        failure = AssetDownloadFailure(ref.collection, ref.record_id, ref.filename, reason)
        report.failures.append(failure)
        self.logger.warning(f"Failed to download {failure}")

    def _should_show_progress(self) -> bool:
        """Check if progress bars should be displayed."""
        return bool(self.show_progress) and sys.stderr.isatty()


def _is_safe_segment(value: str) -> bool:
    return bool(value) and value not in ('.', '..') and '/' not in value and '\\' not in value


async def _write_atomic(target: Path, data: bytes) -> None:
    """Write to a temporary sibling and rename it over the target."""
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = target.with_name(f".{target.name}.{uuid.uuid4().hex}.part")
    try:
        async with aiofiles.open(tmp_path, 'wb') as f:
            await f.write(data)
        os.replace(tmp_path, target)
    except OSError:
        if tmp_path.exists():
            tmp_path.unlink()
        raise


__all__ = ['AssetDownloader', 'DownloadReport']
