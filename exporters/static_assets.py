"""Copy of the static asset directory (including the asset cache) into the output."""

import logging
import shutil
from pathlib import Path
from typing import Optional

logger = logging.getLogger('portfolio_export.exporters.static_assets')


def copy_static_assets(source: Path, destination: Path, log: Optional[logging.Logger] = None) -> int:
    """
    Recursively copy ``source`` into ``destination``.

    Args:
        source: Static asset directory
        destination: Output root

    Returns:
        Number of files copied (0 when the source is missing)
    """
    log = log or logger
    source = Path(source)

    if not source.is_dir():
        log.warning(f"Static asset directory not found: {source}")
        return 0

    shutil.copytree(source, destination, dirs_exist_ok=True)
    copied = sum(1 for path in source.rglob('*') if path.is_file())
    log.info(f"Copied {copied} static file(s) from {source}")
    return copied


__all__ = ['copy_static_assets']
