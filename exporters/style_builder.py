"""Stylesheet build through the external CSS tool."""

import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional

from errors import StyleBuildError


class StyleBuilder:
    """
    Runs the configured style command to produce ``<output>/css/style.css``.

    Command parts may reference ``{input}``, ``{output}`` and ``{content}``
    (content globs joined with commas).
    """

    def __init__(self, config: Dict[str, Any], output_dir: Path, logger: Optional[logging.Logger] = None):
        styles = config.get('styles', {})
        self.enabled = styles.get('enabled', True)
        self.command: List[str] = list(styles.get('command') or [])
        self.input_path = styles.get('input', 'styles/globals.css')
        self.output_path = Path(output_dir) / styles.get('output', 'css/style.css')
        self.content: List[str] = list(styles.get('content') or [])
        self.working_directory = styles.get('working_directory')
        self.logger = logger or logging.getLogger('portfolio_export.exporters.style_builder')

    def build_command(self) -> List[str]:
        values = {
            'input': str(self.input_path),
            'output': str(self.output_path),
            'content': ','.join(self.content),
        }
        return [part.format(**values) for part in self.command]

    def build(self) -> Optional[Path]:
        """
        Build the stylesheet.

        Returns:
            Path of the generated stylesheet, or None when disabled

        Raises:
            StyleBuildError: If the tool is missing or exits non-zero
        """
        if not self.enabled:
            self.logger.warning("Style build disabled; pages will reference a missing /css/style.css")
            return None

        command = self.build_command()
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self.logger.info(f"Building CSS: {' '.join(command)}")

        try:
            subprocess.run(command, check=True, cwd=self.working_directory)
        except FileNotFoundError as e:
            raise StyleBuildError(f"Style tool not found: {command[0]}") from e
        except subprocess.CalledProcessError as e:
            raise StyleBuildError(f"Style tool exited with status {e.returncode}") from e

        if not self.output_path.exists():
            raise StyleBuildError(f"Style tool produced no output at {self.output_path}")

        return self.output_path


__all__ = ['StyleBuilder']
