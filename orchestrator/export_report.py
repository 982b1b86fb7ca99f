"""
Export report generator.

Aggregates the statistics of an export or mirroring run and formats them
for console display and JSON export.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from exporters.asset_downloader import DownloadReport
from logger import format_elapsed


class ExportReport:
    """Builds run reports from orchestrator phase statistics and download results."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('portfolio_export.report')

    def generate_report(
        self,
        phase_stats: Optional[Dict[str, Any]] = None,
        download_report: Optional[DownloadReport] = None,
        duration: float = 0.0
    ) -> Dict[str, Any]:
        """
        Generate a report for one run.

        Args:
            phase_stats: Statistics returned by ExportOrchestrator.run (None if no export ran)
            download_report: Outcome of asset mirroring (None if no mirroring ran)
            duration: Total run duration in seconds

        Returns:
            Report dictionary
        """
        phase_stats = phase_stats or {}
        pages = phase_stats.get('pages', [])

        pages_by_kind: Dict[str, int] = {}
        for page in pages:
            pages_by_kind[page['kind']] = pages_by_kind.get(page['kind'], 0) + 1

        report = {
            'summary': {
                'page_count': phase_stats.get('page_count', len(pages)),
                'pages_by_kind': pages_by_kind,
                'bytes_written': sum(page.get('size_bytes', 0) for page in pages),
                'static_files': phase_stats.get('static_assets', {}).get('files_copied', 0),
                'stylesheet': phase_stats.get('styles', {}).get('stylesheet'),
                'output_directory': phase_stats.get('output_directory'),
                'duration_seconds': duration,
                'duration_formatted': format_elapsed(duration)
            },
            'content': phase_stats.get('content', {}),
            'assets': download_report.to_dict() if download_report else None,
            'pages': pages,
            'timestamp': datetime.now().isoformat()
        }

        self.logger.debug(f"Report generated: {report['summary']['page_count']} pages")
        return report

    def format_console_report(self, report: Dict[str, Any]) -> str:
        """
        Format report for console display.

        Args:
            report: Report dictionary

        Returns:
            Formatted console string
        """
        summary = report.get('summary', {})
        sections = []

        sections.append("=" * 60)
        sections.append("EXPORT REPORT")
        sections.append("=" * 60)

        assets = report.get('assets')
        if assets is not None:
            sections.append("Assets:")
            sections.append(f"  Downloaded:  {assets.get('downloaded', 0)}")
            sections.append(f"  Cached:      {assets.get('skipped', 0)}")
            sections.append(f"  Failed:      {assets.get('failed', 0)}")
            sections.append(f"  Bytes:       {assets.get('bytes_downloaded', 0)}")
            for failure in assets.get('failures', [])[:10]:
                sections.append(
                    f"    - {failure['collection']}/{failure['record_id']}/{failure['filename']}: "
                    f"{failure['reason']}"
                )

        if summary.get('output_directory'):
            sections.append("Pages:")
            for kind, count in sorted(summary.get('pages_by_kind', {}).items()):
                sections.append(f"  {kind + ':':<12} {count}")
            sections.append(f"  Output:      {summary['output_directory']}")
            sections.append(f"  Static:      {summary.get('static_files', 0)} files")
            if summary.get('stylesheet'):
                sections.append(f"  Stylesheet:  {summary['stylesheet']}")

        sections.append(f"Duration:      {summary.get('duration_formatted', '0s')}")
        sections.append("=" * 60)

        if summary.get('output_directory'):
            sections.append(f"Done! Generated {summary.get('page_count', 0)} pages.")

        return "\n".join(sections)

    def export_json_report(self, report: Dict[str, Any], filepath: str) -> None:
        """
        Export report to JSON file.

        Args:
            report: Report dictionary
            filepath: Output file path
        """
        try:
            with open(filepath, 'w', encoding='utf-8') as f:
                json.dump(report, f, indent=2, ensure_ascii=False, default=str)

            self.logger.info(f"JSON report exported to {filepath}")

        except OSError as e:
            self.logger.error(f"Failed to export JSON report: {str(e)}")


__all__ = ['ExportReport']
