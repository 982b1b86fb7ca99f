"""
Orchestration package for coordinating the export pipeline.

This package sequences a build: Fetch content → Validate languages →
Reset output → Build styles → Copy static assets → Generate pages, and
formats the run report.
"""

from .export_orchestrator import ExportOrchestrator, ExportState, reset_output_dir
from .export_report import ExportReport

__all__ = [
    'ExportOrchestrator',
    'ExportState',
    'ExportReport',
    'reset_output_dir'
]
