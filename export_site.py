#!/usr/bin/env python3
"""
Portfolio Static Export Tool - Main CLI Entry Point

This script exports the content of a PocketBase-style portfolio backend into
a static multi-language site, optionally mirrors the backend's files into the
local asset cache first, and can serve the result for a local preview.
"""

import argparse
import asyncio
import logging
import sys
import time
from typing import Any, Dict, Optional, Tuple

import yaml

from backend_client import BackendClient
from config_loader import ConfigLoader, get_nested
from errors import ConfigurationError, ExportError
from exporters import AssetDownloader, DownloadReport
from logger import log_config, log_section, setup_logging
from orchestrator import ExportOrchestrator, ExportReport
from preview import serve

# Version
__version__ = "1.0.0"


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for CLI."""
    parser = argparse.ArgumentParser(
        description="Export a portfolio backend into a static multi-language site",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Export using environment variables only
  BACKEND_URL=http://127.0.0.1:8090 portfolio-export

  # Export with a config file into a custom directory
  portfolio-export --config export.yaml --output build

  # Mirror backend files into the asset cache, then export
  portfolio-export --download

  # Only refresh the asset cache
  portfolio-export --download-only

  # Export, then preview on http://127.0.0.1:3000/
  portfolio-export --preview

  # Serve an existing export without rebuilding
  portfolio-export --preview-only --port 8080

  # Verbose logging
  portfolio-export -vv
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to configuration YAML file (optional)'
    )

    parser.add_argument(
        '--output',
        dest='output_dir',
        type=str,
        help='Output directory (default: dist)'
    )

    parser.add_argument(
        '--cache-dir',
        type=str,
        help='Asset cache directory (default: public/files)'
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        '--download',
        action='store_true',
        help='Mirror backend files into the asset cache before exporting'
    )
    mode.add_argument(
        '--download-only',
        action='store_true',
        help='Mirror backend files into the asset cache and exit'
    )
    mode.add_argument(
        '--preview-only',
        action='store_true',
        help='Serve the existing output directory without exporting'
    )

    parser.add_argument(
        '--preview',
        action='store_true',
        help='Serve the output directory after a successful export'
    )

    parser.add_argument(
        '--port',
        type=int,
        help='Preview port (default: $PORT or 3000)'
    )

    parser.add_argument(
        '--no-styles',
        action='store_true',
        help='Skip the stylesheet build'
    )

    parser.add_argument(
        '--no-progress',
        action='store_true',
        help='Disable download progress bars'
    )

    parser.add_argument(
        '--report',
        type=str,
        help='Write a JSON report of the run to this path'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        help='Also write logs to this file'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase verbosity (-v for INFO, -vv for DEBUG)'
    )

    return parser


async def run_pipeline(
    config: Dict[str, Any],
    download: bool,
    export: bool,
    logger: logging.Logger
) -> Tuple[Optional[DownloadReport], Optional[Dict[str, Any]]]:
    """
    Run the asset pre-pass and/or the export over one backend session.

    Returns:
        Tuple of (download report or None, export phase statistics or None)
    """
    download_report = None
    phase_stats = None

    async with BackendClient.from_config(config) as client:
        if download:
            log_section("Mirroring assets")
            downloader = AssetDownloader(config, client, logger=logger.getChild('assets'))
            download_report = await downloader.download_all()
            if download_report.failed:
                logger.warning(f"{download_report.failed} file(s) could not be downloaded")

        if export:
            orchestrator = ExportOrchestrator(config, client=client, logger=logger.getChild('export'))
            phase_stats = await orchestrator.run()

    return download_report, phase_stats


def run(config: Dict[str, Any], args: argparse.Namespace, logger: logging.Logger) -> int:
    """Execute the requested steps; fatal errors propagate to main."""
    host = get_nested(config, 'preview.host', '127.0.0.1')
    port = get_nested(config, 'preview.port', 3000)
    output_dir = get_nested(config, 'export.output_directory', 'dist')

    if args.preview_only:
        serve(output_dir, host, port)
        return 0

    start_time = time.time()
    download_report, phase_stats = asyncio.run(run_pipeline(
        config,
        download=args.download or args.download_only,
        export=not args.download_only,
        logger=logger
    ))

    report_generator = ExportReport(logger)
    report = report_generator.generate_report(phase_stats, download_report, time.time() - start_time)
    print("\n" + report_generator.format_console_report(report))

    report_path = get_nested(config, 'export.report_path')
    if report_path:
        report_generator.export_json_report(report, report_path)

    if args.preview and phase_stats is not None:
        serve(output_dir, host, port)

    return 0


def main(argv: Optional[list] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)
    if args.preview and args.download_only:
        parser.error("--preview needs an export; it cannot be combined with --download-only")

    try:
        setup_logging(verbosity=args.verbose)
        logger = logging.getLogger('portfolio_export.cli')

        log_section("Portfolio Static Export")
        logger.info(f"Version: {__version__}")

        # Load configuration (defaults < file < environment < CLI)
        config = ConfigLoader.load(args.config)
        config = ConfigLoader.merge_with_args(config, args)
        if not args.preview_only:
            ConfigLoader.validate(config)

        # Reconfigure logging with config file settings
        setup_logging(
            verbosity=args.verbose,
            log_file=get_nested(config, 'logging.file'),
            level=get_nested(config, 'logging.level')
        )
        log_config(config)

        return run(config, args, logger)

    except ConfigurationError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 2
    except yaml.YAMLError as e:
        print(f"ERROR: Invalid configuration file: {e}", file=sys.stderr)
        return 2
    except FileNotFoundError as e:
        print(f"ERROR: File not found: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nExport interrupted by user", file=sys.stderr)
        return 130
    except ExportError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logging.getLogger('portfolio_export.cli').debug("Unexpected error", exc_info=True)
        print(f"ERROR: Unexpected error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
