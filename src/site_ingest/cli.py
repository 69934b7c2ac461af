#!/usr/bin/env python3
"""
Site Ingestion CLI

Command-line interface for building per-site forcing tables from local
source files.

Usage examples:
    # Build the site table described by a configuration file
    site-ingest run --config run.yaml --output site_table.csv

    # List the supported sources and their variables
    site-ingest list-sources

    # Write a configuration template
    site-ingest create-config site_ingest_config.yaml
"""

import argparse
import logging
import sys

from .config_manager import IngestConfig
from .logging_utils import (
    ProcessingLogger,
    SiteIngestError,
    save_processing_session_summary,
    setup_site_ingest_logging,
)
from .site_forcing import collect_site_table, sites_from_config, specs_from_config, write_site_table
from .source_variables import SOURCE_REGISTRY


def create_parser():
    """Create command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog='site-ingest',
        description="Point-located environmental forcing for photosynthesis models",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Build the site table
  %(prog)s run --config run.yaml --output site_table.csv

  # Build a NetCDF table with four worker threads
  %(prog)s run --config run.yaml --output site_table.nc --max-workers 4

  # List supported sources
  %(prog)s list-sources
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    run_parser = subparsers.add_parser(
        'run',
        help='Extract, derive, aggregate and join all configured sources'
    )
    run_parser.add_argument(
        '--config', '-c',
        required=True,
        help='YAML or JSON configuration file with sources and sites'
    )
    run_parser.add_argument(
        '--output', '-o',
        help='Output table (.csv or .nc); default: processing.output_file'
    )
    run_parser.add_argument(
        '--data-directory',
        help='Directory holding the source directories; default: processing.data_directory'
    )
    run_parser.add_argument(
        '--max-workers',
        type=int,
        help='Worker threads per source'
    )
    run_parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level'
    )
    run_parser.add_argument(
        '--log-file',
        help='Optional log file'
    )
    run_parser.add_argument(
        '--summary',
        help='Write a JSON run summary to this path'
    )

    subparsers.add_parser(
        'list-sources',
        help='List supported sources and their variables'
    )

    template_parser = subparsers.add_parser(
        'create-config',
        help='Write a configuration template'
    )
    template_parser.add_argument(
        'path',
        nargs='?',
        default='site_ingest_config.yaml',
        help='Template path (default: site_ingest_config.yaml)'
    )

    return parser


def _cli_overrides(args):
    processing = {}
    if args.output:
        processing['output_file'] = args.output
    if args.data_directory:
        processing['data_directory'] = args.data_directory
    if args.max_workers is not None:
        processing['max_workers'] = args.max_workers
    if args.log_level:
        processing['log_level'] = args.log_level
    return {'processing': processing} if processing else {}


def run_ingestion(args):
    """Build and write the site table."""
    logger = logging.getLogger(__name__)

    try:
        config = IngestConfig(config_file=args.config, cli_args=_cli_overrides(args))
    except (SiteIngestError, FileNotFoundError, ValueError) as e:
        setup_site_ingest_logging(args.log_level or 'INFO')
        logger.error(f"Configuration error: {e}")
        return 1

    processing = config.get_processing_config()
    setup_site_ingest_logging(processing['log_level'], log_file=args.log_file)

    processing_logger = ProcessingLogger()
    processing_logger.log_processing_start('site ingestion', {
        'config_file': args.config,
        'data_directory': processing['data_directory'],
        'sources': ', '.join(config.get_configured_sources()),
        'max_workers': processing['max_workers'],
    })

    try:
        sites = sites_from_config(config.get_sites())
        if not sites:
            logger.error("No sites configured: add a 'sites' list to the configuration")
            return 1

        result = collect_site_table(sites, specs_from_config(config), config, processing_logger)
        output_file = write_site_table(result.table, processing['output_file'])

    except SiteIngestError as e:
        logger.error(f"Site ingestion failed: {e}")
        return 1

    for source, error in result.failures.items():
        processing_logger.log_processing_warning(f"{source} not included: {error}")

    processing_logger.log_processing_complete({'output_file': str(output_file),
                                               'failed_sources': list(result.failures)})

    if args.summary:
        save_processing_session_summary(processing_logger.get_processing_summary(), args.summary)

    return 0


def list_supported_sources():
    """List supported sources and their variables."""
    print("Supported sources:")
    print("=" * 50)
    for source, source_config in SOURCE_REGISTRY.items():
        print(f"\n{source} ({source_config['kind'].value})")
        print(f"  {source_config['description']}")
        for variable, info in source_config['variables'].items():
            print(f"  {variable:<10} [{info['units']}] {info['description']}")

    return 0


def create_config_template(args):
    """Write a configuration template."""
    path = IngestConfig.create_template_config(args.path)
    print(f"Configuration template written: {path}")
    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == 'run':
        return run_ingestion(args)
    elif args.command == 'list-sources':
        return list_supported_sources()
    elif args.command == 'create-config':
        return create_config_template(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
