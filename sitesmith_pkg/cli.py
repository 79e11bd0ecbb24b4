#!/usr/bin/env python3
"""
Command-line interface for Sitesmith.
"""

import sys
import argparse
import time

from . import __version__
from .core import Sitesmith, setup_logging
from .errors import SitesmithError
from .settings import SitesmithSettings, normalize_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Sitesmith - Static Site Generator')
    parser.add_argument('--source', type=str,
                        help='Directory containing source documents')
    parser.add_argument('--destination', type=str,
                        help='Output directory for the generated site')
    parser.add_argument('--ignore', type=str,
                        help='Comma-separated list of names or globs to skip')
    parser.add_argument('--workers', type=int,
                        help='Threads used to render markup')
    parser.add_argument('--watch', '-w', action='store_true', default=None,
                        help='Report failed locale passes without aborting the build')
    parser.add_argument('--strict-paths', action='store_true', default=None,
                        help='Fail when two documents resolve to the same output path')
    parser.add_argument('--log-dir', type=str,
                        help='Directory for detailed build logs')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Show every log message on the console')
    parser.add_argument('--init', type=str, choices=['yml', 'yaml', 'json'],
                        help='Create a sample configuration file')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(argv=None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    # Handle init command
    if args.init:
        settings_loader = SitesmithSettings()
        config_path = settings_loader.create_sample_config(args.init)
        print(f"Created sample configuration file: {config_path}")
        return

    # Load settings from configuration file
    settings_loader = SitesmithSettings()
    settings_loader.load_settings()

    # Command line arguments take precedence
    args_dict = {k: v for k, v in vars(args).items() if v is not None and k not in ('init', 'verbose')}
    final_settings = settings_loader.merge_with_args(args_dict)

    overall_start_time = time.time()

    try:
        config = normalize_config(final_settings)
        logger = setup_logging(config.log_dir, args.verbose)
        generator = Sitesmith(config)
        results = generator.build()

        total_time = time.time() - overall_start_time
        logger.info(f"Site build completed in {total_time:.6f} seconds.")
        if any(not result.ok for result in results):
            sys.exit(1)
    except SitesmithError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
