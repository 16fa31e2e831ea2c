"""Command line interface for the health check."""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .config import load_config
from .exceptions import ConfigurationError
from .runner import run_health_check

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mssql-health",
        description="Discover SQL Server instances on a host and log their availability group health."
    )
    parser.add_argument("server", nargs="?", help="Target server name or address")
    parser.add_argument("--log-dir", dest="log_directory", help="Directory for the session log")
    parser.add_argument("--config", dest="config_file", help="JSON configuration file")
    parser.add_argument("--profile", help="Environment configuration profile (e.g. prod)")
    parser.add_argument("--echo", action="store_true", default=None,
                        help="Also write session log lines to stdout")
    parser.add_argument("--json", action="store_true", help="Print the run report as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug diagnostics")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run a health check from the command line.

    Returns:
        0 once a run has completed, whatever it found; 2 if no run could start
    """
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        config = load_config(
            profile=args.profile,
            config_file=args.config_file,
            server=args.server,
            log_directory=args.log_directory,
            echo_console=args.echo
        )
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    try:
        report = run_health_check(config)
    except OSError as e:
        # The log file itself could not be created.
        print(f"Error: unable to write log in {config.logging.directory}: {e}", file=sys.stderr)
        return EXIT_USAGE

    if args.json:
        print(report.to_json())
    elif not config.logging.echo_console:
        print(f"Health check complete. Log written to {report.log_file}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
