import argparse
import asyncio
import datetime
import logging
import sys
import textwrap
import tomllib
from pathlib import Path

from . import (
    CatalogClient,
    CatalogUnavailableError,
    FilterConfig,
    MissingComputer,
    RepositorySynchronizer,
    Settings,
    TaskOutcome,
)
from .commands.compute import ALL_EDITIONS
from .report.store import ReportManifest, ReportStore
from .settings import SETTING_LOG_LEVEL, SETTING_LOG_PATH

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def packmissing_main():
    parser = argparse.ArgumentParser(
        prog='packmissing',
        description='Compare a resource pack against the default pack and report which textures are missing.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent('''
            Examples:
              packmissing compute faithful_32x --edition java --version 1.21
              packmissing compute faithful_32x --edition all --output reports/f32
              packmissing describe reports/f32
            ''').strip()
    )
    parser.add_argument(
        '--settings',
        metavar='PATH',
        help='Path to the settings file. If not provided, uses PACKMISSING_SETTINGS environment variable or '
             'packmissing.toml in the current directory.')
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Print progress steps while computing')
    parser.add_argument(
        '--log-file',
        metavar='PATH',
        help='Path to log file. If not provided, uses logging.path from settings or no logging.')
    parser.add_argument(
        '--log-level',
        metavar='LEVEL',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Defaults to INFO.')
    subparsers = parser.add_subparsers(
        dest='command',
        title='Commands',
        required=True,
        help='Use "packmissing COMMAND --help" for command-specific help'
    )

    parser_compute = subparsers.add_parser(
        'compute',
        help='Compute missing textures of a pack',
        description='Synchronizes the default pack and the requested pack, then lists the textures of the default '
                    'pack that the requested pack lacks, per edition.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent('''
            Unknown versions fall back to the latest known version of the edition.
            Bedrock is always computed against "latest".
            ''').strip())
    parser_compute.add_argument(
        'pack',
        metavar='PACK',
        help='Key of the pack to compute')
    parser_compute.add_argument(
        '--edition',
        default=ALL_EDITIONS,
        metavar='EDITION',
        help='Edition to compute, or "all" for every known edition (default: all)')
    parser_compute.add_argument(
        '--version',
        metavar='VERSION',
        help='Version to compute (default: latest known version)')
    parser_compute.add_argument(
        '--modded',
        action='store_true',
        help='Include modded textures (java only)')
    parser_compute.add_argument(
        '--output',
        metavar='DIR',
        help='Write the reports to this directory')
    parser_compute.set_defaults(method=_compute)

    parser_describe = subparsers.add_parser(
        'describe',
        help='Show a report written by compute --output',
        description='Displays the manifest and per-edition results stored in a report directory.')
    parser_describe.add_argument(
        'report_dir',
        metavar='DIR',
        help='Report directory')
    parser_describe.set_defaults(method=_describe)

    args = parser.parse_args()
    try:
        settings = Settings(args.settings)
    except (OSError, tomllib.TOMLDecodeError) as e:
        print(f"Error: cannot read settings: {e}", file=sys.stderr)
        sys.exit(2)
    configure_logging(settings, args.log_file, args.log_level)

    sys.exit(args.method(settings, args))


def configure_logging(settings: Settings, log_file: str | None, log_level: str | None) -> bool:
    """Configure logging from CLI arguments, falling back to the logging settings.

    Returns:
        True if logging was configured, False otherwise
    """
    log_path = log_file or settings.get(SETTING_LOG_PATH)
    if not log_path:
        return False

    level = log_level or settings.get(SETTING_LOG_LEVEL) or 'INFO'
    logging.basicConfig(
        filename=str(log_path),
        level=getattr(logging, level.upper()),
        format=LOG_FORMAT
    )
    return True


async def compute_outcomes(settings: Settings, args, filters: FilterConfig) -> list[TaskOutcome]:
    async def on_progress(step: str):
        if args.verbose:
            print(step, file=sys.stderr)

    async with CatalogClient(settings.api_url or settings.fallback_api_url, settings.timeout) as catalog:
        computer = MissingComputer(
            catalog,
            RepositorySynchronizer(settings.repositories_path),
            filters,
            settings.baseline_pack)
        return await computer.compute(args.pack, args.edition, args.version, args.modded, on_progress)


def _compute(settings: Settings, args) -> int:
    try:
        filters = FilterConfig.from_settings(settings)
    except (OSError, ValueError) as e:
        print(f"Error: cannot read ignore list: {e}", file=sys.stderr)
        return 2

    try:
        outcomes = asyncio.run(compute_outcomes(settings, args, filters))
    except CatalogUnavailableError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    for outcome in outcomes:
        print(outcome.summary(), file=sys.stdout if outcome.ok else sys.stderr)

    if args.output:
        manifest = ReportManifest(
            pack=args.pack,
            edition=args.edition,
            requested_version=args.version,
            check_modded=args.modded,
            timestamp=datetime.datetime.now(datetime.UTC).isoformat())
        ReportStore(Path(args.output)).write(manifest, outcomes)

    return 0 if all(outcome.ok for outcome in outcomes) else 1


def _describe(settings: Settings, args) -> int:
    from .commands.describe import do_describe

    try:
        do_describe(Path(args.report_dir))
    except FileNotFoundError:
        print(f"Error: no report found in {args.report_dir}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    packmissing_main()
