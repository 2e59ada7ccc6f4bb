"""Describe subcommand for showing a stored report."""

import sys
from pathlib import Path
from typing import TextIO

from ..report.store import ReportStore


def do_describe(report_dir: Path, output: TextIO | None = None) -> None:
    """Print the manifest and one line per edition of a stored report.

    Raises:
        FileNotFoundError: report_dir holds no report
    """
    if output is None:
        output = sys.stdout

    store = ReportStore(report_dir)
    manifest = store.read_manifest()
    outcomes = store.read_outcomes()

    print(f"Report: {report_dir}", file=output)
    print(f"Pack: {manifest.pack}", file=output)
    print(f"Edition: {manifest.edition}", file=output)
    print(f"Version: {manifest.requested_version or '(latest)'}", file=output)
    print(f"Modded: {'yes' if manifest.check_modded else 'no'}", file=output)
    print(f"Timestamp: {manifest.timestamp}", file=output)
    print(file=output)

    for outcome in outcomes:
        print(outcome.summary(), file=output)
        if outcome.result is None:
            continue
        print(f"  {report_dir / store.missing_file_name(outcome.edition)}", file=output)
        if outcome.result.nonconforming_report is not None:
            print(f"  {report_dir / store.nonconforming_file_name(outcome.edition)}", file=output)
