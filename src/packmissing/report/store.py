"""Report storage for missing-content computations."""

import json
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any

import msgpack

from .format import format_report
from ..results import DiffResult, TaskOutcome


def outcome_to_msgpack(outcome: TaskOutcome) -> list[Any]:
    """Convert an outcome to a msgpack-serializable list.

    Layout: [pack, edition, version, error, result] where result is None or
    [completion, total, missing_paths, nonconforming_paths]. Formatted reports are not
    stored; they are regenerated from the path lists.
    """
    result = None
    if outcome.result is not None:
        result = [
            outcome.result.completion,
            outcome.result.total,
            outcome.result.missing,
            outcome.result.nonconforming,
        ]
    return [outcome.pack, outcome.edition, outcome.version, outcome.error, result]


def outcome_from_msgpack(data: list[Any]) -> TaskOutcome:
    pack, edition, version, error, result_data = data
    if result_data is None:
        return TaskOutcome(pack, edition, version, error=error)

    completion, total, missing, nonconforming = result_data
    result = DiffResult(
        pack=pack,
        edition=edition,
        version=version,
        completion=completion,
        total=total,
        missing=missing,
        missing_report=format_report(missing),
        nonconforming=nonconforming,
        nonconforming_report=format_report(nonconforming) if nonconforming else None)
    return TaskOutcome(pack, edition, version, result=result)


@dataclass
class ReportManifest:
    """Description of a computation, persisted as manifest.json in the report directory."""
    version: str = "1.0"
    """Report format version"""

    pack: str = ""
    """Key of the computed pack"""

    edition: str = ""
    """Edition as requested (may be "all")"""

    requested_version: str | None = None
    """Version as requested, before resolution"""

    check_modded: bool = False
    """Whether modded textures were included"""

    timestamp: str = ""
    """ISO format timestamp when the computation finished"""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReportManifest":
        return cls(**data)


class ReportStore:
    """Reads and writes a report directory.

    Layout:
        manifest.json              ReportManifest
        outcomes.msgpack           every outcome, successful or not
        <edition>.missing.txt      missing report of each successful edition
        <edition>.nonvanilla.txt   non-conforming report, only when there is one
    """

    MANIFEST_FILE = 'manifest.json'
    OUTCOMES_FILE = 'outcomes.msgpack'

    def __init__(self, report_dir: Path) -> None:
        self._report_dir = report_dir

    @property
    def report_dir(self) -> Path:
        return self._report_dir

    @staticmethod
    def missing_file_name(edition: str) -> str:
        return f'{edition}.missing.txt'

    @staticmethod
    def nonconforming_file_name(edition: str) -> str:
        return f'{edition}.nonvanilla.txt'

    def write(self, manifest: ReportManifest, outcomes: list[TaskOutcome]) -> None:
        """Write the manifest, the outcomes and the per-edition reports.

        Raises:
            FileExistsError: A file (not a directory) exists at the report path
        """
        if self._report_dir.exists() and not self._report_dir.is_dir():
            raise FileExistsError(f"Cannot create report directory: {self._report_dir} exists as a file")
        self._report_dir.mkdir(parents=True, exist_ok=True)

        with open(self._report_dir / self.MANIFEST_FILE, 'w', encoding='utf-8') as f:
            json.dump(manifest.to_dict(), f, indent=2)

        packed = msgpack.dumps([outcome_to_msgpack(outcome) for outcome in outcomes])
        assert isinstance(packed, bytes)
        (self._report_dir / self.OUTCOMES_FILE).write_bytes(packed)

        for outcome in outcomes:
            if outcome.result is None:
                continue
            (self._report_dir / self.missing_file_name(outcome.edition)).write_bytes(outcome.result.missing_report)
            if outcome.result.nonconforming_report is not None:
                (self._report_dir / self.nonconforming_file_name(outcome.edition)).write_bytes(
                    outcome.result.nonconforming_report)

    def read_manifest(self) -> ReportManifest:
        """Raises FileNotFoundError when the directory holds no report."""
        with open(self._report_dir / self.MANIFEST_FILE, 'r', encoding='utf-8') as f:
            return ReportManifest.from_dict(json.load(f))

    def read_outcomes(self) -> list[TaskOutcome]:
        decoded = msgpack.loads((self._report_dir / self.OUTCOMES_FILE).read_bytes())
        assert isinstance(decoded, list)
        return [outcome_from_msgpack(data) for data in decoded]
