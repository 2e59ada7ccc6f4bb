from dataclasses import dataclass, field


@dataclass
class DiffResult:
    """Outcome of comparing a pack against the baseline for one edition.

    Attributes:
        pack: Key of the compared pack
        edition: Concrete edition that was computed
        version: Version the repositories were checked out at
        completion: Percentage of baseline files present in the pack, rounded to two decimals
        total: Number of baseline files
        missing: Baseline paths absent from the pack, in baseline order
        missing_report: Formatted UTF-8 report of the missing paths
        nonconforming: Pack-only paths inside a recognized content root
        nonconforming_report: Formatted UTF-8 report of the non-conforming paths, None when there are none
    """
    pack: str
    edition: str
    version: str
    completion: float
    total: int
    missing: list[str] = field(default_factory=list)
    missing_report: bytes = b''
    nonconforming: list[str] = field(default_factory=list)
    nonconforming_report: bytes | None = None

    def summary(self) -> str:
        return f"{self.pack} {self.edition} {self.version}: {self.completion}% " \
               f"({len(self.missing)} missing of {self.total})"


@dataclass
class TaskOutcome:
    """Result of one edition's computation: a DiffResult or a displayable error message."""
    pack: str
    edition: str
    version: str | None
    result: DiffResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None

    def summary(self) -> str:
        if self.result is not None:
            return self.result.summary()
        return f"{self.pack} {self.edition} {self.version}: {self.error}"
