from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import ConfigError

DEDUP_KEY_COLUMNS: Tuple[str, ...] = ("A", "B", "C", "D", "E", "F", "G")

PROBLEM_NAME_COLUMN = "B"
SEVERITY_COLUMN = "D"
PATH_COLUMN = "I"
CODE_COLUMN = "J"
DESCRIPTION_COLUMN = "K"
REMEDIATION_COLUMN = "N"


class Severity(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    UNKNOWN = "Unknown"

    @property
    def priority(self) -> int:
        return SEVERITY_PRIORITY[self]

    @classmethod
    def from_label(cls, label: str | None) -> "Severity":
        """Map a raw severity cell to a severity; unrecognized labels become UNKNOWN."""

        if not label:
            return cls.UNKNOWN
        return SEVERITY_ALIASES.get(label.strip(), cls.UNKNOWN)


SEVERITY_PRIORITY: Dict[Severity, int] = {
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
    Severity.UNKNOWN: 999,
}

# Exact, case-sensitive matches only.
SEVERITY_ALIASES: Dict[str, Severity] = {
    "High": Severity.HIGH,
    "Medium": Severity.MEDIUM,
    "Low": Severity.LOW,
    "高危": Severity.HIGH,
    "高": Severity.HIGH,
    "中危": Severity.MEDIUM,
    "中": Severity.MEDIUM,
    "低危": Severity.LOW,
    "低": Severity.LOW,
}


@dataclass(frozen=True)
class Record:
    """One row of an input table, keyed by column letter."""

    values: Mapping[str, str]
    source: Path
    row_number: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def get(self, column: str) -> str:
        return self.values.get(column, "")

    @property
    def dedup_key(self) -> Tuple[str, ...]:
        return tuple(self.get(column) for column in DEDUP_KEY_COLUMNS)

    @property
    def problem_name(self) -> str:
        return self.get(PROBLEM_NAME_COLUMN)

    @property
    def severity_label(self) -> str:
        return self.get(SEVERITY_COLUMN)

    @property
    def group_key(self) -> "GroupKey":
        return GroupKey(problem_name=self.problem_name, severity_label=self.severity_label)


@dataclass(frozen=True)
class GroupKey:
    problem_name: str
    severity_label: str


@dataclass(slots=True)
class Group:
    """Findings sharing a problem name and severity label."""

    key: GroupKey
    severity: Severity
    first_seen: int
    records: List[Record] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.records)

    @property
    def problem_name(self) -> str:
        return self.key.problem_name


@dataclass(frozen=True)
class IdentifiedFinding:
    identifier: str
    sequence: int
    record: Record


@dataclass(frozen=True)
class IdentifiedGroup:
    rank: int
    group: Group
    findings: Tuple[IdentifiedFinding, ...]

    @property
    def report_number(self) -> str:
        return self.findings[0].identifier if self.findings else ""


@dataclass(frozen=True)
class ReportConfig:
    """Validated settings for a single report run."""

    input_files: Tuple[Path, ...]
    output_dir: Optional[Path]
    identifier_tag: str
    sequence_offset: int
    test_date: str
    code_version: str
    tester: str

    @classmethod
    def create(
        cls,
        *,
        input_files: Sequence[str | Path],
        output_dir: str | Path | None,
        identifier_tag: str,
        sequence_offset: int = 0,
        test_date: str = "",
        code_version: str = "",
        tester: str = "",
        validate: bool = True,
    ) -> "ReportConfig":
        config = cls(
            input_files=tuple(Path(item).expanduser() for item in input_files or ()),
            output_dir=Path(output_dir).expanduser() if output_dir else None,
            identifier_tag=(identifier_tag or "").strip(),
            sequence_offset=sequence_offset,
            test_date=(test_date or "").strip(),
            code_version=(code_version or "").strip(),
            tester=(tester or "").strip(),
        )
        if validate:
            config.validate()
        return config

    def validate(self) -> None:
        if not self.identifier_tag:
            raise ConfigError("Identifier tag must not be empty.")
        if not self.input_files:
            raise ConfigError("At least one input file must be selected.")
        if isinstance(self.sequence_offset, bool) or not isinstance(self.sequence_offset, int):
            raise ConfigError("Starting sequence offset must be an integer.")
        if self.sequence_offset < 0:
            raise ConfigError("Starting sequence offset must be zero or greater.")
        if not self.tester:
            raise ConfigError("Tester name must not be empty.")
        if self.output_dir is None:
            raise ConfigError("Output directory must be provided.")
        if self.output_dir.exists() and not self.output_dir.is_dir():
            raise ConfigError(f"Output path is not a directory: {self.output_dir}")


@dataclass(frozen=True)
class ReportOutcome:
    output_path: Path
    files_processed: int
    duplicates_removed: int
    groups_produced: int
    findings_written: int
    rows_skipped: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "outputPath": str(self.output_path),
            "filesProcessed": self.files_processed,
            "duplicatesRemoved": self.duplicates_removed,
            "groupsProduced": self.groups_produced,
            "findingsWritten": self.findings_written,
            "rowsSkipped": self.rows_skipped,
        }
