from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from itertools import chain
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..run_log import LogLevel, RunLog, RunStage, RunStatus
from . import exporter
from .dedup import deduplicate
from .document import ReportLabels, assemble_document, get_labels
from .errors import ConfigError, FileReadError, HeaderMismatchError, ReportError, RunInProgressError
from .grouping import aggregate
from .identifiers import DEFAULT_IDENTIFIER_WIDTH, assign_identifiers
from .models import Group, ReportConfig, ReportOutcome
from .ranking import rank_groups
from .reader import TableData, read_table
from .writer import DocxReportWriter, build_output_path

logger = logging.getLogger(__name__)

TableReaderFn = Callable[[Path], TableData]


@dataclass(frozen=True)
class PreviewResult:
    """Grouped and ranked view of a single input table."""

    path: Path
    total_records: int
    duplicates_removed: int
    rows_skipped: int
    groups: Tuple[Group, ...]

    @property
    def total_groups(self) -> int:
        return len(self.groups)

    def to_dict(self, labels: ReportLabels) -> Dict[str, object]:
        return {
            "path": str(self.path),
            "totalRecords": self.total_records,
            "totalGroups": self.total_groups,
            "duplicatesRemoved": self.duplicates_removed,
            "rowsSkipped": self.rows_skipped,
            "groups": [
                {
                    "sequence": sequence,
                    "problemName": group.problem_name,
                    "severity": group.severity.value,
                    "severityLabel": labels.severity_short[group.severity],
                    "count": group.count,
                }
                for sequence, group in enumerate(self.groups, start=1)
            ],
        }


class ReportService:
    """Runs the read → deduplicate → group → rank → assemble → write pipeline."""

    def __init__(
        self,
        *,
        run_log: RunLog,
        writer: Optional[DocxReportWriter] = None,
        locale: str = "zh",
        identifier_width: int = DEFAULT_IDENTIFIER_WIDTH,
        max_parallel_reads: int = 4,
        table_reader: TableReaderFn = read_table,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._run_log = run_log
        self._writer = writer or DocxReportWriter()
        self._labels = get_labels(locale)
        self._identifier_width = identifier_width
        self._max_parallel_reads = max(1, max_parallel_reads)
        self._read_table = table_reader
        self._clock = clock

    @property
    def labels(self) -> ReportLabels:
        return self._labels

    def generate_report(self, config: ReportConfig) -> ReportOutcome:
        """Run the full pipeline for ``config``.

        Only one run may own the shared run log at a time; a call made while
        another run is active raises ``RunInProgressError`` without touching
        that run's progress or log.
        """
        if not self._run_log.begin_run():
            message = "Another report generation is already running."
            logger.warning(message)
            raise RunInProgressError(message)
        try:
            return self._run(config)
        finally:
            self._run_log.end_run()

    def _run(self, config: ReportConfig) -> ReportOutcome:
        self._run_log.append_log(LogLevel.INFO, "Starting report generation...")
        try:
            outcome = self._generate(config)
        except ReportError as exc:
            message = f"Report generation failed: {exc}"
            logger.error(message)
            self._fail(message, exc)
            raise
        except Exception as exc:
            message = f"Report generation failed unexpectedly: {exc}"
            logger.exception("Unexpected failure during report generation.")
            self._fail(message, exc)
            raise

        summary = (
            f"Report generated: {outcome.files_processed} file(s) processed, "
            f"{outcome.duplicates_removed} duplicate(s) removed, "
            f"{outcome.groups_produced} group(s) produced, "
            f"{outcome.findings_written} finding(s) written. File: {outcome.output_path}"
        )
        logger.info(summary)
        self._run_log.append_log(LogLevel.SUCCESS, summary)
        self._finish(RunStatus.SUCCESS, message="Done")
        return outcome

    def process_file(self, path: Path | str) -> PreviewResult:
        source = Path(path)
        self._run_log.append_log(LogLevel.INFO, f"Processing input table: {source}")
        try:
            table = self._read_table(source)
        except FileReadError as exc:
            message = f"Input table processing failed: {exc}"
            logger.error(message)
            self._run_log.append_log(LogLevel.ERROR, message)
            raise
        self._log_row_warnings([table])

        deduplicated = deduplicate(table.records)
        grouping = aggregate(deduplicated.records)
        ranked = rank_groups(grouping.groups)
        result = PreviewResult(
            path=source,
            total_records=grouping.total_records,
            duplicates_removed=deduplicated.duplicates,
            rows_skipped=len(table.warnings),
            groups=tuple(ranked),
        )
        self._run_log.append_log(
            LogLevel.SUCCESS,
            f"Input table processed: {result.total_records} record(s), {result.total_groups} group(s)",
        )
        return result

    def build_summary_csv(self, preview: PreviewResult) -> str:
        return exporter.build_summary_csv(preview.groups, self._labels)

    def _generate(self, config: ReportConfig) -> ReportOutcome:
        config.validate()
        self._prepare_output_dir(config.output_dir)

        files = list(config.input_files)
        self._advance(RunStage.READING, 0, len(files))
        self._run_log.append_log(LogLevel.INFO, f"Reading {len(files)} input file(s)...")
        tables = self._read_tables(files)
        self._check_headers(tables)
        self._log_row_warnings(tables)
        rows_skipped = sum(len(table.warnings) for table in tables)

        total_rows = sum(len(table.records) for table in tables)
        self._advance(RunStage.DEDUPLICATING, 0, total_rows)
        deduplicated = deduplicate(chain.from_iterable(table.records for table in tables))
        self._advance(RunStage.DEDUPLICATING, total_rows, total_rows)
        self._run_log.append_log(
            LogLevel.INFO,
            f"Removed {deduplicated.duplicates} duplicate record(s); {len(deduplicated.records)} unique record(s) remain",
        )

        unique_count = len(deduplicated.records)
        self._advance(RunStage.GROUPING, 0, unique_count)
        grouping = aggregate(deduplicated.records)
        self._advance(RunStage.GROUPING, unique_count, unique_count)
        self._run_log.append_log(
            LogLevel.INFO,
            f"Grouped {grouping.total_records} record(s) into {grouping.total_groups} group(s)",
        )

        self._advance(RunStage.RANKING, 0, grouping.total_groups)
        ranked = rank_groups(grouping.groups)
        self._advance(RunStage.RANKING, grouping.total_groups, grouping.total_groups)

        self._advance(RunStage.ASSEMBLING, 0, grouping.total_groups)
        identified = assign_identifiers(
            ranked,
            identifier_tag=config.identifier_tag,
            offset=config.sequence_offset,
            width=self._identifier_width,
        )
        document = assemble_document(identified, config=config, labels=self._labels)
        self._advance(RunStage.ASSEMBLING, grouping.total_groups, grouping.total_groups)

        self._advance(RunStage.WRITING, 0, 1)
        target = build_output_path(
            config.output_dir,
            identifier_tag=config.identifier_tag,
            code_version=config.code_version,
            generated_at=self._clock(),
        )
        output_path = self._writer.write(document, target)
        self._advance(RunStage.WRITING, 1, 1)

        return ReportOutcome(
            output_path=output_path,
            files_processed=len(tables),
            duplicates_removed=deduplicated.duplicates,
            groups_produced=grouping.total_groups,
            findings_written=document.finding_count,
            rows_skipped=rows_skipped,
        )

    def _prepare_output_dir(self, output_dir: Path) -> None:
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigError(f"Output directory cannot be created: {output_dir} ({exc})") from exc

    def _read_tables(self, files: Sequence[Path]) -> List[TableData]:
        """Read every file in parallel, then collect results in configured order.

        Any unreadable file aborts the run: the first failure in file order is raised
        once all reads have completed.
        """
        workers = min(self._max_parallel_reads, len(files))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="report-reader") as executor:
            futures: List[Future[TableData]] = [executor.submit(self._read_table, path) for path in files]

        tables: List[TableData] = []
        failures: List[FileReadError] = []
        for index, (path, future) in enumerate(zip(files, futures), start=1):
            try:
                table = future.result()
            except FileReadError as exc:
                failures.append(exc)
                continue
            tables.append(table)
            self._advance(RunStage.READING, index, len(files))
            self._run_log.append_log(
                LogLevel.INFO,
                f"Read {len(table.records)} record(s) from {path.name}",
            )

        if failures:
            for extra in failures[1:]:
                self._run_log.append_log(LogLevel.ERROR, f"Also unreadable: {extra}")
            raise failures[0]
        return tables

    def _check_headers(self, tables: Sequence[TableData]) -> None:
        if not tables:
            return
        reference = tables[0].header
        for table in tables[1:]:
            if len(table.header) != len(reference):
                raise HeaderMismatchError(
                    table.path,
                    f"header has {len(table.header)} column(s) but {tables[0].path.name} has {len(reference)}",
                )
            for position, (current, expected) in enumerate(zip(table.header, reference), start=1):
                if current.strip() != expected.strip():
                    raise HeaderMismatchError(
                        table.path,
                        f'column {position} header "{current}" does not match "{expected}" in {tables[0].path.name}',
                    )

    def _log_row_warnings(self, tables: Sequence[TableData]) -> None:
        for table in tables:
            for warning in table.warnings:
                self._run_log.append_log(LogLevel.WARNING, warning.message)

    def _fail(self, message: str, exc: BaseException) -> None:
        self._run_log.append_log(LogLevel.ERROR, message)
        self._finish(RunStatus.FAILURE, error=str(exc))

    def _advance(self, stage: RunStage, current: int, total: int) -> None:
        try:
            self._run_log.set_progress(stage, current, total)
        except ValueError as exc:
            logger.warning("Progress update to %s was rejected: %s", stage.value, exc)

    def _finish(self, status: RunStatus, **kwargs: Optional[str]) -> None:
        try:
            self._run_log.finish(status, **kwargs)
        except ValueError as exc:
            logger.warning("Could not record run outcome %s: %s", status.value, exc)
