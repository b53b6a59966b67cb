from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

from openpyxl import load_workbook
from openpyxl.utils import get_column_letter

from .errors import FileReadError, RowParseWarning
from .models import DEDUP_KEY_COLUMNS, Record

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "RecordReader",
    "TableData",
    "read_records",
    "read_table",
]

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS: Tuple[str, ...] = (".xlsx", ".xlsm", ".csv")

WarningCallback = Callable[[RowParseWarning], None]


@dataclass(frozen=True)
class TableData:
    """Fully materialized contents of one input table."""

    path: Path
    header: Tuple[str, ...]
    records: Tuple[Record, ...]
    warnings: Tuple[RowParseWarning, ...]


class RecordReader:
    """Single-use iterator over the records of one input table.

    The header row is read on first iteration and exposed through ``header``.
    Rows missing any of the key columns are dropped and reported through
    ``on_warning``; fully blank rows are ignored.
    """

    def __init__(self, path: Path | str, *, on_warning: Optional[WarningCallback] = None) -> None:
        self.path = Path(path)
        self.header: Tuple[str, ...] | None = None
        self.warnings: List[RowParseWarning] = []
        self._on_warning = on_warning
        self._started = False

    def __iter__(self) -> Iterator[Record]:
        if self._started:
            raise RuntimeError(f"Records of {self.path.name} were already read.")
        self._started = True
        return self._read()

    def _read(self) -> Iterator[Record]:
        rows = _iter_rows(self.path)
        try:
            _, header_row = next(rows)
        except StopIteration:
            raise FileReadError(self.path, "table is empty") from None

        header = _trim_trailing_blanks([_cell_text(value) for value in header_row])
        if len(header) < len(DEDUP_KEY_COLUMNS):
            raise FileReadError(
                self.path,
                f"header has {len(header)} column(s); at least {len(DEDUP_KEY_COLUMNS)} are required",
            )
        self.header = tuple(header)
        columns = [get_column_letter(index) for index in range(1, len(header) + 1)]

        has_data = False
        for row_number, row in rows:
            values = {}
            for column, raw in zip(columns, row):
                text = _cell_text(raw)
                if text:
                    values[column] = text
            if not values:
                continue
            has_data = True

            missing = tuple(column for column in DEDUP_KEY_COLUMNS if column not in values)
            if missing:
                self._warn(RowParseWarning(path=self.path, row_number=row_number, missing_columns=missing))
                continue

            yield Record(values=values, source=self.path, row_number=row_number)

        if not has_data:
            raise FileReadError(self.path, "table has a header row but no data rows")

    def _warn(self, warning: RowParseWarning) -> None:
        self.warnings.append(warning)
        logger.warning(warning.message, extra={"path": str(warning.path), "row": warning.row_number})
        if self._on_warning is not None:
            self._on_warning(warning)


def read_records(
    path: Path | str,
    *,
    on_warning: Optional[WarningCallback] = None,
) -> Iterator[Record]:
    return iter(RecordReader(path, on_warning=on_warning))


def read_table(path: Path | str) -> TableData:
    reader = RecordReader(path)
    logger.info("Reading input table %s", reader.path)
    records = tuple(reader)
    logger.info(
        "Read %d record(s) from %s (%d row(s) skipped)",
        len(records),
        reader.path.name,
        len(reader.warnings),
    )
    return TableData(
        path=reader.path,
        header=reader.header or (),
        records=records,
        warnings=tuple(reader.warnings),
    )


def _iter_rows(path: Path) -> Iterator[Tuple[int, Sequence[Any]]]:
    if not path.is_file():
        raise FileReadError(path, "file not found")
    extension = path.suffix.lower()
    if extension == ".csv":
        return _iter_csv_rows(path)
    if extension in (".xlsx", ".xlsm"):
        return _iter_workbook_rows(path)
    raise FileReadError(path, f"unsupported file type '{path.suffix or path.name}'")


def _iter_workbook_rows(path: Path) -> Iterator[Tuple[int, Sequence[Any]]]:
    try:
        workbook = load_workbook(path, read_only=True, data_only=True)
    except Exception as exc:
        logger.exception("Failed to open workbook %s", path)
        raise FileReadError(path, "workbook could not be opened") from exc

    try:
        if not workbook.sheetnames:
            raise FileReadError(path, "workbook contains no worksheets")
        sheet = workbook[workbook.sheetnames[0]]
        try:
            for index, row in enumerate(sheet.iter_rows(values_only=True), start=1):
                yield index, row
        except FileReadError:
            raise
        except Exception as exc:
            logger.exception("Failed to read worksheet rows from %s", path)
            raise FileReadError(path, "worksheet could not be parsed") from exc
    finally:
        workbook.close()


def _iter_csv_rows(path: Path) -> Iterator[Tuple[int, Sequence[Any]]]:
    try:
        with path.open("r", encoding="utf-8-sig", newline="") as handle:
            for index, row in enumerate(csv.reader(handle), start=1):
                yield index, row
    except (UnicodeDecodeError, csv.Error) as exc:
        raise FileReadError(path, f"CSV could not be parsed ({exc})") from exc
    except OSError as exc:
        raise FileReadError(path, f"file could not be opened ({exc.strerror or exc})") from exc


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        if value.time() == datetime.min.time():
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def _trim_trailing_blanks(values: List[str]) -> List[str]:
    while values and not values[-1]:
        values.pop()
    return values
