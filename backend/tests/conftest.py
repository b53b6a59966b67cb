from __future__ import annotations

import csv
import sys
from pathlib import Path
from typing import Iterable, List, Sequence

import pytest
from openpyxl import Workbook

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from findings_report.services.report.models import Record

HEADER: List[str] = [
    "编号",
    "问题名称",
    "规则",
    "严重性",
    "状态",
    "语言",
    "文件名",
    "行号",
    "文件路径",
    "相关代码",
    "漏洞说明",
    "CWE",
    "类别",
    "整改建议",
    "备注",
    "发现时间",
]

COLUMN_LETTERS = "ABCDEFGHIJKLMNOP"


class TableFactory:
    header: Sequence[str] = tuple(HEADER)

    def __init__(self, root: Path) -> None:
        self.root = root

    def row(
        self,
        key: str,
        name: str,
        severity: str,
        *,
        path: str = "root/src/main.c",
        code: str = "strcpy(buf, input);",
        description: str = "Unchecked buffer copy.",
        remediation: str = "Use bounded copies.",
        file_name: str = "main.c",
    ) -> List[str]:
        return [
            key,
            name,
            f"rule-{name}",
            severity,
            "open",
            "C",
            file_name,
            "42",
            path,
            code,
            description,
            "CWE-120",
            "memory",
            remediation,
            "",
            "2024-05-01",
        ]

    def record(self, key: str, name: str, severity: str, *, row_number: int = 2, source: str = "input.xlsx", **overrides: str) -> Record:
        values = {
            letter: value
            for letter, value in zip(COLUMN_LETTERS, self.row(key, name, severity, **overrides))
            if value
        }
        return Record(values=values, source=Path(source), row_number=row_number)

    def workbook(self, name: str, rows: Iterable[Sequence[object]], *, header: Sequence[str] = HEADER) -> Path:
        workbook = Workbook()
        sheet = workbook.active
        sheet.append(list(header))
        for row in rows:
            sheet.append(list(row))
        target = self.root / name
        workbook.save(target)
        return target

    def csv(self, name: str, rows: Iterable[Sequence[object]], *, header: Sequence[str] = HEADER) -> Path:
        target = self.root / name
        with target.open("w", encoding="utf-8-sig", newline="") as handle:
            writer = csv.writer(handle)
            writer.writerow(list(header))
            for row in rows:
                writer.writerow(list(row))
        return target


@pytest.fixture
def tables(tmp_path: Path) -> TableFactory:
    root = tmp_path / "inputs"
    root.mkdir()
    return TableFactory(root)
