from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

pytest.importorskip("docx")
from docx import Document

from findings_report.services.report.document import (
    LABELS,
    assemble_document,
    clean_text,
    get_labels,
    severity_indicator,
)
from findings_report.services.report.errors import ReportWriteError
from findings_report.services.report.grouping import aggregate
from findings_report.services.report.identifiers import assign_identifiers
from findings_report.services.report.models import ReportConfig, Severity
from findings_report.services.report.ranking import rank_groups
from findings_report.services.report.writer import DocxReportWriter, build_output_path


def _config(tmp_path: Path) -> ReportConfig:
    return ReportConfig.create(
        input_files=[tmp_path / "a.xlsx"],
        output_dir=tmp_path / "out",
        identifier_tag="PRJ",
        sequence_offset=0,
        test_date="2024-05-01",
        code_version="v1.2",
        tester="Lin",
    )


def _document(tables, tmp_path: Path, locale: str = "zh"):
    records = [
        tables.record("1", "Buffer Overflow", "High", code="memcpy(a, b, n);_x000D_", path="rootsrc/a.c"),
        tables.record("2", "Weak Hash", "Low", description="MD5 used.", remediation="Use SHA-256."),
        tables.record("3", "Buffer Overflow", "High", path="rootsrc/b.c"),
    ]
    ranked = rank_groups(aggregate(records).groups)
    identified = assign_identifiers(ranked, identifier_tag="PRJ", offset=0)
    return assemble_document(identified, config=_config(tmp_path), labels=get_labels(locale))


def test_summary_table_lists_groups_in_ranked_order(tables, tmp_path: Path) -> None:
    document = _document(tables, tmp_path)

    assert document.summary.title == "问题统计表格"
    assert document.summary.headers == ("序号", "问题名称", "严重性级别", "问题个数")
    assert [(row.sequence, row.problem_name, row.severity_label, row.count) for row in document.summary.rows] == [
        (1, "Buffer Overflow", "高", 2),
        (2, "Weak Hash", "低", 1),
    ]
    assert document.finding_count == 3


def test_detail_sections_carry_findings_and_metadata(tables, tmp_path: Path) -> None:
    document = _document(tables, tmp_path)

    first, second = document.sections
    assert first.heading == "1、Buffer Overflow"
    assert first.report_number == "PRJ-WT-0001"
    assert first.severity_text == "☑ 高危风险  ☐ 中危风险  ☐ 低危风险"
    assert [finding.identifier for finding in first.findings] == ["PRJ-WT-0001", "PRJ-WT-0002"]
    assert first.findings[0].affected_path == "src/a.c"
    assert first.findings[0].code == "memcpy(a, b, n);"
    assert first.vulnerability == "Unchecked buffer copy."
    assert second.heading == "2、Weak Hash"
    assert second.findings[0].identifier == "PRJ-WT-0003"
    assert second.remediation == "Use SHA-256."
    assert document.code_version == "v1.2"
    assert document.tester == "Lin"


def test_english_labels(tables, tmp_path: Path) -> None:
    document = _document(tables, tmp_path, locale="en")

    assert document.summary.rows[0].severity_label == "High"
    assert document.sections[0].heading == "1. Buffer Overflow"
    assert get_labels("fr") is LABELS["zh"]


def test_severity_indicator_marks_nothing_for_unknown() -> None:
    labels = LABELS["zh"]
    assert severity_indicator(Severity.MEDIUM, labels) == "☐ 高危风险  ☑ 中危风险  ☐ 低危风险"
    assert "☑" not in severity_indicator(Severity.UNKNOWN, labels)


def test_clean_text_removes_spreadsheet_artifacts() -> None:
    assert clean_text("  a_x000D_\n" + " " * 6 + "b  ") == "a\n    b"
    assert clean_text("") == ""


def test_writer_renders_summary_and_sections(tables, tmp_path: Path) -> None:
    document = _document(tables, tmp_path)
    target = tmp_path / "out" / "report.docx"

    written = DocxReportWriter().write(document, target)

    assert written == target.resolve()
    rendered = Document(str(written))
    paragraphs = [paragraph.text for paragraph in rendered.paragraphs]
    assert paragraphs[0] == "问题统计表格"
    assert "1、Buffer Overflow" in paragraphs
    assert "2、Weak Hash" in paragraphs

    summary_table = rendered.tables[0]
    assert [cell.text for cell in summary_table.rows[0].cells] == ["序号", "问题名称", "严重性级别", "问题个数"]
    assert [cell.text for cell in summary_table.rows[1].cells] == ["1", "Buffer Overflow", "高", "2"]
    assert len(summary_table.rows) == 3

    detail = rendered.tables[1]
    assert [cell.text for cell in detail.rows[0].cells] == ["问题报告编号", "PRJ-WT-0001", "软件版本", "v1.2"]
    assert [cell.text for cell in detail.rows[1].cells] == ["测试人", "Lin", "测试时间", "2024-05-01"]
    assert detail.rows[3].cells[1].text == "☑ 高危风险  ☐ 中危风险  ☐ 低危风险"
    assert "src/a.c" in detail.rows[4].cells[1].text
    assert "PRJ-WT-0002" in detail.rows[4].cells[1].text
    assert len(rendered.tables) == 3


def test_writer_reports_unwritable_target(tables, tmp_path: Path) -> None:
    document = _document(tables, tmp_path)
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(ReportWriteError):
        DocxReportWriter().write(document, blocker / "report.docx")


def test_build_output_path_encodes_tag_version_and_date(tmp_path: Path) -> None:
    path = build_output_path(
        tmp_path,
        identifier_tag="PRJ/01",
        code_version="v1.2 beta",
        generated_at=datetime(2024, 5, 1, 9, 30, 15),
    )

    assert path.name == "PRJ_01_v1.2_beta_20240501_093015.docx"
    assert path.is_absolute()
