from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from docx import Document
from docx.document import Document as DocxDocument
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml.ns import qn
from docx.shared import Pt
from docx.table import _Cell

from .document import DetailSection, ReportDocument, SummaryTable
from .errors import ReportWriteError

__all__ = ["DocxReportWriter", "build_output_path", "EAST_ASIA_FONT"]

logger = logging.getLogger(__name__)

EAST_ASIA_FONT = "宋体"
TABLE_STYLE = "Table Grid"

_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\s]+')


def build_output_path(
    output_dir: Path,
    *,
    identifier_tag: str,
    code_version: str,
    generated_at: datetime,
) -> Path:
    parts = [identifier_tag, code_version, generated_at.strftime("%Y%m%d_%H%M%S")]
    stem = "_".join(_UNSAFE_FILENAME_CHARS.sub("_", part).strip("_") for part in parts if part)
    return (output_dir / f"{stem}.docx").resolve()


class DocxReportWriter:
    """Render a ``ReportDocument`` into a Word file with python-docx."""

    def __init__(self, *, east_asia_font: Optional[str] = EAST_ASIA_FONT) -> None:
        self._east_asia_font = east_asia_font

    def write(self, report: ReportDocument, path: Path) -> Path:
        target = Path(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ReportWriteError(f"Cannot create output directory {target.parent}: {exc}") from exc

        try:
            document = self.render(report)
            document.save(str(target))
        except OSError as exc:
            logger.exception("Failed to save report document to %s", target)
            raise ReportWriteError(f"Cannot write report file {target}: {exc}") from exc
        except Exception as exc:
            logger.exception("Failed to render report document.")
            raise ReportWriteError(f"Cannot render report document: {exc}") from exc

        logger.info("Report document written to %s", target)
        return target.resolve()

    def render(self, report: ReportDocument) -> DocxDocument:
        document = Document()
        self._add_summary(document, report.summary)
        for section in report.sections:
            self._add_section(document, report, section)
        return document

    def _add_summary(self, document: DocxDocument, summary: SummaryTable) -> None:
        title = document.add_paragraph()
        title.alignment = WD_ALIGN_PARAGRAPH.CENTER
        self._add_run(title, summary.title, size=16, bold=True)

        table = document.add_table(rows=1, cols=len(summary.headers))
        table.style = TABLE_STYLE
        for cell, header in zip(table.rows[0].cells, summary.headers):
            self._set_cell(cell, header, bold=True)

        for row in summary.rows:
            cells = table.add_row().cells
            values = (str(row.sequence), row.problem_name, row.severity_label, str(row.count))
            for cell, value in zip(cells, values):
                self._set_cell(cell, value, align=WD_ALIGN_PARAGRAPH.CENTER)

        document.add_paragraph()

    def _add_section(self, document: DocxDocument, report: ReportDocument, section: DetailSection) -> None:
        labels = report.labels
        heading = document.add_heading(level=3)
        self._add_run(heading, section.heading, size=14, bold=True)

        table = document.add_table(rows=0, cols=4)
        table.style = TABLE_STYLE
        table.alignment = WD_TABLE_ALIGNMENT.CENTER

        self._add_pair_row(
            table,
            (labels.report_number, section.report_number, labels.code_version, report.code_version),
        )
        self._add_pair_row(
            table,
            (labels.tester, report.tester, labels.test_date, report.test_date),
        )

        description_lines = [labels.description_intro, section.problem_name]
        for finding in section.findings:
            if finding.code:
                caption = labels.code_caption.format(index=finding.index, identifier=finding.identifier)
                description_lines.append(f"{caption}\n{finding.code}")
        self._add_spanning_row(table, labels.description, description_lines)

        self._add_spanning_row(table, labels.severity, [section.severity_text])

        path_lines = [
            labels.path_caption.format(index=finding.index, identifier=finding.identifier)
            + "\n"
            + finding.affected_path
            for finding in section.findings
        ]
        self._add_spanning_row(table, labels.affected_path, path_lines)
        self._add_spanning_row(table, labels.vulnerability, [section.vulnerability])
        self._add_spanning_row(table, labels.remediation, [section.remediation])

        document.add_paragraph()

    def _add_pair_row(self, table, values: Sequence[str]) -> None:
        cells = table.add_row().cells
        for cell, value in zip(cells, values):
            self._set_cell(cell, value)

    def _add_spanning_row(self, table, label: str, lines: Sequence[str]) -> None:
        cells = table.add_row().cells
        self._set_cell(cells[0], label)
        merged = cells[1].merge(cells[3])
        self._set_cell(merged, lines[0] if lines else "")
        for line in lines[1:]:
            self._add_run(merged.add_paragraph(), line)

    def _set_cell(
        self,
        cell: _Cell,
        text: str,
        *,
        bold: bool = False,
        align: Optional[WD_ALIGN_PARAGRAPH] = None,
    ) -> None:
        paragraph = cell.paragraphs[0]
        for run in list(paragraph.runs):
            run._element.getparent().remove(run._element)
        if align is not None:
            paragraph.alignment = align
        self._add_run(paragraph, text, bold=bold)

    def _add_run(self, paragraph, text: str, *, size: Optional[int] = None, bold: bool = False):
        run = paragraph.add_run(text or "")
        if bold:
            run.bold = True
        if size is not None:
            run.font.size = Pt(size)
        if self._east_asia_font:
            run.font.name = self._east_asia_font
            run._element.rPr.rFonts.set(qn("w:eastAsia"), self._east_asia_font)
        return run
