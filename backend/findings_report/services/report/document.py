"""Logical structure of a generated findings report.

The assembler maps ranked, identified groups onto a plain tree of dataclasses.
Serializing that tree to a file is the writer's job.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Tuple

from .models import (
    CODE_COLUMN,
    DESCRIPTION_COLUMN,
    PATH_COLUMN,
    REMEDIATION_COLUMN,
    IdentifiedGroup,
    ReportConfig,
    Severity,
)

__all__ = [
    "ReportLabels",
    "LABELS",
    "get_labels",
    "SummaryRow",
    "SummaryTable",
    "FindingDetail",
    "DetailSection",
    "ReportDocument",
    "clean_text",
    "severity_indicator",
    "assemble_document",
]


@dataclass(frozen=True)
class ReportLabels:
    locale: str
    summary_title: str
    summary_headers: Tuple[str, str, str, str]
    severity_short: Dict[Severity, str]
    severity_options: Tuple[str, str, str]
    section_heading: str
    report_number: str
    code_version: str
    tester: str
    test_date: str
    description: str
    description_intro: str
    severity: str
    affected_path: str
    vulnerability: str
    remediation: str
    code_caption: str
    path_caption: str


LABELS: Dict[str, ReportLabels] = {
    "zh": ReportLabels(
        locale="zh",
        summary_title="问题统计表格",
        summary_headers=("序号", "问题名称", "严重性级别", "问题个数"),
        severity_short={
            Severity.HIGH: "高",
            Severity.MEDIUM: "中",
            Severity.LOW: "低",
            Severity.UNKNOWN: "未知",
        },
        severity_options=("高危风险", "中危风险", "低危风险"),
        section_heading="{rank}、{name}",
        report_number="问题报告编号",
        code_version="软件版本",
        tester="测试人",
        test_date="测试时间",
        description="问题描述",
        description_intro="缺陷描述：",
        severity="问题严重性级别",
        affected_path="相关文件路径",
        vulnerability="漏洞说明",
        remediation="整改建议",
        code_caption="缺陷{index}（{identifier}）相关代码如下：",
        path_caption="缺陷{index}（{identifier}）文件路径：",
    ),
    "en": ReportLabels(
        locale="en",
        summary_title="Issue Summary",
        summary_headers=("No.", "Problem", "Severity", "Count"),
        severity_short={
            Severity.HIGH: "High",
            Severity.MEDIUM: "Medium",
            Severity.LOW: "Low",
            Severity.UNKNOWN: "Unknown",
        },
        severity_options=("High risk", "Medium risk", "Low risk"),
        section_heading="{rank}. {name}",
        report_number="Report No.",
        code_version="Software version",
        tester="Tester",
        test_date="Test date",
        description="Description",
        description_intro="Defect description:",
        severity="Severity",
        affected_path="Affected paths",
        vulnerability="Vulnerability",
        remediation="Remediation",
        code_caption="Defect {index} ({identifier}) code:",
        path_caption="Defect {index} ({identifier}) path:",
    ),
}


def get_labels(locale: str | None) -> ReportLabels:
    return LABELS.get((locale or "zh").strip().lower(), LABELS["zh"])


@dataclass(frozen=True)
class SummaryRow:
    sequence: int
    problem_name: str
    severity_label: str
    count: int


@dataclass(frozen=True)
class SummaryTable:
    title: str
    headers: Tuple[str, str, str, str]
    rows: Tuple[SummaryRow, ...]


@dataclass(frozen=True)
class FindingDetail:
    index: int
    identifier: str
    description: str
    affected_path: str
    code: str
    remediation: str


@dataclass(frozen=True)
class DetailSection:
    rank: int
    heading: str
    report_number: str
    severity: Severity
    severity_text: str
    problem_name: str
    vulnerability: str
    remediation: str
    findings: Tuple[FindingDetail, ...]


@dataclass(frozen=True)
class ReportDocument:
    labels: ReportLabels
    code_version: str
    tester: str
    test_date: str
    summary: SummaryTable
    sections: Tuple[DetailSection, ...] = field(default_factory=tuple)

    @property
    def finding_count(self) -> int:
        return sum(len(section.findings) for section in self.sections)


def clean_text(text: str) -> str:
    if not text:
        return ""
    return text.replace("_x000D_", "").replace(" " * 6, " " * 4).strip()


def severity_indicator(severity: Severity, labels: ReportLabels) -> str:
    checked = {
        Severity.HIGH: 0,
        Severity.MEDIUM: 1,
        Severity.LOW: 2,
    }.get(severity)
    marks = [
        ("☑" if index == checked else "☐") + " " + option
        for index, option in enumerate(labels.severity_options)
    ]
    return "  ".join(marks)


def _strip_root_prefix(path: str) -> str:
    return re.sub(r"^(?:root)+", "", path)


def _distinct(values: Iterable[str]) -> str:
    seen: List[str] = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return "\n".join(seen)


def assemble_document(
    groups: Sequence[IdentifiedGroup],
    *,
    config: ReportConfig,
    labels: ReportLabels | None = None,
) -> ReportDocument:
    labels = labels or LABELS["zh"]

    summary_rows = tuple(
        SummaryRow(
            sequence=item.rank,
            problem_name=item.group.problem_name,
            severity_label=labels.severity_short[item.group.severity],
            count=item.group.count,
        )
        for item in groups
    )

    sections: List[DetailSection] = []
    for item in groups:
        findings = tuple(
            FindingDetail(
                index=index,
                identifier=finding.identifier,
                description=clean_text(finding.record.get(DESCRIPTION_COLUMN)),
                affected_path=clean_text(_strip_root_prefix(finding.record.get(PATH_COLUMN))),
                code=clean_text(finding.record.get(CODE_COLUMN)),
                remediation=clean_text(finding.record.get(REMEDIATION_COLUMN)),
            )
            for index, finding in enumerate(item.findings, start=1)
        )
        sections.append(
            DetailSection(
                rank=item.rank,
                heading=labels.section_heading.format(rank=item.rank, name=item.group.problem_name),
                report_number=item.report_number,
                severity=item.group.severity,
                severity_text=severity_indicator(item.group.severity, labels),
                problem_name=item.group.problem_name,
                vulnerability=_distinct(detail.description for detail in findings),
                remediation=_distinct(detail.remediation for detail in findings),
                findings=findings,
            )
        )

    return ReportDocument(
        labels=labels,
        code_version=config.code_version,
        tester=config.tester,
        test_date=config.test_date,
        summary=SummaryTable(
            title=labels.summary_title,
            headers=labels.summary_headers,
            rows=summary_rows,
        ),
        sections=tuple(sections),
    )
