from __future__ import annotations

from typing import Sequence

import pandas as pd

from .document import LABELS, ReportLabels
from .models import Group, Severity

SUMMARY_EXPORT_COLUMNS = [
    "sequence",
    "problem_name",
    "severity",
    "severity_label",
    "priority",
    "count",
]


def build_summary_dataframe(groups: Sequence[Group]) -> pd.DataFrame:
    rows = []
    for sequence, group in enumerate(groups, start=1):
        rows.append(
            {
                "sequence": sequence,
                "problem_name": group.problem_name,
                "severity": group.severity.value,
                "severity_label": group.key.severity_label,
                "priority": group.severity.priority,
                "count": group.count,
            }
        )
    dataframe = pd.DataFrame(rows)
    return dataframe.reindex(columns=SUMMARY_EXPORT_COLUMNS)


def build_summary_view(dataframe: pd.DataFrame, labels: ReportLabels | None = None) -> pd.DataFrame:
    labels = labels or LABELS["zh"]
    columns = list(labels.summary_headers)
    if dataframe.empty:
        return pd.DataFrame(columns=columns)

    severity_map = {severity.value: text for severity, text in labels.severity_short.items()}
    output = pd.DataFrame(
        {
            columns[0]: dataframe["sequence"].astype(int),
            columns[1]: dataframe["problem_name"].fillna("").astype(str),
            columns[2]: dataframe["severity"].map(severity_map).fillna(labels.severity_short[Severity.UNKNOWN]),
            columns[3]: dataframe["count"].astype(int),
        }
    )
    return output.reindex(columns=columns)


def build_summary_csv(groups: Sequence[Group], labels: ReportLabels | None = None) -> str:
    view = build_summary_view(build_summary_dataframe(groups), labels)
    return view.to_csv(index=False)
