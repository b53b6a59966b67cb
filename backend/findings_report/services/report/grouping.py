from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from .models import Group, GroupKey, Record, Severity

__all__ = ["GroupAggregator", "GroupingResult", "aggregate"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GroupingResult:
    groups: Tuple[Group, ...]
    total_records: int

    @property
    def total_groups(self) -> int:
        return len(self.groups)

    def is_consistent(self) -> bool:
        return sum(group.count for group in self.groups) == self.total_records


class GroupAggregator:
    """Insertion-ordered grouping of records by (problem name, severity label)."""

    def __init__(self) -> None:
        self._groups: List[Group] = []
        self._index: Dict[GroupKey, int] = {}
        self._total = 0

    def add(self, record: Record) -> Group:
        key = record.group_key
        position = self._index.get(key)
        if position is None:
            position = len(self._groups)
            self._groups.append(
                Group(
                    key=key,
                    severity=Severity.from_label(key.severity_label),
                    first_seen=position,
                )
            )
            self._index[key] = position
        group = self._groups[position]
        group.records.append(record)
        self._total += 1
        return group

    def extend(self, records: Iterable[Record]) -> None:
        for record in records:
            self.add(record)

    def __len__(self) -> int:
        return len(self._groups)

    def result(self) -> GroupingResult:
        result = GroupingResult(groups=tuple(self._groups), total_records=self._total)
        if not result.is_consistent():
            logger.error(
                "Grouped record count %d does not match the %d record(s) added",
                sum(group.count for group in result.groups),
                result.total_records,
            )
        return result


def aggregate(records: Iterable[Record]) -> GroupingResult:
    aggregator = GroupAggregator()
    aggregator.extend(records)
    result = aggregator.result()
    logger.info(
        "Grouped %d record(s) into %d group(s)",
        result.total_records,
        result.total_groups,
    )
    return result
