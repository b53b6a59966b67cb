from __future__ import annotations

import logging

import pytest

from findings_report.services.report.dedup import deduplicate
from findings_report.services.report.grouping import GroupAggregator, aggregate
from findings_report.services.report.models import GroupKey, Severity
from findings_report.services.report.ranking import is_ranked, rank_groups


def test_deduplicate_keeps_first_occurrence_across_files(tables) -> None:
    first = tables.record("1", "SQL Injection", "High", source="a.xlsx", row_number=2)
    duplicate = tables.record("1", "SQL Injection", "High", source="b.xlsx", row_number=2, path="other/path.c")
    other = tables.record("2", "SQL Injection", "High", source="b.xlsx", row_number=3)

    result = deduplicate([first, duplicate, other])

    assert result.records == (first, other)
    assert result.duplicates == 1
    assert result.records[0].get("I") == "root/src/main.c"


def test_deduplicated_keys_are_unique(tables) -> None:
    records = [
        tables.record(str(index % 3), "Name", "Low", row_number=index + 2)
        for index in range(9)
    ]

    result = deduplicate(records)

    keys = [record.dedup_key for record in result.records]
    assert len(keys) == len(set(keys)) == 3
    assert result.duplicates == 6


def test_deduplicate_treats_case_as_significant(tables) -> None:
    upper = tables.record("1", "XSS", "High")
    lower = tables.record("1", "xss", "High")

    assert deduplicate([upper, lower]).duplicates == 0


def test_group_aggregator_preserves_first_seen_order(tables) -> None:
    records = [
        tables.record("1", "A", "High"),
        tables.record("2", "A", "Medium"),
        tables.record("3", "B", "High"),
        tables.record("4", "C", "Foo"),
        tables.record("5", "A", "High"),
    ]

    result = aggregate(records)

    assert [group.key for group in result.groups] == [
        GroupKey("A", "High"),
        GroupKey("A", "Medium"),
        GroupKey("B", "High"),
        GroupKey("C", "Foo"),
    ]
    assert [group.count for group in result.groups] == [2, 1, 1, 1]
    assert [group.first_seen for group in result.groups] == [0, 1, 2, 3]
    assert result.groups[3].severity is Severity.UNKNOWN
    assert result.total_records == 5
    assert result.is_consistent()


def test_group_aggregator_logs_inconsistent_counts(tables, caplog) -> None:
    aggregator = GroupAggregator()
    group = aggregator.add(tables.record("1", "A", "Low"))
    group.records.append(tables.record("2", "A", "Low"))

    with caplog.at_level(logging.ERROR, logger="findings_report.services.report.grouping"):
        result = aggregator.result()

    assert not result.is_consistent()
    assert result.total_records == 1
    assert "Grouped record count 2 does not match the 1 record(s) added" in caplog.text


def test_group_aggregator_returns_group_for_each_record(tables) -> None:
    aggregator = GroupAggregator()
    first = aggregator.add(tables.record("1", "A", "Low"))
    second = aggregator.add(tables.record("2", "A", "Low"))

    assert first is second
    assert len(aggregator) == 1
    assert [record.get("A") for record in first.records] == ["1", "2"]


@pytest.mark.parametrize(
    "label, expected",
    [
        ("High", Severity.HIGH),
        ("Medium", Severity.MEDIUM),
        ("Low", Severity.LOW),
        ("高危", Severity.HIGH),
        ("中", Severity.MEDIUM),
        ("低危", Severity.LOW),
        ("high", Severity.UNKNOWN),
        ("Critical", Severity.UNKNOWN),
        ("", Severity.UNKNOWN),
        (None, Severity.UNKNOWN),
    ],
)
def test_severity_from_label(label, expected) -> None:
    assert Severity.from_label(label) is expected


def test_severity_priorities() -> None:
    assert [severity.priority for severity in Severity] == [1, 2, 3, 999]


def test_rank_groups_orders_by_severity_then_count_then_first_seen(tables) -> None:
    records = [
        tables.record("1", "A", "High"),
        tables.record("2", "A", "Medium"),
        tables.record("3", "B", "High"),
        tables.record("4", "C", "Foo"),
        tables.record("5", "D", "Medium"),
        tables.record("6", "D", "Medium"),
        tables.record("7", "B", "High"),
    ]

    ranked = rank_groups(aggregate(records).groups)

    assert [group.key for group in ranked] == [
        GroupKey("B", "High"),
        GroupKey("A", "High"),
        GroupKey("D", "Medium"),
        GroupKey("A", "Medium"),
        GroupKey("C", "Foo"),
    ]
    assert is_ranked(ranked)


def test_rank_groups_breaks_ties_by_first_seen(tables) -> None:
    records = [
        tables.record("1", "A", "High"),
        tables.record("2", "A", "Medium"),
        tables.record("3", "B", "High"),
        tables.record("4", "C", "Foo"),
    ]

    ranked = rank_groups(aggregate(records).groups)

    assert [group.key for group in ranked] == [
        GroupKey("A", "High"),
        GroupKey("B", "High"),
        GroupKey("A", "Medium"),
        GroupKey("C", "Foo"),
    ]


def test_rank_groups_is_idempotent(tables) -> None:
    records = [
        tables.record(str(index), name, severity)
        for index, (name, severity) in enumerate(
            [("X", "Low"), ("Y", "High"), ("X", "Low"), ("Z", "Unknown"), ("Y", "High"), ("W", "High")]
        )
    ]
    groups = aggregate(records).groups

    once = rank_groups(groups)
    twice = rank_groups(once)

    assert [group.key for group in once] == [group.key for group in twice]
    assert not is_ranked(list(reversed(once)))
