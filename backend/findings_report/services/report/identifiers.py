from __future__ import annotations

from typing import List, Sequence

from .errors import ConfigError
from .models import Group, IdentifiedFinding, IdentifiedGroup

__all__ = ["DEFAULT_IDENTIFIER_WIDTH", "IDENTIFIER_INFIX", "format_identifier", "assign_identifiers"]

DEFAULT_IDENTIFIER_WIDTH = 4
IDENTIFIER_INFIX = "WT"


def format_identifier(identifier_tag: str, sequence: int, width: int = DEFAULT_IDENTIFIER_WIDTH) -> str:
    return f"{identifier_tag}-{IDENTIFIER_INFIX}-{sequence:0{width}d}"


def assign_identifiers(
    groups: Sequence[Group],
    *,
    identifier_tag: str,
    offset: int = 0,
    width: int = DEFAULT_IDENTIFIER_WIDTH,
) -> List[IdentifiedGroup]:
    """
    Number every finding in ranked-then-member order, starting at ``offset + 1``.
    The pad width is widened when the last sequence needs more digits so one run never mixes widths.
    """
    tag = (identifier_tag or "").strip()
    if not tag:
        raise ConfigError("Identifier tag must not be empty.")
    if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
        raise ConfigError("Starting sequence offset must be a non-negative integer.")
    if width < 1:
        raise ConfigError("Identifier width must be at least 1.")

    total = sum(group.count for group in groups)
    width = max(width, len(str(offset + total)))

    identified: List[IdentifiedGroup] = []
    sequence = offset
    for rank, group in enumerate(groups, start=1):
        findings = []
        for record in group.records:
            sequence += 1
            findings.append(
                IdentifiedFinding(
                    identifier=format_identifier(tag, sequence, width),
                    sequence=sequence,
                    record=record,
                )
            )
        identified.append(IdentifiedGroup(rank=rank, group=group, findings=tuple(findings)))
    return identified
