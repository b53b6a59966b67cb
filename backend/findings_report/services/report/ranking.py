from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

from .models import Group

__all__ = ["rank_key", "rank_groups", "is_ranked"]


def rank_key(group: Group) -> Tuple[int, int, int]:
    return (group.severity.priority, -group.count, group.first_seen)


def rank_groups(groups: Iterable[Group]) -> List[Group]:
    """Order groups by severity priority, then member count (descending), then first-seen order."""

    return sorted(groups, key=rank_key)


def is_ranked(groups: Sequence[Group]) -> bool:
    return all(rank_key(left) < rank_key(right) for left, right in zip(groups, groups[1:]))
