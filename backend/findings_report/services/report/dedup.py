from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Set, Tuple

from .models import Record

__all__ = ["DedupResult", "deduplicate"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DedupResult:
    records: Tuple[Record, ...]
    duplicates: int


def deduplicate(records: Iterable[Record]) -> DedupResult:
    """
    Keep the first occurrence of every record by its seven-column key.
    Input order (file selection order, then row order) is preserved for the retained records.
    """
    seen: Set[Tuple[str, ...]] = set()
    unique: List[Record] = []
    duplicates = 0

    for record in records:
        key = record.dedup_key
        if key in seen:
            duplicates += 1
            logger.debug(
                "Dropping duplicate record.",
                extra={"path": str(record.source), "row": record.row_number},
            )
            continue
        seen.add(key)
        unique.append(record)

    logger.info("Deduplicated %d record(s); %d duplicate(s) removed", len(unique), duplicates)
    return DedupResult(records=tuple(unique), duplicates=duplicates)
