"""Group matched and orphaned procedures by owning subsystem."""
from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Set

from .classification import name_sort_key
from .config import ReconConfig
from .models import (
    UNCATEGORIZED,
    MatchRecord,
    OrphanCodeEntity,
    OrphanDbEntity,
    SubsystemAssets,
    SubsystemMapping,
)


class _Buckets:
    def __init__(self) -> None:
        self.matched: Set[str] = set()
        self.db_only: Set[str] = set()
        self.code_only: Set[str] = set()


def _sorted(names: Iterable[str]) -> List[str]:
    return sorted(names, key=name_sort_key)


def build_subsystem_mappings(
    records: Iterable[MatchRecord],
    orphan_db: Iterable[OrphanDbEntity],
    orphan_code: Iterable[OrphanCodeEntity],
    assets: Sequence[SubsystemAssets] = (),
    config: ReconConfig | None = None,
) -> List[SubsystemMapping]:
    """Build one mapping per known or referenced subsystem.

    Subsystems come from the asset table, from any record's attribution and
    the synthetic uncategorized bucket, so none is dropped for owning nothing.
    The list is ordered by total procedure count, largest first; equal totals
    keep their first-appearance order.
    """

    config = config or ReconConfig()
    owned: Dict[str, SubsystemAssets] = {}
    for row in assets:
        owned.setdefault(row.subsystem_id, row)

    buckets: Dict[str, _Buckets] = {key: _Buckets() for key in owned}

    def bucket(subsystem: str) -> _Buckets:
        return buckets.setdefault(subsystem, _Buckets())

    for record in records:
        bucket(record.subsystem).matched.add(record.canonical_name)
    for orphan in orphan_db:
        bucket(orphan.subsystem).db_only.add(orphan.name)
    for orphan in orphan_code:
        bucket(orphan.subsystem).code_only.add(orphan.name)
    bucket(UNCATEGORIZED)

    mappings: List[SubsystemMapping] = []
    for subsystem, names in buckets.items():
        row = owned.get(subsystem)
        display_name = row.display_name if row and row.display_name else config.display_name(subsystem)
        mappings.append(
            SubsystemMapping(
                subsystem_id=subsystem,
                display_name=display_name,
                owned_asset_names=_sorted(row.asset_names) if row else [],
                matched=_sorted(names.matched),
                db_only=_sorted(names.db_only),
                code_only=_sorted(names.code_only),
            )
        )

    mappings.sort(key=lambda mapping: -mapping.total)
    return mappings
