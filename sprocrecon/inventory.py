"""Index both inventories by normalised procedure name."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List

from .config import ReconConfig
from .models import CodeEntity, DbEntity
from .normalization import normalize

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class Inventory:
    """Lookup structures consumed by the matcher.

    ``db_index`` keeps every row sharing a key (one per schema);
    ``code_index`` holds a single entity per key.
    """

    db_index: Dict[str, List[DbEntity]] = field(default_factory=dict)
    code_index: Dict[str, CodeEntity] = field(default_factory=dict)
    skipped_db: int = 0
    skipped_code: int = 0
    merged_code: int = 0
    warnings: List[str] = field(default_factory=list)

    @property
    def db_total(self) -> int:
        return sum(len(rows) for rows in self.db_index.values())

    def record_warning(self, message: str) -> None:
        LOGGER.warning(message)
        self.warnings.append(message)


def build_inventory(
    db_entities: Iterable[DbEntity],
    code_entities: Iterable[CodeEntity],
    config: ReconConfig | None = None,
) -> Inventory:
    config = config or ReconConfig()
    inventory = Inventory()

    for entity in db_entities:
        key = normalize(entity.name, config.schema_qualifiers)
        if not key:
            inventory.skipped_db += 1
            inventory.record_warning(f"Dropped database entity without a name (schema {entity.schema!r})")
            continue
        inventory.db_index.setdefault(key, []).append(entity)

    for entity in code_entities:
        key = normalize(entity.name, config.schema_qualifiers)
        if not key:
            inventory.skipped_code += 1
            inventory.record_warning("Dropped code entity without a name")
            continue
        existing = inventory.code_index.get(key)
        if existing is None:
            inventory.code_index[key] = entity
            continue
        # Same key under a different spelling: fold call sites into the first entity.
        inventory.merged_code += 1
        inventory.record_warning(f"Merged code entity {entity.name!r} into {existing.name!r}")
        inventory.code_index[key] = replace(
            existing,
            call_sites=existing.call_sites + entity.call_sites,
            call_count=existing.total_calls + entity.total_calls,
        )

    LOGGER.info(
        "Indexed %d database keys (%d rows) and %d code keys",
        len(inventory.db_index),
        inventory.db_total,
        len(inventory.code_index),
    )
    return inventory
