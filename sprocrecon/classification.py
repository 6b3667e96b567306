"""Deterministic subsystem attribution for matched and orphaned procedures."""
from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Iterable, List, Mapping, Sequence, Tuple, Union

from .config import ReconConfig
from .models import (
    UNCATEGORIZED,
    CallSite,
    CodeEntity,
    DbEntity,
    KeywordRule,
    OrphanCodeEntity,
    OrphanDbEntity,
    PrefixRule,
)

if TYPE_CHECKING:
    from .matching import MatchResult

Rule = Union[PrefixRule, KeywordRule]


def name_rules(config: ReconConfig) -> List[Rule]:
    """Rules for database-side names, in evaluation order.

    Prefix rules come first, longest prefix first (stable for equal lengths),
    followed by the keyword rules in their configured order.
    """

    prefixes = sorted(config.prefix_rules, key=lambda rule: -len(rule.prefix))
    return [*prefixes, *config.keyword_rules]


def classify_name(name: str, rules: Sequence[Rule]) -> str:
    for rule in rules:
        if rule.matches(name):
            return rule.subsystem
    return UNCATEGORIZED


def dominant_project(call_sites: Iterable[CallSite]) -> str | None:
    """Project with the most call sites; ties go to the first one seen."""

    tally = Counter(site.project for site in call_sites)
    if not tally:
        return None
    return tally.most_common(1)[0][0]


def infer_subsystem_from_callers(
    call_sites: Iterable[CallSite],
    project_subsystems: Mapping[str, str],
) -> str:
    project = dominant_project(call_sites)
    if project is None:
        return UNCATEGORIZED
    return project_subsystems.get(project, UNCATEGORIZED)


def representative_row(rows: Sequence[DbEntity], default_schema: str) -> DbEntity:
    for row in rows:
        if row.schema == default_schema:
            return row
    return rows[0]


def _called_from(entity: CodeEntity) -> Tuple[str, ...]:
    seen = dict.fromkeys(f"{site.file_name}:{site.method_name}" for site in entity.call_sites)
    return tuple(seen)


def name_sort_key(name: str) -> Tuple[str, str]:
    return (name.lower(), name)


def collect_orphans(
    db_index: Mapping[str, Sequence[DbEntity]],
    code_index: Mapping[str, CodeEntity],
    result: MatchResult,
    config: ReconConfig | None = None,
) -> Tuple[List[OrphanDbEntity], List[OrphanCodeEntity]]:
    """Attribute every unclaimed key on either side to a subsystem."""

    config = config or ReconConfig()
    rules = name_rules(config)

    orphan_db: List[OrphanDbEntity] = []
    for key, rows in db_index.items():
        if not rows or key in result.claimed_db_keys:
            continue
        primary = representative_row(rows, config.default_schema)
        orphan_db.append(
            OrphanDbEntity(
                name=primary.name,
                schema=primary.schema,
                all_schemas=tuple(sorted({row.schema for row in rows})),
                subsystem=classify_name(primary.name, rules),
                key=key,
            )
        )

    orphan_code: List[OrphanCodeEntity] = []
    for key, entity in code_index.items():
        if key in result.claimed_code_keys:
            continue
        orphan_code.append(
            OrphanCodeEntity(
                name=entity.name,
                called_from=_called_from(entity),
                subsystem=infer_subsystem_from_callers(entity.call_sites, config.project_subsystems),
                key=key,
                call_count=entity.total_calls,
            )
        )

    orphan_db.sort(key=lambda orphan: name_sort_key(orphan.name))
    orphan_code.sort(key=lambda orphan: name_sort_key(orphan.name))
    return orphan_db, orphan_code

