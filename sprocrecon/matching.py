"""Record matching between the database catalog and code-side references."""
from __future__ import annotations

import logging
from typing import List, Mapping, Sequence, Set

from .classification import infer_subsystem_from_callers, name_sort_key, representative_row
from .config import ReconConfig
from .models import CodeEntity, DbEntity, MatchRecord
from .normalization import strip_convention_prefix

LOGGER = logging.getLogger(__name__)

EXACT = "exact"
FUZZY = "fuzzy"


class MatchResult:
    """Container for match records and the keys they consumed."""

    def __init__(self) -> None:
        self.records: List[MatchRecord] = []
        self.claimed_db_keys: Set[str] = set()
        self.claimed_code_keys: Set[str] = set()

    def claim(self, record: MatchRecord) -> None:
        self.claimed_db_keys.add(record.db_key)
        self.claimed_code_keys.add(record.code_key)
        self.records.append(record)

    def is_free(self, db_key: str, code_key: str) -> bool:
        return db_key not in self.claimed_db_keys and code_key not in self.claimed_code_keys

    @property
    def exact_count(self) -> int:
        return sum(1 for record in self.records if record.match_kind == EXACT)

    @property
    def fuzzy_count(self) -> int:
        return sum(1 for record in self.records if record.match_kind == FUZZY)

    @property
    def multi_schema_count(self) -> int:
        return sum(1 for record in self.records if record.is_multi_schema)

    def sorted_records(self) -> List[MatchRecord]:
        return sorted(self.records, key=lambda record: name_sort_key(record.canonical_name))


def build_record(
    db_key: str,
    rows: Sequence[DbEntity],
    code_key: str,
    code: CodeEntity,
    *,
    kind: str,
    config: ReconConfig,
) -> MatchRecord:
    primary = representative_row(rows, config.default_schema)
    sites = code.call_sites
    return MatchRecord(
        canonical_name=primary.name,
        schema=primary.schema,
        all_schemas=tuple(sorted({row.schema for row in rows})),
        match_kind=kind,
        subsystem=infer_subsystem_from_callers(sites, config.project_subsystems),
        db_key=db_key,
        code_key=code_key,
        fuzzy_alias=code.name if kind == FUZZY else None,
        call_count=code.total_calls,
        called_from_files=tuple(dict.fromkeys(site.file_name for site in sites)),
        called_from_methods=tuple(dict.fromkeys(site.method_name for site in sites)),
        called_from_projects=tuple(dict.fromkeys(site.project for site in sites)),
    )


def match_entities(
    db_index: Mapping[str, Sequence[DbEntity]],
    code_index: Mapping[str, CodeEntity],
    config: ReconConfig | None = None,
) -> MatchResult:
    """Pair database groups with code entities in three ordered passes.

    1. exact: identical normalised keys;
    2. forward fuzzy: code key with its convention prefix stripped;
    3. reverse fuzzy: database key with its convention prefix stripped.

    Claimed keys are shared across the passes, so the first claim wins and
    iteration order over the indexes decides contested targets.
    """

    config = config or ReconConfig()
    prefixes = config.convention_prefixes
    result = MatchResult()

    for code_key, code in code_index.items():
        rows = db_index.get(code_key)
        if rows and result.is_free(code_key, code_key):
            result.claim(build_record(code_key, rows, code_key, code, kind=EXACT, config=config))

    exact = len(result.records)
    LOGGER.info("Exact matches: %d", exact)

    for code_key, code in code_index.items():
        if code_key in result.claimed_code_keys:
            continue
        stripped = strip_convention_prefix(code_key, prefixes)
        if stripped == code_key:
            continue
        rows = db_index.get(stripped)
        if rows and result.is_free(stripped, code_key):
            result.claim(build_record(stripped, rows, code_key, code, kind=FUZZY, config=config))

    for db_key, rows in db_index.items():
        if db_key in result.claimed_db_keys or not rows:
            continue
        stripped = strip_convention_prefix(db_key, prefixes)
        if stripped == db_key:
            continue
        code = code_index.get(stripped)
        if code is not None and result.is_free(db_key, stripped):
            result.claim(build_record(db_key, rows, stripped, code, kind=FUZZY, config=config))

    LOGGER.info("Fuzzy matches: %d", len(result.records) - exact)
    multi = result.multi_schema_count
    if multi:
        LOGGER.info("Multi-schema matches: %d", multi)
    return result

