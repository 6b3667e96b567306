"""Data models used by the stored-procedure reconciliation workflow."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

UNCATEGORIZED = "(uncategorized)"


@dataclass(frozen=True, slots=True)
class DbEntity:
    name: str
    schema: str


@dataclass(frozen=True, slots=True)
class CallSite:
    file_path: str
    class_name: str = ""
    method_name: str = ""

    @property
    def project(self) -> str:
        path = self.file_path.replace("\\", "/")
        slash = path.find("/")
        return path[:slash] if slash > 0 else path

    @property
    def file_name(self) -> str:
        path = self.file_path.replace("\\", "/")
        return path.rsplit("/", 1)[-1]


@dataclass(frozen=True, slots=True)
class CodeEntity:
    name: str
    call_sites: Tuple[CallSite, ...] = ()
    call_count: Optional[int] = None

    @property
    def total_calls(self) -> int:
        return self.call_count if self.call_count is not None else len(self.call_sites)


@dataclass(frozen=True, slots=True)
class PrefixRule:
    """Assigns a subsystem to names starting with ``prefix`` (case-sensitive)."""

    prefix: str
    subsystem: str

    def matches(self, name: str) -> bool:
        return name.startswith(self.prefix)


@dataclass(frozen=True, slots=True)
class KeywordRule:
    """Assigns a subsystem when any keyword occurs in the lowercased name.

    ``excludes`` vetoes the rule when one of its keywords is also present.
    """

    keywords: Tuple[str, ...]
    subsystem: str
    excludes: Tuple[str, ...] = ()

    def matches(self, name: str) -> bool:
        lowered = name.lower()
        if any(word.lower() in lowered for word in self.excludes):
            return False
        return any(word.lower() in lowered for word in self.keywords)


@dataclass(slots=True)
class MatchRecord:
    canonical_name: str
    schema: str
    all_schemas: Tuple[str, ...]
    match_kind: str
    subsystem: str
    db_key: str
    code_key: str
    fuzzy_alias: Optional[str] = None
    call_count: int = 0
    called_from_files: Tuple[str, ...] = ()
    called_from_methods: Tuple[str, ...] = ()
    called_from_projects: Tuple[str, ...] = ()

    @property
    def is_multi_schema(self) -> bool:
        return len(self.all_schemas) > 1

    def as_dict(self) -> dict[str, str]:
        return {
            "name": self.canonical_name,
            "schema": self.schema,
            "all_schemas": "; ".join(self.all_schemas),
            "match_kind": self.match_kind,
            "fuzzy_alias": self.fuzzy_alias or "",
            "call_count": str(self.call_count),
            "subsystem": self.subsystem,
            "files": "; ".join(self.called_from_files),
            "methods": "; ".join(self.called_from_methods),
            "projects": "; ".join(self.called_from_projects),
        }

    def as_json(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "name": self.canonical_name,
            "schema": self.schema,
            "all_schemas": list(self.all_schemas),
            "match_kind": self.match_kind,
            "called_from_files": list(self.called_from_files),
            "called_from_methods": list(self.called_from_methods),
            "called_from_projects": list(self.called_from_projects),
            "call_count": self.call_count,
            "subsystem": self.subsystem,
        }
        if self.fuzzy_alias is not None:
            payload["fuzzy_alias"] = self.fuzzy_alias
        return payload


@dataclass(slots=True)
class OrphanDbEntity:
    name: str
    schema: str
    all_schemas: Tuple[str, ...]
    subsystem: str
    key: str

    def as_json(self) -> dict[str, object]:
        return {
            "name": self.name,
            "schema": self.schema,
            "all_schemas": list(self.all_schemas),
            "subsystem": self.subsystem,
        }


@dataclass(slots=True)
class OrphanCodeEntity:
    name: str
    called_from: Tuple[str, ...]
    subsystem: str
    key: str
    call_count: int = 0

    def as_json(self) -> dict[str, object]:
        return {
            "name": self.name,
            "called_from": list(self.called_from),
            "call_count": self.call_count,
            "subsystem": self.subsystem,
        }


@dataclass(frozen=True, slots=True)
class SubsystemAssets:
    subsystem_id: str
    display_name: str = ""
    asset_names: Tuple[str, ...] = ()


@dataclass(slots=True)
class SubsystemMapping:
    subsystem_id: str
    display_name: str
    owned_asset_names: List[str] = field(default_factory=list)
    matched: List[str] = field(default_factory=list)
    db_only: List[str] = field(default_factory=list)
    code_only: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.matched) + len(self.db_only) + len(self.code_only)

    def as_json(self) -> dict[str, object]:
        return {
            "subsystem": self.subsystem_id,
            "display_name": self.display_name,
            "assets": list(self.owned_asset_names),
            "asset_count": len(self.owned_asset_names),
            "sprocs": {
                "matched": list(self.matched),
                "db_only": list(self.db_only),
                "code_only": list(self.code_only),
            },
            "sproc_count": {
                "matched": len(self.matched),
                "db_only": len(self.db_only),
                "code_only": len(self.code_only),
            },
        }


@dataclass(slots=True)
class ReconciliationSummary:
    total_db_entities: int
    total_db_groups: int
    total_code_entities: int
    matches: List[MatchRecord]
    orphan_db: List[OrphanDbEntity]
    orphan_code: List[OrphanCodeEntity]
    skipped_db_records: int = 0
    skipped_code_records: int = 0
    merged_code_records: int = 0

    @property
    def matched(self) -> int:
        return len(self.matches)

    @property
    def matched_exact(self) -> int:
        return sum(1 for record in self.matches if record.match_kind == "exact")

    @property
    def matched_fuzzy(self) -> int:
        return sum(1 for record in self.matches if record.match_kind == "fuzzy")

    @property
    def multi_schema_matches(self) -> int:
        return sum(1 for record in self.matches if record.is_multi_schema)

    def counts(self) -> Dict[str, int]:
        return {
            "total_db_entities": self.total_db_entities,
            "total_db_groups": self.total_db_groups,
            "total_code_entities": self.total_code_entities,
            "matched": self.matched,
            "matched_exact": self.matched_exact,
            "matched_fuzzy": self.matched_fuzzy,
            "multi_schema_matches": self.multi_schema_matches,
            "orphan_db_count": len(self.orphan_db),
            "orphan_code_count": len(self.orphan_code),
            "skipped_db_records": self.skipped_db_records,
            "skipped_code_records": self.skipped_code_records,
            "merged_code_records": self.merged_code_records,
        }

    def as_json(self) -> dict[str, object]:
        payload: dict[str, object] = dict(self.counts())
        payload["orphan_db"] = [orphan.as_json() for orphan in self.orphan_db]
        payload["orphan_code"] = [orphan.as_json() for orphan in self.orphan_code]
        payload["cross_reference"] = [record.as_json() for record in self.matches]
        return payload


@dataclass(slots=True)
class ReconciliationReport:
    summary: ReconciliationSummary
    mappings: List[SubsystemMapping]
    warnings: Tuple[str, ...] = ()

    def as_json(self) -> dict[str, object]:
        return {
            "summary": self.summary.as_json(),
            "mappings": [mapping.as_json() for mapping in self.mappings],
            "warnings": list(self.warnings),
        }
