"""Utilities for reading inventories and normalising procedure names."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Mapping, Sequence, Tuple

from .models import CallSite, CodeEntity, DbEntity, SubsystemAssets

LOGGER = logging.getLogger(__name__)

SCHEMA_QUALIFIERS = ("dbo", "perf")

CONVENTION_PREFIXES = ("usp_", "sp_")


class InventoryError(RuntimeError):
    """Raised when an inventory payload is not a collection of records."""


def normalize(raw_name: Any, qualifiers: Sequence[str] = SCHEMA_QUALIFIERS) -> str:
    """Return the comparison key for ``raw_name``.

    The first qualifier found as a literal ``<schema>.`` prefix is removed and
    the remainder lowercased. Non-string input yields an empty key.
    """

    if not isinstance(raw_name, str):
        return ""
    bare = raw_name
    for qualifier in qualifiers:
        marker = f"{qualifier}."
        if bare.startswith(marker):
            bare = bare[len(marker):]
            break
    return bare.lower()


def strip_convention_prefix(raw_name: str, prefixes: Sequence[str] = CONVENTION_PREFIXES) -> str:
    """Remove at most one naming-convention prefix, ignoring case."""

    lowered = raw_name.lower()
    for prefix in prefixes:
        if prefix and lowered.startswith(prefix.lower()):
            return raw_name[len(prefix):]
    return raw_name


def _records(payload: Any, *, source: str) -> Sequence[Any]:
    if isinstance(payload, Mapping):
        payload = payload.get("procedures")
    if not isinstance(payload, (list, tuple)):
        raise InventoryError(f"{source} inventory is not a collection of records")
    return payload


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def parse_db_records(payload: Any) -> Tuple[List[DbEntity], int]:
    """Turn a database catalog export into :class:`DbEntity` rows.

    Returns the parsed entities and the number of malformed records skipped.
    """

    entities: List[DbEntity] = []
    skipped = 0
    for index, row in enumerate(_records(payload, source="Database")):
        if not isinstance(row, Mapping):
            skipped += 1
            LOGGER.warning("Skipping database record %d: not an object", index)
            continue
        name = _text(row.get("name"))
        schema = _text(row.get("schema"))
        if not name or not schema:
            skipped += 1
            LOGGER.warning("Skipping database record %d: missing name or schema", index)
            continue
        entities.append(DbEntity(name=name, schema=schema))
    return entities, skipped


def _parse_call_sites(raw: Any) -> Tuple[CallSite, ...]:
    if not isinstance(raw, (list, tuple)):
        return ()
    sites = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        file_path = _text(entry.get("filePath"))
        if not file_path:
            continue
        sites.append(
            CallSite(
                file_path=file_path,
                class_name=_text(entry.get("className")),
                method_name=_text(entry.get("methodName")),
            )
        )
    return tuple(sites)


def parse_code_records(payload: Any) -> Tuple[List[CodeEntity], int]:
    entities: List[CodeEntity] = []
    skipped = 0
    for index, row in enumerate(_records(payload, source="Code")):
        if not isinstance(row, Mapping):
            skipped += 1
            LOGGER.warning("Skipping code record %d: not an object", index)
            continue
        name = _text(row.get("procedureName"))
        if not name:
            skipped += 1
            LOGGER.warning("Skipping code record %d: missing procedureName", index)
            continue
        call_count = row.get("callCount")
        entities.append(
            CodeEntity(
                name=name,
                call_sites=_parse_call_sites(row.get("calledBy")),
                call_count=call_count if isinstance(call_count, int) else None,
            )
        )
    return entities, skipped


def parse_subsystem_assets(payload: Any) -> List[SubsystemAssets]:
    """Read the subsystem -> owned asset table (``modules`` with ``tables``)."""

    if isinstance(payload, Mapping):
        payload = payload.get("modules")
    if not isinstance(payload, (list, tuple)):
        raise InventoryError("Subsystem asset table is not a collection of modules")

    assets: List[SubsystemAssets] = []
    for row in payload:
        if not isinstance(row, Mapping):
            continue
        subsystem_id = _text(row.get("prefix"))
        if not subsystem_id:
            continue
        names = []
        for table in row.get("tables") or ():
            if isinstance(table, Mapping):
                table = table.get("name")
            if isinstance(table, str) and table.strip():
                names.append(table.strip())
        assets.append(
            SubsystemAssets(
                subsystem_id=subsystem_id,
                display_name=_text(row.get("displayName")),
                asset_names=tuple(names),
            )
        )
    return assets


def load_json(path: Path) -> Any:
    if not path.exists():
        raise FileNotFoundError(path)

    with path.open(encoding="utf-8-sig") as handle:
        try:
            return json.load(handle)
        except json.JSONDecodeError as exc:
            raise InventoryError(f"Invalid JSON in {path}: {exc}") from exc


def load_db_inventory(path: Path) -> Tuple[List[DbEntity], int]:
    return parse_db_records(load_json(path))


def load_code_inventory(path: Path) -> Tuple[List[CodeEntity], int]:
    return parse_code_records(load_json(path))


def load_subsystem_assets(path: Path) -> List[SubsystemAssets]:
    return parse_subsystem_assets(load_json(path))
