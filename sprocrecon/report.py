"""Rendering utilities for machine-readable and human-readable outputs."""
from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Iterable

from .models import MatchRecord, ReconciliationReport, SubsystemMapping

CSV_FIELDS = [
    "name",
    "schema",
    "all_schemas",
    "match_kind",
    "fuzzy_alias",
    "call_count",
    "subsystem",
    "files",
    "methods",
    "projects",
]


def write_csv(path: Path, records: Iterable[MatchRecord]) -> None:
    import csv

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for record in records:
            writer.writerow(record.as_dict())


def write_json(path: Path, payload: dict[str, object], *, generated_at: str | None = None) -> None:
    import json

    path.parent.mkdir(parents=True, exist_ok=True)
    if generated_at is not None:
        payload = {"generated_at": generated_at, **payload}
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)


def write_reconciliation(path: Path, report: ReconciliationReport, *, generated_at: str | None = None) -> None:
    payload = report.summary.as_json()
    if report.warnings:
        payload["warnings"] = list(report.warnings)
    write_json(path, payload, generated_at=generated_at)


def write_mappings(path: Path, mappings: Iterable[SubsystemMapping], *, generated_at: str | None = None) -> None:
    write_json(path, {"mappings": [mapping.as_json() for mapping in mappings]}, generated_at=generated_at)


def _pct(part: int, total: int) -> str:
    if total == 0:
        return "0.0%"
    return f"{part / total:.1%}"


def generate_markdown_summary(report: ReconciliationReport, *, generated_at: str | None = None) -> str:
    summary = report.summary
    counts = summary.counts()

    lines = ["# Stored Procedure Reconciliation Report", ""]
    if generated_at:
        lines.append(f"Generated: {generated_at}")
        lines.append("")
    lines.append("## Overview")
    lines.append("")
    lines.append(f"- Database procedures: **{counts['total_db_entities']}** ({counts['total_db_groups']} distinct names)")
    lines.append(f"- Code-side procedures: **{counts['total_code_entities']}**")
    lines.append(
        f"- Matched: **{counts['matched']}** "
        f"({_pct(counts['matched'], counts['total_db_groups'])} of database names)"
    )
    lines.append(f"  - Exact: {counts['matched_exact']}")
    lines.append(f"  - Fuzzy: {counts['matched_fuzzy']}")
    if counts["multi_schema_matches"]:
        lines.append(f"  - Present in more than one schema: {counts['multi_schema_matches']}")
    lines.append(f"- Database-only orphans: **{counts['orphan_db_count']}**")
    lines.append(f"- Code-only orphans: **{counts['orphan_code_count']}**")
    skipped = counts["skipped_db_records"] + counts["skipped_code_records"]
    if skipped:
        lines.append(f"- Malformed records skipped: **{skipped}**")
    lines.append("")

    if report.mappings:
        lines.append("## Procedures by subsystem")
        lines.append("")
        lines.append("| Subsystem | Name | Assets | Matched | DB only | Code only |")
        lines.append("| --- | --- | --- | --- | --- | --- |")
        for mapping in report.mappings:
            lines.append(
                "| {id} | {name} | {assets} | {matched} | {db_only} | {code_only} |".format(
                    id=mapping.subsystem_id,
                    name=mapping.display_name.replace("|", "\\|"),
                    assets=len(mapping.owned_asset_names),
                    matched=len(mapping.matched),
                    db_only=len(mapping.db_only),
                    code_only=len(mapping.code_only),
                )
            )
        lines.append("")

    fuzzy = [record for record in summary.matches if record.match_kind == "fuzzy"]
    if fuzzy:
        lines.append("## Fuzzy matches")
        lines.append("")
        lines.append("| Database name | Code name | Schemas | Subsystem |")
        lines.append("| --- | --- | --- | --- |")
        for record in fuzzy:
            lines.append(
                f"| {record.canonical_name} | {record.fuzzy_alias} | "
                f"{', '.join(record.all_schemas)} | {record.subsystem} |"
            )
        lines.append("")

    if summary.orphan_code:
        by_subsystem = Counter(orphan.subsystem for orphan in summary.orphan_code)
        lines.append("## Code-only orphans by subsystem")
        lines.append("")
        for subsystem, count in sorted(by_subsystem.items()):
            lines.append(f"- {subsystem}: {count}")
        lines.append("")

    if not summary.orphan_db and not summary.orphan_code:
        lines.append("No orphans detected. Every procedure was matched.")

    return "\n".join(lines)


def write_markdown(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        handle.write(content)
