"""High-level orchestration for the stored-procedure reconciliation."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Sequence

from .aggregation import build_subsystem_mappings
from .classification import collect_orphans
from .config import ReconConfig
from .inventory import build_inventory
from .matching import match_entities
from .models import CodeEntity, DbEntity, ReconciliationReport, ReconciliationSummary, SubsystemAssets
from .normalization import load_code_inventory, load_db_inventory, load_subsystem_assets
from .report import generate_markdown_summary, write_csv, write_mappings, write_markdown, write_reconciliation

LOGGER = logging.getLogger(__name__)


def reconcile(
    db_entities: Iterable[DbEntity],
    code_entities: Iterable[CodeEntity],
    *,
    assets: Sequence[SubsystemAssets] = (),
    config: ReconConfig | None = None,
    skipped_db: int = 0,
    skipped_code: int = 0,
) -> ReconciliationReport:
    """Match, classify and aggregate two in-memory inventories.

    Pure with respect to its inputs: identically ordered inputs produce an
    identical report.
    """

    config = config or ReconConfig()
    inventory = build_inventory(db_entities, code_entities, config)
    result = match_entities(inventory.db_index, inventory.code_index, config)
    orphan_db, orphan_code = collect_orphans(inventory.db_index, inventory.code_index, result, config)
    matches = result.sorted_records()

    summary = ReconciliationSummary(
        total_db_entities=inventory.db_total,
        total_db_groups=len(inventory.db_index),
        total_code_entities=len(inventory.code_index),
        matches=matches,
        orphan_db=orphan_db,
        orphan_code=orphan_code,
        skipped_db_records=skipped_db + inventory.skipped_db,
        skipped_code_records=skipped_code + inventory.skipped_code,
        merged_code_records=inventory.merged_code,
    )
    LOGGER.info(
        "Matched %d (%d exact, %d fuzzy); %d database-only, %d code-only",
        summary.matched,
        summary.matched_exact,
        summary.matched_fuzzy,
        len(orphan_db),
        len(orphan_code),
    )
    mappings = build_subsystem_mappings(matches, orphan_db, orphan_code, assets, config)
    return ReconciliationReport(summary=summary, mappings=mappings, warnings=tuple(inventory.warnings))


def run_reconciliation(
    *,
    db_path: Path,
    code_path: Path,
    out_dir: Path,
    assets_path: Path | None = None,
    config_path: Path | None = None,
) -> ReconciliationReport:
    config = ReconConfig.from_file(config_path) if config_path else ReconConfig.from_env()

    with ThreadPoolExecutor(max_workers=2) as pool:
        db_future = pool.submit(load_db_inventory, db_path)
        code_future = pool.submit(load_code_inventory, code_path)
        db_entities, skipped_db = db_future.result()
        code_entities, skipped_code = code_future.result()
    assets = load_subsystem_assets(assets_path) if assets_path else []

    LOGGER.info("Database-side: %d procedures", len(db_entities))
    LOGGER.info("Code-side: %d procedures", len(code_entities))

    report = reconcile(
        db_entities,
        code_entities,
        assets=assets,
        config=config,
        skipped_db=skipped_db,
        skipped_code=skipped_code,
    )

    generated_at = datetime.now(timezone.utc).isoformat()
    out_dir.mkdir(parents=True, exist_ok=True)
    write_reconciliation(out_dir / "reconciliation.json", report, generated_at=generated_at)
    write_mappings(out_dir / "subsystem_mapping.json", report.mappings, generated_at=generated_at)
    write_csv(out_dir / "cross_reference.csv", report.summary.matches)
    write_markdown(
        out_dir / "reconciliation_report.md",
        generate_markdown_summary(report, generated_at=generated_at),
    )
    LOGGER.info("Wrote reconciliation artefacts to %s", out_dir)
    return report
