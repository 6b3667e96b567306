from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .pipeline import run_reconciliation


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Database vs code stored-procedure reconciliation")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser(
        "run", help="Execute the reconciliation workflow")
    run_parser.add_argument(
        "--db-file",
        type=Path,
        default=Path("generated/db-schema/sprocs-db.json"),
        help="Path to the database catalog export (JSON).",
    )
    run_parser.add_argument(
        "--code-file",
        type=Path,
        default=Path("generated/dotnet-metadata/stored-procedures.json"),
        help="Path to the code-side procedure references (JSON).",
    )
    run_parser.add_argument(
        "--assets-file",
        type=Path,
        default=None,
        help="Optional subsystem -> owned tables JSON.",
    )
    run_parser.add_argument(
        "--config-file",
        type=Path,
        default=None,
        help="Optional JSON overriding the subsystem lookup tables.",
    )
    run_parser.add_argument(
        "--out-dir",
        type=Path,
        default=Path("out"),
        help="Directory that will receive the reconciliation artefacts.",
    )
    run_parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "run":
        logging.basicConfig(
            level=getattr(logging, args.log_level),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        run_reconciliation(
            db_path=args.db_file,
            code_path=args.code_file,
            out_dir=args.out_dir,
            assets_path=args.assets_file,
            config_path=args.config_file,
        )
        return 0

    parser.error("Unknown command")
    return 1


if __name__ == "__main__":  # pragma: no cover - exercised via CLI entry point
    raise SystemExit(main())
