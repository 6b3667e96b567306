"""Lookup tables and runtime settings for the reconciliation core."""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, Tuple

from .models import UNCATEGORIZED, KeywordRule, PrefixRule
from .normalization import CONVENTION_PREFIXES, SCHEMA_QUALIFIERS

DEFAULT_SCHEMA = "dbo"

PROJECT_SUBSYSTEMS = {
    "MyEvaluations.Business.Security": "SEC",
    "MyEvaluations.Business.Evaluations": "EVAL",
    "MyEvaluations.Business.DutyHours": "DH",
    "MyEvaluations.Business.CMETracking": "CME",
    "MyEvaluations.Business.EssentialActivities": "ACT",
    "MyEvaluations.Business.PatientLog": "PTL",
    "MyEvaluations.Business.Portfolio": "PF",
    "MyEvaluations.Business.Procedures": "PRC",
    "MyEvaluations.Business.Quiz": "QUIZ",
    "MyEvaluations.Business.LearningAssignment": "LA",
    "MyEvaluations.Business.Mail": "SYS",
    "MyEvaluations.Business.TimeSheet": "DH",
    "MyEvaluations.Business.ERAS": "SEC",
    "MyEvaluations.Business.MyHelp": "SYS",
    "MyEvaluations.Business.Common": "SYS",
    "MyEvaluations.Business.Utilities": "SYS",
}

PREFIX_RULES = (
    PrefixRule("ARCH_", "SEC"),
    PrefixRule("ACT_", "ACT"),
    PrefixRule("DEV_", "SYS"),
    PrefixRule("APE_", "APE"),
    PrefixRule("BSN_", "BSN"),
    PrefixRule("OBC_", "OBC"),
    PrefixRule("PF_", "PF"),
    PrefixRule("PTL_", "PTL"),
    PrefixRule("DH_", "DH"),
    PrefixRule("CME_", "CME"),
    PrefixRule("LA_", "LA"),
)

KEYWORD_RULES = (
    KeywordRule(("dutyhour", "timesheet"), "DH"),
    KeywordRule(("evaluation", "eval"), "EVAL"),
    KeywordRule(("security", "user", "login", "auth"), "SEC"),
    KeywordRule(("patient", "patientlog"), "PTL"),
    KeywordRule(("procedure",), "PRC", excludes=("storedprocedure",)),
    KeywordRule(("cme", "credit"), "CME"),
    KeywordRule(("quiz",), "QUIZ"),
    KeywordRule(("portfolio",), "PF"),
    KeywordRule(("schedule", "rotation"), "SCHE"),
    KeywordRule(("ape", "program"), "APE"),
    KeywordRule(("nursing", "bsn"), "BSN"),
)

DISPLAY_NAMES = {
    "SEC": "Security",
    "EVAL": "Evaluations",
    "DH": "Duty Hours",
    "PRC": "Procedures",
    "APE": "Annual Program Evaluation",
    "APE2": "APE v2",
    "BSN": "Nursing",
    "ACT": "Activity Logs",
    "PF": "Portfolio",
    "OBC": "Clinical Assessment",
    "CME": "CME Credits",
    "Prep": "Prep/Onboarding",
    "PTL": "Patient Logs",
    "QUIZ": "Quizzes",
    "SCHE": "Scheduling",
    "SYS": "System",
    "MYEVAL": "MyEval Platform",
    "POST": "Post-Graduation",
    "MyGME": "MyGME Integration",
    "LA": "Learning Activities",
    "ACGME": "ACGME",
    "perf": "Performance Schema",
    UNCATEGORIZED: "Uncategorized",
}


class ConfigError(RuntimeError):
    """Raised when a configuration override cannot be applied."""


def _text(value: Any, setting: str) -> str:
    if not isinstance(value, str) or not value:
        raise ConfigError(f"{setting} must be a non-empty string")
    return value


def _string_list(value: Any, setting: str) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"{setting} must be a list of strings")
    return tuple(_text(item, setting) for item in value)


def _split_env(value: str | None, default: Tuple[str, ...]) -> Tuple[str, ...]:
    if not value:
        return default
    items = tuple(part.strip() for part in value.split(",") if part.strip())
    return items or default


@dataclass(frozen=True)
class ReconConfig:
    """Runtime configuration for matching and subsystem attribution."""

    schema_qualifiers: Tuple[str, ...] = SCHEMA_QUALIFIERS
    default_schema: str = DEFAULT_SCHEMA
    convention_prefixes: Tuple[str, ...] = CONVENTION_PREFIXES
    project_subsystems: Mapping[str, str] = field(default_factory=lambda: dict(PROJECT_SUBSYSTEMS))
    prefix_rules: Tuple[PrefixRule, ...] = PREFIX_RULES
    keyword_rules: Tuple[KeywordRule, ...] = KEYWORD_RULES
    display_names: Mapping[str, str] = field(default_factory=lambda: dict(DISPLAY_NAMES))

    @classmethod
    def from_env(cls) -> "ReconConfig":
        qualifiers = _split_env(os.getenv("SPROC_RECON_SCHEMA_QUALIFIERS"), SCHEMA_QUALIFIERS)
        prefixes = _split_env(os.getenv("SPROC_RECON_CONVENTION_PREFIXES"), CONVENTION_PREFIXES)
        default_schema = os.getenv("SPROC_RECON_DEFAULT_SCHEMA", DEFAULT_SCHEMA)
        return cls(
            schema_qualifiers=qualifiers,
            default_schema=default_schema,
            convention_prefixes=prefixes,
        )

    def with_overrides(self, payload: Mapping[str, Any]) -> "ReconConfig":
        """Return a copy with the tables present in ``payload`` replaced."""

        changes: dict[str, Any] = {}
        try:
            if "schema_qualifiers" in payload:
                changes["schema_qualifiers"] = _string_list(payload["schema_qualifiers"], "schema_qualifiers")
            if "default_schema" in payload:
                changes["default_schema"] = str(payload["default_schema"])
            if "convention_prefixes" in payload:
                changes["convention_prefixes"] = _string_list(payload["convention_prefixes"], "convention_prefixes")
            if "project_subsystems" in payload:
                changes["project_subsystems"] = {
                    str(project): str(subsystem)
                    for project, subsystem in payload["project_subsystems"].items()
                }
            if "prefix_rules" in payload:
                rules = payload["prefix_rules"]
                if not isinstance(rules, (list, tuple)):
                    raise ConfigError("prefix_rules must be a list")
                changes["prefix_rules"] = tuple(
                    PrefixRule(_text(rule["prefix"], "prefix"), str(rule["subsystem"]))
                    for rule in rules
                )
            if "keyword_rules" in payload:
                if not isinstance(payload["keyword_rules"], (list, tuple)):
                    raise ConfigError("keyword_rules must be a list")
                changes["keyword_rules"] = tuple(
                    KeywordRule(
                        tuple(word.lower() for word in _string_list(rule["keywords"], "keywords")),
                        str(rule["subsystem"]),
                        tuple(word.lower() for word in _string_list(rule.get("excludes", []), "excludes")),
                    )
                    for rule in payload["keyword_rules"]
                )
            if "display_names" in payload:
                merged = dict(self.display_names)
                merged.update({str(k): str(v) for k, v in payload["display_names"].items()})
                changes["display_names"] = merged
        except (AttributeError, KeyError, TypeError) as exc:
            raise ConfigError(f"Malformed configuration override: {exc}") from exc
        return replace(self, **changes)

    @classmethod
    def from_file(cls, path: Path, *, base: "ReconConfig | None" = None) -> "ReconConfig":
        if not path.exists():
            raise FileNotFoundError(path)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
        if not isinstance(payload, Mapping):
            raise ConfigError(f"Configuration file {path} must contain a JSON object")
        return (base or cls.from_env()).with_overrides(payload)

    def display_name(self, subsystem_id: str) -> str:
        return self.display_names.get(subsystem_id, subsystem_id)
