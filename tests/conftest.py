import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from sprocrecon.config import ReconConfig
from sprocrecon.models import CallSite, CodeEntity, DbEntity


def make_code(name: str, *paths: str, method: str = "Run") -> CodeEntity:
    return CodeEntity(
        name=name,
        call_sites=tuple(CallSite(file_path=path, class_name="Svc", method_name=method) for path in paths),
    )


def make_db(name: str, schema: str = "dbo") -> DbEntity:
    return DbEntity(name=name, schema=schema)


@pytest.fixture
def config() -> ReconConfig:
    """Small deterministic tables so tests do not depend on the shipped defaults."""

    return ReconConfig().with_overrides(
        {
            "project_subsystems": {
                "X": "XS",
                "Billing.Core": "BILL",
                "Auth.Web": "SEC",
            },
            "display_names": {"XS": "Example Subsystem", "BILL": "Billing"},
        }
    )


@pytest.fixture
def db_payload() -> dict:
    return {
        "totalStoredProcedures": 5,
        "schemas": ["audit", "dbo"],
        "bySchema": {"dbo": ["GetUser", "usp_SaveInvoice", "DH_Shifts"], "audit": ["GetUser"]},
        "procedures": [
            {"name": "GetUser", "schema": "dbo", "fullName": "dbo.GetUser"},
            {"name": "GetUser", "schema": "audit", "fullName": "audit.GetUser"},
            {"name": "usp_SaveInvoice", "schema": "dbo", "fullName": "dbo.usp_SaveInvoice"},
            {"name": "DH_Shifts", "schema": "dbo", "fullName": "dbo.DH_Shifts"},
            {"name": "ArchiveQuizScores", "schema": "dbo", "fullName": "dbo.ArchiveQuizScores"},
        ],
    }


@pytest.fixture
def code_payload() -> dict:
    return {
        "totalUniqueProcedures": 3,
        "totalReferences": 4,
        "procedures": [
            {
                "procedureName": "getuser",
                "callCount": 2,
                "calledBy": [
                    {"className": "UserRepo", "methodName": "Load", "filePath": "Auth.Web/UserRepo.cs"},
                    {"className": "UserRepo", "methodName": "Find", "filePath": "Auth.Web/UserRepo.cs"},
                ],
            },
            {
                "procedureName": "SaveInvoice",
                "callCount": 1,
                "calledBy": [
                    {"className": "InvoiceStore", "methodName": "Save", "filePath": "Billing.Core/InvoiceStore.cs"},
                ],
            },
            {
                "procedureName": "usp_PurgeCache",
                "callCount": 1,
                "calledBy": [
                    {"className": "Cache", "methodName": "Purge", "filePath": "Unknown.Lib/Cache.cs"},
                ],
            },
        ],
    }
