import json
from pathlib import Path

import pytest

from sprocrecon import normalization
from sprocrecon.models import CallSite, CodeEntity, DbEntity


def test_normalize_strips_known_schema_and_lowercases():
    assert normalization.normalize("dbo.GetUser") == "getuser"
    assert normalization.normalize("perf.GetUser") == "getuser"
    assert normalization.normalize("GetUser") == "getuser"


def test_normalize_keeps_unknown_schema_qualifier():
    assert normalization.normalize("audit.GetUser") == "audit.getuser"


def test_normalize_strips_only_one_qualifier():
    assert normalization.normalize("dbo.perf.Foo") == "perf.foo"


def test_normalize_is_total_and_pure():
    assert normalization.normalize(None) == ""
    assert normalization.normalize(42) == ""
    assert normalization.normalize("") == ""
    first = normalization.normalize("dbo.USP_Mixed_Case")
    assert all(normalization.normalize("dbo.USP_Mixed_Case") == first for _ in range(5))


def test_normalize_honours_custom_qualifiers():
    assert normalization.normalize("audit.GetUser", ("audit",)) == "getuser"
    assert normalization.normalize("dbo.GetUser", ("audit",)) == "dbo.getuser"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("usp_GetUser", "GetUser"),
        ("USP_GetUser", "GetUser"),
        ("Usp_GetUser", "GetUser"),
        ("sp_GetUser", "GetUser"),
        ("GetUser", "GetUser"),
        ("usp_sp_GetUser", "sp_GetUser"),
        ("getuser_usp", "getuser_usp"),
    ],
)
def test_strip_convention_prefix(raw, expected):
    assert normalization.strip_convention_prefix(raw) == expected


def test_call_site_project_and_file_name():
    site = CallSite(file_path="MyApp.Business.Security/Users/UserManager.cs")
    assert site.project == "MyApp.Business.Security"
    assert site.file_name == "UserManager.cs"

    windows = CallSite(file_path="Billing.Core\\InvoiceStore.cs")
    assert windows.project == "Billing.Core"
    assert windows.file_name == "InvoiceStore.cs"

    bare = CallSite(file_path="Program.cs")
    assert bare.project == "Program.cs"


def test_parse_db_records_reads_export_object(db_payload):
    entities, skipped = normalization.parse_db_records(db_payload)
    assert skipped == 0
    assert entities[0] == DbEntity(name="GetUser", schema="dbo")
    assert [entity.schema for entity in entities[:2]] == ["dbo", "audit"]


def test_parse_db_records_skips_malformed_rows():
    payload = [
        {"name": "GetUser", "schema": "dbo"},
        {"schema": "dbo"},
        {"name": "   ", "schema": "dbo"},
        {"name": "NoSchema"},
        "not-a-record",
    ]
    entities, skipped = normalization.parse_db_records(payload)
    assert entities == [DbEntity(name="GetUser", schema="dbo")]
    assert skipped == 4


@pytest.mark.parametrize("payload", ["junk", 7, None, {"bySchema": {}}])
def test_parse_records_rejects_non_collections(payload):
    with pytest.raises(normalization.InventoryError):
        normalization.parse_db_records(payload)
    with pytest.raises(normalization.InventoryError):
        normalization.parse_code_records(payload)


def test_parse_code_records_builds_call_sites(code_payload):
    entities, skipped = normalization.parse_code_records(code_payload)
    assert skipped == 0
    assert [entity.name for entity in entities] == ["getuser", "SaveInvoice", "usp_PurgeCache"]
    first = entities[0]
    assert isinstance(first, CodeEntity)
    assert first.total_calls == 2
    assert first.call_sites[0].method_name == "Load"
    assert first.call_sites[0].project == "Auth.Web"


def test_parse_code_records_tolerates_bad_call_sites():
    payload = [
        {"procedureName": "Foo", "calledBy": [{"methodName": "NoPath"}, "junk", {"filePath": "A/B.cs"}]},
        {"procedureName": "Bar", "calledBy": "not-a-list"},
        {"callCount": 3},
    ]
    entities, skipped = normalization.parse_code_records(payload)
    assert skipped == 1
    assert entities[0].call_sites == (CallSite(file_path="A/B.cs"),)
    assert entities[1].call_sites == ()
    assert entities[1].total_calls == 0


def test_parse_subsystem_assets_reads_modules():
    payload = {
        "totalTables": 3,
        "modules": [
            {"prefix": "SEC", "displayName": "Security", "tables": [{"name": "SEC_Users"}, {"name": "SEC_Roles"}]},
            {"prefix": "DH", "tables": ["DH_Shifts"]},
            {"displayName": "No prefix"},
        ],
    }
    assets = normalization.parse_subsystem_assets(payload)
    assert [row.subsystem_id for row in assets] == ["SEC", "DH"]
    assert assets[0].asset_names == ("SEC_Users", "SEC_Roles")
    assert assets[1].display_name == ""


def test_load_json_requires_existing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        normalization.load_db_inventory(tmp_path / "missing.json")


def test_load_json_rejects_invalid_json(tmp_path: Path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    with pytest.raises(normalization.InventoryError):
        normalization.load_code_inventory(path)


def test_load_db_inventory_handles_bom(tmp_path: Path, db_payload):
    path = tmp_path / "sprocs-db.json"
    path.write_text("\ufeff" + json.dumps(db_payload), encoding="utf-8")
    entities, skipped = normalization.load_db_inventory(path)
    assert len(entities) == 5
    assert skipped == 0


def test_normalize_does_not_trim_whitespace():
    assert normalization.normalize(" dbo.Foo") == " dbo.foo"
    assert normalization.normalize("dbo.Foo ") == "foo "


def test_strip_convention_prefix_skips_empty_prefixes():
    assert normalization.strip_convention_prefix("usp_Foo", ("", "usp_")) == "Foo"


def test_parsers_trim_surrounding_whitespace():
    entities, _ = normalization.parse_db_records([{"name": "  GetUser ", "schema": " dbo "}])
    assert entities == [DbEntity(name="GetUser", schema="dbo")]
