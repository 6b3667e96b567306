from conftest import make_code, make_db

from sprocrecon.inventory import build_inventory
from sprocrecon.models import DbEntity


def test_build_inventory_groups_schemas_under_one_key():
    inventory = build_inventory(
        [make_db("Foo", "dbo"), make_db("Foo", "audit"), make_db("Bar")],
        [make_code("foo")],
    )
    assert list(inventory.db_index) == ["foo", "bar"]
    assert [row.schema for row in inventory.db_index["foo"]] == ["dbo", "audit"]
    assert inventory.db_total == 3
    assert inventory.code_index["foo"].name == "foo"


def test_build_inventory_drops_nameless_entities_with_warning(caplog):
    inventory = build_inventory(
        [DbEntity(name="", schema="dbo"), make_db("Bar")],
        [make_code(""), make_code("Bar")],
    )
    assert inventory.skipped_db == 1
    assert inventory.skipped_code == 1
    assert list(inventory.db_index) == ["bar"]
    assert len(inventory.warnings) == 2
    assert "without a name" in caplog.text


def test_build_inventory_merges_code_entities_sharing_a_key():
    inventory = build_inventory(
        [],
        [make_code("GetUser", "A/One.cs"), make_code("dbo.getuser", "B/Two.cs")],
    )
    assert inventory.merged_code == 1
    merged = inventory.code_index["getuser"]
    assert merged.name == "GetUser"
    assert [site.project for site in merged.call_sites] == ["A", "B"]
    assert merged.total_calls == 2
    assert inventory.warnings == ["Merged code entity 'dbo.getuser' into 'GetUser'"]


def test_build_inventory_accepts_empty_inputs():
    inventory = build_inventory([], [])
    assert inventory.db_index == {}
    assert inventory.code_index == {}
    assert inventory.warnings == []
