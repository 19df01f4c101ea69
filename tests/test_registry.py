import json

import pytest
from pydantic import ValidationError

from embedquery.registry import DictSchemaRegistry, FieldKind, load_schema_registry


def test_declared_and_implicit_fields(registry):
    assert registry.has_field("Post", "meta.reviewer")
    assert registry.has_field("Post", "meta")
    assert registry.field_kind("Post", "meta") is FieldKind.PLAIN
    assert registry.field_kind("Post", "meta.reviewer") is FieldKind.REFERENCE
    assert not registry.has_field("Post", "reviewer")
    assert not registry.has_field("Nope", "title")


def test_referenced_collection(registry):
    assert registry.referenced_collection("Post", "author") == "User"
    assert registry.referenced_collection("Post", "title") is None
    assert registry.referenced_collection("Post", "legacyRef") is None


def test_physical_name_defaults_to_schema_name():
    reg = DictSchemaRegistry({"Tag": {"fields": {"label": {}}}})
    assert reg.physical_name("Tag") == "Tag"
    assert reg.lookup_collection("Tag").physical_name == "Tag"
    assert reg.lookup_collection("Missing") is None


def test_ref_on_plain_field_is_rejected():
    with pytest.raises(ValidationError):
        DictSchemaRegistry({"Tag": {"fields": {"label": {"type": "plain", "ref": "Other"}}}})


def test_load_from_json(tmp_path):
    path = tmp_path / "schema.json"
    path.write_text(json.dumps({
        "Post": {"collection": "posts", "fields": {"author": {"type": "reference", "ref": "User"}}},
        "User": {"collection": "users"},
    }))
    reg = load_schema_registry(str(path))
    assert reg.lookup_collection("User").physical_name == "users"
    assert reg.field_kind("Post", "author") is FieldKind.REFERENCE


def test_load_without_path(monkeypatch):
    monkeypatch.setattr("embedquery.registry.SCHEMA_PATH", None)
    with pytest.raises(ValueError):
        load_schema_registry()
