#!/usr/bin/env python3
"""
Schema Registry - read-only view of collections and their reference fields

The compiler never reaches into a global registry: every compiling call takes
a SchemaRegistry instance. DictSchemaRegistry builds one from a declaration
mapping (or a JSON file) so tests and services can supply their own graph.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional

from pydantic import BaseModel, Field, model_validator

from .constants import SCHEMA_PATH

logger = logging.getLogger(__name__)


class FieldKind(str, Enum):
    PLAIN = "plain"
    REFERENCE = "reference"


@dataclass(frozen=True)
class CollectionHandle:
    """A registered collection: its schema name and its storage name."""
    name: str
    physical_name: str


class SchemaRegistry(ABC):
    """Read-only schema graph queried by the resolver and the assembler."""

    @abstractmethod
    def has_field(self, collection: str, field_path: str) -> bool:
        ...

    @abstractmethod
    def field_kind(self, collection: str, field_path: str) -> FieldKind:
        ...

    @abstractmethod
    def referenced_collection(self, collection: str, field_path: str) -> Optional[str]:
        ...

    @abstractmethod
    def physical_name(self, collection: str) -> str:
        ...

    @abstractmethod
    def lookup_collection(self, name: str) -> Optional[CollectionHandle]:
        ...


# ---- Declarations


class FieldSpec(BaseModel):
    type: FieldKind = FieldKind.PLAIN
    ref: Optional[str] = None  # target collection name for reference fields

    @model_validator(mode="after")
    def _ref_only_on_references(self) -> "FieldSpec":
        if self.ref is not None and self.type is not FieldKind.REFERENCE:
            raise ValueError("only reference fields may declare 'ref'")
        return self


class CollectionSchema(BaseModel):
    collection: Optional[str] = None  # physical name, defaults to the schema name
    fields: Dict[str, FieldSpec] = Field(default_factory=dict)


class DictSchemaRegistry(SchemaRegistry):
    """SchemaRegistry backed by a declaration mapping.

    Example declaration::

        {
            "Post": {
                "collection": "posts",
                "fields": {
                    "title": {"type": "plain"},
                    "author": {"type": "reference", "ref": "User"},
                    "meta.reviewer": {"type": "reference", "ref": "User"},
                },
            },
            "User": {"collection": "users", "fields": {...}},
        }

    Parents of dotted field paths ("meta" above) are embedded sub-documents and
    count as plain fields.
    """

    def __init__(self, declarations: Mapping[str, Any]):
        self._schemas: Dict[str, CollectionSchema] = {}
        self._fields: Dict[str, Dict[str, FieldSpec]] = {}

        for name, raw in declarations.items():
            schema = raw if isinstance(raw, CollectionSchema) else CollectionSchema.model_validate(raw)
            self._schemas[name] = schema
            self._fields[name] = self._expand_fields(schema.fields)

        logger.debug(f"Schema registry loaded with collections: {sorted(self._schemas)}")

    @staticmethod
    def _expand_fields(fields: Mapping[str, FieldSpec]) -> Dict[str, FieldSpec]:
        expanded: Dict[str, FieldSpec] = {}
        for path, spec in fields.items():
            parts = path.split(".")
            for i in range(1, len(parts)):
                expanded.setdefault(".".join(parts[:i]), FieldSpec())
            expanded[path] = spec
        return expanded

    def _spec(self, collection: str, field_path: str) -> Optional[FieldSpec]:
        return self._fields.get(collection, {}).get(field_path)

    def has_field(self, collection: str, field_path: str) -> bool:
        return self._spec(collection, field_path) is not None

    def field_kind(self, collection: str, field_path: str) -> FieldKind:
        spec = self._spec(collection, field_path)
        if spec is None:
            raise KeyError(f"{collection}.{field_path}")
        return spec.type

    def referenced_collection(self, collection: str, field_path: str) -> Optional[str]:
        spec = self._spec(collection, field_path)
        return spec.ref if spec else None

    def physical_name(self, collection: str) -> str:
        schema = self._schemas.get(collection)
        if schema is None:
            raise KeyError(collection)
        return schema.collection or collection

    def lookup_collection(self, name: str) -> Optional[CollectionHandle]:
        if name not in self._schemas:
            return None
        return CollectionHandle(name=name, physical_name=self.physical_name(name))

    def collections(self) -> Iterable[str]:
        return tuple(self._schemas)


def load_schema_registry(path: Optional[str] = None) -> DictSchemaRegistry:
    """Build a DictSchemaRegistry from a JSON declaration file.

    Falls back to EMBEDQUERY_SCHEMA_PATH when no path is given.
    """
    path = path or SCHEMA_PATH
    if not path:
        raise ValueError("No schema declaration path given and EMBEDQUERY_SCHEMA_PATH is not set")
    with open(path, "r", encoding="utf-8") as f:
        declarations = json.load(f)
    if not isinstance(declarations, dict):
        raise ValueError(f"Schema declaration in {path} must be a JSON object")
    return DictSchemaRegistry(declarations)
