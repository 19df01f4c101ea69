"""Compile flat query-string requests into MongoDB aggregation pipelines."""

from .assembler import AssociationLink, build_association_aggregation, build_list_aggregation
from .errors import BadRequestError, EmbedResolutionError, InvalidQueryError, ResolutionFailure
from .query import normalize_query, parse_query_params, unpack_facet_result
from .registry import (
    CollectionHandle,
    CollectionSchema,
    DictSchemaRegistry,
    FieldKind,
    FieldSpec,
    SchemaRegistry,
    load_schema_registry,
)
from .resolver import embeds_to_levels, resolve_nested_path

__all__ = [
    "AssociationLink",
    "BadRequestError",
    "CollectionHandle",
    "CollectionSchema",
    "DictSchemaRegistry",
    "EmbedResolutionError",
    "FieldKind",
    "FieldSpec",
    "InvalidQueryError",
    "ResolutionFailure",
    "SchemaRegistry",
    "build_association_aggregation",
    "build_list_aggregation",
    "embeds_to_levels",
    "load_schema_registry",
    "normalize_query",
    "parse_query_params",
    "resolve_nested_path",
    "unpack_facet_result",
]
