"""
Stage compilers: Query Descriptor -> MongoDB aggregation stages.

- Embeds: one batch of $lookup stages plus one $set per depth level
- Filters: equality $match on every non-reserved key
- Sort: "$sort" entries, "-" prefix for descending
- Pagination: $skip then $limit
"""

from __future__ import annotations

import logging
from typing import Any, AbstractSet, Dict, Iterable, List, Mapping, Optional, Tuple

from .constants import (
    COUNT_FIELD,
    CONTENT_FACET,
    DESCENDING_PREFIX,
    EMBED_KEY,
    ID_FIELD,
    LIMIT_KEY,
    RESERVED_PREFIX,
    SKIP_KEY,
    SORT_KEY,
    TOTAL_COUNT_FACET,
)
from .registry import CollectionHandle, SchemaRegistry
from .resolver import embeds_to_levels, resolve_nested_path

logger = logging.getLogger(__name__)

Stage = Dict[str, Any]


def as_list(value: Any) -> List[Any]:
    """A reserved key may hold a single value or a list of values."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def qualify(path: str, base_path: Optional[str] = None) -> str:
    return f"{base_path}.{path}" if base_path else path


def embeds_of(query: Mapping[str, Any]) -> List[str]:
    """Requested embed paths, deduplicated, first occurrence wins."""
    return list(dict.fromkeys(as_list(query.get(EMBED_KEY))))


# -----------------------
# Stage builders
# -----------------------

def build_lookup_stage(from_collection: str, local_field: str, foreign_field: str = ID_FIELD, as_field: Optional[str] = None) -> Stage:
    return {
        "$lookup": {
            "from": from_collection,
            "localField": local_field,
            "foreignField": foreign_field,
            "as": as_field or local_field,
        }
    }


def first_element(path: str) -> Dict[str, Any]:
    """$set expression replacing a joined array by its first element.

    A dangling reference joins to [], and $arrayElemAt on [] leaves the field
    missing.
    """
    return {"$arrayElemAt": [f"${path}", 0]}


def build_facet_stage(content: List[Stage]) -> Stage:
    return {
        "$facet": {
            CONTENT_FACET: content,
            TOTAL_COUNT_FACET: [{"$count": COUNT_FIELD}],
        }
    }


# -----------------------
# Embed compiler
# -----------------------

def compile_level(
    level: Iterable[str],
    registry: SchemaRegistry,
    root: CollectionHandle,
    base_path: Optional[str] = None,
    requested: AbstractSet[str] = frozenset(),
    materialized: AbstractSet[str] = frozenset(),
) -> Tuple[List[Stage], Optional[Stage]]:
    """Compile one depth level into its $lookup stages and a single $set.

    Every prefix is resolved from `root`. Prefixes that do not resolve to a
    reference (and were not requested) are skipped. Prefixes listed in
    `materialized` are validated but not joined again.
    """
    lookups: List[Stage] = []
    sets: Dict[str, Any] = {}

    for prefix in sorted(level):
        target = resolve_nested_path(registry, root, prefix, requested)
        if target is None or prefix in materialized:
            continue

        full_path = qualify(prefix, base_path)
        lookups.append(build_lookup_stage(target.physical_name, full_path))
        sets[full_path] = first_element(full_path)

    return lookups, ({"$set": sets} if sets else None)


def compile_embeds(
    query: Mapping[str, Any],
    registry: SchemaRegistry,
    root: CollectionHandle,
    base_path: Optional[str] = None,
    materialized: AbstractSet[str] = frozenset(),
) -> List[Stage]:
    embeds = embeds_of(query)
    if not embeds:
        return []

    requested = frozenset(embeds)
    levels = embeds_to_levels(embeds)
    logger.debug(f"Embedding {embeds} on {root.name} in {len(levels)} level(s)")

    pipeline: List[Stage] = []
    for level in levels:
        lookups, set_stage = compile_level(level, registry, root, base_path, requested, materialized)
        pipeline.extend(lookups)
        if set_stage:
            pipeline.append(set_stage)
    return pipeline


# -----------------------
# Filter / sort / pagination
# -----------------------

def filters_of(query: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of the equality filters (every non-reserved key)."""
    return {k: v for k, v in query.items() if not str(k).startswith(RESERVED_PREFIX)}


def compile_match(query: Mapping[str, Any], base_path: Optional[str] = None) -> List[Stage]:
    filters = filters_of(query)
    if not filters:
        return []
    return [{"$match": {qualify(k, base_path): v for k, v in filters.items()}}]


def compile_sort(query: Mapping[str, Any], base_path: Optional[str] = None) -> List[Stage]:
    criteria = as_list(query.get(SORT_KEY))
    if not criteria:
        return []

    sort: Dict[str, int] = {}
    for criterion in criteria:
        descending = criterion.startswith(DESCENDING_PREFIX)
        field = criterion[len(DESCENDING_PREFIX):] if descending else criterion
        sort[qualify(field, base_path)] = -1 if descending else 1
    return [{"$sort": sort}]


def compile_pagination(query: Mapping[str, Any]) -> List[Stage]:
    stages: List[Stage] = []
    if query.get(SKIP_KEY) is not None:
        stages.append({"$skip": query[SKIP_KEY]})
    if query.get(LIMIT_KEY) is not None:
        stages.append({"$limit": query[LIMIT_KEY]})
    return stages
