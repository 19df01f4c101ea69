"""
Query Descriptor parsing/validation and facet result unpacking.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Tuple

from .compiler import as_list
from .constants import (
    CONTENT_FACET,
    COUNT_FIELD,
    DESCENDING_PREFIX,
    EMBED_KEY,
    LIMIT_KEY,
    MAX_EMBED_DEPTH,
    SKIP_KEY,
    SORT_KEY,
    TOTAL_COUNT_FACET,
)
from .errors import InvalidQueryError

logger = logging.getLogger(__name__)

_LIST_KEYS = (EMBED_KEY, SORT_KEY)
_INT_KEYS = (SKIP_KEY, LIMIT_KEY)


def _paths(key: str, value: Any) -> List[str]:
    paths: List[str] = []
    for entry in as_list(value):
        if not isinstance(entry, str) or not entry.strip():
            raise InvalidQueryError(key, "expected a non-empty string or a list of them", entry)
        paths.append(entry.strip())
    return paths


def _integer(key: str, value: Any, minimum: int) -> int:
    if isinstance(value, bool):
        raise InvalidQueryError(key, "expected an integer", value)
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise InvalidQueryError(key, "expected an integer", value) from None
    if not isinstance(value, int):
        raise InvalidQueryError(key, "expected an integer", value)
    if value < minimum:
        raise InvalidQueryError(key, f"must be at least {minimum}", value)
    return value


def normalize_query(query: Mapping[str, Any], max_embed_depth: int = MAX_EMBED_DEPTH) -> Dict[str, Any]:
    """Validate a Query Descriptor and return a normalized copy.

    `$embed` and `$sort` become lists of strings, `$skip`/`$limit` integers.
    Filter keys are copied as-is. The input mapping is never modified.
    """
    normalized: Dict[str, Any] = dict(query)

    if normalized.get(EMBED_KEY) is not None:
        embeds = _paths(EMBED_KEY, normalized[EMBED_KEY])
        for embed in embeds:
            if len(embed.split(".")) > max_embed_depth:
                raise InvalidQueryError(EMBED_KEY, f"path is deeper than {max_embed_depth} segments", embed)
        normalized[EMBED_KEY] = list(dict.fromkeys(embeds))

    if normalized.get(SORT_KEY) is not None:
        criteria = _paths(SORT_KEY, normalized[SORT_KEY])
        for criterion in criteria:
            if not criterion.lstrip(DESCENDING_PREFIX):
                raise InvalidQueryError(SORT_KEY, "missing field name", criterion)
        normalized[SORT_KEY] = criteria

    if normalized.get(SKIP_KEY) is not None:
        normalized[SKIP_KEY] = _integer(SKIP_KEY, normalized[SKIP_KEY], 0)
    if normalized.get(LIMIT_KEY) is not None:
        normalized[LIMIT_KEY] = _integer(LIMIT_KEY, normalized[LIMIT_KEY], 1)

    return normalized


def parse_query_params(params: Any, max_embed_depth: int = MAX_EMBED_DEPTH) -> Dict[str, Any]:
    """Build a Query Descriptor from request query parameters.

    Accepts a plain mapping or a multi-dict exposing `multi_items()` (such as
    Starlette's QueryParams). Repeated keys collect into a list; `$embed` and
    `$sort` also accept comma-separated values.
    """
    items = params.multi_items() if hasattr(params, "multi_items") else list(params.items())

    raw: Dict[str, Any] = {}
    for key, value in items:
        if key in raw:
            raw[key] = as_list(raw[key]) + as_list(value)
        else:
            raw[key] = value

    for key in _LIST_KEYS:
        if key in raw:
            raw[key] = [
                part.strip()
                for entry in as_list(raw[key])
                for part in (entry.split(",") if isinstance(entry, str) else [entry])
                if not isinstance(part, str) or part.strip()
            ]

    for key in _INT_KEYS:
        # last value wins for repeated pagination keys
        if isinstance(raw.get(key), list):
            raw[key] = raw[key][-1]

    return normalize_query(raw, max_embed_depth)


def unpack_facet_result(documents: List[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], int]:
    """Split the single document produced by the terminal $facet stage.

    $count emits nothing for an empty input, so a missing or empty totalCount
    means zero.
    """
    if not documents:
        return [], 0
    facet = documents[0]
    content = facet.get(CONTENT_FACET) or []
    counts = facet.get(TOTAL_COUNT_FACET) or []
    total = counts[0].get(COUNT_FIELD, 0) if counts else 0
    return content, total
