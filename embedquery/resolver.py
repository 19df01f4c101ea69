"""
Dotted path resolution over the schema graph and depth-leveling of embeds.
"""

from __future__ import annotations

import logging
from typing import AbstractSet, List, Optional, Set

from .errors import EmbedResolutionError, ResolutionFailure
from .registry import CollectionHandle, FieldKind, SchemaRegistry

logger = logging.getLogger(__name__)


def embeds_to_levels(embeds) -> List[Set[str]]:
    """Group every prefix of the embed paths by depth.

    ["a.b", "a.c", "x.y"] -> [{"a", "x"}, {"a.b", "a.c", "x.y"}]
    """
    levels: List[Set[str]] = []
    for embed in embeds:
        parts = embed.split(".")
        for i in range(len(parts)):
            if i == len(levels):
                levels.append(set())
            levels[i].add(".".join(parts[: i + 1]))
    return levels


def _fail(
    path: str,
    sub_path: str,
    reason: ResolutionFailure,
    requested: AbstractSet[str],
) -> None:
    # Only paths explicitly asked for in $embed are errors; anything else is a
    # plain field as far as the pipeline is concerned.
    if path in requested:
        raise EmbedResolutionError(path, sub_path, reason)
    logger.debug(f'"{path}" does not resolve at "{sub_path}" ({reason.name}); treating it as a plain field')
    return None


def resolve_nested_path(
    registry: SchemaRegistry,
    root: CollectionHandle,
    path: str,
    requested: AbstractSet[str] = frozenset(),
) -> Optional[CollectionHandle]:
    """Walk `path` from `root` across reference fields.

    At each collection the longest run of segments that is a direct field
    (embedded sub-documents included) is consumed; that field must be a
    reference, and the walk continues from its target collection with the
    remaining segments. Returns the collection the full path points at, or
    None when it does not resolve and `path` is not in `requested`.

    Raises:
        EmbedResolutionError: `path` is in `requested` and does not resolve.
    """
    segments = path.split(".")
    current = root
    offset = 0

    # Each iteration consumes at least one segment, so the walk is bounded by
    # len(segments) even when references form a cycle.
    while offset < len(segments):
        consumed = 0
        field_path: Optional[str] = None
        while offset + consumed < len(segments):
            candidate = ".".join(segments[offset : offset + consumed + 1])
            if not registry.has_field(current.name, candidate):
                break
            field_path = candidate
            consumed += 1

        if field_path is None:
            return _fail(path, ".".join(segments[: offset + 1]), ResolutionFailure.NOT_FOUND, requested)

        sub_path = ".".join(segments[: offset + consumed])

        if registry.field_kind(current.name, field_path) is not FieldKind.REFERENCE:
            return _fail(path, sub_path, ResolutionFailure.NOT_A_REFERENCE, requested)

        target_name = registry.referenced_collection(current.name, field_path)
        if not target_name:
            return _fail(path, sub_path, ResolutionFailure.NO_TARGET, requested)

        target = registry.lookup_collection(target_name)
        if target is None:
            return _fail(path, sub_path, ResolutionFailure.TARGET_NOT_REGISTERED, requested)

        current = target
        offset += consumed

    return current
