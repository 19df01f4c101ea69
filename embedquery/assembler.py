"""
Pipeline assembly for the two query protocols.

build_list_aggregation          -> query one collection directly
build_association_aggregation   -> query the children linked to one owner
                                   through a many-to-many linking collection

Both end in the same $facet: {"content": [...], "totalCount": [{"count": N}]}.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .compiler import (
    Stage,
    as_list,
    build_facet_stage,
    build_lookup_stage,
    compile_embeds,
    compile_match,
    compile_pagination,
    compile_sort,
    embeds_of,
    filters_of,
    first_element,
    qualify,
)
from .constants import DESCENDING_PREFIX, ID_FIELD, SORT_KEY, str_to_object_id
from .errors import BadRequestError, InvalidQueryError
from .query import normalize_query
from .registry import CollectionHandle, SchemaRegistry
from .resolver import resolve_nested_path

logger = logging.getLogger(__name__)

CollectionRef = Union[str, CollectionHandle]


class AssociationLink(BaseModel):
    """Many-to-many relation stored in a linking collection."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    linking_collection: str = Field(alias="linkingCollection")
    field_storing_child: str = Field(alias="fieldStoringChild")
    child_alias: Optional[str] = Field(default=None, alias="alias")
    # Field on the linking rows holding the owner id; defaults to the owner's
    # physical collection name.
    owner_field: Optional[str] = Field(default=None, alias="ownerField")

    @property
    def child_field(self) -> str:
        return self.child_alias or self.field_storing_child


def collection_handle(registry: SchemaRegistry, ref: CollectionRef) -> CollectionHandle:
    if isinstance(ref, CollectionHandle):
        return ref
    handle = registry.lookup_collection(ref)
    if handle is None:
        raise BadRequestError(f'collection "{ref}" is not registered')
    return handle


def _qualify_paths(query: Mapping[str, Any], registry: SchemaRegistry, root: CollectionHandle) -> None:
    """Best-effort resolution of filter and sort paths.

    These paths are never joined; crossing a reference that was not embedded
    just leaves the path as a literal field reference.
    """
    requested = frozenset(embeds_of(query))
    paths = list(filters_of(query))
    paths += [c[len(DESCENDING_PREFIX):] if c.startswith(DESCENDING_PREFIX) else c for c in as_list(query.get(SORT_KEY))]
    for path in paths:
        target = resolve_nested_path(registry, root, path, requested)
        if target is not None:
            logger.debug(f'"{path}" on {root.name} references {target.name}')


def build_list_aggregation(
    query: Mapping[str, Any],
    registry: SchemaRegistry,
    collection: CollectionRef,
) -> List[Stage]:
    """Pipeline querying `collection` directly.

    Embeds come first so sort and filters can address embedded fields.
    """
    query = normalize_query(query)
    root = collection_handle(registry, collection)
    _qualify_paths(query, registry, root)

    pipeline: List[Stage] = [
        *compile_embeds(query, registry, root),
        *compile_sort(query),
        *compile_match(query),
        build_facet_stage(compile_pagination(query)),
    ]

    logger.debug(f"List aggregation on {root.name}: {len(pipeline)} stage(s)")
    return pipeline


def build_association_aggregation(
    query: Mapping[str, Any],
    registry: SchemaRegistry,
    link: Union[AssociationLink, Dict[str, Any]],
    association_name: str,
    owner: CollectionRef,
    owner_id: Any,
    child: CollectionRef,
) -> List[Stage]:
    """Pipeline listing the children linked to one owner document.

    The pipeline runs on the owner's collection: match the owner, join its
    linking rows under `association_name`, unwind them, materialize the child
    reference, apply embeds (relative to the linking collection), sort and
    filters, then group the paginated rows back onto the owner.

    An owner without linking rows produces no rows at all ($unwind does not
    preserve empty arrays).
    """
    query = normalize_query(query)
    if not isinstance(link, AssociationLink):
        link = AssociationLink.model_validate(link)

    owner_handle = collection_handle(registry, owner)
    child_handle = collection_handle(registry, child)
    linking = collection_handle(registry, link.linking_collection)

    try:
        owner_object_id = str_to_object_id(owner_id)
    except ValueError as e:
        raise InvalidQueryError("ownerId", str(e), owner_id) from e

    owner_field = link.owner_field or owner_handle.physical_name
    child_field = link.child_field
    child_path = qualify(child_field, association_name)

    _qualify_paths(query, registry, linking)

    pipeline: List[Stage] = [
        {"$match": {ID_FIELD: owner_object_id}},
        build_lookup_stage(linking.physical_name, ID_FIELD, owner_field, association_name),
        {"$unwind": {"path": f"${association_name}"}},
        build_lookup_stage(child_handle.physical_name, child_path),
        {"$set": {child_path: first_element(child_path)}},
        # the child field is already materialized, only deeper embeds join
        *compile_embeds(query, registry, linking, association_name, materialized=frozenset([child_field])),
        *compile_sort(query, association_name),
        *compile_match(query, association_name),
        build_facet_stage([
            *compile_pagination(query),
            {
                "$group": {
                    ID_FIELD: f"${ID_FIELD}",
                    association_name: {"$push": f"${association_name}"},
                }
            },
        ]),
    ]

    logger.debug(
        f"Association aggregation {owner_handle.name}.{association_name} via {linking.name}: "
        f"{len(pipeline)} stage(s)"
    )
    return pipeline
