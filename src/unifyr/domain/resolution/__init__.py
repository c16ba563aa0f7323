"""Entity resolution core: identity, relationships, traversal, merge and mapping."""

from __future__ import annotations

from .engine import TransformEngine, TransformOutcome, TransformSnapshot, build_record_key
from .graph import Edge, RelationshipGraph, build_graph
from .identity import (
    META_KEY,
    TABLE_KEY,
    NodeRef,
    RecordContext,
    RecordIndex,
    collect_candidate_ids,
    contexts_by_node,
    id_variants,
    index_records,
    normalize_id,
    normalize_type,
    resolve_record_id,
    resolve_record_type,
)
from .lookup import ContextCatalog
from .mapping import FieldResolver, apply_transform, extract_value, flatten_payload, fuzzy_lookup
from .merge import Cluster, MergedPayload, traverse
from .primary import resolve_primary_type
from .relationships import derive_relationships
from .values import normalize_payload, normalize_value

__all__ = [
    "META_KEY",
    "TABLE_KEY",
    "Cluster",
    "ContextCatalog",
    "Edge",
    "FieldResolver",
    "MergedPayload",
    "NodeRef",
    "RecordContext",
    "RecordIndex",
    "RelationshipGraph",
    "TransformEngine",
    "TransformOutcome",
    "TransformSnapshot",
    "apply_transform",
    "build_graph",
    "build_record_key",
    "collect_candidate_ids",
    "contexts_by_node",
    "derive_relationships",
    "extract_value",
    "flatten_payload",
    "fuzzy_lookup",
    "id_variants",
    "index_records",
    "normalize_id",
    "normalize_payload",
    "normalize_type",
    "normalize_value",
    "resolve_primary_type",
    "resolve_record_id",
    "resolve_record_type",
    "traverse",
]
