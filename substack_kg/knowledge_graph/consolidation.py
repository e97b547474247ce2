"""
Consolidation engine: applies integration verification output to the graph.

Merge instructions are applied in the order the verifier returned them.
Within one batch the ids are tracked with a union-find, so a chain
(keep A / merge B, then keep B / merge C) folds C into A, and an
instruction that would close a cycle is skipped. Instructions naming ids
that do not exist in a namespace are skipped without aborting the batch.
"""

import logging
from typing import Dict, List, Optional

from ..extractors.schemas import IntegrationResult, MergeInstruction
from .graph_store import (
    add_relationship,
    longer_description,
    merge_unique,
    promote_significance,
)
from .identifiers import relationship_id
from .models import Concept, Entity, KnowledgeGraph, Relationship

logger = logging.getLogger(__name__)


class MergeResolver:
    """Union-find over ids absorbed during one integration batch"""

    def __init__(self):
        self._parent: Dict[str, str] = {}

    def find(self, node_id: str) -> str:
        root = node_id
        while root in self._parent:
            root = self._parent[root]
        # Path compression
        while node_id != root:
            next_id = self._parent[node_id]
            self._parent[node_id] = root
            node_id = next_id
        return root

    def union(self, keep_id: str, merge_id: str) -> None:
        self._parent[merge_id] = keep_id


def _absorb_entity(keep: Entity, absorbed: Entity) -> None:
    keep.occurrences.extend(absorbed.occurrences)
    keep.aliases = [
        alias for alias in merge_unique(keep.aliases, absorbed.aliases, [absorbed.name])
        if alias != keep.name
    ]
    keep.related_entity_ids = [
        rid for rid in merge_unique(keep.related_entity_ids, absorbed.related_entity_ids)
        if rid not in (keep.id, absorbed.id)
    ]
    keep.related_concept_ids = merge_unique(keep.related_concept_ids, absorbed.related_concept_ids)
    keep.description = longer_description(keep.description, absorbed.description)
    keep.significance = promote_significance(keep.significance, len(keep.occurrences))


def _absorb_concept(keep: Concept, absorbed: Concept) -> None:
    keep.occurrences.extend(absorbed.occurrences)
    keep.alternate_terms = [
        term for term in merge_unique(keep.alternate_terms, absorbed.alternate_terms, [absorbed.name])
        if term != keep.name
    ]
    keep.domains = merge_unique(keep.domains, absorbed.domains)
    keep.evolution.extend(absorbed.evolution)
    keep.related_concept_ids = [
        rid for rid in merge_unique(keep.related_concept_ids, absorbed.related_concept_ids)
        if rid not in (keep.id, absorbed.id)
    ]
    keep.related_entity_ids = merge_unique(keep.related_entity_ids, absorbed.related_entity_ids)
    keep.description = longer_description(keep.description, absorbed.description)
    keep.significance = promote_significance(keep.significance, len(keep.occurrences))


def _replace_id(ids: List[str], old_id: str, new_id: str, owner_id: str) -> List[str]:
    if old_id not in ids:
        return ids
    return [rid for rid in merge_unique(new_id if rid == old_id else rid for rid in ids) if rid != owner_id]


def rewrite_references(graph: KnowledgeGraph, old_id: str, new_id: str, namespace: str) -> int:
    """Point every reference to `old_id` at `new_id`.

    Rewrites relationship endpoints and the related-id lists of the given
    namespace ('entities' or 'concepts'). Endpoints are left alone when
    `old_id` still names a node in the other namespace, since they may refer
    to that node. Returns the number of relationships rewritten.
    """
    other = graph.concepts if namespace == "entities" else graph.entities
    if old_id in other:
        logger.debug(f"'{old_id}' also names a surviving node, keeping relationship endpoints")
        relationships = []
    else:
        relationships = graph.relationships

    rewritten = 0
    for rel in relationships:
        changed = False
        if rel.source_id == old_id:
            rel.source_id = new_id
            changed = True
        if rel.target_id == old_id:
            rel.target_id = new_id
            changed = True
        if changed:
            rewritten += 1

    for node in list(graph.entities.values()) + list(graph.concepts.values()):
        if namespace == "entities":
            node.related_entity_ids = _replace_id(node.related_entity_ids, old_id, new_id, node.id)
        else:
            node.related_concept_ids = _replace_id(node.related_concept_ids, old_id, new_id, node.id)
    return rewritten


def resolve_id(graph: KnowledgeGraph, resolvers: Dict[str, MergeResolver], node_id: str) -> str:
    """Map an id to the node that absorbed it, if it no longer exists"""
    if graph.has_node(node_id):
        return node_id
    for resolver in resolvers.values():
        found = resolver.find(node_id)
        if found != node_id:
            return found
    return node_id


def apply_merges(
    graph: KnowledgeGraph,
    merges: List[MergeInstruction],
    resolvers: Optional[Dict[str, MergeResolver]] = None,
) -> int:
    """Apply merge instructions in order against both namespaces.

    `resolvers` (keyed 'entities' and 'concepts') is filled in place so the
    caller can map absorbed ids afterwards. Returns the number of nodes
    absorbed.
    """
    if resolvers is None:
        resolvers = {}
    resolvers.setdefault("entities", MergeResolver())
    resolvers.setdefault("concepts", MergeResolver())
    namespaces = [
        ("entities", graph.entities, _absorb_entity, resolvers["entities"]),
        ("concepts", graph.concepts, _absorb_concept, resolvers["concepts"]),
    ]
    absorbed_count = 0

    for instruction in merges:
        applied = False
        for namespace, nodes, absorb, resolver in namespaces:
            keep_id = resolver.find(instruction.keep)
            merge_id = resolver.find(instruction.merge)

            if keep_id == merge_id:
                # Self-merge, or the pair was already joined earlier in this batch
                continue
            if keep_id not in nodes or merge_id not in nodes:
                continue

            absorb(nodes[keep_id], nodes[merge_id])
            del nodes[merge_id]
            resolver.union(keep_id, merge_id)
            rewritten = rewrite_references(graph, merge_id, keep_id, namespace)
            absorbed_count += 1
            applied = True

            logger.info(
                f"Merged {namespace[:-1]} '{merge_id}' into '{keep_id}' "
                f"({rewritten} relationships rewritten): {instruction.reason}"
            )

        if not applied:
            logger.warning(
                f"Skipping merge '{instruction.merge}' -> '{instruction.keep}': "
                f"ids missing, already merged, or cyclic"
            )

    return absorbed_count


def deduplicate_relationships(graph: KnowledgeGraph) -> int:
    """Collapse relationships that now share a (source, type, target) triple.

    Self-loops created by merging two endpoints are dropped. Returns the
    number of relationships removed.
    """
    unique: Dict[tuple, Relationship] = {}
    for rel in graph.relationships:
        if rel.source_id == rel.target_id:
            logger.debug(f"Dropping self-loop '{rel.id}' left by consolidation")
            continue
        existing = unique.get(rel.key)
        if existing is None:
            rel.id = relationship_id(rel.source_id, rel.type, rel.target_id)
            unique[rel.key] = rel
        else:
            existing.evidence = merge_unique(existing.evidence, rel.evidence)
            existing.description = longer_description(existing.description, rel.description)

    removed = len(graph.relationships) - len(unique)
    graph.relationships = list(unique.values())
    return removed


def apply_integration(graph: KnowledgeGraph, result: IntegrationResult) -> KnowledgeGraph:
    """Apply a verifier's corrections, returning a new graph.

    Significance and description updates overwrite directly; unlike
    extraction, the verifier may demote significance.
    """
    updated = graph.model_copy(deep=True)

    resolvers: Dict[str, MergeResolver] = {}
    merged = apply_merges(updated, result.merges, resolvers)

    def resolve(node_id: str) -> str:
        return resolve_id(updated, resolvers, node_id)

    def targets_for(node_id: str) -> List:
        node_id = resolve(node_id)
        return [n for n in (updated.entities.get(node_id), updated.concepts.get(node_id)) if n]

    added = 0
    for candidate in result.new_relationships:
        if add_relationship(
            updated, candidate, candidate.evidence_quote, extend_existing=False, resolve=resolve
        ):
            added += 1

    for update in result.updated_significance:
        targets = targets_for(update.id)
        if not targets:
            logger.warning(f"Skipping significance update for unknown id '{update.id}'")
        for node in targets:
            node.significance = update.new_significance

    for update in result.description_updates:
        targets = targets_for(update.id)
        if not targets:
            logger.warning(f"Skipping description update for unknown id '{update.id}'")
        for node in targets:
            node.description = update.new_description

    removed = deduplicate_relationships(updated)

    logger.info(
        f"Integration applied: {merged} merges, {added} new relationships, "
        f"{len(result.updated_significance)} significance updates, "
        f"{len(result.description_updates)} description updates, "
        f"{removed} duplicate relationships collapsed"
    )
    return updated
