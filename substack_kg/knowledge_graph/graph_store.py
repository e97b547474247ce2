"""
Graph store: applies one document's extraction to the cumulative graph.

The merge rules are deliberately simple and each lives in its own helper:
- description: the strictly longer text wins
- significance: promoted by occurrence count, never demoted here
- aliases, alternate terms, domains, related ids: ordered set union
- relationships: identified by (source, type, target); repeats add evidence
"""

import logging
from collections import Counter
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..extractors.schemas import (
    ExtractedConcept,
    ExtractedEntity,
    ExtractedRelationship,
    ExtractionResult,
)
from .identifiers import normalize, relationship_id
from .models import (
    Concept,
    Document,
    Entity,
    EvolutionNote,
    KnowledgeGraph,
    Occurrence,
    Relationship,
)

logger = logging.getLogger(__name__)

SIGNIFICANCE_RANK = {"minor": 0, "moderate": 1, "major": 2}
MAJOR_OCCURRENCE_THRESHOLD = 5
MODERATE_OCCURRENCE_THRESHOLD = 2


def create_empty_graph(author_name: Optional[str] = None) -> KnowledgeGraph:
    graph = KnowledgeGraph()
    graph.metadata.author_name = author_name
    return graph


def merge_unique(*lists: Iterable[str]) -> List[str]:
    """Union of several lists, keeping first-seen order"""
    merged: List[str] = []
    for items in lists:
        for item in items:
            if item and item not in merged:
                merged.append(item)
    return merged


def longer_description(current: str, candidate: str) -> str:
    """Keep the current description unless the candidate is strictly longer"""
    if candidate and len(candidate) > len(current or ""):
        return candidate
    return current


def promote_significance(current: str, occurrence_count: int) -> str:
    """Monotonic promotion: >=5 occurrences is major, >=2 at least moderate.

    The result is never lower than `current`.
    """
    floor = "minor"
    if occurrence_count >= MAJOR_OCCURRENCE_THRESHOLD:
        floor = "major"
    elif occurrence_count >= MODERATE_OCCURRENCE_THRESHOLD:
        floor = "moderate"
    if SIGNIFICANCE_RANK.get(current, 0) >= SIGNIFICANCE_RANK[floor]:
        return current
    return floor


def format_evidence(document_title: str, quote: str = "") -> str:
    """Evidence entry recorded on a relationship for one supporting document"""
    if quote:
        return f'{document_title}: "{quote}"'
    return document_title


def _occurrence(document: Document, context: str, local_significance: str = "") -> Occurrence:
    return Occurrence(
        document_title=document.title,
        document_date=document.date,
        context=context,
        local_significance=local_significance,
    )


def _apply_entity(graph: KnowledgeGraph, candidate: ExtractedEntity, document: Document) -> None:
    entity_id = normalize(candidate.name)
    if not entity_id:
        return

    occurrence = _occurrence(document, candidate.context_in_this_post, candidate.significance_in_this_post)
    existing = graph.entities.get(entity_id)

    if existing is None:
        graph.entities[entity_id] = Entity(
            id=entity_id,
            name=candidate.name,
            type=candidate.type,
            description=candidate.description,
            aliases=merge_unique(a for a in candidate.aliases if a != candidate.name),
            occurrences=[occurrence],
            first_seen_document_title=document.title,
            significance=candidate.significance,
        )
        return

    existing.occurrences.append(occurrence)
    existing.aliases = merge_unique(existing.aliases, (a for a in candidate.aliases if a != existing.name))
    # A differently-spelled name that collided on id is kept as an alias
    if candidate.name != existing.name:
        existing.aliases = merge_unique(existing.aliases, [candidate.name])
    existing.description = longer_description(existing.description, candidate.description)
    existing.significance = promote_significance(existing.significance, len(existing.occurrences))


def _apply_concept(graph: KnowledgeGraph, candidate: ExtractedConcept, document: Document) -> None:
    concept_id = normalize(candidate.name)
    if not concept_id:
        return

    occurrence = _occurrence(document, candidate.context_in_this_post)
    evolution = []
    if candidate.evolution_note:
        evolution.append(EvolutionNote(
            document_title=document.title,
            document_date=document.date,
            note=candidate.evolution_note,
        ))

    existing = graph.concepts.get(concept_id)

    if existing is None:
        graph.concepts[concept_id] = Concept(
            id=concept_id,
            name=candidate.name,
            domains=merge_unique(candidate.domains),
            description=candidate.description,
            alternate_terms=merge_unique(t for t in candidate.alternate_terms if t != candidate.name),
            occurrences=[occurrence],
            evolution=evolution,
            first_seen_document_title=document.title,
            significance=candidate.significance,
        )
        return

    existing.occurrences.append(occurrence)
    existing.domains = merge_unique(existing.domains, candidate.domains)
    existing.alternate_terms = merge_unique(
        existing.alternate_terms, (t for t in candidate.alternate_terms if t != existing.name)
    )
    if candidate.name != existing.name:
        existing.alternate_terms = merge_unique(existing.alternate_terms, [candidate.name])
    existing.evolution.extend(evolution)
    existing.description = longer_description(existing.description, candidate.description)
    existing.significance = promote_significance(existing.significance, len(existing.occurrences))


def link_related(graph: KnowledgeGraph, source_id: str, target_id: str) -> None:
    """Register a symmetric related-id pair across both namespaces"""
    if source_id == target_id:
        return

    source_entity = graph.entities.get(source_id)
    source_concept = graph.concepts.get(source_id)
    target_entity = graph.entities.get(target_id)
    target_concept = graph.concepts.get(target_id)

    if source_entity and target_entity:
        source_entity.related_entity_ids = merge_unique(source_entity.related_entity_ids, [target_id])
        target_entity.related_entity_ids = merge_unique(target_entity.related_entity_ids, [source_id])

    if source_concept and target_concept:
        source_concept.related_concept_ids = merge_unique(source_concept.related_concept_ids, [target_id])
        target_concept.related_concept_ids = merge_unique(target_concept.related_concept_ids, [source_id])

    if source_entity and target_concept:
        source_entity.related_concept_ids = merge_unique(source_entity.related_concept_ids, [target_id])
        target_concept.related_entity_ids = merge_unique(target_concept.related_entity_ids, [source_id])

    if source_concept and target_entity:
        source_concept.related_entity_ids = merge_unique(source_concept.related_entity_ids, [target_id])
        target_entity.related_concept_ids = merge_unique(target_entity.related_concept_ids, [source_id])


def add_relationship(
    graph: KnowledgeGraph,
    candidate: ExtractedRelationship,
    evidence: str,
    extend_existing: bool = True,
    resolve: Optional[Callable[[str], str]] = None,
) -> Optional[Relationship]:
    """Add a relationship or record evidence on the existing triple.

    Returns the affected relationship, or None when the candidate was
    rejected (self-loop or empty endpoint) or already existed and
    `extend_existing` is False. `resolve`, when given, maps each normalized
    endpoint to its current id (e.g. after a merge absorbed it).
    """
    source_id = normalize(candidate.source)
    target_id = normalize(candidate.target)
    if resolve is not None:
        source_id = resolve(source_id) if source_id else source_id
        target_id = resolve(target_id) if target_id else target_id

    if not source_id or not target_id:
        return None
    if source_id == target_id:
        logger.debug(f"Rejecting self-loop relationship on '{source_id}'")
        return None

    existing = graph.find_relationship(source_id, candidate.type, target_id)
    if existing is not None:
        if not extend_existing:
            return None
        if evidence and evidence not in existing.evidence:
            existing.evidence.append(evidence)
        existing.description = longer_description(existing.description, candidate.description)
        rel = existing
    else:
        rel = Relationship(
            id=relationship_id(source_id, candidate.type, target_id),
            source_id=source_id,
            target_id=target_id,
            type=candidate.type,
            description=candidate.description,
            evidence=[evidence] if evidence else [],
        )
        graph.relationships.append(rel)

    link_related(graph, source_id, target_id)
    return rel


def widen_date_range(graph: KnowledgeGraph, date: str) -> None:
    date_range = graph.metadata.date_range
    if not date:
        return
    if not date_range.earliest or date < date_range.earliest:
        date_range.earliest = date
    if not date_range.latest or date > date_range.latest:
        date_range.latest = date


def apply_extraction(
    graph: KnowledgeGraph,
    extraction: ExtractionResult,
    document: Document
) -> KnowledgeGraph:
    """Apply one document's extraction, returning a new graph.

    The input graph is left untouched. Applying the same extraction for the
    same document twice is not deduplicated: it records a second occurrence.

    Args:
        graph: Current graph state
        extraction: Validated extraction for `document`
        document: The document the extraction came from

    Returns:
        The updated graph
    """
    updated = graph.model_copy(deep=True)

    for entity in extraction.entities:
        _apply_entity(updated, entity, document)

    for concept in extraction.concepts:
        _apply_concept(updated, concept, document)

    for rel in extraction.relationships:
        add_relationship(updated, rel, format_evidence(document.title, rel.evidence_quote))

    updated.metadata.total_documents_processed += 1
    widen_date_range(updated, document.date)
    updated.metadata.last_updated = datetime.now().isoformat()

    logger.debug(
        f"Applied '{document.title}': {len(extraction.entities)} entities, "
        f"{len(extraction.concepts)} concepts, {len(extraction.relationships)} relationships"
    )
    return updated


def get_graph_stats(graph: KnowledgeGraph) -> Dict[str, Any]:
    """Summary counts for progress reporting"""
    entity_types = Counter(entity.type for entity in graph.entities.values())
    domains = Counter(domain for concept in graph.concepts.values() for domain in concept.domains)

    return {
        'total_entities': len(graph.entities),
        'total_concepts': len(graph.concepts),
        'total_relationships': len(graph.relationships),
        'major_entities': sum(1 for e in graph.entities.values() if e.significance == "major"),
        'major_concepts': sum(1 for c in graph.concepts.values() if c.significance == "major"),
        'entity_types': dict(entity_types.most_common()),
        'domains': dict(domains.most_common()),
    }


def export_graph(graph: KnowledgeGraph) -> Dict[str, Any]:
    """Plain JSON-ready projection of the graph for downstream consumers"""
    data = graph.model_dump(mode="json")
    data['statistics'] = get_graph_stats(graph)
    return data
