"""
Data model for the cumulative knowledge graph.

Entities and concepts live in separate id namespaces (two dicts), so an
entity and a concept whose names normalize identically never overwrite
each other. Relationships refer to either namespace by id.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field

EntityType = Literal["person", "organization", "place", "work", "event", "other"]
Significance = Literal["major", "moderate", "minor"]
RelationshipType = Literal[
    "influences", "critiques", "extends", "opposes", "applies",
    "cites", "develops", "synthesizes", "related",
]

ENTITY_TYPES: List[str] = ["person", "organization", "place", "work", "event", "other"]
SIGNIFICANCE_LEVELS: List[str] = ["major", "moderate", "minor"]
RELATIONSHIP_TYPES: List[str] = [
    "influences",   # Shaped the thinking of
    "critiques",    # Argues against or finds fault with
    "extends",      # Builds further on
    "opposes",      # Stands in contrast to
    "applies",      # Puts into practice
    "cites",        # References
    "develops",     # Originates or elaborates
    "synthesizes",  # Combines with
    "related",      # Fallback when nothing more specific fits
]


class Document(BaseModel):
    """A single blog post, read-only to the graph engine"""
    id: str
    title: str
    date: str  # ISO-8601, possibly synthesized
    content: str
    word_count: int = 0


class Occurrence(BaseModel):
    """One document's contribution to an entity or concept"""
    document_title: str
    document_date: str
    context: str = ""
    local_significance: str = ""


class EvolutionNote(BaseModel):
    """How a document refines an already-known concept"""
    document_title: str
    document_date: str
    note: str


class Entity(BaseModel):
    """A concrete named thing tracked across documents"""
    id: str
    name: str
    type: EntityType = "other"
    description: str = ""
    aliases: List[str] = []
    occurrences: List[Occurrence] = []
    related_entity_ids: List[str] = []
    related_concept_ids: List[str] = []
    first_seen_document_title: str = ""
    significance: Significance = "moderate"


class Concept(BaseModel):
    """An abstract idea or term tracked across documents, with its evolution"""
    id: str
    name: str
    domains: List[str] = []
    description: str = ""
    alternate_terms: List[str] = []
    occurrences: List[Occurrence] = []
    related_entity_ids: List[str] = []
    related_concept_ids: List[str] = []
    evolution: List[EvolutionNote] = []
    first_seen_document_title: str = ""
    significance: Significance = "moderate"


class Relationship(BaseModel):
    """A directed, typed edge identified by its (source, type, target) triple"""
    id: str
    source_id: str
    target_id: str
    type: RelationshipType = "related"
    description: str = ""
    evidence: List[str] = []

    @property
    def key(self) -> tuple:
        return (self.source_id, self.type, self.target_id)


class DateRange(BaseModel):
    earliest: str = ""
    latest: str = ""


class GraphMetadata(BaseModel):
    total_documents_processed: int = 0
    date_range: DateRange = Field(default_factory=DateRange)
    last_updated: str = Field(default_factory=lambda: datetime.now().isoformat())
    author_name: Optional[str] = None


class KnowledgeGraph(BaseModel):
    """The cumulative graph. Serializes the two maps as plain JSON objects."""
    entities: Dict[str, Entity] = {}
    concepts: Dict[str, Concept] = {}
    relationships: List[Relationship] = []
    metadata: GraphMetadata = Field(default_factory=GraphMetadata)

    def find_relationship(self, source_id: str, rel_type: str, target_id: str) -> Optional[Relationship]:
        for rel in self.relationships:
            if rel.source_id == source_id and rel.type == rel_type and rel.target_id == target_id:
                return rel
        return None

    def has_node(self, node_id: str) -> bool:
        return node_id in self.entities or node_id in self.concepts
