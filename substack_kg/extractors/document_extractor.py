"""
Document Extractor

Extracts entities, concepts and relationships from one blog post at a time.
Each call sees a bounded summary of the graph built so far, so the model can
tell existing entities and concepts from new ones without the prompt growing
with the corpus.
"""

import logging
from typing import Iterable, List, Optional, TypeVar, Union

from ..config.settings import settings
from ..knowledge_graph.models import Concept, Document, Entity, KnowledgeGraph
from .llm_client import LLMClient
from .response_parser import parse_extraction_response
from .schemas import ExtractionResult

logger = logging.getLogger(__name__)

Node = TypeVar("Node", Entity, Concept)

_SIGNIFICANCE_ORDER = {"major": 0, "moderate": 1, "minor": 2}


def rank_for_context(nodes: Iterable[Node], limit: int) -> List[Node]:
    """Highest significance first, then most recently seen, then most mentioned"""
    def latest_date(node: Union[Entity, Concept]) -> str:
        return max((o.document_date for o in node.occurrences), default="")

    ranked = sorted(nodes, key=latest_date, reverse=True)
    ranked.sort(key=lambda n: (_SIGNIFICANCE_ORDER.get(n.significance, 1), -len(n.occurrences)))
    return ranked[:limit]


def _snippet(text: str, length: int = 100) -> str:
    text = " ".join((text or "").split())
    return text if len(text) <= length else text[:length] + "..."


class DocumentExtractor:
    """Builds the extraction prompt for a document and parses the response"""

    ENTITY_TYPES_HELP = "person, organization, place, work, event, other"
    RELATIONSHIP_TYPES_HELP = "influences, critiques, extends, opposes, applies, cites, develops, synthesizes, related"

    EXTRACTION_PROMPT = """You are reading one post from a blog archive and extracting entities and concepts for a knowledge graph that grows post by post.

<existing_graph_summary>
{graph_summary}
</existing_graph_summary>

<post>
<title>{title}</title>
<date>{date}</date>
<content>
{content}
</content>
</post>

Extract every significant entity (people, organizations, places, works, events) and concept (theories, frameworks, key terminology) in this post.

For items ALREADY in the summary above, reuse the exact name shown there and describe only what this post adds.
For NEW items, give a complete description.
For existing concepts, add an "evolutionNote" saying how this post develops, critiques or reframes the idea.
Capture how ideas relate to each other and how the author positions their own ideas against others' work.

Respond ONLY with valid JSON in this format (no markdown, no commentary):
{{
  "entities": [
    {{
      "name": "Full Name or Title",
      "isNew": true,
      "type": "person",
      "description": "Full description if new, or what this post adds if existing",
      "aliases": ["alternate names", "abbreviations"],
      "contextInThisPost": "1-2 sentences on how they appear in this post",
      "significanceInThisPost": "why they matter here",
      "significance": "moderate"
    }}
  ],
  "concepts": [
    {{
      "name": "Concept Name",
      "isNew": true,
      "domains": ["philosophy", "media theory"],
      "description": "Definition if new, or developments if existing",
      "alternateTerms": ["other ways this concept is referred to"],
      "contextInThisPost": "how it is used in this post",
      "evolutionNote": "only for existing concepts: how understanding develops here"
    }}
  ],
  "relationships": [
    {{
      "source": "entity or concept name",
      "target": "entity or concept name",
      "type": "influences",
      "description": "nature of the relationship",
      "evidenceQuote": "short supporting quote or paraphrase"
    }}
  ]
}}

Entity types: {entity_types}
Relationship types: {relationship_types}
Significance: major (central across many posts), moderate (notable), minor (mentioned in passing)"""

    def __init__(
        self,
        client: LLMClient,
        max_content_chars: Optional[int] = None,
        max_entities: Optional[int] = None,
        max_concepts: Optional[int] = None,
        max_relationships: Optional[int] = None,
    ):
        """Initialize the extractor

        Args:
            client: Model client that owns retries and rate limiting
            max_content_chars: Characters of post content sent to the model
            max_entities: Entities listed in the graph summary
            max_concepts: Concepts listed in the graph summary
            max_relationships: Relationships listed in the graph summary
        """
        self.client = client
        self.max_content_chars = max_content_chars or settings.max_content_chars
        self.max_entities = max_entities or settings.context_max_entities
        self.max_concepts = max_concepts or settings.context_max_concepts
        self.max_relationships = max_relationships or settings.context_max_relationships

    def build_graph_summary(self, graph: KnowledgeGraph) -> str:
        """Bounded text summary of the graph, independent of graph size"""
        entities = rank_for_context(graph.entities.values(), self.max_entities)
        concepts = rank_for_context(graph.concepts.values(), self.max_concepts)

        # Relationships touching the listed nodes first, best-supported first
        listed = {n.id for n in entities} | {n.id for n in concepts}
        relationships = sorted(
            graph.relationships,
            key=lambda r: (not (r.source_id in listed and r.target_id in listed), -len(r.evidence)),
        )[:self.max_relationships]

        entity_lines = "\n".join(
            f"- {e.name} ({e.type}, {e.significance}): {_snippet(e.description)}" for e in entities
        )
        concept_lines = "\n".join(
            f"- {c.name} [{', '.join(c.domains)}]: {_snippet(c.description)}" for c in concepts
        )
        relationship_lines = "\n".join(
            f"- {r.source_id} --{r.type}--> {r.target_id}" for r in relationships
        )

        return (
            f"CURRENT ENTITIES ({len(graph.entities)} total, showing {len(entities)}):\n"
            f"{entity_lines or 'None yet'}\n\n"
            f"CURRENT CONCEPTS ({len(graph.concepts)} total, showing {len(concepts)}):\n"
            f"{concept_lines or 'None yet'}\n\n"
            f"KEY RELATIONSHIPS ({len(graph.relationships)} total, showing {len(relationships)}):\n"
            f"{relationship_lines or 'None yet'}"
        )

    def build_prompt(self, document: Document, graph: KnowledgeGraph) -> str:
        return self.EXTRACTION_PROMPT.format(
            graph_summary=self.build_graph_summary(graph),
            title=document.title,
            date=document.date,
            content=document.content[:self.max_content_chars],
            entity_types=self.ENTITY_TYPES_HELP,
            relationship_types=self.RELATIONSHIP_TYPES_HELP,
        )

    def extract(self, document: Document, graph: KnowledgeGraph) -> ExtractionResult:
        """Extract one document against the current graph

        Returns:
            The validated extraction; empty if the response was unparseable

        Raises:
            ExtractionError: the model call failed after all retries
            CredentialError: the API key was rejected
        """
        prompt = self.build_prompt(document, graph)
        response_text = self.client.complete(prompt)
        result = parse_extraction_response(response_text)

        if result.is_empty:
            logger.warning(f"No extractions for '{document.title}'")
        else:
            logger.info(
                f"Extracted from '{document.title}': {len(result.entities)} entities, "
                f"{len(result.concepts)} concepts, {len(result.relationships)} relationships"
            )
        return result
