"""
Integration Verifier

Periodically reviews the accumulated graph as a whole and proposes
corrections that no single document could reveal: duplicate entities or
concepts under different names, implied relationships, and significance
ratings or descriptions that no longer match the accumulated evidence.
It never proposes new raw extractions.
"""

import json
import logging
from typing import List, Optional

from ..config.settings import settings
from ..knowledge_graph.models import KnowledgeGraph
from .llm_client import LLMClient
from .response_parser import parse_integration_response
from .schemas import IntegrationResult

logger = logging.getLogger(__name__)


class IntegrationVerifier:
    """Asks the model to consolidate the graph built so far"""

    INTEGRATION_PROMPT = """Review the current state of this knowledge graph for consistency and completeness.

<full_graph>
{graph_json}
</full_graph>

<recent_posts_processed>
{recent_titles}
</recent_posts_processed>

Identify:
1. Duplicate entities or concepts that should be merged (same person or idea under different names or spellings)
2. Relationships that are implied across posts but not yet recorded
3. Significance ratings that should change given how often and how centrally an item appears
4. Descriptions that should be synthesized from the accumulated occurrences

Use the ids exactly as they appear in the graph for "keep", "merge" and "id".

Respond ONLY with valid JSON (no markdown, no commentary):
{{
  "merges": [
    {{"keep": "id-to-keep", "merge": "id-to-absorb-into-keep", "reason": "explanation"}}
  ],
  "newRelationships": [
    {{"source": "name", "target": "name", "type": "relationship-type", "description": "why this relationship exists", "evidenceQuote": "supporting evidence"}}
  ],
  "updatedSignificance": [
    {{"id": "entity-or-concept-id", "newSignificance": "major"}}
  ],
  "descriptionUpdates": [
    {{"id": "entity-or-concept-id", "newDescription": "description synthesizing all occurrences"}}
  ]
}}

Only include changes that are clearly warranted. Quality over quantity."""

    def __init__(self, client: LLMClient, payload_chars: Optional[int] = None):
        self.client = client
        self.payload_chars = payload_chars or settings.integration_payload_chars

    def serialize_graph(self, graph: KnowledgeGraph) -> str:
        """Graph snapshot for the prompt, truncated to the payload budget"""
        data = graph.model_dump(mode="json")
        text = json.dumps(data, indent=2)
        if len(text) > self.payload_chars:
            logger.debug(f"Truncating graph payload from {len(text)} to {self.payload_chars} characters")
            text = text[:self.payload_chars]
        return text

    def build_prompt(self, graph: KnowledgeGraph, recent_titles: List[str]) -> str:
        return self.INTEGRATION_PROMPT.format(
            graph_json=self.serialize_graph(graph),
            recent_titles="\n".join(recent_titles),
        )

    def verify(self, graph: KnowledgeGraph, recent_titles: List[str]) -> IntegrationResult:
        """Run one verification round

        Raises:
            ExtractionError: the model call failed after all retries
            CredentialError: the API key was rejected
        """
        logger.info(f"Running integration verification over {len(recent_titles)} recent posts")
        response_text = self.client.complete(self.build_prompt(graph, recent_titles))
        result = parse_integration_response(response_text)

        logger.info(
            f"Integration proposed {len(result.merges)} merges, "
            f"{len(result.new_relationships)} new relationships, "
            f"{len(result.updated_significance)} significance updates, "
            f"{len(result.description_updates)} description updates"
        )
        return result
