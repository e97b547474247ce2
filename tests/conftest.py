"""
Pytest configuration and fixtures for knowledge graph builder tests
"""
import json
import pytest
from typing import Any, Dict, List, Optional

from substack_kg.extractors.schemas import (
    ExtractedConcept,
    ExtractedEntity,
    ExtractedRelationship,
    ExtractionResult,
)
from substack_kg.knowledge_graph.graph_store import create_empty_graph
from substack_kg.knowledge_graph.models import Document

# Test data
SAMPLE_POSTS = [
    {
        "id": "the-desert-of-the-real",
        "title": "The Desert of the Real",
        "date": "2023-01-10",
        "content": "Baudrillard argued that simulation has replaced the real. "
                   "Simulacra precede the territory they claim to map.",
    },
    {
        "id": "hyperreal-feeds",
        "title": "Hyperreal Feeds",
        "date": "2023-02-14",
        "content": "Social feeds are Baudrillard's hyperreality made literal. "
                   "Grimes performs a self that is already a simulation.",
    },
    {
        "id": "the-aesthetics-of-ai-art",
        "title": "The Aesthetics of AI Art",
        "date": "2023-03-01",
        "content": "Claire Boucher, better known as Grimes, licensed her voice to anyone.",
    },
]


def make_document(title: str, date: str = "2023-01-01", content: str = "Some content.") -> Document:
    """Build a Document with an id derived from its title"""
    return Document(
        id=title.lower().replace(" ", "-"),
        title=title,
        date=date,
        content=content,
        word_count=len(content.split()),
    )


def make_extraction(
    entities: Optional[List[Dict[str, Any]]] = None,
    concepts: Optional[List[Dict[str, Any]]] = None,
    relationships: Optional[List[Dict[str, Any]]] = None,
) -> ExtractionResult:
    """Build an ExtractionResult from plain dicts, as the parser would"""
    return ExtractionResult(
        entities=[ExtractedEntity.model_validate(e) for e in entities or []],
        concepts=[ExtractedConcept.model_validate(c) for c in concepts or []],
        relationships=[ExtractedRelationship.model_validate(r) for r in relationships or []],
    )


class FakeLLMClient:
    """Stands in for LLMClient: returns queued responses, records prompts"""

    def __init__(self, responses: Optional[List[Any]] = None, valid_key: bool = True):
        self.responses = list(responses or [])
        self.prompts: List[str] = []
        self.valid_key = valid_key

    def complete(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        self.prompts.append(prompt)
        if not self.responses:
            return "{}"
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, dict):
            return json.dumps(response)
        return response

    def validate_api_key(self):
        if self.valid_key:
            return True, None
        return False, "Invalid API key. Please check your key and try again."


@pytest.fixture
def sample_documents() -> List[Document]:
    """Three dated posts, out of chronological order"""
    docs = [Document(word_count=len(p["content"].split()), **p) for p in SAMPLE_POSTS]
    return [docs[2], docs[0], docs[1]]


@pytest.fixture
def empty_graph():
    return create_empty_graph(author_name="Test Author")


@pytest.fixture
def baudrillard_extraction() -> ExtractionResult:
    """Baudrillard critiquing the concept of simulacra"""
    return make_extraction(
        entities=[{
            "name": "Jean Baudrillard",
            "type": "person",
            "description": "French sociologist and philosopher.",
            "aliases": ["Baudrillard"],
            "contextInThisPost": "Cited as the source of the argument.",
            "significance": "moderate",
        }],
        concepts=[{
            "name": "Simulacra",
            "domains": ["philosophy"],
            "description": "Copies without an original.",
        }],
        relationships=[{
            "source": "Jean Baudrillard",
            "target": "Simulacra",
            "type": "develops",
            "description": "Baudrillard developed the theory of simulacra.",
        }],
    )


@pytest.fixture
def fake_client():
    return FakeLLMClient()


@pytest.fixture
def checkpoint_dir(tmp_path):
    directory = tmp_path / "checkpoints"
    directory.mkdir()
    return directory
