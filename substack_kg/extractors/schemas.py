"""
Typed contracts for extraction and integration responses.

Every field coerces malformed input to a safe default instead of failing,
so one bad field never discards the rest of a model response. Keys are
accepted in the camelCase the model is prompted with as well as in
snake_case.
"""

from typing import Any, List
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from ..knowledge_graph.identifiers import normalize
from ..knowledge_graph.models import (
    ENTITY_TYPES,
    RELATIONSHIP_TYPES,
    SIGNIFICANCE_LEVELS,
    EntityType,
    RelationshipType,
    Significance,
)


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)):
        return str(value)
    return ""


def _coerce_string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    items = []
    for item in value:
        text = _coerce_text(item)
        if text and text not in items:
            items.append(text)
    return items


def _coerce_choice(value: Any, choices: List[str], default: str) -> str:
    if isinstance(value, str):
        candidate = value.strip().lower()
        if candidate in choices:
            return candidate
    return default


def _coerce_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() not in ("false", "no", "0")
    return True if value is None else bool(value)


def _require_name(value: Any) -> str:
    name = _coerce_text(value)
    if not normalize(name):
        raise ValueError("name is empty after normalization")
    return name


def _require_id(value: Any) -> str:
    # Ids are normalized again so a display name given in place of an id still resolves
    node_id = normalize(_coerce_text(value))
    if not node_id:
        raise ValueError("empty id")
    return node_id


class ResponseModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExtractedEntity(ResponseModel):
    """Entity candidate from one document"""
    name: str
    is_new: bool = True
    type: EntityType = "other"
    description: str = ""
    aliases: List[str] = []
    context_in_this_post: str = ""
    significance_in_this_post: str = ""
    significance: Significance = "moderate"

    @field_validator("name", mode="before")
    @classmethod
    def require_name(cls, value: Any) -> str:
        return _require_name(value)

    @field_validator("is_new", mode="before")
    @classmethod
    def coerce_is_new(cls, value: Any) -> bool:
        return _coerce_flag(value)

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, value: Any) -> str:
        return _coerce_choice(value, ENTITY_TYPES, "other")

    @field_validator("significance", mode="before")
    @classmethod
    def coerce_significance(cls, value: Any) -> str:
        return _coerce_choice(value, SIGNIFICANCE_LEVELS, "moderate")

    @field_validator("description", "context_in_this_post", "significance_in_this_post", mode="before")
    @classmethod
    def coerce_text_fields(cls, value: Any) -> str:
        return _coerce_text(value)

    @field_validator("aliases", mode="before")
    @classmethod
    def coerce_aliases(cls, value: Any) -> List[str]:
        return _coerce_string_list(value)


class ExtractedConcept(ResponseModel):
    """Concept candidate from one document"""
    name: str
    is_new: bool = True
    domains: List[str] = []
    description: str = ""
    alternate_terms: List[str] = []
    context_in_this_post: str = ""
    evolution_note: str = ""
    significance: Significance = "moderate"

    @field_validator("name", mode="before")
    @classmethod
    def require_name(cls, value: Any) -> str:
        return _require_name(value)

    @field_validator("is_new", mode="before")
    @classmethod
    def coerce_is_new(cls, value: Any) -> bool:
        return _coerce_flag(value)

    @field_validator("significance", mode="before")
    @classmethod
    def coerce_significance(cls, value: Any) -> str:
        return _coerce_choice(value, SIGNIFICANCE_LEVELS, "moderate")

    @field_validator("description", "context_in_this_post", "evolution_note", mode="before")
    @classmethod
    def coerce_text_fields(cls, value: Any) -> str:
        return _coerce_text(value)

    @field_validator("domains", "alternate_terms", mode="before")
    @classmethod
    def coerce_lists(cls, value: Any) -> List[str]:
        return _coerce_string_list(value)


class ExtractedRelationship(ResponseModel):
    """Relationship candidate between two named nodes"""
    source: str
    target: str
    type: RelationshipType = "related"
    description: str = ""
    evidence_quote: str = ""

    @field_validator("source", "target", mode="before")
    @classmethod
    def require_endpoint(cls, value: Any) -> str:
        return _require_name(value)

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, value: Any) -> str:
        return _coerce_choice(value, RELATIONSHIP_TYPES, "related")

    @field_validator("description", "evidence_quote", mode="before")
    @classmethod
    def coerce_text_fields(cls, value: Any) -> str:
        return _coerce_text(value)


class ExtractionResult(ResponseModel):
    """Everything one document contributed"""
    entities: List[ExtractedEntity] = []
    concepts: List[ExtractedConcept] = []
    relationships: List[ExtractedRelationship] = []

    @property
    def is_empty(self) -> bool:
        return not (self.entities or self.concepts or self.relationships)


class MergeInstruction(ResponseModel):
    """Absorb `merge` into `keep`"""
    keep: str
    merge: str
    reason: str = ""

    @field_validator("keep", "merge", mode="before")
    @classmethod
    def normalize_id(cls, value: Any) -> str:
        return _require_id(value)

    @field_validator("reason", mode="before")
    @classmethod
    def coerce_reason(cls, value: Any) -> str:
        return _coerce_text(value)


class SignificanceUpdate(ResponseModel):
    id: str
    new_significance: Significance

    @field_validator("id", mode="before")
    @classmethod
    def normalize_id(cls, value: Any) -> str:
        return _require_id(value)

    @field_validator("new_significance", mode="before")
    @classmethod
    def validate_level(cls, value: Any) -> str:
        level = _coerce_choice(value, SIGNIFICANCE_LEVELS, "")
        if not level:
            raise ValueError(f"unknown significance level: {value!r}")
        return level


class DescriptionUpdate(ResponseModel):
    id: str
    new_description: str

    @field_validator("id", mode="before")
    @classmethod
    def normalize_id(cls, value: Any) -> str:
        return _require_id(value)

    @field_validator("new_description", mode="before")
    @classmethod
    def require_text(cls, value: Any) -> str:
        text = _coerce_text(value)
        if not text:
            raise ValueError("empty description update")
        return text


class IntegrationResult(ResponseModel):
    """Corrections proposed by an integration verification round"""
    merges: List[MergeInstruction] = []
    new_relationships: List[ExtractedRelationship] = []
    updated_significance: List[SignificanceUpdate] = []
    description_updates: List[DescriptionUpdate] = []

    @property
    def is_empty(self) -> bool:
        return not (self.merges or self.new_relationships or self.updated_significance or self.description_updates)
