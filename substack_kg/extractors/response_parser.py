"""
Parsing of raw model output into typed extraction and integration results.

Model output is never trusted: code fences are stripped, the JSON is
located, and every list item is validated on its own so that a single bad
item is dropped instead of failing the whole response. A response that is
not JSON at all degrades to an empty result.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .schemas import (
    DescriptionUpdate,
    ExtractedConcept,
    ExtractedEntity,
    ExtractedRelationship,
    ExtractionResult,
    IntegrationResult,
    MergeInstruction,
    SignificanceUpdate,
)

logger = logging.getLogger(__name__)

ItemModel = TypeVar("ItemModel", bound=BaseModel)

_FENCE_OPEN = re.compile(r'^```[a-zA-Z]*\s*')
_FENCE_CLOSE = re.compile(r'\s*```$')


def strip_code_fences(text: str) -> str:
    """Remove a wrapping ```json ... ``` block if present"""
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_OPEN.sub('', cleaned)
        cleaned = _FENCE_CLOSE.sub('', cleaned)
    elif "```json" in cleaned:
        # Model wrapped the JSON in prose
        json_start = cleaned.find("```json") + 7
        json_end = cleaned.find("```", json_start)
        cleaned = cleaned[json_start:json_end if json_end != -1 else None]
    return cleaned.strip()


def parse_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Parse a JSON object out of model output, or return None"""
    cleaned = strip_code_fences(text)
    if not cleaned:
        return None

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        # Fall back to the outermost braces
        start, end = cleaned.find('{'), cleaned.rfind('}')
        if start == -1 or end <= start:
            logger.warning(f"Response is not JSON: {cleaned[:200]!r}")
            return None
        try:
            parsed = json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse JSON from response: {e}")
            logger.debug(f"Raw response: {cleaned[:500]}")
            return None

    if not isinstance(parsed, dict):
        logger.warning(f"Expected a JSON object, got {type(parsed).__name__}")
        return None
    return parsed


def coerce_items(raw: Any, model: Type[ItemModel], label: str) -> List[ItemModel]:
    """Validate each item of a list independently, dropping the invalid ones"""
    if not isinstance(raw, list):
        if raw is not None:
            logger.warning(f"Ignoring non-list '{label}' field ({type(raw).__name__})")
        return []

    items = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            logger.debug(f"Skipping {label}[{index}]: not an object")
            continue
        try:
            items.append(model.model_validate(item))
        except ValidationError as e:
            logger.debug(f"Skipping {label}[{index}]: {e.error_count()} invalid field(s)")
    return items


def _field(parsed: Dict[str, Any], camel: str, snake: str) -> Any:
    return parsed.get(camel, parsed.get(snake))


def parse_extraction_response(text: str) -> ExtractionResult:
    """Parse one document's extraction response; never raises"""
    parsed = parse_json_object(text)
    if parsed is None:
        return ExtractionResult()

    return ExtractionResult(
        entities=coerce_items(parsed.get("entities"), ExtractedEntity, "entities"),
        concepts=coerce_items(parsed.get("concepts"), ExtractedConcept, "concepts"),
        relationships=coerce_items(parsed.get("relationships"), ExtractedRelationship, "relationships"),
    )


def parse_integration_response(text: str) -> IntegrationResult:
    """Parse an integration verification response; never raises"""
    parsed = parse_json_object(text)
    if parsed is None:
        return IntegrationResult()

    return IntegrationResult(
        merges=coerce_items(parsed.get("merges"), MergeInstruction, "merges"),
        new_relationships=coerce_items(
            _field(parsed, "newRelationships", "new_relationships"), ExtractedRelationship, "newRelationships"
        ),
        updated_significance=coerce_items(
            _field(parsed, "updatedSignificance", "updated_significance"), SignificanceUpdate, "updatedSignificance"
        ),
        description_updates=coerce_items(
            _field(parsed, "descriptionUpdates", "description_updates"), DescriptionUpdate, "descriptionUpdates"
        ),
    )
