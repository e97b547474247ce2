"""
Identifier normalization for entities, concepts and relationships.

Two extracted names that normalize to the same id are treated as the same
node at apply time. "Grimes" and "Grimes!!" collide; "Grimes" and
"Claire Boucher" do not, and can only be joined by a consolidation merge.
"""

import re
from typing import Optional

MAX_ID_LENGTH = 100

_NON_ALNUM = re.compile(r'[^a-z0-9]+')


def normalize(name: Optional[str]) -> str:
    """Derive a stable key from a free-text name.

    Examples:
        - "Jean Baudrillard" → "jean-baudrillard"
        - "  Simulacra & Simulation " → "simulacra-simulation"
        - "???" → ""
    """
    if not name:
        return ""
    slug = _NON_ALNUM.sub('-', name.lower()).strip('-')
    return slug[:MAX_ID_LENGTH]


def relationship_id(source_id: str, rel_type: str, target_id: str) -> str:
    """Identity of a relationship is its (source, type, target) triple"""
    return f"{source_id}-{rel_type}-{target_id}"
