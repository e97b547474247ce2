"""
Checkpoint persistence for processing state.

A checkpoint is one JSON file per key under the checkpoint directory. The
entity and concept maps are written as plain JSON objects and rebuilt into
models on load. A missing or unreadable checkpoint loads as None.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from ..config.settings import settings
from .state import ProcessingState

logger = logging.getLogger(__name__)

DEFAULT_KEY = "substack-kg-state"


class CheckpointStore:
    """Saves and restores ProcessingState under a fixed key"""

    def __init__(self, directory: Optional[Union[str, Path]] = None, key: str = DEFAULT_KEY):
        self.directory = Path(directory) if directory else settings.checkpoint_dir
        self.key = key

    @property
    def path(self) -> Path:
        return self.directory / f"{self.key}.json"

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, state: ProcessingState) -> bool:
        """Write the state atomically

        Returns:
            True on success. Failures are logged, never raised.
        """
        tmp_path = self.path.with_suffix(".json.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(state.model_dump(mode="json"), f)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save checkpoint to {self.path}: {e}")
            if tmp_path.exists():
                tmp_path.unlink()
            return False

        logger.info(
            f"💾 Checkpoint saved: {state.current_document_index}/{state.total_documents} documents"
        )
        return True

    def load(self) -> Optional[ProcessingState]:
        """Restore the saved state, or None if absent or corrupt"""
        if not self.path.exists():
            return None

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            state = ProcessingState.model_validate(data)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Failed to load checkpoint {self.path}: {e}, treating as absent")
            return None

        logger.info(
            f"📥 Loaded checkpoint: {state.current_document_index}/{state.total_documents} documents, "
            f"{len(state.graph.entities)} entities, {len(state.graph.concepts)} concepts"
        )
        return state

    def delete(self) -> None:
        if self.path.exists():
            self.path.unlink()
            logger.info("🗑️  Checkpoint removed")
