"""Resumable processing pipeline"""

from .checkpoint import CheckpointStore
from .processor import ProcessingPipeline
from .state import ProcessingError, ProcessingState, ProgressReport, sort_documents

__all__ = [
    "CheckpointStore",
    "ProcessingPipeline",
    "ProcessingError",
    "ProcessingState",
    "ProgressReport",
    "sort_documents",
]
