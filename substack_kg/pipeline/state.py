"""
Processing state for a resumable graph-building run.

Everything needed to resume lives in ProcessingState: the ordered
documents, the graph so far, the cursor and the recorded errors. It is
passed explicitly and serialized whole into a checkpoint.
"""

import time
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from ..knowledge_graph.graph_store import create_empty_graph
from ..knowledge_graph.models import Document, KnowledgeGraph

Status = Literal["idle", "processing", "paused", "complete", "error"]
ErrorStage = Literal["extraction", "integration", "setup"]


def sort_documents(documents: List[Document]) -> List[Document]:
    """Oldest first. Stable, so same-date documents keep their input order."""
    return sorted(documents, key=lambda d: d.date)


class ProcessingError(BaseModel):
    """A failure recorded without stopping the run"""
    document_title: str
    error: str
    stage: ErrorStage = "extraction"
    occurred_at: str = Field(default_factory=lambda: datetime.now().isoformat())


class ProcessingState(BaseModel):
    status: Status = "idle"
    current_document_index: int = 0
    total_documents: int = 0
    current_document_title: str = ""
    documents: List[Document] = []
    graph: KnowledgeGraph = Field(default_factory=KnowledgeGraph)
    errors: List[ProcessingError] = []
    recent_document_titles: List[str] = []
    start_time: float = Field(default_factory=time.time)
    paused_at: Optional[float] = None

    @classmethod
    def create(cls, documents: List[Document], author_name: Optional[str] = None) -> "ProcessingState":
        """Fresh state over date-sorted documents and an empty graph"""
        ordered = sort_documents(documents)
        return cls(
            documents=ordered,
            total_documents=len(ordered),
            graph=create_empty_graph(author_name),
        )

    @property
    def remaining(self) -> int:
        return max(0, self.total_documents - self.current_document_index)

    @property
    def is_finished(self) -> bool:
        return self.current_document_index >= self.total_documents

    def record_error(self, document_title: str, error: str, stage: ErrorStage = "extraction") -> None:
        self.errors.append(ProcessingError(document_title=document_title, error=error, stage=stage))


class ProgressReport(BaseModel):
    """Snapshot of a run for display"""
    status: Status
    processed: int
    total: int
    percent: float
    current_document_title: str
    entities: int
    concepts: int
    relationships: int
    errors: int
    elapsed: str
    remaining: Optional[str] = None
