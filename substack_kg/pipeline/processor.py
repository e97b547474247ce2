"""
Processing pipeline that drives extraction, integration and checkpointing.

The pipeline is a synchronous state machine over an explicit
ProcessingState:

    idle -> processing <-> paused -> complete
    processing -> error   (credential or setup failure only)

Documents are processed strictly in order. A failed document is recorded
and skipped; a failed integration round is recorded and the graph is left
as it was. pause() and stop() are cooperative and take effect between
documents.
"""

import logging
import time
from typing import Callable, List, Optional

from ..config.settings import settings
from ..extractors.document_extractor import DocumentExtractor
from ..extractors.integration_verifier import IntegrationVerifier
from ..extractors.llm_client import CredentialError
from ..knowledge_graph.consolidation import apply_integration
from ..knowledge_graph.graph_store import apply_extraction
from ..knowledge_graph.models import Document
from ..utils.timing import estimate_remaining_time, format_duration
from .checkpoint import CheckpointStore
from .state import ProcessingState, ProgressReport

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressReport], None]


class ProcessingPipeline:
    """Processes an ordered corpus into one cumulative knowledge graph"""

    def __init__(
        self,
        extractor: DocumentExtractor,
        verifier: IntegrationVerifier,
        checkpoint_store: Optional[CheckpointStore] = None,
        integration_interval: Optional[int] = None,
        checkpoint_interval: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None,
        validate_credentials: bool = True,
    ):
        """Initialize the pipeline

        Args:
            extractor: Per-document extraction client
            verifier: Periodic integration client
            checkpoint_store: Where state is persisted (defaults to CHECKPOINT_DIR)
            integration_interval: Run integration every N documents
            checkpoint_interval: Save a checkpoint every N documents
            progress_callback: Called with a ProgressReport after each document
            validate_credentials: Check the API key before processing starts
        """
        self.extractor = extractor
        self.verifier = verifier
        self.checkpoint_store = checkpoint_store or CheckpointStore()
        self.integration_interval = max(1, integration_interval or settings.integration_interval)
        self.checkpoint_interval = max(1, checkpoint_interval or settings.checkpoint_interval)
        self.progress_callback = progress_callback
        self.validate_credentials = validate_credentials

        self.state: Optional[ProcessingState] = None
        self.export_ready = False
        self._pause_requested = False
        self._stop_requested = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, documents: List[Document], author_name: Optional[str] = None) -> ProcessingState:
        """Begin a fresh run over the documents and process until done, paused or stopped

        Raises:
            CredentialError: the API key was rejected; state is left in 'error'
        """
        self._pause_requested = False
        self._stop_requested = False
        self.state = ProcessingState.create(documents, author_name=author_name or settings.author_name)
        logger.info(f"Starting run over {self.state.total_documents} documents")
        self._check_credentials()
        return self.run()

    def resume(self) -> Optional[ProcessingState]:
        """Continue from the saved checkpoint

        Returns:
            The final state, or None if there is no usable checkpoint

        Raises:
            CredentialError: the API key was rejected; state is left in 'error'
        """
        state = self.checkpoint_store.load()
        if state is None:
            logger.warning("No checkpoint to resume from")
            return None

        self._pause_requested = False
        self._stop_requested = False
        self.state = state
        logger.info(
            f"Resuming at document {state.current_document_index + 1}/{state.total_documents}"
        )
        self._check_credentials()
        return self.run()

    def run(self) -> ProcessingState:
        """Process documents until the corpus is finished, or a pause or stop is requested"""
        if self.state is None:
            raise ValueError("No processing state; call start() or resume() first")

        state = self.state
        state.status = "processing"
        state.paused_at = None
        self.export_ready = False

        while not state.is_finished:
            if self._stop_requested:
                self._stop_requested = False
                state.status = "paused"
                self.checkpoint_store.save(state)
                self.export_ready = True
                logger.info("Processing stopped; progress saved and graph ready for export")
                return state

            if self._pause_requested:
                self._pause_requested = False
                state.paused_at = time.time()
                state.status = "paused"
                self.checkpoint_store.save(state)
                logger.info("Processing paused; progress saved")
                return state

            self.process_next()

        state.status = "complete"
        state.current_document_title = ""
        self.checkpoint_store.delete()
        self.export_ready = True
        logger.info(
            f"✅ Processing complete: {len(state.graph.entities)} entities, "
            f"{len(state.graph.concepts)} concepts, {len(state.graph.relationships)} relationships, "
            f"{len(state.errors)} errors"
        )
        return state

    def pause(self) -> None:
        """Request a pause before the next document"""
        self._pause_requested = True

    def stop(self) -> None:
        """Request a stop before the next document; the partial graph becomes exportable"""
        self._stop_requested = True

    # ------------------------------------------------------------------
    # Per-document step
    # ------------------------------------------------------------------

    def process_next(self) -> bool:
        """Extract and apply the document at the cursor, then advance

        Returns:
            False if there was nothing left to process

        Raises:
            CredentialError: the API key was rejected mid-run
        """
        state = self.state
        if state is None or state.is_finished:
            return False

        index = state.current_document_index
        document = state.documents[index]
        state.current_document_title = document.title
        logger.info(f"[{index + 1}/{state.total_documents}] Processing '{document.title}'")

        try:
            extraction = self.extractor.extract(document, state.graph)
            state.graph = apply_extraction(state.graph, extraction, document)
            state.recent_document_titles.append(document.title)
        except CredentialError as e:
            self._fail(str(e), document.title)
            raise
        except Exception as e:
            logger.error(f"Error processing '{document.title}': {e}")
            state.record_error(document.title, str(e), stage="extraction")

        if self._integration_due(index):
            self._run_integration()

        state.current_document_index = index + 1

        if state.current_document_index % self.checkpoint_interval == 0:
            self.checkpoint_store.save(state)

        if self.progress_callback:
            self.progress_callback(self.progress())
        return True

    def _integration_due(self, index: int) -> bool:
        n = self.integration_interval
        return (index + 1) % n == 0 and len(self.state.recent_document_titles) >= n

    def _run_integration(self) -> None:
        state = self.state
        recent = state.recent_document_titles[-self.integration_interval:]
        try:
            result = self.verifier.verify(state.graph, recent)
            state.graph = apply_integration(state.graph, result)
        except CredentialError as e:
            self._fail(str(e), state.current_document_title)
            raise
        except Exception as e:
            logger.error(f"Integration verification failed: {e}")
            state.record_error(state.current_document_title, str(e), stage="integration")
        finally:
            state.recent_document_titles = []

    # ------------------------------------------------------------------
    # Credentials and errors
    # ------------------------------------------------------------------

    def _check_credentials(self) -> None:
        if not self.validate_credentials:
            return
        valid, error = self.extractor.client.validate_api_key()
        if not valid:
            self._fail(error or "Invalid API key", "")
            raise CredentialError(error or "Invalid API key")

    def _fail(self, message: str, document_title: str) -> None:
        """Move to 'error' and keep the progress so far"""
        state = self.state
        logger.error(f"Credential failure, processing halted: {message}")
        state.status = "error"
        state.record_error(document_title, message, stage="setup")
        if state.current_document_index > 0:
            self.checkpoint_store.save(state)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def progress(self) -> ProgressReport:
        state = self.state
        if state is None:
            raise ValueError("No processing state")

        processed = state.current_document_index
        total = state.total_documents
        elapsed = time.time() - state.start_time
        return ProgressReport(
            status=state.status,
            processed=processed,
            total=total,
            percent=round(processed / total * 100, 1) if total else 100.0,
            current_document_title=state.current_document_title,
            entities=len(state.graph.entities),
            concepts=len(state.graph.concepts),
            relationships=len(state.graph.relationships),
            errors=len(state.errors),
            elapsed=format_duration(elapsed),
            remaining=estimate_remaining_time(elapsed, processed, total),
        )
