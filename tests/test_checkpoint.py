"""
Tests for checkpoint persistence
"""
from unittest.mock import patch

from substack_kg.knowledge_graph.graph_store import apply_extraction
from substack_kg.pipeline.checkpoint import CheckpointStore
from substack_kg.pipeline.state import ProcessingState
from tests.conftest import make_document


class TestCheckpointStore:
    """Test CheckpointStore functionality"""

    def test_missing_checkpoint_loads_none(self, checkpoint_dir):
        store = CheckpointStore(checkpoint_dir)
        assert store.exists() is False
        assert store.load() is None

    def test_round_trip_rebuilds_models(self, checkpoint_dir, sample_documents, baudrillard_extraction):
        state = ProcessingState.create(sample_documents, author_name="Test Author")
        state.graph = apply_extraction(state.graph, baudrillard_extraction, state.documents[0])
        state.current_document_index = 1
        state.status = "paused"
        state.record_error("Hyperreal Feeds", "timeout")

        store = CheckpointStore(checkpoint_dir)
        assert store.save(state) is True
        assert store.exists()

        loaded = store.load()
        assert loaded.current_document_index == 1
        assert loaded.status == "paused"
        assert [d.title for d in loaded.documents] == [d.title for d in state.documents]
        assert loaded.graph.entities["jean-baudrillard"].occurrences[0].document_title == state.documents[0].title
        assert loaded.graph.concepts["simulacra"].name == "Simulacra"
        assert loaded.errors[0].error == "timeout"
        assert loaded.graph == state.graph

    def test_corrupt_checkpoint_loads_none(self, checkpoint_dir):
        store = CheckpointStore(checkpoint_dir)
        store.path.write_text("{ this is not json")
        assert store.load() is None

    def test_undecodable_checkpoint_loads_none(self, checkpoint_dir):
        """Test bytes that are not valid UTF-8 are treated as a missing checkpoint"""
        store = CheckpointStore(checkpoint_dir)
        store.path.write_bytes(b'\xff\xfe{"status": \x80}')
        assert store.load() is None

    def test_invalid_shape_loads_none(self, checkpoint_dir):
        store = CheckpointStore(checkpoint_dir)
        store.path.write_text('{"status": "flying"}')
        assert store.load() is None

    def test_save_creates_directory(self, tmp_path, sample_documents):
        store = CheckpointStore(tmp_path / "nested" / "dir")
        assert store.save(ProcessingState.create(sample_documents))
        assert store.path.exists()
        assert not store.path.with_suffix(".json.tmp").exists()

    def test_save_failure_is_reported(self, checkpoint_dir, sample_documents):
        store = CheckpointStore(checkpoint_dir)
        with patch("substack_kg.pipeline.checkpoint.os.replace", side_effect=OSError("disk full")):
            assert store.save(ProcessingState.create(sample_documents)) is False
        assert store.load() is None

    def test_delete(self, checkpoint_dir, sample_documents):
        store = CheckpointStore(checkpoint_dir)
        store.save(ProcessingState.create(sample_documents))
        store.delete()
        assert store.exists() is False
        # Deleting twice is harmless
        store.delete()

    def test_keys_are_separate(self, checkpoint_dir, sample_documents):
        CheckpointStore(checkpoint_dir, key="one").save(ProcessingState.create(sample_documents))
        assert CheckpointStore(checkpoint_dir, key="two").load() is None


class TestProcessingState:
    """Test state creation"""

    def test_create_sorts_by_date(self, sample_documents):
        state = ProcessingState.create(sample_documents)
        assert [d.date for d in state.documents] == ["2023-01-10", "2023-02-14", "2023-03-01"]
        assert state.total_documents == 3
        assert state.status == "idle"

    def test_same_date_keeps_input_order(self):
        docs = [make_document("B", "2023-01-01"), make_document("A", "2023-01-01")]
        assert [d.title for d in ProcessingState.create(docs).documents] == ["B", "A"]
