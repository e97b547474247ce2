"""
Tests for the command-line driver
"""
import json
from unittest.mock import patch

from substack_kg import build_graph
from substack_kg.extractors.llm_client import CredentialError
from substack_kg.pipeline.checkpoint import CheckpointStore
from substack_kg.pipeline.state import ProcessingState
from tests.conftest import SAMPLE_POSTS, FakeLLMClient


def write_corpus(tmp_path):
    path = tmp_path / "posts.json"
    path.write_text(json.dumps(SAMPLE_POSTS))
    return path


def cli_args(tmp_path, *command):
    return [
        "--checkpoint-dir", str(tmp_path / "checkpoints"),
        "--output-dir", str(tmp_path / "output"),
        *command,
    ]


class TestBuildCommand:
    """Test the build command"""

    def test_build_writes_graph(self, tmp_path):
        corpus = write_corpus(tmp_path)
        client = FakeLLMClient(responses=[
            {"entities": [{"name": "Jean Baudrillard", "type": "person"}]},
            {"entities": [{"name": "Jean Baudrillard", "type": "person"}, {"name": "Grimes"}]},
            {"entities": [{"name": "Grimes"}]},
        ])

        with patch.object(build_graph, "LLMClient", return_value=client), \
                patch.object(build_graph.signal, "signal"):
            exit_code = build_graph.main(cli_args(tmp_path, "build", str(corpus), "--author", "Test Author"))

        assert exit_code == 0
        output = json.loads((tmp_path / "output" / "knowledge_graph.json").read_text())
        assert set(output["entities"]) == {"jean-baudrillard", "grimes"}
        assert output["metadata"]["author_name"] == "Test Author"
        assert output["statistics"]["total_entities"] == 2
        assert not CheckpointStore(tmp_path / "checkpoints").exists()

    def test_build_refuses_existing_run(self, tmp_path):
        corpus = write_corpus(tmp_path)
        CheckpointStore(tmp_path / "checkpoints").save(ProcessingState())

        with patch.object(build_graph, "LLMClient") as mock_client:
            assert build_graph.main(cli_args(tmp_path, "build", str(corpus))) == 1
        mock_client.assert_not_called()

    def test_credential_failure_exits_nonzero(self, tmp_path):
        corpus = write_corpus(tmp_path)
        with patch.object(build_graph, "LLMClient", side_effect=CredentialError("anthropic API key required")):
            assert build_graph.main(cli_args(tmp_path, "build", str(corpus))) == 1


class TestStateCommands:
    """Test status, discard and resume"""

    def test_status_without_run(self, tmp_path, capsys):
        assert build_graph.main(cli_args(tmp_path, "status")) == 0
        assert "No saved run" in capsys.readouterr().out

    def test_status_and_discard(self, tmp_path, capsys, sample_documents):
        state = ProcessingState.create(sample_documents)
        state.current_document_index = 1
        CheckpointStore(tmp_path / "checkpoints").save(state)

        assert build_graph.main(cli_args(tmp_path, "status")) == 0
        assert "1/3 documents" in capsys.readouterr().out

        assert build_graph.main(cli_args(tmp_path, "discard")) == 0
        assert not CheckpointStore(tmp_path / "checkpoints").exists()

    def test_resume_without_run(self, tmp_path):
        assert build_graph.main(cli_args(tmp_path, "resume")) == 1
