"""
Tests for the integration verification call
"""
from substack_kg.extractors.integration_verifier import IntegrationVerifier
from substack_kg.knowledge_graph.graph_store import apply_extraction
from tests.conftest import FakeLLMClient, make_document, make_extraction


class TestIntegrationVerifier:
    """Test IntegrationVerifier functionality"""

    def test_payload_truncated(self, empty_graph):
        extraction = make_extraction(entities=[
            {"name": f"Person {i}", "description": "d" * 200} for i in range(50)
        ])
        graph = apply_extraction(empty_graph, extraction, make_document("Post"))
        verifier = IntegrationVerifier(FakeLLMClient(), payload_chars=1000)

        assert len(verifier.serialize_graph(graph)) == 1000

    def test_prompt_lists_recent_titles(self, empty_graph):
        verifier = IntegrationVerifier(FakeLLMClient())
        prompt = verifier.build_prompt(empty_graph, ["Post A", "Post B"])
        assert "Post A\nPost B" in prompt
        assert '"entities": {}' in prompt

    def test_verify_parses_result(self, empty_graph):
        client = FakeLLMClient(responses=[{
            "merges": [{"keep": "grimes", "merge": "claire-boucher", "reason": "same person"}],
            "updatedSignificance": [{"id": "grimes", "newSignificance": "bogus"}],
        }])
        result = IntegrationVerifier(client).verify(empty_graph, ["Post"])

        assert len(result.merges) == 1
        assert result.updated_significance == []
        assert len(client.prompts) == 1

    def test_verify_garbage_is_empty(self, empty_graph):
        client = FakeLLMClient(responses=["nothing to change"])
        assert IntegrationVerifier(client).verify(empty_graph, []).is_empty
