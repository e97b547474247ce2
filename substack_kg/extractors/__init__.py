"""Model-facing extraction and integration clients"""

from .llm_client import LLMClient, LLMError, CredentialError, ExtractionError
from .document_extractor import DocumentExtractor
from .integration_verifier import IntegrationVerifier
from .schemas import ExtractionResult, IntegrationResult

__all__ = [
    "LLMClient",
    "LLMError",
    "CredentialError",
    "ExtractionError",
    "DocumentExtractor",
    "IntegrationVerifier",
    "ExtractionResult",
    "IntegrationResult",
]
