"""
Configuration settings for the Substack knowledge graph builder
"""
from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'  # Ignore extra fields in .env
    )

    # LLM provider selection
    llm_provider: str = Field(default="anthropic", description="LLM provider: 'anthropic' or 'openai'")

    # Anthropic Configuration
    anthropic_api_key: Optional[str] = Field(default=None, description="Anthropic API key")
    anthropic_model: str = Field(default="claude-sonnet-4-20250514", description="Anthropic model for extraction")

    # OpenAI Configuration
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    openai_model: str = Field(default="gpt-4o-mini", description="OpenAI model for extraction")

    # Generation
    llm_max_tokens: int = Field(default=8000, description="Max tokens per extraction response")
    llm_temperature: float = Field(default=0.3, description="Sampling temperature for extraction calls")
    llm_request_timeout: float = Field(default=60.0, description="Timeout in seconds for a single model call")

    # Retry / rate limiting
    retry_attempts: int = Field(default=3, description="Attempts per model call before giving up")
    retry_base_delay: float = Field(default=2.0, description="Initial backoff delay in seconds (doubles per attempt)")
    rate_limit_delay: float = Field(default=1.0, description="Delay in seconds after every model call")

    # Pipeline
    integration_interval: int = Field(default=10, description="Run integration verification every N documents")
    checkpoint_interval: int = Field(default=5, description="Persist a checkpoint every N documents")
    max_content_chars: int = Field(default=12000, description="Document characters sent to the extraction call")
    integration_payload_chars: int = Field(default=50000, description="Graph JSON characters sent to integration")

    # Bounded graph summary for extraction context
    context_max_entities: int = Field(default=50, description="Entities listed in the extraction context")
    context_max_concepts: int = Field(default=50, description="Concepts listed in the extraction context")
    context_max_relationships: int = Field(default=30, description="Relationships listed in the extraction context")

    # Storage
    checkpoint_dir: Path = Field(default=Path("data/checkpoints"), description="Directory for pipeline checkpoints")
    output_dir: Path = Field(default=Path("data/output"), description="Directory for exported graphs")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    # Graph metadata
    author_name: Optional[str] = Field(default=None, description="Author of the processed corpus")

    @property
    def active_api_key(self) -> Optional[str]:
        """API key for the configured provider"""
        if self.llm_provider.lower() == "openai":
            return self.openai_api_key
        return self.anthropic_api_key

    @property
    def active_model(self) -> str:
        """Model name for the configured provider"""
        if self.llm_provider.lower() == "openai":
            return self.openai_model
        return self.anthropic_model


# Create singleton instance
settings = Settings()
