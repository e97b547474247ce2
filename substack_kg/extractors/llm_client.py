"""
Language model client shared by extraction and integration verification.

Wraps either the Anthropic or the OpenAI SDK behind one `complete()` call
that owns retries with exponential backoff, a per-call timeout, and a fixed
delay after every call to stay under provider rate limits.
"""

import logging
import time
from typing import Optional, Tuple

import anthropic
import openai

from ..config.settings import settings

logger = logging.getLogger(__name__)

PROVIDERS = ("anthropic", "openai")


class LLMError(Exception):
    """Base class for model call failures"""


class CredentialError(LLMError):
    """The API key is missing or was rejected. Fatal for a run."""


class ExtractionError(LLMError):
    """A model call still failed after all retry attempts"""


_AUTH_ERRORS = (
    anthropic.AuthenticationError,
    anthropic.PermissionDeniedError,
    openai.AuthenticationError,
    openai.PermissionDeniedError,
)
_RATE_LIMIT_ERRORS = (anthropic.RateLimitError, openai.RateLimitError)


class LLMClient:
    """Single-prompt completion client with retry and rate limiting"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        rate_limit_delay: Optional[float] = None,
    ):
        """Initialize the client

        Args:
            api_key: Provider API key (defaults to the configured key for the provider)
            provider: 'anthropic' or 'openai' (defaults to LLM_PROVIDER)
            model: Model name (defaults to the configured model for the provider)
            max_tokens: Maximum tokens in a response
            temperature: Sampling temperature
            timeout: Seconds before a single call is abandoned
            retry_attempts: Attempts per call before raising ExtractionError
            retry_base_delay: First backoff delay in seconds, doubled per attempt
            rate_limit_delay: Seconds to wait after every call, successful or not
        """
        self.provider = (provider or settings.llm_provider).lower()
        if self.provider not in PROVIDERS:
            raise ValueError(f"Unknown LLM provider '{self.provider}' (expected one of {PROVIDERS})")

        if provider is None or self.provider == settings.llm_provider.lower():
            default_key, default_model = settings.active_api_key, settings.active_model
        elif self.provider == "openai":
            default_key, default_model = settings.openai_api_key, settings.openai_model
        else:
            default_key, default_model = settings.anthropic_api_key, settings.anthropic_model

        self.api_key = api_key or default_key
        if not self.api_key:
            raise CredentialError(f"{self.provider} API key required")

        self.model = model or default_model
        self.max_tokens = max_tokens or settings.llm_max_tokens
        self.temperature = settings.llm_temperature if temperature is None else temperature
        self.timeout = timeout or settings.llm_request_timeout
        self.retry_attempts = max(1, retry_attempts or settings.retry_attempts)
        self.retry_base_delay = settings.retry_base_delay if retry_base_delay is None else retry_base_delay
        self.rate_limit_delay = settings.rate_limit_delay if rate_limit_delay is None else rate_limit_delay

        # Retries are handled here, not inside the SDK
        if self.provider == "anthropic":
            self.client = anthropic.Anthropic(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        else:
            self.client = openai.OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)

    def _send(self, prompt: str, max_tokens: int) -> str:
        """One raw call to the provider, returning the response text"""
        if self.provider == "anthropic":
            response = self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=self.temperature,
                messages=[{"role": "user", "content": prompt}],
            )
            return "".join(block.text for block in response.content if getattr(block, "type", "") == "text")

        response = self.client.chat.completions.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=self.temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        return response.choices[0].message.content or ""

    def complete(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        """Send a prompt and return the response text

        Transient failures are retried with exponential backoff. The
        rate-limit delay is applied once after the call regardless of outcome.

        Raises:
            CredentialError: the provider rejected the API key (not retried)
            ExtractionError: every attempt failed
        """
        try:
            return self._complete_with_retry(prompt, max_tokens or self.max_tokens)
        finally:
            if self.rate_limit_delay > 0:
                time.sleep(self.rate_limit_delay)

    def _complete_with_retry(self, prompt: str, max_tokens: int) -> str:
        last_error: Optional[Exception] = None

        for attempt in range(self.retry_attempts):
            try:
                return self._send(prompt, max_tokens)
            except _AUTH_ERRORS as e:
                raise CredentialError(f"{self.provider} rejected the API key: {e}") from e
            except Exception as e:
                last_error = e
                logger.warning(f"Model call failed on attempt {attempt + 1}/{self.retry_attempts}: {e}")
                if attempt < self.retry_attempts - 1:
                    delay = self.retry_base_delay * (2 ** attempt)
                    logger.debug(f"Retrying in {delay:.1f}s")
                    time.sleep(delay)

        raise ExtractionError(
            f"Model call failed after {self.retry_attempts} attempts: {last_error}"
        ) from last_error

    def validate_api_key(self) -> Tuple[bool, Optional[str]]:
        """Check the key with a minimal request

        Returns:
            Tuple of (valid, error message). A rate-limit response counts as
            valid, since the key was accepted.
        """
        try:
            self._send('Say "ok"', max_tokens=10)
            return True, None
        except _AUTH_ERRORS:
            return False, "Invalid API key. Please check your key and try again."
        except _RATE_LIMIT_ERRORS:
            return True, None
        except Exception as e:
            return False, f"API error: {e}"
