"""
LLM clients for the mystery engine.

The engine consumes a single capability, ``await client.generate(prompt)``,
returning free-form text. Clients also expose ``last_token_count`` so
callers can account for the tokens spent on the most recent call.

Provides the Anthropic-backed client used in production and a mock client
with canned responses for tests.
"""

import logging
import os
from typing import Any, Protocol, runtime_checkable

import anthropic
from anthropic import AsyncAnthropic

logger = logging.getLogger("chorus-mystery")


# ---------------------------------------------------------------------------
# Custom Exceptions
# ---------------------------------------------------------------------------


class LLMClientError(Exception):
    """Base exception for LLM client errors."""
    pass


class LLMConfigurationError(LLMClientError):
    """Raised when LLM client is misconfigured."""
    pass


class LLMAPIError(LLMClientError):
    """Raised when the LLM API returns an error."""
    pass


class LLMRateLimitError(LLMClientError):
    """Raised when rate limit is exceeded."""
    pass


@runtime_checkable
class LLMClient(Protocol):
    """Protocol for text-completion backends."""

    last_token_count: int

    async def generate(self, prompt: str, max_tokens: int | None = None) -> str:
        ...


# ---------------------------------------------------------------------------
# Mock LLM Client (for testing)
# ---------------------------------------------------------------------------


class MockLLMClient:
    """Mock LLM client for testing purposes.

    Returns configurable canned responses instead of making real API calls.

    Args:
        responses: Responses returned in order. When exhausted, cycles back
            to the first one. If empty, ``default_response`` is returned.
        default_response: Response used when ``responses`` is empty.
        tokens_per_call: Token count reported for every successful call.
        error: If set, every call raises this exception instead of answering.

    Example:
        >>> mock = MockLLMClient(responses=['{"contradict": false}'])
        >>> await mock.generate("prompt")
        '{"contradict": false}'
    """

    def __init__(
        self,
        responses: list[str] | None = None,
        default_response: str = "Mock LLM response.",
        tokens_per_call: int = 0,
        error: Exception | None = None,
    ) -> None:
        self.responses = responses or []
        self.default_response = default_response
        self.tokens_per_call = tokens_per_call
        self.error = error
        self.call_count = 0
        self.last_token_count = 0
        self.calls: list[dict[str, Any]] = []

    async def generate(self, prompt: str, max_tokens: int | None = None) -> str:
        """Return the next canned response, or raise the configured error."""
        self.calls.append({"prompt": prompt, "max_tokens": max_tokens})
        self.call_count += 1
        self.last_token_count = 0

        if self.error is not None:
            raise self.error

        self.last_token_count = self.tokens_per_call
        if not self.responses:
            return self.default_response

        response_index = (self.call_count - 1) % len(self.responses)
        return self.responses[response_index]

    def reset(self) -> None:
        """Reset call history."""
        self.call_count = 0
        self.last_token_count = 0
        self.calls.clear()


# ---------------------------------------------------------------------------
# Anthropic LLM Client
# ---------------------------------------------------------------------------


class AnthropicLLMClient:
    """Anthropic API client implementing the LLMClient protocol.

    Args:
        api_key: Anthropic API key. If None, reads from ANTHROPIC_API_KEY env var.
        model: Model identifier.
        temperature: Temperature parameter for generation (0.0-2.0).
        default_max_tokens: Default max tokens if not specified in generate().

    Raises:
        LLMConfigurationError: If API key is missing.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-sonnet-4-5-20250929",
        temperature: float = 0.7,
        default_max_tokens: int = 1024,
    ) -> None:
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise LLMConfigurationError(
                "Anthropic API key is required. Provide it via the 'api_key' parameter "
                "or set the ANTHROPIC_API_KEY environment variable."
            )

        self.model = model
        self.temperature = temperature
        self.default_max_tokens = default_max_tokens
        self.last_token_count = 0

        self.client = AsyncAnthropic(api_key=self.api_key)

        logger.info(
            f"Initialized AnthropicLLMClient with model={model}, "
            f"temperature={temperature}, default_max_tokens={default_max_tokens}"
        )

    async def generate(self, prompt: str, max_tokens: int | None = None) -> str:
        """Generate text from a prompt using the Anthropic API.

        Args:
            prompt: The prompt to send to the model.
            max_tokens: Maximum tokens in the response. If None, uses default_max_tokens.

        Returns:
            The generated text.

        Raises:
            LLMAPIError: If the API returns an error.
            LLMRateLimitError: If rate limit is exceeded.
        """
        if max_tokens is None:
            max_tokens = self.default_max_tokens

        self.last_token_count = 0
        try:
            message = await self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=self.temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.RateLimitError as e:
            logger.error(f"Rate limit exceeded: {e}")
            raise LLMRateLimitError(f"Rate limit exceeded: {e}") from e
        except anthropic.APIError as e:
            logger.error(f"Anthropic API error: {e}")
            raise LLMAPIError(f"API error: {e}") from e

        response_text = "".join(
            block.text for block in message.content if hasattr(block, "text")
        )
        self.last_token_count = message.usage.input_tokens + message.usage.output_tokens

        logger.debug(
            f"Generated {len(response_text)} chars with model {self.model} "
            f"(tokens: {message.usage.input_tokens} in, {message.usage.output_tokens} out)"
        )
        return response_text


__all__ = [
    "LLMClient",
    "MockLLMClient",
    "AnthropicLLMClient",
    "LLMClientError",
    "LLMConfigurationError",
    "LLMAPIError",
    "LLMRateLimitError",
]
