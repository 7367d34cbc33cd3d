"""Base LLM provider abstraction."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

import structlog

from observability import metrics

logger = structlog.get_logger()


class LLMError(Exception):
    """Base LLM error."""


class LLMRateLimitError(LLMError):
    """Rate limit hit."""


class LLMAuthError(LLMError):
    """Authentication failure."""


@dataclass
class Completion:
    """Raw provider output plus token usage (0 when the SDK reports none)."""

    text: str
    input_tokens: int = 0
    output_tokens: int = 0


def usage_tokens(usage, name: str) -> int:
    value = getattr(usage, name, 0) if usage is not None else 0
    return value if isinstance(value, int) else 0


class LLMProvider(ABC):
    """Abstract LLM provider interface.

    Subclasses implement ``_complete`` and ``_sdk_errors``; ``generate`` adds
    error translation and per-call usage accounting on top.
    """

    provider_name: str = "base"
    model: str = ""

    def generate(
        self,
        messages: list[dict],
        system: str | None = None,
        max_tokens: int = 2000,
        temperature: float | None = None,
    ) -> str:
        """Generate a response from messages.

        Args:
            messages: List of {"role": ..., "content": ...} dicts
            system: Optional system prompt
            max_tokens: Max response tokens
            temperature: Sampling temperature (None = provider default)

        Returns:
            Generated text
        """
        try:
            with metrics.timer(f"llm.{self.provider_name}"):
                completion = self._complete(messages, system, max_tokens, temperature)
        except LLMError:
            metrics.counter("llm.errors")
            raise
        except Exception as e:
            metrics.counter("llm.errors")
            raise self._translate_error(e) from e

        metrics.counter("llm.calls")
        metrics.counter("llm.input_tokens", completion.input_tokens)
        metrics.counter("llm.output_tokens", completion.output_tokens)
        logger.debug(
            "llm.generate",
            provider=self.provider_name,
            model=self.model,
            input_tokens=completion.input_tokens,
            output_tokens=completion.output_tokens,
        )
        return completion.text

    @abstractmethod
    def _complete(
        self,
        messages: list[dict],
        system: str | None,
        max_tokens: int,
        temperature: float | None,
    ) -> Completion: ...

    def _sdk_errors(self) -> tuple[type, type, type] | None:
        """(auth, rate limit, api) exception classes of the SDK, if importable."""
        return None

    def _translate_error(self, e: Exception) -> LLMError:
        label = self.provider_name.capitalize() if self.provider_name != "openai" else "OpenAI"
        errors = self._sdk_errors()
        if errors:
            auth, rate, api = errors
            if isinstance(e, auth):
                return LLMAuthError(f"{label} auth failed: {e}")
            if isinstance(e, rate):
                return LLMRateLimitError(f"{label} rate limit: {e}")
            if isinstance(e, api):
                return LLMError(f"{label} API error: {e}")
        return LLMError(f"{label} error: {e}")
