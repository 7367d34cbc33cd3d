"""LLM providers used as the text-understanding oracle."""

from .base import Completion, LLMAuthError, LLMError, LLMProvider, LLMRateLimitError
from .factory import create_extraction_provider, create_llm_provider
from .parsing import parse_json_payload

__all__ = [
    "Completion",
    "LLMProvider",
    "LLMError",
    "LLMRateLimitError",
    "LLMAuthError",
    "create_extraction_provider",
    "create_llm_provider",
    "parse_json_payload",
]
