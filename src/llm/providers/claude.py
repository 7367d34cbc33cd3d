"""Claude (Anthropic) LLM provider."""

from ..base import Completion, LLMError, LLMProvider, usage_tokens

DEFAULT_MODEL = "claude-sonnet-4-20250514"


class ClaudeProvider(LLMProvider):
    """Anthropic Claude provider."""

    provider_name = "claude"

    def __init__(self, api_key: str | None = None, model: str | None = None, client=None):
        self.model = model or DEFAULT_MODEL

        if client:
            self.client = client
            return

        try:
            from anthropic import Anthropic
        except ImportError:
            raise LLMError("anthropic package not installed. Run: pip install anthropic")

        self.client = Anthropic(api_key=api_key)

    def _sdk_errors(self):
        try:
            from anthropic import APIError, AuthenticationError, RateLimitError
        except ImportError:
            return None
        return AuthenticationError, RateLimitError, APIError

    def _complete(self, messages, system, max_tokens, temperature) -> Completion:
        # System prompts go in their own argument, not the message list
        system_parts = [system] if system else []
        system_parts += [m["content"] for m in messages if m.get("role") == "system"]

        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [m for m in messages if m.get("role") != "system"],
        }
        if system_parts:
            kwargs["system"] = "\n\n".join(system_parts)
        if temperature is not None:
            kwargs["temperature"] = temperature

        response = self.client.messages.create(**kwargs)
        text = "".join(getattr(block, "text", "") for block in response.content)
        if not text:
            raise LLMError("Claude returned no text content")
        usage = getattr(response, "usage", None)
        return Completion(text, usage_tokens(usage, "input_tokens"), usage_tokens(usage, "output_tokens"))
