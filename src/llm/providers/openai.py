"""OpenAI LLM provider."""

from ..base import Completion, LLMError, LLMProvider, usage_tokens

DEFAULT_MODEL = "gpt-4o"


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions provider."""

    provider_name = "openai"

    def __init__(self, api_key: str | None = None, model: str | None = None, client=None):
        self.model = model or DEFAULT_MODEL

        if client:
            self.client = client
            return

        try:
            from openai import OpenAI
        except ImportError:
            raise LLMError("openai package not installed. Run: pip install openai")

        self.client = OpenAI(api_key=api_key)

    def _sdk_errors(self):
        try:
            from openai import APIError, AuthenticationError, RateLimitError
        except ImportError:
            return None
        return AuthenticationError, RateLimitError, APIError

    def _complete(self, messages, system, max_tokens, temperature) -> Completion:
        full_messages = [{"role": "system", "content": system}] if system else []
        full_messages.extend(messages)

        kwargs = {"model": self.model, "max_tokens": max_tokens, "messages": full_messages}
        if temperature is not None:
            kwargs["temperature"] = temperature

        response = self.client.chat.completions.create(**kwargs)
        content = response.choices[0].message.content
        if content is None:
            raise LLMError("OpenAI returned an empty message")
        usage = getattr(response, "usage", None)
        return Completion(content, usage_tokens(usage, "prompt_tokens"), usage_tokens(usage, "completion_tokens"))
