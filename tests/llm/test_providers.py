"""Tests for LLM provider adapters."""

from unittest.mock import MagicMock

import pytest

from llm import LLMAuthError, LLMError, LLMRateLimitError
from llm.providers.claude import ClaudeProvider
from llm.providers.openai import OpenAIProvider
from observability import metrics


def _claude_client(text="Hello from Claude"):
    client = MagicMock()
    client.messages.create.return_value = MagicMock(content=[MagicMock(text=text)])
    return client


def _openai_client(content="Hello from GPT"):
    client = MagicMock()
    client.chat.completions.create.return_value = MagicMock(
        choices=[MagicMock(message=MagicMock(content=content))]
    )
    return client


class TestClaudeProvider:
    def test_generate(self):
        client = _claude_client()
        provider = ClaudeProvider(client=client)
        result = provider.generate(
            messages=[{"role": "user", "content": "hi"}],
            system="Be helpful",
            max_tokens=100,
            temperature=0.1,
        )

        assert result == "Hello from Claude"
        client.messages.create.assert_called_once_with(
            model="claude-sonnet-4-20250514",
            max_tokens=100,
            messages=[{"role": "user", "content": "hi"}],
            system="Be helpful",
            temperature=0.1,
        )

    def test_generate_no_system_no_temperature(self):
        client = _claude_client()
        ClaudeProvider(client=client).generate(messages=[{"role": "user", "content": "hi"}])
        kwargs = client.messages.create.call_args.kwargs
        assert "system" not in kwargs
        assert "temperature" not in kwargs

    def test_system_messages_lifted(self):
        client = _claude_client()
        ClaudeProvider(client=client).generate(
            messages=[{"role": "system", "content": "extra"}, {"role": "user", "content": "hi"}],
            system="base",
        )
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["system"] == "base\n\nextra"
        assert kwargs["messages"] == [{"role": "user", "content": "hi"}]

    def test_auth_error(self):
        from anthropic import AuthenticationError

        client = MagicMock()
        client.messages.create.side_effect = AuthenticationError(
            message="bad key", response=MagicMock(status_code=401), body={}
        )
        with pytest.raises(LLMAuthError):
            ClaudeProvider(client=client).generate(messages=[{"role": "user", "content": "hi"}])

    def test_rate_limit_error(self):
        from anthropic import RateLimitError

        client = MagicMock()
        client.messages.create.side_effect = RateLimitError(
            message="rate limited", response=MagicMock(status_code=429), body={}
        )
        with pytest.raises(LLMRateLimitError):
            ClaudeProvider(client=client).generate(messages=[{"role": "user", "content": "hi"}])

    def test_unexpected_error_wrapped(self):
        client = MagicMock()
        client.messages.create.side_effect = RuntimeError("socket closed")
        with pytest.raises(LLMError, match="socket closed"):
            ClaudeProvider(client=client).generate(messages=[{"role": "user", "content": "hi"}])


class TestOpenAIProvider:
    def test_generate(self):
        client = _openai_client()
        result = OpenAIProvider(client=client).generate(
            messages=[{"role": "user", "content": "hi"}],
            system="Be helpful",
            temperature=0.2,
        )

        assert result == "Hello from GPT"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["messages"][0] == {"role": "system", "content": "Be helpful"}
        assert kwargs["messages"][1] == {"role": "user", "content": "hi"}
        assert kwargs["temperature"] == 0.2

    def test_generate_no_system(self):
        client = _openai_client()
        OpenAIProvider(client=client).generate(messages=[{"role": "user", "content": "hi"}])
        assert len(client.chat.completions.create.call_args.kwargs["messages"]) == 1

    def test_empty_content(self):
        with pytest.raises(LLMError, match="empty"):
            OpenAIProvider(client=_openai_client(content=None)).generate(
                messages=[{"role": "user", "content": "hi"}]
            )

    def test_error_wrapped(self):
        client = MagicMock()
        client.chat.completions.create.side_effect = RuntimeError("boom")
        with pytest.raises(LLMError, match="boom"):
            OpenAIProvider(client=client).generate(messages=[{"role": "user", "content": "hi"}])


class TestUsageAccounting:
    def test_claude_tokens_counted(self):
        client = _claude_client()
        client.messages.create.return_value.usage = MagicMock(input_tokens=120, output_tokens=30)
        ClaudeProvider(client=client).generate(messages=[{"role": "user", "content": "hi"}])

        assert metrics.get("llm.calls") == 1
        assert metrics.get("llm.input_tokens") == 120
        assert metrics.get("llm.output_tokens") == 30
        assert len(metrics.durations("llm.claude")) == 1

    def test_openai_tokens_counted(self):
        client = _openai_client()
        client.chat.completions.create.return_value.usage = MagicMock(prompt_tokens=50, completion_tokens=5)
        OpenAIProvider(client=client).generate(messages=[{"role": "user", "content": "hi"}])

        assert metrics.get("llm.input_tokens") == 50
        assert metrics.get("llm.output_tokens") == 5

    def test_missing_usage_counts_zero(self):
        ClaudeProvider(client=_claude_client()).generate(messages=[{"role": "user", "content": "hi"}])
        assert metrics.get("llm.calls") == 1
        assert metrics.get("llm.input_tokens") == 0

    def test_errors_counted(self):
        client = MagicMock()
        client.chat.completions.create.side_effect = RuntimeError("boom")
        with pytest.raises(LLMError):
            OpenAIProvider(client=client).generate(messages=[{"role": "user", "content": "hi"}])
        assert metrics.get("llm.errors") == 1
        assert metrics.get("llm.calls") == 0

    def test_claude_empty_content(self):
        client = _claude_client(text="")
        with pytest.raises(LLMError, match="no text"):
            ClaudeProvider(client=client).generate(messages=[{"role": "user", "content": "hi"}])
