"""Tests for provider selection and the Ollama backend."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from llm.llm_util import get_llm_response, render_prompt
from llm.providers import (
    AnthropicProvider,
    CompletionError,
    ConfigurationError,
    DisabledProvider,
    LLMConfig,
    MissingCredentialError,
    OllamaProvider,
    OpenAIProvider,
    create_provider,
)


class TestLLMConfig:

    def test_defaults(self, monkeypatch):
        for var in ["NEWS_LLM_PROVIDER", "LLM_TIMEOUT_SECONDS", "OLLAMA_URL", "OPENAI_API_KEY"]:
            monkeypatch.delenv(var, raising=False)

        config = LLMConfig.from_env()

        assert config.provider == "ollama"
        assert config.timeout_seconds == 30.0
        assert config.ollama_url == "http://localhost:11434"
        assert config.openai_api_key is None

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("NEWS_LLM_PROVIDER", " OpenAI ")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("LLM_TIMEOUT_SECONDS", "5")
        monkeypatch.setenv("OLLAMA_URL", "http://gpu-box:11434/")

        config = LLMConfig.from_env()

        assert config.provider == "openai"
        assert config.openai_api_key == "sk-test"
        assert config.timeout_seconds == 5.0
        assert config.ollama_url == "http://gpu-box:11434"


class TestCreateProvider:
    """Provider construction is where configuration errors surface."""

    def test_ollama_needs_no_credential(self):
        provider = create_provider(LLMConfig(provider="ollama"))

        assert isinstance(provider, OllamaProvider)

    def test_disabled(self):
        assert isinstance(create_provider(LLMConfig(provider="none")), DisabledProvider)

    @pytest.mark.parametrize("name, env_var", [
        ("gemini", "GEMINI_API_KEY"),
        ("openai", "OPENAI_API_KEY"),
        ("anthropic", "ANTHROPIC_API_KEY"),
    ])
    def test_missing_credential(self, name, env_var):
        with pytest.raises(MissingCredentialError) as exc_info:
            create_provider(LLMConfig(provider=name))

        assert exc_info.value.env_var == env_var
        assert isinstance(exc_info.value, ConfigurationError)

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError, match="Unknown LLM provider"):
            create_provider(LLMConfig(provider="mystery"))

    def test_openai_with_key(self):
        provider = create_provider(LLMConfig(provider="openai", openai_api_key="sk-test"))

        assert isinstance(provider, OpenAIProvider)

    def test_anthropic_with_key(self):
        provider = create_provider(LLMConfig(provider="anthropic", anthropic_api_key="key"))

        assert isinstance(provider, AnthropicProvider)


class TestOllamaProvider:
    """Tests for the Ollama backend with a mocked HTTP layer."""

    @patch("llm.providers.requests.post")
    def test_complete(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200)
        mock_post.return_value.json.return_value = {"response": "  Hello there.  "}
        provider = OllamaProvider("http://localhost:11434/", "llama3.2:3b", timeout=7)

        assert provider.complete("Say hi", 20) == "Hello there."

        url = mock_post.call_args.args[0]
        payload = mock_post.call_args.kwargs["json"]
        assert url == "http://localhost:11434/api/generate"
        assert payload["stream"] is False
        assert payload["options"]["num_predict"] == 20
        assert mock_post.call_args.kwargs["timeout"] == 7

    @patch("llm.providers.requests.post")
    def test_timeout_becomes_completion_error(self, mock_post):
        mock_post.side_effect = requests.Timeout("slow")
        provider = OllamaProvider("http://localhost:11434", "m", timeout=1)

        with pytest.raises(CompletionError):
            provider.complete("prompt", 10)

    @patch("llm.providers.requests.post")
    def test_http_error(self, mock_post):
        mock_post.return_value = MagicMock(status_code=500)
        provider = OllamaProvider("http://localhost:11434", "m", timeout=1)

        with pytest.raises(CompletionError, match="500"):
            provider.complete("prompt", 10)

    @patch("llm.providers.requests.post")
    def test_empty_response(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200)
        mock_post.return_value.json.return_value = {"response": "   "}
        provider = OllamaProvider("http://localhost:11434", "m", timeout=1)

        with pytest.raises(CompletionError, match="empty"):
            provider.complete("prompt", 10)


class TestDisabledProvider:

    def test_always_fails(self):
        with pytest.raises(CompletionError):
            DisabledProvider().complete("prompt", 10)


class TestPromptRendering:

    def test_render_prompt(self, tmp_path: Path):
        template = tmp_path / "t.jinja2"
        template.write_text("Title: {{ title }} | {{ tags | join(', ') }}")

        assert render_prompt(template, {"title": "T", "tags": ["a", "b"]}) == "Title: T | a, b"

    def test_get_llm_response(self, tmp_path: Path):
        template = tmp_path / "t.jinja2"
        template.write_text("Summarize {{ title }}")
        provider = MagicMock()
        provider.complete.return_value = "ok"

        assert get_llm_response(provider, template, {"title": "X"}, 50) == "ok"
        provider.complete.assert_called_once_with("Summarize X", 50)
