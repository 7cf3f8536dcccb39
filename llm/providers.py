"""
Text-completion providers.

Every provider exposes the same call, complete(prompt, max_tokens) -> str,
and raises CompletionError when no usable text comes back. Which provider is
used is decided once, from configuration, by create_provider().
"""

import os
import time
from dataclasses import dataclass
from typing import Optional

import anthropic
import openai
import requests
from langchain_google_genai import ChatGoogleGenerativeAI

from util.logging_util import setup_logger, log_llm_interaction

logger = setup_logger(__name__)

PROVIDER_NAMES = ("ollama", "gemini", "openai", "anthropic", "none")


class CompletionError(Exception):
    """A completion call failed or returned nothing usable."""


class ConfigurationError(Exception):
    """The selected provider cannot be constructed from the configuration."""


class MissingCredentialError(ConfigurationError):
    """The selected provider needs a credential that is not configured."""

    def __init__(self, provider: str, env_var: str):
        super().__init__(f"{provider} provider selected but {env_var} is not set")
        self.provider = provider
        self.env_var = env_var


@dataclass
class LLMConfig:
    """Provider selection plus per-provider endpoint and credential settings."""
    provider: str = "ollama"
    timeout_seconds: float = 30.0
    ollama_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.2:3b"
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    anthropic_api_key: Optional[str] = None
    anthropic_model: str = "claude-3-haiku-20240307"

    @classmethod
    def from_env(cls) -> "LLMConfig":
        return cls(
            provider=os.getenv("NEWS_LLM_PROVIDER", "ollama").strip().lower(),
            timeout_seconds=float(os.getenv("LLM_TIMEOUT_SECONDS", "30")),
            ollama_url=os.getenv("OLLAMA_URL", "http://localhost:11434").rstrip("/"),
            ollama_model=os.getenv("OLLAMA_MODEL", "llama3.2:3b"),
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.0-flash"),
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            anthropic_model=os.getenv("ANTHROPIC_MODEL", "claude-3-haiku-20240307"),
        )


class CompletionProvider:
    """Base class for text-completion backends."""

    name = "base"
    model_name = ""

    def _complete(self, prompt: str, max_tokens: int) -> str:
        raise NotImplementedError

    def complete(self, prompt: str, max_tokens: int) -> str:
        start_time = time.time()
        text = self._complete(prompt, max_tokens)
        if not text or not text.strip():
            raise CompletionError(f"{self.name} returned an empty completion")
        duration_ms = (time.time() - start_time) * 1000
        log_llm_interaction(logger, self.name, prompt, text, self.model_name, duration_ms)
        return text.strip()


class DisabledProvider(CompletionProvider):
    """Used when enrichment is switched off; every call falls back locally."""

    name = "none"

    def _complete(self, prompt: str, max_tokens: int) -> str:
        raise CompletionError("Text completion is disabled")


class OllamaProvider(CompletionProvider):
    """Local model served by an Ollama instance."""

    name = "ollama"

    def __init__(self, base_url: str, model_name: str, timeout: float):
        self.base_url = base_url.rstrip("/")
        self.model_name = model_name
        self.timeout = timeout

    def _complete(self, prompt: str, max_tokens: int) -> str:
        request_content = {
            "model": self.model_name,
            "prompt": prompt,
            "stream": False,
            "options": {"num_predict": max_tokens},
        }
        try:
            resp = requests.post(
                f"{self.base_url}/api/generate",
                json=request_content,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise CompletionError(f"Ollama request failed: {e}") from e

        if resp.status_code >= 400:
            raise CompletionError(f"Ollama returned HTTP {resp.status_code}")
        try:
            return resp.json()["response"]
        except (ValueError, KeyError, TypeError) as e:
            raise CompletionError(f"Unexpected Ollama response: {e}") from e


class GeminiProvider(CompletionProvider):
    """Gemini through LangChain."""

    name = "gemini"

    def __init__(self, api_key: str, model_name: str, timeout: float):
        self.model_name = model_name
        self.timeout = timeout
        self.api_key = api_key

    def _complete(self, prompt: str, max_tokens: int) -> str:
        llm = ChatGoogleGenerativeAI(
            model=self.model_name,
            google_api_key=self.api_key,
            max_output_tokens=max_tokens,
            timeout=self.timeout,
            max_retries=1,
        )
        try:
            response = llm.invoke(prompt)
        except Exception as e:
            raise CompletionError(f"Gemini request failed: {e}") from e

        # Gemini returns content as a list of parts, extract the text
        response_content = response.content
        if isinstance(response_content, list):
            text_parts = [
                part.get('text', '') for part in response_content
                if isinstance(part, dict) and 'text' in part
            ]
            response_content = ''.join(text_parts)
        return response_content


class OpenAIProvider(CompletionProvider):
    """OpenAI chat completions."""

    name = "openai"

    def __init__(self, api_key: str, model_name: str, timeout: float):
        self.model_name = model_name
        self.client = openai.OpenAI(api_key=api_key, timeout=timeout, max_retries=1)

    def _complete(self, prompt: str, max_tokens: int) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.model_name,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except openai.OpenAIError as e:
            raise CompletionError(f"OpenAI request failed: {e}") from e
        if not response.choices:
            raise CompletionError("OpenAI returned no choices")
        return response.choices[0].message.content or ""


class AnthropicProvider(CompletionProvider):
    """Anthropic messages API."""

    name = "anthropic"

    def __init__(self, api_key: str, model_name: str, timeout: float):
        self.model_name = model_name
        self.client = anthropic.Anthropic(api_key=api_key, timeout=timeout, max_retries=1)

    def _complete(self, prompt: str, max_tokens: int) -> str:
        try:
            response = self.client.messages.create(
                model=self.model_name,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.AnthropicError as e:
            raise CompletionError(f"Anthropic request failed: {e}") from e
        text_parts = [block.text for block in response.content if getattr(block, "type", "") == "text"]
        return "".join(text_parts)


def create_provider(config: LLMConfig = None) -> CompletionProvider:
    """
    Build the provider selected by the configuration.

    Raises:
        MissingCredentialError: the selected cloud provider has no API key.
        ConfigurationError: the provider name is unknown.
    """
    if config is None:
        config = LLMConfig.from_env()

    timeout = config.timeout_seconds
    provider = config.provider
    if provider == "ollama":
        return OllamaProvider(config.ollama_url, config.ollama_model, timeout)
    if provider == "gemini":
        if not config.gemini_api_key:
            raise MissingCredentialError("gemini", "GEMINI_API_KEY")
        return GeminiProvider(config.gemini_api_key, config.gemini_model, timeout)
    if provider == "openai":
        if not config.openai_api_key:
            raise MissingCredentialError("openai", "OPENAI_API_KEY")
        return OpenAIProvider(config.openai_api_key, config.openai_model, timeout)
    if provider == "anthropic":
        if not config.anthropic_api_key:
            raise MissingCredentialError("anthropic", "ANTHROPIC_API_KEY")
        return AnthropicProvider(config.anthropic_api_key, config.anthropic_model, timeout)
    if provider == "none":
        return DisabledProvider()
    raise ConfigurationError(
        f"Unknown LLM provider {provider!r}; expected one of {', '.join(PROVIDER_NAMES)}"
    )
