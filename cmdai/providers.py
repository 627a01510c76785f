"""Model provider layer for cmdai.

Providers turn a natural language request into raw model output that
the orchestrator then cleans up and validates.  All providers
implement the :class:`BaseProvider` interface:

* ``name`` – a stable identifier used to order providers from
  configuration (``"ollama"``, ``"azure-openai"``).
* ``model_name`` – the model the provider talks to, reported in the
  provenance of generated commands.
* ``is_available()`` – a cheap probe.  It never raises; any error
  simply means the provider is unavailable.
* ``generate_command(tool, query, context)`` – build the prompt and
  return the model's text.  Transport errors, timeouts, error
  statuses and malformed payloads raise :class:`ProviderError`.

Supported providers:

* ``AzureOpenAIProvider`` – calls an Azure OpenAI chat completions
  deployment.  Unavailable unless both an endpoint and an API key are
  configured.
* ``OllamaProvider`` – calls a local Ollama server over its HTTP API.

HTTP is done with ``httpx``; each provider owns a client whose timeout
bounds every probe and generation call.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import AIConfig
from .prompts import build_prompt

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Raised when a provider fails to generate a command."""


class BaseProvider:
    """Abstract base class for all providers."""

    name = "base"

    def __init__(self, model_name: str) -> None:
        self.model_name = model_name

    def is_available(self) -> bool:
        raise NotImplementedError

    def generate_command(self, tool: str, query: str, context: Optional[str] = None) -> str:
        """Return the model's reply for ``query`` about ``tool``.

        Subclasses must implement this method and raise
        :class:`ProviderError` on failure.
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model_name={self.model_name!r})"


class OllamaProvider(BaseProvider):
    """Provider that talks to an Ollama server.

    Ollama (https://ollama.ai/) serves local models over HTTP.  The
    provider is considered available when ``GET /api/tags`` succeeds
    and generates with a non-streaming ``POST /api/generate`` call.
    """

    name = "ollama"

    def __init__(
        self,
        model_name: str,
        endpoint: str = "http://localhost:11434",
        timeout: float = 30,
        client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(model_name)
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self.client = client or httpx.Client(timeout=timeout)

    def is_available(self) -> bool:
        try:
            response = self.client.get(f"{self.endpoint}/api/tags")
        except httpx.HTTPError as exc:
            logger.debug("Ollama probe failed: %s", exc)
            return False
        return response.is_success

    def generate_command(self, tool: str, query: str, context: Optional[str] = None) -> str:
        payload = {
            "model": self.model_name,
            "prompt": build_prompt(tool, query, context),
            "stream": False,
            "options": {
                "temperature": 0.1,
                "top_p": 0.9,
                "stop": ["\n\n", "Human:", "Assistant:"],
            },
        }
        data = _post_json(self.client, f"{self.endpoint}/api/generate", payload, "Ollama", self.timeout)
        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str):
            raise ProviderError("Invalid response format from Ollama")
        return text.strip()


class AzureOpenAIProvider(BaseProvider):
    """Provider for an Azure OpenAI chat completions deployment.

    ``endpoint`` is the full chat completions URL of the deployment,
    including the ``api-version`` query parameter.
    """

    name = "azure-openai"

    def __init__(
        self,
        model_name: str = "model-router",
        endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 30,
        client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(model_name)
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout
        headers = {}
        if api_key:
            headers = {"Authorization": f"Bearer {api_key}", "api-key": api_key}
        self.client = client or httpx.Client(timeout=timeout)
        self.client.headers.update(headers)

    def is_available(self) -> bool:
        if not self.endpoint or not self.api_key:
            return False
        probe = {
            "messages": [{"role": "user", "content": "test"}],
            "max_tokens": 1,
            "temperature": 0.1,
        }
        try:
            response = self.client.post(self.endpoint, json=probe)
        except httpx.HTTPError as exc:
            logger.debug("Azure OpenAI probe failed: %s", exc)
            return False
        # Rate limiting still means the deployment exists and accepts our key.
        return response.is_success or response.status_code == 429

    def generate_command(self, tool: str, query: str, context: Optional[str] = None) -> str:
        if not self.endpoint:
            raise ProviderError("Azure OpenAI endpoint is not configured")
        payload = {
            "messages": [{"role": "user", "content": build_prompt(tool, query, context)}],
            "max_tokens": 256,
            "temperature": 0.1,
            "top_p": 0.9,
            "frequency_penalty": 0,
            "presence_penalty": 0,
        }
        data = _post_json(self.client, self.endpoint, payload, "Azure OpenAI", self.timeout)
        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise ProviderError("Invalid response format from Azure OpenAI")
        if not isinstance(text, str):
            raise ProviderError("Invalid response format from Azure OpenAI")
        return text.strip()


def _post_json(
    client: httpx.Client, url: str, payload: Dict[str, Any], label: str, timeout: float
) -> Any:
    try:
        response = client.post(url, json=payload)
    except httpx.TimeoutException as exc:
        raise ProviderError(f"{label} request timed out after {timeout} seconds") from exc
    except httpx.HTTPError as exc:
        raise ProviderError(f"Failed to call {label}: {exc}") from exc
    if not response.is_success:
        raise ProviderError(f"{label} API returned {response.status_code}: {response.text}")
    try:
        return response.json()
    except ValueError as exc:
        raise ProviderError(f"{label} returned malformed JSON: {exc}") from exc


def get_provider(provider_name: str, config: AIConfig) -> BaseProvider:
    """Factory function to instantiate the named provider.

    :param provider_name: Name of the provider (``ollama``, ``azure``,
      ``azure-openai``).
    :param config: Configuration supplying models, endpoints and the
      request timeout.
    :raises ValueError: If the provider name is unknown.
    """
    name = provider_name.lower().strip()
    if name == "ollama":
        return OllamaProvider(config.model_name, config.ollama_endpoint, config.timeout_seconds)
    if name in ("azure", "azure-openai", "azureopenai"):
        return AzureOpenAIProvider(
            config.azure_openai_model_name,
            config.azure_openai_endpoint,
            config.azure_openai_api_key,
            config.timeout_seconds,
        )
    raise ValueError(f"Unknown provider: {provider_name}")


def build_providers(config: AIConfig) -> List[BaseProvider]:
    """Return every supported provider in registration order."""
    return [get_provider("azure-openai", config), get_provider("ollama", config)]
