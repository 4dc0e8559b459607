"""OpenAI adapter."""

import logging
from typing import Any, Sequence

from diffcritic.providers.base import (
  LLMAdapter,
  LLMResponse,
  Message,
  ProviderError,
  TokenUsage,
)
from diffcritic.providers.registry import register_adapter

logger = logging.getLogger(__name__)

_COMPLETIONS_SUFFIX = "/chat/completions"


class OpenAIAdapter(LLMAdapter):
  """OpenAI chat completions adapter.

  Also the base for OpenAI-compatible endpoints, which only differ in base
  URL, key variable and context table.
  """

  DEFAULT_MODEL = "gpt-4o-mini"
  DEFAULT_BASE_URL: str | None = None
  API_KEY_ENV = "OPENAI_API_KEY"
  CONTEXT_LIMITS = {
    "gpt-4o": 128000,
    "gpt-4o-mini": 128000,
    "gpt-4.1": 1047576,
    "gpt-4.1-mini": 1047576,
    "gpt-4": 8192,
    "gpt-4-32k": 32768,
    "gpt-4-turbo": 128000,
    "gpt-4-turbo-preview": 128000,
    "gpt-3.5-turbo": 16385,
    "gpt-3.5-turbo-16k": 16385,
    "deepseek-chat": 131072,
    "deepseek-coder": 131072,
  }
  DEFAULT_CONTEXT_LIMIT = 16385

  def __init__(self, base_url: str | None = None):
    self._base_url = _normalize_base_url(base_url or self.DEFAULT_BASE_URL)
    self._clients: dict[str | None, Any] = {}

  @property
  def name(self) -> str:
    return "openai"

  @property
  def base_url(self) -> str | None:
    return self._base_url

  def _get_client(self, api_key: str | None) -> Any:
    if api_key not in self._clients:
      try:
        from openai import OpenAI
      except ImportError as e:
        raise ImportError(
          "openai not installed. Install with: pip install 'diffcritic[openai]'"
        ) from e
      self._clients[api_key] = OpenAI(api_key=api_key, base_url=self._base_url)
    return self._clients[api_key]

  def invoke(
    self,
    messages: Sequence[Message],
    *,
    api_key: str | None,
    model: str,
    temperature: float,
    max_tokens: int,
  ) -> LLMResponse:
    client = self._get_client(api_key)
    from openai import APIError

    try:
      response = client.chat.completions.create(
        model=model,
        messages=[dict(m) for m in messages],
        temperature=temperature,
        max_tokens=max_tokens,
      )
    except APIError as e:
      status = getattr(e, "status_code", None)
      raise ProviderError(f"{self.name} API error: {status} {e.message}") from e

    content = response.choices[0].message.content if response.choices else None
    if not content:
      raise ProviderError(f"No content in {self.name} response")

    usage = None
    if response.usage:
      usage = TokenUsage(
        prompt_tokens=response.usage.prompt_tokens,
        completion_tokens=response.usage.completion_tokens,
        total_tokens=response.usage.total_tokens,
      )
    return LLMResponse(content=content, usage=usage)


def _normalize_base_url(base_url: str | None) -> str | None:
  """Drop a trailing /chat/completions; the SDK appends it itself."""
  if not base_url:
    return None
  normalized = base_url.rstrip("/")
  if normalized.endswith(_COMPLETIONS_SUFFIX):
    normalized = normalized.removesuffix(_COMPLETIONS_SUFFIX)
    logger.warning("Base URL should not include %s; using %s", _COMPLETIONS_SUFFIX, normalized)
  return normalized


def _create_openai(base_url: str | None) -> LLMAdapter:
  return OpenAIAdapter(base_url)


register_adapter("openai", _create_openai)
