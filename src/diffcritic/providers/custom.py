"""Custom OpenAI-compatible endpoint adapter (DeepSeek, LiteLLM, vLLM...)."""

from typing import Sequence

from diffcritic.providers.base import LLMAdapter, LLMResponse, Message, ProviderError
from diffcritic.providers.openai import OpenAIAdapter
from diffcritic.providers.registry import register_adapter


class CustomAdapter(OpenAIAdapter):
  """Adapter for any OpenAI-compatible base URL."""

  DEFAULT_MODEL = "deepseek-chat"
  API_KEY_ENV = "LLM_API_KEY"
  CONTEXT_LIMITS = {
    "deepseek-chat": 131072,
    "deepseek-coder": 131072,
  }
  DEFAULT_CONTEXT_LIMIT = 131072

  @property
  def name(self) -> str:
    return "custom"

  def is_available(self, api_key: str | None = None) -> bool:
    return bool(self.base_url) and super().is_available(api_key)

  def invoke(
    self,
    messages: Sequence[Message],
    *,
    api_key: str | None,
    model: str,
    temperature: float,
    max_tokens: int,
  ) -> LLMResponse:
    if not self.base_url:
      raise ProviderError("LLM_BASE_URL (or base_url in config) is required for the custom provider")
    return super().invoke(
      messages,
      api_key=api_key,
      model=model,
      temperature=temperature,
      max_tokens=max_tokens,
    )


def _create_custom(base_url: str | None) -> LLMAdapter:
  return CustomAdapter(base_url)


register_adapter("custom", _create_custom)
