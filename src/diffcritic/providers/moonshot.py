"""Moonshot adapter (OpenAI-compatible API)."""

from typing import Sequence

from diffcritic.providers.base import LLMAdapter, Message
from diffcritic.providers.openai import OpenAIAdapter
from diffcritic.providers.registry import register_adapter
from diffcritic.tokens import estimate_flat_tokens


class MoonshotAdapter(OpenAIAdapter):
  """Moonshot (Kimi) adapter."""

  DEFAULT_MODEL = "moonshot-v1-32k"
  DEFAULT_BASE_URL = "https://api.moonshot.cn/v1"
  API_KEY_ENV = "MOONSHOT_API_KEY"
  CONTEXT_LIMITS = {
    "moonshot-v1-8k": 8192,
    "moonshot-v1-32k": 32768,
    "moonshot-v1-128k": 131072,
  }
  DEFAULT_CONTEXT_LIMIT = 32768

  @property
  def name(self) -> str:
    return "moonshot"

  def estimate_tokens(self, messages: Sequence[Message]) -> int:
    return estimate_flat_tokens(messages)


def _create_moonshot(base_url: str | None) -> LLMAdapter:
  return MoonshotAdapter(base_url)


register_adapter("moonshot", _create_moonshot)
