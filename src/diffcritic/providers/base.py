"""Base adapter protocol for model invocation."""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Mapping, Sequence

from diffcritic.tokens import estimate_message_tokens

Message = Mapping[str, str]

GENERIC_API_KEY_ENV = "LLM_API_KEY"


class ProviderError(Exception):
  """The provider call failed or returned nothing usable."""


@dataclass(frozen=True)
class TokenUsage:
  """Token accounting reported by the provider."""

  prompt_tokens: int | None = None
  completion_tokens: int | None = None
  total_tokens: int | None = None


@dataclass(frozen=True)
class LLMResponse:
  """Text returned by a single model call."""

  content: str
  usage: TokenUsage | None = None


class LLMAdapter(ABC):
  """Abstract base for provider adapters.

  Adapters are stateless apart from optional connection settings; the
  key, model and sampling options travel with each call.
  """

  DEFAULT_MODEL: str = ""
  API_KEY_ENV: str | None = None
  CONTEXT_LIMITS: dict[str, int] = {}
  DEFAULT_CONTEXT_LIMIT: int = 16385

  @property
  @abstractmethod
  def name(self) -> str:
    """Provider name."""
    ...

  @abstractmethod
  def invoke(
    self,
    messages: Sequence[Message],
    *,
    api_key: str | None,
    model: str,
    temperature: float,
    max_tokens: int,
  ) -> LLMResponse:
    """Send the conversation and return the model's reply."""
    ...

  def estimate_tokens(self, messages: Sequence[Message]) -> int:
    """Estimate prompt cost for this provider."""
    return estimate_message_tokens(messages)

  def context_limit(self, model: str) -> int:
    """Maximum context length for a model, falling back to the default."""
    return self.CONTEXT_LIMITS.get(model, self.DEFAULT_CONTEXT_LIMIT)

  def resolve_api_key(self) -> str | None:
    """Read the API key from the provider's variable or LLM_API_KEY."""
    if self.API_KEY_ENV and os.environ.get(self.API_KEY_ENV):
      return os.environ[self.API_KEY_ENV]
    return os.environ.get(GENERIC_API_KEY_ENV) or None

  def is_available(self, api_key: str | None = None) -> bool:
    """Check if the adapter can be called."""
    return bool(api_key or self.resolve_api_key())
