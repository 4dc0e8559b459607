"""Model adapters for diff review."""

from diffcritic.providers.base import LLMAdapter, LLMResponse, ProviderError, TokenUsage
from diffcritic.providers.registry import (
  AdapterRegistry,
  ProviderNotFoundError,
  ProviderUnavailableError,
  detect_provider,
  get_adapter,
  list_adapters,
  require_available,
)

__all__ = [
  "AdapterRegistry",
  "LLMAdapter",
  "LLMResponse",
  "ProviderError",
  "ProviderNotFoundError",
  "ProviderUnavailableError",
  "TokenUsage",
  "detect_provider",
  "get_adapter",
  "list_adapters",
  "require_available",
]
