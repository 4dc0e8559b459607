"""Adapter discovery and registration."""

from typing import Callable

from diffcritic.providers.base import LLMAdapter
from diffcritic.providers.detection import ProviderDetector


class ProviderNotFoundError(Exception):
  """Requested provider not found."""


class ProviderUnavailableError(Exception):
  """Provider found but not available (missing API key, etc)."""


AdapterFactory = Callable[[str | None], LLMAdapter]

_adapters: dict[str, AdapterFactory] = {}


def register_adapter(name: str, factory: AdapterFactory) -> None:
  """Register an adapter factory taking an optional base URL."""
  _adapters[name] = factory


def get_adapter(name: str, base_url: str | None = None) -> LLMAdapter:
  """Get an adapter by name."""
  if name not in _adapters:
    available = ", ".join(_adapters.keys()) or "none"
    raise ProviderNotFoundError(
      f"Provider '{name}' not found. Available: {available}"
    )
  return _adapters[name](base_url)


def require_available(adapter: LLMAdapter) -> str | None:
  """Return the adapter's API key, or raise with a provider status report."""
  api_key = adapter.resolve_api_key()
  if not adapter.is_available(api_key):
    detector = ProviderDetector(_adapters, getattr(adapter, "base_url", None))
    raise ProviderUnavailableError(detector.format_error(adapter.name))
  return api_key


def detect_provider(base_url: str | None = None) -> str | None:
  """Pick the first provider that looks usable."""
  return ProviderDetector(_adapters, base_url).detect()


def list_adapters() -> list[str]:
  """List registered provider names."""
  return list(_adapters.keys())


class AdapterRegistry:
  """Registry for lazy adapter loading."""

  @staticmethod
  def load_all() -> None:
    """Load all adapter modules to trigger registration."""
    from diffcritic.providers import (  # noqa: F401
      anthropic,
      custom,
      gemini,
      moonshot,
      ollama,
      openai,
    )
