"""Provider auto-detection and availability reporting."""

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from diffcritic.providers.base import GENERIC_API_KEY_ENV

if TYPE_CHECKING:
  from diffcritic.providers.base import LLMAdapter

BASE_URL_ENV = "LLM_BASE_URL"


@dataclass(frozen=True)
class ProviderStatus:
  """Availability of one provider and what decided it.

  ``key_source`` names the variable that supplied the key, if any.
  ``shared_key`` is set when that variable is the generic LLM_API_KEY
  standing in for the provider's own one.
  """

  name: str
  available: bool
  reason: str
  key_source: str | None = None
  shared_key: bool = False


class ProviderDetector:
  """Works out which registered adapters can be used right now.

  Availability is decided by the adapters themselves: key-based ones by
  ``resolve_api_key``, keyless ones (ollama) by ``is_available``.
  Detection only picks a provider whose own key is set, or a reachable
  keyless one; a lone LLM_API_KEY leaves the choice to the caller.
  """

  DETECTION_ORDER = ("anthropic", "openai", "gemini", "moonshot", "custom", "ollama")

  def __init__(
    self,
    adapters: dict[str, Callable[[str | None], "LLMAdapter"]],
    base_url: str | None = None,
  ):
    self._adapters = adapters
    self._base_url = base_url or os.environ.get(BASE_URL_ENV) or None

  def detect(self) -> str | None:
    """Return the first provider usable on its own configuration, or None."""
    for name in self.DETECTION_ORDER:
      status = self._check(name)
      if status is not None and status.available and not status.shared_key:
        return name
    return None

  def get_status(self) -> list[ProviderStatus]:
    """Status for every registered provider, in detection order."""
    statuses = (self._check(name) for name in self.DETECTION_ORDER)
    return [s for s in statuses if s is not None]

  def format_error(self, failed: str) -> str:
    """Explain why ``failed`` can't be used, with the status of the rest."""
    lines = [f"Provider '{failed}' is not available.", "", "Provider status:"]
    for s in self.get_status():
      lines.append(f"  {'[ok]' if s.available else '[--]'} {s.name}: {s.reason}")

    hint = self._hint(failed)
    if hint:
      lines.extend(["", hint])
    return "\n".join(lines)

  def _adapter(self, name: str) -> "LLMAdapter":
    base_url = self._base_url if name == "custom" else None
    return self._adapters[name](base_url)

  def _check(self, name: str) -> ProviderStatus | None:
    if name not in self._adapters:
      return None
    adapter = self._adapter(name)

    if adapter.API_KEY_ENV is None:
      try:
        available = adapter.is_available()
      except Exception:
        available = False
      return ProviderStatus(name, available, "reachable" if available else "not reachable")

    source = _key_source(adapter.API_KEY_ENV)
    if source is None:
      return ProviderStatus(name, False, f"{_key_vars(adapter.API_KEY_ENV)} not set")

    shared = source != adapter.API_KEY_ENV
    if not adapter.is_available(adapter.resolve_api_key()):
      return ProviderStatus(name, False, f"{source} set, {BASE_URL_ENV} not set", source, shared)
    return ProviderStatus(name, True, f"{source} set", source, shared)

  def _hint(self, name: str) -> str | None:
    if name not in self._adapters:
      return None
    key_env = self._adapter(name).API_KEY_ENV
    if key_env is None:
      return None
    if name == "custom":
      return f"Set {GENERIC_API_KEY_ENV} and {BASE_URL_ENV} to use {name}."
    return f"Set {_key_vars(key_env)} to use {name}."


def _key_source(key_env: str) -> str | None:
  """Return the variable that will supply the key, provider variable first."""
  for var in (key_env, GENERIC_API_KEY_ENV):
    if os.environ.get(var):
      return var
  return None


def _key_vars(key_env: str) -> str:
  if key_env == GENERIC_API_KEY_ENV:
    return key_env
  return f"{key_env} (or {GENERIC_API_KEY_ENV})"
