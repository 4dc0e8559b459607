"""Anthropic Claude adapter."""

from typing import Any, Sequence

from diffcritic.providers.base import (
  LLMAdapter,
  LLMResponse,
  Message,
  ProviderError,
  TokenUsage,
)
from diffcritic.providers.registry import register_adapter
from diffcritic.tokens import estimate_flat_tokens


class AnthropicAdapter(LLMAdapter):
  """Anthropic Claude adapter."""

  DEFAULT_MODEL = "claude-opus-4-5-20251101"
  API_KEY_ENV = "ANTHROPIC_API_KEY"
  CONTEXT_LIMITS = {
    "claude-opus-4-5-20251101": 200000,
    "claude-sonnet-4-5-20250929": 200000,
    "claude-3-5-sonnet-20241022": 200000,
    "claude-3-5-haiku-20241022": 200000,
    "claude-3-opus-20240229": 200000,
    "claude-3-haiku-20240307": 200000,
  }
  DEFAULT_CONTEXT_LIMIT = 200000

  def __init__(self, base_url: str | None = None):
    self._base_url = base_url
    self._clients: dict[str | None, Any] = {}

  @property
  def name(self) -> str:
    return "anthropic"

  def estimate_tokens(self, messages: Sequence[Message]) -> int:
    return estimate_flat_tokens(messages)

  def _get_client(self, api_key: str | None) -> Any:
    if api_key not in self._clients:
      try:
        from anthropic import Anthropic
      except ImportError as e:
        raise ImportError(
          "anthropic not installed. Install with: pip install 'diffcritic[anthropic]'"
        ) from e
      self._clients[api_key] = Anthropic(api_key=api_key, base_url=self._base_url)
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
    from anthropic import APIError

    system, conversation = split_system_messages(messages)
    params: dict[str, Any] = {
      "model": model,
      "messages": conversation,
      "temperature": temperature,
      "max_tokens": max_tokens,
    }
    if system:
      params["system"] = system

    try:
      response = client.messages.create(**params)
    except APIError as e:
      status = getattr(e, "status_code", None)
      raise ProviderError(f"anthropic API error: {status} {e.message}") from e

    content = ""
    if response.content and response.content[0].type == "text":
      content = response.content[0].text
    if not content:
      raise ProviderError("No content in anthropic response")

    usage = None
    if response.usage:
      usage = TokenUsage(
        prompt_tokens=response.usage.input_tokens,
        completion_tokens=response.usage.output_tokens,
        total_tokens=response.usage.input_tokens + response.usage.output_tokens,
      )
    return LLMResponse(content=content, usage=usage)


def split_system_messages(
  messages: Sequence[Message],
) -> tuple[str, list[dict[str, str]]]:
  """Separate system text from the conversation.

  Anthropic takes the system prompt as a parameter and only knows the
  user and assistant roles; anything else is sent as user.
  """
  system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
  conversation = [
    {
      "role": m["role"] if m["role"] == "assistant" else "user",
      "content": m["content"],
    }
    for m in messages
    if m["role"] != "system"
  ]
  return system, conversation


def _create_anthropic(base_url: str | None) -> LLMAdapter:
  return AnthropicAdapter(base_url)


register_adapter("anthropic", _create_anthropic)
