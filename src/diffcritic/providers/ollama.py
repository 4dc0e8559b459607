"""Ollama local LLM adapter."""

import os
from typing import Sequence

import httpx

from diffcritic.providers.base import LLMAdapter, LLMResponse, Message, ProviderError, TokenUsage
from diffcritic.providers.registry import register_adapter


class OllamaAdapter(LLMAdapter):
  """Ollama local LLM adapter."""

  DEFAULT_MODEL = "codellama"
  DEFAULT_HOST = "http://localhost:11434"
  DEFAULT_HEALTH_TIMEOUT = 5.0
  REQUEST_TIMEOUT = 300.0
  CONTEXT_LIMITS = {
    "codellama": 16384,
    "llama3.1": 131072,
    "qwen2.5-coder": 32768,
    "deepseek-coder-v2": 163840,
  }
  DEFAULT_CONTEXT_LIMIT = 8192

  def __init__(self, base_url: str | None = None):
    self._host = (base_url or os.environ.get("OLLAMA_HOST", self.DEFAULT_HOST)).rstrip("/")
    self._health_timeout = float(
      os.environ.get("OLLAMA_HEALTH_TIMEOUT", self.DEFAULT_HEALTH_TIMEOUT)
    )

  @property
  def name(self) -> str:
    return "ollama"

  def resolve_api_key(self) -> str | None:
    return None

  def is_available(self, api_key: str | None = None) -> bool:
    try:
      response = httpx.get(f"{self._host}/api/tags", timeout=self._health_timeout)
      return response.status_code == 200
    except httpx.RequestError:
      return False

  def invoke(
    self,
    messages: Sequence[Message],
    *,
    api_key: str | None,
    model: str,
    temperature: float,
    max_tokens: int,
  ) -> LLMResponse:
    response = self._request_with_retry({
      "model": model,
      "messages": [dict(m) for m in messages],
      "stream": False,
      "options": {"temperature": temperature, "num_predict": max_tokens},
    })
    data = response.json()
    content = data.get("message", {}).get("content", "")
    if not content:
      raise ProviderError("No content in ollama response")

    usage = None
    if "prompt_eval_count" in data or "eval_count" in data:
      prompt = data.get("prompt_eval_count", 0)
      completion = data.get("eval_count", 0)
      usage = TokenUsage(prompt, completion, prompt + completion)
    return LLMResponse(content=content, usage=usage)

  def _request_with_retry(
    self,
    payload: dict,
    max_retries: int = 2,
  ) -> httpx.Response:
    """Make request with retry on transient failures."""
    last_error: Exception | None = None

    for attempt in range(max_retries + 1):
      try:
        response = httpx.post(
          f"{self._host}/api/chat",
          json=payload,
          timeout=self.REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        return response
      except (httpx.ConnectError, httpx.ReadTimeout) as e:
        last_error = e
        if attempt < max_retries:
          continue
      except httpx.HTTPStatusError as e:
        raise ProviderError(f"ollama API error: {e.response.status_code} {e.response.text[:200]}") from e

    raise ProviderError(f"ollama request failed: {last_error}") from last_error


def _create_ollama(base_url: str | None) -> LLMAdapter:
  return OllamaAdapter(base_url)


register_adapter("ollama", _create_ollama)
