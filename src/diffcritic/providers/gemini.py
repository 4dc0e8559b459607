"""Google Gemini adapter."""

from typing import Any, Sequence

from diffcritic.providers.base import LLMAdapter, LLMResponse, Message, ProviderError, TokenUsage
from diffcritic.providers.registry import register_adapter


class GeminiAdapter(LLMAdapter):
  """Google Gemini adapter."""

  DEFAULT_MODEL = "gemini-1.5-flash"
  API_KEY_ENV = "GEMINI_API_KEY"
  CONTEXT_LIMITS = {
    "gemini-1.5-flash": 1048576,
    "gemini-1.5-pro": 2097152,
    "gemini-2.0-flash": 1048576,
    "gemini-2.5-pro": 1048576,
  }
  DEFAULT_CONTEXT_LIMIT = 1048576

  def __init__(self, base_url: str | None = None):
    self._genai: Any = None

  @property
  def name(self) -> str:
    return "gemini"

  def _get_module(self) -> Any:
    if self._genai is None:
      try:
        import google.generativeai as genai
      except ImportError as e:
        raise ImportError(
          "google-generativeai not installed. "
          "Install with: pip install 'diffcritic[gemini]'"
        ) from e
      self._genai = genai
    return self._genai

  def invoke(
    self,
    messages: Sequence[Message],
    *,
    api_key: str | None,
    model: str,
    temperature: float,
    max_tokens: int,
  ) -> LLMResponse:
    genai = self._get_module()
    genai.configure(api_key=api_key)

    system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
    contents = [
      {
        "role": "model" if m["role"] == "assistant" else "user",
        "parts": [m["content"]],
      }
      for m in messages
      if m["role"] != "system"
    ]

    client = genai.GenerativeModel(model, system_instruction=system or None)
    try:
      response = client.generate_content(
        contents,
        generation_config={
          "temperature": temperature,
          "max_output_tokens": max_tokens,
        },
      )
      text = response.text
    except ValueError as e:
      # response.text raises when the candidate was blocked or empty
      raise ProviderError(f"gemini returned no text: {e}") from e

    if not text:
      raise ProviderError("No content in gemini response")

    usage = None
    metadata = getattr(response, "usage_metadata", None)
    if metadata is not None:
      usage = TokenUsage(
        prompt_tokens=metadata.prompt_token_count,
        completion_tokens=metadata.candidates_token_count,
        total_tokens=metadata.total_token_count,
      )
    return LLMResponse(content=text, usage=usage)


def _create_gemini(base_url: str | None) -> LLMAdapter:
  return GeminiAdapter(base_url)


register_adapter("gemini", _create_gemini)
