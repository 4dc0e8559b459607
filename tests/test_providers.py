"""Tests for adapters and the adapter registry."""

from unittest.mock import MagicMock, patch

import httpx
import pytest
from diffcritic.providers.anthropic import AnthropicAdapter, split_system_messages
from diffcritic.providers.base import LLMResponse, ProviderError
from diffcritic.providers.custom import CustomAdapter
from diffcritic.providers.gemini import GeminiAdapter
from diffcritic.providers.moonshot import MoonshotAdapter
from diffcritic.providers.ollama import OllamaAdapter
from diffcritic.providers.openai import OpenAIAdapter
from diffcritic.providers.registry import (
  AdapterRegistry,
  ProviderNotFoundError,
  ProviderUnavailableError,
  get_adapter,
  list_adapters,
  register_adapter,
  require_available,
)

MESSAGES = [
  {"role": "system", "content": "be strict"},
  {"role": "user", "content": "review this"},
  {"role": "assistant", "content": '{"comments": ['},
  {"role": "user", "content": "continue"},
]


def _invoke(adapter, messages=MESSAGES) -> LLMResponse:
  return adapter.invoke(messages, api_key="key", model=adapter.DEFAULT_MODEL, temperature=0.3, max_tokens=100)


class TestAdapterRegistry:
  def test_load_all_registers_builtin_adapters(self) -> None:
    AdapterRegistry.load_all()
    assert {"openai", "anthropic", "gemini", "moonshot", "custom", "ollama"} <= set(list_adapters())

  def test_register_and_get_adapter(self, fake_adapter) -> None:
    register_adapter("fake", lambda base_url: fake_adapter())
    assert get_adapter("fake").name == "fake"

  def test_base_url_passed_to_factory(self) -> None:
    AdapterRegistry.load_all()
    adapter = get_adapter("custom", "https://llm.example.com/v1")
    assert adapter.base_url == "https://llm.example.com/v1"

  def test_adapter_not_found(self) -> None:
    with pytest.raises(ProviderNotFoundError):
      get_adapter("nonexistent_provider_xyz")

  def test_require_available_returns_key(self, fake_adapter) -> None:
    assert require_available(fake_adapter()) == "fake-key"

  @patch("diffcritic.providers.ollama.httpx.get", side_effect=httpx.ConnectError("refused"))
  def test_require_available_raises_with_status(self, mock_get, monkeypatch) -> None:
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("LLM_API_KEY", raising=False)
    AdapterRegistry.load_all()

    with pytest.raises(ProviderUnavailableError) as exc_info:
      require_available(AnthropicAdapter())
    assert "ANTHROPIC_API_KEY" in str(exc_info.value)


class TestAdapterSettings:
  def test_context_limits(self) -> None:
    assert OpenAIAdapter().context_limit("gpt-4") == 8192
    assert OpenAIAdapter().context_limit("unknown-model") == 16385
    assert MoonshotAdapter().context_limit("moonshot-v1-128k") == 131072
    assert AnthropicAdapter().context_limit("anything") == 200000

  def test_provider_key_preferred_over_generic(self, monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "specific")
    monkeypatch.setenv("LLM_API_KEY", "generic")
    assert OpenAIAdapter().resolve_api_key() == "specific"

  def test_generic_key_fallback(self, monkeypatch) -> None:
    monkeypatch.delenv("MOONSHOT_API_KEY", raising=False)
    monkeypatch.setenv("LLM_API_KEY", "generic")
    assert MoonshotAdapter().resolve_api_key() == "generic"
    assert MoonshotAdapter().is_available()

  def test_unavailable_without_key(self, monkeypatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("LLM_API_KEY", raising=False)
    assert not GeminiAdapter().is_available()

  def test_moonshot_default_base_url(self) -> None:
    assert MoonshotAdapter().base_url == "https://api.moonshot.cn/v1"

  def test_completions_suffix_stripped(self) -> None:
    adapter = OpenAIAdapter("https://api.deepseek.com/v1/chat/completions/")
    assert adapter.base_url == "https://api.deepseek.com/v1"

  def test_custom_requires_base_url(self) -> None:
    with pytest.raises(ProviderError, match="base_url"):
      _invoke(CustomAdapter())

  def test_custom_unavailable_without_base_url(self, monkeypatch) -> None:
    monkeypatch.setenv("LLM_API_KEY", "key")
    assert not CustomAdapter().is_available()
    assert CustomAdapter("https://llm.example.com/v1").is_available()

  def test_flat_estimate_for_moonshot(self) -> None:
    messages = [{"role": "user", "content": "abcdef"}]
    assert MoonshotAdapter().estimate_tokens(messages) == 5
    assert OpenAIAdapter().estimate_tokens(messages) == 2 + 10


class TestSplitSystemMessages:
  def test_system_extracted(self) -> None:
    system, conversation = split_system_messages(MESSAGES)

    assert system == "be strict"
    assert [m["role"] for m in conversation] == ["user", "assistant", "user"]

  def test_no_system(self) -> None:
    system, conversation = split_system_messages(MESSAGES[1:2])
    assert system == ""
    assert conversation == [{"role": "user", "content": "review this"}]


class TestOpenAIInvoke:
  def test_invoke_maps_response(self) -> None:
    pytest.importorskip("openai")
    adapter = OpenAIAdapter()
    client = MagicMock()
    client.chat.completions.create.return_value.choices = [
      MagicMock(message=MagicMock(content='{"comments": []}'))
    ]
    client.chat.completions.create.return_value.usage = MagicMock(
      prompt_tokens=10, completion_tokens=5, total_tokens=15
    )
    adapter._clients["key"] = client

    response = _invoke(adapter)

    assert response.content == '{"comments": []}'
    assert response.usage.total_tokens == 15
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["max_tokens"] == 100
    assert kwargs["messages"][2] == {"role": "assistant", "content": '{"comments": ['}

  def test_empty_content_is_an_error(self) -> None:
    pytest.importorskip("openai")
    adapter = OpenAIAdapter()
    client = MagicMock()
    client.chat.completions.create.return_value.choices = []
    adapter._clients["key"] = client

    with pytest.raises(ProviderError):
      _invoke(adapter)


class TestGeminiInvoke:
  def test_roles_and_system_instruction(self) -> None:
    adapter = GeminiAdapter()
    genai = MagicMock()
    genai.GenerativeModel.return_value.generate_content.return_value = MagicMock(
      text='{"comments": []}', usage_metadata=None
    )
    adapter._genai = genai

    response = _invoke(adapter)

    assert response.content == '{"comments": []}'
    assert genai.GenerativeModel.call_args.kwargs["system_instruction"] == "be strict"
    contents = genai.GenerativeModel.return_value.generate_content.call_args.args[0]
    assert [c["role"] for c in contents] == ["user", "model", "user"]

  def test_blocked_response(self) -> None:
    class Blocked:
      usage_metadata = None

      @property
      def text(self) -> str:
        raise ValueError("blocked")

    adapter = GeminiAdapter()
    genai = MagicMock()
    genai.GenerativeModel.return_value.generate_content.return_value = Blocked()
    adapter._genai = genai

    with pytest.raises(ProviderError, match="blocked"):
      _invoke(adapter)


class TestOllamaInvoke:
  def _response(self, status: int, payload: dict) -> httpx.Response:
    return httpx.Response(status, json=payload, request=httpx.Request("POST", "http://ollama/api/chat"))

  @patch("diffcritic.providers.ollama.httpx.post")
  def test_invoke(self, mock_post) -> None:
    mock_post.return_value = self._response(200, {
      "message": {"content": '{"comments": []}'},
      "prompt_eval_count": 30,
      "eval_count": 12,
    })

    response = _invoke(OllamaAdapter("http://ollama/"))

    assert response.content == '{"comments": []}'
    assert response.usage.total_tokens == 42
    assert mock_post.call_args.args[0] == "http://ollama/api/chat"
    payload = mock_post.call_args.kwargs["json"]
    assert payload["options"] == {"temperature": 0.3, "num_predict": 100}

  @patch("diffcritic.providers.ollama.httpx.post")
  def test_retries_connection_errors(self, mock_post) -> None:
    mock_post.side_effect = httpx.ConnectError("refused")

    with pytest.raises(ProviderError):
      _invoke(OllamaAdapter("http://ollama"))
    assert mock_post.call_count == 3

  @patch("diffcritic.providers.ollama.httpx.post")
  def test_http_error(self, mock_post) -> None:
    mock_post.return_value = self._response(500, {"error": "model not found"})

    with pytest.raises(ProviderError, match="500"):
      _invoke(OllamaAdapter("http://ollama"))

  @patch("diffcritic.providers.ollama.httpx.get")
  def test_availability(self, mock_get) -> None:
    mock_get.side_effect = httpx.ConnectError("refused")
    assert not OllamaAdapter("http://ollama").is_available()
    assert OllamaAdapter().resolve_api_key() is None
