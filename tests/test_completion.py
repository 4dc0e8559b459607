"""Tests for the continuation driver."""

import json

import pytest
from diffcritic.completion import CompletionDriver, CompletionStatus, is_json_complete
from diffcritic.providers.base import ProviderError

COMPLETE = json.dumps({"comments": [], "summary": "ok"})


def _driver(adapter, sleeps: list[float] | None = None, **kwargs) -> CompletionDriver:
  recorded = sleeps if sleeps is not None else []
  return CompletionDriver(
    adapter,
    api_key="key",
    model="fake-model",
    sleep=recorded.append,
    **kwargs,
  )


def _messages() -> list[dict[str, str]]:
  return [
    {"role": "system", "content": "review"},
    {"role": "user", "content": "diff"},
  ]


class TestIsJsonComplete:
  def test_complete_object(self) -> None:
    assert is_json_complete(COMPLETE)

  def test_truncated_object(self) -> None:
    assert not is_json_complete('{"comments": [{"line": 1')

  def test_enclosing_fence_tolerated(self) -> None:
    assert is_json_complete(f"```json\n{COMPLETE}\n```")

  def test_prose_is_not_json(self) -> None:
    assert not is_json_complete("Looks good to me")

  def test_prose_around_one_fenced_block(self) -> None:
    assert is_json_complete(f"Sure! ```json\n{COMPLETE}\n```\nLet me know if that helps.")

  def test_fenced_block_still_truncated(self) -> None:
    assert not is_json_complete('Sure! ```json\n{"comments": [\n```')

  def test_several_fenced_blocks_not_complete(self) -> None:
    text = f"Before:\n```json\n{{}}\n```\nAfter:\n```json\n{COMPLETE}\n```"
    assert not is_json_complete(text)


class TestCompletionDriver:
  def test_complete_on_first_call(self, fake_adapter) -> None:
    adapter = fake_adapter([COMPLETE])
    result = _driver(adapter).complete(_messages())

    assert result.status == CompletionStatus.COMPLETE
    assert result.calls == 1
    assert result.text == COMPLETE

  def test_fenced_reply_with_prose_needs_no_continuation(self, fake_adapter) -> None:
    reply = f"Sure! ```json\n{COMPLETE}\n```"
    adapter = fake_adapter([reply])
    result = _driver(adapter).complete(_messages())

    assert result.is_complete
    assert result.calls == 1
    assert len(adapter.calls) == 1

  def test_truncated_then_continued(self, fake_adapter) -> None:
    first, second = COMPLETE[:15], COMPLETE[15:]
    adapter = fake_adapter([first, second])
    sleeps: list[float] = []

    result = _driver(adapter, sleeps, delay=0.25).complete(_messages())

    assert result.is_complete
    assert result.calls == 2
    assert result.text == COMPLETE
    assert sleeps == [0.25]

    continued = adapter.calls[1]
    assert continued[-2] == {"role": "assistant", "content": first}
    assert continued[-1]["role"] == "user"
    assert first in continued[-1]["content"]

  def test_continuation_quotes_only_the_tail(self, fake_adapter) -> None:
    head = '{"summary": "' + "x" * 800
    adapter = fake_adapter([head, '"}'.replace("}", ', "comments": []}')])

    _driver(adapter).complete(_messages())

    prompt = adapter.calls[1][-1]["content"]
    assert head[-500:] in prompt
    assert head[:50] not in prompt

  def test_gives_up_after_max_continuations(self, fake_adapter) -> None:
    adapter = fake_adapter(['{"comments": ['] + ['{"line": 1},'] * 10)

    result = _driver(adapter, max_continuations=3).complete(_messages())

    assert result.status == CompletionStatus.TRUNCATED
    assert result.calls == 4
    assert len(adapter.calls) == 4

  def test_zero_continuations(self, fake_adapter) -> None:
    adapter = fake_adapter(["{"])
    result = _driver(adapter, max_continuations=0).complete(_messages())
    assert result.status == CompletionStatus.TRUNCATED
    assert result.calls == 1

  def test_caller_messages_not_mutated(self, fake_adapter) -> None:
    messages = _messages()
    adapter = fake_adapter([COMPLETE[:5], COMPLETE[5:]])

    _driver(adapter).complete(messages)

    assert messages == _messages()

  def test_adapter_errors_propagate(self, fake_adapter) -> None:
    adapter = fake_adapter(["{", ProviderError("boom")])

    with pytest.raises(ProviderError, match="boom"):
      _driver(adapter).complete(_messages())
    assert len(adapter.calls) == 2

  def test_context_overflow_only_warns(self, fake_adapter, caplog) -> None:
    adapter = fake_adapter([COMPLETE])
    adapter.DEFAULT_CONTEXT_LIMIT = 100

    result = _driver(adapter, max_tokens=90).complete(_messages())

    assert result.is_complete
    assert "exceeds" in caplog.text

  def test_negative_max_continuations_rejected(self, fake_adapter) -> None:
    with pytest.raises(ValueError):
      _driver(fake_adapter(), max_continuations=-1)
