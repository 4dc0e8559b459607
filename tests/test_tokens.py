"""Tests for token estimation."""

import pytest
from diffcritic.tokens import (
  estimate_file_diff_tokens,
  estimate_flat_tokens,
  estimate_message_tokens,
  estimate_tokens,
)


class TestEstimateTokens:
  def test_empty_text(self) -> None:
    assert estimate_tokens("") == 0

  def test_latin_text_four_chars_per_token(self) -> None:
    assert estimate_tokens("abcd" * 10) == 10
    assert estimate_tokens("abcde") == 2

  def test_cjk_text_costs_more(self) -> None:
    # Three ideographs at 1.5 characters per token
    assert estimate_tokens("代码审") == 2
    assert estimate_tokens("代码审查") > estimate_tokens("abcd")

  def test_mixed_text(self) -> None:
    assert estimate_tokens("审查abcd") == 2 + 1

  @pytest.mark.parametrize("text", ["", "a", "hello world", "函数 def foo(): pass"])
  def test_monotonic_under_append(self, text: str) -> None:
    assert estimate_tokens(text) >= 0
    assert estimate_tokens(text + "x") >= estimate_tokens(text)
    assert estimate_tokens(text + "字") >= estimate_tokens(text)


class TestMessageEstimates:
  def test_message_overhead(self) -> None:
    messages = [{"role": "user", "content": "abcd"}, {"role": "system", "content": ""}]
    assert estimate_message_tokens(messages) == 1 + 10 + 0 + 10

  def test_flat_estimate_counts_roles(self) -> None:
    messages = [{"role": "user", "content": "abcdef"}]
    # (6 + 4 + 10) / 4
    assert estimate_flat_tokens(messages) == 5


class TestFileDiffEstimate:
  def test_grows_with_diff(self, make_file_diff) -> None:
    small = estimate_file_diff_tokens(make_file_diff("a.py", 2))
    large = estimate_file_diff_tokens(make_file_diff("a.py", 50))
    assert 0 < small < large
