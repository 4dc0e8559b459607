"""Heuristic token estimation.

There is no tokenizer available for every provider, so costs are
approximated by character class. The numbers are a safety margin against
context overflow rather than an exact accounting: CJK ideographs are counted
at 1.5 characters per token and everything else at 4.
"""

import math
import re
from typing import Iterable, Mapping

from diffcritic.diff.parser import render_file_diff
from diffcritic.models import FileDiff

CJK_CHARS_PER_TOKEN = 1.5
OTHER_CHARS_PER_TOKEN = 4
MESSAGE_OVERHEAD = 10

_CJK = re.compile(r"[\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff]")

Message = Mapping[str, str]


def estimate_tokens(text: str) -> int:
  """Estimate the token cost of a piece of text."""
  cjk = len(_CJK.findall(text))
  other = len(text) - cjk
  return math.ceil(cjk / CJK_CHARS_PER_TOKEN) + math.ceil(other / OTHER_CHARS_PER_TOKEN)


def estimate_message_tokens(messages: Iterable[Message]) -> int:
  """Estimate a conversation, adding role/formatting overhead per message."""
  return sum(estimate_tokens(m["content"]) + MESSAGE_OVERHEAD for m in messages)


def estimate_flat_tokens(messages: Iterable[Message]) -> int:
  """Flat four-characters-per-token estimate used by some providers."""
  total_chars = sum(
    len(m["content"]) + len(m["role"]) + MESSAGE_OVERHEAD for m in messages
  )
  return math.ceil(total_chars / OTHER_CHARS_PER_TOKEN)


def estimate_file_diff_tokens(file_diff: FileDiff) -> int:
  """Estimate the cost of a file diff as it appears in the prompt."""
  return estimate_tokens(render_file_diff(file_diff))
