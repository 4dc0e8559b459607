"""Bounded continuation protocol for truncated model output."""

import json
import logging
import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from diffcritic.providers.base import LLMAdapter, Message
from diffcritic.providers.prompt import build_continuation_prompt

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONTINUATIONS = 10
DEFAULT_DELAY = 0.1

_FENCED_BLOCK = re.compile(r"```[A-Za-z0-9_-]*[ \t]*\n(.*?)\n\s*```", re.DOTALL)


class CompletionStatus(Enum):
  """How the accumulated output ended."""

  COMPLETE = "complete"
  TRUNCATED = "truncated"


@dataclass(frozen=True)
class CompletionResult:
  """Accumulated model output for one conversation."""

  text: str
  status: CompletionStatus
  calls: int

  @property
  def is_complete(self) -> bool:
    return self.status == CompletionStatus.COMPLETE


def is_json_complete(text: str) -> bool:
  """Check whether text deserializes as one JSON document.

  Prose around exactly one fenced block also counts when the block's
  content parses; the extractor knows how to unwrap it.
  """
  candidate = text.strip()
  if _parses(candidate):
    return True
  blocks = _FENCED_BLOCK.findall(candidate)
  return len(blocks) == 1 and _parses(blocks[0])


def _parses(candidate: str) -> bool:
  try:
    json.loads(candidate)
  except ValueError:
    return False
  return True


class CompletionDriver:
  """Calls the model until its output is valid JSON or the budget runs out.

  Each call's text is appended to what came before. When the result still
  doesn't parse, the partial answer is echoed back as an assistant turn
  followed by a request to continue, up to ``max_continuations`` times.
  Adapter errors are not retried here; batch-level retry happens in the
  orchestrator.
  """

  def __init__(
    self,
    adapter: LLMAdapter,
    *,
    api_key: str | None,
    model: str,
    temperature: float = 0.3,
    max_tokens: int = 8192,
    max_continuations: int = DEFAULT_MAX_CONTINUATIONS,
    delay: float = DEFAULT_DELAY,
    sleep: Callable[[float], None] = time.sleep,
  ):
    if max_continuations < 0:
      raise ValueError("max_continuations must be >= 0")
    self.adapter = adapter
    self.api_key = api_key
    self.model = model
    self.temperature = temperature
    self.max_tokens = max_tokens
    self.max_continuations = max_continuations
    self.delay = delay
    self._sleep = sleep

  def complete(self, messages: Sequence[Message], label: str = "") -> CompletionResult:
    """Run the conversation to a complete JSON document if possible."""
    conversation = [dict(m) for m in messages]
    accumulated = ""
    continuations = 0
    prefix = f"{label}: " if label else ""

    while True:
      self._check_context(conversation, prefix)
      started = time.monotonic()
      response = self.adapter.invoke(
        conversation,
        api_key=self.api_key,
        model=self.model,
        temperature=self.temperature,
        max_tokens=self.max_tokens,
      )
      accumulated += response.content
      calls = continuations + 1

      logger.info(
        "%scall %d finished in %.2fs, %d characters so far",
        prefix, calls, time.monotonic() - started, len(accumulated),
      )
      if response.usage:
        logger.debug(
          "%stoken usage: prompt=%s completion=%s total=%s",
          prefix,
          response.usage.prompt_tokens,
          response.usage.completion_tokens,
          response.usage.total_tokens,
        )

      if is_json_complete(accumulated):
        return CompletionResult(accumulated, CompletionStatus.COMPLETE, calls)

      if continuations >= self.max_continuations:
        logger.warning(
          "%sreached %d continuation(s), output is still not valid JSON",
          prefix, self.max_continuations,
        )
        return CompletionResult(accumulated, CompletionStatus.TRUNCATED, calls)

      continuations += 1
      logger.info(
        "%soutput incomplete, requesting continuation %d/%d",
        prefix, continuations, self.max_continuations,
      )
      conversation.append({"role": "assistant", "content": response.content})
      conversation.append({"role": "user", "content": build_continuation_prompt(accumulated)})
      self._sleep(self.delay)

  def _check_context(self, conversation: list[dict[str, str]], prefix: str) -> None:
    estimated = self.adapter.estimate_tokens(conversation)
    available = self.adapter.context_limit(self.model) - self.max_tokens
    if estimated > available:
      logger.warning(
        "%sestimated %d prompt tokens exceeds the %d left by %s after reserving %d for output",
        prefix, estimated, available, self.model, self.max_tokens,
      )
