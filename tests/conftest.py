"""Pytest fixtures."""

from typing import Sequence

import pytest
from diffcritic.diff.parser import parse_file_diff
from diffcritic.models import (
  FileDiff,
  FileStatus,
  ReviewComment,
  ReviewResult,
  Rule,
  RuleLevel,
  RuleSet,
  Severity,
)
from diffcritic.providers.base import LLMAdapter, LLMResponse, Message, ProviderError
from diffcritic.rules.catalog import RuleCatalog


class FakeAdapter(LLMAdapter):
  """Adapter that replays scripted replies and records every call."""

  DEFAULT_MODEL = "fake-model"
  DEFAULT_CONTEXT_LIMIT = 100_000

  def __init__(self, replies: Sequence[str | Exception] = ()):
    self.replies = list(replies)
    self.calls: list[list[dict[str, str]]] = []

  @property
  def name(self) -> str:
    return "fake"

  def resolve_api_key(self) -> str | None:
    return "fake-key"

  def invoke(
    self,
    messages: Sequence[Message],
    *,
    api_key: str | None,
    model: str,
    temperature: float,
    max_tokens: int,
  ) -> LLMResponse:
    self.calls.append([dict(m) for m in messages])
    if not self.replies:
      raise ProviderError("No scripted reply left")
    reply = self.replies.pop(0)
    if isinstance(reply, Exception):
      raise reply
    return LLMResponse(content=reply)


@pytest.fixture
def fake_adapter() -> type[FakeAdapter]:
  return FakeAdapter


@pytest.fixture
def sample_diff() -> str:
  return """diff --git a/test.py b/test.py
index 1234567..abcdefg 100644
--- a/test.py
+++ b/test.py
@@ -1,5 +1,6 @@
 def hello():
-    print("hello")
+    print("hello world")
+    return True
"""


@pytest.fixture
def sample_file_diff(sample_diff: str) -> FileDiff:
  return parse_file_diff(sample_diff, "test.py")


def _make_file_diff(path: str, added_lines: int = 3) -> FileDiff:
  body = "\n".join(f"+line {i}" for i in range(added_lines))
  return parse_file_diff(
    f"@@ -0,0 +1,{added_lines} @@\n{body}\n",
    path,
    status=FileStatus.ADDED,
  )


@pytest.fixture
def make_file_diff():
  """Factory for added-file diffs with the given number of lines."""
  return _make_file_diff


@pytest.fixture
def sample_catalog() -> RuleCatalog:
  return RuleCatalog([
    RuleSet(
      category="design",
      name="Code design",
      rules=[
        Rule(
          id="design-001",
          name="No hardcoded secrets",
          description="Credentials must not be committed.",
          level=RuleLevel.BLOCKING,
        ),
        Rule(
          id="design-004",
          name="No magic numbers",
          description="Numeric literals must be named constants.",
          level=RuleLevel.ADVISORY,
          bad_example="if (x > 86400000) {}",
        ),
        Rule(
          id="design-005",
          name="Avoid repeated work in loops",
          description="Hoist invariant work out of loops.",
          level=RuleLevel.OPTIMIZATION,
        ),
      ],
    ),
  ])


@pytest.fixture
def sample_review_result() -> ReviewResult:
  return ReviewResult(
    comments=[
      ReviewComment(
        file_path="test.py",
        line=3,
        end_line=3,
        severity=Severity.ERROR,
        message="Hardcoded token",
        rule_id="design-001",
        rule_name="No hardcoded secrets",
        rule_level="blocking",
        rule_desc="Credentials must not be committed.",
        suggestion="Read it from the environment",
      ),
      ReviewComment(
        file_path="test.py",
        line=5,
        end_line=7,
        severity=Severity.INFO,
        message="Loop recomputes len()",
        rule_id="design-005",
        rule_name="Avoid repeated work in loops",
        rule_level="optimization",
        rule_desc="Hoist invariant work out of loops.",
      ),
    ],
    summary="Two issues found",
    duration=1500,
  )
