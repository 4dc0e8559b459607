"""Resilient extraction of review JSON from model output."""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from json_repair import repair_json

from diffcritic.models import ReviewComment, Severity
from diffcritic.rules.catalog import RuleCatalog
from diffcritic.rules.normalizer import CommentValidationError, normalize_comment

logger = logging.getLogger(__name__)

MAX_RESPONSE_LENGTH = 1_000_000  # 1MB limit for regex processing
DEFAULT_SUMMARY = "Code review completed."
HEURISTIC_SUMMARY_LENGTH = 200
MAX_SCAN_RESTARTS = 32

_FENCED_BLOCK = re.compile(r"```([\s\S]*?)```")
_LANGUAGE_TAG = re.compile(r"^[A-Za-z0-9_+-]*[ \t]*\n")
_GREEDY_OBJECT = re.compile(r"\{[\s\S]*\}")
_ERROR_WORD = re.compile(r"error|错误", re.IGNORECASE)
_FILE_LOCATION = re.compile(r"([^\s:]+\.[A-Za-z0-9]+):(\d+)")


class ResponseParseError(Exception):
  """Model output could not be turned into review comments."""


class NotJSONError(ResponseParseError):
  """The response contains no JSON at all."""


class MalformedJSONError(ResponseParseError):
  """The response looks like JSON but none of it could be parsed."""


@dataclass(frozen=True)
class ExtractedReview:
  """Comments and summary recovered from one model response."""

  comments: list[ReviewComment] = field(default_factory=list)
  summary: str = DEFAULT_SUMMARY
  strategy: str = ""


def find_json_object(text: str, start: int = 0) -> str | None:
  """Return the first balanced ``{...}`` object at or after ``start``.

  Quoted strings are tracked from ``start`` on, so braces inside them are
  ignored even in prose before the object; a backslash escapes the
  character after it. Returns None when no object closes.
  """
  depth = 0
  begin = -1
  in_string = False
  escaped = False

  for i in range(start, len(text)):
    char = text[i]

    if escaped:
      escaped = False
      continue
    if in_string:
      if char == "\\":
        escaped = True
      elif char == '"':
        in_string = False
      continue

    if char == '"':
      in_string = True
    elif char == "{":
      if begin == -1:
        begin = i
      depth += 1
    elif char == "}" and begin != -1:
      depth -= 1
      if depth == 0:
        return text[begin:i + 1]

  return None


def extract_review(raw_text: str, catalog: RuleCatalog) -> ExtractedReview:
  """Recover review comments from raw model output.

  Strategies are tried in order: a fenced code block, text that starts
  with ``{``, a scan of the whole text (with ``json_repair`` as the last
  resort for truncated objects), and finally a heuristic scan for
  ``path.ext:line`` error lines.

  Raises:
    MalformedJSONError: The text looks like JSON but nothing parsed.
    NotJSONError: The text has no JSON and no recognizable error lines.
  """
  if len(raw_text) > MAX_RESPONSE_LENGTH:
    raise MalformedJSONError(
      f"Response too large ({len(raw_text)} bytes), max {MAX_RESPONSE_LENGTH}"
    )

  text = raw_text.strip()

  for strategy, payload in (
    ("fenced", _from_fenced_block(text)),
    ("direct", _from_leading_object(text)),
    ("fallback", _from_anywhere(text)),
  ):
    if payload is not None:
      logger.debug("Parsed review JSON using %s strategy", strategy)
      return _build_review(payload, catalog, strategy)

  comments = _heuristic_comments(text, catalog)
  if comments:
    logger.warning("No JSON found, recovered %d comment(s) from error lines", len(comments))
    return ExtractedReview(
      comments=comments,
      summary=text[:HEURISTIC_SUMMARY_LENGTH],
      strategy="heuristic",
    )

  if text.startswith("{") or "```" in text:
    raise MalformedJSONError(f"Could not parse JSON from response: {text[:200]}...")
  raise NotJSONError(f"Response is not JSON: {text[:200]}...")


def _review_payload(candidate: str | None) -> dict[str, Any] | None:
  """Parse candidate text, accepting only objects with a comments list."""
  if candidate is None:
    return None
  try:
    data = json.loads(candidate)
  except ValueError:
    return None
  if isinstance(data, dict) and isinstance(data.get("comments"), list):
    return data
  return None


def _first_payload(text: str) -> dict[str, Any] | None:
  """Scan for a review object, restarting at each later ``{`` on a miss.

  An unpaired quote in prose before the JSON throws off string tracking
  from the start of the text; starting over at an opening brace doesn't
  carry that state.
  """
  payload = _review_payload(find_json_object(text))
  begin = text.find("{")
  restarts = 0
  while payload is None and begin != -1 and restarts < MAX_SCAN_RESTARTS:
    payload = _review_payload(find_json_object(text, begin))
    begin = text.find("{", begin + 1)
    restarts += 1
  return payload


def _from_fenced_block(text: str) -> dict[str, Any] | None:
  for match in _FENCED_BLOCK.finditer(text):
    inner = _LANGUAGE_TAG.sub("", match.group(1).lstrip(" \t"), count=1)
    payload = _first_payload(inner)
    if payload is not None:
      return payload
  return None


def _from_leading_object(text: str) -> dict[str, Any] | None:
  if not text.startswith("{"):
    return None

  candidate = find_json_object(text)
  if candidate is not None:
    trailing = text[len(candidate):].strip()
    payload = _review_payload(candidate)
    if payload is not None:
      if trailing:
        logger.warning("Ignoring %d characters of text after the JSON object", len(trailing))
      return payload

  return _review_payload(text)


def _from_anywhere(text: str) -> dict[str, Any] | None:
  payload = _first_payload(text)
  if payload is not None:
    return payload

  payload = _review_payload(text)
  if payload is not None:
    return payload

  greedy = _GREEDY_OBJECT.search(text)
  if greedy:
    payload = _review_payload(greedy.group(0))
    if payload is not None:
      return payload

  first = text.find("{")
  if first == -1:
    return None
  repaired = repair_json(text[first:])
  payload = _review_payload(repaired if isinstance(repaired, str) else None)
  if payload is not None:
    logger.warning("Recovered review JSON by repairing malformed output")
  return payload


def _build_review(payload: dict[str, Any], catalog: RuleCatalog, strategy: str) -> ExtractedReview:
  comments: list[ReviewComment] = []
  for raw in payload["comments"]:
    try:
      comments.append(normalize_comment(raw, catalog))
    except CommentValidationError as e:
      logger.warning("Dropping invalid comment: %s", e)

  summary = payload.get("summary")
  if not isinstance(summary, str) or not summary.strip():
    summary = DEFAULT_SUMMARY

  return ExtractedReview(comments=comments, summary=summary, strategy=strategy)


def _heuristic_comments(text: str, catalog: RuleCatalog) -> list[ReviewComment]:
  comments: list[ReviewComment] = []
  for line in text.splitlines():
    if not _ERROR_WORD.search(line):
      continue
    location = _FILE_LOCATION.search(line)
    if not location:
      continue
    raw = {
      "filePath": location.group(1),
      "line": int(location.group(2)),
      "severity": Severity.ERROR.value,
      "message": line.strip(),
    }
    try:
      comments.append(normalize_comment(raw, catalog))
    except CommentValidationError as e:
      logger.warning("Dropping invalid comment: %s", e)
  return comments
