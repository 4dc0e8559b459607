"""Normalization of raw model comments against the rule catalog."""

import logging
from typing import Any, Mapping

from pydantic import ValidationError

from diffcritic.models import ReviewComment, RuleLevel, Severity
from diffcritic.rules.catalog import RuleCatalog

logger = logging.getLogger(__name__)

UNKNOWN_RULE_ID = "unknown"
UNKNOWN_RULE_NAME = "Unknown rule"
UNKNOWN_RULE_LEVEL = RuleLevel.ADVISORY.value
UNKNOWN_RULE_DESC = "Rule information missing"

_SEVERITIES = {s.value for s in Severity}


class CommentValidationError(Exception):
  """A raw comment can't be turned into a ReviewComment."""


def normalize_comment(raw: Mapping[str, Any], catalog: RuleCatalog) -> ReviewComment:
  """Turn a raw comment dict from the model into a validated ReviewComment.

  Rule attribution is backfilled from the catalog when the model left it
  out; values the model supplied always win. Severity is taken as given,
  falling back to ``warning`` when missing or unrecognized.

  Raises:
    CommentValidationError: The comment has no usable path or line.
  """
  if not isinstance(raw, Mapping):
    raise CommentValidationError(f"Comment is not an object: {raw!r}")

  line = _as_int(raw.get("line"))
  if line is None:
    raise CommentValidationError(f"Comment has no line number: {raw!r}")

  end_line = _as_int(raw.get("endLine"))
  if end_line is None or end_line < line:
    end_line = line

  severity = str(raw.get("severity") or "").strip().lower()
  if severity not in _SEVERITIES:
    severity = Severity.WARNING.value

  fields = {
    "filePath": raw.get("filePath") or "",
    "line": line,
    "endLine": end_line,
    "severity": severity,
    "message": str(raw.get("message") or ""),
    "suggestion": raw.get("suggestion") or None,
    "tags": _as_tags(raw.get("tags")),
    **_attribution(raw, catalog),
  }

  try:
    return ReviewComment.model_validate(fields)
  except ValidationError as e:
    raise CommentValidationError(str(e)) from e


def _attribution(raw: Mapping[str, Any], catalog: RuleCatalog) -> dict[str, str]:
  rule_id = raw.get("ruleId")
  rule = catalog.get(rule_id) if isinstance(rule_id, str) and rule_id else None

  if rule is not None:
    return {
      "ruleId": rule_id,
      "ruleName": raw.get("ruleName") or rule.name,
      "ruleLevel": raw.get("ruleLevel") or rule.level.value,
      "ruleDesc": raw.get("ruleDesc") or rule.description,
    }

  if rule_id:
    logger.warning("Rule not found for ruleId: %s", rule_id)
  else:
    logger.warning("Comment missing ruleId, using default values")
    rule_id = UNKNOWN_RULE_ID

  return {
    "ruleId": str(rule_id),
    "ruleName": raw.get("ruleName") or UNKNOWN_RULE_NAME,
    "ruleLevel": raw.get("ruleLevel") or UNKNOWN_RULE_LEVEL,
    "ruleDesc": raw.get("ruleDesc") or UNKNOWN_RULE_DESC,
  }


def _as_int(value: Any) -> int | None:
  if isinstance(value, bool):
    return None
  if isinstance(value, int):
    return value
  if isinstance(value, float) and value.is_integer():
    return int(value)
  if isinstance(value, str) and value.strip().isdigit():
    return int(value.strip())
  return None


def _as_tags(value: Any) -> list[str] | None:
  if not isinstance(value, list):
    return None
  return [str(tag) for tag in value]
