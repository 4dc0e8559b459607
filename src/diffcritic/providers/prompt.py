"""Shared prompt construction for adapters."""

from typing import Sequence

from diffcritic.diff.parser import render_file_diff
from diffcritic.models import FileDiff

CONTINUATION_TAIL = 500

_SEVERITY_RULES = """Severity must follow the level of the rule you cite, never your own judgment:
- level "blocking" -> severity "error"
- level "advisory" -> severity "warning"
- level "optimization" -> severity "info"."""

_LOCATION_RULES = """Line numbers:
- Every diff line is prefixed with its number: "+37: ..." is new line 37, "-100: ..." is
  deleted line 100 of the old file, " 50: ..." is context line 50.
- line and endLine must be numbers taken from those markers, preferring new-file numbers.
- A single-line issue uses the same value for line and endLine.
- A multi-line issue spans exactly the offending block, e.g. line 100, endLine 150.
- Never use numbers from the code itself (e.g. the literal 1722960000000) as line numbers.
- Never point at the last line of a file or the whole file range; for file or component
  length issues point at the line where the definition starts.
- endLine is mandatory; the comment is displayed under endLine."""

_RESPONSE_SCHEMA = """{
  "comments": [
    {
      "filePath": "path exactly as given above",
      "line": 12,
      "endLine": 12,
      "severity": "error | warning | info",
      "message": "what is wrong and why",
      "ruleId": "id of the cited rule, e.g. design-004",
      "ruleName": "name of the cited rule",
      "ruleLevel": "blocking | advisory | optimization",
      "ruleDesc": "description of the cited rule",
      "suggestion": "how to fix it (optional)",
      "tags": ["optional", "labels"]
    }
  ],
  "summary": "short overall assessment"
}"""


def build_system_prompt() -> str:
  """Build the system prompt for diff review."""
  return f"""You are an expert code reviewer. Review the code changes strictly against the review rules provided.

Respond with pure JSON only. Do not wrap it in a markdown code block and do not add any prose.

{_SEVERITY_RULES}

Every comment must carry the full attribution of the rule it cites (ruleId, ruleName,
ruleLevel, ruleDesc), copied exactly from the rules.

Report each problem in its own comment. Do not merge several problems, e.g. several magic
numbers, into one comment with a wide range.

{_LOCATION_RULES}

If there is nothing to report, return {{"comments": [], "summary": "..."}}."""


def build_review_prompt(file_diffs: Sequence[FileDiff], rules_text: str) -> str:
  """Build the user prompt containing the rules and the batch's diffs."""
  diff_text = "\n\n---\n\n".join(render_file_diff(f) for f in file_diffs)

  return f"""Review the following changes against these review rules:

{rules_text}

Changes:
{diff_text}

{_LOCATION_RULES}

Return JSON with exactly this structure, starting with "{{" and ending with "}}":

{_RESPONSE_SCHEMA}

{_SEVERITY_RULES}

filePath must match one of the file paths above exactly.
If there is nothing to report, return {{"comments": [], "summary": "..."}}."""


def build_continuation_prompt(accumulated: str, tail: int = CONTINUATION_TAIL) -> str:
  """Ask the model to resume truncated JSON output."""
  excerpt = accumulated[-tail:]
  return (
    "Your previous output was cut off. Continue the JSON exactly where it stopped, "
    "without repeating anything already sent and without any prose. "
    f'The output ended with:\n"{excerpt}"'
  )
