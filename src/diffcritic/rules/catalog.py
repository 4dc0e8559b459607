"""Rule catalog loading and prompt rendering."""

import json
import logging
from pathlib import Path
from typing import Iterable, Iterator

from pydantic import ValidationError

from diffcritic.models import Rule, RuleSet

logger = logging.getLogger(__name__)

BUILTIN_CATALOG_DIR = Path(__file__).parent / "catalogs"


def load_rule_set(path: Path) -> RuleSet | None:
  """Load a single catalog file.

  Returns None, with a warning, when the file is missing, isn't valid JSON
  or doesn't have the ``{"category", "name", "rules": [...]}`` shape.
  """
  path = Path(path)
  if not path.is_file():
    logger.warning("Rule file not found: %s", path)
    return None

  try:
    data = json.loads(path.read_text(encoding="utf-8"))
  except (OSError, ValueError) as e:
    logger.warning("Failed to load rule set from %s: %s", path, e)
    return None

  try:
    return RuleSet.model_validate(data)
  except ValidationError as e:
    logger.warning("Invalid rule set format in %s: %s", path, e.errors()[0]["msg"])
    return None


def builtin_catalog_paths() -> list[Path]:
  return sorted(BUILTIN_CATALOG_DIR.glob("*.json"))


def load_catalog(paths: Iterable[Path | str] = (), include_builtin: bool = True) -> "RuleCatalog":
  """Load the bundled catalogs followed by any extra catalog files.

  Extra paths without a ``.json`` suffix are skipped. A rule id defined in
  more than one file keeps its last definition.
  """
  sources = builtin_catalog_paths() if include_builtin else []
  for path in paths:
    path = Path(path)
    if path.suffix != ".json":
      logger.warning("Skipping non-JSON rule file: %s", path)
      continue
    sources.append(path)

  rule_sets = [rs for rs in (load_rule_set(p) for p in sources) if rs is not None]
  catalog = RuleCatalog(rule_sets)
  logger.info("Loaded %d rule(s) from %d rule set(s)", len(catalog), len(rule_sets))
  return catalog


class RuleCatalog:
  """An immutable lookup of rules by id, in catalog order."""

  def __init__(self, rule_sets: Iterable[RuleSet] = ()):
    self._rule_sets = tuple(rule_sets)
    self._rules: dict[str, Rule] = {}
    for rule_set in self._rule_sets:
      for rule in rule_set.rules:
        if rule.id in self._rules:
          logger.debug("Rule %s redefined by %s", rule.id, rule_set.category)
        self._rules[rule.id] = rule

  @property
  def rule_sets(self) -> tuple[RuleSet, ...]:
    return self._rule_sets

  def get(self, rule_id: str) -> Rule | None:
    return self._rules.get(rule_id)

  def __contains__(self, rule_id: object) -> bool:
    return rule_id in self._rules

  def __len__(self) -> int:
    return len(self._rules)

  def __iter__(self) -> Iterator[Rule]:
    return iter(self._rules.values())

  def render(self) -> str:
    """Render every rule as markdown for the review prompt."""
    lines: list[str] = []
    for rule_set in self._rule_sets:
      lines.append(f"## {rule_set.name or rule_set.category}")
      lines.append("")
      for rule in rule_set.rules:
        lines.append(f"### {rule.id}: {rule.name}")
        lines.append(
          f'**Level**: {rule.level.value} -> **must use severity: "{rule.severity.value}"**'
        )
        lines.append(f"**Description**: {rule.description}")
        if rule.reason:
          lines.append(f"**Reason**: {rule.reason}")
        if rule.good_example:
          lines.append(f"**Good example**:\n```\n{rule.good_example}\n```")
        if rule.bad_example:
          lines.append(f"**Bad example**:\n```\n{rule.bad_example}\n```")
        lines.append("")
    return "\n".join(lines).rstrip()
