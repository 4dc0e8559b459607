"""Core domain models for diff review."""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class FileStatus(Enum):
  """Change status of a file in a diff."""

  ADDED = "added"
  MODIFIED = "modified"
  DELETED = "deleted"
  RENAMED = "renamed"


class LineType(Enum):
  """Kind of line inside a hunk."""

  CONTEXT = "context"
  ADDITION = "addition"
  DELETION = "deletion"


class Severity(Enum):
  """Comment severity levels."""

  ERROR = "error"
  WARNING = "warning"
  INFO = "info"


class RuleLevel(Enum):
  """Rule levels, strictest first."""

  BLOCKING = "blocking"
  ADVISORY = "advisory"
  OPTIMIZATION = "optimization"

  @property
  def severity(self) -> Severity:
    """Severity a comment citing a rule of this level must carry."""
    return _LEVEL_SEVERITY[self]


_LEVEL_SEVERITY = {
  RuleLevel.BLOCKING: Severity.ERROR,
  RuleLevel.ADVISORY: Severity.WARNING,
  RuleLevel.OPTIMIZATION: Severity.INFO,
}

# Level names accepted from Chinese-language catalogs
LEVEL_ALIASES = {
  "强卡控": RuleLevel.BLOCKING,
  "建议": RuleLevel.ADVISORY,
  "优化": RuleLevel.OPTIMIZATION,
}


@dataclass(frozen=True)
class DiffLine:
  """A single line of a hunk, prefix stripped."""

  type: LineType
  content: str
  old_line_number: int | None = None
  new_line_number: int | None = None


@dataclass(frozen=True)
class Hunk:
  """A contiguous block of a unified diff."""

  old_start: int
  old_lines: int
  new_start: int
  new_lines: int
  lines: tuple[DiffLine, ...] = ()


@dataclass(frozen=True)
class FileDiff:
  """A single file's parsed diff."""

  file_path: str
  status: FileStatus
  additions: int
  deletions: int
  hunks: tuple[Hunk, ...] = ()
  old_path: str | None = None


class _CamelModel(BaseModel):
  model_config = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
  )


class Rule(_CamelModel):
  """A review rule from a catalog."""

  id: str
  name: str
  description: str
  level: RuleLevel
  good_example: str | None = None
  bad_example: str | None = None
  reason: str | None = None

  @field_validator("level", mode="before")
  @classmethod
  def _map_level_alias(cls, value: object) -> object:
    if isinstance(value, str):
      return LEVEL_ALIASES.get(value.strip(), value.strip().lower())
    return value

  @property
  def severity(self) -> Severity:
    return self.level.severity


class RuleSet(_CamelModel):
  """A catalog file: a named category of rules."""

  category: str
  name: str
  rules: list[Rule]


class ReviewComment(_CamelModel):
  """A single review comment attributed to a rule."""

  file_path: str = Field(min_length=1)
  line: int = Field(ge=1)
  end_line: int
  severity: Severity
  message: str
  rule_id: str
  rule_name: str
  rule_level: str
  rule_desc: str
  suggestion: str | None = None
  tags: list[str] | None = None

  @model_validator(mode="after")
  def _check_range(self) -> "ReviewComment":
    if self.end_line < self.line:
      raise ValueError(f"endLine {self.end_line} is before line {self.line}")
    return self


class ReviewResult(_CamelModel):
  """Result of a review run."""

  model_config = ConfigDict(frozen=False)

  comments: list[ReviewComment] = Field(default_factory=list)
  summary: str
  start_time: str | None = None
  end_time: str | None = None
  duration: int | None = None
  failed_files: list[str] = Field(default_factory=list)

  @property
  def has_blocking_issues(self) -> bool:
    """Check if result contains error severity comments."""
    return any(c.severity == Severity.ERROR for c in self.comments)

  def count(self, severity: Severity) -> int:
    return sum(1 for c in self.comments if c.severity == severity)
