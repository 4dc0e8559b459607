"""Application settings."""

from pydantic import BaseModel, Field


class Settings(BaseModel):
  """Application configuration."""

  provider: str | None = None
  model: str | None = None
  base_url: str | None = None
  temperature: float = Field(default=0.3, ge=0.0, le=2.0)
  max_tokens: int = Field(default=8192, gt=0)
  max_continuations: int = Field(default=10, ge=0)
  continuation_delay: float = Field(default=0.1, ge=0.0)
  safety_margin: int = Field(default=500, ge=0)
  rule_files: list[str] = Field(default_factory=list)
  include_builtin_rules: bool = True
  extensions: list[str] = Field(default_factory=list)
