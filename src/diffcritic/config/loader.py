"""Configuration file and environment loading."""

import os
from pathlib import Path
from typing import Mapping

import yaml

from diffcritic.config.settings import Settings

CONFIG_FILENAMES = [".diffcritic.yaml", ".diffcritic.yml", "diffcritic.yaml", "diffcritic.yml"]

# Environment variable -> settings field
ENV_OVERRIDES = {
  "LLM_PROVIDER": "provider",
  "LLM_MODEL_NAME": "model",
  "LLM_BASE_URL": "base_url",
  "LLM_MAX_TOKENS": "max_tokens",
  "LLM_TEMPERATURE": "temperature",
}


def _find_config_file(config_path: Path | None = None) -> Path | None:
  """Find config file path, or None if no config exists."""
  if config_path:
    if not config_path.exists():
      raise FileNotFoundError(f"Config file not found: {config_path}")
    return config_path

  for filename in CONFIG_FILENAMES:
    path = Path.cwd() / filename
    if path.exists():
      return path

  return None


def load_config(
  config_path: Path | None = None,
  environ: Mapping[str, str] = os.environ,
) -> Settings:
  """Load configuration from file or defaults, then apply environment overrides.

  Raises:
    FileNotFoundError: An explicit config path doesn't exist.
    pydantic.ValidationError: A value has the wrong type or range.
  """
  data: dict = {}
  path = _find_config_file(config_path)
  if path:
    data = _load_from_file(path)

  for env_var, field in ENV_OVERRIDES.items():
    value = environ.get(env_var)
    if value:
      data[field] = value

  return Settings.model_validate(data)


def _load_from_file(path: Path) -> dict:
  """Load raw settings from a YAML file."""
  with open(path, encoding="utf-8") as f:
    data = yaml.safe_load(f) or {}

  if not isinstance(data, dict):
    raise ValueError(f"Config file must contain a mapping: {path}")
  return data
