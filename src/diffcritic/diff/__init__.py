"""Diff extraction and parsing."""

from diffcritic.diff.extractor import (
  GitError,
  extract_branch_diff,
  extract_staged_diff,
  parse_diff_output,
)
from diffcritic.diff.parser import parse_file_diff, parse_hunks, render_file_diff

__all__ = [
  "extract_branch_diff",
  "extract_staged_diff",
  "parse_diff_output",
  "parse_file_diff",
  "parse_hunks",
  "render_file_diff",
  "GitError",
]
