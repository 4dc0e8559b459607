"""Git diff extraction."""

import logging
import re
import subprocess
from pathlib import Path

from diffcritic.diff.parser import parse_file_diff
from diffcritic.models import FileDiff, FileStatus

logger = logging.getLogger(__name__)

SRC_PREFIX = "a/"
DST_PREFIX = "b/"
DEV_NULL = "/dev/null"
# Fixed prefixes regardless of diff.noprefix or diff.mnemonicPrefix
DIFF_ARGS = ("diff", f"--src-prefix={SRC_PREFIX}", f"--dst-prefix={DST_PREFIX}")

_QUOTED_ESCAPE = re.compile(rb"\\([0-7]{3}|.)")
_C_ESCAPES = {
  b"a": b"\a",
  b"b": b"\b",
  b"f": b"\f",
  b"n": b"\n",
  b"r": b"\r",
  b"t": b"\t",
  b"v": b"\v",
}


class GitError(Exception):
  """Git command failed."""


def _sanitize_error(stderr: str) -> str:
  """Remove potentially sensitive path information from error messages."""
  lines = stderr.strip().split("\n")
  sanitized = []
  for line in lines:
    if "fatal:" in line or "error:" in line:
      sanitized.append(line.split("/")[-1] if "/" in line else line)
    else:
      sanitized.append(line)
  return "\n".join(sanitized)


def run_git(*args: str, cwd: Path | None = None) -> str:
  """Run a git command and return stdout."""
  try:
    result = subprocess.run(
      ["git", *args],
      capture_output=True,
      text=True,
      check=True,
      cwd=cwd,
    )
    return result.stdout
  except subprocess.CalledProcessError as e:
    sanitized = _sanitize_error(e.stderr)
    raise GitError(f"git {' '.join(args)} failed: {sanitized}") from e


def extract_staged_diff(cwd: Path | None = None) -> list[FileDiff]:
  """Extract diff of staged changes."""
  return parse_diff_output(run_git(*DIFF_ARGS, "--cached", cwd=cwd))


def extract_branch_diff(
  base: str,
  branch: str = "HEAD",
  cwd: Path | None = None,
) -> list[FileDiff]:
  """Extract diff between branch and its merge base with base."""
  return parse_diff_output(run_git(*DIFF_ARGS, f"{base}...{branch}", cwd=cwd))


def split_diff_sections(diff_output: str) -> list[list[str]]:
  """Split multi-file diff output into per-file line groups."""
  sections: list[list[str]] = []
  current: list[str] | None = None

  for line in diff_output.split("\n"):
    if line.startswith("diff --git"):
      current = [line]
      sections.append(current)
    elif current is not None:
      current.append(line)

  return sections


def parse_diff_output(diff_output: str) -> list[FileDiff]:
  """Parse git diff output into per-file models, skipping binary files."""
  if not diff_output.strip():
    return []

  files: list[FileDiff] = []
  for section in split_diff_sections(diff_output):
    file_diff = _parse_section(section)
    if file_diff is not None:
      files.append(file_diff)
  return files


def _parse_section(section: list[str]) -> FileDiff | None:
  path = _header_path(section[0])
  old_path: str | None = None
  status = FileStatus.MODIFIED

  for line in section[1:]:
    if line.startswith("@@"):
      break
    if line.startswith("new file"):
      status = FileStatus.ADDED
    elif line.startswith("deleted file"):
      status = FileStatus.DELETED
    elif line.startswith("rename from "):
      status = FileStatus.RENAMED
      old_path = _unquote(line.removeprefix("rename from "))
    elif line.startswith("rename to "):
      path = _unquote(line.removeprefix("rename to "))
    elif line.startswith("+++ "):
      target = _unquote(line[4:].rstrip("\t"))
      if target != DEV_NULL:
        path = target.removeprefix(DST_PREFIX)
    elif line.startswith("--- ") and status == FileStatus.DELETED:
      source = _unquote(line[4:].rstrip("\t"))
      if source != DEV_NULL:
        path = source.removeprefix(SRC_PREFIX)
    elif line.startswith("Binary files") or line.startswith("GIT binary patch"):
      logger.debug("Skipping binary file %s", path)
      return None

  return parse_file_diff(
    "\n".join(section),
    file_path=path,
    status=status,
    old_path=old_path,
  )


def _header_path(header: str) -> str:
  """Destination path from a ``diff --git`` line.

  Only used when the section has no ``+++`` line (mode changes, pure
  renames, binary files).
  """
  rest = header.removeprefix("diff --git ").strip()
  if rest.endswith('"'):
    split = rest.rfind(f' "{DST_PREFIX}')
    if split != -1:
      return _unquote(rest[split + 1:]).removeprefix(DST_PREFIX)

  # Unrenamed paths repeat, so "a/X b/X" splits in the middle even when X
  # contains " b/"
  half = len(rest) // 2
  if len(rest) % 2 == 1 and rest[half] == " ":
    src, dst = rest[:half], rest[half + 1:]
    if src.startswith(SRC_PREFIX) and dst.startswith(DST_PREFIX) and src[2:] == dst[2:]:
      return dst[2:]

  split = rest.rfind(f" {DST_PREFIX}")
  if split != -1:
    return rest[split + 1 + len(DST_PREFIX):]
  return rest


def _unquote(path: str) -> str:
  """Undo git's C-style quoting of paths with unusual characters."""
  if len(path) < 2 or not (path.startswith('"') and path.endswith('"')):
    return path
  raw = _QUOTED_ESCAPE.sub(_unescape, path[1:-1].encode("utf-8"))
  return raw.decode("utf-8", errors="replace")


def _unescape(match: re.Match[bytes]) -> bytes:
  escape = match.group(1)
  if escape[0] in b"01234567":
    return bytes([int(escape, 8)])
  return _C_ESCAPES.get(escape, escape)
