"""Unified diff parsing into hunks and numbered lines."""

import re

from diffcritic.models import DiffLine, FileDiff, FileStatus, Hunk, LineType

# @@ -start[,count] +start[,count] @@
_HUNK_HEADER = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")

_PREFIXES = {
  LineType.ADDITION: "+",
  LineType.DELETION: "-",
  LineType.CONTEXT: " ",
}


class _HunkBuilder:
  """Accumulates lines for the hunk currently being parsed."""

  def __init__(self, old_start: int, old_lines: int, new_start: int, new_lines: int):
    self.old_start = old_start
    self.old_lines = old_lines
    self.new_start = new_start
    self.new_lines = new_lines
    self.old_line = old_start
    self.new_line = new_start
    self.lines: list[DiffLine] = []

  @property
  def exhausted(self) -> bool:
    return (
      self.old_line - self.old_start >= self.old_lines
      and self.new_line - self.new_start >= self.new_lines
    )

  def add(self, line: str) -> None:
    # Lines past the header's counts belong to whatever follows the hunk
    if self.exhausted:
      return
    if line.startswith("+") and not line.startswith("+++"):
      self.lines.append(DiffLine(
        type=LineType.ADDITION,
        content=line[1:],
        new_line_number=self.new_line,
      ))
      self.new_line += 1
    elif line.startswith("-") and not line.startswith("---"):
      self.lines.append(DiffLine(
        type=LineType.DELETION,
        content=line[1:],
        old_line_number=self.old_line,
      ))
      self.old_line += 1
    elif line.startswith(" "):
      self.lines.append(DiffLine(
        type=LineType.CONTEXT,
        content=line[1:],
        old_line_number=self.old_line,
        new_line_number=self.new_line,
      ))
      self.old_line += 1
      self.new_line += 1

  def build(self) -> Hunk:
    return Hunk(
      old_start=self.old_start,
      old_lines=self.old_lines,
      new_start=self.new_start,
      new_lines=self.new_lines,
      lines=tuple(self.lines),
    )


def parse_hunks(diff_text: str) -> list[Hunk]:
  """Parse the hunks of a single file's diff text.

  Lines before the first hunk header (``diff --git``, ``index``, ``---``,
  ``+++``) are discarded. A header with an omitted count defaults it to 1.
  Lines that look like a header but don't match the grammar are treated as
  ordinary content and ignored.
  """
  hunks: list[Hunk] = []
  current: _HunkBuilder | None = None

  for line in diff_text.split("\n"):
    match = _HUNK_HEADER.match(line)
    if match:
      if current is not None:
        hunks.append(current.build())
      current = _HunkBuilder(
        old_start=int(match.group(1)),
        old_lines=int(match.group(2) or "1"),
        new_start=int(match.group(3)),
        new_lines=int(match.group(4) or "1"),
      )
      continue

    if current is not None:
      current.add(line)

  if current is not None:
    hunks.append(current.build())

  return hunks


def parse_file_diff(
  diff_text: str,
  file_path: str,
  status: FileStatus = FileStatus.MODIFIED,
  additions: int | None = None,
  deletions: int | None = None,
  old_path: str | None = None,
) -> FileDiff:
  """Parse one file's diff text into a FileDiff.

  Addition and deletion counts are taken from the parsed lines unless the
  caller already knows them (e.g. from ``git diff --numstat``).
  """
  hunks = tuple(parse_hunks(diff_text))

  if additions is None:
    additions = _count(hunks, LineType.ADDITION)
  if deletions is None:
    deletions = _count(hunks, LineType.DELETION)

  return FileDiff(
    file_path=file_path,
    status=status,
    additions=additions,
    deletions=deletions,
    hunks=hunks,
    old_path=old_path,
  )


def _count(hunks: tuple[Hunk, ...], line_type: LineType) -> int:
  return sum(1 for hunk in hunks for line in hunk.lines if line.type == line_type)


def render_hunk(hunk: Hunk) -> str:
  """Render a hunk with each line's number after its prefix."""
  rendered = [
    f"@@ -{hunk.old_start},{hunk.old_lines} +{hunk.new_start},{hunk.new_lines} @@"
  ]
  for line in hunk.lines:
    number = line.new_line_number or line.old_line_number
    marker = f"{number}:" if number else ""
    rendered.append(f"{_PREFIXES[line.type]}{marker} {line.content}")
  return "\n".join(rendered)


def render_file_diff(file_diff: FileDiff) -> str:
  """Render a file diff as the line-numbered text sent to the model."""
  hunks_text = "\n\n".join(render_hunk(hunk) for hunk in file_diff.hunks)
  return f"File: {file_diff.file_path}\nStatus: {file_diff.status.value}\n\n{hunks_text}"
