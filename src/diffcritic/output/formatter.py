"""Output formatting for review results."""

import json
from abc import ABC, abstractmethod
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from diffcritic.models import ReviewComment, ReviewResult, Severity


class OutputFormatter(ABC):
  """Base output formatter."""

  @abstractmethod
  def format(self, result: ReviewResult) -> str:
    """Format review result for output."""
    ...


def _location(comment: ReviewComment) -> str:
  if comment.end_line != comment.line:
    return f"{comment.line}-{comment.end_line}"
  return str(comment.line)


class TerminalFormatter(OutputFormatter):
  """Rich terminal output formatter."""

  SEVERITY_STYLES = {
    Severity.ERROR: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "dim",
  }

  def __init__(self, console: Console | None = None):
    self.console = console or Console()

  def format(self, result: ReviewResult) -> str:
    self._print_summary(result)
    self._print_comments(result)
    self._print_failures(result)
    return ""

  def _print_summary(self, result: ReviewResult) -> None:
    title = "[bold]Code Review[/bold]"
    if result.duration is not None:
      title += f" ({result.duration / 1000:.2f}s)"
    self.console.print()
    self.console.print(Panel(result.summary, title=title, border_style="blue"))

  def _print_comments(self, result: ReviewResult) -> None:
    if not result.comments:
      self.console.print("\n[green]No issues found.[/green]")
      return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Severity", width=10)
    table.add_column("File", width=30)
    table.add_column("Lines", width=9, justify="right")
    table.add_column("Rule", width=14)
    table.add_column("Issue", min_width=40)

    for comment in result.comments:
      style = self.SEVERITY_STYLES.get(comment.severity, "")
      severity_text = Text(comment.severity.value.upper(), style=style)

      message = comment.message
      if comment.suggestion:
        message += f"\n[dim]Suggestion: {comment.suggestion}[/dim]"

      table.add_row(
        severity_text,
        self._make_file_link(comment.file_path, comment.line),
        _location(comment),
        f"{comment.rule_id}\n[dim]{comment.rule_name}[/dim]",
        message,
      )

    self.console.print()
    self.console.print(table)
    self.console.print(f"\n[dim]{len(result.comments)} issue(s) found[/dim]")

  def _print_failures(self, result: ReviewResult) -> None:
    if result.failed_files:
      self.console.print(
        f"[yellow]Not reviewed (failed twice): {', '.join(result.failed_files)}[/yellow]"
      )

  def _make_file_link(self, file_path: str, line: int) -> str:
    """Create a clickable file link for terminals that support hyperlinks."""
    url = f"{Path(file_path).resolve().as_uri()}:{line}"
    return f"[link={url}]{file_path}[/link]"


class JsonFormatter(OutputFormatter):
  """JSON output formatter using the camelCase wire names."""

  def format(self, result: ReviewResult) -> str:
    data = result.model_dump(by_alias=True, mode="json", exclude_none=True)
    return json.dumps(data, indent=2, ensure_ascii=False)


class MarkdownFormatter(OutputFormatter):
  """Markdown output formatter."""

  def format(self, result: ReviewResult) -> str:
    lines = [
      "# Code Review",
      "",
      "## Summary",
      "",
      result.summary,
      "",
    ]

    if result.comments:
      lines.extend(["## Issues", ""])
      for comment in result.comments:
        severity = comment.severity.value.upper()
        lines.append(f"### [{severity}] {comment.file_path}:{_location(comment)}")
        lines.append("")
        lines.append(comment.message)
        lines.append("")
        lines.append(f"**Rule:** {comment.rule_id} {comment.rule_name} ({comment.rule_level})")
        if comment.suggestion:
          lines.append("")
          lines.append(f"**Suggestion:** {comment.suggestion}")
        lines.append("")
    else:
      lines.extend(["## Issues", "", "No issues found.", ""])

    if result.failed_files:
      lines.extend(["## Not reviewed", ""])
      lines.extend(f"- {path}" for path in result.failed_files)
      lines.append("")

    return "\n".join(lines)


class GitHubFormatter(OutputFormatter):
  """GitHub Actions workflow command formatter for PR annotations."""

  LEVELS = {
    Severity.ERROR: "error",
    Severity.WARNING: "warning",
    Severity.INFO: "notice",
  }

  def format(self, result: ReviewResult) -> str:
    lines = []
    for comment in result.comments:
      level = self.LEVELS[comment.severity]
      location = f"file={comment.file_path},line={comment.line},endLine={comment.end_line}"
      title = f"{comment.rule_id}: {comment.rule_name}".replace(",", "%2C").replace("::", "%3A%3A")
      message = comment.message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
      lines.append(f"::{level} {location},title={title}::{message}")
    return "\n".join(lines)


def get_formatter(format_type: str) -> OutputFormatter:
  """Get formatter by type name."""
  formatters = {
    "terminal": TerminalFormatter,
    "json": JsonFormatter,
    "markdown": MarkdownFormatter,
    "github": GitHubFormatter,
  }
  formatter_class = formatters.get(format_type)
  if not formatter_class:
    raise ValueError(f"Unknown format: {format_type}")
  return formatter_class()
