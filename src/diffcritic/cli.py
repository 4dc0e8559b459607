"""CLI interface using Typer."""

import logging
import os
import traceback
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from diffcritic import __version__
from diffcritic.batching import PartitionError
from diffcritic.diff import GitError
from diffcritic.output import get_formatter
from diffcritic.providers.registry import ProviderNotFoundError, ProviderUnavailableError
from diffcritic.review import run_review

app = typer.Typer(
  name="diffcritic",
  help="Review git diffs with an LLM against rule catalogs",
  no_args_is_help=False,
)

console = Console()
err_console = Console(stderr=True)

_KNOWN_ERRORS = (
  GitError,
  PartitionError,
  ProviderNotFoundError,
  ProviderUnavailableError,
  FileNotFoundError,
  ValidationError,
)


def _is_debug() -> bool:
  return os.environ.get("DIFFCRITIC_DEBUG", "").lower() in ("1", "true", "yes")


def _setup_logging(verbose: bool, debug: bool) -> None:
  level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
  logging.basicConfig(
    level=level,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(console=err_console, show_path=debug)],
    force=True,
  )
  # SDK transports log every request at INFO
  for name in ("httpx", "httpcore", "openai", "anthropic"):
    logging.getLogger(name).setLevel(max(level, logging.WARNING))


def version_callback(value: bool) -> None:
  if value:
    console.print(f"diffcritic {__version__}")
    raise typer.Exit()


@app.command()
def main(
  base: str = typer.Option(None, "--base", help="Base ref; review the branch against it instead of staged changes"),
  branch: str = typer.Option("HEAD", "--branch", "-b", help="Branch to review against base"),
  rules: Optional[list[Path]] = typer.Option(
    None, "--rules", "-r", help="Extra rule catalog JSON file (repeatable)"
  ),
  provider: str = typer.Option(
    None, "--provider", "-p", help="LLM provider (openai, anthropic, gemini, moonshot, custom, ollama)"
  ),
  model: str = typer.Option(None, "--model", "-m", help="Model to use"),
  max_continuations: int = typer.Option(
    None, "--max-continuations", min=0, help="Continuation requests allowed per batch"
  ),
  format_type: str = typer.Option(
    "terminal", "--format", help="Output format: terminal, json, markdown, github"
  ),
  config: Path = typer.Option(None, "--config", "-c", help="Config file path"),
  exit_code: bool = typer.Option(
    False, "--exit-code", help="Exit with status 1 when error-severity comments are found"
  ),
  verbose: bool = typer.Option(False, "--verbose", help="Log progress"),
  debug: bool = typer.Option(False, "--debug", "-d", help="Debug logging and full traceback on errors"),
  version: bool = typer.Option(None, "--version", "-v", callback=version_callback, is_eager=True),
) -> None:
  """Review code changes using an LLM.

  With no --base, reviews staged git changes.
  """
  show_traceback = debug or _is_debug()
  _setup_logging(verbose, show_traceback)

  try:
    formatter = get_formatter(format_type)
    result = run_review(
      base=base,
      branch=branch,
      provider=provider,
      model=model,
      config_path=config,
      rule_files=[str(p) for p in rules] if rules else None,
      max_continuations=max_continuations,
    )
  except _KNOWN_ERRORS as e:
    err_console.print(f"[red]Error:[/red] {e}")
    raise typer.Exit(1) from None
  except Exception as e:
    err_console.print(f"[red]Error:[/red] {e}")
    if show_traceback:
      err_console.print("\n[dim]Traceback:[/dim]")
      err_console.print(traceback.format_exc(), markup=False)
    raise typer.Exit(1) from None

  output = formatter.format(result)
  if output:
    console.print(output, markup=False, highlight=False, soft_wrap=True)

  if exit_code and result.has_blocking_issues:
    raise typer.Exit(1)


if __name__ == "__main__":
  app()
