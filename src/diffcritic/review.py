"""Core review orchestration."""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Sequence

from rich.console import Console

from diffcritic.batching import Batch, partition_files
from diffcritic.completion import CompletionDriver
from diffcritic.config import Settings, load_config
from diffcritic.diff import extract_branch_diff, extract_staged_diff
from diffcritic.models import FileDiff, ReviewComment, ReviewResult, Severity
from diffcritic.providers import (
  AdapterRegistry,
  LLMAdapter,
  detect_provider,
  get_adapter,
  require_available,
)
from diffcritic.providers.parser import extract_review
from diffcritic.providers.prompt import build_review_prompt, build_system_prompt
from diffcritic.rules import RuleCatalog, load_catalog

logger = logging.getLogger(__name__)

_console = Console(stderr=True)

FALLBACK_PROVIDER = "openai"


class IncompleteResponseError(Exception):
  """Output stayed truncated and yielded no comments."""


@dataclass(frozen=True)
class BatchFailure:
  """A batch whose review raised, with the error it raised."""

  batch: Batch
  error: Exception


class ReviewOrchestrator:
  """Reviews file diffs batch by batch with one adapter.

  Batches run sequentially. A batch that fails for any reason is retried
  once after all batches have been attempted; files of batches that fail
  twice are reported in ``failed_files``.
  """

  def __init__(
    self,
    settings: Settings,
    adapter: LLMAdapter,
    api_key: str | None,
    catalog: RuleCatalog | None = None,
    sleep: Callable[[float], None] = time.sleep,
  ):
    self.settings = settings
    self.adapter = adapter
    self.api_key = api_key
    self.catalog = catalog
    self.model = settings.model or adapter.DEFAULT_MODEL
    self._sleep = sleep

  def review(self, file_diffs: Sequence[FileDiff]) -> ReviewResult:
    started = datetime.now(timezone.utc)
    clock = time.monotonic()

    files = self._filter(file_diffs)
    if not files:
      return self._finish(
        ReviewResult(summary=self._empty_summary(file_diffs)), started, clock
      )

    catalog = self.catalog if self.catalog is not None else load_catalog(
      self.settings.rule_files, self.settings.include_builtin_rules
    )
    rules_text = catalog.render()
    system_prompt = build_system_prompt()

    batches = partition_files(
      files,
      fixed_prompt_text=system_prompt + build_review_prompt([], rules_text),
      context_limit=self.adapter.context_limit(self.model),
      reserved_output_tokens=self.settings.max_tokens,
      safety_margin=self.settings.safety_margin,
    )
    logger.info("Reviewing %d file(s) in %d batch(es)", len(files), len(batches))

    driver = CompletionDriver(
      self.adapter,
      api_key=self.api_key,
      model=self.model,
      temperature=self.settings.temperature,
      max_tokens=self.settings.max_tokens,
      max_continuations=self.settings.max_continuations,
      delay=self.settings.continuation_delay,
      sleep=self._sleep,
    )

    comments: list[ReviewComment] = []
    failures = self._run_batches(
      batches, driver, catalog, system_prompt, rules_text, comments
    )

    if failures:
      logger.info("Retrying %d failed batch(es)", len(failures))
      failures = self._run_batches(
        [f.batch for f in failures], driver, catalog, system_prompt, rules_text, comments
      )

    failed_files: list[str] = []
    for failure in failures:
      logger.error(
        "Batch %d failed after retry: %s", failure.batch.index + 1, failure.error
      )
      failed_files.extend(failure.batch.file_paths)

    result = ReviewResult(
      comments=comments,
      summary=self._summary(len(files), len(batches), comments, len(failures)),
      failed_files=failed_files,
    )
    return self._finish(result, started, clock)

  def _run_batches(
    self,
    batches: Sequence[Batch],
    driver: CompletionDriver,
    catalog: RuleCatalog,
    system_prompt: str,
    rules_text: str,
    comments: list[ReviewComment],
  ) -> list[BatchFailure]:
    failures: list[BatchFailure] = []
    for batch in batches:
      try:
        comments.extend(
          self._review_batch(batch, driver, catalog, system_prompt, rules_text)
        )
      except Exception as e:
        logger.error("Batch %d failed: %s", batch.index + 1, e)
        failures.append(BatchFailure(batch, e))
    return failures

  def _review_batch(
    self,
    batch: Batch,
    driver: CompletionDriver,
    catalog: RuleCatalog,
    system_prompt: str,
    rules_text: str,
  ) -> list[ReviewComment]:
    label = f"batch {batch.index + 1}"
    messages = [
      {"role": "system", "content": system_prompt},
      {"role": "user", "content": build_review_prompt(batch.files, rules_text)},
    ]

    with _console.status(
      f"Reviewing {label} ({len(batch.files)} file(s)) with {self.adapter.name}..."
    ):
      completion = driver.complete(messages, label=label)

    extracted = extract_review(completion.text, catalog)
    if not completion.is_complete:
      if not extracted.comments:
        raise IncompleteResponseError(
          f"{label}: response truncated after {completion.calls} call(s) with no comments"
        )
      logger.warning(
        "%s: response truncated, keeping %d recovered comment(s)",
        label, len(extracted.comments),
      )

    logger.info(
      "%s: %d comment(s) via %s parsing", label, len(extracted.comments), extracted.strategy
    )
    return extracted.comments

  def _filter(self, file_diffs: Sequence[FileDiff]) -> list[FileDiff]:
    extensions = [
      ext if ext.startswith(".") else f".{ext}" for ext in self.settings.extensions
    ]
    if not extensions:
      return list(file_diffs)
    return [f for f in file_diffs if f.file_path.endswith(tuple(extensions))]

  def _empty_summary(self, file_diffs: Sequence[FileDiff]) -> str:
    if not file_diffs:
      return "No changes to review."
    return (
      f"No files matching {', '.join(self.settings.extensions)} "
      f"among {len(file_diffs)} changed file(s)."
    )

  @staticmethod
  def _summary(
    file_count: int,
    batch_count: int,
    comments: list[ReviewComment],
    failed_batches: int,
  ) -> str:
    counts = {s: sum(1 for c in comments if c.severity == s) for s in Severity}
    summary = (
      f"Reviewed {file_count} file(s) in {batch_count} batch(es): "
      f"{len(comments)} comment(s) ({counts[Severity.ERROR]} error, "
      f"{counts[Severity.WARNING]} warning, {counts[Severity.INFO]} info)."
    )
    if failed_batches:
      summary += f" {failed_batches} batch(es) failed."
    return summary

  @staticmethod
  def _finish(result: ReviewResult, started: datetime, clock: float) -> ReviewResult:
    result.start_time = started.isoformat()
    result.end_time = datetime.now(timezone.utc).isoformat()
    result.duration = int((time.monotonic() - clock) * 1000)
    return result


def run_review(
  base: str | None = None,
  branch: str = "HEAD",
  provider: str | None = None,
  model: str | None = None,
  config_path: Path | None = None,
  rule_files: list[str] | None = None,
  max_continuations: int | None = None,
  cwd: Path | None = None,
) -> ReviewResult:
  """Run a review of staged changes, or of ``branch`` against ``base``."""
  settings = load_config(config_path).model_copy(deep=True)

  if provider:
    settings.provider = provider
  if model:
    settings.model = model
  if rule_files:
    settings.rule_files = [*settings.rule_files, *rule_files]
  if max_continuations is not None:
    settings.max_continuations = max_continuations

  if base:
    file_diffs = extract_branch_diff(base, branch, cwd)
  else:
    file_diffs = extract_staged_diff(cwd)

  if not file_diffs:
    return ReviewResult(summary="No changes to review.")

  AdapterRegistry.load_all()
  name = settings.provider or detect_provider(settings.base_url) or FALLBACK_PROVIDER
  adapter = get_adapter(name, settings.base_url)
  api_key = require_available(adapter)
  logger.info("Using provider %s", adapter.name)

  orchestrator = ReviewOrchestrator(settings, adapter, api_key)
  return orchestrator.review(file_diffs)
