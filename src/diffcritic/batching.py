"""Token-budgeted partitioning of file diffs into review batches."""

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from diffcritic.models import FileDiff
from diffcritic.tokens import estimate_file_diff_tokens, estimate_tokens

logger = logging.getLogger(__name__)

SAFETY_MARGIN = 500

CostEstimator = Callable[[FileDiff], int]


class PartitionError(Exception):
  """No room left in the context window for any diff."""


@dataclass(frozen=True)
class Batch:
  """Files submitted together in one request cycle."""

  index: int
  files: tuple[FileDiff, ...]
  estimated_tokens: int
  oversized: bool = False

  @property
  def file_paths(self) -> list[str]:
    return [f.file_path for f in self.files]


def available_budget(
  context_limit: int,
  reserved_output_tokens: int,
  fixed_prompt_text: str,
  safety_margin: int = SAFETY_MARGIN,
) -> int:
  """Tokens left for diffs once the fixed prompt and output are reserved."""
  fixed_overhead = estimate_tokens(fixed_prompt_text) + safety_margin
  available = context_limit - reserved_output_tokens - fixed_overhead
  if available <= 0:
    raise PartitionError(
      f"Context limit {context_limit} leaves no room for diffs "
      f"(output reserve {reserved_output_tokens}, fixed prompt {fixed_overhead})"
    )
  return available


def partition_files(
  file_diffs: Sequence[FileDiff],
  fixed_prompt_text: str,
  context_limit: int,
  reserved_output_tokens: int,
  *,
  safety_margin: int = SAFETY_MARGIN,
  estimate: CostEstimator = estimate_file_diff_tokens,
) -> list[Batch]:
  """Split files into ordered batches that fit the available budget.

  A file that cannot fit even on its own becomes a singleton batch flagged
  ``oversized``; it is still reviewed rather than dropped.
  """
  available = available_budget(
    context_limit, reserved_output_tokens, fixed_prompt_text, safety_margin
  )
  logger.info(
    "Context limit %d tokens, reserved %d for output, %d available for diffs",
    context_limit, reserved_output_tokens, available,
  )

  batches: list[Batch] = []
  current: list[FileDiff] = []
  current_tokens = 0

  def close() -> None:
    nonlocal current, current_tokens
    if current:
      batches.append(Batch(len(batches), tuple(current), current_tokens))
    current = []
    current_tokens = 0

  for file_diff in file_diffs:
    cost = estimate(file_diff)

    if cost > available:
      close()
      logger.warning(
        "%s needs %d tokens, more than the %d available; reviewing it alone",
        file_diff.file_path, cost, available,
      )
      batches.append(Batch(len(batches), (file_diff,), cost, oversized=True))
      continue

    if current and current_tokens + cost > available:
      close()

    current.append(file_diff)
    current_tokens += cost

  close()
  return batches
