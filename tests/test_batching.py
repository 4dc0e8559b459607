"""Tests for budgeted batch partitioning."""

import pytest
from diffcritic.batching import PartitionError, available_budget, partition_files
from diffcritic.tokens import estimate_tokens


def _partition(file_diffs, costs: dict[str, int], available: int):
  """Partition with fixed costs and an empty fixed prompt."""
  return partition_files(
    file_diffs,
    fixed_prompt_text="",
    context_limit=available,
    reserved_output_tokens=0,
    safety_margin=0,
    estimate=lambda f: costs[f.file_path],
  )


class TestAvailableBudget:
  def test_subtracts_reserves(self) -> None:
    prompt = "x" * 400
    budget = available_budget(10_000, 2_000, prompt, safety_margin=500)
    assert budget == 10_000 - 2_000 - estimate_tokens(prompt) - 500

  def test_no_room_raises(self) -> None:
    with pytest.raises(PartitionError):
      available_budget(1_000, 900, "x" * 400, safety_margin=100)


class TestPartitionFiles:
  def test_mixed_costs_with_oversized_file(self, make_file_diff) -> None:
    costs = {"a.py": 3000, "b.py": 4000, "c.py": 2000, "d.py": 9000, "e.py": 1000}
    files = [make_file_diff(path) for path in costs]

    batches = _partition(files, costs, 8000)

    assert [b.file_paths for b in batches] == [
      ["a.py", "b.py"],
      ["c.py"],
      ["d.py"],
      ["e.py"],
    ]
    assert [b.index for b in batches] == [0, 1, 2, 3]
    assert batches[2].oversized
    for batch in batches:
      if not batch.oversized:
        assert batch.estimated_tokens <= 8000

  def test_covers_every_file_once_in_order(self, make_file_diff) -> None:
    costs = {f"f{i}.py": 700 + 300 * (i % 4) for i in range(12)}
    files = [make_file_diff(path) for path in costs]

    batches = _partition(files, costs, 2000)

    flattened = [path for b in batches for path in b.file_paths]
    assert flattened == list(costs)
    assert all(b.estimated_tokens <= 2000 for b in batches)

  def test_everything_fits_in_one_batch(self, make_file_diff) -> None:
    costs = {"a.py": 10, "b.py": 20}
    batches = _partition([make_file_diff(p) for p in costs], costs, 100)
    assert len(batches) == 1
    assert batches[0].estimated_tokens == 30

  def test_empty_input(self) -> None:
    assert _partition([], {}, 100) == []

  def test_oversized_first_file(self, make_file_diff) -> None:
    costs = {"big.py": 500, "small.py": 10}
    batches = _partition([make_file_diff(p) for p in costs], costs, 100)
    assert [b.file_paths for b in batches] == [["big.py"], ["small.py"]]
    assert batches[0].oversized
    assert not batches[1].oversized

  def test_default_estimator(self, make_file_diff) -> None:
    files = [make_file_diff(f"f{i}.py", 40) for i in range(5)]
    batches = partition_files(files, "", context_limit=400, reserved_output_tokens=0, safety_margin=0)
    assert sum(len(b.files) for b in batches) == 5
    assert len(batches) > 1
