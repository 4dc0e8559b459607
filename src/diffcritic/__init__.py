"""LLM-driven review of git diffs against rule catalogs."""

__version__ = "0.1.0"
