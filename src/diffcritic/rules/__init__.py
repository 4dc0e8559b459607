"""Rule catalogs and comment normalization."""

from diffcritic.rules.catalog import RuleCatalog, load_catalog, load_rule_set
from diffcritic.rules.normalizer import CommentValidationError, normalize_comment

__all__ = [
  "CommentValidationError",
  "RuleCatalog",
  "load_catalog",
  "load_rule_set",
  "normalize_comment",
]
