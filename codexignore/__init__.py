"""Gitignore-style path filtering for a single project root."""

from .errors import CodexIgnoreError, IgnoreFileReadError, InvalidPatternError
from .ignore_rules import Rule, RuleSet, compile_rules
from .matcher import CodexIgnore, load

__all__ = [
    "CodexIgnore",
    "load",
    "Rule",
    "RuleSet",
    "compile_rules",
    "CodexIgnoreError",
    "IgnoreFileReadError",
    "InvalidPatternError",
]
