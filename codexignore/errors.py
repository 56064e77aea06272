"""Exceptions raised while loading ignore rules."""

from __future__ import annotations

from pathlib import Path


class CodexIgnoreError(Exception):
    """Base exception for ignore file handling."""

    pass


class IgnoreFileReadError(CodexIgnoreError):
    """Raised when the ignore file exists but cannot be read or decoded."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"cannot read ignore file {path}: {reason}")
        self.path = path
        self.reason = reason


class InvalidPatternError(CodexIgnoreError):
    """Raised when a pattern line has malformed glob syntax."""

    def __init__(self, line_number: int, pattern: str, reason: str) -> None:
        super().__init__(f"line {line_number}: invalid pattern {pattern!r}: {reason}")
        self.line_number = line_number
        self.pattern = pattern
        self.reason = reason
