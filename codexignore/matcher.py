"""Path matcher that answers ignore queries for one project root."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from .config import settings
from .errors import IgnoreFileReadError
from .ignore_rules import Rule, RuleSet, compile_rules

logger = logging.getLogger(__name__)


class CodexIgnore:
    """Compiled ignore rules bound to a root directory.

    Instances never change after construction, so a single matcher can be
    shared by any number of threads walking the same tree.
    """

    __slots__ = ("_root", "_rules")

    def __init__(self, root: str | Path, rules: RuleSet) -> None:
        self._root = Path(os.path.normpath(os.path.abspath(root)))
        self._rules = rules

    def __repr__(self) -> str:
        return f"CodexIgnore(root={str(self._root)!r}, rules={len(self._rules)})"

    @classmethod
    def from_text(cls, root: str | Path, text: str) -> "CodexIgnore":
        """Compile ``text`` and bind the resulting rules to ``root``."""

        return cls(root, compile_rules(Path(root), text))

    @classmethod
    def load_from_root(cls, root: str | Path, *, file_name: str | None = None) -> "CodexIgnore | None":
        """Load the ignore file from ``root``.

        Returns ``None`` when the file does not exist. Raises
        :class:`IgnoreFileReadError` if it exists but cannot be read, and
        :class:`InvalidPatternError` if a pattern is malformed.
        """

        path = Path(root) / file_name if file_name else settings.ignore_file_for(root)
        if not path.exists():
            logger.debug("no ignore file at %s", path)
            return None
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise IgnoreFileReadError(path, exc.strerror or str(exc)) from exc
        except UnicodeDecodeError as exc:
            raise IgnoreFileReadError(path, f"not valid UTF-8 ({exc.reason})") from exc
        matcher = cls.from_text(root, text)
        logger.info("loaded %d ignore rules from %s", len(matcher.rules), path)
        return matcher

    @property
    def root(self) -> Path:
        return self._root

    @property
    def rules(self) -> RuleSet:
        return self._rules

    def is_file_ignored(self, path: str | Path) -> bool:
        """Return True when the file at ``path`` should be skipped."""

        return self._is_ignored(path, is_dir=False)

    def is_dir_ignored(self, path: str | Path) -> bool:
        """Return True when the directory at ``path`` should be skipped."""

        return self._is_ignored(path, is_dir=True)

    def relative_path(self, path: str | Path) -> Path | None:
        """Return ``path`` relative to the root, or ``None`` if it lies outside it."""

        try:
            return self._to_absolute(path).relative_to(self._root)
        except ValueError:
            return None

    def explain(self, path: str | Path, is_dir: bool = False) -> Rule | None:
        """Return the rule that decides the verdict for ``path``, if any."""

        rel = self.relative_path(path)
        if rel is None:
            return None
        return self._rules.match(rel.as_posix(), is_dir)

    def can_prune(self, path: str | Path) -> bool:
        """Return True when the directory is ignored and nothing beneath it can be re-included.

        A walker may skip such a directory without descending; any other
        ignored directory has to be walked so later negations can apply.
        """

        rel = self.relative_path(path)
        if rel is None:
            return False
        rel_posix = rel.as_posix()
        rule = self._rules.match(rel_posix, True)
        if rule is None or rule.negated:
            return False
        return not self._rules.can_rescue_below(rel_posix, rule)

    def _is_ignored(self, path: str | Path, is_dir: bool) -> bool:
        rule = self.explain(path, is_dir)
        return rule is not None and not rule.negated

    def _to_absolute(self, path: str | Path) -> Path:
        path = Path(path)
        if not path.is_absolute():
            path = self._root / path
        return Path(os.path.normpath(path))


def load(root: str | Path, *, file_name: str | None = None) -> CodexIgnore | None:
    """Shorthand for :meth:`CodexIgnore.load_from_root`."""

    return CodexIgnore.load_from_root(root, file_name=file_name)
