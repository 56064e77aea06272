"""Compilation of gitignore-style pattern text into ordered rules."""

from __future__ import annotations

import fnmatch
import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pathspec

from .errors import InvalidPatternError

logger = logging.getLogger(__name__)

CURRENT_DIR = "."


@dataclass(frozen=True)
class Rule:
    """One compiled pattern line."""

    pattern: str
    glob: tuple[str, ...]
    negated: bool
    directory_only: bool
    anchored: bool
    line_number: int
    _spec: pathspec.PathSpec = field(repr=False, compare=False)

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        """Return True if the rule matches ``rel_path`` or one of its parent directories.

        ``rel_path`` is a POSIX path relative to the root. Directories are
        presented to the glob engine with a trailing slash so directory-only
        rules can tell them apart from files of the same name.
        """

        candidate = rel_path
        if is_dir and rel_path != CURRENT_DIR and not self._contents_only:
            candidate = rel_path.rstrip("/") + "/"
        return self._spec.match_file(candidate)

    @property
    def _contents_only(self) -> bool:
        # `dir/**` matches what is inside dir, never dir itself
        return len(self.glob) > 1 and self.glob[-1] == "**" and not self.directory_only

    def could_match_below(self, rel_dir: str) -> bool:
        """Return True if the rule might match some path strictly beneath ``rel_dir``.

        Errs on the side of True; only anchored rules whose leading segments
        rule out ``rel_dir`` answer False.
        """

        if not self.anchored or any("\\" in token for token in self.glob):
            return True
        parts = rel_dir.split("/")
        for index, part in enumerate(parts):
            if index >= len(self.glob):
                return False
            token = self.glob[index]
            if token == "**":
                return True
            if not fnmatch.fnmatchcase(part, token):
                return False
        return len(self.glob) > len(parts)


class RuleSet(Sequence[Rule]):
    """Ordered, immutable list of rules in source-file order."""

    def __init__(self, rules: Sequence[Rule] = ()) -> None:
        self._rules: tuple[Rule, ...] = tuple(rules)

    def __getitem__(self, index):  # type: ignore[override]
        return self._rules[index]

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __repr__(self) -> str:
        return f"RuleSet({[rule.pattern for rule in self._rules]!r})"

    def match(self, rel_path: str, is_dir: bool) -> Rule | None:
        """Return the deciding rule for ``rel_path``, or ``None`` when nothing matches."""

        # last match wins, so scan from the end
        for rule in reversed(self._rules):
            if rule.matches(rel_path, is_dir):
                return rule
        return None

    def can_rescue_below(self, rel_dir: str, deciding: Rule) -> bool:
        """Return True if a negated rule after ``deciding`` could re-include a path under ``rel_dir``."""

        return any(
            rule.negated and rule.line_number > deciding.line_number and rule.could_match_below(rel_dir)
            for rule in self._rules
        )


def _strip_trailing_whitespace(line: str) -> str:
    stripped = line.rstrip(" \t")
    if len(stripped) < len(line) and _ends_with_escape(stripped):
        stripped += line[len(stripped)]
    return stripped


def _ends_with_escape(text: str) -> bool:
    return (len(text) - len(text.rstrip("\\"))) % 2 == 1


def _find_unterminated_class(body: str) -> bool:
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "[":
            j = i + 1
            if j < len(body) and body[j] in "!^":
                j += 1
            # a ']' right after the opener is a literal member
            if j < len(body) and body[j] == "]":
                j += 1
            while j < len(body) and body[j] != "]":
                j += 2 if body[j] == "\\" else 1
            if j >= len(body):
                return True
            i = j + 1
            continue
        i += 1
    return False


def _compile_line(line: str, line_number: int) -> Rule | None:
    text = _strip_trailing_whitespace(line)
    if not text or text.startswith("#"):
        return None

    negated = text.startswith("!")
    body = text[1:] if negated else text
    directory_only = body.endswith("/") and not _ends_with_escape(body[:-1])
    if directory_only:
        body = body[:-1]

    glob = tuple(segment for segment in body.split("/") if segment)
    if not glob:
        logger.debug("skipping empty pattern on line %d: %r", line_number, text)
        return None

    if _find_unterminated_class(body):
        raise InvalidPatternError(line_number, text, "unterminated character class")

    source = body + ("/" if directory_only else "")
    if source.startswith(("#", "!")):
        source = "\\" + source
    try:
        spec = pathspec.PathSpec.from_lines("gitwildmatch", [source])
    except ValueError as exc:
        raise InvalidPatternError(line_number, text, str(exc)) from exc

    return Rule(
        pattern=text,
        glob=glob,
        negated=negated,
        directory_only=directory_only,
        anchored="/" in body,
        line_number=line_number,
        _spec=spec,
    )


def compile_rules(root: Path, text: str) -> RuleSet:
    """Compile raw ignore-file text into a :class:`RuleSet`.

    Blank lines and ``#`` comments are skipped; every other line becomes one
    :class:`Rule`, kept in file order. Raises :class:`InvalidPatternError`
    for malformed glob syntax.
    """

    if text.startswith("\ufeff"):
        text = text[1:]
    rules: list[Rule] = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        rule = _compile_line(line, line_number)
        if rule is not None:
            rules.append(rule)
    logger.debug("compiled %d ignore rules for %s", len(rules), root)
    return RuleSet(rules)
