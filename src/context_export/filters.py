from __future__ import annotations

import fnmatch
from enum import StrEnum, auto
from functools import cache
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from context_export.config import UNIVERSAL_IGNORE_PATTERNS
from context_export.file_manipulation import relpath
from context_export.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

_GLOB_CHARS = frozenset("*?[")


class RuleShape(StrEnum):
    """How an ignore pattern is matched against a relative path."""

    DIRECTORY = auto()
    WILDCARD = auto()
    LITERAL = auto()


class IgnoreRule(BaseModel):
    """A single ignore pattern, classified once at load time.

    Attributes:
        pattern: The normalized pattern (leading anchor and trailing "/" removed).
        shape: How the pattern is matched.
        anchored: Whether the raw pattern started with "/"; anchored rules match from the root only.
    """

    model_config = ConfigDict(frozen=True)

    pattern: str = Field(..., min_length=1, description="Normalized pattern")
    shape: RuleShape = Field(..., description="Matching semantics")
    anchored: bool = Field(default=False, description="Match from the root only")

    @classmethod
    def parse(cls, text: str) -> IgnoreRule:
        """Classify a raw gitignore-style line into an ignore rule.

        Args:
            text (str): the raw pattern, e.g. "node_modules/", "*.log" or "bin"

        Returns:
            IgnoreRule: the classified rule
        """
        raw = text.strip().replace("\\", "/")
        anchored = raw.startswith("/")
        raw = raw.lstrip("/")
        if raw.endswith("/"):
            return cls(pattern=raw.rstrip("/"), shape=RuleShape.DIRECTORY, anchored=anchored)
        if _GLOB_CHARS & set(raw):
            return cls(pattern=raw, shape=RuleShape.WILDCARD, anchored=anchored)
        return cls(pattern=raw, shape=RuleShape.LITERAL, anchored=anchored)

    def matches(self, rel: str) -> bool:
        """Check whether a normalized relative path matches this rule.

        Args:
            rel (str): a root-relative path with "/" separators

        Returns:
            bool: True if the path is matched by the rule
        """
        segments = rel.split("/")
        if self.anchored and self.shape is not RuleShape.WILDCARD:
            depth = self.pattern.count("/") + 1
            return fnmatch.fnmatch("/".join(segments[:depth]), self.pattern)
        if self.shape is RuleShape.DIRECTORY:
            if "/" in self.pattern:
                return f"/{self.pattern}/" in f"/{rel}/"
            return any(fnmatch.fnmatch(seg, self.pattern) for seg in segments)
        if self.shape is RuleShape.WILDCARD:
            return fnmatch.fnmatch(rel, self.pattern)
        lit = self.pattern
        return rel == lit or lit in segments or rel.endswith(f"/{lit}") or rel.startswith(f"{lit}/")


def normalize_rel(path: str | Path) -> str:
    """Normalize a relative path to the "/"-separated form used for matching.

    Args:
        path (str | Path): the path to normalize

    Returns:
        str: the normalized path; "" for the root itself
    """
    rel = str(path).replace("\\", "/")
    while rel.startswith("./"):
        rel = rel[2:]
    rel = rel.strip("/")
    return "" if rel == "." else rel


def should_ignore(
    path: str | Path,
    universal_rules: Sequence[IgnoreRule],
    caller_rules: Sequence[IgnoreRule],
) -> bool:
    """Decide whether a root-relative path is excluded.

    Universal rules are checked first and can never be overridden. Caller
    rules are only consulted when no universal rule matched.

    Args:
        path (str | Path): the path relative to the project root
        universal_rules (Sequence[IgnoreRule]): the always-on rules
        caller_rules (Sequence[IgnoreRule]): the optional rules (e.g. from .gitignore)

    Returns:
        bool: True if the path is ignored, False otherwise (always False for the root)
    """
    rel = normalize_rel(path)
    if not rel:
        return False
    if any(rule.matches(rel) for rule in universal_rules):
        return True
    return any(rule.matches(rel) for rule in caller_rules)


def parse_rules(lines: Iterable[str]) -> tuple[IgnoreRule, ...]:
    """Parse gitignore-style lines, dropping blanks, comments and negations.

    Args:
        lines (Iterable[str]): the raw lines

    Returns:
        tuple[IgnoreRule, ...]: the parsed rules, in file order
    """
    rules: list[IgnoreRule] = []
    for line in lines:
        s = line.strip()
        if not s or s.startswith("#"):
            continue
        if s.startswith("!"):
            logger.debug("negated ignore pattern not supported", pattern=s)
            continue
        if not s.strip("/"):
            continue
        rules.append(IgnoreRule.parse(s))
    return tuple(rules)


def load_ignore_file(path: Path) -> tuple[IgnoreRule, ...]:
    """Load ignore rules from a gitignore-style file.

    Args:
        path (Path): the rule file

    Returns:
        tuple[IgnoreRule, ...]: the rules, or an empty tuple if the file is missing or unreadable
    """
    if not path.is_file():
        return ()
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.warning("ignore file unreadable", path=str(path), error=str(e))
        return ()
    return parse_rules(text.splitlines())


@cache
def default_universal_rules() -> tuple[IgnoreRule, ...]:
    """Return the parsed always-on rule table."""
    return parse_rules(UNIVERSAL_IGNORE_PATTERNS)


class PathFilter(BaseModel):
    """Bind rule sets to a project root.

    Attributes:
        root: Absolute project root that paths are relativized against.
        universal_rules: Always-on rules.
        caller_rules: Optional rules, e.g. loaded from .gitignore.
    """

    model_config = ConfigDict(frozen=True)

    root: Path
    universal_rules: tuple[IgnoreRule, ...] = Field(default_factory=default_universal_rules)
    caller_rules: tuple[IgnoreRule, ...] = ()

    def ignores(self, path: str | Path) -> bool:
        """Check a path, absolute or relative to the root."""
        p = Path(path)
        rel = relpath(p, self.root) if p.is_absolute() else str(path)
        return should_ignore(rel, self.universal_rules, self.caller_rules)

    def without_caller_rules(self) -> PathFilter:
        """Return a filter that keeps only the universal rules."""
        return self.model_copy(update={"caller_rules": ()})

    def with_extra_universal(self, patterns: Iterable[str]) -> PathFilter:
        """Return a filter with additional always-on patterns."""
        extra = parse_rules(patterns)
        return self.model_copy(update={"universal_rules": (*self.universal_rules, *extra)})
