from __future__ import annotations

import fnmatch
import io
import re
from functools import cache
from importlib import resources
from typing import TYPE_CHECKING, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from context_export.classifier import ContentKind, classify
from context_export.exceptions import PatternTableError
from context_export.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from context_export.config import FileRecord, ProjectListing
    from context_export.settings import Settings

INFRASTRUCTURE_TABLE = "infrastructure"
INTEGRATIONS_TABLE = "integrations"


class PatternTable(BaseModel):
    """Static scanner configuration: category name to match expressions.

    Attributes:
        title: Report title.
        file_patterns: Filename globs per category, matched case-insensitively.
        content_patterns: Regular expressions per category, searched case-insensitively.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    title: str
    file_patterns: dict[str, list[str]] = Field(default_factory=dict)
    content_patterns: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("content_patterns")
    @classmethod
    def _check_regexes(cls, value: dict[str, list[str]]) -> dict[str, list[str]]:
        for category, patterns in value.items():
            for pattern in patterns:
                try:
                    re.compile(pattern)
                except re.error as e:
                    msg = f"invalid regex in {category!r}: {pattern!r} ({e})"
                    raise ValueError(msg) from e
        return value

    def compiled(self) -> dict[str, list[tuple[str, re.Pattern[str]]]]:
        """Compile the content patterns, keeping their source text."""
        return {
            category: [(p, re.compile(p, re.IGNORECASE | re.MULTILINE)) for p in patterns]
            for category, patterns in self.content_patterns.items()
        }


class Finding(BaseModel):
    """One scanner hit."""

    model_config = ConfigDict(frozen=True)

    category: str
    rel: str
    source: Literal["filename", "content"]
    pattern: str
    line: int | None = None


class ScanResult(BaseModel):
    """Aggregated output of one scanner pass."""

    model_config = ConfigDict(frozen=True)

    findings: tuple[Finding, ...] = ()
    counts: dict[str, int] = Field(default_factory=dict)
    files_scanned: int = 0
    unreadable: int = 0


@cache
def load_pattern_table(name: str) -> PatternTable:
    """Load a pattern table shipped with the package.

    Args:
        name (str): the table name, e.g. "infrastructure"

    Raises:
        PatternTableError: if the table is missing, malformed or holds an invalid regex

    Returns:
        PatternTable: the validated table
    """
    resource = resources.files("context_export") / "patterns" / f"{name}.yaml"
    try:
        data = yaml.safe_load(resource.read_text(encoding="utf-8")) or {}
        return PatternTable.model_validate(data)
    except FileNotFoundError as e:
        raise PatternTableError(name=name, reason="table not found") from e
    except (yaml.YAMLError, ValidationError) as e:
        raise PatternTableError(name=name, reason=str(e)) from e


def match_filename(name: str, table: PatternTable) -> list[tuple[str, str]]:
    """Return the (category, glob) pairs whose first glob matches `name`."""
    low = name.lower()
    hits: list[tuple[str, str]] = []
    for category, globs in table.file_patterns.items():
        for g in globs:
            if fnmatch.fnmatch(low, g.lower()):
                hits.append((category, g))
                break
    return hits


def is_scan_candidate(rec: FileRecord, settings: Settings) -> bool:
    """Whether a file's contents should be searched."""
    allowed = {e.lower() for e in settings.scan_extensions}
    return rec.size <= settings.max_scan_bytes and rec.extension in allowed


def scan_project(listing: ProjectListing, table: PatternTable, settings: Settings) -> ScanResult:
    """Run a pattern table over a filtered listing.

    Filenames of every listed file are matched against the glob table.
    Contents of the size- and extension-capped candidates are searched with
    the regex table; only the first matching pattern per file and category
    is recorded.

    Args:
        listing (ProjectListing): the filtered enumeration
        table (PatternTable): the scanner configuration
        settings (Settings): the run settings (size cap and extension allowlist)

    Returns:
        ScanResult: the findings and per-category counts
    """
    compiled = table.compiled()
    findings: list[Finding] = []
    scanned = 0
    unreadable = 0

    for rec in listing.records:
        name = rec.rel.rsplit("/", 1)[-1]
        findings.extend(
            Finding(category=category, rel=rec.rel, source="filename", pattern=g)
            for category, g in match_filename(name, table)
        )
        if not is_scan_candidate(rec, settings):
            continue
        content = classify(rec.path)
        if content.is_error:
            unreadable += 1
            logger.warning("scan skipped unreadable file", path=rec.rel, kind=str(content.kind))
            continue
        if content.kind is not ContentKind.TEXT:
            continue
        scanned += 1
        for category, patterns in compiled.items():
            for source, rx in patterns:
                m = rx.search(content.text)
                if m:
                    line = content.text.count("\n", 0, m.start()) + 1
                    findings.append(Finding(category=category, rel=rec.rel, source="content", pattern=source, line=line))
                    break

    counts: dict[str, int] = {}
    for f in findings:
        counts[f.category] = counts.get(f.category, 0) + 1
    return ScanResult(findings=tuple(findings), counts=counts, files_scanned=scanned, unreadable=unreadable)


def _sorted_findings(findings: Sequence[Finding]) -> list[Finding]:
    return sorted(findings, key=lambda f: (f.category.lower(), f.rel.lower(), f.source))


def build_scan_report(result: ScanResult, table: PatternTable, root: str, generated_at: str) -> str:
    """Render a scanner result as a plain-text report.

    Args:
        result (ScanResult): the scan output
        table (PatternTable): the table that produced it (for the title and category order)
        root (str): the project root
        generated_at (str): the run timestamp

    Returns:
        str: the report text
    """
    out = io.StringIO()
    out.write(f"{table.title} REPORT\n")
    out.write(f"Generated: {generated_at}\n")
    out.write(f"Root: {root}\n")
    out.write(f"Files scanned: {result.files_scanned}\n")
    out.write(f"Unreadable files: {result.unreadable}\n")
    out.write(f"Findings: {len(result.findings)}\n\n")

    out.write("SUMMARY BY CATEGORY\n")
    if not result.counts:
        out.write("  (no matches)\n")
    for category, count in sorted(result.counts.items(), key=lambda kv: (-kv[1], kv[0].lower())):
        out.write(f"  {category:<30} {count:>6}\n")
    out.write("\n")

    out.write("DETAILS\n")
    for f in _sorted_findings(result.findings):
        where = f.rel if f.line is None else f"{f.rel}:{f.line}"
        out.write(f"  [{f.category}] {where} ({f.source}: {f.pattern})\n")
    return out.getvalue()
