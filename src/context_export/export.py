"""Reporting passes and their aggregation.

Each pass runs to completion, writes its artifact(s) and returns a
`PassResult`. A pass that raises is turned into a failed result by
`run_pass`, so one broken pass never prevents the others from running.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from context_export.classifier import ContentKind, classify
from context_export.file_manipulation import render_entry, walk_project
from context_export.filters import PathFilter, load_ignore_file
from context_export.logging import logger
from context_export.packer import FileEntry, HeaderInfo, pack
from context_export.scanners import (
    INFRASTRUCTURE_TABLE,
    INTEGRATIONS_TABLE,
    build_scan_report,
    load_pattern_table,
    scan_project,
)
from context_export.settings import Settings  # noqa: TC001
from context_export.tree import build_structure_report

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    PassFn = Callable[["ExportContext"], "PassResult"]

STRUCTURE = "Directory structure"
CONTENT = "Content export"
INFRASTRUCTURE = "Infrastructure audit"
INTEGRATIONS = "Integration inventory"


class ExportContext(BaseModel):
    """Everything a pass needs, computed once per run."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    settings: Settings
    root: Path
    output_dir: Path
    stamp: str
    generated_at: str
    path_filter: PathFilter
    content_filter: PathFilter

    @classmethod
    def create(cls, settings: Settings, root: Path, output_dir: Path, stamp: str, generated_at: str) -> ExportContext:
        """Load the ignore file and bind both filters to `root`."""
        caller_rules = load_ignore_file(root / settings.ignore_file)
        path_filter = PathFilter(root=root, caller_rules=caller_rules)
        try:
            out_rel = output_dir.resolve().relative_to(root.resolve())
        except ValueError:
            out_rel = None
        if out_rel is not None and str(out_rel) != ".":
            path_filter = path_filter.with_extra_universal([f"/{out_rel.as_posix()}/"])
        content_filter = path_filter.without_caller_rules() if settings.ignore_gitignore else path_filter
        return cls(
            settings=settings,
            root=root,
            output_dir=output_dir,
            stamp=stamp,
            generated_at=generated_at,
            path_filter=path_filter,
            content_filter=content_filter,
        )

    def output_path(self, suffix: str) -> Path:
        return self.output_dir / f"{self.stamp}_{suffix}.txt"


class PassResult(BaseModel):
    """Outcome of one reporting pass.

    Attributes:
        name: Human-readable pass name.
        succeeded: False when the pass raised.
        outputs: Files written by the pass.
        errors: Messages destined for the error log.
        stats: Pass-specific counters.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    succeeded: bool = True
    outputs: list[Path] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    stats: dict[str, int] = Field(default_factory=dict)


def write_text(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    logger.info("wrote report", path=str(path), chars=len(text))
    return path


def structure_pass(ctx: ExportContext) -> PassResult:
    listing = walk_project(ctx.root, ctx.path_filter)
    report = build_structure_report(listing, ctx.generated_at)
    out = write_text(ctx.output_path("structure"), report)
    return PassResult(
        name=STRUCTURE,
        outputs=[out],
        stats={"files": len(listing.records), "directories": len(listing.directories)},
    )


def content_pass(ctx: ExportContext) -> PassResult:
    """Classify, render and pack every file, then write one file per part.

    Per-file problems become in-band markers. Missing and unreadable files
    are also reported as errors.
    """
    listing = walk_project(ctx.root, ctx.content_filter)
    stats = dict.fromkeys(("files", "text", "binary", "empty", "errors", "tokens", "parts"), 0)
    errors: list[str] = []
    entries: list[FileEntry] = []

    for rec in listing.records:
        content = classify(rec.path)
        stats["files"] += 1
        if content.is_error:
            stats["errors"] += 1
            reason = "file not found" if content.kind is ContentKind.NOT_FOUND else str(content.failure)
            detail = f" ({content.detail})" if content.detail else ""
            errors.append(f"{rec.rel}: {reason}{detail}")
            logger.warning("content unreadable", path=rec.rel, reason=reason, detail=content.detail)
        else:
            stats[str(content.kind)] += 1
        entry = FileEntry.build(rec, render_entry(rec, content))
        stats["tokens"] += entry.tokens
        entries.append(entry)

    header = HeaderInfo(
        generated_at=ctx.generated_at,
        root=str(ctx.root),
        token_limit=ctx.settings.token_limit,
    )
    parts = pack(entries, ctx.settings.token_limit, header)
    outputs = [write_text(ctx.output_path(f"content_part{p.number}"), p.render()) for p in parts]
    stats["parts"] = len(parts)
    logger.info("content packed", **stats)
    return PassResult(name=CONTENT, outputs=outputs, errors=errors, stats=stats)


def _scan_pass(ctx: ExportContext, name: str, table_name: str, suffix: str) -> PassResult:
    table = load_pattern_table(table_name)
    listing = walk_project(ctx.root, ctx.path_filter)
    result = scan_project(listing, table, ctx.settings)
    report = build_scan_report(result, table, str(ctx.root), ctx.generated_at)
    out = write_text(ctx.output_path(suffix), report)
    return PassResult(
        name=name,
        outputs=[out],
        stats={"scanned": result.files_scanned, "findings": len(result.findings), "unreadable": result.unreadable},
    )


def infrastructure_pass(ctx: ExportContext) -> PassResult:
    return _scan_pass(ctx, INFRASTRUCTURE, INFRASTRUCTURE_TABLE, "infrastructure")


def integration_pass(ctx: ExportContext) -> PassResult:
    return _scan_pass(ctx, INTEGRATIONS, INTEGRATIONS_TABLE, "integrations")


PASSES: tuple[tuple[str, PassFn], ...] = (
    (STRUCTURE, structure_pass),
    (CONTENT, content_pass),
    (INFRASTRUCTURE, infrastructure_pass),
    (INTEGRATIONS, integration_pass),
)


def run_pass(name: str, fn: PassFn, ctx: ExportContext) -> PassResult:
    """Run one pass, turning any exception into a failed result."""
    try:
        return fn(ctx)
    except Exception as e:
        logger.exception("pass failed", name=name)
        return PassResult(name=name, succeeded=False, errors=[f"{name} failed: {e}"])


def run_export(ctx: ExportContext, passes: Sequence[tuple[str, PassFn]] = PASSES) -> list[PassResult]:
    """Run the reporting passes in order."""
    return [run_pass(name, fn, ctx) for name, fn in passes]


def collect_errors(results: Sequence[PassResult]) -> list[str]:
    return [err for r in results for err in r.errors]


def write_error_log(ctx: ExportContext, errors: Sequence[str]) -> Path | None:
    """Write the numbered error log; nothing is written when there are no errors."""
    if not errors:
        return None
    lines = [f"EXPORT ERRORS ({len(errors)})", f"Generated: {ctx.generated_at}", f"Root: {ctx.root}", ""]
    lines.extend(f"{i}. {err}" for i, err in enumerate(errors, start=1))
    return write_text(ctx.output_path("errors"), "\n".join(lines) + "\n")


def render_dashboard(results: Sequence[PassResult], error_log: Path | None) -> str:
    """Summarize the run for the console."""
    lines = ["", "=" * 60, "EXPORT SUMMARY", "=" * 60]
    for r in results:
        label = "[OK]    " if r.succeeded else "[FAILED]"
        if not r.succeeded:
            detail = ""
        elif len(r.outputs) == 1:
            detail = f" -> {r.outputs[0]}"
        else:
            detail = f" -> {len(r.outputs)} file(s)"
        lines.append(f"{label} {r.name}{detail}")
    content = next((r for r in results if r.name == CONTENT and r.succeeded), None)
    if content is not None:
        s = content.stats
        lines.append("")
        lines.append(
            f"Content: {s['files']} files, {s['text']} text, {s['binary']} binary, "
            f"{s['empty']} empty, {s['errors']} errors, ~{s['tokens']} tokens in {s['parts']} part(s)",
        )
    errors = collect_errors(results)
    lines.append("")
    if error_log is not None:
        lines.append(f"Errors recorded: {len(errors)} (see {error_log})")
    elif errors:
        lines.append(f"Errors recorded: {len(errors)} (error log not written)")
    else:
        lines.append("No errors recorded.")
    lines.append("=" * 60)
    return "\n".join(lines)
