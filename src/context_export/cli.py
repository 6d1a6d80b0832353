# /// script
# requires-python = ">=3.11"
# dependencies = [
#     "pydantic",
#     "python-dotenv",
#     "pyyaml",
#     "structlog",
# ]
# ///
"""
context_export — Package the current project directory for an LLM.

Overview
--------
Four reports are written to a timestamped set of files in the output
directory (``context_exports/`` by default):

1) **Directory structure** — a tree with per-directory file/dir counts and
   cumulative sizes, an extension frequency table and the ten directories
   holding the most files.

2) **Content export** — every file's content (or a marker for binary, empty
   and unreadable files), packed into ``partN`` files that each stay under
   the configured token budget. A file is never split across parts.

3) **Infrastructure audit** and 4) **Integration inventory** — pattern-table
   scans over file names and contents.

Rules from ``.gitignore`` are honored unless ``--ignore-gitignore`` is given,
which only affects the content export. A fixed set of universal rules
(VCS folders, virtualenvs, build output, ...) always applies.

Usage
-----
    uv run python -m context_export --token-limit 100000
    uv run python -m context_export --ignore-gitignore --log-file export.log
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from context_export import __version__
from context_export.exceptions import OutputDirectoryError
from context_export.export import (
    ExportContext,
    collect_errors,
    render_dashboard,
    run_export,
    write_error_log,
)
from context_export.file_manipulation import now_iso
from context_export.logging import logger, setup_logging
from context_export.settings import Settings, env_overrides

if TYPE_CHECKING:
    from collections.abc import Sequence


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    """Parse command-line flags into validated settings.

    Values come from, in increasing precedence: model defaults,
    `CONTEXT_EXPORT_*` variables (from `.env` or the environment), and flags.

    Args:
        argv (Sequence[str] | None): the arguments, defaults to `sys.argv[1:]`

    Returns:
        Settings: the validated settings
    """
    p = argparse.ArgumentParser(
        prog="context-export",
        description="Export a project as bounded text reports for LLM consumption.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--root", dest="repo", type=str, default=None, help="Project root (default: cwd).")
    p.add_argument(
        "--token-limit",
        type=int,
        default=None,
        help="Token budget per content part (default: 200000).",
    )
    p.add_argument(
        "--ignore-gitignore",
        action="store_true",
        default=None,
        help="Ignore the rule file for the content export only.",
    )
    p.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Output directory, relative to the root (default: context_exports).",
    )
    p.add_argument("--ignore-file", type=str, default=None, help="Ignore-rule file (default: .gitignore).")
    p.add_argument(
        "--max-scan-bytes",
        type=int,
        default=None,
        help="Skip files above this size in the content scanners.",
    )
    p.add_argument(
        "--scan-ext",
        dest="scan_extensions",
        action="append",
        default=None,
        help="Extension scanned for patterns (repeatable, replaces the defaults).",
    )
    p.add_argument("--log-file", type=str, default=None, help="Log file path.")
    args = p.parse_args(argv)

    explicit = {k: v for k, v in vars(args).items() if v is not None}
    try:
        return Settings(**{**env_overrides(), **explicit})
    except ValidationError as e:
        p.error(str(e))


def prepare_output_dir(root: Path, settings: Settings) -> Path:
    """Create the output directory.

    Args:
        root (Path): the resolved project root
        settings (Settings): the run settings

    Raises:
        OutputDirectoryError: if the directory cannot be created

    Returns:
        Path: the absolute output directory
    """
    out = settings.resolve_output_dir(root)
    try:
        out.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputDirectoryError(folder=out, reason=str(e)) from e
    return out


def main(argv: Sequence[str] | None = None) -> int:
    settings = parse_args(argv)
    if settings.log_file:
        setup_logging(settings.log_file)

    root = Path(settings.repo).resolve()
    try:
        output_dir = prepare_output_dir(root, settings)
    except OutputDirectoryError as e:
        logger.error("setup failed", folder=str(e.folder), reason=e.reason)
        print(e, file=sys.stderr)
        return 1

    ctx = ExportContext.create(
        settings=settings,
        root=root,
        output_dir=output_dir,
        stamp=datetime.now().strftime("%Y%m%d_%H%M%S"),  # noqa: DTZ005
        generated_at=now_iso(),
    )
    logger.info("export started", root=str(root), output_dir=str(output_dir), token_limit=settings.token_limit)

    results = run_export(ctx)
    errors = collect_errors(results)
    try:
        error_log = write_error_log(ctx, errors)
    except OSError as e:
        logger.exception("error log not written", error=str(e))
        error_log = None

    print(render_dashboard(results, error_log))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
