from __future__ import annotations

import os
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from context_export.classifier import ContentKind
from context_export.config import FileRecord, ProjectListing
from context_export.logging import logger

if TYPE_CHECKING:
    from context_export.classifier import ClassifiedContent
    from context_export.filters import PathFilter

ENTRY_RULE = "-" * 80


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
            If path is not under root, returns the original path as a string.
    """
    try:
        return str(path.relative_to(root)).replace("\\", "/")
    except ValueError:
        return str(path)


def now_iso() -> str:
    """Return the current date and time in ISO 8601 format with timezone.

    Returns:
        str: the current date and time in ISO 8601 format with timezone
    """
    return datetime.now(UTC).astimezone().isoformat(timespec="seconds")


def format_size(num_bytes: int) -> str:
    """Render a byte count with a binary unit, e.g. "1.5 KB"."""
    size = float(num_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{int(size)} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


def walk_project(root: Path, path_filter: PathFilter) -> ProjectListing:
    """Enumerate the files and directories under `root` that survive the filter.

    Ignored directories are pruned in place so `os.walk` never descends into
    them. Files whose metadata cannot be read are logged and skipped.

    Args:
        root (Path): the absolute project root
        path_filter (PathFilter): the filter deciding which paths are excluded

    Returns:
        ProjectListing: the records sorted by lower-cased relative path, and the kept directories
    """
    records: list[FileRecord] = []
    directories: list[str] = []

    def on_error(err: OSError) -> None:
        logger.warning("directory unreadable", path=str(err.filename), error=err.strerror)

    for current, dirs, files in os.walk(root, onerror=on_error):
        base = Path(current)
        kept = []
        for d in sorted(dirs, key=str.lower):
            rel = relpath(base / d, root)
            if path_filter.ignores(rel):
                continue
            kept.append(d)
            directories.append(rel)
        dirs[:] = kept
        for name in files:
            p = base / name
            rel = relpath(p, root)
            if path_filter.ignores(rel):
                continue
            try:
                st = p.stat()
            except OSError as e:
                logger.warning("skipping file", path=rel, error=str(e))
                continue
            records.append(FileRecord(path=p, rel=rel, size=st.st_size, mtime=st.st_mtime))

    return ProjectListing(
        root=root,
        records=tuple(sorted(records, key=lambda r: r.rel.lower())),
        directories=tuple(sorted(directories, key=str.lower)),
    )


def content_marker(content: ClassifiedContent) -> str:
    """Render the in-band body of a file block.

    Args:
        content (ClassifiedContent): the classification of the file

    Returns:
        str: the file text, or a bracketed marker for non-text outcomes
    """
    if content.kind is ContentKind.TEXT:
        result = content.text
    elif content.kind is ContentKind.BINARY:
        result = "[BINARY FILE - content omitted]"
    elif content.kind is ContentKind.EMPTY:
        result = "[EMPTY FILE]"
    elif content.kind is ContentKind.NOT_FOUND:
        result = "[ERROR - file not found]"
    else:
        detail = f": {content.detail}" if content.detail else ""
        result = f"[ERROR - {content.failure}{detail}]"
    return result


def render_entry(record: FileRecord, content: ClassifiedContent) -> str:
    """Render the exact block written for one file in a content part.

    Args:
        record (FileRecord): the file metadata
        content (ClassifiedContent): the classification of the file

    Returns:
        str: the header lines followed by the content or its marker
    """
    body = content_marker(content)
    if not body.endswith("\n"):
        body += "\n"
    return (
        f"{ENTRY_RULE}\n"
        f"File: {record.rel}\n"
        f"Path: {record.path}\n"
        f"Size: {record.size} bytes\n"
        f"Modified: {record.modified}\n"
        f"{ENTRY_RULE}\n"
        f"{body}\n"
    )
