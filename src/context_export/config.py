"""Static tables and records shared by the filters, the passes and the scanners."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, computed_field

DEFAULT_OUTPUT_DIR = "context_exports"

# Always-on ignore table. Trailing "/" marks a directory rule, a glob
# metacharacter a wildcard rule, anything else a literal rule.
UNIVERSAL_IGNORE_PATTERNS: tuple[str, ...] = (
    ".git/",
    ".hg/",
    ".svn/",
    ".venv/",
    "venv/",
    "env/",
    "__pycache__/",
    ".mypy_cache/",
    ".ruff_cache/",
    ".pytest_cache/",
    ".tox/",
    ".ipynb_checkpoints/",
    "node_modules/",
    "bower_components/",
    ".next/",
    ".nuxt/",
    ".terraform/",
    ".idea/",
    ".vscode/",
    ".vs/",
    "dist/",
    "build/",
    "*.egg-info/",
    "coverage/",
    "htmlcov/",
    f"{DEFAULT_OUTPUT_DIR}/",
    "bin",
    "obj",
    ".DS_Store",
    "Thumbs.db",
    ".env",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "poetry.lock",
    "uv.lock",
    "*.pyc",
    "*.pyo",
    "*.class",
    "*.o",
    "*.so",
    "*.dll",
    "*.exe",
    "*.min.js",
    "*.min.css",
    "*.map",
)

DEFAULT_SCAN_EXTENSIONS: tuple[str, ...] = (
    ".py",
    ".js",
    ".jsx",
    ".mjs",
    ".ts",
    ".tsx",
    ".json",
    ".yaml",
    ".yml",
    ".toml",
    ".ini",
    ".cfg",
    ".conf",
    ".tf",
    ".tfvars",
    ".hcl",
    ".sh",
    ".ps1",
    ".psm1",
    ".go",
    ".java",
    ".kt",
    ".cs",
    ".rb",
    ".php",
    ".rs",
    ".xml",
    ".properties",
    ".gradle",
    ".sql",
)

BINARY_SNIFF_BYTES = 1024

CHARS_PER_TOKEN = 4
TOKEN_SAFETY_MARGIN = 1.1
BUFFER_RATIO = 0.9

TOP_DIRECTORIES = 10


class FileRecord(BaseModel):
    """Metadata of one enumerated file.

    Attributes:
        path: Absolute path to the file on disk.
        rel: Path relative to the project root, "/"-separated.
        size: File size in bytes.
        mtime: POSIX mtime (float seconds since epoch).
    """

    model_config = ConfigDict(frozen=True)

    path: Path = Field(..., description="Absolute file path")
    rel: str = Field(..., description="File path relative to the project root")
    size: int = Field(..., ge=0, description="File size in bytes")
    mtime: float = Field(..., description="POSIX modification time (seconds)")

    @computed_field
    @property
    def extension(self) -> str:
        """Lower-cased suffix, empty when the file has none."""
        return self.path.suffix.lower()

    @computed_field
    @property
    def modified(self) -> str:
        """Modification time as a local ISO-8601 timestamp."""
        return datetime.fromtimestamp(self.mtime, tz=UTC).astimezone().isoformat(timespec="seconds")


class ProjectListing(BaseModel):
    """Filtered enumeration of a project tree.

    Attributes:
        root: Absolute project root.
        records: Files, sorted case-insensitively by relative path.
        directories: Relative paths of the non-ignored directories.
    """

    model_config = ConfigDict(frozen=True)

    root: Path
    records: tuple[FileRecord, ...] = ()
    directories: tuple[str, ...] = ()
