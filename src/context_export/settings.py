from __future__ import annotations

import os
from pathlib import Path

from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from context_export.config import DEFAULT_OUTPUT_DIR, DEFAULT_SCAN_EXTENSIONS

ENV_FILE = find_dotenv(usecwd=True)
ENV_PREFIX = "CONTEXT_EXPORT_"


class Settings(BaseModel):
    """Configuration settings for a context_export run."""

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="ignore")

    repo: Path = Field(default_factory=Path.cwd, description="Project root to export.")
    output_dir: Path = Field(
        default=Path(DEFAULT_OUTPUT_DIR),
        description="Directory receiving the reports (relative to the root).",
    )
    token_limit: int = Field(
        default=200_000,
        gt=0,
        description="Token budget of a single content part.",
    )
    ignore_gitignore: bool = Field(
        default=False,
        description="Bypass the ignore file for the content export only.",
    )
    ignore_file: str = Field(
        default=".gitignore",
        description="Ignore-rule file, relative to the root.",
    )
    max_scan_bytes: int = Field(
        default=1_000_000,
        gt=0,
        description="Files above are skipped by the content scanners.",
    )
    scan_extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SCAN_EXTENSIONS),
        description="Extensions whose contents the scanners read.",
    )
    log_file: str = Field(default="", description="Log file path.")

    @field_validator("scan_extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, value: object) -> object:
        """Accept a comma-separated string and spell every extension as ".ext"."""
        if isinstance(value, str):
            value = value.split(",")
        if not isinstance(value, list | tuple):
            return value
        exts = [str(v).strip().lower() for v in value]
        return [e if e.startswith(".") else f".{e}" for e in exts if e.strip(".")]

    def resolve_output_dir(self, root: Path) -> Path:
        """Return the absolute output directory for `root`."""
        return self.output_dir if self.output_dir.is_absolute() else root / self.output_dir


def env_overrides() -> dict[str, str]:
    """Collect `CONTEXT_EXPORT_*` values from the `.env` file and the environment.

    Process environment values take precedence over the `.env` file.

    Returns:
        dict[str, str]: setting names (prefix stripped, lower-cased) mapped to raw values
    """
    values: dict[str, str | None] = dict(dotenv_values(ENV_FILE)) if ENV_FILE else {}
    values.update(os.environ)
    return {
        key.removeprefix(ENV_PREFIX).lower(): value
        for key, value in values.items()
        if key.startswith(ENV_PREFIX) and value is not None
    }
