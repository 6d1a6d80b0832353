from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ContextExportError(Exception):
    """Base exception for errors in the context_export package."""


@dataclass(frozen=True)
class OutputDirectoryError(ContextExportError):
    """Raised when the output directory cannot be created."""

    folder: Path
    reason: str
    message: str = "Cannot create the output directory."

    def __str__(self) -> str:
        return f"{self.message} {self.folder}: {self.reason}"


@dataclass(frozen=True)
class PatternTableError(ContextExportError):
    """Raised when a scanner pattern table is missing or invalid."""

    name: str
    reason: str

    def __str__(self) -> str:
        return f"pattern table {self.name!r}: {self.reason}"
