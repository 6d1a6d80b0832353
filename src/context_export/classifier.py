from __future__ import annotations

import stat
from enum import StrEnum, auto
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from context_export.config import BINARY_SNIFF_BYTES

if TYPE_CHECKING:
    from pathlib import Path


class ContentKind(StrEnum):
    """Outcome of reading a file for export."""

    BINARY = auto()
    EMPTY = auto()
    TEXT = auto()
    READ_ERROR = auto()
    NOT_FOUND = auto()


class ReadFailure(StrEnum):
    """Why a file could not be read."""

    ACCESS_DENIED = "access denied"
    IO_ERROR = "I/O error"


class ClassifiedContent(BaseModel):
    """Tagged result of a single read-and-sniff pass over a file.

    Attributes:
        kind: Which variant this is.
        text: Decoded content; only set for `ContentKind.TEXT`.
        failure: Failure category; only set for `ContentKind.READ_ERROR`.
        detail: Free-form detail from the underlying OS error.
    """

    model_config = ConfigDict(frozen=True)

    kind: ContentKind
    text: str = ""
    failure: ReadFailure | None = None
    detail: str = Field(default="", description="OS error message, if any")

    @classmethod
    def binary(cls) -> ClassifiedContent:
        return cls(kind=ContentKind.BINARY)

    @classmethod
    def empty(cls) -> ClassifiedContent:
        return cls(kind=ContentKind.EMPTY)

    @classmethod
    def of_text(cls, text: str) -> ClassifiedContent:
        return cls(kind=ContentKind.TEXT, text=text)

    @classmethod
    def read_error(cls, failure: ReadFailure, detail: str = "") -> ClassifiedContent:
        return cls(kind=ContentKind.READ_ERROR, failure=failure, detail=detail)

    @classmethod
    def not_found(cls) -> ClassifiedContent:
        return cls(kind=ContentKind.NOT_FOUND)

    @property
    def is_error(self) -> bool:
        """Whether this outcome should be reported as an error."""
        return self.kind in {ContentKind.READ_ERROR, ContentKind.NOT_FOUND}


def classify(path: Path) -> ClassifiedContent:
    """Read a file once and classify it as binary, empty, text or failed.

    A file is binary when its first `BINARY_SNIFF_BYTES` bytes contain a NUL
    byte. Zero-length files are empty, never binary. Text is decoded as UTF-8
    with replacement characters for invalid sequences. No exception escapes.

    Args:
        path (Path): the file to classify

    Returns:
        ClassifiedContent: the tagged outcome
    """
    try:
        st = path.stat()
        if not stat.S_ISREG(st.st_mode):
            return ClassifiedContent.not_found()
        with path.open("rb") as f:
            head = f.read(BINARY_SNIFF_BYTES)
            if not head:
                return ClassifiedContent.empty()
            if b"\x00" in head:
                return ClassifiedContent.binary()
            data = head + f.read()
    except FileNotFoundError:
        return ClassifiedContent.not_found()
    except PermissionError as e:
        return ClassifiedContent.read_error(ReadFailure.ACCESS_DENIED, e.strerror or str(e))
    except OSError as e:
        return ClassifiedContent.read_error(ReadFailure.IO_ERROR, e.strerror or str(e))
    return ClassifiedContent.of_text(data.decode("utf-8", errors="replace"))
