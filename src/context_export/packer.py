from __future__ import annotations

import math
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from context_export.config import BUFFER_RATIO, FileRecord
from context_export.tokens import estimate_tokens

if TYPE_CHECKING:
    from collections.abc import Sequence

PLACEHOLDER_TOTAL = "TBD"
HEADER_RULE = "=" * 80


class FileEntry(BaseModel):
    """A file ready to be packed: its record, rendered block and token cost."""

    model_config = ConfigDict(frozen=True)

    record: FileRecord
    block: str
    tokens: int = Field(..., ge=0)

    @classmethod
    def build(cls, record: FileRecord, block: str) -> FileEntry:
        """Create an entry, estimating tokens on the exact block that will be written."""
        return cls(record=record, block=block, tokens=estimate_tokens(block))


class HeaderInfo(BaseModel):
    """Run-wide values stated in every part header."""

    model_config = ConfigDict(frozen=True)

    generated_at: str
    root: str
    token_limit: int = Field(..., gt=0)

    def render(self, number: int, total: int | None) -> str:
        """Render the header of part `number`; a None total renders the placeholder."""
        total_text = PLACEHOLDER_TOTAL if total is None else str(total)
        return (
            f"{HEADER_RULE}\n"
            f"PROJECT CONTENT EXPORT - Part {number} of {total_text}\n"
            f"Generated: {self.generated_at}\n"
            f"Root: {self.root}\n"
            f"Token limit: {self.token_limit}\n"
            f"{HEADER_RULE}\n\n"
        )


class Part(BaseModel):
    """One output file of the content export.

    Attributes:
        number: 1-based position of the part.
        header: Rendered header; states the placeholder total until finalized.
        header_tokens: Token estimate of the current header.
        entries: File entries, in input order.
        total: Final number of parts, None until finalized.
    """

    model_config = ConfigDict(frozen=True)

    number: int = Field(..., ge=1)
    header: str
    header_tokens: int = Field(..., ge=0)
    entries: tuple[FileEntry, ...] = ()
    total: int | None = None

    @property
    def tokens(self) -> int:
        """Estimated tokens of the header plus every entry."""
        return self.header_tokens + sum(e.tokens for e in self.entries)

    def render(self) -> str:
        """Return the full text written for this part."""
        return self.header + "".join(e.block for e in self.entries)


def buffer_limit(token_limit: int) -> int:
    """Return the effective per-part budget: 90% of the configured limit."""
    return math.floor(token_limit * BUFFER_RATIO)


def pack_entries(entries: Sequence[FileEntry], token_limit: int, header: HeaderInfo) -> list[Part]:
    """Pack entries, in order, into parts that stay within the token budget.

    A new part is opened only when the current one already holds an entry
    and the next entry would push it past the budget. An entry is never
    split: one whose block alone exceeds the budget gets placed whole in the
    current part, which then exceeds the budget. Headers carry the
    placeholder total; see `finalize_parts`.

    Args:
        entries (Sequence[FileEntry]): the entries, in enumeration order
        token_limit (int): the configured token limit (positive)
        header (HeaderInfo): values rendered into each part header

    Raises:
        ValueError: if `token_limit` is not positive

    Returns:
        list[Part]: the parts in order; empty when there are no entries
    """
    if token_limit <= 0:
        msg = f"token_limit must be positive, got {token_limit}"
        raise ValueError(msg)
    budget = buffer_limit(token_limit)

    parts: list[Part] = []
    number = 1
    current_header = header.render(number, None)
    header_tokens = estimate_tokens(current_header)
    current: list[FileEntry] = []
    running = header_tokens

    for entry in entries:
        if current and running + entry.tokens > budget:
            parts.append(
                Part(number=number, header=current_header, header_tokens=header_tokens, entries=tuple(current)),
            )
            number += 1
            current_header = header.render(number, None)
            header_tokens = estimate_tokens(current_header)
            current = []
            running = header_tokens
        current.append(entry)
        running += entry.tokens

    if current:
        parts.append(Part(number=number, header=current_header, header_tokens=header_tokens, entries=tuple(current)))
    return parts


def finalize_parts(parts: Sequence[Part], header: HeaderInfo) -> list[Part]:
    """Rewrite every header with the final part count.

    Args:
        parts (Sequence[Part]): the packed parts, with placeholder headers
        header (HeaderInfo): values rendered into each part header

    Returns:
        list[Part]: new parts stating "Part i of P", with the header re-estimated
    """
    total = len(parts)
    finalized: list[Part] = []
    for p in parts:
        text = header.render(p.number, total)
        finalized.append(p.model_copy(update={"total": total, "header": text, "header_tokens": estimate_tokens(text)}))
    return finalized


def pack(entries: Sequence[FileEntry], token_limit: int, header: HeaderInfo) -> list[Part]:
    """Pack entries and finalize the headers in one call."""
    return finalize_parts(pack_entries(entries, token_limit, header), header)
