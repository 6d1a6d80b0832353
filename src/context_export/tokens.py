from __future__ import annotations

import math

from context_export.config import CHARS_PER_TOKEN, TOKEN_SAFETY_MARGIN


def estimate_tokens(text: str) -> int:
    """Approximate the number of model tokens in `text`.

    Uses a fixed characters-per-token ratio inflated by a safety margin, so
    the estimate errs on the high side of a real tokenizer.

    Args:
        text (str): the exact text that will be written

    Returns:
        int: the estimated token count, 0 for an empty string
    """
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN * TOKEN_SAFETY_MARGIN)
