import math

import pytest

from context_export.tokens import estimate_tokens


@pytest.mark.unit
def test_estimate_tokens_empty_is_zero() -> None:
    assert estimate_tokens("") == 0


@pytest.mark.unit
@pytest.mark.parametrize("length", [1, 3, 4, 5, 17, 1000, 123_457])
def test_estimate_tokens_uses_ratio_and_margin(length: int) -> None:
    text = "x" * length

    assert estimate_tokens(text) == math.ceil(length / 4 * 1.1)


@pytest.mark.unit
def test_estimate_tokens_overestimates_plain_ratio() -> None:
    text = "abcd" * 250

    assert estimate_tokens(text) > len(text) // 4
