from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from context_export.classifier import ClassifiedContent, ContentKind, ReadFailure, classify

if TYPE_CHECKING:
    from pathlib import Path

    from pytest_mock import MockerFixture


@pytest.mark.unit
def test_zero_byte_file_is_empty_not_binary(tmp_path: Path) -> None:
    f = tmp_path / "empty.bin"
    f.write_bytes(b"")

    assert classify(f).kind is ContentKind.EMPTY


@pytest.mark.unit
def test_null_byte_in_leading_sample_is_binary(tmp_path: Path) -> None:
    f = tmp_path / "image.png"
    f.write_bytes(b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR")

    assert classify(f).kind is ContentKind.BINARY


@pytest.mark.unit
def test_null_byte_after_sample_is_text(tmp_path: Path) -> None:
    f = tmp_path / "late.dat"
    f.write_bytes(b"a" * 1024 + b"\x00tail")

    result = classify(f)

    assert result.kind is ContentKind.TEXT
    assert result.text.startswith("a" * 1024)


@pytest.mark.unit
def test_text_file_returns_full_content(tmp_path: Path) -> None:
    f = tmp_path / "notes.txt"
    body = "héllo\n" * 500
    f.write_text(body, encoding="utf-8")

    result = classify(f)

    assert result.kind is ContentKind.TEXT
    assert result.text == body
    assert result.is_error is False


@pytest.mark.unit
def test_invalid_utf8_is_replaced_not_raised(tmp_path: Path) -> None:
    f = tmp_path / "latin.txt"
    f.write_bytes(b"caf\xe9")

    result = classify(f)

    assert result.kind is ContentKind.TEXT
    assert result.text == "caf\ufffd"


@pytest.mark.unit
def test_missing_file_is_not_found(tmp_path: Path) -> None:
    result = classify(tmp_path / "gone.txt")

    assert result.kind is ContentKind.NOT_FOUND
    assert result.is_error is True


@pytest.mark.unit
def test_directory_is_not_found(tmp_path: Path) -> None:
    assert classify(tmp_path).kind is ContentKind.NOT_FOUND


@pytest.mark.unit
def test_file_vanishing_before_open_is_not_found(tmp_path: Path, mocker: MockerFixture) -> None:
    f = tmp_path / "race.txt"
    f.write_text("soon gone", encoding="utf-8")
    mocker.patch.object(type(f), "open", side_effect=FileNotFoundError(2, "No such file or directory"))

    assert classify(f).kind is ContentKind.NOT_FOUND


@pytest.mark.unit
def test_permission_error_is_access_denied(tmp_path: Path, mocker: MockerFixture) -> None:
    f = tmp_path / "locked.txt"
    f.write_text("secret", encoding="utf-8")
    mocker.patch.object(type(f), "open", side_effect=PermissionError(13, "Permission denied"))

    result = classify(f)

    assert result.kind is ContentKind.READ_ERROR
    assert result.failure is ReadFailure.ACCESS_DENIED
    assert result.detail == "Permission denied"
    assert result.is_error is True


@pytest.mark.unit
def test_other_os_error_is_io_error(tmp_path: Path, mocker: MockerFixture) -> None:
    f = tmp_path / "flaky.txt"
    f.write_text("data", encoding="utf-8")
    mocker.patch.object(type(f), "open", side_effect=OSError(5, "Input/output error"))

    result = classify(f)

    assert result.kind is ContentKind.READ_ERROR
    assert result.failure is ReadFailure.IO_ERROR


@pytest.mark.unit
def test_constructors_set_kind() -> None:
    assert ClassifiedContent.binary().kind is ContentKind.BINARY
    assert ClassifiedContent.empty().kind is ContentKind.EMPTY
    assert ClassifiedContent.of_text("x").text == "x"
    assert ClassifiedContent.not_found().is_error
    assert ClassifiedContent.read_error(ReadFailure.IO_ERROR, "boom").detail == "boom"
