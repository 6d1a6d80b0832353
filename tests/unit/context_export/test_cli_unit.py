from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from context_export import __version__, cli
from context_export.exceptions import OutputDirectoryError
from context_export.settings import Settings

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.fixture(autouse=True)
def _no_env(mocker: MockerFixture) -> None:
    mocker.patch.object(cli, "env_overrides", return_value={})


@pytest.mark.unit
def test_parse_args_parses_flags(tmp_path: Path) -> None:
    token_limit = 5000
    settings = cli.parse_args(
        [
            "--root",
            str(tmp_path),
            "--token-limit",
            str(token_limit),
            "--ignore-gitignore",
            "--scan-ext",
            ".py",
            "--scan-ext",
            ".tf",
        ],
    )

    assert settings.repo == tmp_path
    assert settings.token_limit == token_limit
    assert settings.ignore_gitignore is True
    assert settings.scan_extensions == [".py", ".tf"]


@pytest.mark.unit
def test_parse_args_accepts_scan_extensions_from_environment(mocker: MockerFixture) -> None:
    mocker.patch.object(cli, "env_overrides", return_value={"scan_extensions": ".py,.js"})

    settings = cli.parse_args([])

    assert settings.scan_extensions == [".py", ".js"]


@pytest.mark.unit
def test_parse_args_defaults() -> None:
    settings = cli.parse_args([])

    assert settings.token_limit == 200_000
    assert settings.ignore_gitignore is False


@pytest.mark.unit
def test_parse_args_env_overrides_are_beaten_by_flags(mocker: MockerFixture) -> None:
    mocker.patch.object(cli, "env_overrides", return_value={"token_limit": "777", "ignore_file": ".myignore"})

    settings = cli.parse_args(["--token-limit", "999"])

    assert settings.token_limit == 999
    assert settings.ignore_file == ".myignore"


@pytest.mark.unit
def test_parse_args_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_args(["--version"])

    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out


@pytest.mark.unit
def test_help_exits_without_exporting(tmp_path: Path, capsys: pytest.CaptureFixture[str], mocker: MockerFixture) -> None:
    run = mocker.patch.object(cli, "run_export")

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--help", "--root", str(tmp_path)])

    assert exc_info.value.code == 0
    assert "--token-limit" in capsys.readouterr().out
    run.assert_not_called()
    assert not (tmp_path / "context_exports").exists()


@pytest.mark.unit
def test_parse_args_rejects_invalid_limit() -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_args(["--token-limit", "0"])

    assert exc_info.value.code == 2


@pytest.mark.unit
def test_prepare_output_dir_wraps_os_errors(tmp_path: Path) -> None:
    blocker = tmp_path / "taken"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(OutputDirectoryError) as exc_info:
        cli.prepare_output_dir(tmp_path, Settings(output_dir=Path("taken")))

    assert exc_info.value.folder == blocker


@pytest.mark.unit
def test_main_returns_one_when_output_dir_cannot_be_created(tmp_path: Path, mocker: MockerFixture) -> None:
    (tmp_path / "taken").write_text("x", encoding="utf-8")
    run = mocker.patch.object(cli, "run_export")

    exit_code = cli.main(["--root", str(tmp_path), "--output-dir", "taken"])

    assert exit_code == 1
    run.assert_not_called()
