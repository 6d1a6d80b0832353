import logging
from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from context_export import cli, export


@pytest.fixture(autouse=True)
def _no_env(mocker: MockerFixture) -> None:
    mocker.patch.object(cli, "env_overrides", return_value={})


def outputs(root: Path, suffix: str) -> list[Path]:
    return sorted((root / "context_exports").glob(f"*_{suffix}*.txt"))


@pytest.mark.integration
def test_main_writes_all_reports(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.py").write_text("import boto3\nimport stripe\n", encoding="utf-8")
    (tmp_path / "Dockerfile").write_text("FROM python:3.12\n", encoding="utf-8")

    exit_code = cli.main(["--root", str(tmp_path)])

    assert exit_code == 0
    assert len(outputs(tmp_path, "structure")) == 1
    assert len(outputs(tmp_path, "content_part")) == 1
    infra = outputs(tmp_path, "infrastructure")[0].read_text(encoding="utf-8")
    integrations = outputs(tmp_path, "integrations")[0].read_text(encoding="utf-8")
    assert "[Docker] Dockerfile (filename: dockerfile)" in infra
    assert "[AWS] src/app.py:1" in infra
    assert "[Payments] src/app.py:2" in integrations
    assert outputs(tmp_path, "errors") == []
    out = capsys.readouterr().out
    assert "No errors recorded." in out
    assert "[FAILED]" not in out


@pytest.mark.integration
def test_main_gitignore_bypass_only_affects_content(tmp_path: Path) -> None:
    (tmp_path / ".gitignore").write_text("secret/\n", encoding="utf-8")
    (tmp_path / "secret").mkdir()
    (tmp_path / "secret" / "keys.txt").write_text("hidden-value", encoding="utf-8")
    (tmp_path / "main.py").write_text("print(1)\n", encoding="utf-8")

    cli.main(["--root", str(tmp_path), "--ignore-gitignore"])

    content = outputs(tmp_path, "content_part")[0].read_text(encoding="utf-8")
    structure = outputs(tmp_path, "structure")[0].read_text(encoding="utf-8")
    assert "File: secret/keys.txt" in content
    assert "hidden-value" in content
    assert "keys.txt" not in structure


@pytest.mark.integration
def test_main_records_pass_failure_and_continues(
    tmp_path: Path,
    mocker: MockerFixture,
    capsys: pytest.CaptureFixture[str],
) -> None:
    (tmp_path / "main.py").write_text("print(1)\n", encoding="utf-8")
    mocker.patch.object(export, "build_structure_report", side_effect=RuntimeError("tree exploded"))

    exit_code = cli.main(["--root", str(tmp_path)])

    assert exit_code == 0
    assert outputs(tmp_path, "structure") == []
    assert len(outputs(tmp_path, "content_part")) == 1
    assert len(outputs(tmp_path, "integrations")) == 1
    errors = outputs(tmp_path, "errors")[0].read_text(encoding="utf-8")
    assert "1. Directory structure failed: tree exploded" in errors
    assert "[FAILED] Directory structure" in capsys.readouterr().out


@pytest.mark.integration
def test_main_attaches_log_file(tmp_path: Path) -> None:
    (tmp_path / "main.py").write_text("print(1)\n", encoding="utf-8")
    log_file = tmp_path / "logs" / "export.log"
    log_file.parent.mkdir()
    root_logger = logging.getLogger()
    before = list(root_logger.handlers)

    try:
        exit_code = cli.main(["--root", str(tmp_path), "--log-file", str(log_file)])
        added = [h for h in root_logger.handlers if h not in before]
    finally:
        for h in root_logger.handlers[:]:
            if h not in before:
                root_logger.removeHandler(h)
                h.close()

    assert exit_code == 0
    assert log_file.exists()
    assert [getattr(h, "baseFilename", None) for h in added] == [str(log_file)]
