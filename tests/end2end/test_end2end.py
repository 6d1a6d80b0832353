from pathlib import Path

import pytest

from context_export import cli


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "env_overrides", dict)


def test_end_to_end_three_file_scenario(tmp_path: Path) -> None:
    (tmp_path / "a.txt").write_text("hello", encoding="utf-8")
    (tmp_path / "b.bin").write_bytes(b"ab\x00cd")
    (tmp_path / "c.txt").write_text("c" * 1_000_000, encoding="utf-8")

    exit_code = cli.main(["--root", str(tmp_path), "--token-limit", "1000"])

    assert exit_code == 0
    parts = sorted((tmp_path / "context_exports").glob("*_content_part*.txt"))
    assert [p.name.rsplit("_", 1)[-1] for p in parts] == ["part1.txt", "part2.txt"]
    first = parts[0].read_text(encoding="utf-8")
    second = parts[1].read_text(encoding="utf-8")
    assert "Part 1 of 2\n" in first
    assert "Part 2 of 2\n" in second
    assert "TBD" not in first
    assert "TBD" not in second
    assert "File: a.txt" in first
    assert "hello" in first
    assert "File: b.bin" in first
    assert "[BINARY FILE - content omitted]" in first
    assert "File: c.txt" not in first
    assert "File: c.txt" in second
    assert "File: a.txt" not in second
    assert "Token limit: 1000" in second


def test_end_to_end_structure_report(tmp_path: Path) -> None:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.py").write_text("print('hi')\n", encoding="utf-8")
    (tmp_path / "node_modules").mkdir()
    (tmp_path / "node_modules" / "x.js").write_text("//", encoding="utf-8")

    exit_code = cli.main(["--root", str(tmp_path)])

    assert exit_code == 0
    (report,) = (tmp_path / "context_exports").glob("*_structure.txt")
    text = report.read_text(encoding="utf-8")
    assert "app.py" in text
    assert "node_modules" not in text
    assert "context_exports" not in text.split("DIRECTORY TREE", 1)[1]
