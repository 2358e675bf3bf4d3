from __future__ import annotations

from typer.testing import CliRunner

from cli.gtree import app as gtree_app

STORED = "{\n\t[\n\t\t1000\n\t]\n\t{\n\t\t[\n\t\t\t1100\n\t\t]\n\t}\n\t{\n\t\t[\n\t\t\t1200\n\t\t]\n\t}\n}\n"


def _write(tmp_path, text: str, name: str = "store.gtree"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_check_reports_summary(tmp_path) -> None:
    runner = CliRunner()
    result = runner.invoke(gtree_app, ["check", str(_write(tmp_path, STORED))])
    assert result.exit_code == 0
    assert "nodes: 3" in result.stdout
    assert "height: 1" in result.stdout


def test_check_fails_on_malformed_input(tmp_path) -> None:
    runner = CliRunner()
    result = runner.invoke(gtree_app, ["check", str(_write(tmp_path, "{\n\t[\n\t\t1\n\t]\n"))])
    assert result.exit_code == 1


def test_fmt_normalises_indentation(tmp_path) -> None:
    messy = "{\n[\n1000\n]\n  {\n [\n1100\n]\n}\n{\n[\n1200\n]\n}\n}\n"
    output = tmp_path / "out.gtree"
    runner = CliRunner()
    result = runner.invoke(
        gtree_app, ["fmt", str(_write(tmp_path, messy)), "--output", str(output)]
    )
    assert result.exit_code == 0
    assert output.read_text(encoding="utf-8") == STORED


def test_dot_writes_graphviz(tmp_path) -> None:
    runner = CliRunner()
    result = runner.invoke(gtree_app, ["dot", str(_write(tmp_path, STORED))])
    assert result.exit_code == 0
    assert result.stdout.startswith("digraph gtree {")
    assert "{data | 1100}" in result.stdout


def test_show_uses_json_codec(tmp_path) -> None:
    stored = '{\n\t[\n\t\t{"name": "root"}\n\t]\n}\n'
    runner = CliRunner()
    result = runner.invoke(
        gtree_app, ["show", str(_write(tmp_path, stored)), "--payload", "json"]
    )
    assert result.exit_code == 0
    assert '[0] {"name": "root"}' in result.stdout


def test_unknown_payload_codec_is_rejected(tmp_path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        gtree_app, ["show", str(_write(tmp_path, STORED)), "--payload", "yaml"]
    )
    assert result.exit_code != 0


def test_unwritable_output_reports_error(tmp_path) -> None:
    target = tmp_path / "missing" / "out.gtree"
    runner = CliRunner()
    result = runner.invoke(
        gtree_app, ["fmt", str(_write(tmp_path, STORED)), "--output", str(target)]
    )
    assert result.exit_code == 1
    assert not isinstance(result.exception, OSError)
    assert f"error: {target}" in result.output
