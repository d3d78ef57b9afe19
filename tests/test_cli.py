"""
Tests for the Typer CLI.
"""

import json

from typer.testing import CliRunner

from latex_edit.cli.app import app


runner = CliRunner()


def test_render_text():
    result = runner.invoke(app, ["render", "# Hello $\\alpha$"])

    assert result.exit_code == 0
    assert "<h1>Hello" in result.output
    assert "α" in result.output


def test_render_file_to_output(tmp_path):
    source = tmp_path / "doc.md"
    source.write_text("**bold** $x^2$", encoding="utf-8")
    target = tmp_path / "doc.html"

    result = runner.invoke(app, ["render", "--file", str(source), "--output", str(target)])

    assert result.exit_code == 0
    html = target.read_text(encoding="utf-8")
    assert "<strong>bold</strong>" in html
    assert "latex-superscript" in html


def test_render_escape_html_flag():
    result = runner.invoke(app, ["render", "--escape-html", "<i>x</i>"])

    assert result.exit_code == 0
    assert "&lt;i&gt;" in result.output


def test_render_without_input_fails():
    result = runner.invoke(app, ["render"])

    assert result.exit_code == 1
    assert "Error" in result.output


def test_render_missing_file_fails(tmp_path):
    result = runner.invoke(app, ["render", "--file", str(tmp_path / "missing.md")])

    assert result.exit_code == 1
    assert "File not found" in result.output


def test_tokens():
    result = runner.invoke(app, ["tokens", "\\frac{a}{b}"])

    assert result.exit_code == 0
    assert "command \\frac [0, 11)" in result.output


def test_context():
    result = runner.invoke(app, ["context", "$\\frac{}{}$", "7"])

    assert result.exit_code == 0
    assert "command-args" in result.output
    assert "\\frac" in result.output


def test_insert_fraction_json():
    result = runner.invoke(app, ["insert", "fraction", "", "--json"])

    assert result.exit_code == 0
    assert json.loads(result.output) == {"new_text": "$\\frac{}{}$", "new_cursor_position": 7}


def test_insert_command_with_arguments():
    result = runner.invoke(app, [
        "insert", "command", "", "--name", "\\frac", "--arg", "1", "--arg", "2",
        "--argument-index", "-1", "--json",
    ])

    assert result.exit_code == 0
    assert json.loads(result.output) == {"new_text": "$\\frac{1}{2}$", "new_cursor_position": 10}


def test_insert_command_requires_name():
    result = runner.invoke(app, ["insert", "command", "x"])

    assert result.exit_code == 1
    assert "--name" in result.output


def test_insert_wrap_range():
    result = runner.invoke(app, [
        "insert", "wrap", "a b c", "--position", "2", "--end", "3", "--name", "frac", "--json",
    ])

    assert json.loads(result.output) == {"new_text": "a $\\frac{b}{}$ c", "new_cursor_position": 12}


def test_insert_matrix_without_math():
    result = runner.invoke(app, [
        "insert", "matrix", "", "--rows", "1", "--cols", "2", "--no-math", "--json",
    ])

    payload = json.loads(result.output)
    assert payload["new_text"] == "\\begin{pmatrix}\n  &  \n\\end{pmatrix}"
    assert payload["new_cursor_position"] == 16


def test_insert_panel_shows_cursor():
    result = runner.invoke(app, ["insert", "sqrt", "x"])

    assert result.exit_code == 0
    assert "$\\sqrt{x}|$" in result.output
    assert "Cursor at 9" in result.output


def test_tabstops():
    result = runner.invoke(app, ["tabstops", "\\frac{}{}"])

    assert result.exit_code == 0
    assert result.output.strip() == "0 6 8 9"


def test_config_create_and_show(isolated_config):
    created = runner.invoke(app, ["config", "--create-default"])

    assert created.exit_code == 0
    assert (isolated_config / ".latex-edit" / "config.yaml").exists()

    shown = runner.invoke(app, ["config", "--show"])
    assert shown.exit_code == 0
    assert "History Limit: 50" in shown.output


def test_config_hint():
    result = runner.invoke(app, ["config"])

    assert result.exit_code == 0
    assert "config --show" in result.output
