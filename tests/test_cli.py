"""Tests for the dmvc CLI."""

import pytest
from click.testing import CliRunner

from dmvc.cli.main import cli


@pytest.fixture
def runner():
    return CliRunner()


class TestGenerate:
    def test_generate_model(self, runner, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(cli, ["generate", "model", "todo"])
        assert result.exit_code == 0
        assert "Created model: models/todo.py" in result.output
        assert (tmp_path / "models" / "todo.py").exists()

    def test_generate_controller_with_base_dir(self, runner, tmp_path):
        result = runner.invoke(cli, ["generate", "controller", "todo", "--base-dir", str(tmp_path)])
        assert result.exit_code == 0
        assert "Created controller:" in result.output
        assert (tmp_path / "controllers" / "todo_controller.py").exists()

    def test_existing_file_fails(self, runner, tmp_path):
        args = ["generate", "model", "todo", "--base-dir", str(tmp_path)]
        assert runner.invoke(cli, args).exit_code == 0

        result = runner.invoke(cli, args)
        assert result.exit_code == 1
        assert "Error: Model already exists" in result.output

    def test_unknown_kind(self, runner, tmp_path):
        result = runner.invoke(cli, ["generate", "view", "todo", "--base-dir", str(tmp_path)])
        assert result.exit_code == 2
        assert not any(tmp_path.iterdir())

    def test_verbose_flag(self, runner, tmp_path):
        result = runner.invoke(cli, ["-v", "generate", "model", "todo", "--base-dir", str(tmp_path)])
        assert result.exit_code == 0


def test_help_lists_generate(runner):
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "generate" in result.output
