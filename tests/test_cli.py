"""
Tests for CLI commands — parse, generate, draft, spawn, plugins,
models, config check, and global options.
"""

import json
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

import helix.main
from helix.main import cli


@pytest.fixture
def runner(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    # keep config auto-detection away from the developer's tree
    monkeypatch.chdir(tmp_path)
    return CliRunner()


@pytest.fixture
def fake_completions(monkeypatch: pytest.MonkeyPatch, make_client):
    """Route draft/spawn completions to a scripted FakeClient."""

    def install(responses):
        client = make_client(responses)
        monkeypatch.setattr(helix.main, "_make_client", lambda config: client)
        return client

    return install


class TestCLIGlobal:
    def test_help(self, runner: CliRunner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Helix" in result.output
        for command in ("parse", "generate", "draft", "spawn", "plugins", "models", "config"):
            assert command in result.output

    def test_version(self, runner: CliRunner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_broken_config(self, runner: CliRunner, tmp_path: Path):
        config = tmp_path / "helix.yml"
        config.write_text("max_repair_attempts: lots\n")
        result = runner.invoke(cli, ["--config", str(config), "models"])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


class TestParseCommand:
    def test_summary(self, runner: CliRunner, task_file: Path):
        result = runner.invoke(cli, ["parse", str(task_file)])
        assert result.exit_code == 0
        assert "Task (title: text, done: boolean)" in result.output
        assert "TaskList → Task" in result.output

    def test_json(self, runner: CliRunner, task_file: Path):
        result = runner.invoke(cli, ["parse", str(task_file), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["ok"] is True
        assert data["strands"][0]["name"] == "Task"
        assert data["views"][0]["properties"] == {"list": "Task.all()"}

    def test_parse_error(self, runner: CliRunner, tmp_path: Path):
        bad = tmp_path / "bad.helix"
        bad.write_text("strand Task {\n  field title: Strin\n}\n")
        result = runner.invoke(cli, ["parse", str(bad)])
        assert result.exit_code == 1
        assert "line 2, column 16" in result.output

    def test_parse_error_json(self, runner: CliRunner, tmp_path: Path):
        bad = tmp_path / "bad.helix"
        bad.write_text("view V { list: Ghost.all() }")
        result = runner.invoke(cli, ["parse", str(bad), "--json"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["ok"] is False
        assert "Ghost" in data["error"]


class TestGenerateCommand:
    def test_lists_files_without_out(self, runner: CliRunner, task_file: Path):
        result = runner.invoke(cli, ["generate", str(task_file), "--target", "descriptor"])
        assert result.exit_code == 0
        assert "descriptor: 3 file(s)" in result.output
        assert "schema/task.json" in result.output

    def test_writes_files(self, runner: CliRunner, task_file: Path, tmp_path: Path):
        out = tmp_path / "todo"
        result = runner.invoke(cli, ["generate", str(task_file), "-t", "web", "-o", str(out)])
        assert result.exit_code == 0
        assert (out / "src" / "app" / "task-list" / "page.tsx").is_file()

    def test_json(self, runner: CliRunner, task_file: Path):
        result = runner.invoke(cli, ["generate", str(task_file), "-t", "flutter", "-O", "db=supabase", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["ok"] is True
        assert "supabase_schema.sql" in data["files"]

    def test_default_target_from_config(self, runner: CliRunner, task_file: Path, tmp_path: Path):
        config = tmp_path / "helix.yml"
        config.write_text("default_target: descriptor\n")
        result = runner.invoke(cli, ["--config", str(config), "generate", str(task_file)])
        assert result.exit_code == 0
        assert "descriptor:" in result.output

    def test_unknown_target(self, runner: CliRunner, task_file: Path):
        result = runner.invoke(cli, ["generate", str(task_file), "-t", "cobol"])
        assert result.exit_code == 1
        assert "unavailable" in result.output

    def test_bad_option_format(self, runner: CliRunner, task_file: Path):
        result = runner.invoke(cli, ["generate", str(task_file), "-O", "novalue"])
        assert result.exit_code == 2
        assert "key=value" in result.output

    def test_context_file(self, runner: CliRunner, task_file: Path, tmp_path: Path):
        context = tmp_path / "constitution.md"
        context.write_text("## AI DIRECTIVES\nYou are a calm planner.\n")
        out = tmp_path / "mobile"
        result = runner.invoke(cli, [
            "generate", str(task_file), "-t", "flutter", "-O", "ai=openrouter",
            "--context", str(context), "-o", str(out),
        ])
        assert result.exit_code == 0
        assert "You are a calm planner." in (out / "lib" / "services" / "ai_service.dart").read_text()


class TestDraftCommand:
    def test_requires_api_key(self, runner: CliRunner):
        result = runner.invoke(cli, ["draft", "a todo app"])
        assert result.exit_code == 1
        assert "OPENROUTER_API_KEY" in result.output

    def test_prints_blueprint(self, runner: CliRunner, fake_completions, task_source: str):
        fake_completions([task_source])
        result = runner.invoke(cli, ["draft", "a todo app"])
        assert result.exit_code == 0
        assert "strand Task {" in result.output

    def test_writes_file(self, runner: CliRunner, fake_completions, task_source: str, tmp_path: Path):
        fake_completions(["strand {", task_source])
        out = tmp_path / "app.helix"
        result = runner.invoke(cli, ["draft", "a todo app", "-o", str(out)])
        assert result.exit_code == 0
        assert out.read_text() == task_source.strip() + "\n"
        assert "repaired after 1 failed attempt(s)" in result.output

    def test_failure_shows_repair_log(self, runner: CliRunner, fake_completions):
        fake_completions(["junk", "junk", "junk"])
        result = runner.invoke(cli, ["draft", "a todo app"])
        assert result.exit_code == 1
        assert "failed after 3 attempt(s)" in result.output
        assert "Attempt 3:" in result.output

    def test_json(self, runner: CliRunner, fake_completions, task_source: str):
        fake_completions([task_source])
        result = runner.invoke(cli, ["draft", "a todo app", "--json"])
        data = json.loads(result.output)
        assert data["success"] is True
        assert data["blueprint"].startswith("strand Task")

    def test_configured_max_tokens(self, runner: CliRunner, fake_completions, task_source: str, tmp_path: Path):
        config = tmp_path / "helix.yml"
        config.write_text("max_tokens: 777\n")
        client = fake_completions([task_source])
        result = runner.invoke(cli, ["--config", str(config), "draft", "a todo app"])
        assert result.exit_code == 0
        assert client.calls[0]["max_tokens"] == 777


class TestSpawnCommand:
    def test_spawn(self, runner: CliRunner, fake_completions, task_source: str, tmp_path: Path):
        fake_completions([task_source])
        result = runner.invoke(cli, ["spawn", "task tracker app", "-o", str(tmp_path)])
        assert result.exit_code == 0
        assert "App spawned successfully" in result.output
        assert "Dependencies: @prisma/client, prisma" in result.output
        assert "Base project: npx create-next-app@latest task-tracker-app" in result.output
        assert (tmp_path / "task-tracker-app" / "app.helix").is_file()

    def test_spawn_json(self, runner: CliRunner, fake_completions, task_source: str, tmp_path: Path):
        fake_completions([task_source])
        result = runner.invoke(cli, ["spawn", "task tracker app", "-o", str(tmp_path), "-t", "descriptor", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["ok"] is True
        assert data["project_name"] == "task-tracker-app"
        assert data["dependencies"] == []
        assert data["scaffold_command"] is None

    def test_spawn_failure(self, runner: CliRunner, fake_completions, tmp_path: Path):
        fake_completions(["junk"] * 3)
        result = runner.invoke(cli, ["spawn", "task tracker app", "-o", str(tmp_path)])
        assert result.exit_code == 1
        assert "Blueprint drafting failed" in result.output
        assert "Repair log" in result.output


class TestPluginsCommand:
    def test_lists_builtins(self, runner: CliRunner):
        result = runner.invoke(cli, ["plugins"])
        assert result.exit_code == 0
        for target in ("descriptor", "web", "flutter"):
            assert target in result.output
        assert "[built-in]" in result.output

    def test_json(self, runner: CliRunner):
        result = runner.invoke(cli, ["plugins", "--json"])
        data = json.loads(result.output)
        assert [p["target"] for p in data["plugins"]] == ["descriptor", "web", "flutter"]
        assert data["discovery"] is None

    def test_scan_without_manifests(self, runner: CliRunner, tmp_path: Path):
        result = runner.invoke(cli, ["plugins", "--scan", str(tmp_path)])
        assert result.exit_code == 0
        assert "no manifests" in result.output


class TestModelsCommand:
    def test_marks_default(self, runner: CliRunner):
        result = runner.invoke(cli, ["models"])
        assert result.exit_code == 0
        assert "anthropic/claude-3.5-sonnet ← default" in result.output

    def test_json(self, runner: CliRunner):
        result = runner.invoke(cli, ["models", "--json"])
        data = json.loads(result.output)
        assert data["default"] == "anthropic/claude-3.5-sonnet"
        assert len(data["models"]) == 10


class TestConfigCheckCommand:
    def _write(self, tmp_path: Path, content: str) -> Path:
        config = tmp_path / "helix.yml"
        config.write_text(textwrap.dedent(content))
        return config

    def test_valid_config(self, runner: CliRunner, tmp_path: Path):
        config = self._write(tmp_path, """\
            model: openai/gpt-4o
            max_repair_attempts: 3
        """)
        result = runner.invoke(cli, ["--config", str(config), "config", "check"])
        assert result.exit_code == 0
        assert "valid" in result.output.lower()
        assert "openai/gpt-4o" in result.output

    def test_valid_config_json(self, runner: CliRunner, tmp_path: Path):
        config = self._write(tmp_path, "default_target: flutter\n")
        result = runner.invoke(cli, ["--config", str(config), "config", "check", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["valid"] is True
        assert data["config"]["default_target"] == "flutter"

    def test_invalid_config(self, runner: CliRunner, tmp_path: Path):
        config = self._write(tmp_path, "default_target: cobol\n")
        result = runner.invoke(cli, ["--config", str(config), "config", "check"])
        assert result.exit_code == 1
        assert "Configuration errors" in result.output

    def test_no_config_file_warns(self, runner: CliRunner):
        result = runner.invoke(cli, ["config", "check"])
        assert result.exit_code == 0
        assert "No helix.yml found" in result.output
