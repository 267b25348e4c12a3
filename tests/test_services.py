"""
Tests for blueprint drafting and schema apply-with-repair.
"""

import asyncio
from pathlib import Path

from helix.adapters.process import ProcessResult
from helix.core.errors import CompletionError
from helix.core.reliability.self_healing import SelfHealingExecutor
from helix.core.services.drafting import DRAFT_MAX_TOKENS, draft_blueprint, research_domain
from helix.core.services.prompts import (
    RESEARCHER_SYSTEM_PROMPT,
    SCHEMA_REPAIR_SYSTEM_PROMPT,
    architect_system_prompt,
)
from helix.core.services.schema_apply import (
    PRISMA_GENERATE,
    PRISMA_PUSH,
    SCHEMA_PATH,
    PrismaPushApplier,
    apply_schema_with_repair,
)


class FakeRunner:
    """Process runner returning scripted results per call."""

    def __init__(self, *results: ProcessResult):
        self.results = list(results)
        self.commands: list[list[str]] = []

    async def run_async(self, command, cwd=None, timeout=None):
        self.commands.append(command)
        if self.results:
            return self.results.pop(0)
        return ProcessResult(command=command, returncode=0)


# ── Drafting ────────────────────────────────────────────────────


class TestDraftBlueprint:
    def test_first_draft_accepted(self, make_client, task_source: str):
        client = make_client([f"```helix\n{task_source}```"])
        result = asyncio.run(draft_blueprint("a todo list", client, SelfHealingExecutor()))

        assert result.success
        assert result.data == task_source.strip()
        assert result.attempts == 1
        call = client.calls[0]
        assert call["user"] == "Create a Helix blueprint for: a todo list"
        assert call["max_tokens"] == DRAFT_MAX_TOKENS
        assert call["system"] == architect_system_prompt(None)

    def test_parse_error_fed_back(self, make_client, task_source: str):
        client = make_client(["strand Task { field title: Strin }", task_source])
        result = asyncio.run(draft_blueprint("todo", client, SelfHealingExecutor()))

        assert result.success
        assert result.attempts == 2
        retry = client.calls[1]["user"]
        assert "Unknown type 'Strin'" in retry
        assert "BLUEPRINT:\nstrand Task { field title: Strin }" in retry
        assert "Create a Helix blueprint for: todo" in retry

    def test_unresolved_reference_fed_back(self, make_client, task_source: str):
        client = make_client(["view V { list: Ghost.all() }", task_source])
        result = asyncio.run(draft_blueprint("todo", client, SelfHealingExecutor()))
        assert result.success
        assert "unknown strand 'Ghost'" in result.repair_log[0]

    def test_exhausted(self, make_client):
        client = make_client(["nonsense"] * 3)
        result = asyncio.run(draft_blueprint("todo", client, SelfHealingExecutor(max_repair_attempts=2)))

        assert not result.success
        assert result.attempts == 3
        assert len(result.repair_log) == 3
        assert all(entry.startswith(f"Attempt {i}:") for i, entry in enumerate(result.repair_log, 1))

    def test_call_failure_retries_original_prompt(self, make_client, task_source: str):
        client = make_client([CompletionError("rate limited", kind="rate_limit"), task_source])
        result = asyncio.run(draft_blueprint("todo", client, SelfHealingExecutor()))

        assert result.success
        assert client.calls[1]["user"] == "Create a Helix blueprint for: todo"

    def test_context_in_system_prompt(self, make_client, task_source: str):
        client = make_client([task_source])
        asyncio.run(draft_blueprint("todo", client, SelfHealingExecutor(), "Use soft colors."))
        system = client.calls[0]["system"]
        assert "CONSTITUTION" in system
        assert "Use soft colors." in system

    def test_model_override(self, make_client, task_source: str):
        client = make_client([task_source])
        asyncio.run(draft_blueprint("todo", client, SelfHealingExecutor(), model="openai/gpt-4o"))
        assert client.calls[0]["model"] == "openai/gpt-4o"


class TestResearchDomain:
    def test_returns_report(self, make_client):
        client = make_client(["# Domain Analysis\nEntities: Task"])
        report = asyncio.run(research_domain("todo", client, model="google/gemini-flash-1.5"))

        assert report.startswith("# Domain Analysis")
        assert client.calls[0]["system"] == RESEARCHER_SYSTEM_PROMPT
        assert client.calls[0]["model"] == "google/gemini-flash-1.5"


# ── Schema apply ────────────────────────────────────────────────


class TestApplySchemaWithRepair:
    def test_applies_first_time(self, make_client, make_applier):
        applier = make_applier()
        client = make_client([])
        result = asyncio.run(apply_schema_with_repair("model A {}", applier, client, SelfHealingExecutor()))

        assert result.success
        assert result.data == "model A {}"
        assert client.calls == []

    def test_repairs_failed_schema(self, make_client, make_applier):
        applier = make_applier(["P1012: unknown type Strin"])
        client = make_client(["```prisma\nmodel A { id String @id }\n```"])
        result = asyncio.run(
            apply_schema_with_repair("model A { id Strin }", applier, client, SelfHealingExecutor())
        )

        assert result.success
        assert result.data == "model A { id String @id }"
        assert applier.checked == ["model A { id Strin }", "model A { id String @id }"]
        call = client.calls[0]
        assert call["system"] == SCHEMA_REPAIR_SYSTEM_PROMPT
        assert "P1012: unknown type Strin" in call["user"]
        assert "SCHEMA:\nmodel A { id Strin }" in call["user"]
        assert call["max_tokens"] == 2048

    def test_exhausted(self, make_client, make_applier):
        applier = make_applier(["e1", "e2"])
        client = make_client(["v2"])
        result = asyncio.run(
            apply_schema_with_repair("v1", applier, client, SelfHealingExecutor(max_repair_attempts=1))
        )

        assert not result.success
        assert result.repair_log == ("Attempt 1: Build failed - e1", "Attempt 2: Build failed - e2")


class TestPrismaPushApplier:
    def test_writes_schema_and_runs_prisma(self, tmp_path: Path):
        (tmp_path / "prisma.config.ts").write_text("export default {}")
        runner = FakeRunner()
        check = asyncio.run(PrismaPushApplier(tmp_path, runner).check("model A {}"))

        assert check.success
        assert (tmp_path / SCHEMA_PATH).read_text() == "model A {}"
        assert not (tmp_path / "prisma.config.ts").exists()
        assert runner.commands == [PRISMA_PUSH, PRISMA_GENERATE]

    def test_push_failure(self, tmp_path: Path):
        runner = FakeRunner(ProcessResult(command=PRISMA_PUSH, returncode=1, stderr="P1012 bad type"))
        check = asyncio.run(PrismaPushApplier(tmp_path, runner).check("model A {}"))

        assert not check.success
        assert check.error == "P1012 bad type"
        assert check.details == {"command": "db push"}
        assert runner.commands == [PRISMA_PUSH]

    def test_generate_failure(self, tmp_path: Path):
        runner = FakeRunner(
            ProcessResult(command=PRISMA_PUSH, returncode=0),
            ProcessResult(command=PRISMA_GENERATE, returncode=1, stdout="generate failed"),
        )
        check = asyncio.run(PrismaPushApplier(tmp_path, runner).check("model A {}"))
        assert not check.success
        assert check.error == "generate failed"

    def test_skip_client_generation(self, tmp_path: Path):
        runner = FakeRunner()
        asyncio.run(PrismaPushApplier(tmp_path, runner, generate_client=False).check("model A {}"))
        assert runner.commands == [PRISMA_PUSH]
