"""
Tests for the self-healing executor — bounded retries, repair context,
cancellation and per-attempt timeouts.
"""

import asyncio

import pytest

from helix.core.errors import (
    GenerationCallError,
    GenerationCancelledError,
    RepairExhaustedError,
    ValidationError,
)
from helix.core.models.generation import BuildCheck, ExecutorState
from helix.core.reliability.self_healing import (
    CODE_REPAIR_SYSTEM_PROMPT,
    SelfHealingExecutor,
    build_repair_prompt,
    repair_code_with,
)


def _failing_validator(failures: int):
    """Validator that raises ``failures`` times, then accepts."""
    calls = {"n": 0}

    def validate(output):
        calls["n"] += 1
        if calls["n"] <= failures:
            raise ValueError(f"bad {calls['n']}")

    return validate


# ── Construction ────────────────────────────────────────────────


class TestConstruction:
    def test_defaults(self):
        executor = SelfHealingExecutor()
        assert executor.max_repair_attempts == 2
        assert executor.max_attempts == 3
        assert executor.attempt_timeout is None

    def test_negative_attempts_rejected(self):
        with pytest.raises(ValueError):
            SelfHealingExecutor(max_repair_attempts=-1)

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValueError):
            SelfHealingExecutor(attempt_timeout=0)


# ── Bounded retry ───────────────────────────────────────────────


class TestExecute:
    @pytest.mark.parametrize("failures, max_repairs", [
        (0, 0),
        (0, 2),
        (1, 2),
        (2, 2),
        (3, 2),
        (5, 0),
        (4, 4),
    ])
    def test_attempt_bound(self, failures, max_repairs):
        executor = SelfHealingExecutor(max_repair_attempts=max_repairs)
        result = asyncio.run(
            executor.execute(lambda previous: "output", _failing_validator(failures))
        )
        assert result.attempts == min(failures + 1, max_repairs + 1)
        assert result.success is (failures <= max_repairs)
        assert len(result.repair_log) == min(failures, max_repairs + 1)

    def test_success_result(self):
        result = asyncio.run(
            SelfHealingExecutor().execute(lambda previous: 42, lambda out: None)
        )
        assert result.success
        assert result.data == 42
        assert result.attempts == 1
        assert result.repair_log == ()
        assert result.state == ExecutorState.SUCCEEDED
        assert result.raise_for_failure() == 42

    def test_exhausted_result(self):
        result = asyncio.run(
            SelfHealingExecutor(max_repair_attempts=1).execute(
                lambda previous: "x", _failing_validator(10)
            )
        )
        assert not result.success
        assert result.state == ExecutorState.EXHAUSTED
        assert result.error == "bad 2"
        assert result.repair_log == ("Attempt 1: bad 1", "Attempt 2: bad 2")
        with pytest.raises(RepairExhaustedError) as exc:
            result.raise_for_failure()
        assert exc.value.attempts == 2
        assert exc.value.repair_log == result.repair_log

    def test_retry_receives_previous_failure(self):
        seen = []

        def generator(previous):
            seen.append(previous)
            return f"draft-{len(seen)}"

        asyncio.run(SelfHealingExecutor().execute(generator, _failing_validator(2)))

        assert seen[0] is None
        assert seen[1].number == 1
        assert seen[1].error == "bad 1"
        assert seen[1].kind == "validation"
        assert seen[1].output == "draft-1"
        assert seen[1].repair_log == ("Attempt 1: bad 1",)
        assert seen[2].number == 2
        assert seen[2].repair_log == ("Attempt 1: bad 1", "Attempt 2: bad 2")

    def test_generator_failure_is_retried(self):
        calls = []

        async def generator(previous):
            calls.append(previous)
            if previous is None:
                raise GenerationCallError("upstream 502")
            return "ok"

        result = asyncio.run(SelfHealingExecutor().execute(generator, lambda out: None))

        assert result.success
        assert result.attempts == 2
        assert calls[1].kind == "generation"
        assert calls[1].output is None
        assert result.repair_log == ("Attempt 1: upstream 502",)

    def test_async_validator(self):
        async def validate(output):
            if output != "good":
                raise ValidationError("not good")

        outputs = iter(["bad", "good"])
        result = asyncio.run(
            SelfHealingExecutor().execute(lambda previous: next(outputs), validate)
        )
        assert result.success
        assert result.data == "good"
        assert result.attempts == 2

    def test_empty_exception_message(self):
        def validate(output):
            raise ValueError()

        result = asyncio.run(
            SelfHealingExecutor(max_repair_attempts=0).execute(lambda p: "x", validate)
        )
        assert result.error == "ValueError"

    def test_attempts_are_sequential(self):
        active = {"now": 0, "max": 0}

        async def generator(previous):
            active["now"] += 1
            active["max"] = max(active["max"], active["now"])
            await asyncio.sleep(0)
            active["now"] -= 1
            return "x"

        asyncio.run(SelfHealingExecutor().execute(generator, _failing_validator(2)))
        assert active["max"] == 1


# ── Cancellation and timeouts ───────────────────────────────────


class TestCancellation:
    def test_cancelled_before_start(self):
        async def scenario():
            cancel = asyncio.Event()
            cancel.set()
            return await SelfHealingExecutor().execute(
                lambda previous: "x", lambda out: None, cancel=cancel
            )

        result = asyncio.run(scenario())
        assert not result.success
        assert result.cancelled
        assert result.attempts == 0
        with pytest.raises(GenerationCancelledError):
            result.raise_for_failure()

    def test_cancelled_mid_attempt(self):
        async def scenario():
            cancel = asyncio.Event()

            async def generator(previous):
                await asyncio.sleep(5)
                return "late"

            asyncio.get_running_loop().call_later(0.01, cancel.set)
            return await SelfHealingExecutor().execute(
                generator, lambda out: None, cancel=cancel
            )

        result = asyncio.run(scenario())
        assert result.cancelled
        assert result.state == ExecutorState.CANCELLED
        assert result.attempts == 1
        assert result.repair_log == ()

    def test_cancelled_between_attempts(self):
        async def scenario():
            cancel = asyncio.Event()

            def validate(output):
                cancel.set()
                raise ValueError("first draft rejected")

            return await SelfHealingExecutor().execute(
                lambda previous: "x", validate, cancel=cancel
            )

        result = asyncio.run(scenario())
        assert result.cancelled
        assert result.attempts == 1
        assert result.repair_log == ("Attempt 1: first draft rejected",)


class TestTimeout:
    def test_every_attempt_times_out(self):
        async def generator(previous):
            await asyncio.sleep(5)
            return "never"

        executor = SelfHealingExecutor(max_repair_attempts=1, attempt_timeout=0.02)
        result = asyncio.run(executor.execute(generator, lambda out: None))

        assert not result.success
        assert result.attempts == 2
        assert result.error == "Generation timed out after 0.02s"

    def test_timeout_then_success(self):
        async def generator(previous):
            if previous is None:
                await asyncio.sleep(5)
            return "fast"

        executor = SelfHealingExecutor(attempt_timeout=0.02)
        result = asyncio.run(executor.execute(generator, lambda out: None))

        assert result.success
        assert result.attempts == 2
        assert "timed out" in result.repair_log[0]

    def test_timeout_with_cancel_event(self):
        async def scenario():
            async def generator(previous):
                if previous is None:
                    await asyncio.sleep(5)
                return "fast"

            executor = SelfHealingExecutor(attempt_timeout=0.02)
            return await executor.execute(generator, lambda out: None, cancel=asyncio.Event())

        result = asyncio.run(scenario())
        assert result.success
        assert result.attempts == 2


# ── JSON variant ────────────────────────────────────────────────


class TestExecuteJson:
    def test_repairs_unparseable_response(self, make_client):
        client = make_client(["I think the answer is {\"ok\": tru", '```json\n{"ok": true}\n```'])
        result = asyncio.run(
            SelfHealingExecutor().execute_json(client, "system", "make json", lambda data: data)
        )

        assert result.success
        assert result.data == {"ok": True}
        assert result.attempts == 2
        assert client.calls[0]["user"] == "make json"
        retry = client.calls[1]["user"]
        assert retry == build_repair_prompt("make json", result.repair_log[0].split(": ", 1)[1])
        assert "ORIGINAL REQUEST:\nmake json" in retry

    def test_parse_and_validate_transforms(self, make_client):
        client = make_client(['{"count": "3"}'])
        result = asyncio.run(
            SelfHealingExecutor().execute_json(
                client, "s", "u", lambda data: int(data["count"])
            )
        )
        assert result.data == 3

    def test_validator_rejection_retried(self, make_client):
        def require_name(data):
            if "name" not in data:
                raise ValidationError("missing name")
            return data

        client = make_client(['{"id": 1}', '{"name": "x"}'])
        result = asyncio.run(
            SelfHealingExecutor().execute_json(client, "s", "u", require_name)
        )
        assert result.success
        assert result.repair_log == ("Attempt 1: missing name",)

    def test_client_errors_exhaust(self, make_client):
        client = make_client([])
        result = asyncio.run(
            SelfHealingExecutor(max_repair_attempts=1).execute_json(client, "s", "u", lambda d: d)
        )
        assert not result.success
        assert result.attempts == 2
        assert result.error == "no scripted response"


# ── Build-check variant ─────────────────────────────────────────


class TestExecuteWithBuildCheck:
    def test_repairs_from_build_error(self):
        generated = []
        repairs = []

        async def generate(previous):
            generated.append(previous)
            return "v1"

        async def check(code):
            return BuildCheck.ok() if code == "v2" else BuildCheck.failed("syntax error at line 3")

        async def repair(code, error):
            repairs.append((code, error))
            return "v2"

        result = asyncio.run(
            SelfHealingExecutor().execute_with_build_check(generate, check, repair)
        )

        assert result.success
        assert result.data == "v2"
        assert result.attempts == 2
        assert generated == [None]
        assert repairs == [("v1", "syntax error at line 3")]
        assert result.repair_log == ("Attempt 1: Build failed - syntax error at line 3",)

    def test_repair_uses_latest_code(self):
        repairs = []

        async def generate(previous):
            return "v1"

        async def check(code):
            return BuildCheck.failed(f"{code} broken")

        async def repair(code, error):
            repairs.append((code, error))
            return f"v{len(repairs) + 1}"

        result = asyncio.run(
            SelfHealingExecutor(max_repair_attempts=2).execute_with_build_check(generate, check, repair)
        )

        assert not result.success
        assert result.attempts == 3
        assert repairs == [("v1", "v1 broken"), ("v2", "v2 broken")]
        assert result.error == "Build failed - v3 broken"

    def test_generate_failure_regenerates_with_error(self):
        seen = []

        async def generate(previous):
            seen.append(previous)
            if previous is None:
                raise GenerationCallError("timeout upstream")
            return "v1"

        async def check(code):
            return BuildCheck.ok()

        async def repair(code, error):
            raise AssertionError("nothing to repair yet")

        result = asyncio.run(
            SelfHealingExecutor().execute_with_build_check(generate, check, repair)
        )
        assert result.success
        assert len(seen) == 2
        assert seen[1].number == 1
        assert "timeout upstream" in seen[1].error


class TestRepairCodeWith:
    def test_strips_fences(self, make_client):
        client = make_client(["```prisma\nmodel A {}\n```"])
        repair = repair_code_with(client, model="m", max_tokens=100)

        fixed = asyncio.run(repair("model A {", "missing brace"))

        assert fixed == "model A {}"
        call = client.calls[0]
        assert call["system"] == CODE_REPAIR_SYSTEM_PROMPT
        assert "missing brace" in call["user"]
        assert "model A {" in call["user"]
        assert call["model"] == "m"
        assert call["max_tokens"] == 100
