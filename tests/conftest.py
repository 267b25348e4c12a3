"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from helix.core.errors import CompletionError
from helix.core.models.generation import BuildCheck

TASK_BLUEPRINT = """\
strand Task {
  field title: String
  field done: Boolean
}

view TaskList {
  list: Task.all()
}
"""


class FakeClient:
    """Completion client replaying scripted responses.

    Each item is returned in order; an Exception item is raised instead.
    """

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls: list[dict] = []

    async def complete(self, system, user, *, model=None, max_tokens=None, temperature=None):
        self.calls.append({
            "system": system,
            "user": user,
            "model": model,
            "max_tokens": max_tokens,
        })
        if not self.responses:
            raise CompletionError("no scripted response", kind="empty")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeApplier:
    """Schema applier that fails with each scripted error, then succeeds."""

    def __init__(self, errors=()):
        self.errors = list(errors)
        self.checked: list[str] = []

    async def check(self, code: str) -> BuildCheck:
        self.checked.append(code)
        if self.errors:
            return BuildCheck.failed(self.errors.pop(0))
        return BuildCheck.ok()


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def task_source() -> str:
    """The canonical one-strand, one-view blueprint."""
    return TASK_BLUEPRINT


@pytest.fixture
def task_file(tmp_path: Path) -> Path:
    path = tmp_path / "app.helix"
    path.write_text(TASK_BLUEPRINT)
    return path


@pytest.fixture
def make_client():
    """Factory: ``make_client(["response", ...])`` → FakeClient."""
    return FakeClient


@pytest.fixture
def make_applier():
    """Factory: ``make_applier(["error", ...])`` → FakeApplier."""
    return FakeApplier


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch):
    """Keep the developer's environment out of config and key lookups."""
    for var in (
        "OPENROUTER_API_KEY",
        "HELIX_DEFAULT_MODEL",
        "HELIX_RESEARCH_MODEL",
        "HELIX_MAX_REPAIR_ATTEMPTS",
        "HELIX_ATTEMPT_TIMEOUT",
        "HELIX_LOG_LEVEL",
        "HELIX_LOG_FILE",
        "HELIX_LOG_FILE_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
