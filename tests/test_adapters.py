"""
Tests for adapters — manifest writer, process runner, OpenRouter client.
"""

import asyncio
import io
import json
import sys
import urllib.error
import urllib.request
from pathlib import Path

import pytest

from helix.adapters.filesystem import merge_manifests, summarize_manifest, write_manifest
from helix.adapters.openrouter import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    OPENROUTER_URL,
    OpenRouterClient,
)
from helix.adapters.process import ProcessRunner
from helix.core.config.loader import RESEARCH_MODEL
from helix.core.errors import CompletionError
from helix.core.models.template import ArtifactManifest, GeneratedFile, ManifestMetadata


def _manifest(*files: GeneratedFile, name: str = "todo") -> ArtifactManifest:
    return ArtifactManifest(
        metadata=ManifestMetadata(project_name=name, target="web"),
        files=list(files),
    )


# ── Manifest writer ─────────────────────────────────────────────


class TestWriteManifest:
    def test_writes_nested_files(self, tmp_path: Path):
        manifest = _manifest(
            GeneratedFile(path="src/app/page.tsx", content="page"),
            GeneratedFile(path="README.md", content="readme"),
        )
        result = write_manifest(tmp_path / "out", manifest)

        assert result.ok
        assert result.written == ["src/app/page.tsx", "README.md"]
        assert (tmp_path / "out" / "src" / "app" / "page.tsx").read_text() == "page"

    def test_existing_file_skipped(self, tmp_path: Path):
        (tmp_path / "keep.txt").write_text("mine")
        result = write_manifest(tmp_path, _manifest(GeneratedFile(path="keep.txt", content="theirs")))

        assert result.skipped == ["keep.txt"]
        assert (tmp_path / "keep.txt").read_text() == "mine"

    def test_overwrite_flag(self, tmp_path: Path):
        (tmp_path / "gen.txt").write_text("old")
        result = write_manifest(
            tmp_path,
            _manifest(GeneratedFile(path="gen.txt", content="new", overwrite=True)),
        )
        assert result.written == ["gen.txt"]
        assert (tmp_path / "gen.txt").read_text() == "new"

    def test_overwrite_existing_argument(self, tmp_path: Path):
        (tmp_path / "keep.txt").write_text("mine")
        write_manifest(
            tmp_path,
            _manifest(GeneratedFile(path="keep.txt", content="theirs")),
            overwrite_existing=True,
        )
        assert (tmp_path / "keep.txt").read_text() == "theirs"

    def test_path_escape_rejected(self, tmp_path: Path):
        out = tmp_path / "out"
        result = write_manifest(
            out,
            _manifest(
                GeneratedFile(path="../evil.txt", content="x"),
                GeneratedFile(path="ok.txt", content="y"),
            ),
        )
        assert not result.ok
        assert "../evil.txt" in result.errors
        assert result.written == ["ok.txt"]
        assert not (tmp_path / "evil.txt").exists()


class TestManifestHelpers:
    def test_merge_later_wins(self):
        a = _manifest(GeneratedFile(path="x", content="1"), GeneratedFile(path="y", content="1"), name="a")
        b = _manifest(GeneratedFile(path="x", content="2"), name="b")
        merged = merge_manifests(a, b)

        assert merged.metadata.project_name == "a"
        assert {f.path: f.content for f in merged.files} == {"x": "2", "y": "1"}

    def test_merge_requires_input(self):
        with pytest.raises(ValueError):
            merge_manifests()

    def test_summarize(self):
        summary = summarize_manifest(_manifest(
            GeneratedFile(path="src/a.ts", content="aa"),
            GeneratedFile(path="src/b.ts", content="b"),
            GeneratedFile(path="README.md", content="é"),
        ))
        assert summary["file_count"] == 3
        assert summary["total_bytes"] == 5
        assert summary["by_directory"] == {".": 1, "src": 2}


# ── Process runner ──────────────────────────────────────────────


class TestProcessRunner:
    def test_success(self):
        result = ProcessRunner().run([sys.executable, "-c", "print('hi')"])
        assert result.ok
        assert result.stdout == "hi"

    def test_failure_exit_code(self):
        result = ProcessRunner().run(
            [sys.executable, "-c", "import sys; sys.stderr.write('bad schema'); sys.exit(3)"]
        )
        assert not result.ok
        assert result.returncode == 3
        assert result.error == "bad schema"

    def test_missing_executable(self):
        result = ProcessRunner().run(["helix-definitely-not-installed"])
        assert not result.ok
        assert "Command execution error" in result.error

    def test_timeout(self):
        result = ProcessRunner().run([sys.executable, "-c", "import time; time.sleep(5)"], timeout=0.2)
        assert result.timed_out
        assert result.error == "Command timed out after 0.2s"

    def test_cwd(self, tmp_path: Path):
        result = ProcessRunner().run(
            [sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmp_path
        )
        assert Path(result.stdout).resolve() == tmp_path.resolve()

    def test_run_async(self):
        result = asyncio.run(ProcessRunner().run_async([sys.executable, "-c", "print(1)"]))
        assert result.stdout == "1"

    def test_is_available(self):
        assert not ProcessRunner().is_available("helix-definitely-not-installed")


# ── OpenRouter client ───────────────────────────────────────────


class _FakeResponse:
    def __init__(self, body: bytes):
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def _completion(content: str) -> bytes:
    return json.dumps({
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 10, "completion_tokens": 5},
    }).encode()


@pytest.fixture
def captured(monkeypatch: pytest.MonkeyPatch):
    """Patch urlopen; tests set ``captured['respond']`` to a body or exception."""
    state: dict = {"requests": [], "respond": _completion("hello")}

    def urlopen(req, timeout=None):
        state["requests"].append({"req": req, "timeout": timeout})
        respond = state["respond"]
        if isinstance(respond, Exception):
            raise respond
        return _FakeResponse(respond)

    monkeypatch.setattr(urllib.request, "urlopen", urlopen)
    return state


class TestOpenRouterClient:
    def test_requires_key(self):
        with pytest.raises(CompletionError) as exc:
            OpenRouterClient("")
        assert exc.value.kind == "auth"

    def test_build_payload_defaults(self):
        payload = OpenRouterClient("k", model="m").build_payload("sys", "usr")
        assert payload == {
            "model": "m",
            "messages": [
                {"role": "system", "content": "sys"},
                {"role": "user", "content": "usr"},
            ],
            "max_tokens": DEFAULT_MAX_TOKENS,
            "temperature": DEFAULT_TEMPERATURE,
        }

    def test_build_payload_overrides(self):
        payload = OpenRouterClient("k").build_payload(
            "s", "u", model="other", max_tokens=10, temperature=0
        )
        assert payload["model"] == "other"
        assert payload["max_tokens"] == 10
        assert payload["temperature"] == 0

    def test_complete(self, captured):
        client = OpenRouterClient("secret", model="m", timeout=30)
        text = asyncio.run(client.complete("sys", "usr", max_tokens=50))

        assert text == "hello"
        req = captured["requests"][0]["req"]
        assert req.full_url == OPENROUTER_URL
        assert req.get_method() == "POST"
        assert req.get_header("Authorization") == "Bearer secret"
        assert json.loads(req.data)["max_tokens"] == 50
        assert captured["requests"][0]["timeout"] == 30

    def test_research_model(self, captured):
        asyncio.run(OpenRouterClient("k").research("s", "u"))
        assert json.loads(captured["requests"][0]["req"].data)["model"] == RESEARCH_MODEL

    @pytest.mark.parametrize("status, kind", [
        (401, "auth"),
        (403, "auth"),
        (429, "rate_limit"),
        (500, "transport"),
    ])
    def test_http_errors(self, captured, status, kind):
        captured["respond"] = urllib.error.HTTPError(
            OPENROUTER_URL, status, "err", {}, io.BytesIO(b"upstream said no")
        )
        with pytest.raises(CompletionError) as exc:
            asyncio.run(OpenRouterClient("k").complete("s", "u"))
        assert exc.value.kind == kind
        assert exc.value.status == status
        assert "upstream said no" in str(exc.value)

    def test_network_error(self, captured):
        captured["respond"] = urllib.error.URLError("connection refused")
        with pytest.raises(CompletionError) as exc:
            asyncio.run(OpenRouterClient("k").complete("s", "u"))
        assert exc.value.kind == "transport"

    def test_invalid_json_body(self, captured):
        captured["respond"] = b"<html>bad gateway</html>"
        with pytest.raises(CompletionError, match="invalid JSON"):
            asyncio.run(OpenRouterClient("k").complete("s", "u"))

    @pytest.mark.parametrize("body", [
        {},
        {"choices": []},
        {"choices": [{"message": {"content": ""}}]},
        {"choices": [{}]},
    ])
    def test_empty_response(self, body):
        with pytest.raises(CompletionError) as exc:
            OpenRouterClient.parse_response(body)
        assert exc.value.kind == "empty"
