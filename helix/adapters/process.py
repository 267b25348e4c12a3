"""
Process runner — execute external commands and capture their output.

Build tools (``prisma``, ``flutter``, ``npm``) are opaque to the
compiler: it only needs an exit status and the captured text.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    """Outcome of one external command."""

    command: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    timed_out: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def error(self) -> str:
        """Best available failure text."""
        if self.timed_out:
            return f"Command timed out after {self.metadata.get('timeout')}s"
        return self.stderr or self.stdout or f"Command exited with code {self.returncode}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "command": self.command,
            "returncode": self.returncode,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "duration_ms": self.duration_ms,
            "timed_out": self.timed_out,
        }


class ProcessRunner:
    """Run commands without a shell, capturing stdout/stderr.

    Never raises for command failures; a missing executable or a
    timeout comes back as a failed ``ProcessResult``.
    """

    def __init__(self, timeout: float = 300, env: dict[str, str] | None = None):
        self.timeout = timeout
        self.env = env

    def is_available(self, executable: str) -> bool:
        return shutil.which(executable) is not None

    def run(
        self,
        command: list[str],
        cwd: Path | str | None = None,
        timeout: float | None = None,
    ) -> ProcessResult:
        timeout = timeout or self.timeout
        logger.debug("Executing: %s (cwd=%s)", " ".join(command), cwd)
        start = time.monotonic()

        try:
            proc = subprocess.run(
                command,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=self.env,
            )
        except subprocess.TimeoutExpired:
            logger.warning("Command timed out after %ss: %s", timeout, command[0])
            return ProcessResult(
                command=command,
                returncode=-1,
                duration_ms=_elapsed_ms(start),
                timed_out=True,
                metadata={"timeout": timeout},
            )
        except OSError as e:
            logger.warning("Cannot execute %s: %s", command[0], e)
            return ProcessResult(
                command=command,
                returncode=-1,
                stderr=f"Command execution error: {e}",
                duration_ms=_elapsed_ms(start),
            )

        result = ProcessResult(
            command=command,
            returncode=proc.returncode,
            stdout=proc.stdout.strip(),
            stderr=proc.stderr.strip(),
            duration_ms=_elapsed_ms(start),
        )
        if not result.ok:
            logger.debug("Command exited with %d: %s", result.returncode, result.stderr[:200])
        return result

    async def run_async(
        self,
        command: list[str],
        cwd: Path | str | None = None,
        timeout: float | None = None,
    ) -> ProcessResult:
        """``run`` on a worker thread, for use inside the executor."""
        return await asyncio.to_thread(self.run, command, cwd, timeout)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
