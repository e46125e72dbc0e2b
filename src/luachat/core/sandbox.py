"""Lua sandbox with a single print capability."""

from __future__ import annotations

import asyncio
import json
import sys
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from luachat.core import lua_worker

DEFAULT_INSTRUCTION_LIMIT = 10_000_000
DEFAULT_MEMORY_LIMIT_BYTES = 64 * 1024 * 1024
DEFAULT_TIME_LIMIT_SECONDS = 5.0
TIME_LIMIT_ERROR = "time limit exceeded"

_WORKER_PATH = Path(lua_worker.__file__)


@dataclass(frozen=True)
class ExecutionResult:
    """Captured print output, or the interpreter error that stopped the script."""

    output: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class LuaSandbox:
    """Executes scripts in a freshly created Lua runtime per call.

    ``execute`` runs in-process and is bounded by the instruction and memory
    limits only. ``run`` executes in a worker process that is killed after
    ``time_limit_seconds``; C-level work such as pattern backtracking never
    reaches the instruction hook, so the wall clock is the only hard stop.
    """

    def __init__(
        self,
        *,
        instruction_limit: int = DEFAULT_INSTRUCTION_LIMIT,
        memory_limit_bytes: int = DEFAULT_MEMORY_LIMIT_BYTES,
        time_limit_seconds: float = DEFAULT_TIME_LIMIT_SECONDS,
    ) -> None:
        self._instruction_limit = instruction_limit
        self._memory_limit_bytes = memory_limit_bytes
        self._time_limit_seconds = time_limit_seconds

    def execute(self, code: str) -> ExecutionResult:
        output, error = lua_worker.execute_lua(
            code,
            instruction_limit=self._instruction_limit,
            memory_limit_bytes=self._memory_limit_bytes,
        )
        if error is not None:
            logger.info("sandbox.error error={}", error)
        return ExecutionResult(output=output, error=error)

    async def run(self, code: str) -> ExecutionResult:
        """Execute in a killable worker process so other connections keep streaming."""
        request = json.dumps(
            {
                "code": code,
                "instruction_limit": self._instruction_limit,
                "memory_limit_bytes": self._memory_limit_bytes,
            }
        ).encode("utf-8")
        process = await asyncio.create_subprocess_exec(
            sys.executable,
            str(_WORKER_PATH),
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            async with asyncio.timeout(self._time_limit_seconds):
                stdout, stderr = await process.communicate(request)
        except TimeoutError:
            logger.info("sandbox.error error={} seconds={}", TIME_LIMIT_ERROR, self._time_limit_seconds)
            return ExecutionResult(error=TIME_LIMIT_ERROR)
        finally:
            if process.returncode is None:
                process.kill()
                await process.wait()

        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip().splitlines()
            message = f"sandbox worker failed: {detail[-1] if detail else f'exit code {process.returncode}'}"
            logger.error("sandbox.worker.failed returncode={} error={}", process.returncode, message)
            return ExecutionResult(error=message)

        result = json.loads(stdout)
        if result["error"] is not None:
            logger.info("sandbox.error error={}", result["error"])
        return ExecutionResult(output=result["output"], error=result["error"])
