"""Async-friendly subprocess helpers (used for the Kerberos kinit command).

Commands run through `subprocess.run()` in `asyncio.to_thread()` rather than
`asyncio.create_subprocess_exec()`, which needs a working child watcher.
"""

from __future__ import annotations

import asyncio
import shlex
import subprocess
from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class RunResult:
    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace").strip()


async def run_subprocess(
    args: Sequence[str],
    *,
    timeout_s: float | None = None,
) -> RunResult:
    def _run() -> subprocess.CompletedProcess[bytes]:
        return subprocess.run(
            list(args),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=False,
            timeout=timeout_s,
        )

    cp = await asyncio.to_thread(_run)
    return RunResult(
        returncode=int(cp.returncode),
        stdout=cp.stdout or b"",
        stderr=cp.stderr or b"",
    )


async def run_command_line(command: str, *, timeout_s: float | None = 60.0) -> RunResult:
    """Split a configured command line (no shell) and run it."""
    args = shlex.split(str(command or ""))
    if not args:
        raise ValueError("empty command line")
    return await run_subprocess(args, timeout_s=timeout_s)
