"""
Shell command runner — the single place where installers reach
``subprocess.run``.

No timeout is imposed: network installers may block for as long as
they need. Callers that want a wall-clock bound apply it outside the
process.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from typing import Mapping

from devbootstrap.adapters.base import CommandRunner, format_argv
from devbootstrap.core.models.receipt import Receipt

logger = logging.getLogger(__name__)

# Keep receipts small: installers can be very chatty.
_OUTPUT_TAIL = 4000


class ShellCommandRunner(CommandRunner):
    """Execute commands with subprocess and capture their output."""

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def _execute(
        self,
        argv: list[str],
        *,
        operation: str,
        env: Mapping[str, str] | None,
        cwd: str | None,
    ) -> Receipt:
        process_env = os.environ.copy()
        if env:
            process_env.update(env)

        start = time.monotonic()
        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                env=process_env,
                cwd=cwd,
            )
        except FileNotFoundError:
            return Receipt.failure(
                adapter=self.name,
                operation=operation,
                error=f"Command not found: {argv[0]}",
                metadata={"command": format_argv(argv)},
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                operation=operation,
                error=f"Command execution error: {e}",
                metadata={"command": format_argv(argv)},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        stdout = (result.stdout or "")[-_OUTPUT_TAIL:]
        stderr = (result.stderr or "")[-_OUTPUT_TAIL:]

        if stdout:
            logger.debug("STDOUT %s", stdout.strip())
        if stderr:
            logger.debug("STDERR %s", stderr.strip())

        metadata = {
            "command": format_argv(argv),
            "return_code": result.returncode,
            "stderr": stderr.strip(),
        }
        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                operation=operation,
                output=stdout.strip(),
                duration_ms=elapsed_ms,
                metadata=metadata,
            )
        return Receipt.failure(
            adapter=self.name,
            operation=operation,
            error=stderr.strip() or f"Command exited with code {result.returncode}",
            output=stdout.strip(),
            duration_ms=elapsed_ms,
            metadata=metadata,
        )
