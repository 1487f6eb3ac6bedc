"""
Mock runner — test double for every command an installer runs.

Used by tests to simulate the host without
executing anything. Responses are matched by substring against the
fully built command line; the most recently registered match wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Mapping

from devbootstrap.adapters.base import CommandRunner, format_argv
from devbootstrap.core.models.receipt import Receipt


@dataclass
class MockResponse:
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0
    side_effect: Callable[[list[str]], None] | None = None


class MockRunner(CommandRunner):
    """Universal mock runner for testing.

    By default every command succeeds with empty output. Version
    probes therefore report nothing until a response is registered.
    """

    def __init__(self, dry_run: bool = False, runner_name: str = "mock"):
        super().__init__(dry_run=dry_run)
        self._name = runner_name
        self._responses: list[tuple[str, MockResponse]] = []
        self._call_log: list[list[str]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[list[str]]:
        """Every command this mock actually executed."""
        return self._call_log

    @property
    def commands(self) -> list[str]:
        """Executed commands rendered as shell strings."""
        return [format_argv(argv) for argv in self._call_log]

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def is_available(self) -> bool:
        return True

    def set_response(
        self,
        pattern: str,
        *,
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
        side_effect: Callable[[list[str]], None] | None = None,
    ) -> None:
        """Register a response for commands containing ``pattern``."""
        self._responses.append(
            (pattern, MockResponse(stdout, stderr, returncode, side_effect))
        )

    def set_failure(self, pattern: str, error: str = "Mock failure") -> None:
        """Configure commands containing ``pattern`` to fail."""
        self.set_response(pattern, stderr=error, returncode=1)

    def calls_matching(self, pattern: str) -> list[str]:
        return [cmd for cmd in self.commands if pattern in cmd]

    def _execute(
        self,
        argv: list[str],
        *,
        operation: str,
        env: Mapping[str, str] | None,
        cwd: str | None,
    ) -> Receipt:
        self._call_log.append(list(argv))
        rendered = format_argv(argv)
        # Match against the raw argv too: shlex quoting splits patterns
        # like "uv --version" when the binary path needs quoting.
        raw = " ".join(argv)

        response = MockResponse()
        for pattern, candidate in reversed(self._responses):
            if pattern in rendered or pattern in raw:
                response = candidate
                break

        if response.side_effect is not None:
            response.side_effect(list(argv))

        metadata = {
            "command": rendered,
            "return_code": response.returncode,
            "stderr": response.stderr,
            "mock": True,
        }
        if response.returncode == 0:
            return Receipt.success(
                adapter=self._name,
                operation=operation,
                output=response.stdout,
                metadata=metadata,
            )
        return Receipt.failure(
            adapter=self._name,
            operation=operation,
            error=response.stderr or f"Command exited with code {response.returncode}",
            output=response.stdout,
            metadata=metadata,
        )

    def reset(self) -> None:
        """Clear call log, planned commands and custom responses."""
        self._call_log.clear()
        self._planned.clear()
        self._responses.clear()
