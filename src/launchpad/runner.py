"""
Command execution for external tools.

Every external command (terraform, kubectl apply, docker, aws eks) goes
through a CommandRunner, so the providers never touch subprocess directly
and tests can substitute a scripted runner.
"""

from __future__ import annotations

import shlex
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, Sequence

import structlog

from launchpad.core.errors import CommandError, ProviderError

logger = structlog.get_logger()


@dataclass(frozen=True)
class CommandResult:
    """Outcome of running one external command."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def command_line(self) -> str:
        return shlex.join(self.args)

    def raise_for_status(self, error_cls: type[ProviderError] = CommandError) -> CommandResult:
        """Raise ``error_cls`` if the command failed, otherwise return self."""
        if not self.success:
            detail = (self.stderr or self.stdout).strip()[:500]
            raise error_cls(
                f"Command failed (exit {self.returncode}): {self.command_line}"
                + (f": {detail}" if detail else ""),
                details={"returncode": self.returncode},
            )
        return self


class CommandRunner(Protocol):
    """Contract for anything that can run an external command."""

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
        stream: bool = False,
        input: str | None = None,
    ) -> CommandResult:
        ...


class SubprocessRunner:
    """Runs commands locally with subprocess.

    ``stream=True`` lets output flow straight to the terminal (terraform
    apply and docker build run for minutes); the result then carries no
    captured stdout or stderr.
    """

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
        stream: bool = False,
        input: str | None = None,
    ) -> CommandResult:
        argv = tuple(str(a) for a in args)
        logger.debug("command_started", command=shlex.join(argv), cwd=str(cwd) if cwd else None)
        try:
            proc = subprocess.run(
                argv,
                cwd=cwd,
                capture_output=not stream,
                input=input,
                text=True,
                timeout=timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise CommandError(f"Executable not found: {argv[0]}", details={"command": argv[0]}) from e
        except subprocess.TimeoutExpired as e:
            raise CommandError(
                f"Command timed out after {timeout}s: {shlex.join(argv)}",
                details={"timeout": timeout},
            ) from e

        return CommandResult(
            args=argv,
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
        )


@dataclass
class DryRunRunner:
    """Records commands instead of running them.

    Every command "succeeds" with empty output, so the pipeline can be
    walked end to end without touching real infrastructure.
    """

    commands: list[tuple[str, ...]] = field(default_factory=list)

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
        stream: bool = False,
        input: str | None = None,
    ) -> CommandResult:
        argv = tuple(str(a) for a in args)
        self.commands.append(argv)
        logger.info("dry_run_command", command=shlex.join(argv), cwd=str(cwd) if cwd else None)
        return CommandResult(args=argv, returncode=0)
