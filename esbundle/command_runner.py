"""Synchronous execution of bundler commands with a recording stand-in."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Sequence
import logging
import shlex
import subprocess


logger = logging.getLogger(__name__)


def format_command(command: Sequence[str]) -> str:
    return " ".join(shlex.quote(part) for part in command)


@dataclass
class CommandResult:
    """Represents the outcome of an executed command."""

    command: Sequence[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


class CommandError(RuntimeError):
    """Raised when a command exits with a non-zero status."""

    def __init__(self, result: CommandResult):
        super().__init__(
            f"Command failed with exit code {result.returncode}: {format_command(result.command)}\n"
            f"stdout: {result.stdout}\n"
            f"stderr: {result.stderr}"
        )
        self.result = result


class SpawnError(RuntimeError):
    """Raised when a command could not be started at all."""

    def __init__(self, command: Sequence[str], error: OSError):
        super().__init__(f"Failed to start command {format_command(command)}: {error}")
        self.command = list(command)
        self.error = error


class CommandRunner:
    """Abstract command runner interface."""

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
        note: str | None = None,
    ) -> CommandResult:
        raise NotImplementedError

    def format_command(self, command: Sequence[str]) -> str:
        return format_command(command)

    @staticmethod
    def _finalize(result: CommandResult, *, check: bool) -> CommandResult:
        if check and not result.succeeded:
            raise CommandError(result)
        return result


class SubprocessCommandRunner(CommandRunner):
    """Command runner that executes commands via :mod:`subprocess`."""

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
        note: str | None = None,
    ) -> CommandResult:
        logger.debug("Running %s%s", f"[{note}] " if note else "", self.format_command(command))
        try:
            process = subprocess.run(
                list(command),
                cwd=str(cwd) if cwd else None,
                capture_output=True,
                text=True,
                errors="replace",
                check=False,
            )
        except OSError as exc:
            raise SpawnError(command, exc) from exc

        return self._finalize(
            CommandResult(
                command=command,
                returncode=process.returncode,
                stdout=process.stdout,
                stderr=process.stderr,
            ),
            check=check,
        )


@dataclass(slots=True)
class RecordedCommand:
    command: List[str]
    cwd: str | None
    note: str | None


@dataclass
class ScriptedOutcome:
    """Canned result handed back by :class:`RecordingCommandRunner`."""

    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    spawn_error: OSError | None = None


class RecordingCommandRunner(CommandRunner):
    """Command runner that records commands instead of executing them.

    Outcomes queued in ``outcomes`` are consumed one per call; once the queue
    is empty every command succeeds with empty output.
    """

    def __init__(self, outcomes: Iterable[ScriptedOutcome] = ()) -> None:
        self.commands: List[RecordedCommand] = []
        self.outcomes: List[ScriptedOutcome] = list(outcomes)

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
        note: str | None = None,
    ) -> CommandResult:
        self.commands.append(
            RecordedCommand(
                command=list(command),
                cwd=str(cwd) if cwd else None,
                note=note,
            )
        )
        outcome = self.outcomes.pop(0) if self.outcomes else ScriptedOutcome()
        if outcome.spawn_error is not None:
            raise SpawnError(command, outcome.spawn_error)
        return self._finalize(
            CommandResult(
                command=command,
                returncode=outcome.returncode,
                stdout=outcome.stdout,
                stderr=outcome.stderr,
            ),
            check=check,
        )

    def iter_commands(self) -> Iterable[RecordedCommand]:
        return iter(self.commands)

    def iter_formatted(self, *, workspace: Path | None = None) -> Iterable[str]:
        default_cwd = str(workspace) if workspace else None
        for record in self.commands:
            cmd = self.format_command(record.command)
            cwd = record.cwd or default_cwd
            parts: List[str] = ["[dry-run]"]
            if record.note:
                parts.append(record.note)
            if cwd:
                parts.append(f"(cwd={cwd})")
            parts.append(cmd)
            yield " ".join(parts)
