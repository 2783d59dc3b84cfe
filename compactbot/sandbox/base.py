"""Sandbox executor interface."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass


class SandboxError(Exception):
    """The sandbox could not run a command."""


@dataclass
class CommandResult:
    """Raw outcome of one shell command."""
    stdout: str
    stderr: str
    exit_code: int


class SandboxExecutor(ABC):
    """Runs a shell command against an immutable path -> content snapshot.

    Implementations must leave *files* untouched and must not let one command
    observe state left behind by another.
    """

    @abstractmethod
    async def run(self, command: str, files: Mapping[str, str]) -> CommandResult:
        """Run *command* with *files* visible at their snapshot paths."""
        pass
