"""Sandboxed shell execution over a read-only file snapshot."""

from compactbot.sandbox.base import CommandResult, SandboxError, SandboxExecutor
from compactbot.sandbox.isolated import (
    BubblewrapSandbox,
    DockerSandbox,
    IsolatedSandbox,
    create_sandbox,
)

__all__ = [
    "BubblewrapSandbox",
    "CommandResult",
    "DockerSandbox",
    "IsolatedSandbox",
    "SandboxError",
    "SandboxExecutor",
    "create_sandbox",
]
