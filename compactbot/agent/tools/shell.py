"""Shell tools: bash and zsh over the conversation snapshot."""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from loguru import logger

from compactbot.agent.tools.base import Tool, ToolCallResult
from compactbot.prompts.compaction import SHELL_TOOL_DESCRIPTION, ZSH_TOOL_DESCRIPTION
from compactbot.sandbox.base import SandboxExecutor


class ShellTool(Tool):
    """Runs one command in the sandbox and reports output plus error state."""

    def __init__(
        self,
        name: str,
        description: str,
        executor: SandboxExecutor,
        files: Mapping[str, str],
        max_output_chars: int = 50_000,
    ):
        self._name = name
        self._description = description
        self._executor = executor
        self._files = MappingProxyType(dict(files))
        self._max_output_chars = max_output_chars

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "command": {
                    "type": "string",
                    "description": "The shell command to execute",
                },
            },
            "required": ["command"],
        }

    async def execute(self, command: Any = None, **kwargs: Any) -> ToolCallResult:
        if not isinstance(command, str) or not command.strip():
            return ToolCallResult(output="Error: missing 'command' argument", is_error=True)

        try:
            r = await self._executor.run(command, self._files)
        except Exception as e:
            logger.debug(f"{self._name} command failed: {e}")
            return ToolCallResult(output=f"Error: {e}", is_error=True)

        output = r.stdout + (f"\nstderr: {r.stderr}" if r.stderr else "")
        is_error = False
        if r.exit_code != 0:
            output += f"\nexit code: {r.exit_code}"
            is_error = True

        return ToolCallResult(output=output[: self._max_output_chars], is_error=is_error)


def create_shell_tools(
    executor: SandboxExecutor,
    files: Mapping[str, str],
    max_output_chars: int = 50_000,
) -> list[Tool]:
    """The two equivalent shell tools offered to the summarizer."""
    return [
        ShellTool("bash", SHELL_TOOL_DESCRIPTION, executor, files, max_output_chars),
        ShellTool("zsh", ZSH_TOOL_DESCRIPTION, executor, files, max_output_chars),
    ]
