"""Base class for summarizer tools."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class ToolCallResult:
    """What a tool call hands back to the model."""
    output: str
    is_error: bool = False


class Tool(ABC):
    """A tool the summarizer can call.

    ``execute`` must never raise: failures are reported as error results so
    the model can see them and adjust.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        """JSON schema of the tool's arguments."""
        pass

    @abstractmethod
    async def execute(self, **kwargs: Any) -> ToolCallResult:
        pass

    def to_schema(self) -> dict[str, Any]:
        """Tool definition in OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }
