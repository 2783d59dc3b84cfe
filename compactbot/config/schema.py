"""Configuration schema using Pydantic."""

import math
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings

ThinkingLevel = Literal["off", "minimal", "low", "medium", "high", "xhigh"]
SandboxBackend = Literal["auto", "bwrap", "docker"]

VALID_THINKING_LEVELS: frozenset[str] = frozenset(
    {"off", "minimal", "low", "medium", "high", "xhigh"}
)


def normalize_thinking_level(value: Any) -> str | None:
    """Lowercase and trim a thinking level; ``None`` if it isn't a known one."""
    if not isinstance(value, str):
        return None
    lower = value.strip().lower()
    return lower if lower in VALID_THINKING_LEVELS else None


def is_valid_model_config(value: Any) -> bool:
    """True for a mapping with string ``provider`` and ``id`` entries."""
    if isinstance(value, CompactionModelConfig):
        return True
    return (
        isinstance(value, dict)
        and isinstance(value.get("provider"), str)
        and isinstance(value.get("id"), str)
    )


def _coerce_number(value: Any) -> Any:
    # Environment variables arrive as strings
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return value
    return value


def _is_positive_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value > 0
    )


class CompactionModelConfig(BaseModel):
    """A model to try for compaction, in configured order."""
    provider: str
    id: str
    thinking_level: ThinkingLevel | None = None  # Overrides the global level

    @field_validator("thinking_level", mode="before")
    @classmethod
    def _normalize_thinking(cls, value: Any) -> str | None:
        return normalize_thinking_level(value)

    @property
    def key(self) -> str:
        return f"{self.provider}/{self.id}"

    class Config:
        frozen = True


def _default_models() -> list[CompactionModelConfig]:
    return [
        CompactionModelConfig(provider="cerebras", id="qwen-3-32b"),
        CompactionModelConfig(provider="anthropic", id="claude-haiku-4-5"),
    ]


_DEFAULTS: dict[str, Any] = {
    "thinking_level": "off",
    "debug_compactions": False,
    "tool_result_max_chars": 50_000,
    "tool_call_preview_chars": 60,
    "tool_call_concurrency": 6,
    "min_summary_chars": 100,
    "tool_timeout_seconds": 30.0,
    "sandbox_backend": "auto",
    "sandbox_image": "compactbot-sandbox:latest",
}


class CompactionConfig(BaseSettings):
    """Root configuration for compactbot.

    Built once and passed explicitly to every component. Invalid values fall
    back to their defaults instead of failing validation, so a half-broken
    config file still yields a usable configuration.
    """
    compaction_models: list[CompactionModelConfig] = Field(default_factory=_default_models)
    thinking_level: ThinkingLevel = "off"  # Used when a model has no override
    debug_compactions: bool = False  # Persist diagnostics under ~/.compactbot/compactions
    tool_result_max_chars: int = 50_000
    tool_call_preview_chars: int = 60
    tool_call_concurrency: int = 6
    min_summary_chars: int = 100
    tool_timeout_seconds: float = 30.0  # Per shell command in the sandbox
    sandbox_backend: SandboxBackend = "auto"  # auto tries bwrap, then docker
    sandbox_image: str = "compactbot-sandbox:latest"  # Used by the docker backend

    @field_validator("compaction_models", mode="before")
    @classmethod
    def _parse_models(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return _default_models()
        return [m for m in value if is_valid_model_config(m)]

    @field_validator("thinking_level", mode="before")
    @classmethod
    def _parse_thinking(cls, value: Any) -> str:
        return normalize_thinking_level(value) or _DEFAULTS["thinking_level"]

    @field_validator("debug_compactions", mode="before")
    @classmethod
    def _parse_bool(cls, value: Any) -> bool:
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        return value if isinstance(value, bool) else _DEFAULTS["debug_compactions"]

    @field_validator(
        "tool_result_max_chars",
        "tool_call_preview_chars",
        "tool_call_concurrency",
        "min_summary_chars",
        mode="before",
    )
    @classmethod
    def _parse_positive_int(cls, value: Any, info: ValidationInfo) -> int:
        value = _coerce_number(value)
        if _is_positive_number(value):
            return max(1, math.floor(value))
        return _DEFAULTS[info.field_name]

    @field_validator("tool_timeout_seconds", mode="before")
    @classmethod
    def _parse_timeout(cls, value: Any) -> float:
        value = _coerce_number(value)
        return float(value) if _is_positive_number(value) else _DEFAULTS["tool_timeout_seconds"]

    @field_validator("sandbox_backend", mode="before")
    @classmethod
    def _parse_backend(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip().lower() in ("auto", "bwrap", "docker"):
            return value.strip().lower()
        return _DEFAULTS["sandbox_backend"]

    @field_validator("sandbox_image", mode="before")
    @classmethod
    def _parse_image(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return _DEFAULTS["sandbox_image"]

    class Config:
        env_prefix = "COMPACTBOT_"
        env_nested_delimiter = "__"
        frozen = True
