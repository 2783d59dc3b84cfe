"""Pick the compaction model: first configured candidate that is usable."""

from dataclasses import dataclass

from loguru import logger

from compactbot.config.schema import CompactionModelConfig
from compactbot.providers.registry import ModelDescriptor, ModelRegistry


@dataclass(frozen=True)
class ModelSelection:
    """A model together with the credential and thinking level to use."""
    model: ModelDescriptor
    api_key: str
    thinking_level: str


def _find_registered(
    known: list[ModelDescriptor], candidate: CompactionModelConfig
) -> ModelDescriptor | None:
    for model in known:
        if model.provider == candidate.provider and model.id == candidate.id:
            return model
    return None


async def select_compaction_model(
    candidates: list[CompactionModelConfig],
    registry: ModelRegistry,
    session_model: ModelDescriptor | None,
    default_thinking_level: str,
) -> ModelSelection | None:
    """Return the first candidate that is registered and has a credential.

    Falls back to *session_model* (with the global thinking level) when no
    candidate qualifies. ``None`` means no usable model; compaction should
    be skipped.
    """
    known = registry.list_known()

    for candidate in candidates:
        model = _find_registered(known, candidate)
        if model is None:
            logger.debug(f"Model {candidate.key} not registered")
            continue

        api_key = await registry.credential_for(model)
        if not api_key:
            logger.debug(f"No API key for {candidate.key}")
            continue

        return ModelSelection(
            model=model,
            api_key=api_key,
            thinking_level=candidate.thinking_level or default_thinking_level,
        )

    if session_model is not None:
        api_key = await registry.credential_for(session_model)
        if api_key:
            return ModelSelection(
                model=session_model,
                api_key=api_key,
                thinking_level=default_thinking_level,
            )
        logger.debug(f"No API key for session model {session_model.litellm_model}")

    return None
