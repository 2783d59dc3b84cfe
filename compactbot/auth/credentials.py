"""API keys for compaction providers, kept apart from the config file."""

import json
import os
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, Field


class ProviderCredentials(BaseModel):
    api_key: str = ""


class ProvidersCredentials(BaseModel):
    """One entry per provider in the model catalogue."""
    cerebras: ProviderCredentials = Field(default_factory=ProviderCredentials)
    anthropic: ProviderCredentials = Field(default_factory=ProviderCredentials)
    openai: ProviderCredentials = Field(default_factory=ProviderCredentials)
    gemini: ProviderCredentials = Field(default_factory=ProviderCredentials)


class Credentials(BaseModel):
    """Everything stored in ``~/.compactbot/credentials.json`` (mode 0o600)."""
    providers: ProvidersCredentials = Field(default_factory=ProvidersCredentials)

    def api_key_for(self, provider_id: str) -> str | None:
        """Stored API key for a provider, or None when unset/unknown."""
        entry = getattr(self.providers, provider_id, None)
        if isinstance(entry, ProviderCredentials) and entry.api_key:
            return entry.api_key
        return None


def get_credentials_path() -> Path:
    return Path.home() / ".compactbot" / "credentials.json"


def load_credentials(creds_path: Path | None = None) -> Credentials:
    """Read stored keys; a missing or broken file means no stored keys."""
    from compactbot.config.loader import convert_keys

    path = creds_path or get_credentials_path()
    if not path.exists():
        return Credentials()

    try:
        with open(path, encoding="utf-8") as f:
            return Credentials.model_validate(convert_keys(json.load(f)))
    except (json.JSONDecodeError, ValueError) as e:
        logger.warning(f"Ignoring unreadable credentials file {path}: {e}")
        return Credentials()


def save_credentials(creds: Credentials, creds_path: Path | None = None) -> None:
    """Write keys camelCased and readable by the owner only."""
    from compactbot.config.loader import convert_to_camel

    path = creds_path or get_credentials_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(convert_to_camel(creds.model_dump()), f, indent=2)

    os.chmod(path, 0o600)
