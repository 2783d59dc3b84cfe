"""Model registry: which models exist and which credential unlocks them."""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass

from compactbot.auth.credentials import Credentials
from compactbot.config.providers import PROVIDERS


@dataclass(frozen=True)
class ModelDescriptor:
    """A model known to the registry."""
    provider: str
    id: str
    name: str = ""

    @property
    def litellm_model(self) -> str:
        """Model string in LiteLLM's ``provider/id`` form."""
        return f"{self.provider}/{self.id}"


class ModelRegistry(ABC):
    """Source of known models and their credentials."""

    @abstractmethod
    def list_known(self) -> list[ModelDescriptor]:
        """All models this registry can serve."""
        pass

    @abstractmethod
    async def credential_for(self, model: ModelDescriptor) -> str | None:
        """API key for *model*, or None when none is configured."""
        pass


class ProviderModelRegistry(ModelRegistry):
    """Registry backed by the static provider catalogue.

    Credentials come from the credentials file first, then the provider's
    conventional environment variable.
    """

    def __init__(
        self,
        credentials: Credentials | None = None,
        providers: list[dict] | None = None,
    ):
        self.credentials = credentials or Credentials()
        self.providers = providers if providers is not None else PROVIDERS

    def list_known(self) -> list[ModelDescriptor]:
        return [
            ModelDescriptor(provider=p["id"], id=m["id"], name=m.get("name", ""))
            for p in self.providers
            for m in p["models"]
        ]

    async def credential_for(self, model: ModelDescriptor) -> str | None:
        stored = self.credentials.api_key_for(model.provider)
        if stored:
            return stored

        for p in self.providers:
            if p["id"] == model.provider and p.get("env_key"):
                return os.environ.get(p["env_key"]) or None
        return None
