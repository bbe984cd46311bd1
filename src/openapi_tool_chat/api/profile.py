"""
Credential lookup for the model provider.

A 'ProfileProvider' resolves the credentials used for the two model rounds of a
request. The service ships 'EnvironmentProfileProvider', which serves the key
configured in the process environment; deployments with per-user keys plug in
their own provider when building the app.
"""

from abc import ABC, abstractmethod

from fastapi import Request
from pydantic import BaseModel

from openapi_tool_chat.config import Settings
from openapi_tool_chat.errors import ConfigError


class Profile(BaseModel):
    openai_api_key: str | None = None
    openai_organization_id: str | None = None


class ProfileProvider(ABC):
    """Abstract source of the caller's provider credentials."""

    @abstractmethod
    async def get_profile(self, request: Request) -> Profile:
        """Return the credentials for the current request."""
        pass


class EnvironmentProfileProvider(ProfileProvider):
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    async def get_profile(self, request: Request) -> Profile:
        return Profile(
            openai_api_key=self.settings.openai_api_key,
            openai_organization_id=self.settings.openai_organization_id,
        )


def check_api_key(api_key: str | None, provider_name: str) -> None:
    """Fail before any model call when the key is missing."""
    if not api_key:
        message = f"{provider_name} API Key not found"
        raise ConfigError(message, public_message=message)
