"""Provider configuration consumed by the Foundry adapter."""

from __future__ import annotations

import os
from collections.abc import Mapping
from enum import Enum
from typing import Any, Dict, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

DEFAULT_API_VERSION = "2024-08-01-preview"
ENV_PREFIX = "FOUNDRY_"

_TRUTHY = {"1", "true", "yes", "on"}


class AuthMode(str, Enum):
    """How the provisioned client authenticates against the endpoint."""

    API_KEY = "api_key"
    IDENTITY = "identity"


class CloudEnvironment(str, Enum):
    """Azure cloud the endpoint belongs to."""

    COMMERCIAL = "commercial"
    GOVERNMENT = "government"
    CHINA = "china"
    STACK = "stack"


class ReasoningEffort(str, Enum):
    """Effort hint forwarded to reasoning-class deployments."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ProviderConfig(BaseModel):
    """Settings for one Microsoft Foundry / Azure OpenAI deployment.

    Instances are immutable; the adapter keeps a read-only reference for the
    lifetime of a request. Blank strings are treated as unset so values coming
    straight from a settings form behave like missing ones.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    endpoint: str | None = Field(None, description="Resource endpoint, e.g. https://my-resource.openai.azure.com.")
    api_key: SecretStr | None = Field(None, description="Static API key used when identity auth is disabled.")
    use_identity: bool = Field(False, description="Authenticate with an Azure identity bearer token instead of a key.")
    cloud_environment: CloudEnvironment = Field(
        CloudEnvironment.COMMERCIAL,
        description="Cloud used to pick the token audience when the endpoint host is not recognised.",
    )
    custom_scope: str | None = Field(None, description="Audience scope override for Azure Stack identity auth.")
    api_version: str | None = Field(None, description="API version override; defaults to DEFAULT_API_VERSION.")
    deployment_id: str | None = Field(None, description="Deployment name sent as the model identifier.")
    reasoning_effort: ReasoningEffort | None = Field(None, description="Effort hint for reasoning deployments.")
    capability_overrides: Dict[str, Union[bool, int, float]] = Field(
        default_factory=dict,
        description="Partial capability record applied over the static lookup for this deployment.",
    )

    @field_validator("endpoint", "custom_scope", "api_version", "deployment_id", "api_key", mode="before")
    @classmethod
    def _blank_as_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return value

    @field_validator("capability_overrides")
    @classmethod
    def _known_capabilities(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        from .core.capabilities import CAPABILITY_FIELDS

        unknown = sorted(set(value) - CAPABILITY_FIELDS)
        if unknown:
            joined = ", ".join(unknown)
            msg = f"unknown capability override keys: {joined}"
            raise ValueError(msg)
        return value

    @property
    def auth_mode(self) -> AuthMode | None:
        """Selected auth mode, or ``None`` when neither a key nor identity is configured."""

        if self.use_identity:
            return AuthMode.IDENTITY
        if self.api_key is not None:
            return AuthMode.API_KEY
        return None

    @property
    def resolved_api_version(self) -> str:
        return self.api_version or DEFAULT_API_VERSION

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        prefix: str = ENV_PREFIX,
    ) -> "ProviderConfig":
        """Build a configuration from ``FOUNDRY_*`` environment variables.

        Recognised names are the upper-cased field names behind ``prefix``,
        e.g. ``FOUNDRY_ENDPOINT`` or ``FOUNDRY_USE_IDENTITY``. Capability
        overrides are not read from the environment.
        """

        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for name in (
            "endpoint",
            "api_key",
            "cloud_environment",
            "custom_scope",
            "api_version",
            "deployment_id",
            "reasoning_effort",
        ):
            raw = env.get(f"{prefix}{name.upper()}")
            if raw is not None and raw.strip():
                values[name] = raw.strip().lower() if name in {"cloud_environment", "reasoning_effort"} else raw

        use_identity = env.get(f"{prefix}USE_IDENTITY")
        if use_identity is not None:
            values["use_identity"] = use_identity.strip().lower() in _TRUTHY

        return cls(**values)


__all__ = [
    "AuthMode",
    "CloudEnvironment",
    "DEFAULT_API_VERSION",
    "ProviderConfig",
    "ReasoningEffort",
]
