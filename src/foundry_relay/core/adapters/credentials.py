"""Lazy construction of the authenticated Azure OpenAI client."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable
from urllib.parse import urlparse

from azure.identity.aio import DefaultAzureCredential, get_bearer_token_provider
from openai import AsyncAzureOpenAI

from ...config import AuthMode, CloudEnvironment, ProviderConfig
from ..errors import ClassifiedError, ErrorKind, classify_error

LOGGER = logging.getLogger(__name__)

COMMERCIAL_SCOPE = "https://cognitiveservices.azure.com/.default"
GOVERNMENT_SCOPE = "https://cognitiveservices.azure.us/.default"
CHINA_SCOPE = "https://cognitiveservices.azure.cn/.default"

_SCOPE_SUFFIX = "/.default"

_HOST_SCOPES = (
    ("azure.us", GOVERNMENT_SCOPE),
    ("azure.cn", CHINA_SCOPE),
    ("azure.com", COMMERCIAL_SCOPE),
)

_ENVIRONMENT_SCOPES = {
    CloudEnvironment.COMMERCIAL: COMMERCIAL_SCOPE,
    CloudEnvironment.GOVERNMENT: GOVERNMENT_SCOPE,
    CloudEnvironment.CHINA: CHINA_SCOPE,
}


def normalize_scope(scope: str) -> str:
    """Return ``scope`` with exactly one trailing ``/.default``."""

    cleaned = scope.strip()
    if cleaned.endswith(_SCOPE_SUFFIX):
        return cleaned
    return cleaned.rstrip("/") + _SCOPE_SUFFIX


def resolve_audience_scope(
    endpoint: str | None,
    cloud_environment: CloudEnvironment | str = CloudEnvironment.COMMERCIAL,
    custom_scope: str | None = None,
) -> str:
    """Pick the token audience for identity auth.

    Order: the custom scope for Azure Stack, then the endpoint host suffix,
    then the declared cloud. Azure Stack without a custom scope is a
    configuration error; it is never defaulted.
    """

    environment = CloudEnvironment(cloud_environment)
    if environment is CloudEnvironment.STACK and custom_scope:
        return normalize_scope(custom_scope)

    host = _endpoint_host(endpoint)
    for suffix, scope in _HOST_SCOPES:
        if host == suffix or host.endswith("." + suffix):
            return scope

    if environment is CloudEnvironment.STACK:
        msg = (
            "Azure Stack environment requires a custom audience scope. "
            "Configure 'Custom Scope' in the provider settings."
        )
        raise ClassifiedError(ErrorKind.CONFIGURATION, msg)

    return _ENVIRONMENT_SCOPES[environment]


def _endpoint_host(endpoint: str | None) -> str:
    if not endpoint:
        return ""
    raw = endpoint.strip().lower()
    parsed = urlparse(raw if "://" in raw else f"https://{raw}")
    return parsed.hostname or ""


class ClientProvisioner:
    """Build and cache one ``AsyncAzureOpenAI`` client per configuration.

    The client is created on the first :meth:`ensure_client` call and reused
    until :meth:`reset` swaps the configuration. The factories default to the
    real SDK constructors and exist so tests can observe what is built.
    """

    def __init__(
        self,
        config: ProviderConfig,
        *,
        client_factory: Callable[..., Any] | None = None,
        credential_factory: Callable[[], Any] | None = None,
        token_provider_factory: Callable[[Any, str], Any] | None = None,
    ) -> None:
        self._config = config
        self._client_factory = client_factory or AsyncAzureOpenAI
        self._credential_factory = credential_factory or DefaultAzureCredential
        self._token_provider_factory = token_provider_factory or get_bearer_token_provider
        self._client: Any | None = None
        self._credential: Any | None = None

    @property
    def config(self) -> ProviderConfig:
        return self._config

    @property
    def has_client(self) -> bool:
        return self._client is not None

    def ensure_client(self) -> Any:
        """Return the cached client, constructing it on first use.

        Raises :class:`ClassifiedError` of kind ``configuration`` when the
        endpoint or an auth method is missing; construction failures are run
        through :func:`classify_error`.
        """

        if self._client is not None:
            return self._client

        config = self._config
        if not config.endpoint:
            msg = "Microsoft Foundry endpoint is required. Configure the endpoint URL."
            raise ClassifiedError(ErrorKind.CONFIGURATION, msg)

        auth_mode = config.auth_mode
        if auth_mode is None:
            msg = (
                "Microsoft Foundry requires either an API key or Azure Identity authentication. "
                "Configure one of these options."
            )
            raise ClassifiedError(ErrorKind.CONFIGURATION, msg)

        credential = None
        try:
            if auth_mode is AuthMode.IDENTITY:
                scope = resolve_audience_scope(config.endpoint, config.cloud_environment, config.custom_scope)
                credential = self._credential_factory()
                client = self._client_factory(
                    azure_endpoint=config.endpoint,
                    azure_ad_token_provider=self._token_provider_factory(credential, scope),
                    api_version=config.resolved_api_version,
                )
            else:
                client = self._client_factory(
                    azure_endpoint=config.endpoint,
                    api_key=config.api_key.get_secret_value(),
                    api_version=config.resolved_api_version,
                )
        except ClassifiedError:
            raise
        except Exception as exc:
            raise classify_error(exc, auth_mode=auth_mode, deployment_id=config.deployment_id) from exc

        self._client = client
        self._credential = credential
        LOGGER.info(
            "provisioned Azure OpenAI client for %s (auth=%s, api_version=%s)",
            _endpoint_host(config.endpoint) or config.endpoint,
            auth_mode.value,
            config.resolved_api_version,
        )
        return client

    async def reset(self, config: ProviderConfig | None = None) -> None:
        """Discard the cached client, optionally switching configuration."""

        if config is not None:
            self._config = config
        await self.aclose()

    async def aclose(self) -> None:
        """Close the cached client and credential, if any."""

        client, credential = self._client, self._credential
        self._client = None
        self._credential = None
        for resource in (client, credential):
            closer = getattr(resource, "close", None)
            if closer is None:
                continue
            result = closer()
            if inspect.isawaitable(result):
                await result


__all__ = [
    "CHINA_SCOPE",
    "COMMERCIAL_SCOPE",
    "ClientProvisioner",
    "GOVERNMENT_SCOPE",
    "normalize_scope",
    "resolve_audience_scope",
]
