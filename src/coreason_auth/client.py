# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_auth

"""
AuthClient component orchestrating the authorization, token and verification flows.
"""

import warnings
from typing import Any

import httpx
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from coreason_auth.challenge import ChallengeBuilder, ResponseType
from coreason_auth.config import AuthClientConfig
from coreason_auth.exceptions import ConfigurationError
from coreason_auth.models import AuthorizeResult, ExchangeOutcome, RefreshOutcome, VerifyOutcome
from coreason_auth.models_internal import IssuerMetadata
from coreason_auth.oidc_provider import OIDCProvider
from coreason_auth.token_exchanger import TokenExchanger
from coreason_auth.transport import SafeHTTPTransport
from coreason_auth.validator import SubjectSchemas, SubjectVerifier


class AuthClient:
    """
    OAuth2 client for a single issuer.

    Holds per-instance caches of the issuer metadata and key set. Tokens are never
    stored; each call receives the tokens it needs. Use as an async context manager
    to close an internally created HTTP client.
    """

    def __init__(self, config: AuthClientConfig, client: httpx.AsyncClient | None = None) -> None:
        """
        Initialize the AuthClient.

        Args:
            config: The configuration object.
            client: External async client (optional). If not provided, a `SafeHTTPTransport` client is created.

        Raises:
            ConfigurationError: If no issuer is configured.
        """
        if not config.issuer:
            raise ConfigurationError("No issuer configured. Pass 'issuer' or set COREASON_AUTH_ISSUER.")

        self.config = config
        self.issuer: str = config.issuer
        self._internal_client = client is None

        if client:
            self._client = client
        else:
            transport = None if config.unsafe_local_dev else SafeHTTPTransport()
            self._client = httpx.AsyncClient(transport=transport, timeout=config.http_timeout)
            HTTPXClientInstrumentor().instrument_client(self._client)

        self.oidc_provider = OIDCProvider(self.issuer, self._client)
        self.challenge_builder = ChallengeBuilder(config.client_id, self.issuer)
        self.exchanger = TokenExchanger(
            client_id=config.client_id,
            issuer=self.issuer,
            client=self._client,
            refresh_window=config.refresh_window,
        )
        self.verifier = SubjectVerifier(
            oidc_provider=self.oidc_provider,
            exchanger=self.exchanger,
            issuer=self.issuer,
            allowed_algorithms=config.allowed_algorithms,
            leeway=config.clock_skew_leeway,
        )

    async def __aenter__(self) -> "AuthClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._internal_client:
            await self._client.aclose()

    async def get_issuer(self) -> IssuerMetadata:
        return await self.oidc_provider.get_issuer()

    def authorize(
        self,
        redirect_uri: str,
        response_type: ResponseType,
        pkce: bool = False,
        provider: str | None = None,
    ) -> AuthorizeResult:
        """
        Builds the authorization URL and the challenge to persist until the callback.

        See `ChallengeBuilder.authorize`.
        """
        return self.challenge_builder.authorize(redirect_uri, response_type, pkce=pkce, provider=provider)

    def pkce(self, redirect_uri: str, provider: str | None = None) -> tuple[str, str]:
        """
        Builds a PKCE `code` authorization URL.

        .. deprecated::
            Use `authorize(redirect_uri, "code", pkce=True)`, which also returns the state.

        Returns:
            A `(verifier, url)` tuple.
        """
        warnings.warn(
            "AuthClient.pkce() is deprecated, use authorize(redirect_uri, 'code', pkce=True) instead.",
            DeprecationWarning,
            stacklevel=2,
        )
        result = self.challenge_builder.authorize(redirect_uri, "code", pkce=True, provider=provider)
        assert result.challenge.verifier is not None
        return result.challenge.verifier, result.url

    async def exchange(self, code: str, redirect_uri: str, verifier: str | None = None) -> ExchangeOutcome:
        """
        Exchanges an authorization code for tokens. See `TokenExchanger.exchange`.
        """
        return await self.exchanger.exchange(code, redirect_uri, verifier)

    async def refresh(self, refresh_token: str, access: str | None = None) -> RefreshOutcome:
        """
        Refreshes tokens unless `access` is still valid. See `TokenExchanger.refresh`.
        """
        return await self.exchanger.refresh(refresh_token, access=access)

    async def verify(
        self,
        subjects: SubjectSchemas,
        access_token: str,
        refresh: str | None = None,
        issuer: str | None = None,
        audience: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> VerifyOutcome:
        """
        Verifies an access token and validates its subject, refreshing once on expiry.

        See `SubjectVerifier.verify`.
        """
        return await self.verifier.verify(
            subjects,
            access_token,
            refresh=refresh,
            issuer=issuer,
            audience=audience,
            http_client=http_client,
        )


def create_client(
    client_id: str,
    issuer: str | None = None,
    http_client: httpx.AsyncClient | None = None,
    **settings: Any,
) -> AuthClient:
    """
    Creates an AuthClient.

    Args:
        client_id: The OAuth2 client identifier.
        issuer: The issuer base URL. Falls back to the COREASON_AUTH_ISSUER environment variable.
        http_client: Transport override.
        **settings: Further `AuthClientConfig` fields.

    Raises:
        ConfigurationError: If no issuer is given or found in the environment.
        pydantic.ValidationError: If the settings are invalid.
    """
    if issuer is not None:
        settings["issuer"] = issuer
    config = AuthClientConfig(client_id=client_id, **settings)
    return AuthClient(config, client=http_client)
