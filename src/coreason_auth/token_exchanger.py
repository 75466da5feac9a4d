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
TokenExchanger component performing the authorization code and refresh token grants.
"""

import time
from typing import Any

import httpx
from authlib.common.encoding import json_loads, to_bytes, urlsafe_b64decode
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from coreason_auth.exceptions import (
    InvalidAccessTokenError,
    InvalidAuthorizationCodeError,
    InvalidRefreshTokenError,
)
from coreason_auth.models import ErrorResult, ExchangeOutcome, RefreshOutcome, TokenResult, Tokens
from coreason_auth.models_internal import TokenResponse
from coreason_auth.transport import fetch_json
from coreason_auth.utils.logger import logger

tracer = trace.get_tracer(__name__)


def decode_unverified_claims(token: str) -> dict[str, Any] | None:
    """
    Reads the claims of a compact JWT without checking its signature.

    Returns:
        The claims dictionary, or None if the token cannot be decoded.
    """
    segments = token.strip().split(".")
    if len(segments) != 3:
        return None
    try:
        claims = json_loads(urlsafe_b64decode(to_bytes(segments[1])))
    except ValueError:
        return None
    return claims if isinstance(claims, dict) else None


def _error_code(body: Any) -> str | None:
    if isinstance(body, dict):
        return body.get("error")
    return None


class TokenExchanger:
    """
    Posts grants to `{issuer}/token` and maps responses into `Tokens`.

    Rejections by the token endpoint are returned as `ErrorResult`. Transport errors and
    unparseable bodies propagate.

    Attributes:
        client_id (str): The OAuth2 client identifier.
        token_endpoint (str): The token endpoint URL.
        refresh_window (int): Seconds before expiry at which an access token is considered stale.
    """

    def __init__(
        self,
        client_id: str,
        issuer: str,
        client: httpx.AsyncClient,
        refresh_window: int = 30,
    ) -> None:
        self.client_id = client_id
        self.token_endpoint = f"{issuer.rstrip('/')}/token"
        self.client = client
        self.refresh_window = refresh_window

    async def exchange(self, code: str, redirect_uri: str, verifier: str | None = None) -> ExchangeOutcome:
        """
        Exchanges an authorization code for tokens.

        Args:
            code: The code received on the redirect URI.
            redirect_uri: The redirect URI used in the authorization request.
            verifier: The PKCE verifier from the challenge, if PKCE was used.

        Returns:
            TokenResult with tokens, or ErrorResult with InvalidAuthorizationCodeError.
        """
        with tracer.start_as_current_span("exchange_code") as span:
            data = {
                "code": code,
                "redirect_uri": redirect_uri,
                "grant_type": "authorization_code",
                "client_id": self.client_id,
                "code_verifier": verifier or "",
            }
            ok, body = await fetch_json(self.client, self.token_endpoint, method="POST", data=data)
            if not ok:
                logger.warning(f"Authorization code exchange rejected: {_error_code(body)}")
                span.set_status(Status(StatusCode.ERROR, "invalid_authorization_code"))
                return ErrorResult(err=InvalidAuthorizationCodeError())

            response = TokenResponse.model_validate(body)
            logger.info("Authorization code exchanged for tokens.")
            span.set_status(Status(StatusCode.OK))
            return TokenResult(tokens=Tokens(access=response.access_token, refresh=response.refresh_token))

    async def refresh(
        self,
        refresh_token: str,
        access: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> RefreshOutcome:
        """
        Refreshes tokens, skipping the network when the current access token is still fresh.

        When `access` is given its `exp` claim is read without verifying the signature.
        If it expires more than `refresh_window` seconds from now, a TokenResult with no
        tokens is returned.

        Args:
            refresh_token: The refresh token to redeem.
            access: The current access token, enabling the fast path.
            http_client: HTTP client overriding the exchanger's own for this call.

        Returns:
            TokenResult (possibly without tokens), or ErrorResult with
            InvalidAccessTokenError or InvalidRefreshTokenError. A missing or
            non-numeric `exp` counts as expired.
        """
        with tracer.start_as_current_span("refresh_token") as span:
            if access:
                claims = decode_unverified_claims(access)
                if claims is None:
                    span.set_status(Status(StatusCode.ERROR, "invalid_access_token"))
                    return ErrorResult(err=InvalidAccessTokenError("Access token could not be decoded."))

                exp = claims.get("exp")
                if not isinstance(exp, (int, float)) or isinstance(exp, bool):
                    exp = 0

                if exp > time.time() + self.refresh_window:
                    span.add_event("access_token_still_valid")
                    span.set_status(Status(StatusCode.OK))
                    return TokenResult()

            data = {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            }
            ok, body = await fetch_json(
                http_client or self.client, self.token_endpoint, method="POST", data=data
            )
            if not ok:
                logger.warning(f"Refresh token rejected: {_error_code(body)}")
                span.set_status(Status(StatusCode.ERROR, "invalid_refresh_token"))
                return ErrorResult(err=InvalidRefreshTokenError())

            response = TokenResponse.model_validate(body)
            logger.info("Tokens refreshed.")
            span.set_status(Status(StatusCode.OK))
            return TokenResult(
                tokens=Tokens(access=response.access_token, refresh=response.refresh_token or refresh_token)
            )
