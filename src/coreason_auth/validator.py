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
SubjectVerifier component validating access tokens and the subject they carry.
"""

from collections.abc import Mapping
from typing import Any

import httpx
from authlib.jose import JsonWebToken, KeySet
from authlib.jose.errors import ExpiredTokenError, JoseError
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from pydantic import TypeAdapter, ValidationError

from coreason_auth.exceptions import InvalidAccessTokenError, InvalidRefreshTokenError, InvalidSubjectError
from coreason_auth.models import ErrorResult, Subject, Tokens, VerifyOutcome, VerifyResult
from coreason_auth.oidc_provider import OIDCProvider
from coreason_auth.token_exchanger import TokenExchanger
from coreason_auth.utils.logger import logger

tracer = trace.get_tracer(__name__)

SubjectSchemas = Mapping[str, Any]

ACCESS_MODE = "access"
MAX_REFRESH_ATTEMPTS = 1


def validate_subject(subjects: SubjectSchemas, payload: Mapping[str, Any]) -> Subject | None:
    """
    Validates the subject embedded in verified access token claims.

    Args:
        subjects: Mapping of subject type to a schema pydantic can adapt (usually a BaseModel).
        payload: The verified claims.

    Returns:
        The Subject, or None if the mode is wrong, the type is unknown, or validation reports issues.
    """
    if payload.get("mode") != ACCESS_MODE:
        logger.warning(f"Rejected token with mode {payload.get('mode')!r}")
        return None

    subject_type = payload.get("type")
    if not isinstance(subject_type, str) or subject_type not in subjects:
        logger.warning(f"No subject schema registered for type {subject_type!r}")
        return None

    try:
        properties = TypeAdapter(subjects[subject_type]).validate_python(payload.get("properties"))
    except ValidationError as e:
        logger.warning(f"Subject of type {subject_type!r} failed validation with {e.error_count()} issue(s)")
        return None

    return Subject(type=subject_type, properties=properties)


class SubjectVerifier:
    """
    Verifies access tokens against the issuer's key set and refreshes them once on expiry.

    Attributes:
        oidc_provider (OIDCProvider): Source of the cached key set.
        exchanger (TokenExchanger): Used to redeem the refresh token on expiry.
        issuer (str): The expected issuer claim.
        leeway (int): Acceptable clock skew in seconds.
    """

    def __init__(
        self,
        oidc_provider: OIDCProvider,
        exchanger: TokenExchanger,
        issuer: str,
        allowed_algorithms: list[str],
        leeway: int = 0,
    ) -> None:
        self.oidc_provider = oidc_provider
        self.exchanger = exchanger
        self.issuer = issuer
        self.leeway = leeway
        # A dedicated JsonWebToken instance rejects algorithms outside the allow-list
        self.jwt = JsonWebToken(allowed_algorithms)

    def _decode(self, token: str, key_set: KeySet, issuer: str, audience: str | None) -> dict[str, Any]:
        claims_options: dict[str, Any] = {"iss": {"essential": True, "value": issuer}}
        if audience is not None:
            claims_options["aud"] = {"essential": True, "value": audience}

        claims = self.jwt.decode(token.strip(), key_set, claims_options=claims_options)
        claims.validate(leeway=self.leeway)
        return dict(claims)

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
        Verifies an access token and returns its subject.

        If the token has expired and `refresh` is given, the refresh token is redeemed
        once and the new access token verified; the rotated tokens are attached to the
        result. A second expiry after that refresh is not retried.

        Emits an OpenTelemetry span `verify_subject`.

        Args:
            subjects: Mapping of subject type to schema.
            access_token: The raw access token.
            refresh: Refresh token to use if the access token has expired.
            issuer: Expected issuer claim. Defaults to the configured issuer.
            audience: Expected audience claim. Not checked when omitted.
            http_client: HTTP client used for the refresh request.

        Returns:
            VerifyResult, or ErrorResult carrying InvalidAccessTokenError, InvalidSubjectError,
            or the error of a failed refresh.

        Raises:
            httpx.HTTPError: If fetching metadata, keys or tokens fails at the transport level.
        """
        with tracer.start_as_current_span("verify_subject") as span:
            key_set = await self.oidc_provider.get_jwks()
            expected_issuer = issuer or self.issuer

            token = access_token
            refresh_token = refresh
            rotated: Tokens | None = None
            attempt = 0

            while True:
                try:
                    payload = self._decode(token, key_set, expected_issuer, audience)
                    break
                except ExpiredTokenError as e:
                    if not refresh_token or attempt >= MAX_REFRESH_ATTEMPTS:
                        logger.info("Access token expired and cannot be refreshed")
                        span.set_status(Status(StatusCode.ERROR, "invalid_access_token"))
                        return ErrorResult(err=InvalidAccessTokenError(f"Token has expired: {e}"))

                    span.add_event("refreshing_tokens")
                    refreshed = await self.exchanger.refresh(refresh_token, http_client=http_client)
                    if isinstance(refreshed, ErrorResult):
                        span.set_status(Status(StatusCode.ERROR, "refresh_failed"))
                        return refreshed

                    rotated = refreshed.tokens
                    if rotated is None:
                        span.set_status(Status(StatusCode.ERROR, "refresh_failed"))
                        return ErrorResult(err=InvalidRefreshTokenError("Token endpoint returned no tokens."))
                    token = rotated.access
                    refresh_token = rotated.refresh
                    attempt += 1
                except (JoseError, ValueError) as e:
                    # authlib raises ValueError when no key in the set matches the token's kid
                    logger.warning(f"Access token verification failed: {type(e).__name__}")
                    span.record_exception(e)
                    span.set_status(Status(StatusCode.ERROR, "invalid_access_token"))
                    return ErrorResult(err=InvalidAccessTokenError(f"Token validation failed: {e}"))

            subject = validate_subject(subjects, payload)
            if subject is None:
                span.set_status(Status(StatusCode.ERROR, "invalid_subject"))
                return ErrorResult(err=InvalidSubjectError())

            logger.debug(f"Verified subject of type {subject.type!r}")
            span.set_attribute("enduser.type", subject.type)
            span.set_status(Status(StatusCode.OK))
            return VerifyResult(subject=subject, tokens=rotated)
