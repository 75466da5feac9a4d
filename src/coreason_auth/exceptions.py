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
Custom exceptions for the coreason-auth package.

Infrastructure errors are raised. Protocol-level rejections (`AuthClientError` and
its subclasses) are never raised by the client; they are returned inside an
`ErrorResult` so callers can branch on `result.err`.
"""


class CoreasonAuthError(Exception):
    """Base exception for all coreason-auth errors."""


class ConfigurationError(CoreasonAuthError):
    """Raised when the client cannot be constructed from the given settings."""


class OversizedResponseError(CoreasonAuthError):
    """Raised when an HTTP response is too large."""


class SecurityError(CoreasonAuthError):
    """Raised when a security violation is detected."""


class AuthClientError(CoreasonAuthError):
    """
    Base class for the tagged errors returned by the client.

    Attributes:
        code (str): Stable machine-readable identifier of the error.
    """

    code = "auth_client_error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)


class InvalidAuthorizationCodeError(AuthClientError):
    """The token endpoint rejected an authorization code exchange."""

    code = "invalid_authorization_code"


class InvalidRefreshTokenError(AuthClientError):
    """The token endpoint rejected a refresh token."""

    code = "invalid_refresh_token"


class InvalidAccessTokenError(AuthClientError):
    """The access token is malformed, undecodable, or failed verification."""

    code = "invalid_access_token"


class InvalidSubjectError(AuthClientError):
    """The token verified but its subject has the wrong mode or fails its schema."""

    code = "invalid_subject"
