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
OAuth2 client: authorization requests with PKCE, code and refresh token grants, and
access token verification with transparent refresh.
"""

__version__ = "0.1.0"
__author__ = "Gowtham A Rao"
__email__ = "gowtham.rao@coreason.ai"

from .client import AuthClient, create_client
from .config import AuthClientConfig
from .exceptions import (
    AuthClientError,
    ConfigurationError,
    CoreasonAuthError,
    InvalidAccessTokenError,
    InvalidAuthorizationCodeError,
    InvalidRefreshTokenError,
    InvalidSubjectError,
)
from .models import AuthorizeResult, Challenge, ErrorResult, Subject, TokenResult, Tokens, VerifyResult

__all__ = [
    "AuthClient",
    "AuthClientConfig",
    "AuthClientError",
    "AuthorizeResult",
    "Challenge",
    "ConfigurationError",
    "CoreasonAuthError",
    "ErrorResult",
    "InvalidAccessTokenError",
    "InvalidAuthorizationCodeError",
    "InvalidRefreshTokenError",
    "InvalidSubjectError",
    "Subject",
    "TokenResult",
    "Tokens",
    "VerifyResult",
    "create_client",
]
