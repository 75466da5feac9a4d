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
Data models for the coreason-auth package.

Every public operation resolves to one of three frozen result shapes:

* `TokenResult` - success of `exchange`/`refresh` (`err` is ``False``).
* `VerifyResult` - success of `verify` (`err` is ``None``).
* `ErrorResult` - a tagged `AuthClientError` in `err`.

All successes have a falsy `err` and all failures a truthy one, so
``if result.err:`` is the canonical branch.
"""

from typing import Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

from coreason_auth.exceptions import AuthClientError


class Tokens(BaseModel):
    """
    An access/refresh token pair issued by the token endpoint.

    The client never stores tokens; callers persist them.
    """

    model_config = ConfigDict(frozen=True)

    access: str
    refresh: str | None = None

    def __repr__(self) -> str:
        # Token values MUST NOT leak into logs
        return "Tokens(access='<REDACTED>', refresh='<REDACTED>')"

    def __str__(self) -> str:
        return self.__repr__()


class Challenge(BaseModel):
    """
    Opaque values the caller must persist across the authorization redirect.

    Attributes:
        state (str): Fresh random value sent as the `state` parameter.
        verifier (str | None): PKCE code verifier, present only for PKCE `code` requests.
    """

    model_config = ConfigDict(frozen=True)

    state: str
    verifier: str | None = None


class AuthorizeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    challenge: Challenge
    url: str


class Subject(BaseModel):
    """
    The authenticated principal carried by an access token.

    Attributes:
        type (str): Key into the caller's subject schema mapping.
        properties (Any): The validated output of that schema.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    type: str
    properties: Any


class TokenResult(BaseModel):
    """
    Successful `exchange` or `refresh`.

    `tokens` is ``None`` only when `refresh` found the current access token still valid.
    """

    model_config = ConfigDict(frozen=True)

    err: Literal[False] = False
    tokens: Tokens | None = None


class VerifyResult(BaseModel):
    """
    Successful `verify`.

    `tokens` is set when an expired access token was refreshed during the call;
    callers should persist the rotated pair.
    """

    model_config = ConfigDict(frozen=True)

    err: None = None
    subject: Subject
    tokens: Tokens | None = None


class ErrorResult(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    err: AuthClientError = Field(..., description="The tagged protocol-level error.")


ExchangeOutcome: TypeAlias = TokenResult | ErrorResult
RefreshOutcome: TypeAlias = TokenResult | ErrorResult
VerifyOutcome: TypeAlias = VerifyResult | ErrorResult
