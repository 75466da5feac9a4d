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
Internal data models for the coreason-auth package.
These are not exposed in the public API.
"""

from pydantic import BaseModel, ConfigDict, Field


class IssuerMetadata(BaseModel):
    """
    Authorization server metadata from .well-known/oauth-authorization-server.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    jwks_uri: str = Field(..., description="The URL to the JWKS.")
    token_endpoint: str | None = Field(default=None, description="The token endpoint URL.")
    authorization_endpoint: str | None = Field(default=None, description="The authorization endpoint URL.")
    issuer: str | None = Field(default=None, description="The issuer identifier.")


class TokenResponse(BaseModel):
    """
    Successful response body of the token endpoint.
    """

    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: str | None = None
    token_type: str | None = None
    expires_in: int | None = None
