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
Configuration for the coreason-auth package.
"""

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthClientConfig(BaseSettings):
    """
    Configuration settings for the auth client.

    Attributes:
        client_id (str): The OAuth2 client identifier.
        issuer (str | None): Base URL of the authorization server. Read from `COREASON_AUTH_ISSUER` when omitted.
        unsafe_local_dev (bool): Allow plain HTTP issuers and skip the SSRF-guarding transport.
        http_timeout (float): Timeout in seconds for the internally created HTTP client.
        allowed_algorithms (list[str]): JWS algorithms accepted when verifying access tokens.
        clock_skew_leeway (int): Leeway in seconds applied to `exp` and `nbf` checks.
        refresh_window (int): Seconds before expiry at which `refresh` stops trusting the current access token.
    """

    model_config = SettingsConfigDict(
        env_prefix="COREASON_AUTH_",
        case_sensitive=False,
        frozen=True,
    )

    client_id: str
    unsafe_local_dev: bool = False
    issuer: str | None = None
    http_timeout: float = Field(default=10.0, description="Timeout in seconds for all issuer network operations.")
    allowed_algorithms: list[str] = Field(default_factory=lambda: ["RS256", "ES256"])
    clock_skew_leeway: int = Field(default=0, ge=0)
    refresh_window: int = Field(default=30, ge=0)

    @field_validator("issuer", mode="after")
    @classmethod
    def validate_https(cls, v: str | None, info: ValidationInfo) -> str | None:
        """
        Ensures that issuer uses HTTPS, unless strictly opted out for local dev.
        """
        if not v:
            return None
        v = v.strip()
        if v.lower().startswith("http://") and not info.data.get("unsafe_local_dev", False):
            raise ValueError("HTTPS is required for production. Set 'unsafe_local_dev=True' only for local testing.")
        return v

    @field_validator("allowed_algorithms")
    @classmethod
    def reject_none_algorithm(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("At least one signing algorithm must be allowed.")
        if any(alg.lower() == "none" for alg in v):
            raise ValueError("The 'none' algorithm cannot be allowed.")
        return v
