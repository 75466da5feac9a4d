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
ChallengeBuilder component constructing authorization request URLs.
"""

import uuid
from typing import Literal

import httpx

from coreason_auth.models import AuthorizeResult, Challenge
from coreason_auth.pkce import generate_pkce

ResponseType = Literal["code", "token"]


class ChallengeBuilder:
    """
    Builds `{issuer}/authorize` URLs together with the state the caller must keep.

    No network access and no caching. Correlating the returned challenge with the
    eventual callback is the caller's responsibility.
    """

    def __init__(self, client_id: str, issuer: str) -> None:
        self.client_id = client_id
        self.authorize_endpoint = f"{issuer.rstrip('/')}/authorize"

    def authorize(
        self,
        redirect_uri: str,
        response_type: ResponseType,
        pkce: bool = False,
        provider: str | None = None,
    ) -> AuthorizeResult:
        """
        Builds an authorization request.

        PKCE applies to the `code` response type only; it is skipped without error
        for `token`.

        Args:
            redirect_uri: Where the authorization server sends the user back.
            response_type: "code" or "token".
            pkce: Attach an S256 code challenge and return its verifier.
            provider: Optional upstream identity provider hint.

        Returns:
            AuthorizeResult: The challenge to persist and the URL to redirect to.
        """
        if response_type not in ("code", "token"):
            raise ValueError(f"Unsupported response_type: {response_type!r}")

        state = str(uuid.uuid4())
        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "response_type": response_type,
            "state": state,
        }
        if provider:
            params["provider"] = provider

        verifier: str | None = None
        if pkce and response_type == "code":
            pair = generate_pkce()
            params["code_challenge_method"] = "S256"
            params["code_challenge"] = pair.challenge
            verifier = pair.verifier

        url = httpx.URL(self.authorize_endpoint, params=params)
        return AuthorizeResult(challenge=Challenge(state=state, verifier=verifier), url=str(url))
