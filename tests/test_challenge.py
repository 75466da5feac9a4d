# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_auth

from urllib.parse import parse_qs, urlparse

import pytest
from authlib.oauth2.rfc7636 import create_s256_code_challenge

from coreason_auth.challenge import ChallengeBuilder
from coreason_auth.pkce import generate_pkce


@pytest.fixture
def builder() -> ChallengeBuilder:
    return ChallengeBuilder("web-app", "https://auth.coreason.test")


def _query(url: str) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}


def test_authorize_code_with_pkce(builder: ChallengeBuilder) -> None:
    result = builder.authorize("https://app.test/callback", "code", pkce=True)
    parsed = urlparse(result.url)
    query = _query(result.url)

    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://auth.coreason.test/authorize"
    assert query["client_id"] == "web-app"
    assert query["redirect_uri"] == "https://app.test/callback"
    assert query["response_type"] == "code"
    assert query["state"] == result.challenge.state
    assert query["code_challenge_method"] == "S256"
    assert result.challenge.verifier is not None
    assert query["code_challenge"] == create_s256_code_challenge(result.challenge.verifier)


def test_authorize_state_is_fresh(builder: ChallengeBuilder) -> None:
    states = {builder.authorize("https://app.test/cb", "code", pkce=True).challenge.state for _ in range(10)}
    assert len(states) == 10


def test_authorize_without_pkce(builder: ChallengeBuilder) -> None:
    result = builder.authorize("https://app.test/cb", "code")
    query = _query(result.url)

    assert result.challenge.verifier is None
    assert "code_challenge" not in query
    assert "code_challenge_method" not in query


def test_authorize_token_skips_pkce(builder: ChallengeBuilder) -> None:
    """PKCE is silently ignored for the implicit flow."""
    result = builder.authorize("https://app.test/cb", "token", pkce=True)
    query = _query(result.url)

    assert query["response_type"] == "token"
    assert result.challenge.verifier is None
    assert "code_challenge" not in query
    assert "code_challenge_method" not in query


def test_authorize_provider(builder: ChallengeBuilder) -> None:
    assert _query(builder.authorize("https://app.test/cb", "code", provider="github").url)["provider"] == "github"
    assert "provider" not in _query(builder.authorize("https://app.test/cb", "code").url)


def test_authorize_encodes_redirect_uri(builder: ChallengeBuilder) -> None:
    redirect = "https://app.test/cb?next=/home&x=1"
    result = builder.authorize(redirect, "code")
    assert "next=/home&x=1" not in result.url
    assert _query(result.url)["redirect_uri"] == redirect


def test_authorize_trailing_slash_issuer() -> None:
    builder = ChallengeBuilder("web-app", "https://auth.coreason.test/")
    assert builder.authorize("https://app.test/cb", "code").url.startswith("https://auth.coreason.test/authorize?")


def test_authorize_rejects_unknown_response_type(builder: ChallengeBuilder) -> None:
    with pytest.raises(ValueError, match="Unsupported response_type"):
        builder.authorize("https://app.test/cb", "id_token")  # type: ignore[arg-type]


def test_generate_pkce() -> None:
    pair = generate_pkce()
    assert len(pair.verifier) == 64
    assert pair.challenge == create_s256_code_challenge(pair.verifier)
    assert "=" not in pair.challenge
    assert generate_pkce().verifier != pair.verifier


@pytest.mark.parametrize("length", [42, 129])
def test_generate_pkce_rejects_bad_length(length: int) -> None:
    with pytest.raises(ValueError):
        generate_pkce(length)
