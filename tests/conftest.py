# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_auth

import time
from collections.abc import Callable, Generator
from typing import Any
from urllib.parse import parse_qsl

import httpx
import pytest
from authlib.jose import JsonWebKey, jwt
from pydantic import BaseModel

from coreason_auth.client import AuthClient, create_client

ISSUER = "https://auth.coreason.test"
KID = "test-key"


class UserProperties(BaseModel):
    user_id: str
    workspace: str


class ServiceProperties(BaseModel):
    service: str


SUBJECTS: dict[str, Any] = {"user": UserProperties, "service": ServiceProperties}


class FakeIssuer:
    """
    In-memory authorization server served through httpx.MockTransport.

    Queue token endpoint replies in `token_responses`; every request is recorded.
    """

    def __init__(self, jwks: dict[str, Any]) -> None:
        self.jwks = jwks
        self.requests: list[httpx.Request] = []
        self.token_responses: list[httpx.Response] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/.well-known/oauth-authorization-server":
            return httpx.Response(
                200,
                json={
                    "issuer": ISSUER,
                    "jwks_uri": f"{ISSUER}/.well-known/jwks.json",
                    "token_endpoint": f"{ISSUER}/token",
                    "authorization_endpoint": f"{ISSUER}/authorize",
                },
            )
        if path == "/.well-known/jwks.json":
            return httpx.Response(200, json=self.jwks)
        if path == "/token" and self.token_responses:
            return self.token_responses.pop(0)
        return httpx.Response(404, json={"error": "not_found"})

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    @staticmethod
    def form(request: httpx.Request) -> dict[str, str]:
        return dict(parse_qsl(request.content.decode("utf-8"), keep_blank_values=True))


@pytest.fixture(scope="session")
def signing_key() -> Any:
    return JsonWebKey.generate_key("EC", "P-256", options={"kid": KID}, is_private=True)


@pytest.fixture(scope="session")
def jwks(signing_key: Any) -> dict[str, Any]:
    return {"keys": [signing_key.as_dict(is_private=False)]}


@pytest.fixture
def mint(signing_key: Any) -> Callable[..., str]:
    """Returns a factory signing access tokens; keyword arguments override the default claims."""

    def _mint(key: Any = None, kid: str = KID, **overrides: Any) -> str:
        now = int(time.time())
        claims: dict[str, Any] = {
            "iss": ISSUER,
            "iat": now,
            "exp": now + 3600,
            "mode": "access",
            "type": "user",
            "properties": {"user_id": "usr_123", "workspace": "wrk_456"},
        }
        claims.update(overrides)
        claims = {k: v for k, v in claims.items() if v is not None}
        token = jwt.encode({"alg": "ES256", "kid": kid}, claims, key or signing_key)
        return token.decode("utf-8")

    return _mint


@pytest.fixture
def fake_issuer(jwks: dict[str, Any]) -> FakeIssuer:
    return FakeIssuer(jwks)


@pytest.fixture
def http_client(fake_issuer: FakeIssuer) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_issuer.handler))


@pytest.fixture
def auth_client(http_client: httpx.AsyncClient) -> AuthClient:
    return create_client("web-app", issuer=ISSUER, http_client=http_client)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Generator[pytest.MonkeyPatch, None, None]:
    for name in ("COREASON_AUTH_ISSUER", "COREASON_AUTH_CLIENT_ID", "COREASON_AUTH_UNSAFE_LOCAL_DEV"):
        monkeypatch.delenv(name, raising=False)
    yield monkeypatch
