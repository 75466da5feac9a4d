# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_auth

import json
import socket
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from coreason_auth.exceptions import OversizedResponseError, SecurityError
from coreason_auth.transport import SafeHTTPTransport, fetch_json


@pytest.fixture
def transport() -> SafeHTTPTransport:
    return SafeHTTPTransport()


def _addrinfo(*ips: str) -> list[tuple]:
    return [(socket.AF_INET, socket.SOCK_STREAM, 6, "", (ip, 0)) for ip in ips]


@pytest.mark.asyncio
async def test_transport_pins_public_ip(transport: SafeHTTPTransport) -> None:
    request = httpx.Request("GET", "https://auth.coreason.test/.well-known/jwks.json")

    with patch("socket.getaddrinfo", return_value=_addrinfo("93.184.216.34")):
        with patch("httpx.AsyncHTTPTransport.handle_async_request", new_callable=AsyncMock) as mock_super:
            mock_super.return_value = httpx.Response(200)
            response = await transport.handle_async_request(request)

    assert response.status_code == 200
    sent = mock_super.call_args[0][0]
    assert str(sent.url) == "https://93.184.216.34/.well-known/jwks.json"
    assert sent.headers["Host"] == "auth.coreason.test"
    assert sent.extensions["sni_hostname"] == "auth.coreason.test"


@pytest.mark.asyncio
async def test_transport_skips_blocked_addresses(transport: SafeHTTPTransport) -> None:
    request = httpx.Request("GET", "https://auth.coreason.test/token")

    with patch("socket.getaddrinfo", return_value=_addrinfo("10.0.0.5", "93.184.216.34")):
        with patch("httpx.AsyncHTTPTransport.handle_async_request", new_callable=AsyncMock) as mock_super:
            mock_super.return_value = httpx.Response(200)
            await transport.handle_async_request(request)

    assert mock_super.call_args[0][0].url.host == "93.184.216.34"


@pytest.mark.asyncio
@pytest.mark.parametrize("ip", ["192.168.1.50", "127.0.0.1", "169.254.169.254", "224.0.0.1"])
async def test_transport_blocks_private_dns(transport: SafeHTTPTransport, ip: str) -> None:
    request = httpx.Request("GET", "https://internal.corp/")

    with patch("socket.getaddrinfo", return_value=_addrinfo(ip)):
        with pytest.raises(SecurityError, match="Security violation"):
            await transport.handle_async_request(request)


@pytest.mark.asyncio
async def test_transport_blocks_ip_literal(transport: SafeHTTPTransport) -> None:
    with pytest.raises(SecurityError):
        await transport.handle_async_request(httpx.Request("GET", "https://127.0.0.1/"))


@pytest.mark.asyncio
async def test_transport_dns_failure(transport: SafeHTTPTransport) -> None:
    with patch("socket.getaddrinfo", side_effect=socket.gaierror("Name or service not known")):
        with pytest.raises(SecurityError, match="DNS resolution failed"):
            await transport.handle_async_request(httpx.Request("GET", "https://nowhere.test/"))


@pytest.mark.asyncio
async def test_fetch_json_returns_status_and_body() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(401, json={"error": "x"})))

    ok, body = await fetch_json(client, "https://auth.coreason.test/token", method="POST", data={"a": "b"})

    assert ok is False
    assert body == {"error": "x"}


@pytest.mark.asyncio
async def test_fetch_json_raise_for_status() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(404, json={})))

    with pytest.raises(httpx.HTTPStatusError):
        await fetch_json(client, "https://auth.coreason.test/missing", raise_for_status=True)


@pytest.mark.asyncio
async def test_fetch_json_invalid_json() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, text="{oops")))

    with pytest.raises(json.JSONDecodeError):
        await fetch_json(client, "https://auth.coreason.test/")


@pytest.mark.asyncio
async def test_fetch_json_oversized_by_header() -> None:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda r: httpx.Response(200, headers={"Content-Length": "5000"}, content=b"{}"))
    )

    with pytest.raises(OversizedResponseError):
        await fetch_json(client, "https://auth.coreason.test/", max_bytes=1000)


@pytest.mark.asyncio
async def test_fetch_json_oversized_body() -> None:
    payload = json.dumps({"keys": ["x" * 2000]})
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, text=payload)))

    with pytest.raises(OversizedResponseError):
        await fetch_json(client, "https://auth.coreason.test/", max_bytes=1000)
