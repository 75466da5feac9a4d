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
HTTP helpers: a DNS-pinning transport that blocks SSRF and a bounded JSON reader.
"""

import ipaddress
import json
import socket
from typing import Any

import anyio
import httpx

from coreason_auth.exceptions import OversizedResponseError, SecurityError
from coreason_auth.utils.logger import logger

MAX_RESPONSE_BYTES = 1_000_000


class SafeHTTPTransport(httpx.AsyncHTTPTransport):
    """
    An HTTP transport that pins connections to a validated public IP.

    The hostname is resolved once, every candidate address is checked against blocked
    ranges (private, loopback, link-local, reserved, multicast), and the request is sent
    to the first safe address with the original Host header and SNI preserved.
    """

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        hostname = request.url.host

        try:
            ip_obj = ipaddress.ip_address(hostname)
        except ValueError:
            ip_obj = None

        if ip_obj is not None:
            self._validate_ip(ip_obj, hostname)
            return await super().handle_async_request(request)

        try:
            addr_infos = await anyio.to_thread.run_sync(socket.getaddrinfo, hostname, None, 0, socket.SOCK_STREAM)
        except socket.gaierror as e:
            logger.error(f"DNS resolution failed for {hostname}: {e}")
            raise SecurityError(f"DNS resolution failed for {hostname}") from e

        target_ip: str | None = None
        for _, _, _, _, sockaddr in addr_infos:
            try:
                candidate = ipaddress.ip_address(sockaddr[0])
                self._validate_ip(candidate, hostname)
            except (SecurityError, ValueError):
                continue
            target_ip = str(candidate)
            break

        if not target_ip:
            logger.error(f"Security violation: No valid public IP found for {hostname}")
            raise SecurityError(f"Security violation: No valid public IP found for {hostname}")

        request.extensions["sni_hostname"] = hostname
        if "Host" not in request.headers:
            request.headers["Host"] = request.url.netloc.decode("ascii")
        request.url = request.url.copy_with(host=target_ip)

        logger.debug(f"DNS Pinned: {hostname} -> {target_ip}")
        return await super().handle_async_request(request)

    def _validate_ip(self, ip_obj: ipaddress.IPv4Address | ipaddress.IPv6Address, hostname: str) -> None:
        if (
            ip_obj.is_private
            or ip_obj.is_loopback
            or ip_obj.is_link_local
            or ip_obj.is_reserved
            or ip_obj.is_multicast
        ):
            logger.warning(f"Security violation: Blocked access to {hostname} ({ip_obj})")
            raise SecurityError(f"Security violation: Access to {hostname} ({ip_obj}) is blocked")


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    method: str = "GET",
    data: dict[str, str] | None = None,
    max_bytes: int = MAX_RESPONSE_BYTES,
    raise_for_status: bool = False,
) -> tuple[bool, Any]:
    """
    Sends a request and parses the JSON body.

    Form `data` is sent as application/x-www-form-urlencoded. Transport errors and
    `json.JSONDecodeError` propagate unchanged.

    Args:
        client: The async HTTP client to send the request with.
        url: Target URL.
        method: HTTP method.
        data: Optional form fields.
        max_bytes: Upper bound on the response body size.
        raise_for_status: Raise `httpx.HTTPStatusError` for a non-2xx status instead of parsing the body.

    Returns:
        A `(ok, body)` tuple where `ok` is True for a 2xx status.

    Raises:
        OversizedResponseError: If the body exceeds `max_bytes`.
    """
    async with client.stream(method, url, data=data) as response:
        content_length = response.headers.get("Content-Length")
        if content_length and content_length.isdigit() and int(content_length) > max_bytes:
            raise OversizedResponseError(f"Response from {url} too large")

        content = bytearray()
        async for chunk in response.aiter_bytes():
            content.extend(chunk)
            if len(content) > max_bytes:
                raise OversizedResponseError(f"Response from {url} too large")

        if raise_for_status:
            response.raise_for_status()

        return response.is_success, json.loads(content)
