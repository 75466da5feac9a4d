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
OIDC Provider component resolving and caching issuer metadata and the verification key set.
"""

import anyio
import httpx
from authlib.jose import JsonWebKey, KeySet

from coreason_auth.models_internal import IssuerMetadata
from coreason_auth.transport import fetch_json
from coreason_auth.utils.logger import logger

WELL_KNOWN_PATH = "/.well-known/oauth-authorization-server"


class OIDCProvider:
    """
    Fetches and caches the authorization server's metadata and JWKS.

    Both caches are keyed by issuer and live as long as the provider; there is no TTL.
    Fetch failures (transport errors, non-2xx status, non-JSON bodies, malformed metadata)
    propagate to the caller unchanged.

    Attributes:
        issuer (str): The issuer base URL.
    """

    def __init__(self, issuer: str, client: httpx.AsyncClient) -> None:
        """
        Initialize the OIDCProvider.

        Args:
            issuer: The issuer base URL (e.g., https://auth.coreason.ai).
            client: The async HTTP client to use for requests.
        """
        self.issuer = issuer
        self.client = client
        self._issuer_cache: dict[str, IssuerMetadata] = {}
        self._jwks_cache: dict[str, KeySet] = {}
        self._issuer_lock: anyio.Lock | None = None
        self._jwks_lock: anyio.Lock | None = None

    @property
    def discovery_url(self) -> str:
        return f"{self.issuer.rstrip('/')}{WELL_KNOWN_PATH}"

    async def get_issuer(self) -> IssuerMetadata:
        """
        Returns the issuer metadata, fetching it on first use.

        Returns:
            IssuerMetadata: The parsed well-known document.

        Raises:
            httpx.HTTPError: If the request fails.
            json.JSONDecodeError: If the body is not JSON.
            pydantic.ValidationError: If the document lacks `jwks_uri`.
        """
        cached = self._issuer_cache.get(self.issuer)
        if cached is not None:
            return cached

        if self._issuer_lock is None:
            self._issuer_lock = anyio.Lock()

        async with self._issuer_lock:
            cached = self._issuer_cache.get(self.issuer)
            if cached is not None:
                return cached

            logger.debug(f"Fetching issuer metadata from {self.discovery_url}")
            _, data = await fetch_json(self.client, self.discovery_url, raise_for_status=True)
            metadata = IssuerMetadata.model_validate(data)
            self._issuer_cache[self.issuer] = metadata
            return metadata

    async def get_jwks(self) -> KeySet:
        """
        Returns the verification key set, fetching it on first use.

        Returns:
            KeySet: Keys usable by `authlib.jose.JsonWebToken.decode`.

        Raises:
            httpx.HTTPError: If a request fails.
            ValueError: If the key set cannot be imported.
        """
        cached = self._jwks_cache.get(self.issuer)
        if cached is not None:
            return cached

        metadata = await self.get_issuer()

        if self._jwks_lock is None:
            self._jwks_lock = anyio.Lock()

        async with self._jwks_lock:
            cached = self._jwks_cache.get(self.issuer)
            if cached is not None:
                return cached

            logger.debug(f"Fetching JWKS from {metadata.jwks_uri}")
            _, data = await fetch_json(self.client, metadata.jwks_uri, raise_for_status=True)
            key_set = JsonWebKey.import_key_set(data)
            self._jwks_cache[self.issuer] = key_set
            logger.info(f"Loaded {len(key_set.keys)} signing key(s) for {self.issuer}")
            return key_set
