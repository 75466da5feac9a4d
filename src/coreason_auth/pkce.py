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
PKCE (RFC 7636) verifier and S256 challenge generation.
"""

from typing import NamedTuple

from authlib.common.security import generate_token
from authlib.oauth2.rfc7636 import create_s256_code_challenge

# RFC 7636 allows 43 to 128 characters
VERIFIER_LENGTH = 64


class PKCEPair(NamedTuple):
    verifier: str
    challenge: str


def generate_pkce(length: int = VERIFIER_LENGTH) -> PKCEPair:
    """
    Generates a random code verifier and its S256 code challenge.

    Args:
        length: Number of characters in the verifier.

    Returns:
        PKCEPair: The verifier to keep and the challenge to send.
    """
    if not 43 <= length <= 128:
        raise ValueError("PKCE verifier length must be between 43 and 128 characters.")
    verifier = generate_token(length)
    return PKCEPair(verifier=verifier, challenge=create_s256_code_challenge(verifier))
