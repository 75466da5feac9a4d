import asyncio
import contextlib
import os
import sys

# Add src to path for running directly
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "../src")))

from pydantic import BaseModel

from coreason_auth import create_client


class UserProperties(BaseModel):
    user_id: str
    workspace: str


SUBJECTS = {"user": UserProperties}
REDIRECT_URI = "http://localhost:3000/callback"


async def main() -> None:
    """
    Walks through the authorization code flow with PKCE against a local issuer.

    Run an issuer on http://localhost:8787, open the printed URL, then paste the
    `code` query parameter from the redirect.
    """
    async with create_client("example-app", issuer="http://localhost:8787", unsafe_local_dev=True) as client:
        authorization = client.authorize(REDIRECT_URI, "code", pkce=True)
        print(f">>> Open: {authorization.url}")
        print(f">>> Keep state={authorization.challenge.state} to match the callback")

        code = input(">>> Paste the code: ").strip()
        exchanged = await client.exchange(code, REDIRECT_URI, authorization.challenge.verifier)
        if exchanged.err:
            print(f">>> Exchange failed: {exchanged.err.code}")
            return

        tokens = exchanged.tokens
        assert tokens is not None
        verified = await client.verify(SUBJECTS, tokens.access, refresh=tokens.refresh)
        if verified.err:
            print(f">>> Verification failed: {verified.err.code}")
            return

        print(f">>> Signed in as {verified.subject.type}: {verified.subject.properties}")
        if verified.tokens:
            print(">>> Tokens were refreshed, persist the new pair.")


if __name__ == "__main__":
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main())
