"""
Bearer token authentication for the /v1 API.

API_TOKENS holds "token:client" pairs separated by commas. Tokens are loaded
once at startup into ApiToken records that keep only the SHA-256 digest of
each token; a malformed entry aborts startup instead of being skipped.

Requests are authenticated by require_api_client, which digests the
presented bearer token and compares it against every configured digest with
secrets.compare_digest.

CHANGELOG:
- 2026-10-20: Digest-only token records, strict API_TOKENS parsing
- 2026-10-11: Initial creation
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class ApiToken:
    """One configured API client.

    Attributes:
        client: Name reported for requests carrying the token.
        digest: SHA-256 digest of the token.
    """

    client: str
    digest: bytes


def token_digest(token: str) -> bytes:
    return hashlib.sha256(token.encode("utf-8")).digest()


def load_api_tokens(raw: str) -> tuple[ApiToken, ...]:
    """Parse API_TOKENS into ApiToken records.

    Whitespace around tokens and client names is stripped. Only the first
    colon of an entry separates token from client, so client names may
    contain colons.

    Args:
        raw: Comma-separated ``token:client`` entries.

    Returns:
        tuple[ApiToken, ...]: One record per entry, in configuration order.

    Raises:
        ValueError: If an entry lacks a token or client, a token is
            configured twice, or no entries are given.
    """
    tokens: list[ApiToken] = []
    seen: set[bytes] = set()
    for position, entry in enumerate(raw.split(","), start=1):
        if not entry.strip():
            continue
        token, sep, client = entry.partition(":")
        token, client = token.strip(), client.strip()
        if not sep or not token or not client:
            raise ValueError(f"entry {position} is not of the form token:client")
        digest = token_digest(token)
        if digest in seen:
            raise ValueError(f"entry {position} repeats an earlier token")
        seen.add(digest)
        tokens.append(ApiToken(client=client, digest=digest))

    if not tokens:
        raise ValueError("no token:client entries configured")
    return tuple(tokens)


def identify_client(token: str, tokens: tuple[ApiToken, ...]) -> str | None:
    """Return the client owning ``token``, or None for an unknown token.

    Every configured digest is compared so the time taken does not depend
    on which entry matches.
    """
    if not token:
        return None
    presented = token_digest(token)
    client: str | None = None
    for api_token in tokens:
        if secrets.compare_digest(presented, api_token.digest):
            client = api_token.client
    return client


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def require_api_client(
    request: Request,
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> str:
    """FastAPI dependency returning the authenticated client name.

    Tokens are read from ``app.state.api_tokens``, set by the lifespan.

    Raises:
        HTTPException: 401 if the bearer token is missing or unknown.
    """
    if credentials is None:
        raise _unauthorized("Missing authorization credentials.")

    client = identify_client(credentials.credentials, request.app.state.api_tokens)
    if client is None:
        logger.info("Rejected bearer token for %s", request.url.path)
        raise _unauthorized("Invalid or expired token.")
    return client
