"""FastAPI auth dependencies — the request authorization pipeline.

Learn: These are used as Depends() in route handlers (or in a router's
`dependencies=[...]`) to authenticate the bearer token and apply access
gates:

1. get_claims — mandatory, always first. No credential → Unauthenticated
   (401); bad/expired credential → InvalidToken (401).
2. require(*gates) — wraps get_claims, then runs the given gates in
   order. Because the gates depend on get_claims, FastAPI resolves
   authentication before any of them, even on routes that only attach
   a role gate.

Failures are raised as AuthError subclasses and rendered by the handler
registered in crafthub.main.
"""

from typing import Optional

from fastapi import Depends, Header, Request

from crafthub.auth.errors import InvalidToken, Unauthenticated
from crafthub.auth.gates import (
    Gate,
    admin_only,
    artisan_only,
    customer_only,
    run_gates,
)
from crafthub.auth.jwt import Claims, TokenCodec

BEARER_PREFIX = "bearer"


def parse_bearer(authorization: Optional[str]) -> str:
    """Extract the token from an `Authorization: Bearer <token>` header."""
    if not authorization or not authorization.strip():
        raise Unauthenticated()
    parts = authorization.strip().split(None, 1)
    if parts[0].lower() != BEARER_PREFIX:
        raise InvalidToken("Authorization header must use the Bearer scheme")
    if len(parts) == 1 or not parts[1].strip():
        raise Unauthenticated()
    return parts[1].strip()


def authenticate(authorization: Optional[str], codec: TokenCodec) -> Claims:
    """Authenticate gate as a plain function (no HTTP objects involved)."""
    token = parse_bearer(authorization)
    return codec.verify(token)


def get_token_codec(request: Request) -> TokenCodec:
    """The codec built at startup (see crafthub.main.create_app)."""
    return request.app.state.token_codec


def get_claims(
    request: Request,
    authorization: Optional[str] = Header(None),
    codec: TokenCodec = Depends(get_token_codec),
) -> Claims:
    """Verify the bearer token and attach its claims to the request."""
    claims = authenticate(authorization, codec)
    request.state.claims = claims
    return claims


def require(*gates: Gate):
    """Dependency factory: authenticate, then apply `gates` in order."""

    def dependency(claims: Claims = Depends(get_claims)) -> Claims:
        return run_gates(claims, gates)

    return dependency


# Role-only shortcuts
require_artisan = require(artisan_only)
require_customer = require(customer_only)
require_admin = require(admin_only)
