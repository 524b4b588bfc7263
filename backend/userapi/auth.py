"""Authentication helpers and FastAPI security dependencies.

Callers present a JWT as a bearer credential on every request; nothing
is remembered between requests. `authenticate` verifies the token and
returns a `Principal`; `require_scope(scope)` builds a dependency that
additionally checks the principal carries `scope`.

Tokens are verified with the shared `JWT_SECRET` or, when
`JWT_JWKS_URL` is configured, with the issuer's published signing key.
Issuer and audience claims are checked when configured. Failures raise
HTTPException(401); a missing scope raises HTTPException(403).
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings

logger = logging.getLogger("userapi.auth")

SCOPE_READ = "users:read"
SCOPE_WRITE = "users:write"

bearer_scheme = HTTPBearer(auto_error=False)

_jwks_client: Optional[jwt.PyJWKClient] = None


@dataclass(frozen=True)
class Principal:
    """The authenticated caller of a single request."""
    subject: str
    scopes: frozenset

    def has_scope(self, scope: str) -> bool:
        return scope in self.scopes or "*" in self.scopes


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def _get_jwks_client() -> jwt.PyJWKClient:
    global _jwks_client
    if _jwks_client is None or _jwks_client.uri != settings.JWT_JWKS_URL:
        _jwks_client = jwt.PyJWKClient(settings.JWT_JWKS_URL)
    return _jwks_client


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises an HTTPException
    with status 401 on failure.
    """
    options = {"require": ["exp", "sub"]}
    kwargs = {}
    if settings.JWT_ISSUER:
        kwargs["issuer"] = settings.JWT_ISSUER
    if settings.JWT_AUDIENCE:
        kwargs["audience"] = settings.JWT_AUDIENCE
    else:
        options["verify_aud"] = False
    try:
        if settings.JWT_JWKS_URL:
            key = _get_jwks_client().get_signing_key_from_jwt(token).key
            algorithms = ["RS256"]
        else:
            key = settings.JWT_SECRET
            algorithms = [settings.JWT_ALGORITHM]
        return jwt.decode(token, key, algorithms=algorithms, options=options, **kwargs)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("token expired")
    except jwt.InvalidIssuerError:
        raise _unauthorized("invalid token issuer")
    except jwt.PyJWTError:
        raise _unauthorized("invalid token")


def scopes_from_claims(payload: dict) -> frozenset:
    """Collect granted scopes from the `scope` or `scp` claim.

    `scope` is a space-separated string (OAuth2 style); `scp` may be a
    list or a string.
    """
    raw = payload.get("scope")
    if raw is None:
        raw = payload.get("scp", [])
    if isinstance(raw, str):
        raw = raw.split()
    return frozenset(str(s) for s in raw)


def authenticate(credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme)) -> Principal:
    """FastAPI dependency that returns the authenticated caller.

    Raises HTTPException(401) when no bearer token is presented or the
    token does not verify.
    """
    if credentials is None or not credentials.credentials:
        logger.info("auth rejected: missing bearer credential")
        raise _unauthorized("not authenticated")
    return principal_from_token(credentials.credentials)


def principal_from_token(token: str) -> Principal:
    """Verify `token` and build the caller's `Principal`.

    Raises HTTPException(401) when the token does not verify.
    """
    try:
        payload = decode_token(token)
    except HTTPException as exc:
        logger.info("auth rejected: %s", exc.detail)
        raise
    return Principal(subject=str(payload["sub"]), scopes=scopes_from_claims(payload))


def check_request(authorization: Optional[str], scope: str) -> Principal:
    """Apply the whole gate to a raw `Authorization` header value.

    Used where FastAPI has not resolved the route dependencies, e.g. when
    the body could not be parsed. Raises HTTPException(401|403).
    """
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        logger.info("auth rejected: missing bearer credential")
        raise _unauthorized("not authenticated")
    principal = principal_from_token(token.strip())
    if not principal.has_scope(scope):
        logger.info("auth forbidden: subject=%s missing scope %s", principal.subject, scope)
        raise HTTPException(status_code=403, detail=f"missing scope: {scope}")
    return principal


def require_scope(scope: str):
    """Build a dependency that requires an authenticated caller with `scope`.

    Usage:
        @router.post('/users')
        def create(principal: Principal = Depends(require_scope(SCOPE_WRITE))):
            ...
    """
    def _check(principal: Principal = Depends(authenticate)) -> Principal:
        if not principal.has_scope(scope):
            logger.info("auth forbidden: subject=%s missing scope %s", principal.subject, scope)
            raise HTTPException(status_code=403, detail=f"missing scope: {scope}")
        return principal

    return _check


def create_access_token(subject: str, scopes: Iterable[str], expires_minutes: Optional[int] = None) -> str:
    """Issue a token signed with the shared secret.

    Used for local development and tests; production tokens come from
    the configured issuer.
    """
    if expires_minutes is None:
        expires_minutes = settings.JWT_EXPIRE_MINUTES
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    payload = {"sub": subject, "scope": " ".join(scopes), "exp": int(expire.timestamp())}
    if settings.JWT_ISSUER:
        payload["iss"] = settings.JWT_ISSUER
    if settings.JWT_AUDIENCE:
        payload["aud"] = settings.JWT_AUDIENCE
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
