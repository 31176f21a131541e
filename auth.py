"""
Bearer-token authorization for the write routes.

The gate is picked once, when the app is built:

- JwtGate checks RS256 tokens issued by the configured identity provider
  (signature against its JWKS, audience, issuer) and the write scope.
- PassThroughGate lets everything through. It is used when AUTH_DISABLE=true
  or when the AUTH0_* settings are incomplete, and a warning is logged.

Routes depend on require_write / require_admin, which look the gate up on
app.state instead of re-reading configuration per request.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import httpx
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from config import Settings
from errors import Forbidden, Unauthenticated

logger = logging.getLogger(__name__)

ALGORITHMS = ["RS256"]

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Principal:
    sub: Optional[str] = None
    scopes: List[str] = field(default_factory=list)
    claims: Dict[str, Any] = field(default_factory=dict)


ANONYMOUS = Principal()


def _scopes_from(claims: Dict[str, Any]) -> List[str]:
    scope = claims.get("scope")
    if isinstance(scope, str):
        return scope.split()
    if isinstance(scope, list):
        return [s for s in scope if isinstance(s, str)]
    return []


class PassThroughGate:
    passthrough = True

    def verify(self, token: Optional[str], required_scope: Optional[str] = None) -> Principal:
        return ANONYMOUS


def fetch_jwks(url: str) -> Dict[str, Any]:
    response = httpx.get(url, timeout=10.0)
    response.raise_for_status()
    return response.json()


class JwtGate:
    passthrough = False

    def __init__(
        self,
        audience: str,
        issuer_base_url: str,
        jwks_fetcher: Callable[[str], Dict[str, Any]] = fetch_jwks,
    ):
        self.audience = audience
        self.issuer = issuer_base_url.rstrip("/") + "/"
        self.jwks_url = self.issuer + ".well-known/jwks.json"
        self._fetch = jwks_fetcher
        self._keys: Optional[Dict[str, Dict[str, Any]]] = None

    def _load_keys(self) -> Dict[str, Dict[str, Any]]:
        jwks = self._fetch(self.jwks_url)
        self._keys = {k["kid"]: k for k in jwks.get("keys", []) if "kid" in k}
        return self._keys

    def signing_key(self, kid: Optional[str]) -> Dict[str, Any]:
        keys = self._keys if self._keys is not None else self._load_keys()
        if kid not in keys:
            # key rotation: refresh once before giving up
            keys = self._load_keys()
        if kid not in keys:
            raise Unauthenticated("Invalid token")
        return keys[kid]

    def verify(self, token: Optional[str], required_scope: Optional[str] = None) -> Principal:
        if not token:
            raise Unauthenticated()
        try:
            header = jwt.get_unverified_header(token)
            key = self.signing_key(header.get("kid"))
            claims = jwt.decode(
                token,
                key,
                algorithms=ALGORITHMS,
                audience=self.audience,
                issuer=self.issuer,
            )
        except JWTError as exc:
            logger.info("Rejected bearer token: %s", exc)
            raise Unauthenticated("Invalid token")

        principal = Principal(sub=claims.get("sub"), scopes=_scopes_from(claims), claims=claims)
        if required_scope and required_scope not in principal.scopes:
            raise Forbidden("Insufficient scope")
        return principal


def build_gate(settings: Settings):
    if settings.auth_disabled:
        logger.warning("[AUTH] AUTH_DISABLE=true -> all auth checks are DISABLED (dev only).")
        return PassThroughGate()
    if not settings.auth_configured:
        logger.warning(
            "[AUTH] Missing AUTH0_* env. JWT validation disabled. "
            "Set AUTH_DISABLE=true for local dev if intentional."
        )
        return PassThroughGate()
    return JwtGate(settings.auth_audience, settings.auth_issuer_base_url)


# -----------------------------
# Dependencies
# -----------------------------

def require_write(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    gate = request.app.state.gate
    token = credentials.credentials if credentials else None
    return gate.verify(token, request.app.state.settings.write_scope)


def require_admin(request: Request, principal: Principal = Depends(require_write)) -> Principal:
    if request.app.state.gate.passthrough:
        return principal
    role_claim = request.app.state.settings.auth_role_claim
    roles = principal.claims.get(role_claim)
    if isinstance(roles, list) and "admin" in roles:
        return principal
    raise Forbidden("Admin role required")
