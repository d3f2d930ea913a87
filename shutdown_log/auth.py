"""
Identity resolution against the external auth provider.

The provider issues signed access tokens (HS256 JWTs whose `sub` claim is
the user id). Nothing here reads ambient global state: each request builds
an explicit `Session` and resolves it through an `AuthProvider`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Protocol

from jose import JWTError, jwt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    id: str
    email: str = ""


@dataclass(frozen=True)
class Session:
    """What the caller presented: the bearer token, if any."""

    access_token: Optional[str] = None


class AuthProvider(Protocol):
    def resolve(self, session: Session) -> Optional[Identity]:
        ...


@dataclass
class JwtAuthProvider:
    """Verifies provider-issued JWTs with the shared project secret."""

    secret: str
    algorithm: str = "HS256"
    audience: Optional[str] = "authenticated"

    def resolve(self, session: Session) -> Optional[Identity]:
        if not session.access_token:
            return None
        options = {"verify_aud": bool(self.audience)}
        try:
            claims = jwt.decode(
                session.access_token,
                self.secret,
                algorithms=[self.algorithm],
                audience=self.audience or None,
                options=options,
            )
        except JWTError as exc:
            logger.info("Rejected access token: %s", exc)
            return None
        user_id = claims.get("sub")
        if not user_id:
            logger.info("Rejected access token without subject")
            return None
        return Identity(id=str(user_id), email=claims.get("email") or "")


@dataclass
class StaticAuthProvider:
    """Test double mapping opaque tokens straight to identities."""

    tokens: Dict[str, Identity] = field(default_factory=dict)

    def resolve(self, session: Session) -> Optional[Identity]:
        if not session.access_token:
            return None
        return self.tokens.get(session.access_token)


def current_user(session: Session, provider: AuthProvider) -> Optional[Identity]:
    """Return the signed-in identity for `session`, or None."""
    return provider.resolve(session)


def issue_token(
    identity: Identity,
    secret: str,
    *,
    algorithm: str = "HS256",
    audience: Optional[str] = "authenticated",
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    """
    Mint an access token the way the provider does. Used by local tooling and
    tests; production tokens come from the provider itself.
    """
    now = datetime.now(timezone.utc)
    claims = {
        "sub": identity.id,
        "email": identity.email,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
    }
    if audience:
        claims["aud"] = audience
    return jwt.encode(claims, secret, algorithm=algorithm)
