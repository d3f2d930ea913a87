"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from shutdown_log.auth import (
    AuthProvider,
    Identity,
    JwtAuthProvider,
    Session,
    StaticAuthProvider,
    current_user,
)
from shutdown_log.config import get_settings
from shutdown_log.db import DbClient, InMemoryDbClient, SqlDbClient
from shutdown_log.errors import NotAuthenticated

_db_client: DbClient | None = None
_auth_provider: AuthProvider | None = None

bearer_scheme = HTTPBearer(auto_error=False)


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so logs persist across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = SqlDbClient(settings.database_url)
    return _db_client


def get_auth_provider() -> AuthProvider:
    global _auth_provider
    if _auth_provider:
        return _auth_provider

    settings = get_settings()
    if settings.jwt_secret:
        _auth_provider = JwtAuthProvider(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            audience=settings.jwt_audience or None,
        )
    else:
        # No secret configured: nobody can sign in.
        _auth_provider = StaticAuthProvider()
    return _auth_provider


def get_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Session:
    """Build the explicit per-request session from the bearer token."""
    return Session(access_token=credentials.credentials if credentials else None)


def require_user(
    session: Session = Depends(get_session),
    auth: AuthProvider = Depends(get_auth_provider),
) -> Identity:
    user = current_user(session, auth)
    if not user:
        raise NotAuthenticated()
    return user


@dataclass
class Caller:
    """Everything a route needs to act for the signed-in user."""

    user: Identity
    session: Session
    auth: AuthProvider
    db: DbClient


def get_caller(
    user: Identity = Depends(require_user),
    session: Session = Depends(get_session),
    auth: AuthProvider = Depends(get_auth_provider),
    db: DbClient = Depends(get_db_client),
) -> Caller:
    return Caller(user=user, session=session, auth=auth, db=db)
