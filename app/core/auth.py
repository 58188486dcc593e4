"""Authentication dependencies resolving the caller from a bearer JWT."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Mapping

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

_ASYMMETRIC_ALGORITHMS = ["RS256", "ES256"]


@lru_cache(maxsize=4)
def _jwks_client(url: str) -> jwt.PyJWKClient:
    return jwt.PyJWKClient(url)


def decode_token(token: str, settings: Settings) -> Mapping[str, Any]:
    """Verify ``token`` and return its claims."""

    options = {"verify_aud": bool(settings.auth_audience)}
    alg = jwt.get_unverified_header(token).get("alg")

    if alg in _ASYMMETRIC_ALGORITHMS:
        if not settings.auth_jwks_url:
            logger.error("AUTH_JWKS_URL is not configured; cannot verify %s tokens", alg)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Server configuration error: AUTH_JWKS_URL missing for asymmetric JWT",
            )
        signing_key = _jwks_client(settings.auth_jwks_url).get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=_ASYMMETRIC_ALGORITHMS,
            audience=settings.auth_audience,
            options=options,
        )

    if not settings.auth_jwt_secret:
        logger.error("AUTH_JWT_SECRET is not configured; cannot verify HS256 tokens")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server configuration error: AUTH_JWT_SECRET missing",
        )
    return jwt.decode(
        token,
        settings.auth_jwt_secret,
        algorithms=["HS256"],
        audience=settings.auth_audience,
        options=options,
    )


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str | None:
    """Return the ``sub`` of a valid bearer token, or ``None`` for anonymous callers."""

    if credentials is None:
        return None

    try:
        payload = decode_token(credentials.credentials, get_settings())
    except jwt.ExpiredSignatureError as exc:
        logger.warning("JWT validation failed: Token expired. Detail: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    except (jwt.PyJWTError, ValueError) as exc:
        logger.warning("JWT validation failed: Invalid token. Reason: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has no subject",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return str(subject)
