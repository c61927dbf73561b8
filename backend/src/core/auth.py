"""Authentication module for OAuth session-token (JWT) validation."""
import logging

import httpx
import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings
from db.session import get_async_session
from models.user import User

logger = logging.getLogger(__name__)

DEV_USER_SUBJECT = "dev|local-development-user"
DEV_USER_EMAIL = "dev@localhost"

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)

# Cache for JWKS client (reuse across requests)
_jwks_clients: dict[str, PyJWKClient] = {}


def get_jwks_client(settings: Settings) -> PyJWKClient:
    """Get or create a cached JWKS client for the given settings."""
    if settings.auth_jwks_url not in _jwks_clients:
        _jwks_clients[settings.auth_jwks_url] = PyJWKClient(
            settings.auth_jwks_url,
            cache_jwk_set=True,
            lifespan=3600,  # Cache keys for 1 hour
        )
    return _jwks_clients[settings.auth_jwks_url]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_jwt(token: str, settings: Settings) -> dict:
    """
    Decode and validate a session token issued by the identity provider.

    Raises:
        HTTPException: If token is invalid, expired, or has wrong audience/issuer.
    """
    try:
        jwks_client = get_jwks_client(settings)
        signing_key = jwks_client.get_signing_key_from_jwt(token)

        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=settings.auth_audience,
            issuer=settings.auth_issuer,
        )

    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidAudienceError:
        raise _unauthorized("Invalid audience")
    except jwt.InvalidIssuerError:
        raise _unauthorized("Invalid issuer")
    except jwt.PyJWTError as e:
        # Log full details for debugging (server-side only)
        logger.warning("JWT validation failed: %s", e, exc_info=True)
        raise _unauthorized("Invalid token")
    except httpx.HTTPError as e:
        logger.error("Failed to fetch JWKS: %s", e, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not validate credentials",
        )


async def _get_user_by_subject(db: AsyncSession, auth_subject: str) -> User | None:
    result = await db.execute(select(User).where(User.auth_subject == auth_subject))
    return result.scalar_one_or_none()


async def get_or_create_user(
    db: AsyncSession,
    auth_subject: str,
    email: str | None = None,
) -> User:
    """
    Get existing user or create new one from token claims.

    Handles race conditions where multiple concurrent requests may try to create
    the same user simultaneously. If an IntegrityError occurs (due to unique
    constraint on auth_subject), the function rolls back and fetches the existing user.

    Note: Uses flush(), not commit. Session generator handles commit at request end.

    Important: This function is called during authentication before any other
    database operations in the request. The rollback on IntegrityError is safe
    because no prior work exists to be undone.
    """
    user = await _get_user_by_subject(db, auth_subject)

    if user is None:
        user = User(auth_subject=auth_subject, email=email)
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            # Another request created the user between our SELECT and INSERT
            await db.rollback()
            user = await _get_user_by_subject(db, auth_subject)
            if user is None:
                raise

    if email and user.email != email:
        user.email = email
        await db.flush()

    return user


async def get_or_create_dev_user(db: AsyncSession) -> User:
    """Get or create a development user for DEV_MODE."""
    return await get_or_create_user(
        db,
        auth_subject=DEV_USER_SUBJECT,
        email=DEV_USER_EMAIL,
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    Dependency that validates the bearer token and returns the current user.

    In DEV_MODE, bypasses auth and returns a local development user.
    """
    if settings.dev_mode:
        return await get_or_create_dev_user(db)

    if credentials is None:
        raise _unauthorized("Not authenticated")

    payload = decode_jwt(credentials.credentials, settings)

    auth_subject = payload.get("sub")
    if not auth_subject:
        raise _unauthorized("Invalid token: missing sub claim")

    return await get_or_create_user(db, auth_subject=auth_subject, email=payload.get("email"))
