# login_risk/core/admin_security.py
"""
Admin authentication for the rules and model endpoints.

Admins present a JWT carrying role="admin". Issuing tokens (the admin login
itself) belongs to the surrounding system; create_admin_token is provided
for that system and for tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from login_risk.core.config import settings

oauth2_admin_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/v1/admin/login",
    auto_error=True
)


def create_admin_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ADMIN_TOKEN_EXPIRE_MINUTES))

    to_encode.update({
        "exp": expire,
        "role": "admin",
        "iat": now,
    })
    return jwt.encode(to_encode, settings.ADMIN_SECRET_KEY, algorithm=settings.ADMIN_TOKEN_ALGORITHM)


def decode_admin_token(token: str) -> dict:
    """
    Decode and validate admin JWT token.
    Raises HTTPException if token is invalid or not an admin token.
    """
    try:
        payload = jwt.decode(
            token,
            settings.ADMIN_SECRET_KEY,
            algorithms=[settings.ADMIN_TOKEN_ALGORITHM],
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate admin credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("role") != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )

    if payload.get("id") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload"
        )

    return payload


async def require_admin(token: str = Depends(oauth2_admin_scheme)) -> dict:
    """
    Dependency protecting admin-only routes.

    Usage:
        @router.put("/rules")
        async def update_rules(admin: dict = Depends(require_admin)):
            ...
    """
    payload = decode_admin_token(token)
    return {
        "id": payload.get("id"),
        "email": payload.get("email"),
        "role": "admin",
    }
