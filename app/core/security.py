"""
JWT helpers.

Users live in an upstream identity service; this API only needs to know who
is acting, which it reads from the `sub` claim of a signed bearer token.
"""

from datetime import timedelta
from typing import Optional
from jose import jwt
from app.core.config import settings
from app.core.timeutils import utcnow


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None, **claims) -> str:
    """
    Create a signed access token for `subject`.

    Used by tests and by service-to-service callers; end users get their
    tokens from the identity service with the same secret.

    Args:
        subject: user id placed in the `sub` claim
        expires_delta: lifetime (default: ACCESS_TOKEN_EXPIRE_MINUTES)
        **claims: extra claims to include

    Returns:
        Encoded JWT
    """
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {**claims, "sub": subject, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict:
    """
    Decode and validate a JWT.

    Raises:
        JWTError: token is invalid or expired
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
