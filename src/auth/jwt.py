"""
JWT token management.

Tokens are issued by the identity provider and carry the actor id and
kind. They are accepted from the Authorization header or the
access_token cookie.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from src.config import settings

# JWT configuration
ALGORITHM = "HS256"
TOKEN_TYPE = "access"

ADMIN_KIND = "admin"
TOKEN_KINDS = {ADMIN_KIND, "agent", "landlord", "tenant"}


def create_access_token(
    subject_id: int,
    kind: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        subject_id: Database ID of the admin or actor
        kind: admin, agent, landlord or tenant
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(hours=settings.jwt_expire_hours)

    payload = {
        "sub": str(subject_id),
        "kind": kind,
        "exp": expire,
        "type": TOKEN_TYPE,
        "iat": datetime.now(timezone.utc),
    }

    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def verify_token(token: str) -> Optional[dict]:
    """
    Verify and decode a JWT token.

    Returns:
        Dict with 'id' and 'kind', or None if the token is invalid/expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[ALGORITHM],
        )

        if payload.get("type") != TOKEN_TYPE:
            return None

        subject_id = payload.get("sub")
        kind = payload.get("kind")

        if not subject_id or kind not in TOKEN_KINDS:
            return None

        return {
            "id": int(subject_id),
            "kind": kind,
        }

    except (JWTError, ValueError):
        return None


def get_token(request) -> Optional[str]:
    """
    Extract the JWT from the Authorization header or the access_token cookie.
    """
    authorization = request.headers.get("Authorization")
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token:
            return token.strip()

    return request.cookies.get("access_token")
