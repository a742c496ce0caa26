"""JWT token generation and validation

DocFlow does not issue logins itself; tokens are minted by the identity
service and only verified here. create_access_token exists for tooling and
tests.

JWT Token Claims Structure:
====================================

Standard JWT Claims:
- sub (Subject): User ID as a decimal string
  Example: "42"

- iat (Issued At): Unix timestamp when token was created

- exp (Expiration): Unix timestamp when token expires

Custom Claims (DocFlow-specific):
- roles: List of role names
  Values: "admin" | "district_manager" | "branch_manager" | "branch_user" | "uploader" | "user"
  Purpose: Capability resolution; unknown names grant nothing

- ba_code: Home branch BA code (optional)
  Example: 1101
  Purpose: Branch scope of branch users, uploaders and plain users

- region_code: Region of the home branch (optional, default "R6")
  Purpose: Branch scope of district and branch managers

Example Token Payload:
{
  "sub": "42",
  "roles": ["branch_user"],
  "ba_code": 1101,
  "region_code": "R6",
  "iat": 1704368400,
  "exp": 1704372000
}
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional

import jwt

from ..config import get_settings

# Tokens without a subject or an expiry are rejected outright
REQUIRED_CLAIMS = ["sub", "exp"]


def _get_jwt_secret() -> str:
    """Get JWT_SECRET from settings.

    Raises:
        ValueError: If JWT_SECRET is not set
    """
    secret = get_settings().JWT_SECRET
    if not secret:
        raise ValueError("JWT_SECRET environment variable is not set")
    return secret


def create_access_token(
    user_id: int,
    roles: Iterable[str],
    ba_code: Optional[int] = None,
    region_code: Optional[str] = "R6",
    expires_minutes: int = 60,
) -> str:
    """Create a signed access token.

    Args:
        user_id: User identifier
        roles: Role names
        ba_code: Home branch BA code
        region_code: Region of the home branch
        expires_minutes: Token lifetime

    Returns:
        str: Signed JWT token

    Raises:
        ValueError: If JWT_SECRET is not set
    """
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "roles": list(roles),
        "region_code": region_code,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=expires_minutes)).timestamp()),
    }
    if ba_code is not None:
        payload["ba_code"] = ba_code

    return jwt.encode(payload, _get_jwt_secret(), algorithm=get_settings().JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT token.

    Args:
        token: JWT token string

    Returns:
        dict: Decoded token payload with claims

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or tampered
        ValueError: If JWT_SECRET is not set
    """
    secret = _get_jwt_secret()

    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[get_settings().JWT_ALGORITHM],
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError:
        raise jwt.ExpiredSignatureError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise jwt.InvalidTokenError(f"Invalid token: {str(e)}")
