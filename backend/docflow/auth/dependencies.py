"""FastAPI dependencies for authentication and capability checks.

Usage:
    @router.get("/documents/{document_id}")
    def get_document(principal: Principal = Depends(get_current_principal)):
        ...

    @router.get("/admin/cache/stats")
    def cache_stats(principal: Principal = Depends(require_capability(Capability.ADMIN_SYSTEM))):
        ...
"""

from typing import Callable

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .jwt import decode_token
from .principal import DEFAULT_REGION_CODE, Principal
from .roles import Capability

# HTTP Bearer token security scheme
security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def principal_from_claims(payload: dict) -> Principal:
    """Build a Principal from verified token claims.

    Raises:
        ValueError: If a claim has the wrong type
    """
    user_id = payload.get("sub")
    if user_id is None:
        raise ValueError("missing user ID claim")

    roles = payload.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]

    ba_code = payload.get("ba_code")
    return Principal.from_role_names(
        user_id=int(user_id),
        role_names=roles,
        ba_code=int(ba_code) if ba_code is not None else None,
        region_code=payload.get("region_code") or DEFAULT_REGION_CODE,
    )


def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Principal:
    """Extract and validate the Bearer token, returning the acting principal.

    Raises:
        HTTPException 401: If token is missing, invalid, expired, or has bad claims
    """
    try:
        payload = decode_token(credentials.credentials)
        return principal_from_claims(payload)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        raise _unauthorized(f"Invalid token: {str(e)}")
    except (TypeError, ValueError) as e:
        raise _unauthorized(f"Invalid token claims: {str(e)}")


def require_capability(capability: Capability) -> Callable:
    """Create a dependency that requires one capability.

    Raises:
        HTTPException 403: If none of the principal's roles carries the capability
    """

    def capability_dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.has_capability(capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required capability: {capability.value}",
            )
        return principal

    return capability_dependency
