"""
Common dependencies for FastAPI routes.
"""

from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.database import Database

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def _decode_token(token: str) -> Optional[dict]:
    """Decode JWT token. Import here to avoid circular imports."""
    from app.auth.service import AuthService
    return AuthService.decode_token(token)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> dict:
    """
    Dependency to get the current authenticated user from JWT token.

    Returns a dict with 'id' and 'email', plus the caller's shop as
    'shop_ref' (internal id, used for ownership checks) and 'shop_id'
    (external id) when the caller owns a shop.
    """
    payload = _decode_token(credentials.credentials) if credentials else None

    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    shop = await Database.get_collection("shops").find_one({"owner_id": payload["sub"]})

    return {
        "id": payload["sub"],
        "email": payload.get("email"),
        "shop_ref": str(shop["_id"]) if shop else None,
        "shop_id": shop["shop_id"] if shop else None,
    }


def get_channel(request: Request):
    """Realtime connection registry owned by the running application."""
    return request.app.state.channel
