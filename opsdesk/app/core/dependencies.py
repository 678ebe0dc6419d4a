"""
Authentication dependencies for FastAPI.

This module provides dependencies for protecting routes with JWT authentication.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from opsdesk.app.core.jwt import decode_access_token
from opsdesk.app.core.token_revocation import is_token_revoked, are_admin_tokens_revoked
from opsdesk.app.db.session import get_db
from opsdesk.app.models.admin import AdminProfile

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    FastAPI dependency for JWT authentication.
    
    Checks, in order:
    1. JWT signature and expiry
    2. Explicit revocation of this token (logout)
    3. Revocation of all tokens of the admin (deactivation)
    4. The admin still exists and is active in the database
    
    Returns:
        Decoded token payload; `user_id` is the operator id for every
        audited action
        
    Raises:
        HTTPException: 401/403 if authentication fails for any reason
    """
    token = credentials.credentials
    
    payload = decode_access_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    admin_id = payload.get("user_id")
    if not admin_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    if await is_token_revoked(token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has been revoked",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    if await are_admin_tokens_revoked(admin_id):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin access has been revoked",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    admin = await db.get(AdminProfile, admin_id)
    
    if not admin:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    if not admin.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin account is inactive",
        )
    
    # role in the database wins over a stale token claim
    payload["role"] = admin.role.value
    payload["token"] = token
    return payload
