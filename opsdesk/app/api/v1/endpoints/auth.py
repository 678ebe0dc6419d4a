"""
Authentication API endpoints.

Login, logout and profile lookup for back-office staff.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from opsdesk.app.db.session import get_db
from opsdesk.app.models.admin import AdminProfile
from opsdesk.app.schemas.auth import AdminLogin, TokenResponse, AdminProfileResponse
from opsdesk.app.core.security import verify_password
from opsdesk.app.core.jwt import create_access_token
from opsdesk.app.core.dependencies import get_current_admin
from opsdesk.app.core.token_revocation import revoke_token
from opsdesk.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: AdminLogin,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Login an admin and return a JWT token.
    
    Accepts username or email. Successful and failed attempts are audited.
    """
    ip_address = request.client.host if request.client else None
    result = await db.execute(
        select(AdminProfile).where(
            or_(AdminProfile.username == credentials.username, AdminProfile.email == credentials.username)
        )
    )
    admin = result.scalar_one_or_none()
    
    if not admin or not verify_password(credentials.password, admin.hashed_password):
        await log_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            actor_id=admin.id if admin else None,
            actor_username=credentials.username,
            ip_address=ip_address,
            metadata={"reason": "Invalid password" if admin else "Admin not found"}
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    if not admin.is_active:
        await log_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            actor_id=admin.id,
            actor_username=admin.username,
            ip_address=ip_address,
            metadata={"reason": "Account is inactive"}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive admin account"
        )
    
    access_token = create_access_token(data={
        "sub": admin.username,
        "user_id": admin.id,
        "role": admin.role.value,
    })
    
    await log_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        actor_id=admin.id,
        actor_username=admin.username,
        ip_address=ip_address
    )
    
    return TokenResponse(
        access_token=access_token,
        admin_id=admin.id,
        username=admin.username,
        role=admin.role
    )


@router.post("/logout")
async def logout(
    current_admin: dict = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Revoke the token used for this request."""
    await revoke_token(current_admin["token"], current_admin["user_id"])
    await log_event(
        db=db,
        action=AuditAction.LOGOUT,
        actor_id=current_admin["user_id"],
        actor_username=current_admin.get("sub")
    )
    return {"success": True, "message": "Logged out"}


@router.get("/me", response_model=AdminProfileResponse)
async def get_current_admin_info(
    current_admin: dict = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Return the authenticated admin's profile."""
    admin = await db.get(AdminProfile, current_admin["user_id"])
    
    if not admin:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Admin not found"
        )
    
    return AdminProfileResponse.model_validate(admin)
