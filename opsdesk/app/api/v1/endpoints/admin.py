"""
Admin API Endpoints.

Superadmin-only staff management plus the audit trail.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from opsdesk.app.db.session import get_db
from opsdesk.app.models.admin import AdminProfile
from opsdesk.app.schemas.admin import (
    AdminCreate, AdminListResponse, AdminActionResponse, AuditTrailResponse, AuditLogResponse
)
from opsdesk.app.schemas.auth import AdminProfileResponse
from opsdesk.app.core.exceptions import NotFoundError
from opsdesk.app.core.guards import require_superadmin, require_role, STAFF_ROLES
from opsdesk.app.core.security import get_password_hash
from opsdesk.app.core.token_revocation import revoke_all_admin_tokens, clear_admin_token_revocation
from opsdesk.app.services.audit import log_admin_action, AuditAction, get_audit_trail

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/admins", response_model=AdminListResponse)
async def list_admins(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    admin: dict = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db)
):
    """List back-office staff accounts (superadmin-only)."""
    total = (await db.execute(select(func.count(AdminProfile.id)))).scalar()
    
    offset = (page - 1) * page_size
    result = await db.execute(
        select(AdminProfile).order_by(AdminProfile.created_at.desc(), AdminProfile.id.desc()).offset(offset).limit(page_size)
    )
    
    return AdminListResponse(
        admins=[AdminProfileResponse.model_validate(a) for a in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("/admins", response_model=AdminProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_admin(
    payload: AdminCreate,
    admin: dict = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db)
):
    """Create a staff account (superadmin-only)."""
    result = await db.execute(
        select(AdminProfile).where(
            or_(AdminProfile.username == payload.username, AdminProfile.email == payload.email)
        )
    )
    existing = result.scalar_one_or_none()
    if existing:
        field = "Username" if existing.username == payload.username else "Email"
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{field} already registered"
        )
    
    new_admin = AdminProfile(
        email=payload.email,
        username=payload.username,
        display_name=payload.display_name,
        hashed_password=get_password_hash(payload.password),
        role=payload.role,
        is_active=True
    )
    db.add(new_admin)
    await db.commit()
    await db.refresh(new_admin)
    
    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.ADMIN_CREATED,
        target_type="admin",
        target_id=new_admin.id,
        target_label=new_admin.username,
        metadata={"role": new_admin.role.value}
    )
    
    return AdminProfileResponse.model_validate(new_admin)


@router.post("/admins/{admin_id}/toggle-active", response_model=AdminActionResponse)
async def toggle_admin_active(
    admin_id: int,
    admin: dict = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db)
):
    """
    Activate or deactivate a staff account (superadmin-only).
    
    Deactivation revokes every token the account holds.
    """
    target = await db.get(AdminProfile, admin_id)
    if not target:
        raise NotFoundError("Admin", admin_id)
    
    if target.id == admin["user_id"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot change your own account status"
        )
    
    target.is_active = not target.is_active
    await db.commit()
    
    if target.is_active:
        await clear_admin_token_revocation(target.id)
        action = AuditAction.ADMIN_ACTIVATED
    else:
        await revoke_all_admin_tokens(target.id)
        action = AuditAction.ADMIN_DEACTIVATED
    
    audit_log = await log_admin_action(
        db=db,
        admin=admin,
        action=action,
        target_type="admin",
        target_id=target.id,
        target_label=target.username
    )
    
    return AdminActionResponse(
        success=True,
        message=f"Admin '{target.username}' is now {'active' if target.is_active else 'inactive'}",
        target_id=target.id,
        action=action,
        audit_log_id=audit_log.id
    )


@router.get("/audit-logs", response_model=AuditTrailResponse)
async def get_audit_logs(
    actor_id: int = Query(None, description="Filter by acting admin"),
    target_type: str = Query(None, description="Filter by target type"),
    target_id: int = Query(None, description="Filter by target ID"),
    action: str = Query(None, description="Filter by action type"),
    limit: int = Query(100, ge=1, le=500, description="Maximum records to return"),
    admin: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Audit trail, most recent first."""
    logs = await get_audit_trail(
        db=db,
        actor_id=actor_id,
        target_type=target_type,
        target_id=target_id,
        action=action,
        limit=limit
    )
    
    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )
