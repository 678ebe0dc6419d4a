"""
Customer account endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_

from opsdesk.app.db.session import get_db
from opsdesk.app.db.store import escape_like
from opsdesk.app.core.exceptions import NotFoundError, ValidationError
from opsdesk.app.core.security import get_password_hash
from opsdesk.app.core.guards import require_role, require_superadmin, OPERATIONS_ROLES
from opsdesk.app.models.customer import Customer
from opsdesk.app.schemas.admin import AdminActionResponse
from opsdesk.app.schemas.users import (
    CustomerResponse, CustomerListResponse, BanToggleRequest, CustomerProfileUpdate, PasswordResetRequest
)
from opsdesk.app.services.audit import log_admin_action, AuditAction

router = APIRouter(prefix="/users", tags=["Users"])


async def _get_customer(db: AsyncSession, customer_id: int) -> Customer:
    customer = await db.get(Customer, customer_id)
    if not customer:
        raise NotFoundError("Customer", customer_id)
    return customer


@router.get("/customers", response_model=CustomerListResponse)
async def list_customers(
    search: Optional[str] = Query(None, description="Username or email"),
    is_banned: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    admin: dict = Depends(require_role(OPERATIONS_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    query = select(Customer)
    count_query = select(func.count(Customer.id))
    
    if search and search.strip():
        pattern = f"%{escape_like(search.strip())}%"
        condition = or_(
            Customer.username.ilike(pattern, escape="\\"),
            Customer.email.ilike(pattern, escape="\\"),
        )
        query = query.where(condition)
        count_query = count_query.where(condition)
    
    if is_banned is not None:
        query = query.where(Customer.is_banned == is_banned)
        count_query = count_query.where(Customer.is_banned == is_banned)
    
    total = (await db.execute(count_query)).scalar()
    
    offset = (page - 1) * page_size
    result = await db.execute(
        query.order_by(Customer.created_at.desc(), Customer.id.desc()).offset(offset).limit(page_size)
    )
    
    return CustomerListResponse(
        customers=[CustomerResponse.model_validate(c) for c in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("/customers/{customer_id}/toggle-ban", response_model=AdminActionResponse)
async def toggle_customer_ban(
    customer_id: int,
    payload: Optional[BanToggleRequest] = None,
    admin: dict = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db)
):
    """Ban or unban a customer (superadmin-only)."""
    customer = await _get_customer(db, customer_id)
    
    customer.is_banned = not customer.is_banned
    await db.commit()
    
    action = AuditAction.CUSTOMER_BANNED if customer.is_banned else AuditAction.CUSTOMER_UNBANNED
    audit_log = await log_admin_action(
        db=db,
        admin=admin,
        action=action,
        target_type="customer",
        target_id=customer.id,
        target_label=customer.username,
        metadata={"reason": payload.reason if payload else None}
    )
    
    return AdminActionResponse(
        success=True,
        message=f"Customer '{customer.username}' {'banned' if customer.is_banned else 'unbanned'}",
        target_id=customer.id,
        action=action,
        audit_log_id=audit_log.id
    )


@router.patch("/customers/{customer_id}", response_model=CustomerResponse)
async def update_customer_profile(
    customer_id: int,
    payload: CustomerProfileUpdate,
    admin: dict = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db)
):
    """Edit a customer profile (superadmin-only); only changed fields are audited."""
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise ValidationError("No profile fields to update")
    
    customer = await _get_customer(db, customer_id)
    
    if "username" in fields and fields["username"] != customer.username:
        taken = await db.execute(
            select(Customer.id).where(Customer.username == fields["username"], Customer.id != customer.id)
        )
        if taken.first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Username already registered"
            )
    
    changes = {}
    previous = {}
    for name, value in fields.items():
        if getattr(customer, name) != value:
            previous[name] = getattr(customer, name)
            changes[name] = value
            setattr(customer, name, value)
    
    if changes:
        await db.commit()
        await db.refresh(customer)
        await log_admin_action(
            db=db,
            admin=admin,
            action=AuditAction.CUSTOMER_PROFILE_UPDATED,
            target_type="customer",
            target_id=customer.id,
            target_label=customer.username,
            metadata={"changes": changes, "previous_values": previous}
        )
    
    return CustomerResponse.model_validate(customer)


@router.post("/customers/{customer_id}/reset-password", response_model=AdminActionResponse)
async def reset_customer_password(
    customer_id: int,
    payload: PasswordResetRequest,
    admin: dict = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db)
):
    customer = await _get_customer(db, customer_id)
    customer.hashed_password = get_password_hash(payload.new_password)
    await db.commit()
    
    audit_log = await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.CUSTOMER_PASSWORD_RESET,
        target_type="customer",
        target_id=customer.id,
        target_label=customer.username
    )
    
    return AdminActionResponse(
        success=True,
        message=f"Password reset for customer '{customer.username}'",
        target_id=customer.id,
        action=AuditAction.CUSTOMER_PASSWORD_RESET,
        audit_log_id=audit_log.id
    )
