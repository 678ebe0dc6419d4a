"""
Audit logging service for tracking admin actions.

Provides centralized logging for compliance and security monitoring.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from opsdesk.app.models.audit_log import AuditLog


class AuditAction:
    """Standardized audit action constants."""
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"
    
    # Admin management
    ADMIN_CREATED = "ADMIN_CREATED"
    ADMIN_ACTIVATED = "ADMIN_ACTIVATED"
    ADMIN_DEACTIVATED = "ADMIN_DEACTIVATED"
    
    # Finance
    SETTLEMENT_PAYMENT_UPDATED = "SETTLEMENT_PAYMENT_UPDATED"
    SETTLEMENT_SETTLED = "SETTLEMENT_SETTLED"
    SETTLEMENT_REJECTED = "SETTLEMENT_REJECTED"
    SETTLEMENT_BATCH_SETTLED = "SETTLEMENT_BATCH_SETTLED"
    DEPOSIT_UPDATED = "DEPOSIT_UPDATED"
    TRANSACTION_APPROVED = "TRANSACTION_APPROVED"
    TRANSACTION_REJECTED = "TRANSACTION_REJECTED"
    
    # Moderation
    REVIEW_APPROVED = "REVIEW_APPROVED"
    REVIEW_REJECTED = "REVIEW_REJECTED"
    REVIEW_LEVEL_CHANGED = "REVIEW_LEVEL_CHANGED"
    REPORT_RESOLVED = "REPORT_RESOLVED"
    
    # Accounts
    CUSTOMER_BANNED = "CUSTOMER_BANNED"
    CUSTOMER_UNBANNED = "CUSTOMER_UNBANNED"
    CUSTOMER_PROFILE_UPDATED = "CUSTOMER_PROFILE_UPDATED"
    CUSTOMER_PASSWORD_RESET = "CUSTOMER_PASSWORD_RESET"
    TECHNICIAN_BLOCKED = "TECHNICIAN_BLOCKED"
    TECHNICIAN_UNBLOCKED = "TECHNICIAN_UNBLOCKED"
    TECHNICIAN_VERIFIED = "TECHNICIAN_VERIFIED"
    TECHNICIAN_UNVERIFIED = "TECHNICIAN_UNVERIFIED"
    TECHNICIAN_CREATED = "TECHNICIAN_CREATED"
    TECHNICIAN_UPDATED = "TECHNICIAN_UPDATED"
    TECHNICIAN_STATUS_UPDATED = "TECHNICIAN_STATUS_UPDATED"
    TECHNICIAN_COOLDOWN_SET = "TECHNICIAN_COOLDOWN_SET"
    TECHNICIAN_COOLDOWN_CANCELLED = "TECHNICIAN_COOLDOWN_CANCELLED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_username: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    target_label: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> AuditLog:
    """
    Log an admin or authentication event to the audit log.
    
    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of admin performing the action
        actor_username: Username of actor
        target_type: Kind of record acted upon (e.g. "order_settlement")
        target_id: ID of the record acted upon
        target_label: Human-readable label of the target
        metadata: Additional context as JSON
        ip_address: IP address of the request
        
    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_username=actor_username,
        action=action,
        target_type=target_type,
        target_id=target_id,
        target_label=target_label,
        meta_data=metadata,
        ip_address=ip_address
    )
    
    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)
    
    return audit_log


async def log_admin_action(
    db: AsyncSession,
    admin: Dict[str, Any],
    action: str,
    target_type: str,
    target_id: Optional[int] = None,
    target_label: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """Log an action taken by the authenticated admin (JWT payload)."""
    return await log_event(
        db=db,
        action=action,
        actor_id=admin["user_id"],
        actor_username=admin.get("sub"),
        target_type=target_type,
        target_id=target_id,
        target_label=target_label,
        metadata=metadata
    )


async def get_audit_trail(
    db: AsyncSession,
    actor_id: Optional[int] = None,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering, most recent first.
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))
    
    if actor_id:
        query = query.where(AuditLog.actor_id == actor_id)
    
    if target_type:
        query = query.where(AuditLog.target_type == target_type)
    
    if target_id:
        query = query.where(AuditLog.target_id == target_id)
    
    if action:
        query = query.where(AuditLog.action == action)
    
    query = query.limit(limit)
    
    result = await db.execute(query)
    return result.scalars().all()
