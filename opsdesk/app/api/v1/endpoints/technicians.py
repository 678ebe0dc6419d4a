"""
Technician management endpoints.

Profiles, live status, cooldowns and online-time statistics, plus the
blocked/verified switches.
"""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_

from opsdesk.app.db.session import get_db
from opsdesk.app.db.store import RecordStore, get_store
from opsdesk.app.core.clock import utcnow
from opsdesk.app.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from opsdesk.app.core.guards import require_role, STAFF_ROLES, OPERATIONS_ROLES
from opsdesk.app.domain.lookups import technician_ids_matching
from opsdesk.app.domain.technicians.availability import cooldown_until, in_cooldown, work_stats
from opsdesk.app.models.enums import TechnicianStatus
from opsdesk.app.models.technician import City, Technician, TechnicianWorkSession
from opsdesk.app.schemas.admin import AdminActionResponse
from opsdesk.app.schemas.technicians import (
    TechnicianResponse, TechnicianListResponse, TechnicianCreate, TechnicianUpdate,
    TechnicianStatusResponse, TechnicianStatusUpdate, CooldownRequest, WorkStatsResponse
)
from opsdesk.app.services.audit import log_admin_action, AuditAction

router = APIRouter(prefix="/technicians", tags=["Technicians"])


async def _get_technician(db: AsyncSession, technician_id: int) -> Technician:
    technician = await db.get(Technician, technician_id)
    if not technician:
        raise NotFoundError("Technician", technician_id)
    return technician


async def _ensure_unique(
    db: AsyncSession,
    technician_number: Optional[int],
    username: Optional[str],
    exclude_id: Optional[int] = None
) -> None:
    clauses = []
    if technician_number is not None:
        clauses.append(Technician.technician_number == technician_number)
    if username is not None:
        clauses.append(Technician.username == username)
    if not clauses:
        return
    
    query = select(Technician).where(or_(*clauses))
    if exclude_id is not None:
        query = query.where(Technician.id != exclude_id)
    existing = (await db.execute(query.limit(1))).scalar_one_or_none()
    if existing:
        field = "Technician number" if existing.technician_number == technician_number else "Username"
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{field} already registered"
        )


async def _ensure_city(db: AsyncSession, city_id: Optional[int]) -> None:
    if city_id is not None and not await db.get(City, city_id):
        raise NotFoundError("City", city_id)


def _status_response(technician: Technician) -> TechnicianStatusResponse:
    return TechnicianStatusResponse(
        technician_id=technician.id,
        status=technician.status,
        current_lat=technician.current_lat,
        current_lng=technician.current_lng,
        next_available_at=technician.next_available_at,
        cooldown_until=technician.cooldown_until,
        in_cooldown=in_cooldown(technician.cooldown_until, utcnow())
    )


@router.get("", response_model=TechnicianListResponse)
async def list_technicians(
    search: Optional[str] = Query(None, description="Technician number or name"),
    city_id: Optional[int] = Query(None),
    is_blocked: Optional[bool] = Query(None),
    is_verified: Optional[bool] = Query(None),
    status: Optional[TechnicianStatus] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    admin: dict = Depends(require_role(OPERATIONS_ROLES)),
    db: AsyncSession = Depends(get_db),
    store: RecordStore = Depends(get_store)
):
    conditions = []
    
    technician_ids = await technician_ids_matching(store, search, city_id)
    if technician_ids is not None:
        conditions.append(Technician.id.in_(technician_ids))
    if is_blocked is not None:
        conditions.append(Technician.is_blocked == is_blocked)
    if is_verified is not None:
        conditions.append(Technician.is_verified == is_verified)
    if status:
        conditions.append(Technician.status == status)
    
    total = (await db.execute(select(func.count(Technician.id)).where(*conditions))).scalar()
    
    offset = (page - 1) * page_size
    result = await db.execute(
        select(Technician).where(*conditions)
        .order_by(Technician.technician_number.asc()).offset(offset).limit(page_size)
    )
    
    return TechnicianListResponse(
        technicians=[TechnicianResponse.model_validate(t) for t in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("", response_model=TechnicianResponse, status_code=status.HTTP_201_CREATED)
async def create_technician(
    payload: TechnicianCreate,
    admin: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    await _ensure_unique(db, payload.technician_number, payload.username)
    await _ensure_city(db, payload.city_id)
    
    technician = Technician(**payload.model_dump(), status=TechnicianStatus.OFFLINE)
    db.add(technician)
    await db.commit()
    await db.refresh(technician)
    
    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.TECHNICIAN_CREATED,
        target_type="technician",
        target_id=technician.id,
        target_label=technician.name,
        metadata={"technician_number": technician.technician_number}
    )
    
    return TechnicianResponse.model_validate(technician)


@router.get("/{technician_id}", response_model=TechnicianResponse)
async def get_technician(
    technician_id: int,
    admin: dict = Depends(require_role(OPERATIONS_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    return TechnicianResponse.model_validate(await _get_technician(db, technician_id))


@router.patch("/{technician_id}", response_model=TechnicianResponse)
async def update_technician(
    technician_id: int,
    payload: TechnicianUpdate,
    admin: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """
    Edit a technician profile.
    
    Only submitted fields change; the audit entry records each changed
    field with its previous value.
    """
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise ValidationError("No profile fields to update")
    
    technician = await _get_technician(db, technician_id)
    await _ensure_unique(db, fields.get("technician_number"), fields.get("username"), exclude_id=technician.id)
    if "city_id" in fields:
        await _ensure_city(db, fields["city_id"])
    
    changes = {}
    previous = {}
    for name, value in fields.items():
        if getattr(technician, name) != value:
            previous[name] = getattr(technician, name)
            changes[name] = value
            setattr(technician, name, value)
    
    if changes:
        await db.commit()
        await db.refresh(technician)
        await log_admin_action(
            db=db,
            admin=admin,
            action=AuditAction.TECHNICIAN_UPDATED,
            target_type="technician",
            target_id=technician.id,
            target_label=technician.name,
            metadata={"changes": changes, "previous_values": previous}
        )
    
    return TechnicianResponse.model_validate(technician)


async def _toggle(db: AsyncSession, admin: dict, technician_id: int, field: str, on_action: str, off_action: str) -> AdminActionResponse:
    technician = await _get_technician(db, technician_id)
    
    value = not getattr(technician, field)
    setattr(technician, field, value)
    await db.commit()
    
    action = on_action if value else off_action
    audit_log = await log_admin_action(
        db=db,
        admin=admin,
        action=action,
        target_type="technician",
        target_id=technician.id,
        target_label=technician.name
    )
    
    return AdminActionResponse(
        success=True,
        message=f"Technician #{technician.technician_number}: {field} = {value}",
        target_id=technician.id,
        action=action,
        audit_log_id=audit_log.id
    )


@router.post("/{technician_id}/toggle-blocked", response_model=AdminActionResponse)
async def toggle_technician_blocked(
    technician_id: int,
    admin: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Hide or show a technician to customers."""
    return await _toggle(
        db, admin, technician_id, "is_blocked",
        AuditAction.TECHNICIAN_BLOCKED, AuditAction.TECHNICIAN_UNBLOCKED
    )


@router.post("/{technician_id}/toggle-verified", response_model=AdminActionResponse)
async def toggle_technician_verified(
    technician_id: int,
    admin: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    return await _toggle(
        db, admin, technician_id, "is_verified",
        AuditAction.TECHNICIAN_VERIFIED, AuditAction.TECHNICIAN_UNVERIFIED
    )


# ============================================================================
# Live status and cooldown
# ============================================================================

@router.get("/{technician_id}/status", response_model=TechnicianStatusResponse)
async def get_technician_status(
    technician_id: int,
    admin: dict = Depends(require_role(OPERATIONS_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    return _status_response(await _get_technician(db, technician_id))


@router.put("/{technician_id}/status", response_model=TechnicianStatusResponse)
async def update_technician_status(
    technician_id: int,
    payload: TechnicianStatusUpdate,
    admin: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Set online status and location; a technician in cooldown can only be offline."""
    technician = await _get_technician(db, technician_id)
    if payload.status != TechnicianStatus.OFFLINE and in_cooldown(technician.cooldown_until, utcnow()):
        raise InvalidStateError(
            "Technician is in cooldown; cancel it before going online",
            current_state=technician.status,
            details={"cooldown_until": technician.cooldown_until.isoformat()}
        )
    
    previous = technician.status
    technician.status = payload.status
    technician.current_lat = payload.current_lat
    technician.current_lng = payload.current_lng
    technician.next_available_at = payload.next_available_at
    await db.commit()
    await db.refresh(technician)
    
    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.TECHNICIAN_STATUS_UPDATED,
        target_type="technician",
        target_id=technician.id,
        target_label=technician.name,
        metadata={"previous_status": previous.value, "status": payload.status.value}
    )
    
    return _status_response(technician)


@router.post("/{technician_id}/cooldown", response_model=TechnicianStatusResponse)
async def set_technician_cooldown(
    technician_id: int,
    payload: CooldownRequest,
    admin: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Take a technician offline for `hours`."""
    until = cooldown_until(payload.hours, utcnow())
    technician = await _get_technician(db, technician_id)
    
    technician.cooldown_until = until
    technician.status = TechnicianStatus.OFFLINE
    await db.commit()
    await db.refresh(technician)
    
    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.TECHNICIAN_COOLDOWN_SET,
        target_type="technician",
        target_id=technician.id,
        target_label=technician.name,
        metadata={"hours": payload.hours, "cooldown_until": until.isoformat()}
    )
    
    return _status_response(technician)


@router.delete("/{technician_id}/cooldown", response_model=TechnicianStatusResponse)
async def cancel_technician_cooldown(
    technician_id: int,
    admin: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    technician = await _get_technician(db, technician_id)
    technician.cooldown_until = None
    await db.commit()
    await db.refresh(technician)
    
    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.TECHNICIAN_COOLDOWN_CANCELLED,
        target_type="technician",
        target_id=technician.id,
        target_label=technician.name
    )
    
    return _status_response(technician)


@router.get("/{technician_id}/work-stats", response_model=WorkStatsResponse)
async def get_technician_work_stats(
    technician_id: int,
    admin: dict = Depends(require_role(OPERATIONS_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Online hours: current fiscal day, last 7 days, last 30 days and overall."""
    await _get_technician(db, technician_id)
    result = await db.execute(
        select(TechnicianWorkSession).where(TechnicianWorkSession.technician_id == technician_id)
    )
    stats = work_stats(result.scalars().all(), utcnow())
    return WorkStatsResponse(technician_id=technician_id, **asdict(stats))
