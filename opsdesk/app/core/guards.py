"""
Role guards for back-office endpoints.
"""

from typing import List
from fastapi import Depends, HTTPException, status
from opsdesk.app.models.enums import AdminRole
from opsdesk.app.core.dependencies import get_current_admin

FINANCE_ROLES = [AdminRole.SUPERADMIN, AdminRole.ADMIN, AdminRole.FINANCE]
OPERATIONS_ROLES = [AdminRole.SUPERADMIN, AdminRole.ADMIN, AdminRole.SUPPORT]
STAFF_ROLES = [AdminRole.SUPERADMIN, AdminRole.ADMIN]


def require_role(allowed_roles: List[AdminRole]):
    """
    Dependency factory for role-based access control.
    
    Usage:
        @router.get("/finance/settlements")
        async def list_settlements(admin: dict = Depends(require_role(FINANCE_ROLES))):
            ...
    
    Raises:
        HTTPException 403 if the admin's role is not in allowed_roles
    """
    async def role_checker(current_admin: dict = Depends(get_current_admin)) -> dict:
        role_value = current_admin.get("role")
        
        if not role_value:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Role information missing from token"
            )
        
        try:
            role = AdminRole(role_value)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid role in token"
            )
        
        if role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )
        
        return current_admin
    
    return role_checker


def require_superadmin(current_admin: dict = Depends(get_current_admin)) -> dict:
    """Dependency for superadmin-only endpoints."""
    if current_admin.get("role") != AdminRole.SUPERADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Superadmin access required"
        )
    
    return current_admin
