"""
Shared enumerations for back-office roles and technician state.
"""

import enum


def enum_values(enum_cls) -> list:
    """Persist enum values (not member names) in Enum columns."""
    return [member.value for member in enum_cls]


class AdminRole(str, enum.Enum):
    """
    Back-office staff roles.
    
    Roles:
        SUPERADMIN: Full access, including admin management and customer bans
        ADMIN: Operations, finance and moderation
        FINANCE: Settlement and transaction review only
        SUPPORT: Operations monitoring and moderation
    """
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    FINANCE = "finance"
    SUPPORT = "support"


class TechnicianStatus(str, enum.Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"
