"""
Database seeding script for initial staff accounts.

Creates one account per back-office role for development.
Run this script after the database is set up but before first use.
"""

import asyncio

from sqlalchemy import select

from opsdesk.app.db.session import AsyncSessionLocal, engine, Base
from opsdesk.app.models.admin import AdminProfile
from opsdesk.app.models.enums import AdminRole
from opsdesk.app.core.security import get_password_hash

import opsdesk.app.main  # noqa: F401  registers every model with Base

SEED_ADMINS = [
    ("root", "root@opsdesk.local", "root-change-me", AdminRole.SUPERADMIN),
    ("manager", "manager@opsdesk.local", "manager-change-me", AdminRole.ADMIN),
    ("finance", "finance@opsdesk.local", "finance-change-me", AdminRole.FINANCE),
    ("support", "support@opsdesk.local", "support-change-me", AdminRole.SUPPORT),
]


async def seed_admins():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    async with AsyncSessionLocal() as db:
        print("🌱 Starting staff seeding...")
        
        result = await db.execute(select(AdminProfile).where(AdminProfile.role == AdminRole.SUPERADMIN))
        if result.scalars().first():
            print("ℹ️  A superadmin already exists, skipping seeding")
            return
        
        for username, email, password, role in SEED_ADMINS:
            db.add(AdminProfile(
                email=email,
                username=username,
                display_name=username.title(),
                hashed_password=get_password_hash(password),
                role=role,
                is_active=True
            ))
            print(f"✅ Created {role.value} account (username: {username}, password: {password})")
        
        await db.commit()
        print("\n🎉 Staff seeding completed. Change these passwords before going live.")


if __name__ == "__main__":
    asyncio.run(seed_admins())
