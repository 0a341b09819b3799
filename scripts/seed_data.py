"""Create tables and seed staff, locations and the global admission policy.

Run from the project root:
    python -m scripts.seed_data
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path so imports work when run as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import select

from visitgate.auth.passwords import hash_password
from visitgate.config import settings
from visitgate.database import Base, async_session_factory, engine
from visitgate.models.location import Location
from visitgate.models.policy import Policy
from visitgate.models.user import User

# ---------------------------------------------------------------------------
# Seed data definitions
# ---------------------------------------------------------------------------

STAFF = [
    {"email": "admin@visitgate.dev", "password": "admin1234", "name": "Front Desk Admin", "role": "admin"},
    {"email": "security@visitgate.dev", "password": "security1234", "name": "Lobby Security", "role": "security"},
    {"email": "host@visitgate.dev", "password": "host1234", "name": "Dana Host", "role": "host"},
    {"email": "host2@visitgate.dev", "password": "host1234", "name": "Riley Host", "role": "host"},
]

LOCATIONS = [
    {"name": "Main Tower Lobby", "is_active": True, "check_in_cutoff_hour": None},
    {"name": "Rooftop Lounge", "is_active": True, "check_in_cutoff_hour": 20},
    {"name": "Fitness Center", "is_active": False, "check_in_cutoff_hour": None},
]


async def seed() -> None:
    """Idempotent: existing rows (matched by email or name) are left alone."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as session:
        created_staff = 0
        for staff in STAFF:
            result = await session.execute(select(User).where(User.email == staff["email"]))
            if result.scalar_one_or_none() is not None:
                continue
            session.add(
                User(
                    email=staff["email"],
                    hashed_password=hash_password(staff["password"]),
                    name=staff["name"],
                    role=staff["role"],
                    is_active=True,
                )
            )
            created_staff += 1

        created_locations = 0
        for loc in LOCATIONS:
            result = await session.execute(select(Location).where(Location.name == loc["name"]))
            if result.scalar_one_or_none() is not None:
                continue
            session.add(Location(**loc))
            created_locations += 1

        result = await session.execute(select(Policy).where(Policy.location_id.is_(None)))
        if result.scalar_one_or_none() is None:
            session.add(
                Policy(
                    location_id=None,
                    guest_monthly_limit=settings.default_guest_monthly_limit,
                    host_concurrent_limit=settings.default_host_concurrent_limit,
                )
            )
            print("✅ Created global admission policy")

        await session.commit()

    await engine.dispose()

    print("=" * 60)
    print("📊 Seed Summary")
    print("=" * 60)
    print(f"   Staff:     {created_staff} new")
    print(f"   Locations: {created_locations} new")
    for staff in STAFF:
        print(f"   {staff['role']:<9} {staff['email']} / {staff['password']}")
    print("=" * 60)
    print("🎉 Done! You can now log in at /api/v1/auth/login")


if __name__ == "__main__":
    asyncio.run(seed())
