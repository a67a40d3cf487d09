#!/usr/bin/env python3
"""Seed a development database with an organization, users, a project and a package.

Usage:
    python scripts/seed_dev_data.py

Uses BR_DATABASE_URL (see bidroom.core.config). Tables are created if missing.
Prints a session token for the seeded owner so the API can be called locally.
"""

import asyncio
import uuid

from sqlmodel import select

from bidroom.core.auth import create_jwt
from bidroom.core.database import get_session_context, init_db
from bidroom.models import (
    Asset,
    OrgMember,
    Organization,
    Package,
    PackageContractor,
    PackageMember,
    Project,
    ProjectMember,
    User,
)

# Deterministic UUIDs for reproducibility
ORG_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
OWNER_ID = uuid.UUID("00000000-0000-0000-0000-000000000010")
BUYER_ID = uuid.UUID("00000000-0000-0000-0000-000000000011")
ENGINEER_ID = uuid.UUID("00000000-0000-0000-0000-000000000012")
PROJECT_ID = uuid.UUID("00000000-0000-0000-0000-000000000100")
PACKAGE_ID = uuid.UUID("00000000-0000-0000-0000-000000000200")

USERS = [
    (OWNER_ID, "alice@acme.dev", "Alice", "owner"),
    (BUYER_ID, "bob@acme.dev", "Bob", "member"),
    (ENGINEER_ID, "carol@acme.dev", "Carol", "member"),
]


async def seed():
    await init_db()

    async with get_session_context() as session:
        if await session.get(Organization, ORG_ID) is not None:
            print("Seed data already present.")
            return

        session.add(Organization(id=ORG_ID, name="Acme Construction", slug="acme-construction", country="GB"))
        for uid, email, name, _ in USERS:
            session.add(User(id=uid, email=email, name=name))
        await session.flush()

        for uid, _, _, role in USERS:
            session.add(OrgMember(user_id=uid, org_id=ORG_ID, role=role))

        session.add(Project(id=PROJECT_ID, org_id=ORG_ID, creator_id=OWNER_ID, name="Riverside Tower", country="GB"))
        await session.flush()
        session.add(ProjectMember(project_id=PROJECT_ID, email="alice@acme.dev", user_id=OWNER_ID, role="project_lead"))
        # Pending until dave signs in and links memberships
        session.add(ProjectMember(project_id=PROJECT_ID, email="dave@acme.dev", role="technical_lead"))

        session.add(Package(id=PACKAGE_ID, project_id=PROJECT_ID, name="Facade", currency="GBP"))
        await session.flush()
        for email, uid, role in [
            ("bob@acme.dev", BUYER_ID, "commercial_team"),
            ("carol@acme.dev", ENGINEER_ID, "technical_team"),
        ]:
            session.add(PackageMember(package_id=PACKAGE_ID, email=email, user_id=uid, role=role))
        for name in ("Northwall Cladding", "Glazetech", "Skyline Facades"):
            session.add(PackageContractor(package_id=PACKAGE_ID, name=name))
        for name in ("Curtain wall", "Rainscreen"):
            session.add(Asset(package_id=PACKAGE_ID, name=name))

    async with get_session_context() as session:
        result = await session.execute(select(User).where(User.id == OWNER_ID))
        owner = result.scalar_one()

    token, _ = create_jwt(owner.id, owner.email, str(ORG_ID), [str(ORG_ID)])
    print(f"Seeded org {ORG_ID} with {len(USERS)} users.")
    print(f"Owner session token ({owner.email}):\n{token}")


if __name__ == "__main__":
    asyncio.run(seed())
