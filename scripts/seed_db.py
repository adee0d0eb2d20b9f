"""Seed a development database with specialties, professionals and a patient."""

import asyncio
from decimal import Decimal

from sqlalchemy import insert, select

from telemed.core.security import create_access_token
from telemed.database import AsyncSessionLocal
from telemed.models import (
    patients,
    professional_specialties,
    professionals,
    specialties,
    users,
)

SPECIALTIES = ["General Practice", "Cardiology", "Dermatology", "Psychiatry", "Pediatrics"]

PROFESSIONALS = [
    {
        "email": "ana.souza@example.com",
        "full_name": "Dr. Ana Souza",
        "license_number": "CRM-100001",
        "price": Decimal("150.00"),
        "specialties": ["General Practice", "Pediatrics"],
    },
    {
        "email": "bruno.lima@example.com",
        "full_name": "Dr. Bruno Lima",
        "license_number": "CRM-100002",
        "price": Decimal("220.00"),
        "specialties": ["Cardiology"],
    },
]

PATIENT = {"email": "patient@example.com", "full_name": "Carla Mendes", "phone": "+5511999990000"}


async def seed() -> None:
    """Insert demo rows, skipping anything that already exists."""
    async with AsyncSessionLocal() as db:
        existing = await db.execute(select(users.c.email))
        known_emails = set(existing.scalars().all())

        for name in SPECIALTIES:
            found = await db.execute(select(specialties.c.id).where(specialties.c.name == name))
            if found.scalar() is None:
                await db.execute(insert(specialties).values(name=name))

        specialty_ids = dict(
            (await db.execute(select(specialties.c.name, specialties.c.id))).tuples().all()
        )

        for data in PROFESSIONALS:
            if data["email"] in known_emails:
                continue
            user_id = (
                await db.execute(
                    insert(users)
                    .values(email=data["email"], full_name=data["full_name"], role="PROFESSIONAL")
                    .returning(users.c.id)
                )
            ).scalar_one()
            professional_id = (
                await db.execute(
                    insert(professionals)
                    .values(
                        user_id=user_id,
                        full_name=data["full_name"],
                        license_number=data["license_number"],
                        price=data["price"],
                    )
                    .returning(professionals.c.id)
                )
            ).scalar_one()
            for name in data["specialties"]:
                await db.execute(
                    insert(professional_specialties).values(
                        professional_id=professional_id,
                        specialty_id=specialty_ids[name],
                    )
                )
            print(f"✓ Professional {data['full_name']} ({professional_id})")

        if PATIENT["email"] not in known_emails:
            user_id = (
                await db.execute(
                    insert(users)
                    .values(email=PATIENT["email"], full_name=PATIENT["full_name"], role="PATIENT")
                    .returning(users.c.id)
                )
            ).scalar_one()
            await db.execute(
                insert(patients).values(
                    user_id=user_id,
                    full_name=PATIENT["full_name"],
                    phone=PATIENT["phone"],
                )
            )
            print(f"✓ Patient {PATIENT['full_name']}")
            print(f"  Bearer token: {create_access_token(user_id)}")

        await db.commit()
        print("✓ Database seeded successfully!")


if __name__ == "__main__":
    asyncio.run(seed())
