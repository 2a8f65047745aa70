"""
Seed script for JobHub.

Creates demo users and walks a few jobs through the lifecycle engine so
every status from PENDING to QUOTE_ACCEPTED has an example. Prints a
bearer token per user for trying the API.

Usage:
    python -m jobhub.scripts.seed
"""

import asyncio
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import select

from jobhub.common.enums import AssignmentResponse, JobCategory, JobPriority, UserRole
from jobhub.common.security import create_access_token
from jobhub.core.lifecycle.schemas import Actor, JobCreateData, Location, QuoteData, QuoteLineItem
from jobhub.core.lifecycle.service import JobLifecycleService
from jobhub.db.base import utcnow
from jobhub.db.models import User
from jobhub.db.session import async_session_factory

USERS = [
    ("admin@jobhub.io", "Platform Admin", UserRole.ADMIN),
    ("amara.okafor@example.com", "Amara Okafor", UserRole.CUSTOMER),
    ("daniel.reyes@example.com", "Daniel Reyes", UserRole.CUSTOMER),
    ("pipeworks@example.com", "Pipeworks Plumbing", UserRole.VENDOR),
    ("brightspark@example.com", "Bright Spark Electrical", UserRole.VENDOR),
]


async def main() -> None:
    async with async_session_factory() as session:
        # Guard: skip if already seeded (check for admin user)
        result = await session.execute(
            select(User).where(User.email == "admin@jobhub.io")
        )
        if result.scalar_one_or_none() is not None:
            print("Database already seeded -- skipping.")
            return

        users: dict[str, User] = {}
        for email, name, role in USERS:
            user = User(email=email, full_name=name, role=role.value, is_active=True)
            session.add(user)
            users[email] = user
        await session.flush()

        def actor(email: str) -> Actor:
            return Actor(id=users[email].id, role=UserRole(users[email].role))

        admin = actor("admin@jobhub.io")
        amara = actor("amara.okafor@example.com")
        daniel = actor("daniel.reyes@example.com")
        pipeworks = actor("pipeworks@example.com")
        service = JobLifecycleService(session)

        # A fresh request still waiting for a vendor
        await service.create_job(daniel, JobCreateData(
            title="Rewire garden lighting",
            description="Three outdoor lamps stopped working after the storm.",
            category=JobCategory.ELECTRICAL,
            estimated_budget=Decimal("400"),
        ))

        # A leaking sink taken through to an accepted quote
        sink = await service.create_job(amara, JobCreateData(
            title="Fix sink",
            description="Kitchen sink drips constantly and the trap is cracked.",
            category=JobCategory.PLUMBING,
            priority=JobPriority.HIGH,
            estimated_budget=Decimal("250"),
            location=Location(address="14 Harbour Road", city="Cape Town"),
        ))
        await service.assign_vendor(sink.id, pipeworks.id, admin)
        await service.respond_to_assignment(sink.id, pipeworks, AssignmentResponse.ACCEPTED)
        _, quote = await service.send_quote(sink.id, pipeworks, QuoteData(
            breakdown=[
                QuoteLineItem(item="Parts", quantity=Decimal("2"), unit_price=Decimal("15")),
                QuoteLineItem(item="Labor", quantity=Decimal("1"), unit_price=Decimal("100")),
            ],
            description="Replace trap and reseal the basin",
            valid_until=utcnow() + timedelta(days=5),
        ))
        await service.accept_quote(sink.id, quote.id, amara)

        await session.commit()

        print(f"Seeded: {len(users)} users, 2 jobs")
        for email, user in users.items():
            token = create_access_token({"sub": str(user.id)}, expires_delta=timedelta(days=30))
            print(f"  {user.role:<9} {email:<32} {token}")


if __name__ == "__main__":
    asyncio.run(main())
