#!/usr/bin/env python3
"""
Seed the Artgram branches and optionally generate their first week of sessions.
"""

import asyncio
import sys
from datetime import date, timedelta

from sqlalchemy import select

from artgram_booking_platform.database import init_database, close_database, get_db_session
from artgram_booking_platform.models import Activity, Branch
from artgram_booking_platform.schemas.common import Actor, ActorRole
from artgram_booking_platform.services.session_generation_service import SessionGenerationService

BRANCHES = [
    {"name": "Artgram Hyderabad", "location": "Hyderabad", "allow_slime": True, "allow_tufting": True},
    {"name": "Artgram Vijayawada", "location": "Vijayawada", "allow_slime": True, "allow_tufting": False},
    {"name": "Artgram Bangalore", "location": "Bangalore", "allow_slime": True, "allow_tufting": True},
]

SEED_ACTOR = Actor(id="seed-script", role=ActorRole.ADMIN, name="Seed script")


async def seed_branches(generate_days: int = 0):
    """Create missing branches, then generate sessions for the next days."""
    await init_database()

    try:
        async with get_db_session() as db:
            for spec in BRANCHES:
                result = await db.execute(select(Branch).where(Branch.name == spec["name"]))
                branch = result.scalar_one_or_none()

                if branch:
                    print(f"= {branch.name} already exists ({branch.id})")
                else:
                    branch = Branch(**spec)
                    db.add(branch)
                    await db.flush()
                    print(f"+ Created {branch.name} ({branch.id})")

                if generate_days <= 0:
                    continue

                start = date.today()
                dates = [(start + timedelta(days=offset)).isoformat() for offset in range(generate_days)]
                generator = SessionGenerationService(db)

                for activity in Activity:
                    if not branch.allows_activity(activity):
                        continue
                    report = await generator.ensure_sessions_for_dates(
                        branch.id, dates, activity, SEED_ACTOR
                    )
                    print(
                        f"  {activity.value}: {report.created} sessions created, "
                        f"{len(report.skipped_existing)} dates already seeded, "
                        f"{len(report.skipped_closed)} closed"
                    )
    finally:
        await close_database()


if __name__ == "__main__":
    days = int(sys.argv[1]) if len(sys.argv) > 1 else 0
    print("Usage: python seed_branches.py [days-of-sessions-to-generate]")
    print()

    asyncio.run(seed_branches(days))
