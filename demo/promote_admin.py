#!/usr/bin/env python3
"""
Promote a user to a staff role. Run on the server.

There is no API endpoint for granting admin; staff roles are an operator
action.

Usage:
    python demo/promote_admin.py admin@toursdemo.com
    python demo/promote_admin.py lea.guide@toursdemo.com --role lead-guide
"""
import argparse
import asyncio

from sqlalchemy import update
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from tours_api.config import settings
from tours_api.models.user import User, UserRole


async def promote(email: str, role: str = "admin") -> int:
    engine = create_async_engine(settings.DATABASE_URL)
    sf = async_sessionmaker(engine, class_=AsyncSession)
    async with sf() as s:
        r = await s.execute(
            update(User)
            .where(User.email == email.strip().lower())
            .values(role=UserRole(role))
        )
        await s.commit()
    await engine.dispose()
    return r.rowcount


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("email")
    parser.add_argument(
        "--role", default="admin", choices=[r.value for r in UserRole],
    )
    args = parser.parse_args()
    print(f"Rows updated: {asyncio.run(promote(args.email, args.role))}")
