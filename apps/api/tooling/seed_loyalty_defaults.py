"""Seed the demo loyalty catalogue into the API database."""

from __future__ import annotations

import asyncio

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from bankrewards_api.core.settings import settings
from bankrewards_api.services.loyalty import CustomerLockRegistry, SqlAlchemyLoyaltyRepository, seed_defaults


async def main() -> None:
    engine = create_async_engine(settings.database_url, future=True)
    session_factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        async with session_factory() as session:
            repository = SqlAlchemyLoyaltyRepository(session, locks=CustomerLockRegistry())
            created = await seed_defaults(repository)
        print("Demo loyalty data ready ✅" if created else "Demo loyalty data already present")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
