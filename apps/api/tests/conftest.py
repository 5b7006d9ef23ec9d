import sys
from pathlib import Path
from uuid import UUID


def _configure_path() -> None:
    src_path = Path(__file__).resolve().parents[1] / "src"
    if src_path.exists():
        sys.path.insert(0, str(src_path))


_configure_path()

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

import bankrewards_api.models  # noqa: E402,F401  (register tables)
from bankrewards_api.app import create_app  # noqa: E402
from bankrewards_api.db.base import Base  # noqa: E402
from bankrewards_api.db.session import get_session  # noqa: E402
from bankrewards_api.domain.loyalty import CustomerTierAssignment, Points, User  # noqa: E402
from bankrewards_api.observability.loyalty import get_loyalty_store  # noqa: E402
from bankrewards_api.services.loyalty import InMemoryLoyaltyRepository, LoyaltyRepository  # noqa: E402


@pytest.fixture(autouse=True)
def reset_loyalty_store():
    store = get_loyalty_store()
    store.reset()
    yield store
    store.reset()


@pytest.fixture
def memory_repository() -> InMemoryLoyaltyRepository:
    return InMemoryLoyaltyRepository()


@pytest.fixture
def create_customer():
    """Register a customer with an explicit balance and optional tier."""

    async def _create(
        repository: LoyaltyRepository,
        *,
        username: str = "member",
        available_points: int = 0,
        tier_id: UUID | None = None,
        branch_id: UUID | None = None,
    ) -> User:
        user = await repository.add_user(
            User(
                username=username,
                email=f"{username}@example.com",
                first_name=username.title(),
                last_name="Member",
                branch_id=branch_id,
            )
        )
        await repository.add_points(
            Points(
                customer_id=user.id,
                total_points=available_points,
                available_points=available_points,
                lifetime_earned=available_points,
            )
        )
        if tier_id is not None:
            await repository.set_tier_assignment(CustomerTierAssignment(customer_id=user.id, tier_id=tier_id))
        await repository.commit()
        return user

    return _create


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def app_with_repository():
    app = create_app()
    app.state.repository_backend = "memory"
    yield app, app.state.loyalty_repository


@pytest_asyncio.fixture
async def app_with_db(session_factory):
    app = create_app()
    app.state.repository_backend = "sql"

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    try:
        yield app, session_factory
    finally:
        app.dependency_overrides.clear()
