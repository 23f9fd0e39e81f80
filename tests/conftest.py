import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from journal.core.config import Settings
from journal.core.database import Database
from journal.core.locks import OwnerLock
from journal.main import create_app
from journal.services.event_store import EventStore

ADMIN = "admin-1"


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'journal.db'}",
        create_schema_on_startup=True,
        use_redis_locks=False,
        timezone="UTC",
        admin_users=ADMIN,
        demo_parent_count=3,
        demo_subs_per_parent=2,
        demo_notes_per_event=1,
    )


@pytest_asyncio.fixture
async def database(test_settings):
    db = Database(test_settings.database_url)
    await db.connect(create_schema=True)
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def session(database):
    async with database.session() as s:
        yield s


@pytest_asyncio.fixture
async def owner_lock():
    lock = OwnerLock("redis://localhost:6379/0", timeout=5, use_redis=False)
    await lock.connect()
    yield lock
    await lock.close()


@pytest.fixture
def store(session, owner_lock):
    return EventStore(session, lock=owner_lock)


@pytest_asyncio.fixture
async def app(test_settings):
    application = create_app(test_settings)
    # ASGITransport does not run lifespan events
    async with application.router.lifespan_context(application):
        yield application


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
