import os

import pytest
from httpx import ASGITransport, AsyncClient

from crisp_fota.config import Settings
from crisp_fota.database import create_engine, create_session_factory, create_tables
from crisp_fota.main import create_app


@pytest.fixture
def make_settings(tmp_path):
    """Build isolated settings: temp SQLite database and temp blob directory."""

    def _make(**overrides) -> Settings:
        values = {
            "database_url": f"sqlite+aiosqlite:///{tmp_path / 'fota.db'}",
            "storage_type": "local",
            "local_storage_path": str(tmp_path / "blobs"),
            "admin_api_token": "",
            "aws_access_key_id": "",
            "aws_secret_access_key": "",
            "public_base_url": "",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings()


@pytest.fixture
async def app(settings):
    app = create_app(settings)
    async with app.router.lifespan_context(app):
        yield app


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'registry.db'}")
    await create_tables(engine)
    session_factory = create_session_factory(engine)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def firmware_bytes() -> bytes:
    return os.urandom(1024)
