"""Pytest fixtures for the videotube backend."""

from collections.abc import AsyncIterator, Iterator
from pathlib import Path
from uuid import uuid4

from alembic import command
from alembic.config import Config
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from api.deps import get_db
from app import create_app
from core.config import settings
from services.storage import AssetRef

PASSWORD = "Sup3rSecret!"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _run_alembic_migrations(database_url: str) -> None:
    """Apply Alembic migrations to the given database URL."""
    backend_dir = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(backend_dir / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(backend_dir / "alembic"))

    original_database_url = settings.database_url
    try:
        settings.database_url = database_url
        command.upgrade(alembic_cfg, "head")
    finally:
        settings.database_url = original_database_url


class FakeAssetStore:
    """In-memory stand-in for the remote asset store."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_uploads = False
        self.fail_deletes = False
        self.incomplete_uploads = False
        self.fail_prefixes: set[str] = set()

    def upload(self, local_path, *, prefix: str = "uploads") -> AssetRef:
        if self.fail_uploads or prefix in self.fail_prefixes:
            raise RuntimeError("remote store unavailable")
        path = Path(local_path)
        object_key = f"{prefix}/{uuid4().hex}{path.suffix}"
        self.objects[object_key] = path.read_bytes()
        if self.incomplete_uploads:
            return AssetRef(url="", storage_key=object_key)
        return AssetRef(url=f"https://cdn.test/{object_key}", storage_key=object_key)

    def delete(self, storage_key: str) -> None:
        if self.fail_deletes:
            raise RuntimeError("remote delete failed")
        self.deleted.append(storage_key)
        self.objects.pop(storage_key, None)


@pytest.fixture(scope="session")
def test_database_url(tmp_path_factory) -> str:
    """Create and migrate a file-backed SQLite database for tests."""
    db_dir = tmp_path_factory.mktemp("sqlite")
    db_path = db_dir / "backend-test.db"
    database_url = f"sqlite+aiosqlite:///{db_path}"
    _run_alembic_migrations(database_url)
    return database_url


@pytest_asyncio.fixture()
async def test_engine(test_database_url: str) -> AsyncIterator:
    """Create an async engine bound to the migrated SQLite test database."""
    engine = create_async_engine(
        test_database_url,
        connect_args={"check_same_thread": False},
    )
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_maker(test_engine) -> async_sessionmaker[AsyncSession]:
    """Return a session factory bound to the test engine."""
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest.fixture()
def upload_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point multipart staging at a per-test directory."""
    staging = tmp_path / "uploads"
    monkeypatch.setattr(settings, "upload_temp_dir", str(staging))
    return staging


@pytest.fixture()
def asset_store() -> FakeAssetStore:
    return FakeAssetStore()


@pytest.fixture()
def app(session_maker, asset_store: FakeAssetStore, upload_dir: Path) -> Iterator[FastAPI]:
    """Create the FastAPI app with a test database and asset store."""
    application = create_app(asset_store=asset_store)

    async def override_get_db() -> AsyncIterator[AsyncSession]:
        async with session_maker() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    yield application


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Return an HTTPX async client bound to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture(autouse=True)
async def clean_database(session_maker) -> AsyncIterator[None]:
    """Clear tables before each test to guarantee isolation."""
    async with session_maker() as session:
        for table in reversed(SQLModel.metadata.sorted_tables):
            await session.execute(table.delete())
        await session.commit()
    yield


@pytest_asyncio.fixture()
async def db_session(session_maker) -> AsyncIterator[AsyncSession]:
    """Provide a raw database session to tests."""
    async with session_maker() as session:
        yield session


def build_payload() -> dict[str, str]:
    suffix = uuid4().hex[:8]
    return {
        "full_name": "Ada Lovelace",
        "username": f"ada_{suffix}",
        "email": f"ada_{suffix}@example.com",
        "password": PASSWORD,
    }


def image_file(name: str = "avatar.png") -> tuple[str, bytes, str]:
    return (name, PNG_BYTES, "image/png")


@pytest.fixture()
def register_user(async_client: AsyncClient):
    """Register through the API and return the response body."""

    async def _register(payload: dict[str, str] | None = None, *, with_cover: bool = False) -> dict:
        data = payload or build_payload()
        files = {"avatar": image_file()}
        if with_cover:
            files["cover_image"] = image_file("cover.jpg")
        response = await async_client.post("/api/v1/auth/register", data=data, files=files)
        assert response.status_code == 201, response.text
        return response.json()

    return _register


@pytest.fixture()
def login_user(async_client: AsyncClient):
    """Log in through the API and return the response body."""

    async def _login(identifier: str, password: str = PASSWORD) -> dict:
        response = await async_client.post(
            "/api/v1/auth/login",
            json={"username": identifier, "password": password},
        )
        assert response.status_code == 200, response.text
        return response.json()

    return _login
