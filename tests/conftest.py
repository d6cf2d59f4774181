"""Test configuration."""
import os
from collections.abc import AsyncIterator, Callable, Iterator
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from alembic import command
from alembic.config import Config
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

# --- Default environment for the test run
os.environ.setdefault("DATABASE_URL", "sqlite:///./community_alerts_test.db")
os.environ.setdefault("ALERTS_ENV", "test")

from app.main import app  # noqa: E402
from app import db as database  # noqa: E402
from app.db import get_db  # noqa: E402
from app.models import Alert  # noqa: E402
from app.services.alert_store import insert_alert  # noqa: E402
from app.utils.time import utcnow  # noqa: E402

DB_PATH = Path("./community_alerts_test.db")
ALEMBIC_INI = Path(__file__).resolve().parents[1] / "alembic.ini"

BOGOTA = (-74.06, 4.65)
METERS_PER_DEGREE_LAT = 111_195.0


def run_migrations(url: str) -> None:
    cfg = Config(str(ALEMBIC_INI))
    cfg.set_main_option("sqlalchemy.url", url)
    command.upgrade(cfg, "head")


# --- (1) Reset the file database at session start
if DB_PATH.exists():
    DB_PATH.unlink()

engine = create_engine(
    os.environ["DATABASE_URL"],
    connect_args={"check_same_thread": False},
    future=True,
)


# pysqlite manages transactions itself; hand control back to SQLAlchemy so
# SAVEPOINTs work and service-level commits stay inside the test transaction.
@event.listens_for(engine, "connect")
def _sqlite_connect(dbapi_connection, connection_record) -> None:
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@event.listens_for(engine, "begin")
def _sqlite_begin(connection) -> None:
    connection.exec_driver_sql("BEGIN")


TestingSessionLocal = sessionmaker(
    autoflush=False,
    expire_on_commit=False,
    future=True,
    join_transaction_mode="create_savepoint",
)

# --- (2) Build the schema through Alembic only
run_migrations(os.environ["DATABASE_URL"])


@pytest.fixture(scope="session", autouse=True)
def app_engine() -> Iterator[None]:
    database.init_engine()
    yield
    database.close_engine()


@pytest.fixture
def db_session() -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture(autouse=True)
def override_db_dependency(db_session: Session) -> Iterator[None]:
    def _get_db() -> Iterator[Session]:
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
async def client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def owner_headers() -> dict[str, str]:
    return {"User-Id": "user-owner"}


@pytest.fixture
def other_headers() -> dict[str, str]:
    return {"User-Id": "user-other"}


def point_north_of(origin: tuple[float, float], meters: float) -> tuple[float, float]:
    """Return ``[lon, lat]`` roughly ``meters`` due north of ``origin``."""

    longitude, latitude = origin
    return longitude, latitude + meters / METERS_PER_DEGREE_LAT


@pytest.fixture
def make_alert(db_session: Session) -> Callable[..., Alert]:
    """Factory inserting an alert straight through the store."""

    def _factory(
        *,
        title: str = "Road blocked",
        description: str = "Fallen tree across both lanes.",
        kind: str = "traffic",
        severity: str = "medium",
        coordinates: tuple[float, float] = BOGOTA,
        creator_id: str = "user-owner",
        expires_at: datetime | None = None,
        created_at: datetime | None = None,
        **extra: Any,
    ) -> Alert:
        longitude, latitude = coordinates
        alert = insert_alert(
            db_session,
            {
                "title": title,
                "description": description,
                "kind": kind,
                "severity": severity,
                "longitude": longitude,
                "latitude": latitude,
                "creator_id": creator_id,
                "expires_at": expires_at or utcnow() + timedelta(hours=2),
                **extra,
            },
        )
        if created_at is not None:
            alert.created_at = created_at
            db_session.commit()
        return alert

    return _factory
