import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "true")

import uuid

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.db import Base
from app.models.profile import Profile
from app.services.caller_session import CallerSession
from app.services.file_transfers import FileTransfers, StorageKeyClock
from app.services.object_storage import S3StorageService
from tests.mocks import FakeS3Client


@pytest.fixture()
def engine():
    database_url = os.getenv("TEST_DATABASE_URL")
    if database_url:
        # Use PostgreSQL for tests (recommended)
        engine = create_engine(database_url)
    else:
        engine = create_engine(
            "sqlite+pysqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def _unique_email() -> str:
    return f"test-{uuid.uuid4().hex}@example.com"


@pytest.fixture()
def sender(db_session):
    profile = Profile(name="Sam Sender", email=_unique_email())
    db_session.add(profile)
    db_session.commit()
    db_session.refresh(profile)
    return profile


@pytest.fixture()
def caller(sender):
    return CallerSession(principal_id=sender.id, email=sender.email, name=sender.name)


@pytest.fixture()
def fake_s3():
    return FakeS3Client()


@pytest.fixture()
def storage(fake_s3):
    return S3StorageService(
        "file-transfers",
        "http://minio:9000",
        "a",
        "b",
        "us-east-1",
        public_base_url="https://files.example.com",
        client=fake_s3,
    )


@pytest.fixture()
def cleanup_calls(storage):
    calls: list[str] = []

    def _cleanup(key: str):
        calls.append(key)
        storage.delete(key)

    _cleanup.calls = calls
    return _cleanup


@pytest.fixture()
def transfers(storage, cleanup_calls):
    return FileTransfers(storage=storage, cleanup=cleanup_calls, clock=StorageKeyClock())
