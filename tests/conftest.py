"""
Pytest configuration and fixtures for talent import tests.

Stores run against an in-memory SQLite database shared through a StaticPool,
so every session opened by a test sees the same tables.
"""

import os

# The API lifespan must not try to reach the configured database.
os.environ.setdefault("SKIP_DB_INIT", "1")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from talent_import.db.models import Client
from talent_import.db.session import create_tables
from talent_import.domain.imports.row_transformer import TenantContext
from talent_import.domain.imports.store import SqlAlchemyEntityStore
from talent_import.domain.uploads.uploaded_files import UploadStore


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def store(session_factory):
    return SqlAlchemyEntityStore(session_factory)


@pytest.fixture
def context():
    return TenantContext(tenant_id="tenant-1", user_id="user-1")


@pytest.fixture
def acme_client(session_factory, context):
    """A client named "Acme Corp" owned by the test tenant."""
    with session_factory() as session:
        client = Client(tenant_id=context.tenant_id, name="Acme Corp", created_by_id=context.user_id)
        session.add(client)
        session.commit()
        return client.id


@pytest.fixture
def uploads(tmp_path):
    return UploadStore(base_dir=str(tmp_path / "uploads"), max_size_mb=1)
