import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import storefront.data.models  # noqa: F401
from storefront.api.deps import get_lock_service
from storefront.data.database import Base, get_db
from storefront.main import create_app
from storefront.services.lock_service import LockService


class InMemoryLockService(LockService):
    """Same locking contract as LockService, backed by a dict instead of redis."""

    def __init__(self):
        self.locks = {}

    def acquire_lock(self, resource: str, owner: str, ttl: int) -> bool:
        key = self.key(resource)
        if key in self.locks:
            return False
        self.locks[key] = owner
        return True

    def release_lock(self, resource: str, owner: str) -> bool:
        key = self.key(resource)
        if self.locks.get(key) != owner:
            return False
        del self.locks[key]
        return True


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def lock_service():
    return InMemoryLockService()


@pytest.fixture
def client(session_factory, lock_service):
    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_lock_service] = lambda: lock_service

    return TestClient(app)
