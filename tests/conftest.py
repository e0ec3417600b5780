"""
Pytest configuration for the transfer server.
"""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add backend to the import path
backend_path = Path(__file__).parent.parent / "backend"
sys.path.insert(0, str(backend_path))

from api.events.services.broadcaster import EventBroadcaster  # noqa: E402
from api.transfers.repositories.blob_client import BlobClient  # noqa: E402
from api.transfers.repositories.blob_transfer_store import BlobTransferStore  # noqa: E402
from api.transfers.repositories.expiring_store import ExpiringTransferStore  # noqa: E402
from api.transfers.repositories.transfer_store import MemoryTransferStore  # noqa: E402
from api.transfers.services.registry_service import FileRegistry  # noqa: E402
from api.transfers.services.session_service import SessionService  # noqa: E402
from api.upload.repositories.file_storage import FileStorage  # noqa: E402
from config import Settings  # noqa: E402
from database import create_db_engine, create_session_factory, init_db  # noqa: E402

TTL = timedelta(minutes=30)


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store(clock):
    return ExpiringTransferStore(MemoryTransferStore(clock=clock), ttl=TTL)


@pytest.fixture
def blob_store(tmp_path, clock):
    engine = create_db_engine(f"sqlite:///{tmp_path}/blobs.db")
    init_db(engine)
    yield BlobTransferStore(BlobClient(create_session_factory(engine)), clock=clock)
    engine.dispose()


@pytest.fixture(params=["memory", "blob"])
def store(request):
    """Every contract test runs against both backends."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def file_storage(tmp_path):
    return FileStorage(tmp_path / "files")


@pytest.fixture
def broadcaster(store):
    return EventBroadcaster(store)


@pytest.fixture
def registry(store, broadcaster):
    return FileRegistry(store, broadcaster, lenient=True)


@pytest.fixture
def sessions(store, broadcaster, file_storage):
    return SessionService(store, broadcaster, file_storage, ttl=TTL)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        data_dir=tmp_path / "data",
        storage_backend="memory",
        sse_heartbeat=0,
        log_level="WARNING",
    )


@pytest.fixture
def client(settings):
    """FastAPI test client over the in-memory backend."""
    from fastapi.testclient import TestClient
    from main import create_app

    with TestClient(create_app(settings)) as test_client:
        yield test_client
