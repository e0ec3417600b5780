"""Component wiring — everything is built once per app from Settings."""

import logging
from dataclasses import dataclass

from fastapi import Request
from sqlalchemy.engine import Engine

from api.content.services.content_service import ContentService
from api.events.services.broadcaster import EventBroadcaster
from api.transfers.repositories.blob_client import BlobClient
from api.transfers.repositories.blob_transfer_store import BlobTransferStore
from api.transfers.repositories.expiring_store import ExpiringTransferStore
from api.transfers.repositories.transfer_store import MemoryTransferStore, TransferStore
from api.transfers.services.registry_service import FileRegistry
from api.transfers.services.session_service import SessionService
from api.upload.repositories.file_storage import FileStorage
from api.upload.services.upload_service import UploadService
from cleanup import ExpirySweeper
from config import Settings
from database import create_db_engine, create_session_factory, init_db

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    store: TransferStore
    broadcaster: EventBroadcaster
    file_storage: FileStorage
    registry: FileRegistry
    sessions: SessionService
    uploads: UploadService
    content: ContentService
    sweeper: ExpirySweeper | None = None
    engine: Engine | None = None

    async def close(self) -> None:
        if self.sweeper is not None:
            await self.sweeper.stop()
        self.broadcaster.close()
        await self.store.close()
        if self.engine is not None:
            self.engine.dispose()


def build_store(settings: Settings) -> tuple[TransferStore, Engine | None]:
    if settings.storage_backend == "memory":
        return ExpiringTransferStore(MemoryTransferStore(), settings.transfer_ttl), None

    if settings.storage_backend == "blob":
        engine = create_db_engine(settings.database_url)
        init_db(engine)
        client = BlobClient(create_session_factory(engine))
        return BlobTransferStore(client), engine

    raise ValueError(f"Unknown storage backend: {settings.storage_backend!r}")


def build_services(settings: Settings, store: TransferStore | None = None) -> Services:
    engine = None
    if store is None:
        store, engine = build_store(settings)

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    file_storage = FileStorage(settings.files_dir)
    broadcaster = EventBroadcaster(store)
    registry = FileRegistry(store, broadcaster, lenient=settings.lenient_uploads)

    sweeper = None
    if isinstance(store, ExpiringTransferStore):
        sweeper = ExpirySweeper(
            store, broadcaster, file_storage, interval=settings.sweep_interval
        )

    logger.info(
        "Using %s transfer store (expiry %s)",
        settings.storage_backend,
        "on" if sweeper else "off",
    )
    return Services(
        settings=settings,
        store=store,
        broadcaster=broadcaster,
        file_storage=file_storage,
        registry=registry,
        sessions=SessionService(store, broadcaster, file_storage, ttl=settings.transfer_ttl),
        uploads=UploadService(
            store,
            registry,
            file_storage,
            max_file_size=settings.max_file_size,
            allowed_mime_types=settings.allowed_mime_types,
        ),
        content=ContentService(store, file_storage),
        sweeper=sweeper,
        engine=engine,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
