"""Blob client — durable key/value blobs kept in a SQL table.

Calls are blocking; async callers run them through a thread pool.
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from api.transfers.orm.blob_model import BlobModel
from errors import StorageError, VersionConflictError


@dataclass(frozen=True)
class BlobMeta:
    key: str
    size: int
    version: int
    content_type: str
    updated_at: datetime | None = None


@dataclass(frozen=True)
class Blob:
    meta: BlobMeta
    content: str


def _model_to_meta(model: BlobModel) -> BlobMeta:
    return BlobMeta(
        key=model.key,
        size=model.size or 0,
        version=model.version,
        content_type=model.content_type,
        updated_at=model.updated_at,
    )


class BlobClient:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def head(self, key: str) -> BlobMeta | None:
        """Metadata lookup; None when the key does not exist."""
        try:
            with self._session_factory() as session:
                model = session.get(BlobModel, key)
                return _model_to_meta(model) if model else None
        except SQLAlchemyError as e:
            raise StorageError(f"Blob head failed for {key}: {e}") from e

    def fetch(self, key: str) -> Blob | None:
        try:
            with self._session_factory() as session:
                model = session.get(BlobModel, key)
                if not model:
                    return None
                return Blob(meta=_model_to_meta(model), content=model.content)
        except SQLAlchemyError as e:
            raise StorageError(f"Blob fetch failed for {key}: {e}") from e

    def put(
        self,
        key: str,
        content: str,
        content_type: str = "application/json",
        if_version: int | None = None,
    ) -> int:
        """Write a blob and return its new version.

        ``if_version=0`` only creates; a positive value only replaces that
        exact version; None overwrites unconditionally.
        """
        size = len(content.encode())
        try:
            with self._session_factory() as session:
                if if_version == 0:
                    session.add(
                        BlobModel(
                            key=key,
                            content=content,
                            content_type=content_type,
                            size=size,
                            version=1,
                        )
                    )
                    try:
                        session.commit()
                    except IntegrityError:
                        session.rollback()
                        existing = session.get(BlobModel, key)
                        raise VersionConflictError(key, 0, existing.version if existing else 0)
                    return 1

                if if_version is not None:
                    updated = (
                        session.query(BlobModel)
                        .filter_by(key=key, version=if_version)
                        .update(
                            {
                                BlobModel.content: content,
                                BlobModel.content_type: content_type,
                                BlobModel.size: size,
                                BlobModel.version: if_version + 1,
                            },
                            synchronize_session=False,
                        )
                    )
                    session.commit()
                    if updated == 0:
                        existing = session.get(BlobModel, key)
                        raise VersionConflictError(
                            key, if_version, existing.version if existing else 0
                        )
                    return if_version + 1

                model = session.get(BlobModel, key)
                if model:
                    model.content = content
                    model.content_type = content_type
                    model.size = size
                    model.version = model.version + 1
                else:
                    model = BlobModel(
                        key=key,
                        content=content,
                        content_type=content_type,
                        size=size,
                        version=1,
                    )
                    session.add(model)
                session.commit()
                return model.version
        except SQLAlchemyError as e:
            raise StorageError(f"Blob put failed for {key}: {e}") from e

    def delete(self, key: str) -> bool:
        try:
            with self._session_factory() as session:
                model = session.get(BlobModel, key)
                if not model:
                    return False
                session.delete(model)
                session.commit()
                return True
        except SQLAlchemyError as e:
            raise StorageError(f"Blob delete failed for {key}: {e}") from e
