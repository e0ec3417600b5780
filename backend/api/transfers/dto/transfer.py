"""Transfer Data Transfer Objects and the persisted record shape."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated

from fastapi import Path
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

TRANSFER_ID_PATTERN = r"^[A-Za-z0-9_-]{1,128}$"

TransferId = Annotated[str, Path(pattern=TRANSFER_ID_PATTERN)]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TransferStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not TransferStatus.OPEN


class FileMeta(CamelModel):
    name: str
    size: int
    mimetype: str
    uploaded_at: datetime = Field(default_factory=utcnow)


class Transfer(CamelModel):
    id: str
    status: TransferStatus = TransferStatus.OPEN
    files: list[FileMeta] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    version: int = 0

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "Transfer":
        return cls.model_validate_json(raw)


class CreateTransferResponse(CamelModel):
    transfer_id: str
    expires_in_sec: int | None = None


class TransferResponse(CamelModel):
    transfer_id: str
    status: TransferStatus
    files: list[FileMeta]

    @classmethod
    def from_transfer(cls, transfer: Transfer) -> "TransferResponse":
        return cls(transfer_id=transfer.id, status=transfer.status, files=transfer.files)
