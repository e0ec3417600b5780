"""Event payloads pushed to transfer subscribers."""

from typing import Literal, Union

from pydantic import BaseModel

from api.transfers.dto.transfer import FileMeta, TransferStatus


class _Event(BaseModel):
    def payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class StatusEvent(_Event):
    type: Literal["status"] = "status"
    status: TransferStatus


class FileEvent(_Event):
    type: Literal["file"] = "file"
    file: FileMeta


class ClosedEvent(_Event):
    type: Literal["closed"] = "closed"


class CancelledEvent(_Event):
    type: Literal["cancelled"] = "cancelled"


class FilesDeletedEvent(_Event):
    type: Literal["files_deleted"] = "files_deleted"


TransferEvent = Union[StatusEvent, FileEvent, ClosedEvent, CancelledEvent, FilesDeletedEvent]
