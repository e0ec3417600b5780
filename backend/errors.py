"""Domain errors raised by the transfer core and translated by controllers."""


class TransferError(Exception):
    """Base class for transfer failures."""

    code = "transfer_error"


class NotFoundError(TransferError):
    code = "not_found"

    def __init__(self, transfer_id: str, filename: str | None = None):
        if filename:
            super().__init__(f"File {filename} not found in transfer {transfer_id}")
        else:
            super().__init__(f"Transfer not found: {transfer_id}")
        self.transfer_id = transfer_id
        self.filename = filename


class NotOpenError(TransferError):
    """Mutation attempted on a closed, cancelled, or (strictly) absent transfer."""

    code = "not_open"

    def __init__(self, transfer_id: str, status: str | None = None):
        detail = status or "absent"
        super().__init__(f"Transfer {transfer_id} is not open ({detail})")
        self.transfer_id = transfer_id
        self.status = status


class PayloadRejectedError(TransferError):
    code = "payload_rejected"

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class StorageError(TransferError):
    code = "storage_failure"


class VersionConflictError(StorageError):
    """Optimistic save lost against a concurrent writer."""

    code = "version_conflict"

    def __init__(self, key: str, expected: int | None, actual: int):
        super().__init__(f"Version conflict on {key}: expected {expected}, found {actual}")
        self.key = key
        self.expected = expected
        self.actual = actual


class ParseError(TransferError):
    code = "parse_failure"
