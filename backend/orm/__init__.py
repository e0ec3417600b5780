"""Central ORM module — imports all models for metadata discovery."""

from api.transfers.orm import BlobModel

__all__ = [
    "BlobModel",
]
