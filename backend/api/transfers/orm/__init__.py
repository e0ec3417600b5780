from api.transfers.orm.blob_model import BlobModel

__all__ = ["BlobModel"]
