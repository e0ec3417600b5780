"""Application configuration."""

import os
import re
from datetime import timedelta
from pathlib import Path

from pydantic import BaseModel

PDF_MIME = "application/pdf"
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def parse_duration(value: str) -> timedelta:
    """Parse duration string like '30m', '2h', '45s' or plain seconds."""
    match = re.match(r"^(\d+)([smhd]?)$", value.strip().lower())
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")

    amount = int(match.group(1))
    unit = match.group(2) or "s"

    deltas = {
        "s": timedelta(seconds=amount),
        "m": timedelta(minutes=amount),
        "h": timedelta(hours=amount),
        "d": timedelta(days=amount),
    }

    return deltas[unit]


def parse_size(size_str: str) -> int:
    """Parse size string like '100MB', '1GB' into bytes."""
    if not size_str:
        return 0

    match = re.match(r"^(\d+(?:\.\d+)?)\s*(B|KB|MB|GB|TB)?$", size_str.strip().upper())
    if not match:
        raise ValueError(f"Invalid size: {size_str!r}")

    value = float(match.group(1))
    unit = match.group(2) or "B"

    multipliers = {
        "B": 1,
        "KB": 1024,
        "MB": 1024**2,
        "GB": 1024**3,
        "TB": 1024**4,
    }

    return int(value * multipliers[unit])


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


DATA_DIR = Path(os.environ.get("DATA_DIR", str(Path(__file__).parent.parent / "data")))

HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "3000"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# Storage: "memory" (TTL-swept) or "blob" (durable, no TTL)
STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "memory").strip().lower()
BLOB_DATABASE_URL = os.environ.get("BLOB_DATABASE_URL", "").strip()

TRANSFER_TTL = parse_duration(os.environ.get("TRANSFER_TTL", "30m"))
SWEEP_INTERVAL = parse_duration(os.environ.get("SWEEP_INTERVAL", "5m"))

MAX_FILE_SIZE = parse_size(os.environ.get("MAX_FILE_SIZE", "100MB"))
ALLOWED_MIME_TYPES = tuple(
    m.strip()
    for m in os.environ.get("ALLOWED_MIME_TYPES", f"{PDF_MIME},{XLSX_MIME}").split(",")
    if m.strip()
)

# Uploads to an unknown transfer id create it instead of returning 410
LENIENT_UPLOADS = _env_bool("LENIENT_UPLOADS", False)

SSE_HEARTBEAT = float(os.environ.get("SSE_HEARTBEAT", "15"))


class Settings(BaseModel):
    data_dir: Path = DATA_DIR
    host: str = HOST
    port: int = PORT
    log_level: str = LOG_LEVEL
    storage_backend: str = STORAGE_BACKEND
    blob_database_url: str = BLOB_DATABASE_URL
    transfer_ttl: timedelta = TRANSFER_TTL
    sweep_interval: timedelta = SWEEP_INTERVAL
    max_file_size: int = MAX_FILE_SIZE
    allowed_mime_types: tuple[str, ...] = ALLOWED_MIME_TYPES
    lenient_uploads: bool = LENIENT_UPLOADS
    sse_heartbeat: float = SSE_HEARTBEAT

    @property
    def files_dir(self) -> Path:
        return self.data_dir / "files"

    @property
    def database_url(self) -> str:
        return self.blob_database_url or f"sqlite:///{self.data_dir}/transfers.db"
