# utils/storage.py
import base64
import binascii
import re
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from settings.config import settings
from utils.logger import get_logger

logger = get_logger("Blob_Storage")

DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w/+.-]+);base64,(?P<data>.+)$", re.DOTALL)
EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "application/pdf": ".pdf",
}


class BlobStorage(ABC):
    """Interface for storing uploaded files. Implementations return an opaque key."""

    @abstractmethod
    def save(self, data: bytes, prefix: str, extension: str = "") -> str:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class LocalDiskStorage(BlobStorage):
    def __init__(self, root: str):
        self.root = Path(root)

    def save(self, data: bytes, prefix: str, extension: str = "") -> str:
        self.root.mkdir(parents=True, exist_ok=True)
        key = f"{prefix}-{uuid.uuid4().hex}{extension}"
        (self.root / key).write_bytes(data)
        logger.info("Blob stored", extra={"key": key, "size": len(data)})
        return key

    def delete(self, key: str) -> None:
        path = self.root / key
        if path.exists():
            path.unlink()
            logger.info("Blob deleted", extra={"key": key})


def decode_upload(encoded: str) -> tuple[bytes, str]:
    """
    Accepts a data URL (data:image/png;base64,...) or a bare base64 string.
    Returns raw bytes and a file extension. Raises ValueError on bad input.
    """
    extension = ""
    payload = encoded.strip()
    match = DATA_URL_RE.match(payload)
    if match:
        extension = EXTENSIONS.get(match.group("mime"), "")
        payload = match.group("data")
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValueError("File is not valid base64")
    if not data:
        raise ValueError("File is empty")
    return data, extension


_storage: BlobStorage = LocalDiskStorage(settings.UPLOAD_DIR)

def get_storage() -> BlobStorage:
    return _storage
