from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import BinaryIO

from ..config import get_public_dir, get_qiniu_settings
from .exceptions import ServiceError, UploadRejected

logger = logging.getLogger(__name__)


def object_storage_configured() -> bool:
    return all(get_qiniu_settings().values())


def save_upload(file_name: str, data: BinaryIO, public_dir: Path | None = None) -> dict:
    """Write an uploaded file below the public directory.

    Only used when object storage is not configured; clients are expected to
    upload there directly otherwise.
    """
    if object_storage_configured():
        raise UploadRejected("Object storage is configured, upload files there")
    name = Path(file_name or "").name
    if not name or name in (".", ".."):
        raise UploadRejected("Invalid file name")

    root = public_dir or get_public_dir()
    root.mkdir(parents=True, exist_ok=True)
    try:
        with open(root / name, "wb") as buffer:
            shutil.copyfileobj(data, buffer)
    except OSError as exc:
        logger.error("Upload of %s failed: %s", name, exc)
        raise ServiceError(f"Upload failed: {exc}", 500) from exc
    return {"url": f"/{name}"}
