# instastream_api/uploads.py
import logging
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional

from .errors import UploadRejected
from .utils import safe_name

logger = logging.getLogger(__name__)

ALLOWED_MIMES = frozenset({
    "video/mp4",
    "video/mpeg",
    "video/quicktime",
    "video/x-msvideo",
    "video/x-matroska",
    "video/webm",
})

CHUNK = 64 * 1024


@dataclass
class StoredUpload:
    path: Path
    filename: str
    original_name: str
    size: int


class _Capped:
    """File-like reader that refuses to hand out more than ``limit`` bytes."""

    def __init__(self, src: BinaryIO, limit: int):
        self.src = src
        self.limit = limit
        self.read_so_far = 0

    def read(self, n: int = -1) -> bytes:
        chunk = self.src.read(n)
        self.read_so_far += len(chunk)
        if self.read_so_far > self.limit:
            raise UploadRejected(f"File too large (limit {self.limit // (1024 * 1024)} MB)")
        return chunk


def save_upload(
    src: BinaryIO,
    original_name: Optional[str],
    content_type: Optional[str],
    upload_dir: Path,
    max_bytes: int,
) -> StoredUpload:
    if not original_name:
        raise UploadRejected("No video file provided")
    if (content_type or "").lower() not in ALLOWED_MIMES:
        raise UploadRejected("Invalid file type. Only video files are allowed.")

    filename = f"{uuid.uuid4()}-{safe_name(Path(original_name).name)}"
    dest = upload_dir / filename
    capped = _Capped(src, max_bytes)
    try:
        with dest.open("wb") as out:
            shutil.copyfileobj(capped, out, length=CHUNK)
    except BaseException:
        dest.unlink(missing_ok=True)
        raise
    if capped.read_so_far == 0:
        dest.unlink(missing_ok=True)
        raise UploadRejected("Uploaded file is empty")

    logger.info("Stored upload %s (%d bytes)", filename, capped.read_so_far)
    return StoredUpload(dest, filename, original_name, capped.read_so_far)
