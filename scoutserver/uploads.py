import logging
import random
import shutil
import time
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Optional

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from scoutserver.errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

URL_PREFIX = "/uploads/"
CHUNK_SIZE = 1024 * 1024


def unique_filename(original: Optional[str]) -> str:
    """`<epoch ms>-<random><ext>`, keeping only the client's extension."""
    ext = PurePosixPath(original or "").suffix
    return f"{time.time_ns() // 1_000_000}-{random.randint(0, 10**9)}{ext}"


def _write_file(source: BinaryIO, target: Path):
    try:
        with target.open("wb") as out:
            shutil.copyfileobj(source, out, CHUNK_SIZE)
    except Exception:
        target.unlink(missing_ok=True)
        raise


async def save_upload(upload_dir: Path, file: Optional[UploadFile]) -> dict:
    """Store an uploaded file and return the reference clients keep in an entry row."""
    if file is None or not file.filename:
        raise ValidationError("No file uploaded")

    upload_dir.mkdir(parents=True, exist_ok=True)
    filename = unique_filename(file.filename)
    target = upload_dir / filename
    await file.seek(0)
    try:
        await run_in_threadpool(_write_file, file.file, target)
    except OSError as e:
        logger.error("Failed to store upload %s: %s", file.filename, e)
        raise StorageError("Failed to store upload") from e

    logger.info("Stored upload %s (%s)", filename, file.filename)
    return {
        "success": True,
        "filePath": URL_PREFIX + filename,
        "filename": filename,
    }


def resolve_upload(upload_dir: Path, reference: str) -> Optional[Path]:
    """
    Map a stored reference like `/uploads/123-456.png` to a path inside upload_dir.
    Returns None for anything that is not a local upload or escapes the directory.
    """
    if not isinstance(reference, str) or not reference.startswith(URL_PREFIX):
        return None
    name = reference[len(URL_PREFIX):]
    root = upload_dir.resolve()
    candidate = (root / name).resolve()
    if candidate.parent != root:
        return None
    return candidate


def remove_upload(upload_dir: Path, reference: Optional[str]) -> bool:
    """Best-effort delete. Never raises; returns whether a file was removed."""
    path = resolve_upload(upload_dir, reference) if reference else None
    if path is None:
        return False
    try:
        path.unlink()
    except FileNotFoundError:
        logger.warning("Referenced upload %s is already gone", reference)
        return False
    except OSError as e:
        logger.warning("Failed to remove upload %s: %s", reference, e)
        return False
    logger.info("Removed upload %s", reference)
    return True
