"""Local disk storage for uploaded hookup photos."""

import random
import time
from pathlib import Path

import aiofiles
import structlog
from starlette.datastructures import UploadFile

logger = structlog.get_logger("hookups.storage")

CHUNK_SIZE = 64 * 1024


def generate_filename(prefix: str, extension: str = "jpeg") -> str:
    """Return ``<prefix>--<epoch-ms><1-4 digit random>.<extension>``.

    The extension is fixed by the caller, whatever the uploaded content is.
    """
    epoch_ms = int(time.time() * 1000)
    suffix = random.randint(1, 9999)
    return f"{prefix}--{epoch_ms}{suffix}.{extension}"


def ensure_directory(directory: str | Path) -> Path:
    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)
    return path


async def save_upload(upload: UploadFile, directory: str | Path, filename: str) -> Path:
    """Stream an upload into ``directory/filename`` and return the path.

    Both the destination file and the upload are closed on every path.
    """
    destination = ensure_directory(directory) / filename
    size = 0
    try:
        async with aiofiles.open(destination, "wb") as out:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                await out.write(chunk)
                size += len(chunk)
    finally:
        await upload.close()

    logger.info("upload_saved", path=str(destination), size_bytes=size)
    return destination


def delete_file(directory: str | Path, filename: str) -> None:
    """Remove a stored file; missing files are ignored."""
    (Path(directory) / filename).unlink(missing_ok=True)
