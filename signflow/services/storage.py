import logging
import os
import uuid
from typing import BinaryIO

from ..config import settings
from ..errors import StorageFailure

logger = logging.getLogger(__name__)

# Local storage directory for uploaded PDFs
UPLOAD_DIR = settings.upload_dir


def unique_filename(original_name: str) -> str:
    base = os.path.basename(original_name or "document.pdf")
    return f"{uuid.uuid4()}_{base}"


def save_file(file_content: BinaryIO, filename: str) -> str:
    """
    Write an uploaded file under UPLOAD_DIR.

    Args:
        file_content: File-like object containing the file data
        filename: Name of the file on disk

    Returns:
        str: Path of the stored file
    """
    os.makedirs(UPLOAD_DIR, exist_ok=True)
    file_path = os.path.join(UPLOAD_DIR, filename)
    try:
        content = file_content.read()
        with open(file_path, "wb") as f:
            f.write(content)
    except OSError as e:
        raise StorageFailure(f"Could not store file {filename}") from e
    return file_path


def read_file(file_path: str) -> bytes:
    """
    Read a stored file.

    Raises:
        FileNotFoundError: the file is gone from disk
        StorageFailure: any other I/O error
    """
    try:
        with open(file_path, "rb") as f:
            return f.read()
    except FileNotFoundError:
        raise
    except OSError as e:
        raise StorageFailure(f"Could not read file {file_path}") from e


def file_exists(file_path: str) -> bool:
    return bool(file_path) and os.path.exists(file_path)


def delete_file(file_path: str) -> bool:
    """
    Best-effort removal of a stored file.

    Returns:
        bool: True if the file was removed, False if it was missing or could not be deleted
    """
    if not file_exists(file_path):
        logger.warning("File %s not found on delete, skipping", file_path)
        return False
    try:
        os.remove(file_path)
    except OSError as e:
        logger.warning("Error deleting file %s: %s", file_path, e)
        return False
    return True
