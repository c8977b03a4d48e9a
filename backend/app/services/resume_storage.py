"""
Resume files on local disk under UPLOAD_DIR.

Writes are awaited by the request that uploads; deletes are best-effort and
never raise, so a missing file cannot abort a cascade.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from fastapi import UploadFile

from .. import config

logger = logging.getLogger(__name__)

ALLOWED_RESUME_EXTENSIONS = {".pdf", ".docx"}
CHUNK_SIZE = 1024 * 1024


class ResumeTooLarge(Exception):
    pass


@dataclass
class RemovalReport:
    removed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def upload_dir() -> Path:
    path = Path(config.UPLOAD_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def resume_path(filename: str) -> Path:
    # Stored names never contain separators; guard anyway.
    return upload_dir() / Path(filename).name


async def store_resume(file: UploadFile, filename: str, *, max_bytes: int) -> int:
    """Stream `file` to UPLOAD_DIR/filename. Returns the number of bytes written."""
    dest = resume_path(filename)
    size = 0
    try:
        with open(dest, "wb") as out:
            while True:
                chunk = await file.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_bytes:
                    raise ResumeTooLarge(filename)
                out.write(chunk)
    except BaseException:
        remove_resume(filename)
        raise
    finally:
        await file.close()
    return size


def remove_resume(filename: str) -> bool:
    try:
        resume_path(filename).unlink()
        return True
    except FileNotFoundError:
        logger.warning("Resume %s already missing from %s", filename, config.UPLOAD_DIR)
        return False
    except OSError as e:
        logger.error("Failed to delete resume %s: %s", filename, e)
        return False


def remove_resumes(filenames: Iterable[str]) -> RemovalReport:
    report = RemovalReport()
    for name in filenames:
        if remove_resume(name):
            report.removed.append(name)
        else:
            report.failed.append(name)
    return report
