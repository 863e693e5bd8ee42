"""
Merit Badge Counselor Backend — Upload Gate
============================================

What:  Accepts or rejects a batch of certification uploads, stages accepted
       files on disk, and later promotes or discards them.
Why:   Files must never outlive a failed submission, and must never land in
       the upload directory before the form itself has been validated.
How:   Two phases around the database transaction:
           check + stage  → before the writer runs (files go to .staging/)
           promote        → after commit (move into the upload directory)
           discard        → on any failure path (delete staged files)
Who:   Called by ApplicationService.submit().

Batch Policy (whole batch is rejected on any violation):
    1. Count:     more than MAX_FILES files
    2. Extension: any file with a denylisted executable/script extension
    3. Size:      summed size of all files above MAX_FILE_SIZE
                  (declared sizes checked up front, actual bytes re-checked
                  while streaming to disk)

Stored names:
    <epoch millis>-<9-digit random>-<sanitized original name>
    e.g. 1729350000123-482915730-First_Aid_card.pdf
"""

import logging
import os
import re
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Sequence

import aiofiles
import aiofiles.os

from counselor.config import settings
from counselor.exceptions import FileStorageError, UploadRejectedError

logger = logging.getLogger(__name__)

# ── Denied File Types ─────────────────────────────────────────────────────
# Executables and scripts; compared case-insensitively against the last suffix
FORBIDDEN_EXTENSIONS = {
    ".exe",
    ".bat",
    ".cmd",
    ".com",
    ".msi",
    ".scr",
    ".js",
    ".vbs",
    ".sh",
}

STAGING_DIRNAME = ".staging"

# Read uploads in 1MB chunks so large certificates never sit fully in memory
CHUNK_SIZE = 1024 * 1024

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")

# Stored names must fit NAME_MAX (255 bytes) after the 24-char
# "<millis>-<random>-" prefix; sanitized names are ASCII so chars == bytes
MAX_SANITIZED_LENGTH = 200

# Width of certifications.filename
MAX_ORIGINAL_NAME_LENGTH = 255

# Suffixes longer than this are not treated as an extension worth keeping
_MAX_KEPT_EXTENSION = 16


def _truncate_keeping_extension(name: str, limit: int) -> str:
    if len(name) <= limit:
        return name
    stem, ext = os.path.splitext(name)
    if len(ext) > _MAX_KEPT_EXTENSION:
        stem, ext = name, ""
    return stem[: limit - len(ext)] + ext


@dataclass
class StoredFile:
    """
    One accepted upload.

    `filepath` is where the file lives after promotion and is what the
    certifications table records; `staged_path` is where it waits until
    the transaction outcome is known.
    """
    filename: str
    filepath: str
    size: int
    staged_path: str


class UploadGate:
    """
    Validation/persistence boundary for certification uploads.

    Directory Structure:
        public/uploads/
        ├── .staging/
        │   └── 1729350000123-482915730-card.pdf   (waiting for commit)
        └── 1729349999001-000123456-resume.docx     (promoted)
    """

    def __init__(
        self,
        upload_dir: Optional[str] = None,
        max_files: Optional[int] = None,
        max_total_size: Optional[int] = None,
    ):
        self.upload_dir = Path(upload_dir or settings.upload_dir).resolve()
        self.staging_dir = self.upload_dir / STAGING_DIRNAME
        self.max_files = settings.max_files if max_files is None else max_files
        self.max_total_size = (
            settings.max_file_size if max_total_size is None else max_total_size
        )

    # ── Policy checks ─────────────────────────────────────────────────────

    @staticmethod
    def filter_uploads(uploads: Optional[Sequence[Any]]) -> List[Any]:
        """
        Drop empty file parts.

        Browsers post a nameless, zero-byte part when no file was chosen;
        it is not an upload and must not count toward the limit.
        """
        return [upload for upload in uploads or [] if getattr(upload, "filename", None)]

    def validate_count(self, uploads: Sequence[Any]) -> None:
        if len(uploads) > self.max_files:
            raise UploadRejectedError(
                message=f"Too many files. Maximum {self.max_files} files allowed.",
                context={"count": len(uploads), "max_files": self.max_files},
            )

    def validate_extension(self, filename: str) -> str:
        """
        Reject denylisted extensions (case-insensitive).

        Returns: Normalized extension (lowercase with dot, may be empty).
        """
        ext = Path(filename).suffix.lower()
        if ext in FORBIDDEN_EXTENSIONS:
            raise UploadRejectedError(
                message=f"File type {ext} is not allowed for security reasons",
                context={"filename": filename, "extension": ext},
            )
        return ext

    def validate_total_size(self, total: int) -> None:
        if total > self.max_total_size:
            max_mb = self.max_total_size / (1024 * 1024)
            raise UploadRejectedError(
                message=(
                    f"Total file size ({total / (1024 * 1024):.2f} MB) exceeds "
                    f"the maximum limit of {max_mb:.0f} MB."
                ),
                context={"total_size": total, "max_total_size": self.max_total_size},
            )

    @staticmethod
    def declared_size(upload: Any) -> int:
        """
        Size the client declared, falling back to the spooled file length.

        Starlette fills UploadFile.size from the parsed part; older clients
        or hand-built uploads may leave it None.
        """
        size = getattr(upload, "size", None)
        if size is not None:
            return int(size)
        fileobj = upload.file
        position = fileobj.tell()
        fileobj.seek(0, os.SEEK_END)
        size = fileobj.tell()
        fileobj.seek(position)
        return size

    def check(self, uploads: Sequence[Any]) -> None:
        """Run every batch policy check without touching the disk."""
        self.validate_count(uploads)
        for upload in uploads:
            self.validate_extension(upload.filename)
        self.validate_total_size(sum(self.declared_size(u) for u in uploads))

    # ── Naming ────────────────────────────────────────────────────────────

    @staticmethod
    def sanitize_filename(filename: str) -> str:
        """
        Strip directory parts, replace anything outside [A-Za-z0-9._-] and
        cap the length at MAX_SANITIZED_LENGTH, keeping the extension.
        """
        base = filename.replace("\\", "/").rsplit("/", 1)[-1]
        cleaned = _UNSAFE_CHARS.sub("_", base).lstrip(".")
        return _truncate_keeping_extension(cleaned, MAX_SANITIZED_LENGTH) or "upload"

    @staticmethod
    def original_name(filename: str) -> str:
        """Client filename as recorded in certifications.filename."""
        return _truncate_keeping_extension(filename, MAX_ORIGINAL_NAME_LENGTH)

    def _generate_stored_name(self, filename: str) -> str:
        millis = int(time.time() * 1000)
        suffix = secrets.randbelow(1_000_000_000)
        return f"{millis}-{suffix:09d}-{self.sanitize_filename(filename)}"

    # ── Disk phases ───────────────────────────────────────────────────────

    async def stage(self, uploads: Sequence[Any]) -> List[StoredFile]:
        """
        Check the batch, then stream every file into the staging directory.

        Returns one StoredFile per upload, in upload order.

        Raises:
            UploadRejectedError: policy violation (nothing left on disk)
            FileStorageError:    I/O failure (nothing left on disk)
        """
        self.check(uploads)
        if not uploads:
            return []

        staged: List[StoredFile] = []
        total = 0
        try:
            self.staging_dir.mkdir(parents=True, exist_ok=True)
            for upload in uploads:
                stored_name = self._generate_stored_name(upload.filename)
                staged_path = self.staging_dir / stored_name
                final_path = self.upload_dir / stored_name

                size = 0
                stored = StoredFile(
                    filename=self.original_name(upload.filename),
                    filepath=str(final_path),
                    size=0,
                    staged_path=str(staged_path),
                )
                staged.append(stored)

                async with aiofiles.open(staged_path, "wb") as f:
                    while True:
                        chunk = await upload.read(CHUNK_SIZE)
                        if not chunk:
                            break
                        size += len(chunk)
                        # Declared sizes can understate; enforce on real bytes
                        self.validate_total_size(total + size)
                        await f.write(chunk)

                stored.size = size
                total += size
                logger.info("File staged: %s (%d bytes)", stored_name, size)

        except UploadRejectedError:
            await self.discard(staged)
            raise
        except OSError as e:
            logger.error("Failed to stage upload in %s: %s", self.staging_dir, str(e))
            await self.discard(staged)
            raise FileStorageError(
                message="Failed to save uploaded files. Please try again.",
                context={"staging_dir": str(self.staging_dir), "os_error": str(e)},
            )

        return staged

    async def promote(self, stored_files: Sequence[StoredFile]) -> None:
        """
        Move staged files to their final path once the transaction committed.

        The application already exists at this point, so a failed move is
        logged and the file stays in staging for manual recovery.
        """
        if not stored_files:
            return
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        for stored in stored_files:
            try:
                await aiofiles.os.replace(stored.staged_path, stored.filepath)
            except OSError as e:
                logger.error(
                    "Failed to promote staged file %s to %s: %s",
                    stored.staged_path,
                    stored.filepath,
                    str(e),
                )

    async def discard(self, stored_files: Sequence[StoredFile]) -> None:
        """Best-effort removal of staged files after a failed submission."""
        for stored in stored_files:
            await self.cleanup_file(stored.staged_path)

    async def cleanup_file(self, file_path: str) -> None:
        """
        Remove a file from disk if it exists.

        Cleanup is best-effort: failures are logged and never raised, and
        never change the response already chosen for the client.
        """
        try:
            path = Path(file_path)
            if path.exists():
                await aiofiles.os.remove(path)
                logger.info("Cleaned up file: %s", path.name)
            else:
                logger.debug("Cleanup: file already gone: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", file_path, str(e))
