"""File storage utilities.

This module owns the storage directory: a flat folder holding one file per
stored object.  The directory listing is the catalog; there is no index.
Filenames are randomised before anything is written so that the name on
disk cannot be linked back to the uploaded name, and file contents are
encrypted with the process-wide ``EncryptionEngine``.
"""
from __future__ import annotations

import logging
import os
import re
import secrets
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from .crypto import EncryptionEngine
from .exceptions import (
    NotFoundError,
    SizeLimitExceeded,
    StorageReadError,
    StorageWriteError,
    ValidationError,
)

logger = logging.getLogger("safestore.storage")
logger.setLevel(logging.INFO)

TOKEN_BYTES = 12  # 96 bits, 24 hex chars
# filesystem names are capped at 255 bytes; the token and dot take 25
MAX_EXTENSION_BYTES = 255 - (TOKEN_BYTES * 2 + 1)
_EXTENSION_RE = re.compile(r"[\w\-+]*")
READ_CHUNK_SIZE = 1024 * 1024
_TEMP_PREFIX = ".tmp-"


def obfuscate_name(original_name: str) -> str:
    """
    Return ``<random hex token>.<extension>`` for an uploaded file name.

    Only the extension survives. A name without a dot is treated as being
    all extension, so ``"README"`` becomes ``"<token>.README"``. Extensions
    are limited to letters, digits, ``_``, ``-`` and ``+``.
    """
    base = original_name.replace("\\", "/").rsplit("/", 1)[-1]
    ext = base.rsplit(".", 1)[-1]
    if not _EXTENSION_RE.fullmatch(ext):
        raise ValidationError("Invalid file extension")
    if len(ext.encode("utf-8")) > MAX_EXTENSION_BYTES:
        raise ValidationError("File extension is too long")
    return f"{secrets.token_hex(TOKEN_BYTES)}.{ext}"


def read_upload(fileobj: BinaryIO, max_bytes: int) -> bytes:
    """
    Read an uploaded file in chunks, giving up as soon as it grows past
    ``max_bytes``; memory use is bounded by the cap.
    """
    chunks = []
    total = 0
    while True:
        chunk = fileobj.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        total += len(chunk)
        if total > max_bytes:
            raise SizeLimitExceeded(max_bytes)
        chunks.append(chunk)
    return b"".join(chunks)


@dataclass(frozen=True)
class StoredObject:
    storage_name: str
    size_bytes: int
    modified_at: datetime

    @classmethod
    def from_stat(cls, storage_name: str, st: os.stat_result) -> "StoredObject":
        return cls(
            storage_name=storage_name,
            size_bytes=st.st_size,
            modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        )


class StorageDirectory:
    """Encrypted object store backed by a single directory."""

    def __init__(self, root: str | os.PathLike, engine: EncryptionEngine, max_upload_bytes: int) -> None:
        self.root = Path(root).resolve()
        self.engine = engine
        self.max_upload_bytes = max_upload_bytes

    def ensure(self) -> None:
        """Ensure that the storage directory exists."""
        self.root.mkdir(parents=True, exist_ok=True)

    # -----------------------------
    # Names
    # -----------------------------
    def resolve(self, storage_name: str) -> Path:
        """
        Map a storage name to its file. Anything that could point outside
        the storage directory, or at a hidden temp file, is rejected.
        """
        if (
            not storage_name
            or not storage_name.strip()
            or "/" in storage_name
            or "\\" in storage_name
            or "\x00" in storage_name
            or ".." in storage_name
            or storage_name.startswith(".")
        ):
            raise ValidationError("Invalid file name")

        path = self.root / storage_name
        if path.parent != self.root:
            raise ValidationError("Invalid file name")
        return path

    # -----------------------------
    # Ingest
    # -----------------------------
    def ingest(self, original_name: Optional[str], plaintext: Optional[bytes]) -> StoredObject:
        """Encrypt ``plaintext`` and store it under a fresh obfuscated name."""
        if plaintext is None:
            raise ValidationError("No files were uploaded")
        if not original_name or not original_name.strip():
            raise ValidationError("File name is required")
        if len(plaintext) > self.max_upload_bytes:
            raise SizeLimitExceeded(self.max_upload_bytes)

        storage_name = obfuscate_name(original_name)
        payload = self.engine.encrypt(bytes(plaintext))
        path = self._write_exclusive(storage_name, payload)

        try:
            st = path.stat()
        except OSError as e:
            logger.error("Stored %s but could not stat it: %s", storage_name, e)
            raise StorageWriteError("Failed to upload file") from None

        logger.info("Stored %s (%d bytes at rest)", storage_name, st.st_size)
        return StoredObject.from_stat(storage_name, st)

    def _write_exclusive(self, storage_name: str, payload: bytes) -> Path:
        """
        Write to a hidden temp file, then hard-link it into place. The link
        fails if the name is taken, so an existing object is never replaced
        and a half-written file is never visible under its final name.
        """
        final_path = self.resolve(storage_name)
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=_TEMP_PREFIX, dir=self.root)
            with os.fdopen(fd, "wb") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.link(tmp_path, final_path)
        except FileExistsError:
            logger.error("Storage name collision on %s; refusing to overwrite", storage_name)
            raise StorageWriteError("Failed to upload file: storage name collision") from None
        except OSError as e:
            logger.error("Failed to write %s: %s", storage_name, e)
            raise StorageWriteError("Failed to upload file") from None
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except FileNotFoundError:
                    pass
        return final_path

    # -----------------------------
    # Catalog
    # -----------------------------
    def list_objects(self) -> Iterator[StoredObject]:
        """
        Lazily yield every stored object in filesystem order. Entries that
        vanish or cannot be stat-ed mid-listing are skipped.
        """
        try:
            entries = os.scandir(self.root)
        except OSError as e:
            logger.error("Error reading files: %s", e)
            raise StorageReadError("Unable to scan files") from None

        with entries:
            for entry in entries:
                if entry.name.startswith("."):
                    continue
                try:
                    if not entry.is_file(follow_symlinks=False):
                        continue
                    st = entry.stat(follow_symlinks=False)
                except OSError as e:
                    logger.warning("Skipping %s while listing: %s", entry.name, e)
                    continue
                yield StoredObject.from_stat(entry.name, st)

    def stat_object(self, storage_name: str) -> StoredObject:
        path = self.resolve(storage_name)
        try:
            return StoredObject.from_stat(storage_name, path.stat())
        except FileNotFoundError:
            raise NotFoundError("File not found") from None
        except OSError as e:
            logger.error("Failed to stat %s: %s", storage_name, e)
            raise StorageReadError("Failed to read file") from None

    # -----------------------------
    # Retrieval / deletion
    # -----------------------------
    def open_object(self, storage_name: str) -> BinaryIO:
        """Open the at-rest bytes of an object. The caller closes the handle."""
        path = self.resolve(storage_name)
        if not path.is_file():
            raise NotFoundError("File not found")
        try:
            return open(path, "rb")
        except FileNotFoundError:
            raise NotFoundError("File not found") from None
        except OSError as e:
            logger.error("Failed to open %s: %s", storage_name, e)
            raise StorageReadError("Failed to download file") from None

    def read_object(self, storage_name: str) -> bytes:
        with self.open_object(storage_name) as fh:
            try:
                return fh.read()
            except OSError as e:
                logger.error("Failed to read %s: %s", storage_name, e)
                raise StorageReadError("Failed to download file") from None

    def read_plaintext(self, storage_name: str) -> bytes:
        return self.engine.decrypt(self.read_object(storage_name))

    def delete(self, storage_name: str) -> None:
        """
        Remove an object. If it disappears between the request and the
        unlink (a concurrent delete won), this reports NotFoundError.
        """
        path = self.resolve(storage_name)
        if path.is_dir():
            raise NotFoundError("File not found")
        try:
            os.remove(path)
        except FileNotFoundError:
            raise NotFoundError("File not found") from None
        except OSError as e:
            logger.error("Delete error for %s: %s", storage_name, e)
            raise StorageWriteError("Failed to delete file") from None
        logger.info("Deleted %s", storage_name)
