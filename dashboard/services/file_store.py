"""
Content Dashboard - Content-Addressable File Store

Uploaded files are stored flat under the uploads directory, named

    <snake_cased original stem>-<sha256 hex digest><lowercased extension>

Identical bytes always produce the same digest, so re-uploading a file is a
harmless overwrite of the same content.  Bytes are written to a temporary
file in the destination directory and moved into place atomically; a name is
only returned once the final file is complete.
"""

import hashlib
import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Union

from loguru import logger

from dashboard.utils import snake_case

CHUNK_SIZE = 64 * 1024
DEFAULT_BASE = "file"

FileSource = Union[str, os.PathLike, BinaryIO]


def _rewind(stream: BinaryIO) -> None:
    if hasattr(stream, "seek"):
        stream.seek(0)


def _iter_chunks(stream: BinaryIO):
    for chunk in iter(lambda: stream.read(CHUNK_SIZE), b""):
        yield chunk


def file_digest(stream: BinaryIO) -> str:
    """SHA-256 hex digest of the whole stream, read from its start."""
    _rewind(stream)
    h = hashlib.sha256()
    for chunk in _iter_chunks(stream):
        h.update(chunk)
    return h.hexdigest()


def digest_filename(original_filename: str, digest: str) -> str:
    """Build ``<base>-<digest><ext>`` from an uploaded file's original name."""
    name = Path(original_filename or "").name
    path = Path(name)
    base = snake_case(path.stem) or DEFAULT_BASE
    ext = path.suffix.lower()
    return f"{base}-{digest}{ext}"


def _write_atomically(stream: BinaryIO, target: Path) -> None:
    """Copy *stream* to *target* through a temp file + ``os.replace``."""
    fd, tmp_name = tempfile.mkstemp(prefix=".upload-", suffix=".tmp", dir=str(target.parent))
    try:
        with os.fdopen(fd, "wb") as out:
            _rewind(stream)
            for chunk in _iter_chunks(stream):
                out.write(chunk)
            out.flush()
            os.fsync(out.fileno())
        # mkstemp creates 0600 files; uploads are served publicly
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, target)
    except BaseException:
        # Includes cancellation; nothing named after the digest is left behind
        try:
            os.remove(tmp_name)
        except FileNotFoundError:
            pass
        raise


def store_file(source: FileSource, original_filename: str, destination_dir: Union[str, os.PathLike]) -> str:
    """
    Persist *source* under its content-derived name and return that name.

    *source* is a filesystem path or a readable binary file object.  Any
    I/O error propagates to the caller; no name is returned for a failed
    write.
    """
    destination = Path(destination_dir)
    destination.mkdir(parents=True, exist_ok=True)

    if isinstance(source, (str, os.PathLike)):
        with open(source, "rb") as stream:
            return _store_stream(stream, original_filename, destination)
    return _store_stream(source, original_filename, destination)


def _store_stream(stream: BinaryIO, original_filename: str, destination: Path) -> str:
    seekable = getattr(stream, "seekable", None)
    if seekable is None or not seekable():
        # Both the hash and the copy pass need to read from the start
        with tempfile.SpooledTemporaryFile(max_size=CHUNK_SIZE * 16) as spool:
            for chunk in _iter_chunks(stream):
                spool.write(chunk)
            return _store_seekable(spool, original_filename, destination)
    return _store_seekable(stream, original_filename, destination)


def _store_seekable(stream: BinaryIO, original_filename: str, destination: Path) -> str:
    digest = file_digest(stream)
    filename = digest_filename(original_filename, digest)
    target = destination / filename

    # No existence check: an existing file with this name holds these bytes
    _write_atomically(stream, target)
    logger.info("💾 Stored upload {} as {}", original_filename, filename)
    return filename


class FileStore:
    """``store_file`` bound to one uploads directory."""

    def __init__(self, uploads_dir: Union[str, os.PathLike]):
        self.uploads_dir = Path(uploads_dir)

    def store(self, source: FileSource, original_filename: str) -> str:
        return store_file(source, original_filename, self.uploads_dir)
