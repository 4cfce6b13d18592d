from __future__ import annotations

import io
import logging
import zipfile
import zlib
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Iterator

from .errors import StreamingError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


class StreamOutcome(str, Enum):
    COMPLETED = "completed"
    DISCONNECTED = "disconnected"
    FAILED = "failed"


class _ChunkBuffer(io.RawIOBase):
    """Write-only, non-seekable sink that zipfile drains chunk by chunk.

    Being unseekable makes zipfile emit data descriptors instead of seeking
    back to patch local headers, so entries can leave as soon as they are
    compressed.
    """

    def __init__(self) -> None:
        super().__init__()
        self._buf = bytearray()

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:  # type: ignore[override]
        self._buf += b
        return len(b)

    def drain(self) -> bytes:
        data = bytes(self._buf)
        self._buf.clear()
        return data


class ArchiveStreamer:
    """Stream a ZIP of every file directly under `root`.

    Entries are stored flat at the archive root under their staged names.
    """

    def __init__(
        self,
        root: Path,
        *,
        compress_level: int = 9,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.root = root
        self.compress_level = compress_level
        self.chunk_size = chunk_size

    def _entries(self) -> list[Path]:
        return sorted(p for p in self.root.iterdir() if p.is_file())

    def iter_chunks(self) -> Iterator[bytes]:
        """Yield compressed archive bytes as they are produced.

        Raises StreamingError if a staged file cannot be read or compressed.
        Closing the generator early stops the walk without finishing the
        central directory.
        """

        buf = _ChunkBuffer()
        try:
            with zipfile.ZipFile(
                buf,
                mode="w",
                compression=zipfile.ZIP_DEFLATED,
                compresslevel=self.compress_level,
            ) as zf:
                for path in self._entries():
                    size = path.stat().st_size
                    with path.open("rb") as src, zf.open(
                        path.name, mode="w", force_zip64=size >= zipfile.ZIP64_LIMIT
                    ) as dest:
                        while True:
                            chunk = src.read(self.chunk_size)
                            if not chunk:
                                break
                            dest.write(chunk)
                            out = buf.drain()
                            if out:
                                yield out
                    out = buf.drain()
                    if out:
                        yield out
            tail = buf.drain()
            if tail:
                yield tail
        except (OSError, zlib.error, zipfile.LargeZipFile, ValueError) as e:
            logger.error("Archiver error: %s", e)
            raise StreamingError(str(e)) from e

    def stream_to(self, sink: BinaryIO) -> StreamOutcome:
        """Write the archive into `sink`; never raises for stream problems."""

        chunks = self.iter_chunks()
        try:
            for chunk in chunks:
                try:
                    sink.write(chunk)
                except (OSError, ValueError) as e:
                    logger.warning("Output channel closed mid-stream: %s", e)
                    return StreamOutcome.DISCONNECTED
            flush = getattr(sink, "flush", None)
            if flush is not None:
                try:
                    flush()
                except (OSError, ValueError) as e:
                    logger.warning("Output channel closed mid-stream: %s", e)
                    return StreamOutcome.DISCONNECTED
        except StreamingError:
            return StreamOutcome.FAILED
        finally:
            chunks.close()
        return StreamOutcome.COMPLETED
