"""Local Blob Store — dataset files on the filesystem under upload_dir.

Invariants:
    - put() never overwrites: every stored file gets a unique key
    - Keys are bare file names; resolution is always relative to root
    - open_read_stream() yields chunks lazily, the file is never loaded whole

Design Decisions:
    - Blocking file IO pushed to worker threads (asyncio.to_thread)
    - Key format <epoch-ms>-<random>.<ext>: sortable by upload time, original name kept
      on the Dataset row instead
"""

import asyncio
import logging
import os
import shutil
import time
import uuid
from pathlib import Path
from typing import AsyncIterator, BinaryIO

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class LocalBlobStore:
    """BlobStore implementation on a local directory."""

    def __init__(self, root: str | Path, chunk_size: int = CHUNK_SIZE):
        self.root = Path(root)
        self.chunk_size = chunk_size

    def _resolve(self, path: str) -> Path:
        # Keys never carry directories
        return self.root / Path(path).name

    def _new_key(self, filename: str) -> str:
        ext = Path(filename).suffix.lower()
        return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}{ext}"

    async def put(self, source: BinaryIO, filename: str) -> str:
        key = self._new_key(filename)
        target = self._resolve(key)

        def _write() -> None:
            self.root.mkdir(parents=True, exist_ok=True)
            with open(target, "wb") as out:
                shutil.copyfileobj(source, out, self.chunk_size)

        await asyncio.to_thread(_write)
        logger.info(f"Stored blob {key}")
        return key

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self._resolve(path).is_file)

    async def open_read_stream(self, path: str) -> AsyncIterator[bytes]:
        handle = await asyncio.to_thread(open, self._resolve(path), "rb")
        try:
            while True:
                chunk = await asyncio.to_thread(handle.read, self.chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            await asyncio.to_thread(handle.close)

    async def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            await asyncio.to_thread(os.remove, target)
            logger.info(f"Deleted blob {path}")
        except FileNotFoundError:
            logger.warning(f"Blob {path} already gone")

    async def health_check(self) -> bool:
        """Upload root exists (or can be created) and is writable."""
        def _writable() -> bool:
            self.root.mkdir(parents=True, exist_ok=True)
            return os.access(self.root, os.W_OK)

        try:
            return await asyncio.to_thread(_writable)
        except OSError as e:
            logger.error(f"Blob store health check failed: {e}")
            return False
