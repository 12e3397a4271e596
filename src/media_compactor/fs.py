"""Async file system collaborator.

Every method is a suspend point: blocking ``os``/``shutil`` calls are pushed to
a worker thread with :func:`asyncio.to_thread` and file writes go through
``aiofiles``. Errors are raised as plain ``OSError`` subclasses; deciding what
a failure means is left to the callers (probe, retention, strategies).
"""

from __future__ import annotations

import asyncio
import os
import shutil
import stat
from pathlib import Path
from typing import List, Union

import aiofiles

PathLike = Union[str, "os.PathLike[str]"]


class LocalFileSystem:
    """File system primitives backed by the local disk."""

    async def size(self, path: PathLike) -> int:
        """Return the size of ``path`` in bytes.

        Raises ``FileNotFoundError`` when missing and ``IsADirectoryError``
        when ``path`` is a directory.
        """
        st = await asyncio.to_thread(os.stat, path)
        if stat.S_ISDIR(st.st_mode):
            raise IsADirectoryError(f"Not a regular file: {path}")
        return st.st_size

    async def exists(self, path: PathLike) -> bool:
        return await asyncio.to_thread(os.path.exists, path)

    async def modified_time(self, path: PathLike) -> float:
        """Return the last modification time of ``path`` as epoch seconds."""
        st = await asyncio.to_thread(os.stat, path)
        return st.st_mtime

    async def copy(self, source: PathLike, target: PathLike) -> None:
        await asyncio.to_thread(shutil.copyfile, source, target)

    async def write_bytes(self, path: PathLike, data: bytes) -> None:
        async with aiofiles.open(path, "wb") as fh:
            await fh.write(data)

    async def write_text(self, path: PathLike, text: str) -> None:
        async with aiofiles.open(path, "w", encoding="utf-8") as fh:
            await fh.write(text)

    async def delete(self, path: PathLike) -> None:
        """Delete ``path``; a missing file is not an error."""
        try:
            await asyncio.to_thread(os.remove, path)
        except FileNotFoundError:
            pass

    async def make_dirs(self, path: PathLike) -> None:
        await asyncio.to_thread(Path(path).mkdir, parents=True, exist_ok=True)

    async def list_dir(self, path: PathLike) -> List[str]:
        names = await asyncio.to_thread(os.listdir, path)
        return sorted(names)


__all__ = ["LocalFileSystem", "PathLike"]
