"""Existence and size probing for media assets."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional, Union

from .fs import LocalFileSystem, PathLike

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024

REASON_NOT_FOUND = "not_found"
REASON_EMPTY = "empty"
REASON_ACCESS_ERROR = "access_error"


def bytes_to_mb(size_bytes: int) -> float:
    """Convert ``size_bytes`` to megabytes rounded to two decimals."""
    return round(size_bytes / BYTES_PER_MB, 2)


@dataclass(frozen=True)
class PresentAsset:
    path: str
    size_bytes: int

    exists = True

    @property
    def size_mb(self) -> float:
        return bytes_to_mb(self.size_bytes)


@dataclass(frozen=True)
class AbsentAsset:
    """An asset that cannot be used.

    ``reason`` tells a missing file apart from an empty or unreadable one for
    diagnostics; callers should treat every absent asset the same way.
    """

    path: str
    reason: str = REASON_NOT_FOUND

    exists = False


AssetInfo = Union[PresentAsset, AbsentAsset]


class AssetProbe:
    """Query existence and size of a path and normalise the answer."""

    def __init__(self, fs: Optional[LocalFileSystem] = None) -> None:
        self.fs = fs or LocalFileSystem()

    async def probe(self, path: PathLike) -> AssetInfo:
        """Return :class:`PresentAsset` or :class:`AbsentAsset` for ``path``.

        Never raises for I/O faults; a zero-byte file is reported absent.
        """
        path_str = os.fspath(path)
        try:
            size = await self.fs.size(path_str)
        except FileNotFoundError:
            return AbsentAsset(path_str, REASON_NOT_FOUND)
        except OSError as exc:
            logger.warning("Could not read asset info for %s: %s", path_str, exc)
            return AbsentAsset(path_str, REASON_ACCESS_ERROR)
        if size <= 0:
            return AbsentAsset(path_str, REASON_EMPTY)
        return PresentAsset(path_str, size)


__all__ = [
    "AbsentAsset",
    "AssetInfo",
    "AssetProbe",
    "BYTES_PER_MB",
    "PresentAsset",
    "bytes_to_mb",
]
