"""Working directory ownership and time-based cleanup of generated files."""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from pathlib import Path
from typing import Callable, List, Optional

from .exceptions import DirectoryInitError
from .fs import LocalFileSystem, PathLike

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "compressed_"
FALLBACK_PREFIX = "fallback_compressed_"
DEFAULT_EXTENSION = ".mp4"
DEFAULT_RETENTION = timedelta(hours=24)


class RetentionManager:
    """Owns the directory that generated artifacts are written to.

    Artifacts are named ``<prefix><epoch-ms><extension>``; outputs of a
    fallback attempt use ``fallback_prefix`` instead. Either prefix marks a
    file as owned by this manager; anything else in the directory is left
    alone by :meth:`purge_stale`. The retention window is assumed to be longer
    than any single compression run, otherwise a purge could remove an output
    that is still being verified.
    """

    def __init__(
        self,
        working_dir: PathLike,
        *,
        fs: Optional[LocalFileSystem] = None,
        prefix: str = DEFAULT_PREFIX,
        fallback_prefix: str = FALLBACK_PREFIX,
        extension: str = DEFAULT_EXTENSION,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not prefix or not fallback_prefix:
            raise ValueError("prefixes must not be empty")
        self.working_dir = Path(working_dir)
        self.fs = fs or LocalFileSystem()
        self.prefix = prefix
        self.fallback_prefix = fallback_prefix
        self.extension = extension
        self.clock = clock
        self._last_stamp = 0

    async def ensure_working_directory(self) -> Path:
        """Create the working directory (with parents) if needed and return it."""
        try:
            await self.fs.make_dirs(self.working_dir)
        except OSError as exc:
            logger.error("Failed to initialize working directory %s: %s", self.working_dir, exc)
            raise DirectoryInitError(str(exc)) from exc
        return self.working_dir

    async def new_output_path(self, *, fallback: bool = False) -> Path:
        """Return a fresh artifact path.

        Stamps are strictly increasing per manager, so two calls within the
        same millisecond still get distinct names.
        """
        prefix = self.fallback_prefix if fallback else self.prefix
        stamp = max(int(self.clock() * 1000), self._last_stamp + 1)
        # reserved before any await
        self._last_stamp = stamp
        candidate = self.working_dir / f"{prefix}{stamp}{self.extension}"
        while await self.fs.exists(candidate):
            stamp = self._last_stamp + 1
            self._last_stamp = stamp
            candidate = self.working_dir / f"{prefix}{stamp}{self.extension}"
        return candidate

    def is_artifact(self, name: str) -> bool:
        return name.startswith((self.prefix, self.fallback_prefix))

    async def list_artifacts(self) -> List[Path]:
        """Return the generated files currently in the working directory."""
        try:
            names = await self.fs.list_dir(self.working_dir)
        except FileNotFoundError:
            return []
        return [self.working_dir / n for n in names if self.is_artifact(n)]

    async def purge_stale(self, older_than: timedelta | None = None) -> List[Path]:
        """Delete artifacts last modified strictly before ``now - older_than``.

        Best effort: failures on one entry are logged and the purge moves on.
        When the directory cannot be reached nothing is deleted. Returns the
        paths that were removed.
        """
        window = DEFAULT_RETENTION if older_than is None else older_than
        try:
            await self.ensure_working_directory()
            names = await self.fs.list_dir(self.working_dir)
        except (DirectoryInitError, OSError) as exc:
            logger.warning("Cleanup skipped, working directory unavailable: %s", exc)
            return []

        cutoff = self.clock() - window.total_seconds()
        removed: List[Path] = []
        for name in names:
            if not self.is_artifact(name):
                continue
            path = self.working_dir / name
            try:
                mtime = await self.fs.modified_time(path)
                if mtime < cutoff:
                    await self.fs.delete(path)
                    removed.append(path)
                    logger.info("Cleaned up old compressed file: %s", name)
            except FileNotFoundError:
                # deleted by someone else between listing and stat
                continue
            except OSError as exc:
                logger.warning("Failed to clean up file %s: %s", name, exc)
        return removed


__all__ = [
    "DEFAULT_EXTENSION",
    "DEFAULT_PREFIX",
    "DEFAULT_RETENTION",
    "FALLBACK_PREFIX",
    "RetentionManager",
]
