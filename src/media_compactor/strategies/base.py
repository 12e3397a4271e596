from __future__ import annotations

"""Compression strategy interface and progress helpers."""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:  # pragma: no cover - for type checkers only
    from ..config import Config
    from ..fs import LocalFileSystem

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class CompressionStrategy(ABC):
    """Turns a source asset into a smaller asset at ``target_path``.

    Implementations must report progress through ``on_progress`` with values
    in ``[0, 1]`` that never decrease, finishing with ``1.0`` once the run is
    over (successfully or through a defined failure exit). The caller
    guarantees ``target_path`` is unique for each invocation.
    """

    id = "base"

    @classmethod
    def from_config(
        cls, config: Optional["Config"] = None, *, fs: Optional["LocalFileSystem"] = None
    ) -> "CompressionStrategy":
        """Build an instance from application settings.

        The default takes no settings; strategies with tunables override this.
        """
        return cls()

    @abstractmethod
    async def run(
        self,
        source_path: str,
        target_path: str,
        target_size_mb: float,
        on_progress: Optional[ProgressCallback] = None,
    ) -> bool:
        """Produce ``target_path``; return ``True`` when it is usable."""


class MonotonicProgress:
    """Wraps a progress callback so callers only ever see increasing values.

    Values are clamped to ``[0, 1]``; anything not strictly above the last
    forwarded value is dropped.
    """

    def __init__(self, callback: Optional[ProgressCallback]) -> None:
        self.callback = callback
        self.last: float | None = None

    def __call__(self, value: float) -> None:
        value = min(max(float(value), 0.0), 1.0)
        if self.last is not None and value <= self.last:
            return
        self.last = value
        if self.callback is not None:
            self.callback(value)

    def complete(self) -> None:
        self(1.0)

    def scaled(self, start: float, end: float) -> ProgressCallback:
        """Return a callback mapping ``[0, 1]`` onto ``[start, end]`` of this progress."""

        def forward(value: float) -> None:
            value = min(max(float(value), 0.0), 1.0)
            self(start + (end - start) * value)

        return forward

    @property
    def finished(self) -> bool:
        return self.last == 1.0


def report(on_progress: Optional[ProgressCallback], value: float) -> None:
    if on_progress is not None:
        on_progress(value)


__all__ = ["CompressionStrategy", "MonotonicProgress", "ProgressCallback", "report"]
