from __future__ import annotations

"""Reference strategy for environments without a real codec.

This is a placeholder and NOT a faithful compressor: when the source is
larger than the target it replaces the copied bytes with a synthetic payload
of roughly half the target size (capped at 1 MB). The output is not a playable
media file. A real strategy swaps in codec logic while keeping the same
``run`` signature and progress contract.
"""

import logging
import time
from typing import Optional

from ..fs import LocalFileSystem
from ..probe import BYTES_PER_MB
from .base import CompressionStrategy, ProgressCallback, report
from .registry import register_compression_strategy

logger = logging.getLogger(__name__)

PLACEHOLDER_PREFIX = "compressed_placeholder_"
MAX_PADDING_BYTES = 1024 * 1024


class SimulatedCompressionStrategy(CompressionStrategy):
    """Copy the source, then shrink it to a synthetic payload."""

    id = "simulated"

    def __init__(self, fs: Optional[LocalFileSystem] = None) -> None:
        self.fs = fs or LocalFileSystem()

    @classmethod
    def from_config(cls, config=None, *, fs=None) -> "SimulatedCompressionStrategy":
        return cls(fs=fs)

    async def run(
        self,
        source_path: str,
        target_path: str,
        target_size_mb: float,
        on_progress: Optional[ProgressCallback] = None,
    ) -> bool:
        try:
            source_size = await self.fs.size(source_path)
            if not source_size:
                return False

            target_size_bytes = target_size_mb * BYTES_PER_MB
            compression_ratio = min(target_size_bytes / source_size, 1.0)
            logger.info("Simulating compression with ratio: %.1f%%", compression_ratio * 100)

            report(on_progress, 0.1)
            await self.fs.copy(source_path, target_path)
            report(on_progress, 0.8)

            if compression_ratio < 1.0:
                padding_size = min(int(target_size_bytes // 2), MAX_PADDING_BYTES)
                marker = f"{PLACEHOLDER_PREFIX}{int(time.time() * 1000)}".encode("ascii")
                await self.fs.write_bytes(target_path, marker + b"x" * padding_size)

            report(on_progress, 1.0)

            result_size = await self.fs.size(target_path)
            return result_size > 0
        except OSError as exc:
            logger.error("Compression simulation failed: %s", exc)
            return False


register_compression_strategy(
    SimulatedCompressionStrategy.id,
    SimulatedCompressionStrategy,
    display_name="Simulated (placeholder)",
    source="built-in",
)

__all__ = ["SimulatedCompressionStrategy"]
