"""Public operations.

Each call builds its collaborators from a fresh :class:`Config`; nothing is
cached between calls, so there is no process-wide service instance.
"""

from __future__ import annotations

import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from .compression_config import CompressionConfig
from .config import Config
from .exceptions import MediaCompactorError
from .fs import LocalFileSystem, PathLike
from .orchestrator import CompressionOrchestrator, CompressionReport, OutcomeReason
from .probe import AssetInfo, AssetProbe
from .retention import RetentionManager
from .strategies import CompressionStrategy, create_compression_strategy

logger = logging.getLogger(__name__)


def build_strategy(
    strategy_id: str | None = None,
    *,
    config: Optional[Config] = None,
    fs: Optional[LocalFileSystem] = None,
) -> CompressionStrategy:
    """Instantiate the strategy registered under ``strategy_id``.

    Falls back to ``default_strategy_id``. Raises ``KeyError`` for unknown ids.
    """
    config = config or Config()
    strategy_id = strategy_id or config.get("default_strategy_id")
    return create_compression_strategy(strategy_id, config=config, fs=fs)


def build_orchestrator(
    strategy_id: str | None = None,
    *,
    config: Optional[Config] = None,
    fs: Optional[LocalFileSystem] = None,
    compression_config: Optional[CompressionConfig] = None,
) -> CompressionOrchestrator:
    config = config or Config()
    fs = fs or LocalFileSystem()
    fallback_id = config.get("fallback_strategy_id")
    return CompressionOrchestrator(
        build_strategy(strategy_id, config=config, fs=fs),
        retention=RetentionManager(config.working_directory(), fs=fs),
        probe=AssetProbe(fs),
        config=compression_config or config.compression_config(),
        fallback_strategy=build_strategy(fallback_id, config=config, fs=fs) if fallback_id else None,
    )


async def probe_asset(path: PathLike) -> AssetInfo:
    """Return existence and size information for ``path``."""
    return await AssetProbe().probe(path)


async def produce_compressed_copy(
    path: PathLike,
    config: Optional[CompressionConfig] = None,
    *,
    strategy_id: str | None = None,
    app_config: Optional[Config] = None,
) -> str:
    """Return a size-bounded copy of ``path``, or ``path`` itself on skip or failure."""
    report = await produce_compression_report(
        path, config, strategy_id=strategy_id, app_config=app_config
    )
    return report.path


async def produce_compression_report(
    path: PathLike,
    config: Optional[CompressionConfig] = None,
    *,
    strategy_id: str | None = None,
    app_config: Optional[Config] = None,
) -> CompressionReport:
    """Like :func:`produce_compressed_copy` but return the full report.

    Settings that cannot be turned into an orchestrator (an invalid ratio, an
    unknown strategy id) are reported as ``configuration_error`` with the
    original path.
    """
    try:
        orchestrator = build_orchestrator(
            strategy_id, config=app_config, compression_config=config
        )
    except (ValidationError, KeyError, MediaCompactorError) as exc:
        logger.error("Invalid compression settings, using original file: %s", exc)
        return CompressionReport(
            path=os.fspath(path),
            reason=OutcomeReason.CONFIGURATION_ERROR,
            strategy_id=strategy_id,
        )
    return await orchestrator.produce_report(path)


async def purge_old_artifacts(
    older_than: timedelta | None = None,
    *,
    app_config: Optional[Config] = None,
) -> List[Path]:
    """Delete generated files older than the retention window.

    Raises :class:`ConfigurationError` when the configured window is not
    positive and ``older_than`` is not given.
    """
    app_config = app_config or Config()
    retention = RetentionManager(app_config.working_directory())
    if older_than is None:
        older_than = app_config.retention_window()
    return await retention.purge_stale(older_than)


__all__ = [
    "build_orchestrator",
    "build_strategy",
    "probe_asset",
    "produce_compressed_copy",
    "produce_compression_report",
    "purge_old_artifacts",
]
