"""End-to-end "produce a usable, size-bounded copy" operation."""

from __future__ import annotations

import enum
import logging
import os
import time
from dataclasses import dataclass
from typing import Optional, Tuple, cast

from .compression_config import CompressionConfig
from .exceptions import ConfigurationError, DirectoryInitError
from .fs import PathLike
from .policy import BELOW_THRESHOLD, Compress, Decision, SizePolicy, Skip
from .probe import AbsentAsset, AssetInfo, AssetProbe, PresentAsset
from .retention import RetentionManager
from .strategies.base import CompressionStrategy, MonotonicProgress, ProgressCallback

logger = logging.getLogger(__name__)

# the fallback attempt aims below the first target
FALLBACK_TARGET_SCALE = 0.75


class OutcomeReason(str, enum.Enum):
    """Why :meth:`CompressionOrchestrator.produce` returned the path it did."""

    COMPRESSED = "compressed"
    BELOW_THRESHOLD = "below_threshold"
    WITHIN_BOUND = "within_bound"
    SOURCE_MISSING = "source_missing"
    STRATEGY_FAILURE = "strategy_failure"
    VERIFICATION_FAILURE = "verification_failure"
    DIRECTORY_INIT_FAILURE = "directory_init_failure"
    CONFIGURATION_ERROR = "configuration_error"
    UNEXPECTED_ERROR = "unexpected_error"


@dataclass
class CompressionReport:
    path: str
    reason: OutcomeReason
    source: Optional[AssetInfo] = None
    decision: Optional[Decision] = None
    output: Optional[AssetInfo] = None
    strategy_id: Optional[str] = None
    attempts: int = 0
    processing_ms: float | None = None

    @property
    def compressed(self) -> bool:
        return self.reason is OutcomeReason.COMPRESSED


class CompressionOrchestrator:
    """Compose probe, policy, retention and a strategy with safe fallback.

    When ``fallback_strategy`` is given, a first attempt that fails or produces
    an unusable file is followed by one more attempt with that strategy at
    ``fallback_target_scale`` times the target. Progress is split evenly
    between the attempts.

    ``produce`` never raises: whatever goes wrong, the caller gets back the
    original source path and the cause is only visible in the logs (or in the
    :class:`CompressionReport` from :meth:`produce_report`).
    """

    def __init__(
        self,
        strategy: CompressionStrategy,
        *,
        retention: RetentionManager,
        probe: Optional[AssetProbe] = None,
        config: Optional[CompressionConfig] = None,
        fallback_strategy: Optional[CompressionStrategy] = None,
        fallback_target_scale: float = FALLBACK_TARGET_SCALE,
    ) -> None:
        if not 0 < fallback_target_scale <= 1:
            raise ValueError("fallback_target_scale must be in (0, 1]")
        self.strategy = strategy
        self.fallback_strategy = fallback_strategy
        self.fallback_target_scale = fallback_target_scale
        self.retention = retention
        self.probe = probe or AssetProbe(retention.fs)
        self.config = config or CompressionConfig()

    async def produce(
        self, source_path: PathLike, config: Optional[CompressionConfig] = None
    ) -> str:
        """Return the path to use going forward: a compressed copy or ``source_path``."""
        report = await self.produce_report(source_path, config)
        return report.path

    async def produce_report(
        self, source_path: PathLike, config: Optional[CompressionConfig] = None
    ) -> CompressionReport:
        source = os.fspath(source_path)
        start = time.monotonic()
        report = CompressionReport(path=source, reason=OutcomeReason.UNEXPECTED_ERROR)
        output_path: str | None = None
        try:
            output_path = await self._run(source, config or self.config, report)
        except DirectoryInitError as exc:
            logger.error("Working directory unavailable, using original file: %s", exc)
            report.reason = OutcomeReason.DIRECTORY_INIT_FAILURE
        except ConfigurationError as exc:
            logger.error("Invalid compression settings, using original file: %s", exc)
            report.reason = OutcomeReason.CONFIGURATION_ERROR
        except Exception as exc:
            logger.exception("Compression process failed, using original file: %s", exc)
            report.reason = OutcomeReason.UNEXPECTED_ERROR

        if output_path is not None:
            report.path = output_path
        report.processing_ms = (time.monotonic() - start) * 1000
        logger.debug("Compression report for %s: %s", source, report)
        return report

    async def _run(
        self, source: str, config: CompressionConfig, report: CompressionReport
    ) -> str | None:
        """Run the pipeline, filling ``report``; return the output path on success."""
        source_info = await self.probe.probe(source)
        report.source = source_info
        if isinstance(source_info, AbsentAsset):
            logger.error("Source video not found (%s): %s", source_info.reason, source)
            report.reason = OutcomeReason.SOURCE_MISSING
            return None

        decision = SizePolicy(config).decide(source_info.size_mb)
        report.decision = decision
        if isinstance(decision, Skip):
            if decision.reason == BELOW_THRESHOLD:
                logger.info("Video size (%sMB) below compression threshold", source_info.size_mb)
                report.reason = OutcomeReason.BELOW_THRESHOLD
            else:
                logger.info("Video size (%sMB) already within target range", source_info.size_mb)
                report.reason = OutcomeReason.WITHIN_BOUND
            return None

        target_size_mb = cast(Compress, decision).target_size_mb
        await self.retention.ensure_working_directory()

        attempts = [(self.strategy, target_size_mb, False)]
        if self.fallback_strategy is not None:
            attempts.append(
                (self.fallback_strategy, target_size_mb * self.fallback_target_scale, True)
            )
        progress = MonotonicProgress(config.on_progress)
        share = 1.0 / len(attempts)

        for index, (strategy, target, fallback) in enumerate(attempts):
            if fallback:
                logger.info("Attempting compression with fallback strategy '%s'", strategy.id)
            output_path = str(await self.retention.new_output_path(fallback=fallback))
            report.strategy_id = strategy.id
            report.attempts = index + 1
            logger.info(
                "Starting compression: %sMB -> target: %.2fMB (%s)",
                source_info.size_mb,
                target,
                strategy.id,
            )

            reason, output_info = await self._attempt(
                strategy,
                source,
                output_path,
                target,
                progress.scaled(index * share, (index + 1) * share),
            )
            report.reason = reason
            report.output = output_info
            if reason is OutcomeReason.COMPRESSED:
                try:
                    progress.complete()
                except BaseException:
                    await self._discard(output_path)
                    raise
                logger.info(
                    "Compression completed: %sMB -> %sMB",
                    source_info.size_mb,
                    cast(PresentAsset, output_info).size_mb,
                )
                return output_path
            await self._discard(output_path)

        progress.complete()
        return None

    async def _attempt(
        self,
        strategy: CompressionStrategy,
        source: str,
        output_path: str,
        target_size_mb: float,
        on_progress: ProgressCallback,
    ) -> Tuple[OutcomeReason, Optional[AssetInfo]]:
        try:
            ok = await strategy.run(source, output_path, target_size_mb, on_progress)
            if not ok:
                logger.warning("Compression strategy '%s' failed", strategy.id)
                return OutcomeReason.STRATEGY_FAILURE, None
            output_info = await self.probe.probe(output_path)
        except BaseException:
            # the output may have been partially written
            await self._discard(output_path)
            raise

        if not isinstance(output_info, PresentAsset):
            logger.error("Compressed file verification failed: %s", output_path)
            return OutcomeReason.VERIFICATION_FAILURE, output_info
        return OutcomeReason.COMPRESSED, output_info

    async def _discard(self, path: str) -> None:
        try:
            await self.retention.fs.delete(path)
        except Exception as exc:
            logger.warning("Failed to remove incomplete output %s: %s", path, exc)


__all__ = [
    "FALLBACK_TARGET_SCALE",
    "CompressionOrchestrator",
    "CompressionReport",
    "OutcomeReason",
]
