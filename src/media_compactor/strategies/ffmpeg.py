"""Strategy that shells out to the ``ffmpeg`` binary."""

from __future__ import annotations

import asyncio
import logging
import shutil
from typing import List, Optional

from ..config import Config
from ..fs import LocalFileSystem
from ..probe import BYTES_PER_MB
from .base import CompressionStrategy, ProgressCallback, report
from .registry import register_compression_strategy

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 600.0
DEFAULT_AUDIO_BITRATE_KBPS = 128
DEFAULT_CRF = 28
# lower derived bitrates fall back to CRF
MIN_VIDEO_BITRATE_KBPS = 100


class FfmpegCompressionStrategy(CompressionStrategy):
    """Re-encode with libx264/aac, aiming at the target size.

    When ``ffprobe`` reports a duration the video bitrate is derived from the
    target size; otherwise a constant rate factor is used and the size is
    whatever that yields.
    """

    id = "ffmpeg"

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        ffprobe_path: str | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        audio_bitrate_kbps: int = DEFAULT_AUDIO_BITRATE_KBPS,
        crf: int = DEFAULT_CRF,
        preset: str = "ultrafast",
        fs: Optional[LocalFileSystem] = None,
    ) -> None:
        self.ffmpeg_path = ffmpeg_path
        self.ffprobe_path = ffprobe_path or ffmpeg_path.replace("ffmpeg", "ffprobe")
        self.timeout = timeout
        self.audio_bitrate_kbps = audio_bitrate_kbps
        self.crf = crf
        self.preset = preset
        self.fs = fs or LocalFileSystem()

    @classmethod
    def from_config(
        cls, config: Optional[Config] = None, *, fs: Optional[LocalFileSystem] = None
    ) -> "FfmpegCompressionStrategy":
        """Read ``ffmpeg_path`` and ``ffmpeg_timeout_seconds`` from ``config``."""
        if config is None:
            return cls(fs=fs)
        return cls(
            config.get("ffmpeg_path"),
            timeout=config.get("ffmpeg_timeout_seconds"),
            fs=fs,
        )

    def video_bitrate_kbps(self, target_size_mb: float, duration: float | None) -> int | None:
        if not duration or duration <= 0:
            return None
        total_kbps = target_size_mb * BYTES_PER_MB * 8 / 1000 / duration
        video_kbps = int(total_kbps - self.audio_bitrate_kbps)
        if video_kbps < MIN_VIDEO_BITRATE_KBPS:
            return None
        return video_kbps

    def build_command(
        self,
        source_path: str,
        target_path: str,
        target_size_mb: float,
        duration: float | None = None,
    ) -> List[str]:
        cmd = [self.ffmpeg_path, "-y", "-nostats", "-i", source_path, "-c:v", "libx264"]
        bitrate = self.video_bitrate_kbps(target_size_mb, duration)
        if bitrate is None:
            cmd += ["-crf", str(self.crf)]
        else:
            cmd += ["-b:v", f"{bitrate}k", "-maxrate", f"{bitrate}k", "-bufsize", f"{bitrate * 2}k"]
        cmd += [
            "-preset",
            self.preset,
            "-c:a",
            "aac",
            "-b:a",
            f"{self.audio_bitrate_kbps}k",
            "-progress",
            "pipe:1",
            target_path,
        ]
        return cmd

    async def probe_duration(self, source_path: str) -> float | None:
        """Return the media duration in seconds, or ``None`` if unknown."""
        if shutil.which(self.ffprobe_path) is None:
            return None
        try:
            process = await asyncio.create_subprocess_exec(
                self.ffprobe_path,
                "-v",
                "error",
                "-show_entries",
                "format=duration",
                "-of",
                "default=noprint_wrappers=1:nokey=1",
                source_path,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=30)
        except (OSError, asyncio.TimeoutError) as exc:
            logger.warning("ffprobe failed for %s: %s", source_path, exc)
            return None
        if process.returncode != 0:
            return None
        try:
            return float(stdout.decode().strip())
        except ValueError:
            return None

    async def _follow_progress(
        self,
        process: asyncio.subprocess.Process,
        duration: float | None,
        on_progress: Optional[ProgressCallback],
    ) -> bytes:
        async def read_stdout() -> None:
            assert process.stdout is not None
            async for raw in process.stdout:
                key, _, value = raw.decode(errors="replace").strip().partition("=")
                if key in ("out_time_us", "out_time_ms") and duration:
                    try:
                        seconds = int(value) / 1_000_000
                    except ValueError:
                        continue
                    report(on_progress, 0.1 + 0.8 * min(seconds / duration, 1.0))

        assert process.stderr is not None
        _, stderr = await asyncio.gather(read_stdout(), process.stderr.read())
        await process.wait()
        return stderr

    async def run(
        self,
        source_path: str,
        target_path: str,
        target_size_mb: float,
        on_progress: Optional[ProgressCallback] = None,
    ) -> bool:
        if shutil.which(self.ffmpeg_path) is None:
            logger.error("ffmpeg binary not found: %s", self.ffmpeg_path)
            return False

        duration = await self.probe_duration(source_path)
        command = self.build_command(source_path, target_path, target_size_mb, duration)
        logger.info("Executing FFmpeg command: %s", " ".join(command))
        report(on_progress, 0.1)

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            logger.error("Failed to start ffmpeg: %s", exc)
            return False

        try:
            stderr = await asyncio.wait_for(
                self._follow_progress(process, duration, on_progress), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()
            logger.error("ffmpeg timed out after %.0fs for %s", self.timeout, source_path)
            return False

        if process.returncode != 0:
            logger.error(
                "FFmpeg compression failed with return code %s: %s",
                process.returncode,
                stderr.decode(errors="replace")[-2000:],
            )
            return False

        report(on_progress, 1.0)
        try:
            return await self.fs.size(target_path) > 0
        except OSError:
            return False


register_compression_strategy(
    FfmpegCompressionStrategy.id,
    FfmpegCompressionStrategy,
    display_name="FFmpeg (libx264)",
    source="built-in",
)

__all__ = ["FfmpegCompressionStrategy"]
