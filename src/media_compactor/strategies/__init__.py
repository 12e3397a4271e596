from __future__ import annotations

"""Compression strategies and their registry."""

from .base import CompressionStrategy, MonotonicProgress, ProgressCallback
from .registry import (
    all_strategy_metadata,
    available_strategies,
    create_compression_strategy,
    get_compression_strategy,
    get_strategy_metadata,
    register_compression_strategy,
)

# Built-in strategies register themselves on import.
from .simulated import SimulatedCompressionStrategy
from .ffmpeg import FfmpegCompressionStrategy

DEFAULT_STRATEGY_ID = SimulatedCompressionStrategy.id

__all__ = [
    "CompressionStrategy",
    "DEFAULT_STRATEGY_ID",
    "FfmpegCompressionStrategy",
    "MonotonicProgress",
    "ProgressCallback",
    "SimulatedCompressionStrategy",
    "all_strategy_metadata",
    "available_strategies",
    "create_compression_strategy",
    "get_compression_strategy",
    "get_strategy_metadata",
    "register_compression_strategy",
]
