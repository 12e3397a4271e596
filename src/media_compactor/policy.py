"""Size policy: decide whether an asset should be compressed and to what size."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .compression_config import CompressionConfig
from .exceptions import ConfigurationError

BELOW_THRESHOLD = "below_threshold"
WITHIN_BOUND = "within_bound"


@dataclass(frozen=True)
class Skip:
    reason: str


@dataclass(frozen=True)
class Compress:
    target_size_mb: float


Decision = Union[Skip, Compress]


class SizePolicy:
    """Pure decision function over a validated :class:`CompressionConfig`."""

    def __init__(self, config: CompressionConfig | None = None) -> None:
        config = config or CompressionConfig()
        # model_construct() skips pydantic validation, so check again here
        if not 0 < config.target_ratio < 1:
            raise ConfigurationError(
                f"target_ratio must be strictly between 0 and 1, got {config.target_ratio}"
            )
        if config.max_target_mb <= 0:
            raise ConfigurationError(
                f"max_target_mb must be positive, got {config.max_target_mb}"
            )
        if config.min_size_to_act_mb < 0:
            raise ConfigurationError(
                f"min_size_to_act_mb must not be negative, got {config.min_size_to_act_mb}"
            )
        self.config = config

    def decide(self, source_size_mb: float) -> Decision:
        cfg = self.config
        if source_size_mb < cfg.min_size_to_act_mb:
            return Skip(BELOW_THRESHOLD)
        if source_size_mb <= cfg.max_target_mb:
            return Skip(WITHIN_BOUND)
        return Compress(min(source_size_mb * cfg.target_ratio, cfg.max_target_mb))


def decide(source_size_mb: float, config: CompressionConfig | None = None) -> Decision:
    """Shortcut for ``SizePolicy(config).decide(source_size_mb)``."""
    return SizePolicy(config).decide(source_size_mb)


__all__ = ["BELOW_THRESHOLD", "WITHIN_BOUND", "Compress", "Decision", "SizePolicy", "Skip", "decide"]
