"""Media compactor package with lazy loading of submodules."""

from __future__ import annotations

import importlib
from typing import Any

__all__ = [
    "AbsentAsset",
    "AssetProbe",
    "CompressionConfig",
    "CompressionOrchestrator",
    "CompressionReport",
    "CompressionStrategy",
    "OutcomeReason",
    "PresentAsset",
    "RetentionManager",
    "SizePolicy",
    "probe_asset",
    "produce_compressed_copy",
    "purge_old_artifacts",
    "register_compression_strategy",
    "get_compression_strategy",
    "available_strategies",
]

_lazy_map = {
    "AbsentAsset": "media_compactor.probe",
    "AssetProbe": "media_compactor.probe",
    "PresentAsset": "media_compactor.probe",
    "CompressionConfig": "media_compactor.compression_config",
    "CompressionOrchestrator": "media_compactor.orchestrator",
    "CompressionReport": "media_compactor.orchestrator",
    "OutcomeReason": "media_compactor.orchestrator",
    "CompressionStrategy": "media_compactor.strategies",
    "RetentionManager": "media_compactor.retention",
    "SizePolicy": "media_compactor.policy",
    "probe_asset": "media_compactor.api",
    "produce_compressed_copy": "media_compactor.api",
    "purge_old_artifacts": "media_compactor.api",
    "register_compression_strategy": "media_compactor.strategies",
    "get_compression_strategy": "media_compactor.strategies",
    "available_strategies": "media_compactor.strategies",
}


def __getattr__(name: str) -> Any:  # pragma: no cover - simple passthrough
    if name in _lazy_map:
        module = importlib.import_module(_lazy_map[name])
        value = getattr(module, name)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:  # pragma: no cover - for completeness
    return sorted(list(globals().keys()) + list(_lazy_map.keys()))


__version__ = "0.1.0"
