from __future__ import annotations

"""Discovery and registration of compression strategy plugins."""

import importlib.metadata as metadata
import logging

from .strategies.registry import get_strategy_metadata, register_compression_strategy

logger = logging.getLogger(__name__)

ENTRYPOINT_GROUP = "media_compactor.strategies"

_loaded = False


def load_plugins() -> None:
    """Discover and register all compression strategy plugins."""
    global _loaded
    if _loaded:
        return
    _loaded = True

    _load_entrypoint_plugins()


def _load_entrypoint_plugins() -> None:
    eps = metadata.entry_points(group=ENTRYPOINT_GROUP)

    for ep in eps:
        try:
            cls = ep.load()
            dist_name = None
            version = None
            if ep.dist:
                dist_name = ep.dist.metadata.get("Name")
                version = ep.dist.version
            strategy_id = getattr(cls, "id")
            display_name = getattr(cls, "display_name", strategy_id)
            prev = get_strategy_metadata(strategy_id)
            if prev:
                logger.info(
                    "Entry point plugin '%s' overrides %s strategy '%s'",
                    ep.value,
                    prev.get("source"),
                    strategy_id,
                )
            register_compression_strategy(
                strategy_id,
                cls,
                display_name=display_name,
                version=version,
                source=f"plugin ({dist_name or 'unknown'})",
            )
        except Exception as exc:
            logger.warning("Failed to load entry point %s: %s", ep.value, exc)


__all__ = ["load_plugins", "ENTRYPOINT_GROUP"]
