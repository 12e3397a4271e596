from __future__ import annotations

"""Strategy registry: maps ids to strategy classes and builds instances."""

import logging
from typing import Dict, List, Optional, Type, TYPE_CHECKING

from ..exceptions import StrategyError

if TYPE_CHECKING:  # pragma: no cover - for type checkers only
    from ..config import Config
    from ..fs import LocalFileSystem
    from .base import CompressionStrategy

logger = logging.getLogger(__name__)

_STRATEGY_REGISTRY: Dict[str, Type["CompressionStrategy"]] = {}
_STRATEGY_INFO: Dict[str, Dict[str, Optional[str]]] = {}


def _ensure_plugins_loaded() -> None:
    from media_compactor.plugin_loader import load_plugins

    load_plugins()


def _describe(cls: type) -> str:
    doc = (cls.__doc__ or "").strip()
    return doc.splitlines()[0] if doc else ""


def register_compression_strategy(
    id: str,
    cls: Type["CompressionStrategy"],
    *,
    display_name: str | None = None,
    version: str | None = None,
    source: str = "built-in",
) -> None:
    """Register ``cls`` under ``id``.

    Raises :class:`StrategyError` when ``cls`` is not a concrete
    :class:`CompressionStrategy` or ``id`` is empty. Registering an id twice
    replaces the earlier class and records which source it overrode.
    """
    from .base import CompressionStrategy

    if not id:
        raise StrategyError("strategy id must not be empty")
    if not isinstance(cls, type) or not issubclass(cls, CompressionStrategy):
        raise StrategyError(f"{cls!r} is not a CompressionStrategy")
    if getattr(cls, "__abstractmethods__", None):
        raise StrategyError(f"{cls.__name__} does not implement run()")

    prev = _STRATEGY_INFO.get(id)
    if prev:
        logger.debug("Strategy '%s' from %s replaced by %s", id, prev["source"], source)
    _STRATEGY_REGISTRY[id] = cls
    _STRATEGY_INFO[id] = {
        "display_name": display_name or id,
        "description": _describe(cls),
        "version": version or "N/A",
        "source": source,
        "overrides": prev["source"] if prev else None,
    }


def get_compression_strategy(id: str) -> Type["CompressionStrategy"]:
    """Return the class registered under ``id``; ``KeyError`` if unknown."""
    _ensure_plugins_loaded()
    return _STRATEGY_REGISTRY[id]


def create_compression_strategy(
    id: str,
    *,
    config: Optional["Config"] = None,
    fs: Optional["LocalFileSystem"] = None,
) -> "CompressionStrategy":
    """Build the strategy registered under ``id`` from application settings.

    Each class decides which settings it reads through its ``from_config``
    classmethod. Unknown ids raise ``KeyError``; a class that fails to build
    raises :class:`StrategyError`.
    """
    cls = get_compression_strategy(id)
    try:
        return cls.from_config(config, fs=fs)
    except (TypeError, ValueError) as exc:
        raise StrategyError(f"Could not build strategy '{id}': {exc}") from exc


def available_strategies() -> List[str]:
    _ensure_plugins_loaded()
    return sorted(_STRATEGY_REGISTRY)


def get_strategy_metadata(id: str) -> Dict[str, Optional[str]] | None:
    _ensure_plugins_loaded()
    info = _STRATEGY_INFO.get(id)
    if info is None:
        return None
    return {"strategy_id": id, **info}


def all_strategy_metadata() -> Dict[str, Dict[str, Optional[str]]]:
    _ensure_plugins_loaded()
    return {id: {"strategy_id": id, **info} for id, info in _STRATEGY_INFO.items()}


__all__ = [
    "all_strategy_metadata",
    "available_strategies",
    "create_compression_strategy",
    "get_compression_strategy",
    "get_strategy_metadata",
    "register_compression_strategy",
]
