from pathlib import Path
from typing import Any, Callable

import pytest

from media_compactor import config as cfg

MB = 1024 * 1024


def write_sized(path: Path, size: int) -> Path:
    """Create ``path`` with exactly ``size`` bytes (sparse where supported)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as fh:
        fh.truncate(size)
    return path


@pytest.fixture
def make_asset(tmp_path: Path) -> Callable[..., Path]:
    def _make(name: str = "clip.mp4", size_mb: float = 2.0) -> Path:
        return write_sized(tmp_path / "assets" / name, int(size_mb * MB))

    return _make


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Any:
    """Point every config file and the storage root at ``tmp_path``."""
    user_dir = tmp_path / "user_config"
    local_file = tmp_path / ".mcconfig.yaml"

    monkeypatch.setattr(cfg, "USER_CONFIG_DIR", user_dir)
    monkeypatch.setattr(cfg, "USER_CONFIG_PATH", user_dir / "config.yaml")
    monkeypatch.setattr(cfg, "LOCAL_CONFIG_PATH", local_file)
    monkeypatch.setattr(
        cfg,
        "SOURCE_USER_CONFIG",
        f"user global config file ({user_dir / 'config.yaml'})",
        raising=False,
    )
    monkeypatch.setattr(
        cfg,
        "SOURCE_LOCAL_CONFIG",
        f"local project config file ({local_file})",
        raising=False,
    )
    for key in cfg.DEFAULT_CONFIG:
        monkeypatch.delenv(cfg.ENV_VAR_PREFIX + key.upper(), raising=False)
    monkeypatch.setitem(cfg.DEFAULT_CONFIG, "storage_root", str(tmp_path / "storage"))
    yield tmp_path
