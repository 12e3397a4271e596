import json
import os
from pathlib import Path

from typer.testing import CliRunner

from media_compactor import __version__
from media_compactor import config as cfg
from media_compactor.cli import app

try:
    runner = CliRunner(mix_stderr=False)
except TypeError:
    runner = CliRunner()


def _work_dir(tmp_path: Path) -> Path:
    return tmp_path / "storage" / "videofiles"


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_probe_json(make_asset):
    path = make_asset(size_mb=2)
    result = runner.invoke(app, ["probe", str(path), "--json"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data == {"path": str(path), "exists": True, "size_bytes": 2 * 1024 * 1024, "size_mb": 2.0}


def test_probe_missing(tmp_path):
    result = runner.invoke(app, ["probe", str(tmp_path / "missing.mp4"), "--json"])
    assert result.exit_code == 0
    assert json.loads(result.stdout)["reason"] == "not_found"


def test_compress_skips_small_file(tmp_path, make_asset):
    path = make_asset(size_mb=0.5)
    result = runner.invoke(app, ["compress", str(path), "--json"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["path"] == str(path)
    assert data["reason"] == "below_threshold"
    assert not _work_dir(tmp_path).exists()


def test_compress_large_file(tmp_path, make_asset):
    path = make_asset(size_mb=3)
    result = runner.invoke(
        app, ["compress", str(path), "--max-target-mb", "1", "--min-size-mb", "0.5", "--json"]
    )
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["reason"] == "compressed"
    assert data["strategy_id"] == "simulated"
    assert Path(data["path"]).parent == _work_dir(tmp_path)
    assert data["source_size_mb"] == 3.0
    assert 0 < data["output_size_mb"] <= 1


def test_compress_with_progress_output(tmp_path, make_asset):
    path = make_asset(size_mb=3)
    result = runner.invoke(app, ["compress", str(path), "--max-target-mb", "1"])
    assert result.exit_code == 0
    assert "compressed:" in result.stdout


def test_compress_rejects_invalid_ratio(make_asset):
    path = make_asset(size_mb=3)
    result = runner.invoke(app, ["compress", str(path), "--ratio", "1.5"])
    assert result.exit_code == 1


def test_compress_unknown_strategy(make_asset):
    path = make_asset(size_mb=3)
    result = runner.invoke(app, ["compress", str(path), "--strategy", "nope"])
    assert result.exit_code == 1


def test_purge(tmp_path):
    work = _work_dir(tmp_path)
    work.mkdir(parents=True)
    stale = work / "compressed_1.mp4"
    stale.write_bytes(b"old")
    os.utime(stale, (0, 0))
    keep = work / "other.mp4"
    keep.write_bytes(b"old")
    os.utime(keep, (0, 0))

    result = runner.invoke(app, ["purge"])

    assert result.exit_code == 0
    assert "Removed 1" in result.stdout
    assert not stale.exists()
    assert keep.exists()


def test_storage_root_option(tmp_path, make_asset):
    other_root = tmp_path / "elsewhere"
    path = make_asset(size_mb=3)
    result = runner.invoke(
        app,
        ["--storage-root", str(other_root), "compress", str(path), "--max-target-mb", "1", "--json"],
    )
    assert result.exit_code == 0
    assert Path(json.loads(result.stdout)["path"]).parent == other_root.resolve() / "videofiles"


def test_strategy_list_and_info():
    result = runner.invoke(app, ["strategy", "list"])
    assert result.exit_code == 0
    assert "simulated" in result.stdout
    assert "ffmpeg" in result.stdout

    info = runner.invoke(app, ["strategy", "info", "simulated"])
    assert info.exit_code == 0
    assert json.loads(info.stdout)["strategy_id"] == "simulated"

    missing = runner.invoke(app, ["strategy", "info", "nope"])
    assert missing.exit_code == 1


def test_config_set_and_show():
    result = runner.invoke(app, ["config", "set", "max_target_mb", "25"])
    assert result.exit_code == 0
    assert "Successfully set" in result.stdout
    assert cfg.USER_CONFIG_PATH.exists()

    show = runner.invoke(app, ["config", "show", "--key", "max_target_mb"])
    assert show.exit_code == 0
    assert "25.0" in show.stdout


def test_config_set_invalid_key():
    result = runner.invoke(app, ["config", "set", "bogus", "1"])
    assert result.exit_code == 1


def test_config_show_unknown_key():
    result = runner.invoke(app, ["config", "show", "--key", "bogus"])
    assert result.exit_code == 1


def test_purge_rejects_non_positive_retention(monkeypatch):
    monkeypatch.setenv("MEDIA_COMPACTOR_RETENTION_HOURS", "0")
    result = runner.invoke(app, ["purge"])
    assert result.exit_code == 1


def test_compress_unknown_fallback_strategy(monkeypatch, make_asset):
    monkeypatch.setenv("MEDIA_COMPACTOR_FALLBACK_STRATEGY_ID", "nope")
    path = make_asset(size_mb=3)
    result = runner.invoke(app, ["compress", str(path)])
    assert result.exit_code == 1
