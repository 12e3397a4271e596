import asyncio
import os
from datetime import timedelta
from pathlib import Path

import pytest

from media_compactor.exceptions import DirectoryInitError
from media_compactor.fs import LocalFileSystem
from media_compactor.retention import RetentionManager

from conftest import write_sized

NOW = 1_700_000_000.0
HOUR = 3600


def _aged(path, age_seconds):
    write_sized(path, 16)
    os.utime(path, (NOW - age_seconds, NOW - age_seconds))
    return path


class FlakyStatFS(LocalFileSystem):
    def __init__(self, broken_name):
        self.broken_name = broken_name

    async def modified_time(self, path):
        if os.path.basename(path) == self.broken_name:
            raise PermissionError(13, "Permission denied", str(path))
        return await super().modified_time(path)


@pytest.mark.asyncio
async def test_ensure_working_directory_is_idempotent(tmp_path):
    manager = RetentionManager(tmp_path / "a" / "b" / "videofiles")
    first = await manager.ensure_working_directory()
    second = await manager.ensure_working_directory()
    assert first == second
    assert first.is_dir()


@pytest.mark.asyncio
async def test_ensure_working_directory_failure(tmp_path):
    blocker = write_sized(tmp_path / "not_a_dir", 4)
    manager = RetentionManager(blocker / "videofiles")
    with pytest.raises(DirectoryInitError):
        await manager.ensure_working_directory()


@pytest.mark.asyncio
async def test_new_output_path_format(tmp_path):
    manager = RetentionManager(tmp_path, clock=lambda: NOW)
    path = await manager.new_output_path()
    assert path.parent == tmp_path
    assert path.name == f"compressed_{int(NOW * 1000)}.mp4"


@pytest.mark.asyncio
async def test_new_output_path_unique_within_same_millisecond(tmp_path):
    manager = RetentionManager(tmp_path, clock=lambda: NOW)
    paths = set(await asyncio.gather(*(manager.new_output_path() for _ in range(50))))
    assert len(paths) == 50
    assert all(p.name.startswith("compressed_") and p.suffix == ".mp4" for p in paths)


@pytest.mark.asyncio
async def test_new_output_path_skips_existing_file(tmp_path):
    manager = RetentionManager(tmp_path, clock=lambda: NOW)
    write_sized(tmp_path / f"compressed_{int(NOW * 1000)}.mp4", 4)
    path = await manager.new_output_path()
    assert path.name == f"compressed_{int(NOW * 1000) + 1}.mp4"


@pytest.mark.asyncio
async def test_new_output_path_checks_through_fs(tmp_path):
    class TakenFS(LocalFileSystem):
        def __init__(self):
            self.checked = []

        async def exists(self, path):
            self.checked.append(Path(path).name)
            return len(self.checked) < 3

    fs = TakenFS()
    manager = RetentionManager(tmp_path, fs=fs, clock=lambda: NOW)
    path = await manager.new_output_path()
    assert len(fs.checked) == 3
    assert path.name == fs.checked[-1] == f"compressed_{int(NOW * 1000) + 2}.mp4"


@pytest.mark.asyncio
async def test_fallback_output_path_uses_fallback_prefix(tmp_path):
    manager = RetentionManager(tmp_path, clock=lambda: NOW)
    first = await manager.new_output_path()
    second = await manager.new_output_path(fallback=True)
    assert second.name == f"fallback_compressed_{int(NOW * 1000) + 1}.mp4"
    assert manager.is_artifact(first.name)
    assert manager.is_artifact(second.name)
    assert not manager.is_artifact("other_compressed_1.mp4")


@pytest.mark.asyncio
async def test_purge_deletes_only_stale_prefixed_files(tmp_path):
    work = tmp_path / "videofiles"
    old = _aged(work / "compressed_1.mp4", 48 * HOUR)
    older = _aged(work / "compressed_2.mp4", 25 * HOUR)
    fresh = _aged(work / "compressed_3.mp4", 1 * HOUR)
    fallback = _aged(work / "fallback_compressed_4.mp4", 30 * HOUR)
    unrelated_old = _aged(work / "holiday.mp4", 72 * HOUR)

    manager = RetentionManager(work, clock=lambda: NOW)
    removed = await manager.purge_stale()

    assert sorted(removed) == sorted([old, older, fallback])
    assert not old.exists() and not older.exists() and not fallback.exists()
    assert fresh.exists()
    assert unrelated_old.exists()


@pytest.mark.asyncio
async def test_purge_keeps_file_exactly_at_window(tmp_path):
    work = tmp_path / "videofiles"
    edge = _aged(work / "compressed_edge.mp4", 24 * HOUR)
    manager = RetentionManager(work, clock=lambda: NOW)
    assert await manager.purge_stale(timedelta(hours=24)) == []
    assert edge.exists()


@pytest.mark.asyncio
async def test_purge_custom_window(tmp_path):
    work = tmp_path / "videofiles"
    stale = _aged(work / "compressed_1.mp4", 2 * HOUR)
    manager = RetentionManager(work, clock=lambda: NOW)
    assert await manager.purge_stale(timedelta(hours=1)) == [stale]


@pytest.mark.asyncio
async def test_purge_entry_failure_does_not_abort(tmp_path):
    work = tmp_path / "videofiles"
    _aged(work / "compressed_a.mp4", 48 * HOUR)
    broken = _aged(work / "compressed_b.mp4", 48 * HOUR)
    _aged(work / "compressed_c.mp4", 48 * HOUR)

    manager = RetentionManager(work, fs=FlakyStatFS("compressed_b.mp4"), clock=lambda: NOW)
    removed = await manager.purge_stale()

    assert [p.name for p in removed] == ["compressed_a.mp4", "compressed_c.mp4"]
    assert broken.exists()


@pytest.mark.asyncio
async def test_purge_unreachable_directory_is_noop(tmp_path):
    blocker = write_sized(tmp_path / "not_a_dir", 4)
    manager = RetentionManager(blocker / "videofiles")
    assert await manager.purge_stale() == []


@pytest.mark.asyncio
async def test_purge_creates_missing_directory(tmp_path):
    manager = RetentionManager(tmp_path / "fresh")
    assert await manager.purge_stale() == []
    assert (tmp_path / "fresh").is_dir()


@pytest.mark.asyncio
async def test_list_artifacts(tmp_path):
    work = tmp_path / "videofiles"
    write_sized(work / "compressed_1.mp4", 4)
    write_sized(work / "notes.txt", 4)
    manager = RetentionManager(work)
    assert [p.name for p in await manager.list_artifacts()] == ["compressed_1.mp4"]
    assert await RetentionManager(tmp_path / "missing").list_artifacts() == []


@pytest.mark.asyncio
async def test_delete_is_idempotent(tmp_path):
    fs = LocalFileSystem()
    await fs.delete(tmp_path / "never_existed.mp4")
