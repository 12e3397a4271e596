import pytest

from media_compactor.fs import LocalFileSystem
from media_compactor.probe import AbsentAsset, AssetProbe, PresentAsset, bytes_to_mb

from conftest import MB, write_sized


class PermissionDeniedFS(LocalFileSystem):
    async def size(self, path):
        raise PermissionError(13, "Permission denied", str(path))


def test_bytes_to_mb_rounds_to_two_decimals():
    assert bytes_to_mb(MB) == 1.0
    assert bytes_to_mb(1_234_567) == 1.18
    assert bytes_to_mb(int(1.5 * MB)) == 1.5


@pytest.mark.asyncio
async def test_present_asset(tmp_path):
    path = write_sized(tmp_path / "video.mp4", 3 * MB)
    info = await AssetProbe().probe(path)
    assert isinstance(info, PresentAsset)
    assert info.exists
    assert info.path == str(path)
    assert info.size_bytes == 3 * MB
    assert info.size_mb == 3.0


@pytest.mark.asyncio
async def test_missing_file_is_absent(tmp_path):
    info = await AssetProbe().probe(tmp_path / "nope.mp4")
    assert isinstance(info, AbsentAsset)
    assert not info.exists
    assert info.reason == "not_found"


@pytest.mark.asyncio
async def test_zero_byte_file_is_absent(tmp_path):
    path = write_sized(tmp_path / "empty.mp4", 0)
    info = await AssetProbe().probe(str(path))
    assert info == AbsentAsset(str(path), "empty")


@pytest.mark.asyncio
async def test_io_fault_is_absent_not_raised(tmp_path):
    path = write_sized(tmp_path / "locked.mp4", MB)
    info = await AssetProbe(PermissionDeniedFS()).probe(path)
    assert isinstance(info, AbsentAsset)
    assert info.reason == "access_error"


@pytest.mark.asyncio
async def test_directory_is_absent(tmp_path):
    info = await AssetProbe().probe(tmp_path)
    assert isinstance(info, AbsentAsset)


@pytest.mark.asyncio
async def test_probe_is_not_cached(tmp_path):
    path = write_sized(tmp_path / "grow.mp4", MB)
    probe = AssetProbe()
    first = await probe.probe(path)
    write_sized(path, 2 * MB)
    second = await probe.probe(path)
    assert first.size_mb == 1.0
    assert second.size_mb == 2.0
