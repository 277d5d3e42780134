"""Tests for the expiring file manager."""
import pytest

from docqa.files import ExpiringFileManager


@pytest.fixture
def manager(clock):
    return ExpiringFileManager(retention_seconds=100, clock=clock)


def make_file(tmp_path, name="doc.txt"):
    path = tmp_path / name
    path.write_text("content")
    return path


@pytest.mark.asyncio
async def test_file_survives_until_retention_ends(manager, clock, tmp_path):
    path = make_file(tmp_path)
    await manager.register("d1", path)

    clock.advance(99)
    assert await manager.sweep() == []
    assert path.exists()

    clock.advance(2)
    assert await manager.sweep() == ["d1"]
    assert not path.exists()
    assert "d1" not in manager


@pytest.mark.asyncio
async def test_held_file_is_not_deleted_until_released(manager, clock, tmp_path):
    path = make_file(tmp_path)
    await manager.register("d1", path)

    held = await manager.acquire("d1")
    assert held == path

    clock.advance(200)
    assert await manager.sweep() == ["d1"]
    assert path.exists()

    # Expired files can't be picked up again
    assert await manager.acquire("d1") is None

    await manager.release("d1", held)
    assert not path.exists()
    assert len(manager) == 0


@pytest.mark.asyncio
async def test_hold_context_manager(manager, clock, tmp_path):
    path = make_file(tmp_path)
    await manager.register("d1", path)

    async with manager.hold("d1") as held:
        assert held == path
        clock.advance(200)
        await manager.sweep()
        assert path.exists()

    assert not path.exists()


@pytest.mark.asyncio
async def test_hold_unknown_key_yields_none(manager):
    async with manager.hold("missing") as held:
        assert held is None


@pytest.mark.asyncio
async def test_discard_deletes_immediately(manager, tmp_path):
    path = make_file(tmp_path)
    await manager.register("d1", path)
    await manager.discard("d1")
    assert not path.exists()
    assert len(manager) == 0


@pytest.mark.asyncio
async def test_discard_while_held_defers_deletion(manager, tmp_path):
    path = make_file(tmp_path)
    await manager.register("d1", path)
    held = await manager.acquire("d1")

    await manager.discard("d1")
    assert path.exists()

    await manager.release("d1", held)
    assert not path.exists()


@pytest.mark.asyncio
async def test_reregistering_replaces_old_file(manager, tmp_path):
    old = make_file(tmp_path, "old.txt")
    new = make_file(tmp_path, "new.txt")
    await manager.register("d1", old)
    await manager.register("d1", new)

    assert not old.exists()
    assert await manager.acquire("d1") == new


@pytest.mark.asyncio
async def test_custom_retention_per_file(manager, clock, tmp_path):
    short = make_file(tmp_path, "short.txt")
    await manager.register("short", short, retention_seconds=5)
    await manager.register("long", make_file(tmp_path, "long.txt"))

    clock.advance(10)
    assert await manager.sweep() == ["short"]


@pytest.mark.asyncio
async def test_acquire_missing_file_on_disk(manager, tmp_path):
    path = make_file(tmp_path)
    await manager.register("d1", path)
    path.unlink()
    assert await manager.acquire("d1") is None


@pytest.mark.asyncio
async def test_clear_removes_everything(manager, tmp_path):
    paths = [make_file(tmp_path, f"f{i}.txt") for i in range(3)]
    for i, path in enumerate(paths):
        await manager.register(f"d{i}", path)

    await manager.clear()
    assert not any(p.exists() for p in paths)
    assert len(manager) == 0
