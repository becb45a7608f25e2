from __future__ import annotations

import asyncio
import logging
import threading
from pathlib import Path
from unittest.mock import patch

import pytest

from shortcutsync.catalog.base import CatalogRecord
from shortcutsync.catalog.local import MemoryCatalog
from shortcutsync.config import Settings
from shortcutsync.context import create_context
from shortcutsync.controllers.write_back import WriteBackScheduler, WriteBackState
from shortcutsync.services.reconcile_service import ReconcileService
from shortcutsync.shortcuts.records import ShortcutRecord
from shortcutsync.shortcuts.vdf import load_shortcuts_vdf, save_shortcuts_vdf

PLUGIN = "steam-shortcuts"
DELAY = 0.2


class Recorder:
    def __init__(self):
        self.value = None
        self.calls = []

    async def flush(self):
        self.calls.append(self.value)


@pytest.mark.asyncio
async def test_burst_of_notifications_flushes_once_with_latest_state() -> None:
    recorder = Recorder()
    scheduler = WriteBackScheduler(recorder.flush, delay=DELAY)

    for i in range(5):
        recorder.value = i
        scheduler.notify()
        await asyncio.sleep(0.01)

    assert scheduler.state == WriteBackState.PENDING_FLUSH
    assert recorder.calls == []

    await asyncio.sleep(DELAY * 2)
    await scheduler.flush_task

    assert recorder.calls == [4]
    assert scheduler.state == WriteBackState.IDLE


@pytest.mark.asyncio
async def test_separate_bursts_flush_separately() -> None:
    recorder = Recorder()
    scheduler = WriteBackScheduler(recorder.flush, delay=0.05)

    recorder.value = "a"
    scheduler.notify()
    await asyncio.sleep(0.2)
    recorder.value = "b"
    scheduler.notify()
    await asyncio.sleep(0.2)

    assert recorder.calls == ["a", "b"]


@pytest.mark.asyncio
async def test_shutdown_drops_pending_flush() -> None:
    recorder = Recorder()
    scheduler = WriteBackScheduler(recorder.flush, delay=DELAY)

    scheduler.notify()
    scheduler.shutdown()
    scheduler.notify()
    await asyncio.sleep(DELAY * 2)

    assert recorder.calls == []
    assert scheduler.state == WriteBackState.IDLE


@pytest.mark.asyncio
async def test_stop_cancels_running_flush() -> None:
    started = asyncio.Event()
    finished = []

    async def slow_flush():
        started.set()
        await asyncio.sleep(10)
        finished.append(True)

    scheduler = WriteBackScheduler(slow_flush, delay=0.01)
    scheduler.notify()
    await asyncio.wait_for(started.wait(), timeout=2)

    await scheduler.stop()

    assert scheduler.flush_task.cancelled()
    assert finished == []


@pytest.mark.asyncio
async def test_flush_errors_are_logged(caplog) -> None:
    async def failing_flush():
        raise RuntimeError("boom")

    scheduler = WriteBackScheduler(failing_flush, delay=0.01)
    with caplog.at_level(logging.ERROR):
        scheduler.notify()
        await asyncio.sleep(0.1)
        await scheduler.flush_task

    assert "boom" in caplog.text
    assert scheduler.state == WriteBackState.IDLE


@pytest.mark.asyncio
async def test_notify_from_another_thread() -> None:
    recorder = Recorder()
    scheduler = WriteBackScheduler(recorder.flush, delay=0.05, loop=asyncio.get_running_loop())

    thread = threading.Thread(target=scheduler.notify_threadsafe)
    thread.start()
    thread.join()
    await asyncio.sleep(0.3)

    assert recorder.calls == [None]


@pytest.mark.asyncio
async def test_thread_edit_before_any_notify_is_not_lost() -> None:
    recorder = Recorder()
    catalog = MemoryCatalog([CatalogRecord(name="Mine", plugin_id=PLUGIN)])
    scheduler = WriteBackScheduler(recorder.flush, delay=0.05)
    scheduler.attach(catalog, PLUGIN)
    [game] = catalog.list_games()

    def edit():
        recorder.value = 1
        catalog.update_game(game)

    thread = threading.Thread(target=edit)
    thread.start()
    thread.join()
    await asyncio.sleep(0.3)

    assert recorder.calls == [1]
    await scheduler.stop()


def test_attach_needs_a_loop() -> None:
    scheduler = WriteBackScheduler(Recorder().flush)
    with pytest.raises(RuntimeError):
        scheduler.attach(MemoryCatalog(), PLUGIN)


def test_notify_threadsafe_needs_a_loop() -> None:
    scheduler = WriteBackScheduler(Recorder().flush)
    with pytest.raises(RuntimeError):
        scheduler.notify_threadsafe()


@pytest.mark.asyncio
async def test_attach_only_reacts_to_own_records() -> None:
    catalog = MemoryCatalog()
    scheduler = WriteBackScheduler(Recorder().flush, delay=DELAY)
    scheduler.attach(catalog, PLUGIN)

    with patch.object(scheduler, "notify") as notify:
        catalog.add_games([CatalogRecord(name="Other", plugin_id="gog")])
        notify.assert_not_called()
        catalog.add_games([CatalogRecord(name="Mine", plugin_id=PLUGIN)])
        notify.assert_called_once()

        scheduler.detach()
        catalog.add_games([CatalogRecord(name="Mine 2", plugin_id=PLUGIN)])
        notify.assert_called_once()


@pytest.mark.asyncio
async def test_catalog_edits_are_written_back(tmp_path: Path) -> None:
    vdf_path = tmp_path / "userdata" / "42" / "config" / "shortcuts.vdf"
    save_shortcuts_vdf(str(vdf_path), [
        ShortcutRecord(app_name="Foo", exe='"/games/foo/foo.exe"', start_dir='"/games/foo"', app_id=0x80000001),
    ])
    catalog = MemoryCatalog()
    settings = Settings(plugin_id=PLUGIN, write_back_delay=0.05)
    service = ReconcileService(create_context(
        catalog, data_dir=str(tmp_path / "data"), settings=settings, vdf_path=str(vdf_path)
    ))
    await service.import_from_steam()

    scheduler = service.start_write_back()
    assert scheduler.delay == 0.05
    assert service.start_write_back() is scheduler
    try:
        [game] = catalog.list_games()
        game.name = "Foo Renamed"
        catalog.update_game(game)
        await asyncio.sleep(0.3)
    finally:
        await service.stop_write_back()

    assert service.write_back_scheduler is None
    assert [s.app_name for s in load_shortcuts_vdf(str(vdf_path))] == ["Foo Renamed"]
