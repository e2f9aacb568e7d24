import asyncio

import pytest

from livesync.client.sync_manager import ClientSyncManager
from livesync.config.models import ClientConfig, ConnectionMode
from livesync.models.health import SyncStatus
from services.watcher.main import DashboardWatcher


@pytest.mark.asyncio
async def test_watcher_follows_manager_until_stopped(make_snapshot, wait_until):
    async def fetch():
        return make_snapshot(3)

    config = ClientConfig(default_mode=ConnectionMode.POLLING, poll_interval_ms=10)
    manager = ClientSyncManager(config, fetch=fetch)
    watcher = DashboardWatcher(config, manager=manager)

    task = asyncio.create_task(watcher.run())
    await wait_until(lambda: watcher.snapshots_seen >= 2)
    watcher.stop()
    await asyncio.wait_for(task, timeout=2)

    assert manager.status == SyncStatus.DISCONNECTED
    assert not manager.poll.is_running
