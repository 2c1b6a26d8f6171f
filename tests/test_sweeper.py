"""Tests for the expiry sweeper."""

import asyncio
import json

import pytest

from keygate.errors import NotFoundError, StorageError
from keygate.models import KeyRecord
from keygate.sweeper import ExpirySweeper

from .conftest import SHORT_URL


class TestRunOnce:
    """Test a single sweep."""

    def test_removes_only_expired_unused(self, engine, sweeper, store, clock):
        stale = engine.issue("https://example.com/stale", SHORT_URL)
        redeemed = engine.issue("https://example.com/used", SHORT_URL)
        engine.redeem(redeemed.id)
        store.save(store.records + (KeyRecord(id="legacy", used=False),))
        clock.advance(hours=20)
        fresh = engine.issue("https://example.com/fresh", SHORT_URL)
        clock.advance(hours=5)

        removed = sweeper.run_once()

        assert removed == 1
        remaining = {r.id for r in store.records}
        assert remaining == {redeemed.id, "legacy", fresh.id}
        assert stale.id not in remaining

    def test_persists_removal(self, engine, sweeper, clock, keys_path):
        engine.issue("https://example.com/a", SHORT_URL)
        clock.advance(days=2)

        sweeper.run_once()
        assert json.loads(keys_path.read_text()) == []

    def test_no_write_when_nothing_removed(self, engine, sweeper, store, monkeypatch):
        engine.issue("https://example.com/a", SHORT_URL)
        calls = []
        monkeypatch.setattr(store, "save", lambda records: calls.append(records))

        assert sweeper.run_once() == 0
        assert calls == []

    def test_used_and_undated_keys_survive_repeated_sweeps(self, engine, sweeper, store, clock):
        record = engine.issue("https://example.com/a", SHORT_URL)
        engine.redeem(record.id)
        store.save(store.records + (KeyRecord(id="legacy"),))

        for _ in range(5):
            clock.advance(days=30)
            sweeper.run_once()

        assert {r.id for r in store.records} == {record.id, "legacy"}

    def test_redeem_after_sweep_is_not_found(self, engine, sweeper, clock):
        record = engine.issue("https://example.com/a", SHORT_URL)
        clock.advance(hours=25)
        sweeper.run_once()

        with pytest.raises(NotFoundError):
            engine.redeem(record.id)

    def test_redeemed_key_is_sweep_immune(self, engine, sweeper, store, clock):
        record = engine.issue("https://example.com/a", SHORT_URL)
        clock.advance(hours=23)
        engine.redeem(record.id)
        clock.advance(hours=5)

        assert sweeper.run_once() == 0
        assert store.records[0].used


@pytest.mark.asyncio
class TestBackgroundTask:
    """Test the periodic asyncio task."""

    async def test_sweeps_periodically(self, engine, store, clock):
        engine.issue("https://example.com/a", SHORT_URL)
        clock.advance(days=2)
        sweeper = ExpirySweeper(store, interval=0.01, clock=clock)

        sweeper.start()
        assert sweeper.running
        for _ in range(100):
            if not store.records:
                break
            await asyncio.sleep(0.01)
        await sweeper.stop()

        assert store.records == ()
        assert not sweeper.running

    async def test_storage_error_does_not_stop_loop(self, store, monkeypatch):
        sweeper = ExpirySweeper(store, interval=0.01)
        runs = []

        def failing_run_once():
            runs.append(1)
            raise StorageError("disk full")

        monkeypatch.setattr(sweeper, "run_once", failing_run_once)

        sweeper.start()
        for _ in range(100):
            if len(runs) >= 2:
                break
            await asyncio.sleep(0.01)

        assert sweeper.running
        await sweeper.stop()
        assert len(runs) >= 2

    async def test_unexpected_error_does_not_stop_loop(self, store, monkeypatch):
        sweeper = ExpirySweeper(store, interval=0.01)
        runs = []

        def broken_run_once():
            runs.append(1)
            raise RuntimeError("boom")

        monkeypatch.setattr(sweeper, "run_once", broken_run_once)

        sweeper.start()
        for _ in range(100):
            if len(runs) >= 2:
                break
            await asyncio.sleep(0.01)

        assert sweeper.running
        await sweeper.stop()
        assert len(runs) >= 2

    async def test_stop_after_task_crashed(self, store):
        async def crash():
            raise RuntimeError("boom")

        sweeper = ExpirySweeper(store, interval=3600)
        sweeper._task = asyncio.get_running_loop().create_task(crash())
        await asyncio.sleep(0)

        await sweeper.stop()
        assert not sweeper.running
        assert sweeper._task is None

    async def test_start_twice_and_stop_without_start(self, store):
        sweeper = ExpirySweeper(store, interval=3600)
        await sweeper.stop()

        sweeper.start()
        task = sweeper._task
        sweeper.start()
        assert sweeper._task is task

        await sweeper.stop()
