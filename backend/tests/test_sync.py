"""
backend/tests/test_sync.py

Purpose:
    LiveBetsSync: push payload decoding, idempotent snapshot application,
    monotonic persisted marker, rate updates and the reconnect loop.
"""

from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager

import pytest

from betoff.client.state import LAST_UPDATE_KEY, ClientStateFile
from betoff.client.sync import (
    FullReplace,
    FullReplaceWithTimestamp,
    LiveBetsSync,
    SyncState,
    UnknownPayload,
    decode_bets_update,
)
from betoff.config import settings


class _FakeApi:
    websocket_url = "ws://betoff.test/ws"

    def __init__(self, *, bets=None, meta=0, rate=90.0):
        self.bets = bets or []
        self.meta = meta
        self.rate = rate
        self.meta_calls = 0
        self.bets_calls = 0

    async def fetch_bets(self):
        self.bets_calls += 1
        return list(self.bets)

    async def fetch_meta(self):
        self.meta_calls += 1
        return self.meta

    async def fetch_rate(self):
        return self.rate


def _sync(tmp_path, api=None, **kwargs) -> LiveBetsSync:
    return LiveBetsSync(api or _FakeApi(), state_file=ClientStateFile(tmp_path / "viewer.json"), **kwargs)


def test_decode_bets_update_variants():
    assert decode_bets_update([{"id": "1"}, 5]) == FullReplace(items=[{"id": "1"}])
    assert decode_bets_update({"items": [], "updatedAt": 12}) == FullReplaceWithTimestamp(items=[], updated_at=12)
    assert decode_bets_update({"items": []}, now=99) == FullReplaceWithTimestamp(items=[], updated_at=99)
    assert decode_bets_update({"items": "nope"}) == UnknownPayload()
    assert decode_bets_update("text") == UnknownPayload()
    assert decode_bets_update(None) == UnknownPayload()


@pytest.mark.asyncio
async def test_timestamped_snapshot_is_idempotent(tmp_path):
    sync = _sync(tmp_path)
    payload = {"items": [{"id": "1"}, {"id": "2"}], "updatedAt": 1000}
    await sync.apply_bets_update(payload)
    first = (list(sync.bets), sync.last_updated_ms)
    await sync.apply_bets_update(payload)
    assert (sync.bets, sync.last_updated_ms) == first
    assert sync.last_updated_ms == 1000


@pytest.mark.asyncio
async def test_marker_never_moves_backwards(tmp_path):
    sync = _sync(tmp_path)
    await sync.apply_bets_update({"items": [{"id": "new"}], "updatedAt": 2000})
    await sync.apply_bets_update({"items": [{"id": "old"}], "updatedAt": 1500})
    assert sync.bets == [{"id": "old"}]
    assert sync.last_updated_ms == 2000


@pytest.mark.asyncio
async def test_bare_list_refreshes_marker_from_server(tmp_path):
    api = _FakeApi(meta=5000)
    sync = _sync(tmp_path, api)
    decoded = await sync.apply_bets_update([{"id": "1"}])
    assert isinstance(decoded, FullReplace)
    assert sync.bets == [{"id": "1"}]
    assert api.meta_calls == 1
    assert sync.last_updated_ms == 5000


@pytest.mark.asyncio
async def test_unknown_payload_keeps_data_and_bumps_marker(tmp_path):
    sync = _sync(tmp_path)
    await sync.apply_bets_update({"items": [{"id": "1"}], "updatedAt": 10})
    await sync.apply_bets_update({"weird": True})
    assert sync.bets == [{"id": "1"}]
    assert sync.last_updated_ms > 10


@pytest.mark.asyncio
async def test_marker_persists_across_restarts(tmp_path):
    sync = _sync(tmp_path)
    await sync.apply_bets_update({"items": [], "updatedAt": 777})
    saved = json.loads((tmp_path / "viewer.json").read_text(encoding="utf-8"))
    assert saved[LAST_UPDATE_KEY] == 777

    restarted = _sync(tmp_path)
    assert restarted.last_updated_ms == 777
    assert restarted.state is SyncState.disconnected


@pytest.mark.asyncio
async def test_tentative_removal_is_superseded_by_snapshot(tmp_path):
    sync = _sync(tmp_path)
    await sync.apply_bets_update({"items": [{"id": "1"}, {"id": "2"}], "updatedAt": 1})
    sync.remove_tentatively("1")
    assert [bet["id"] for bet in sync.visible_bets()] == ["2"]
    await sync.apply_bets_update({"items": [{"id": "1"}, {"id": "2"}], "updatedAt": 2})
    assert [bet["id"] for bet in sync.visible_bets()] == ["1", "2"]


def test_rate_update_validation(tmp_path):
    sync = _sync(tmp_path)
    assert sync.rate == settings.DEFAULT_RUB_RATE
    assert sync.apply_rate_update({"rubPerUsdt": 95}) is True
    assert sync.rate == 95
    assert sync.apply_rate_update({"rubPerUsdt": 95}) is False
    for bad in ({"rubPerUsdt": 0}, {"rubPerUsdt": "x"}, {"rubPerUsdt": None}, {}, "95", {"rubPerUsdt": float("nan")}):
        assert sync.apply_rate_update(bad) is False
    assert sync.rate == 95


@pytest.mark.asyncio
async def test_handle_message_routes_events(tmp_path):
    sync = _sync(tmp_path)
    await sync.handle_message(json.dumps({"type": "bets:update", "data": {"items": [{"id": "9"}], "updatedAt": 3}}))
    await sync.handle_message(json.dumps({"type": "rate:update", "data": {"rubPerUsdt": 100}}))
    await sync.handle_message(json.dumps({"type": "ping", "data": {}}))
    await sync.handle_message("not json")
    assert sync.bets == [{"id": "9"}]
    assert sync.rate == 100


@pytest.mark.asyncio
async def test_initial_fetch_tolerates_partial_failure(tmp_path):
    class _BrokenBetsApi(_FakeApi):
        async def fetch_bets(self):
            raise OSError("down")

    sync = _sync(tmp_path, _BrokenBetsApi(meta=50, rate=91))
    await sync.initial_fetch()
    assert sync.bets == []
    assert sync.last_updated_ms == 50
    assert sync.rate == 91


@pytest.mark.asyncio
async def test_run_syncs_follows_stream_and_reconnects(tmp_path):
    api = _FakeApi(bets=[{"id": "a"}], meta=10, rate=90)
    attempts = []
    states = []

    @asynccontextmanager
    async def connector(url):
        attempts.append(url)
        if len(attempts) == 1:
            raise OSError("refused")

        async def stream():
            yield json.dumps({"type": "bets:update", "data": {"items": [{"id": "b"}], "updatedAt": 20}})
            if len(attempts) == 3:
                sync.stop()
                yield json.dumps({"type": "rate:update", "data": {"rubPerUsdt": 99}})

        yield stream()

    sync = _sync(tmp_path, api, connector=connector, reconnect_min_seconds=0, reconnect_max_seconds=0)
    sync.add_listener(lambda s: states.append(s.state))
    await asyncio.wait_for(sync.run(), timeout=5)

    assert attempts == [api.websocket_url] * 3
    assert api.bets_calls == 1
    assert sync.bets == [{"id": "b"}]
    assert sync.last_updated_ms == 20
    assert sync.rate == 99
    assert sync.state is SyncState.disconnected
    assert SyncState.synced in states
    assert SyncState.connecting in states


@pytest.mark.asyncio
async def test_local_clock_fallback_does_not_block_server_markers(tmp_path, monkeypatch):
    import betoff.client.sync as sync_module

    monkeypatch.setattr(sync_module, "now_ms", lambda: 10_000_000)
    sync = _sync(tmp_path)
    await sync.apply_bets_update({"unexpected": True})
    assert sync.last_updated_ms == 10_000_000

    await sync.apply_bets_update({"items": [{"id": "1"}], "updatedAt": 5000})
    assert sync.last_updated_ms == 5000


@pytest.mark.asyncio
async def test_server_marker_lower_than_persisted_value_is_adopted(tmp_path):
    ClientStateFile(tmp_path / "viewer.json").set(LAST_UPDATE_KEY, 9_999_999)
    api = _FakeApi(meta=1200)
    sync = _sync(tmp_path, api)
    assert sync.last_updated_ms == 9_999_999
    await sync.refresh_marker()
    assert sync.last_updated_ms == 1200


@pytest.mark.asyncio
async def test_failed_first_fetch_is_retried_on_reconnect(tmp_path):
    class _FlakyApi(_FakeApi):
        async def fetch_bets(self):
            self.bets_calls += 1
            if self.bets_calls == 1:
                raise OSError("down")
            return [{"id": "a"}]

    api = _FlakyApi(meta=10)
    attempts = []

    @asynccontextmanager
    async def connector(url):
        attempts.append(url)

        async def stream():
            if len(attempts) == 2:
                sync.stop()
            yield json.dumps({"type": "ping", "data": {}})

        yield stream()

    sync = _sync(tmp_path, api, connector=connector, reconnect_min_seconds=0, reconnect_max_seconds=0)
    await asyncio.wait_for(sync.run(), timeout=5)

    assert len(attempts) == 2
    assert api.bets_calls == 2
    assert sync.bets == [{"id": "a"}]
