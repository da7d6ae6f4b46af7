"""
Tests for the door console client: polling, stale responses and action guards
"""

import asyncio
import json

import httpx
import pytest

from app.client.console import ActionGuard, DoorConsole, ListingSnapshot
from app.client.http import DoorClient
from app.core.errors import ActionInProgress, Forbidden, LimitReached, NotFound, StoreError

def guest(guest_id, status="pending", name="KIM"):
    return {"id": guest_id, "venue_id": 1, "name": name, "date": "2025-03-01", "status": status,
            "check_in_time": None, "staff_user_id": None, "external_link_id": None}

def listing(*guests):
    counts = {"total": len(guests), "pending": 0, "checked": 0}
    for g in guests:
        counts[g["status"]] += 1
    return {"success": True, "message": "ok", "data": {"guests": list(guests), "counts": counts}}

def envelope(data):
    return {"success": True, "message": "ok", "data": data}

def failure(error_code, message="nope"):
    return {"success": False, "message": message, "error_code": error_code, "details": None}

class ScriptedServer:
    """MockTransport handler whose responses can be held back"""

    def __init__(self):
        self.listings = []
        self.listing_gates = []
        self.actions = {}
        self.gates = {}
        self.requests = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        key = (request.method, request.url.path)
        self.requests.append(key)

        # Responses are fixed when the request arrives, then optionally held
        if request.url.path.endswith("/guests") and request.method == "GET":
            status, body = self.listings.pop(0)
            gate = self.listing_gates.pop(0) if self.listing_gates else None
        else:
            status, body = self.actions[key]
            gate = self.gates.get(key)

        if gate is not None:
            await gate.wait()
        return httpx.Response(status, content=json.dumps(body), headers={"content-type": "application/json"})

@pytest.fixture
def server():
    return ScriptedServer()

@pytest.fixture
def client(server):
    return DoorClient("http://testserver", "session-token", transport=httpx.MockTransport(server))

class TestDoorClient:
    """Test envelope handling"""

    @pytest.mark.asyncio
    async def test_error_envelopes_map_to_ledger_errors(self, server, client):
        server.actions[("POST", "/staff/guests/1/check-in")] = (403, failure("forbidden", "Insufficient role"))
        server.actions[("POST", "/staff/guests/2/check-in")] = (404, failure("not_found"))

        with pytest.raises(Forbidden) as excinfo:
            await client.check_in(1)
        assert excinfo.value.message == "Insufficient role"
        with pytest.raises(NotFound):
            await client.check_in(2)

    @pytest.mark.asyncio
    async def test_unexpected_body_is_store_error(self, client):
        async def handler(request):
            return httpx.Response(502, text="Bad Gateway")

        broken = DoorClient("http://testserver", "t", transport=httpx.MockTransport(handler))
        with pytest.raises(StoreError):
            await broken.list_guests(1)

    @pytest.mark.asyncio
    async def test_sends_bearer_and_params(self, server, client):
        seen = {}

        async def handler(request):
            seen["auth"] = request.headers["Authorization"]
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=listing())

        spy = DoorClient("http://testserver", "session-token", transport=httpx.MockTransport(handler))
        await spy.list_guests(1, selector="ext:3", sort="name")

        assert seen["auth"] == "Bearer session-token"
        assert seen["params"] == {"selector": "ext:3", "sort": "name"}

class TestActionGuard:
    """Test duplicate submission protection"""

    def test_duplicate_rejected(self):
        guard = ActionGuard()
        guard.acquire(1, "check_in")

        with pytest.raises(ActionInProgress):
            guard.acquire(1, "check_in")
        guard.acquire(2, "check_in")
        guard.acquire(1, "delete")

        guard.release(1, "check_in")
        guard.acquire(1, "check_in")

    def test_hold_releases_on_error(self):
        guard = ActionGuard()
        with pytest.raises(RuntimeError):
            with guard.hold(1, "check_in"):
                raise RuntimeError("boom")
        assert not guard.is_busy(1)

class TestSnapshot:
    """Test applying authoritative records"""

    def test_apply_record(self):
        snapshot = ListingSnapshot(guests=[guest(1), guest(2)], counts={}, fetched_at=None)

        snapshot.apply_record(guest(1, status="checked"))
        assert snapshot.counts == {"total": 2, "pending": 1, "checked": 1}

        snapshot.apply_record(guest(2, status="deleted"))
        assert [g["id"] for g in snapshot.guests] == [1]

class TestDoorConsole:
    """Test polling and foreground actions"""

    @pytest.mark.asyncio
    async def test_refresh_applies_listing(self, server, client):
        server.listings.append((200, listing(guest(1), guest(2, "checked"))))
        console = DoorConsole(client, venue_id=1)

        assert await console.refresh() is True
        assert [g["id"] for g in console.snapshot.guests] == [1, 2]
        assert console.snapshot.counts["checked"] == 1
        assert console.snapshot.stale is False

    @pytest.mark.asyncio
    async def test_poll_error_keeps_last_good_list(self, server, client):
        server.listings.append((200, listing(guest(1))))
        server.listings.append((503, failure("store_error")))
        console = DoorConsole(client, venue_id=1)

        await console.refresh()
        assert await console.refresh() is False

        assert [g["id"] for g in console.snapshot.guests] == [1]
        assert console.snapshot.stale is True

    @pytest.mark.asyncio
    async def test_older_poll_is_discarded(self, server, client):
        """A slow poll finishing after a newer one must not overwrite it"""
        server.listings.append((200, listing(guest(1, name="OLD"))))
        server.listings.append((200, listing(guest(1, name="NEW"))))
        gate = asyncio.Event()
        server.listing_gates.append(gate)
        console = DoorConsole(client, venue_id=1)

        slow = asyncio.create_task(console.refresh())
        await asyncio.sleep(0.01)

        assert await console.refresh() is True
        gate.set()
        assert await slow is False

        assert console.snapshot.guests[0]["name"] == "NEW"

    @pytest.mark.asyncio
    async def test_poll_during_mutation_is_discarded(self, server, client):
        action = ("POST", "/staff/guests/1/check-in")
        server.listings.append((200, listing(guest(1))))
        server.listings.append((200, listing(guest(1))))
        server.actions[action] = (200, envelope(guest(1, "checked")))
        console = DoorConsole(client, venue_id=1)
        await console.refresh()

        gate = asyncio.Event()
        server.gates[action] = gate
        mutation = asyncio.create_task(console.check_in(1))
        await asyncio.sleep(0.01)

        assert await console.refresh() is False

        gate.set()
        record = await mutation
        assert record["status"] == "checked"
        assert console.snapshot.guests[0]["status"] == "checked"

    @pytest.mark.asyncio
    async def test_duplicate_action_rejected_while_in_flight(self, server, client):
        action = ("POST", "/staff/guests/1/check-in")
        server.actions[action] = (200, envelope(guest(1, "checked")))
        gate = asyncio.Event()
        server.gates[action] = gate
        console = DoorConsole(client, venue_id=1)

        first = asyncio.create_task(console.check_in(1))
        await asyncio.sleep(0.01)

        with pytest.raises(ActionInProgress):
            await console.check_in(1)

        gate.set()
        await first
        assert not console.guard.is_busy(1)

    @pytest.mark.asyncio
    async def test_failed_action_leaves_snapshot(self, server, client):
        server.listings.append((200, listing(guest(1))))
        server.actions[("DELETE", "/staff/guests/1")] = (403, failure("limit_reached"))
        console = DoorConsole(client, venue_id=1)
        await console.refresh()

        with pytest.raises(LimitReached):
            await console.delete(1)

        assert [g["status"] for g in console.snapshot.guests] == ["pending"]
        assert not console.guard.is_busy(1)

    @pytest.mark.asyncio
    async def test_results_after_stop_are_ignored(self, server, client):
        server.listings.append((200, listing(guest(1))))
        server.listings.append((200, listing(guest(2))))
        gate = asyncio.Event()
        server.listing_gates.extend([gate, gate])
        console = DoorConsole(client, venue_id=1, poll_interval=60)

        console.start()
        await asyncio.sleep(0.01)
        pending = asyncio.create_task(console.refresh())
        await asyncio.sleep(0.01)
        await console.stop()

        gate.set()
        assert await pending is False
        assert console.snapshot is None
        assert not console.running

    @pytest.mark.asyncio
    async def test_action_finishing_after_stop_leaves_snapshot(self, server, client):
        action = ("POST", "/staff/guests/1/check-in")
        server.listings.append((200, listing(guest(1))))
        server.actions[action] = (200, envelope(guest(1, "checked")))
        console = DoorConsole(client, venue_id=1)
        await console.refresh()

        gate = asyncio.Event()
        server.gates[action] = gate
        mutation = asyncio.create_task(console.check_in(1))
        await asyncio.sleep(0.01)
        await console.stop()

        gate.set()
        record = await mutation
        assert record["status"] == "checked"
        assert [g["status"] for g in console.snapshot.guests] == ["pending"]
        assert not console.guard.is_busy(1)
