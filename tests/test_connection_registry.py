"""
Tests for the client registry.

Tests verify:
- Set semantics (re-add is a no-op, remove is idempotent)
- Snapshots are unaffected by later mutations
- Size after N accepts and M closes is N - M
- close_all drains the registry, swallows close errors and bounds stalled closes
"""

import asyncio

import pytest

from osc_gateway.components.core.constants import WSCloseCode
from osc_gateway.connection_registry import ClientRegistry


class TestMembership:
    """Tests for add/remove/size."""

    @pytest.mark.asyncio
    async def test_add_returns_size(self, registry, make_connection):
        assert await registry.add(make_connection()) == 1
        assert await registry.add(make_connection()) == 2
        assert registry.size == 2
        assert len(registry) == 2

    @pytest.mark.asyncio
    async def test_re_adding_same_connection_is_noop(self, registry, make_connection):
        connection = make_connection()
        await registry.add(connection)
        await registry.add(connection)

        assert registry.size == 1
        assert connection in registry

    @pytest.mark.asyncio
    async def test_remove_is_idempotent(self, registry, make_connection):
        connection = make_connection()
        await registry.add(connection)

        assert await registry.remove(connection) is True
        assert await registry.remove(connection) is False
        assert registry.size == 0
        assert connection not in registry

    @pytest.mark.asyncio
    async def test_remove_unknown_connection_is_noop(self, registry, make_connection):
        await registry.add(make_connection())
        assert await registry.remove(make_connection()) is False
        assert registry.size == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("accepted,closed", [(1, 1), (5, 2), (3, 0)])
    async def test_size_after_accepts_and_closes(self, registry, make_connection, accepted, closed):
        connections = [make_connection() for _ in range(accepted)]
        for connection in connections:
            await registry.add(connection)
        for connection in connections[:closed]:
            await registry.remove(connection)

        assert registry.size == accepted - closed

    @pytest.mark.asyncio
    async def test_remove_many_counts_only_present(self, registry, make_connection):
        a, b, c = make_connection(), make_connection(), make_connection()
        await registry.add(a)
        await registry.add(b)

        removed = await registry.remove_many([a, b, c])

        assert removed == 2
        assert registry.size == 0


class TestSnapshot:
    """Tests for snapshot isolation."""

    @pytest.mark.asyncio
    async def test_snapshot_is_a_copy(self, registry, make_connection):
        a, b = make_connection(), make_connection()
        await registry.add(a)
        await registry.add(b)

        snapshot = await registry.snapshot()
        await registry.remove(a)
        await registry.add(make_connection())

        assert snapshot == [a, b]
        assert registry.size == 2

    @pytest.mark.asyncio
    async def test_concurrent_mutation_keeps_entries_unique(self, registry, make_connection):
        connections = [make_connection() for _ in range(20)]

        await asyncio.gather(*(registry.add(c) for c in connections))
        await asyncio.gather(
            *(registry.add(c) for c in connections),
            *(registry.remove(c) for c in connections[:10]),
        )

        snapshot = await registry.snapshot()
        assert len(snapshot) == len({c.id for c in snapshot})
        assert all(c in registry for c in snapshot)


class TestCloseAll:
    """Tests for draining the registry at shutdown."""

    @pytest.mark.asyncio
    async def test_close_all_closes_and_drains(self, registry, make_connection):
        connections = [make_connection() for _ in range(3)]
        for connection in connections:
            await registry.add(connection)

        drained = await registry.close_all()

        assert drained == 3
        assert registry.size == 0
        for connection in connections:
            assert connection.websocket.close_calls == [
                (WSCloseCode.GOING_AWAY, "Server shutting down")
            ]

    @pytest.mark.asyncio
    async def test_close_errors_are_swallowed(self, registry, make_connection):
        failing = make_connection()

        async def broken_close(code=1000, reason=None):
            raise RuntimeError("socket already gone")

        failing.websocket.close = broken_close
        healthy = make_connection()
        await registry.add(failing)
        await registry.add(healthy)

        drained = await registry.close_all()

        assert drained == 2
        assert registry.size == 0
        assert healthy.websocket.close_calls

    @pytest.mark.asyncio
    async def test_close_all_on_empty_registry(self, registry):
        assert await registry.close_all() == 0

    @pytest.mark.asyncio
    async def test_stalled_close_is_bounded(self, make_connection):
        registry = ClientRegistry(close_timeout=0.05)
        stalled = make_connection(stalled=True)
        healthy = make_connection()
        await registry.add(stalled)
        await registry.add(healthy)

        drained = await asyncio.wait_for(registry.close_all(), timeout=2)

        assert drained == 2
        assert registry.size == 0
        assert stalled.is_open is False
        assert healthy.websocket.close_calls == [
            (WSCloseCode.GOING_AWAY, "Server shutting down")
        ]
