"""
Tests for like resolution strategies and the atomic toggle.
"""
import pytest

from amity.core.errors import NotAuthenticated, NotFound
from amity.services.likes import LikeResolver


@pytest.fixture()
async def board(boards):
    return await boards.create("Family", "owner")


@pytest.fixture()
async def memory(memories, board, make_memory):
    return await memories.create(make_memory(board.access_code), "owner")


class TestResolve:
    async def test_aggregate_call(self, store, memory):
        resolver = LikeResolver(store)
        await resolver.toggle(memory.id, "owner")

        state = await resolver.resolve(memory.id, "owner")
        assert state.count == 1
        assert state.viewer_has_liked is True

        other = await resolver.resolve(memory.id, "someone-else")
        assert other.count == 1
        assert other.viewer_has_liked is False

    async def test_anonymous_viewer_never_liked(self, store, memory):
        resolver = LikeResolver(store)
        await resolver.toggle(memory.id, "owner")
        state = await resolver.resolve(memory.id, None)
        assert state.count == 1
        assert state.viewer_has_liked is False

    async def test_falls_back_to_like_rows(self, store, flaky_store, memory):
        await LikeResolver(store).toggle(memory.id, "owner")
        flaky_store.rules.append(
            lambda method, table, args: RuntimeError("rpc missing") if method == "rpc" else None
        )

        state = await LikeResolver(flaky_store).resolve(memory.id, "owner")
        assert state.count == 1
        assert state.viewer_has_liked is True
        assert ("select", "memory_likes") in flaky_store.calls

    async def test_both_strategies_failing_yields_zero_state(self, flaky_store, memory):
        flaky_store.rules.append(lambda method, table, args: ConnectionError("network down"))

        state = await LikeResolver(flaky_store).resolve(memory.id, "owner")
        assert state.count == 0
        assert state.viewer_has_liked is False

    async def test_resolve_many_keys_by_id(self, store, memories, board, make_memory):
        first = await memories.create(make_memory(board.access_code, days_ago=1), "owner")
        second = await memories.create(make_memory(board.access_code, days_ago=2), "owner")
        resolver = LikeResolver(store)
        await resolver.toggle(second.id, "owner")

        states = await resolver.resolve_many([first.id, second.id], "owner")
        assert states[first.id].count == 0
        assert states[second.id].count == 1


class TestToggle:
    async def test_toggle_twice_returns_to_original_state(self, store, memory):
        resolver = LikeResolver(store)
        before = await resolver.resolve(memory.id, "owner")

        liked = await resolver.toggle(memory.id, "owner")
        assert liked.count == before.count + 1
        assert liked.viewer_has_liked is True

        unliked = await resolver.toggle(memory.id, "owner")
        assert (unliked.count, unliked.viewer_has_liked) == (before.count, before.viewer_has_liked)

    async def test_counts_every_member(self, store, boards, board, memory):
        await boards.join_by_share_code(board.share_code, "friend")
        resolver = LikeResolver(store)
        await resolver.toggle(memory.id, "owner")
        state = await resolver.toggle(memory.id, "friend")
        assert state.count == 2
        assert state.viewer_has_liked is True

    async def test_toggle_updates_stored_count(self, store, memory):
        await LikeResolver(store).toggle(memory.id, "owner")
        rows = await store.select("memories")
        assert rows[0]["likes"] == 1

    async def test_requires_viewer(self, store, memory):
        with pytest.raises(NotAuthenticated):
            await LikeResolver(store).toggle(memory.id, None)

    async def test_outsider_cannot_like(self, store, memory):
        with pytest.raises(NotFound):
            await LikeResolver(store).toggle(memory.id, "stranger")

    async def test_unknown_memory(self, store, board):
        with pytest.raises(NotFound):
            await LikeResolver(store).toggle("missing", "owner")
