"""
Tests for the per-user conversation context store.
"""
import asyncio

import pytest

from aigateway.context import ContextStore, ConversationTurn


def _pair(i):
    return ConversationTurn("user", f"q{i}"), ConversationTurn("assistant", f"a{i}")


class TestContextStore:
    @pytest.mark.asyncio
    async def test_exchange_is_appended_in_order(self):
        store = ContextStore()
        await store.append_exchange("u1", *_pair(0))
        assert [(t.role, t.content) for t in store.get("u1")] == [("user", "q0"), ("assistant", "a0")]

    @pytest.mark.asyncio
    async def test_trimmed_to_most_recent_turns(self):
        store = ContextStore(max_turns=20)
        for i in range(15):
            await store.append_exchange("u1", *_pair(i))

        turns = store.get("u1")
        assert len(turns) == 20
        # 30 turns written; the 10 oldest are gone
        assert turns[0].content == "q5"
        assert turns[-1].content == "a14"

    @pytest.mark.asyncio
    async def test_users_are_isolated(self):
        store = ContextStore()
        await store.append_exchange("u1", *_pair(1))
        assert store.get("u2") == []

    @pytest.mark.asyncio
    async def test_concurrent_appends_keep_pairs_together(self):
        store = ContextStore(max_turns=100)
        await asyncio.gather(*(store.append_exchange("u1", *_pair(i)) for i in range(20)))

        turns = store.get("u1")
        assert len(turns) == 40
        for user_turn, assistant_turn in zip(turns[::2], turns[1::2]):
            assert user_turn.role == "user"
            assert assistant_turn.role == "assistant"
            assert user_turn.content[1:] == assistant_turn.content[1:]

    @pytest.mark.asyncio
    async def test_clear_and_stats(self):
        store = ContextStore()
        await store.append_exchange("u1", *_pair(0))
        await store.append_exchange("u2", *_pair(0))
        assert store.stats() == {"active_conversations": 2, "total_messages": 4}

        assert store.clear("u1") is True
        assert store.clear("u1") is False
        assert store.get("u1") == []
        assert store.stats() == {"active_conversations": 1, "total_messages": 2}

    @pytest.mark.asyncio
    async def test_clear_drops_idle_lock(self):
        store = ContextStore()
        await store.append_exchange("u1", *_pair(0))
        assert "u1" in store._locks

        store.clear("u1")
        assert "u1" not in store._locks

    @pytest.mark.asyncio
    async def test_clear_keeps_held_lock(self):
        store = ContextStore()
        lock = store._get_lock("u1")
        async with lock:
            store.clear("u1")
            assert store._locks["u1"] is lock

    def test_get_returns_a_copy(self):
        store = ContextStore()
        store.get("u1").append(ConversationTurn("user", "sneaky"))
        assert store.get("u1") == []


def test_turn_wire_format():
    assert ConversationTurn("user", "hi").to_message() == {"role": "user", "content": "hi"}
    assert ConversationTurn("user", "look", ["aGk="]).to_message() == {
        "role": "user",
        "content": "look",
        "images": ["aGk="],
    }
    with pytest.raises(ValueError):
        ConversationTurn("robot", "beep")


def test_max_turns_must_be_positive():
    with pytest.raises(ValueError):
        ContextStore(max_turns=0)
