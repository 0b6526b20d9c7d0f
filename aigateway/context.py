"""
Per-user conversation context with a bounded turn window.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_TURNS = 20
VALID_ROLES = ("system", "user", "assistant")


@dataclass(frozen=True)
class ConversationTurn:
    role: str
    content: str
    images: Optional[List[str]] = None

    def __post_init__(self):
        if self.role not in VALID_ROLES:
            raise ValueError(f"Invalid role: {self.role}")

    def to_message(self) -> Dict[str, Any]:
        """Wire form for the chat endpoint; ``images`` only when present."""
        message: Dict[str, Any] = {"role": self.role, "content": self.content}
        if self.images:
            message["images"] = list(self.images)
        return message


class ContextStore:
    """
    Ordered turn history per user, trimmed to the most recent ``max_turns``.

    Writes for one user are serialized by a per-user lock; reads return copies.
    The system prompt is never stored here.
    """

    def __init__(self, max_turns: int = DEFAULT_MAX_TURNS):
        if max_turns <= 0:
            raise ValueError("max_turns must be positive")
        self.max_turns = max_turns
        self._contexts: Dict[str, List[ConversationTurn]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _get_lock(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    def get(self, user_id: str) -> List[ConversationTurn]:
        return list(self._contexts.get(user_id, ()))

    async def append_exchange(
        self,
        user_id: str,
        user_turn: ConversationTurn,
        assistant_turn: ConversationTurn,
    ) -> List[ConversationTurn]:
        """Append a user/assistant pair atomically and trim the oldest turns."""
        async with self._get_lock(user_id):
            turns = self._contexts.setdefault(user_id, [])
            turns.append(user_turn)
            turns.append(assistant_turn)
            overflow = len(turns) - self.max_turns
            if overflow > 0:
                del turns[:overflow]
                logger.debug(f"✂️ Trimmed {overflow} turns for user {user_id}")
            return list(turns)

    def clear(self, user_id: str) -> bool:
        """Forget a user's history. Returns True when something was removed."""
        removed = self._contexts.pop(user_id, None) is not None
        lock = self._locks.get(user_id)
        if lock is not None and not lock.locked():
            del self._locks[user_id]
        if removed:
            logger.info(
                f"🗑️ Cleared conversation history for user {user_id}",
                extra={"subsys": "context", "event": "context.clear", "user_id": user_id},
            )
        return removed

    def stats(self) -> Dict[str, int]:
        return {
            "active_conversations": len(self._contexts),
            "total_messages": sum(len(turns) for turns in self._contexts.values()),
        }
