"""
Model dispatch: builds the chat request from stored context and records the exchange.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Protocol

from .context import ContextStore, ConversationTurn
from .exceptions import BackendProtocolError
from .ollama import DEFAULT_CHAT_TIMEOUT
from .utils.logging import get_logger

logger = get_logger(__name__)


class ChatClient(Protocol):
    async def chat(self, payload: Dict[str, Any], timeout: float = ...) -> Dict[str, Any]: ...


@dataclass(frozen=True)
class DispatchOptions:
    model: str = "phi3:latest"
    temperature: float = 0.7
    max_tokens: int = 500
    system_prompt: Optional[str] = None
    timeout_s: float = DEFAULT_CHAT_TIMEOUT

    def with_changes(self, **changes: Any) -> "DispatchOptions":
        return replace(self, **changes)


class ModelDispatcher:
    """Sends one user message plus history to the primary model. No internal retry."""

    def __init__(self, client: ChatClient, context: ContextStore, options: Optional[DispatchOptions] = None):
        self.client = client
        self.context = context
        self.options = options or DispatchOptions()

    def build_messages(
        self,
        user_id: str,
        text: str,
        images: Optional[List[str]] = None,
        options: Optional[DispatchOptions] = None,
    ) -> List[Dict[str, Any]]:
        opts = options or self.options
        messages: List[Dict[str, Any]] = []
        if opts.system_prompt:
            messages.append({"role": "system", "content": opts.system_prompt})
        messages.extend(turn.to_message() for turn in self.context.get(user_id))
        messages.append(ConversationTurn("user", text, images or None).to_message())
        return messages

    async def dispatch(
        self,
        user_id: str,
        text: str,
        images: Optional[List[str]] = None,
        options: Optional[DispatchOptions] = None,
    ) -> str:
        """
        Ask the model for a reply and append the exchange to the user's context.

        Images travel with the new turn only; the stored user turn keeps text.

        Raises:
            BackendError: transport failure, timeout, or a reply without content.
                The context is left untouched in every failure case.
        """
        opts = options or self.options
        payload = {
            "model": opts.model,
            "messages": self.build_messages(user_id, text, images, opts),
            "stream": False,
            "options": {
                "temperature": opts.temperature,
                "num_predict": opts.max_tokens,
            },
        }

        logger.info(
            f"🤖 Sending to Ollama ({opts.model}) for user {user_id}",
            extra={
                "subsys": "dispatch",
                "event": "dispatch.start",
                "user_id": user_id,
                "detail": {"messages": len(payload["messages"]), "images": len(images or [])},
            },
        )
        start = time.monotonic()
        data = await self.client.chat(payload, timeout=opts.timeout_s)

        message = data.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise BackendProtocolError("Chat reply has no message content")

        reply = content.strip()
        await self.context.append_exchange(
            user_id,
            ConversationTurn("user", text),
            ConversationTurn("assistant", reply),
        )

        logger.info(
            f"✅ Ollama response received ({time.monotonic() - start:.2f}s)",
            extra={"subsys": "dispatch", "event": "dispatch.ok", "user_id": user_id},
        )
        return reply
