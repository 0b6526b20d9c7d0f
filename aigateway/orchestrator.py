"""
AI response orchestration: the single entry point that turns a user message into a reply.

Flow:
    image intent? -> engineer prompt -> cache render -> markdown reply
    otherwise     -> ingest attachment -> health check -> primary model
                     -> rule-based fallback (or offline notice) when the model can't answer
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from .attachments import AttachmentIngestor
from .config import load_config
from .context import ContextStore
from .dispatcher import DispatchOptions, ModelDispatcher
from .exceptions import BackendError, CacheWriteFailure, DownloadFailure
from .fallback_ai import PatternMatcher
from .fallback_chain import FallbackSource, run_fallback_chain
from .health import HealthMonitor
from .image_cache import ImageCache
from .ollama import OllamaClient
from .prompt_enhancer import GenerationRequest, PromptEnhancer, build_render_url
from .utils.logging import get_logger

logger = get_logger(__name__)

TROUBLE_THINKING_REPLY = "I'm having trouble thinking right now. Can you try again? 🤔"
OFFLINE_REPLY = "I'm currently offline. Please make sure Ollama is running! 🔧"
APOLOGY_REPLY = "Sorry, I'm having a moment! 🤔 Can you try asking again?"

# Fields accepted by update_config(); anything else is rejected
CONFIG_FIELDS = ("model", "temperature", "max_tokens", "system_prompt", "use_fallback", "timeout_s")


def format_image_reply(request: GenerationRequest, url: str) -> str:
    return (
        f"Here is the image you asked for! 🎨\n\n"
        f"![Generated Image: {request.raw_prompt}]({url})\n\n"
        f"*(Premium Quality - {request.mode_label})*"
    )


class AIResponseOrchestrator:
    """Routes each message through image generation, the primary model, or the fallback."""

    def __init__(
        self,
        health: HealthMonitor,
        dispatcher: ModelDispatcher,
        matcher: PatternMatcher,
        enhancer: PromptEnhancer,
        image_cache: ImageCache,
        attachments: AttachmentIngestor,
        *,
        use_fallback: bool = True,
        render_base_url: str = "https://image.pollinations.ai/prompt",
        closeables: Optional[List[Any]] = None,
    ):
        self.health = health
        self.dispatcher = dispatcher
        self.matcher = matcher
        self.enhancer = enhancer
        self.image_cache = image_cache
        self.attachments = attachments
        self.use_fallback = use_fallback
        self.render_base_url = render_base_url
        self._closeables = list(closeables or [])

    @property
    def context(self) -> ContextStore:
        return self.dispatcher.context

    async def generate_response(self, user_id: str, message: str, attachment_ref: Optional[str] = None) -> str:
        """Produce a reply for ``message``. Always returns a non-empty string."""
        try:
            request = self.enhancer.detect_image_intent(message)
            if request is not None:
                return await self._generate_image(request)
            return await self._generate_text(user_id, message, attachment_ref)
        except Exception as e:
            logger.error(
                f"❌ AI Bot error: {e}",
                exc_info=True,
                extra={"subsys": "orchestrator", "event": "orchestrator.error", "user_id": user_id},
            )
            return APOLOGY_REPLY

    async def _generate_image(self, request: GenerationRequest) -> str:
        logger.info(f"🎨 Image Generation Request: {request.raw_prompt}")
        remote_url = build_render_url(request, self.render_base_url)
        try:
            cached = await self.image_cache.fetch_or_create(remote_url, request.raw_prompt)
            url = cached.public_url
        except (DownloadFailure, CacheWriteFailure) as e:
            logger.warning(
                f"⚠️ Image caching failed, using remote URL: {e}",
                extra={"subsys": "image", "event": "image.cache.degraded"},
            )
            url = remote_url
        return format_image_reply(request, url)

    async def _generate_text(self, user_id: str, message: str, attachment_ref: Optional[str]) -> str:
        attachment = await self.attachments.resolve(attachment_ref)
        final_text = attachment.apply_to(message)

        healthy = await self.health.is_available()
        sources: List[FallbackSource[str]] = []
        if healthy:
            sources.append(
                FallbackSource(
                    "ollama",
                    lambda: self.dispatcher.dispatch(user_id, final_text, attachment.images or None),
                )
            )

        def terminal() -> str:
            if self.use_fallback:
                logger.info("🔄 Using fallback AI")
                return self.matcher.respond(message)
            return TROUBLE_THINKING_REPLY if healthy else OFFLINE_REPLY

        result = await run_fallback_chain(
            sources,
            terminal=terminal,
            failure_types=(BackendError,),
            label="chat",
        )
        return result.value

    def clear_history(self, user_id: str) -> bool:
        return self.context.clear(user_id)

    def update_config(self, **changes: Any) -> Dict[str, Any]:
        """Apply runtime changes to model options and the fallback switch."""
        unknown = set(changes) - set(CONFIG_FIELDS)
        if unknown:
            raise ValueError(f"Unknown config fields: {', '.join(sorted(unknown))}")

        if "use_fallback" in changes:
            self.use_fallback = bool(changes.pop("use_fallback"))
        if changes:
            self.dispatcher.options = self.dispatcher.options.with_changes(**changes)

        logger.info("⚙️ AI config updated", extra={"subsys": "orchestrator", "event": "config.update"})
        return self.get_config()

    def get_config(self) -> Dict[str, Any]:
        options = self.dispatcher.options
        return {
            "model": options.model,
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
            "system_prompt": options.system_prompt,
            "timeout_s": options.timeout_s,
            "use_fallback": self.use_fallback,
        }

    def get_stats(self) -> Dict[str, Any]:
        snapshot = self.health.snapshot()
        return {
            **self.context.stats(),
            "ollama_healthy": snapshot.healthy if snapshot else False,
            "last_health_check": snapshot.checked_at_iso if snapshot else None,
            "available_models": sorted(snapshot.models) if snapshot else [],
            "config": self.get_config(),
        }

    async def close(self) -> None:
        for resource in self._closeables:
            await resource.close()


def create_orchestrator(config: Optional[Dict[str, Any]] = None) -> AIResponseOrchestrator:
    """Build the default component graph from configuration."""
    config = config or load_config()

    client = OllamaClient(config["OLLAMA_BASE_URL"])
    context = ContextStore(max_turns=config["AI_CONTEXT_MAX_TURNS"])
    options = DispatchOptions(
        model=config["AI_MODEL"],
        temperature=config["AI_TEMPERATURE"],
        max_tokens=config["AI_MAX_TOKENS"],
        system_prompt=config["AI_SYSTEM_PROMPT"],
        timeout_s=config["AI_CHAT_TIMEOUT_MS"] / 1000,
    )
    health = HealthMonitor(
        client,
        ttl_s=config["AI_HEALTH_CHECK_INTERVAL_MS"] / 1000,
        probe_timeout_s=config["AI_HEALTH_PROBE_TIMEOUT_MS"] / 1000,
    )
    image_cache = ImageCache(
        cache_dir=config["AI_IMAGES_DIR"],
        public_prefix=config["AI_IMAGES_PUBLIC_PREFIX"],
        timeout_s=config["IMAGE_DOWNLOAD_TIMEOUT_MS"] / 1000,
    )

    return AIResponseOrchestrator(
        health=health,
        dispatcher=ModelDispatcher(client, context, options),
        matcher=PatternMatcher(),
        enhancer=PromptEnhancer(),
        image_cache=image_cache,
        attachments=AttachmentIngestor(config["ATTACHMENT_DIRS"], max_bytes=config["MAX_ATTACHMENT_BYTES"]),
        use_fallback=config["AI_USE_FALLBACK"],
        render_base_url=config["IMAGE_RENDER_BASE_URL"],
        closeables=[client],
    )
