"""Configuration loading and environment setup."""
import os
import time
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError
from .utils.env import clean_env_value, get_bool, get_list
from .utils.logging import get_logger

logger = get_logger(__name__)

# Load environment variables from .env file with explicit path
load_dotenv(dotenv_path=Path.cwd() / ".env", verbose=False)

# Also try loading from the project root in case we're running from a subdirectory
load_dotenv(dotenv_path=Path(__file__).parent.parent / ".env", verbose=False)


DEFAULT_SYSTEM_PROMPT = """You are "AI Friend", a helpful, friendly, and supportive AI assistant built into the True Friends chat app.

Personality traits:
- Warm, conversational, and empathetic
- Helpful but not overly formal
- Use emojis occasionally to be friendly 😊
- Keep responses concise (2-4 sentences usually, unless asked for details)
- Remember context from the conversation
- Can help with advice, answer questions, tell jokes, or just chat

Guidelines:
- Be supportive and positive
- If asked about your capabilities, explain you're a local AI running on the server
- Don't pretend to be human - be honest about being an AI
- Keep responses brief and engaging
- Be respectful and appropriate at all times"""

DEFAULT_GIF_PROXY_TEMPLATES = [
    "https://cors-anywhere.herokuapp.com/{url}",
    "https://api.allorigins.win/raw?url={quoted_url}",
]

# Keys whose values are never printed by --config-check
SECRET_KEYS = ("TENOR_API_KEY",)


def _safe_int(value: Optional[str], default: str, var_name: str) -> int:
    """Safely convert environment variable to int, handling malformed values."""
    try:
        clean_value = clean_env_value(value) if value else default
        return int(clean_value)
    except (ValueError, TypeError):
        logger.warning(f"⚠️ Invalid {var_name} value '{value}', using default {default}")
        return int(default)


def _safe_float(value: Optional[str], default: str, var_name: str) -> float:
    """Safely convert environment variable to float, handling malformed values."""
    try:
        clean_value = clean_env_value(value) if value else default
        return float(clean_value)
    except (ValueError, TypeError):
        logger.warning(f"⚠️ Invalid {var_name} value '{value}', using default {default}")
        return float(default)


# Global config cache for performance optimization
_config_cache: Optional[Dict[str, Any]] = None
_cache_timestamp: float = 0
CACHE_TTL = 300  # 5 minute cache TTL


def reset_config_cache() -> None:
    """Drop the cached config so the next load_config() re-reads the environment."""
    global _config_cache, _cache_timestamp
    _config_cache = None
    _cache_timestamp = 0


def load_config() -> Dict[str, Any]:
    """
    Load configuration from environment variables with intelligent caching.
    """
    global _config_cache, _cache_timestamp

    current_time = time.time()
    if _config_cache and (current_time - _cache_timestamp) < CACHE_TTL:
        return _config_cache

    config = {
        # PRIMARY BACKEND (OLLAMA)
        "OLLAMA_BASE_URL": clean_env_value(os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")),
        "AI_MODEL": clean_env_value(os.getenv("AI_MODEL", "phi3:latest")),
        "AI_TEMPERATURE": _safe_float(os.getenv("AI_TEMPERATURE"), "0.7", "AI_TEMPERATURE"),
        "AI_MAX_TOKENS": _safe_int(os.getenv("AI_MAX_TOKENS"), "500", "AI_MAX_TOKENS"),
        "AI_SYSTEM_PROMPT": os.getenv("AI_SYSTEM_PROMPT") or DEFAULT_SYSTEM_PROMPT,
        "AI_CHAT_TIMEOUT_MS": _safe_int(os.getenv("AI_CHAT_TIMEOUT_MS"), "300000", "AI_CHAT_TIMEOUT_MS"),

        # HEALTH CHECK / FALLBACK BEHAVIOR
        "AI_HEALTH_CHECK_INTERVAL_MS": _safe_int(
            os.getenv("AI_HEALTH_CHECK_INTERVAL_MS"), "60000", "AI_HEALTH_CHECK_INTERVAL_MS"
        ),
        "AI_HEALTH_PROBE_TIMEOUT_MS": _safe_int(
            os.getenv("AI_HEALTH_PROBE_TIMEOUT_MS"), "2000", "AI_HEALTH_PROBE_TIMEOUT_MS"
        ),
        "AI_USE_FALLBACK": get_bool("AI_USE_FALLBACK", True),

        # CONTEXT
        "AI_CONTEXT_MAX_TURNS": _safe_int(os.getenv("AI_CONTEXT_MAX_TURNS"), "20", "AI_CONTEXT_MAX_TURNS"),

        # IMAGE GENERATION / CACHE
        "AI_IMAGES_DIR": Path(os.getenv("AI_IMAGES_DIR", "public/uploads/ai-images")),
        "AI_IMAGES_PUBLIC_PREFIX": os.getenv("AI_IMAGES_PUBLIC_PREFIX", "/uploads/ai-images").rstrip("/"),
        "IMAGE_RENDER_BASE_URL": os.getenv("IMAGE_RENDER_BASE_URL", "https://image.pollinations.ai/prompt"),
        "IMAGE_DOWNLOAD_TIMEOUT_MS": _safe_int(
            os.getenv("IMAGE_DOWNLOAD_TIMEOUT_MS"), "120000", "IMAGE_DOWNLOAD_TIMEOUT_MS"
        ),

        # ATTACHMENTS
        "ATTACHMENT_DIRS": [Path(p) for p in get_list("ATTACHMENT_DIRS", ["public/uploads", "uploads", "."])],
        "MAX_ATTACHMENT_BYTES": _safe_int(os.getenv("MAX_ATTACHMENT_BYTES"), "10485760", "MAX_ATTACHMENT_BYTES"),

        # GIF SEARCH [CA][CMV]
        "TENOR_API_KEY": clean_env_value(os.getenv("TENOR_API_KEY", "")),
        "TENOR_BASE_URL": os.getenv("TENOR_BASE_URL", "https://tenor.googleapis.com/v2").rstrip("/"),
        "GIF_DEFAULT_LIMIT": _safe_int(os.getenv("GIF_DEFAULT_LIMIT"), "20", "GIF_DEFAULT_LIMIT"),
        "GIF_DIRECT_TIMEOUT_MS": _safe_int(os.getenv("GIF_DIRECT_TIMEOUT_MS"), "3000", "GIF_DIRECT_TIMEOUT_MS"),
        "GIF_PROXY_TIMEOUT_MS": _safe_int(os.getenv("GIF_PROXY_TIMEOUT_MS"), "4000", "GIF_PROXY_TIMEOUT_MS"),
        "GIF_PROXY_TEMPLATES": get_list("GIF_PROXY_TEMPLATES", DEFAULT_GIF_PROXY_TEMPLATES, sep=" "),
        "GIF_FALLBACK_COUNT": _safe_int(os.getenv("GIF_FALLBACK_COUNT"), "20", "GIF_FALLBACK_COUNT"),

        # LOGGING
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO"),
        "LOG_JSONL_PATH": os.getenv("LOG_JSONL_PATH", "logs/gateway.jsonl"),
    }

    _config_cache = config
    _cache_timestamp = current_time
    logger.debug(f"✅ Configuration cached for {CACHE_TTL}s")

    return config


def validate_config(config: Dict[str, Any]) -> None:
    """Raise ConfigurationError for values no component can work with."""
    problems = []

    if not 0.0 <= float(config["AI_TEMPERATURE"]) <= 2.0:
        problems.append(f"AI_TEMPERATURE must be within 0..2 (got {config['AI_TEMPERATURE']})")

    for key in (
        "AI_MAX_TOKENS",
        "AI_CHAT_TIMEOUT_MS",
        "AI_HEALTH_PROBE_TIMEOUT_MS",
        "AI_CONTEXT_MAX_TURNS",
        "IMAGE_DOWNLOAD_TIMEOUT_MS",
        "GIF_DEFAULT_LIMIT",
        "GIF_DIRECT_TIMEOUT_MS",
        "GIF_PROXY_TIMEOUT_MS",
        "GIF_FALLBACK_COUNT",
    ):
        if int(config[key]) <= 0:
            problems.append(f"{key} must be positive (got {config[key]})")

    if int(config["AI_HEALTH_CHECK_INTERVAL_MS"]) < 0:
        problems.append("AI_HEALTH_CHECK_INTERVAL_MS must not be negative")

    if not str(config["OLLAMA_BASE_URL"]).startswith(("http://", "https://")):
        problems.append(f"OLLAMA_BASE_URL must be an http(s) URL (got {config['OLLAMA_BASE_URL']!r})")

    if problems:
        raise ConfigurationError("; ".join(problems))
