"""
Dual-sink logging: Rich console for humans, JSONL file for machines.
"""
import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from rich.logging import RichHandler

LEVEL_ICONS = ((logging.ERROR, "✖"), (logging.WARNING, "⚠"), (logging.INFO, "✔"))
QUIET_LOGGERS = ("httpx", "httpcore", "aiohttp", "asyncio")
REDACTED = "[REDACTED]"


class LevelIconFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.level_icon = next((icon for level, icon in LEVEL_ICONS if record.levelno >= level), "ℹ")
        return True


class JsonlFormatter(logging.Formatter):
    """One JSON object per record; keys in a fixed order, unset keys omitted."""

    KEYS = ("ts", "level", "name", "subsys", "user_id", "event", "detail")

    def format(self, record: logging.LogRecord) -> str:
        detail = getattr(record, "detail", None)
        values = {
            "ts": datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3],
            "level": record.levelname,
            "name": record.name,
            "subsys": getattr(record, "subsys", None),
            "user_id": getattr(record, "user_id", None),
            "event": getattr(record, "event", None),
            "detail": record.getMessage() if detail is None else detail,
        }
        return json.dumps({k: values[k] for k in self.KEYS if values[k] is not None}, ensure_ascii=False, default=str)


class SensitiveDataFilter(logging.Filter):
    """Redacts secret-looking string values in dict extras (``detail`` and friends)."""

    SECRET_KEYS = frozenset({"TENOR_API_KEY", "AUTHORIZATION", "authorization", "api_key", "key", "token", "bearer"})

    def filter(self, record: logging.LogRecord) -> bool:
        for value in list(vars(record).values()):
            if isinstance(value, dict):
                self._scrub(value)
        return True

    def _scrub(self, obj: Dict[str, Any]) -> None:
        for key, value in obj.items():
            if isinstance(value, dict):
                self._scrub(value)
            elif isinstance(value, str) and key in self.SECRET_KEYS:
                obj[key] = REDACTED


def init_logging(level: Optional[str] = None, jsonl_path: Optional[str] = None) -> None:
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    path = Path(jsonl_path or os.getenv("LOG_JSONL_PATH", "logs/gateway.jsonl"))
    path.parent.mkdir(parents=True, exist_ok=True)

    console = RichHandler(rich_tracebacks=True, show_path=False, log_time_format="%Y-%m-%d %H:%M:%S")
    console.addFilter(LevelIconFilter())
    console.setFormatter(logging.Formatter("%(level_icon)s %(message)s"))

    jsonl = logging.FileHandler(path, encoding="utf-8")
    jsonl.setFormatter(JsonlFormatter())

    for handler in (console, jsonl):
        handler.addFilter(SensitiveDataFilter())
    logging.basicConfig(handlers=[console, jsonl], level=level, force=True)

    third_party_level = os.getenv("THIRD_PARTY_LOG_LEVEL", "WARNING").upper()
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    logging.getLogger(__name__).info(
        "✔ Logging initialized (console + jsonl)", extra={"subsys": "logging", "event": "logging.init"}
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
