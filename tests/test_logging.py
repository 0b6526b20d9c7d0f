"""
Tests for the dual-sink logging setup.
"""
import json
import logging

from aigateway.utils.logging import JsonlFormatter, SensitiveDataFilter, init_logging


def _record(msg="hello", **extra):
    record = logging.LogRecord("aigateway.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonlFormatter:
    def test_fixed_keys_and_none_dropped(self):
        line = JsonlFormatter().format(_record(subsys="gif", event="gif.search"))
        obj = json.loads(line)
        assert list(obj) == ["ts", "level", "name", "subsys", "event", "detail"]
        assert obj["detail"] == "hello"

    def test_explicit_detail_wins(self):
        obj = json.loads(JsonlFormatter().format(_record(detail={"source": "local"})))
        assert obj["detail"] == {"source": "local"}


def test_sensitive_values_are_redacted():
    detail = {"TENOR_API_KEY": "abc123", "nested": {"token": "t0k"}, "source": "tenor"}
    record = _record(detail=detail)
    assert SensitiveDataFilter().filter(record) is True
    assert record.detail == {"TENOR_API_KEY": "[REDACTED]", "nested": {"token": "[REDACTED]"}, "source": "tenor"}


def test_init_logging_writes_jsonl(tmp_path):
    path = tmp_path / "logs" / "gateway.jsonl"
    init_logging(level="INFO", jsonl_path=str(path))
    try:
        logging.getLogger("aigateway.test").info("ping", extra={"subsys": "test", "event": "test.ping"})
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
        assert any(line.get("event") == "test.ping" for line in lines)
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        for handler in list(logging.getLogger().handlers):
            handler.close()
            logging.getLogger().removeHandler(handler)
