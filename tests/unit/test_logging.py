from __future__ import annotations

import json
import logging

import pytest

from captchakit.core.logging import JsonFormatter, get_logger, log_context, swallow, warn_once

pytestmark = [pytest.mark.unit]


def _record(msg: str = "hello", **extra) -> logging.LogRecord:
    rec = logging.LogRecord("captchakit.test", logging.INFO, __file__, 1, msg, None, None)
    rec.__dict__.update(extra)
    return rec


def test_json_formatter_merges_context_and_extras():
    with log_context(widget_id="w1", captcha_id=None):
        out = json.loads(JsonFormatter().format(_record(event="captcha.widget.rendered")))
    assert out["message"] == "hello"
    assert out["level"] == "INFO"
    assert out["widget_id"] == "w1"
    assert "captcha_id" not in out
    assert out["event"] == "captcha.widget.rendered"
    assert out["ts"].endswith("Z")


def test_adapter_moves_keywords_into_extra(caplog):
    caplog.set_level(logging.DEBUG, logger="captchakit")
    get_logger("unit").info("msg", event="unit.event", name="clash")
    rec = next(r for r in caplog.records if getattr(r, "event", "") == "unit.event")
    # reserved LogRecord attributes are prefixed instead of overwritten
    assert rec.field_name == "clash"
    assert rec.name == "captchakit.unit"


def test_swallow_logs_and_suppresses(caplog):
    caplog.set_level(logging.DEBUG, logger="captchakit")
    log = get_logger("unit")
    with swallow(logger=log, code="unit.boom", level=logging.WARNING):
        raise RuntimeError("boom")
    rec = next(r for r in caplog.records if getattr(r, "code", "") == "unit.boom")
    assert rec.levelno == logging.WARNING
    assert rec.exc_info is not None


def test_swallow_reraise():
    with pytest.raises(KeyError):
        with swallow(code="unit.reraise", reraise=True):
            raise KeyError("k")


def test_warn_once_emits_a_single_record(caplog):
    caplog.set_level(logging.DEBUG, logger="captchakit")
    log = get_logger("unit")
    for _ in range(3):
        warn_once(log, "unit.once", "only once")
    assert sum(1 for r in caplog.records if getattr(r, "code", "") == "unit.once") == 1
