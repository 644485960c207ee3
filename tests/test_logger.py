import json
import logging
import sys

from topicbus.utils.logger import JsonFormatter, log_extra, setup_logger


def make_record(msg, args=(), exc_info=None, **extra):
    record = logging.LogRecord(
        name="topicbus.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=args,
        exc_info=exc_info,
    )
    if extra:
        record.extra = extra
    return record


def test_json_formatter_basic_fields():
    out = json.loads(JsonFormatter().format(make_record("hello %s", ("world",))))
    assert out["msg"] == "hello world"
    assert out["level"] == "info"
    assert out["logger"] == "topicbus.test"
    assert "ts" in out


def test_json_formatter_merges_extra():
    out = json.loads(JsonFormatter().format(make_record("published", channel="/a", buckets=2)))
    assert out["channel"] == "/a"
    assert out["buckets"] == 2


def test_json_formatter_handles_exceptions_and_odd_values():
    try:
        raise ValueError("bad")
    except ValueError:
        record = make_record("callback failed", exc_info=sys.exc_info(), callback=object())
    out = json.loads(JsonFormatter().format(record))
    assert "ValueError: bad" in out["exc"]
    assert out["callback"].startswith("<object")


def test_log_extra_shape():
    assert log_extra(channel="/a") == {"extra": {"channel": "/a"}}


def test_setup_logger_adds_handler_once():
    lg = setup_logger("topicbus.test.once")
    setup_logger("topicbus.test.once")
    assert len(lg.handlers) == 1
    assert isinstance(lg.handlers[0].formatter, JsonFormatter)
