import io
import json
import re
from datetime import datetime, timedelta, timezone

from cosmosoperator.logger import new_logger

RFC3339_UTC = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z")


def lines(stream):
    return [line for line in stream.getvalue().splitlines() if line]


def test_json_format():
    stream = io.StringIO()
    logger = new_logger("info", "json", stream)
    logger.info("Healthcheck server listening", extra={"fields": {"addr": ":1251"}})
    out = lines(stream)
    assert len(out) == 1
    entry = json.loads(out[0])
    assert list(entry)[:3] == ["level", "ts", "msg"]
    assert entry["level"] == "info"
    assert entry["msg"] == "Healthcheck server listening"
    assert entry["addr"] == ":1251"
    assert RFC3339_UTC.fullmatch(entry["ts"])
    ts = datetime.strptime(entry["ts"], "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=timezone.utc)
    assert abs(datetime.now(timezone.utc) - ts) < timedelta(seconds=10)


def test_console_format():
    stream = io.StringIO()
    logger = new_logger("info", "console", stream)
    logger.info("hello", extra={"fields": {"rpcHost": "http://localhost:26657"}})
    parts = lines(stream)[0].split("\t")
    assert len(parts) == 4
    assert RFC3339_UTC.fullmatch(parts[0])
    assert parts[1:3] == ["info", "hello"]
    assert json.loads(parts[3]) == {"rpcHost": "http://localhost:26657"}


def test_level_filters_lower_messages():
    stream = io.StringIO()
    logger = new_logger("info", "json", stream)
    logger.debug("hidden")
    logger.error("shown")
    out = [json.loads(line)["msg"] for line in lines(stream)]
    assert out == ["shown"]


def test_debug_level_shows_debug():
    stream = io.StringIO()
    logger = new_logger("debug", "json", stream)
    logger.debug("visible")
    entry = json.loads(lines(stream)[0])
    assert entry["level"] == "debug"
    assert entry["msg"] == "visible"


def test_unknown_level_falls_back_to_info():
    stream = io.StringIO()
    logger = new_logger("nonsense", "json", stream)
    logger.debug("hidden")
    logger.info("shown")
    out = [json.loads(line)["msg"] for line in lines(stream)]
    assert out == ["shown"]


def test_warning_level_name():
    stream = io.StringIO()
    logger = new_logger("warn", "json", stream)
    logger.info("hidden")
    logger.warning("careful")
    entries = [json.loads(line) for line in lines(stream)]
    assert [e["level"] for e in entries] == ["warn"]


def test_loggers_are_independent():
    first, second = io.StringIO(), io.StringIO()
    new_logger("info", "json", first).info("one")
    new_logger("info", "json", second).info("two")
    assert [json.loads(line)["msg"] for line in lines(first)] == ["one"]
    assert [json.loads(line)["msg"] for line in lines(second)] == ["two"]