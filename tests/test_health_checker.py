import json
import threading
import time

import pytest

from healthwatch.health_checker import HealthChecker, value_to_json
from healthwatch.messages import (
    DiagnosticStatus,
    ErrorLevel,
    ErrorType,
    ManualClock,
)
from healthwatch.params import ParamServer


@pytest.fixture
def clock():
    return ManualClock(100.0)


@pytest.fixture
def checker(clock):
    server = ParamServer({"health_checker/test": "default"})
    hc = HealthChecker(server, node_name="/test_node", clock=clock)
    yield hc
    hc.close()


def _test_function(value):
    if value == 0.0:
        return ErrorLevel.FATAL
    if value == 1.0:
        return ErrorLevel.ERROR
    if value == 2.0:
        return ErrorLevel.WARN
    return ErrorLevel.OK


def _test_value_json_func(value):
    return {"value": value}


@pytest.mark.parametrize(
    "value, expected",
    [
        (0.0, ErrorLevel.FATAL),
        (1.0, ErrorLevel.ERROR),
        (2.0, ErrorLevel.WARN),
        (-1.0, ErrorLevel.OK),
    ],
)
def test_check_value(checker, value, expected):
    result = checker.check_value("test", value, _test_function, _test_value_json_func, "test")
    assert result == expected


def test_check_value_stores_json(checker):
    checker.check_value("test", 0.0, _test_function, _test_value_json_func, "test")
    status = checker.build_node_status()
    diag = status.status[0].status[0]
    assert float(json.loads(diag.value)["value"]) == 0.0
    assert diag.type == ErrorType.INVALID_VALUE


@pytest.mark.parametrize(
    "value, expected",
    [
        (1.0, ErrorLevel.FATAL),
        (3.0, ErrorLevel.ERROR),
        (5.0, ErrorLevel.WARN),
        (7.0, ErrorLevel.OK),
    ],
)
def test_check_min_value(checker, value, expected):
    assert checker.check_min_value("test", value, 6, 4, 2, "test") == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        (7.0, ErrorLevel.FATAL),
        (5.0, ErrorLevel.ERROR),
        (3.0, ErrorLevel.WARN),
        (1.0, ErrorLevel.OK),
    ],
)
def test_check_max_value(checker, value, expected):
    assert checker.check_max_value("test", value, 2, 4, 6, "test") == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        (7.0, ErrorLevel.FATAL),
        (5.5, ErrorLevel.ERROR),
        (4.5, ErrorLevel.WARN),
        (3.0, ErrorLevel.OK),
    ],
)
def test_check_range(checker, value, expected):
    result = checker.check_range("test", value, (2.0, 4.0), (1.0, 5.0), (0.0, 6.0), "test")
    assert result == expected


@pytest.mark.parametrize(
    "value, level",
    [
        (True, ErrorLevel.FATAL),
        (False, ErrorLevel.ERROR),
        (True, ErrorLevel.WARN),
        (False, ErrorLevel.OK),
    ],
)
def test_check_true(checker, value, level):
    assert checker.check_true("test", value, level, "test") == level


@pytest.mark.parametrize(
    "level", [ErrorLevel.FATAL, ErrorLevel.ERROR, ErrorLevel.WARN, ErrorLevel.OK]
)
def test_set_diag_status(checker, level):
    status = DiagnosticStatus(key="test", level=level)
    assert checker.set_diag_status(status) == level


def test_node_status(checker):
    checker.node_activate()
    assert checker.node_activated() is True
    checker.node_deactivate()
    assert checker.node_activated() is False


def test_unknown_key_is_undefined(checker):
    assert checker.check_min_value("other", 1.0, 6, 4, 2, "x") == ErrorLevel.UNDEFINED
    assert checker.set_diag_status(DiagnosticStatus(key="other", level=ErrorLevel.OK)) == (
        ErrorLevel.UNDEFINED
    )
    assert checker.build_node_status().status == []


def test_invalid_level_is_rejected(checker):
    status = DiagnosticStatus(key="test", level=ErrorLevel.UNDEFINED)
    assert checker.set_diag_status(status) == ErrorLevel.UNDEFINED
    assert checker.build_node_status().status == []


def test_configured_threshold_overrides_default(clock):
    server = ParamServer({"health_checker/test/min/warn": 10.0})
    hc = HealthChecker(server, clock=clock)
    assert hc.check_min_value("test", 7.0, 6, 4, 2, "test") == ErrorLevel.WARN


def test_build_node_status_collects_buffer(checker, clock):
    checker.node_activate()
    checker.check_max_value("test", 7.0, 2, 4, 6, "desc")
    status = checker.build_node_status()
    assert status.node_name == "/test_node"
    assert status.node_activated is True
    assert status.stamp == clock.now()
    assert len(status.status) == 1
    diag = status.status[0].status[0]
    assert diag.key == "test"
    assert diag.level == ErrorLevel.FATAL
    assert diag.type == ErrorType.OUT_OF_RANGE
    assert diag.description == "desc"
    # buffer is cleared after being read
    assert checker.build_node_status().status[0].status == []


def test_check_rate_reports_rate(checker, clock):
    checker.check_rate("test", 5.0, 3.0, 1.0, "rate")
    assert checker.build_node_status().status == []
    clock.advance(0.6)
    status = checker.build_node_status()
    assert len(status.status) == 1
    diag = status.status[0].status[0]
    assert diag.type == ErrorType.UNEXPECTED_RATE
    assert diag.level == ErrorLevel.FATAL
    assert diag.description == "rate"
    assert float(json.loads(diag.value)["value"]) == 0.0


def test_value_to_json_round_trip():
    assert json.loads(value_to_json(1.5)) == {"value": "1.5"}
    assert json.loads(value_to_json(True)) == {"value": "true"}
    assert json.loads(value_to_json("abc")) == {"value": "abc"}


def test_enable_publishes_until_closed():
    received = []
    published = threading.Event()

    def publisher(status):
        received.append(status)
        published.set()

    server = ParamServer({"health_checker/test": "default"})
    with HealthChecker(server, node_name="/pub", publisher=publisher) as hc:
        hc.enable()
        assert published.wait(5.0)
    count = len(received)
    assert count >= 1
    first = received[0]
    assert first.node_name == "/pub"
    assert first.node_activated is False
    time.sleep(0.3)
    assert len(received) == count
    assert hc.build_node_status().node_name == "/pub"