from healthwatch.diag_buffer import DiagBuffer
from healthwatch.messages import (
    BUFFER_DURATION,
    DiagnosticStatus,
    ErrorLevel,
    ErrorType,
    ManualClock,
)


def make_buffer(clock):
    return DiagBuffer("speed", ErrorType.OUT_OF_RANGE, "speed check", BUFFER_DURATION, clock=clock)


def status(stamp, level, value="v"):
    return DiagnosticStatus(stamp=stamp, key="speed", value=value, level=level)


def test_empty_buffer_is_ok():
    buffer = make_buffer(ManualClock(10.0))
    assert buffer.error_level() == ErrorLevel.OK
    assert buffer.get_and_clear_data().status == []


def test_most_severe_level_wins():
    clock = ManualClock(10.0)
    buffer = make_buffer(clock)
    buffer.add_diag(status(10.0, ErrorLevel.WARN))
    assert buffer.error_level() == ErrorLevel.WARN
    buffer.add_diag(status(10.0, ErrorLevel.FATAL))
    buffer.add_diag(status(10.0, ErrorLevel.OK))
    assert buffer.error_level() == ErrorLevel.FATAL


def test_expired_entries_dropped():
    clock = ManualClock(10.0)
    buffer = make_buffer(clock)
    buffer.add_diag(status(10.0, ErrorLevel.ERROR))
    clock.advance(BUFFER_DURATION)
    assert buffer.error_level() == ErrorLevel.OK
    assert buffer.get_and_clear_data().status == []


def test_get_and_clear_sorts_by_stamp_and_empties():
    clock = ManualClock(10.0)
    buffer = make_buffer(clock)
    buffer.add_diag(status(9.9, ErrorLevel.OK, "c"))
    buffer.add_diag(status(9.7, ErrorLevel.FATAL, "a"))
    buffer.add_diag(status(9.8, ErrorLevel.WARN, "b"))
    data = buffer.get_and_clear_data()
    assert [s.value for s in data.status] == ["a", "b", "c"]
    stamps = [s.stamp for s in data.status]
    assert stamps == sorted(stamps)
    assert buffer.get_and_clear_data().status == []


def test_undefined_level_is_returned_but_not_graded():
    clock = ManualClock(10.0)
    buffer = make_buffer(clock)
    buffer.add_diag(status(10.0, ErrorLevel.UNDEFINED, "u"))
    assert buffer.error_level() == ErrorLevel.OK
    assert [s.value for s in buffer.get_and_clear_data().status] == ["u"]


def test_added_status_is_copied():
    clock = ManualClock(10.0)
    buffer = make_buffer(clock)
    original = status(10.0, ErrorLevel.WARN, "before")
    buffer.add_diag(original)
    original.value = "after"
    assert buffer.get_and_clear_data().status[0].value == "before"


def test_attributes_kept():
    buffer = make_buffer(ManualClock())
    assert buffer.type == ErrorType.OUT_OF_RANGE
    assert buffer.description == "speed check"
    assert buffer.key == "speed"