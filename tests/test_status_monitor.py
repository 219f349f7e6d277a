from healthwatch.messages import ErrorLevel, ErrorType, ManualClock
from healthwatch.status_monitor import StatusMonitor, TimeoutManager


def test_timeout_manager_limits():
    manager = TimeoutManager(0.2, 10.0)
    assert manager.duration(10.0) == 0.0
    assert manager.is_over_limit(10.2) is False
    assert manager.is_over_limit(10.3) is True


def test_empty_monitor():
    monitor = StatusMonitor("/agg", clock=ManualClock(5.0))
    status = monitor.monitor_status()
    assert status.status == []
    assert status.node_name == "/agg"
    assert status.node_activated is True
    assert status.stamp == 5.0


def test_empty_name_is_ignored():
    monitor = StatusMonitor(clock=ManualClock())
    monitor.update_stamp("", 1.0)
    assert monitor.monitor_status().status == []


def test_monitor_reports_per_source():
    clock = ManualClock(1.0)
    monitor = StatusMonitor(clock=clock)
    monitor.update_stamp("node_a", 0.2)
    status = monitor.monitor_status()
    assert len(status.status) == 1
    diag = status.status[0].status[0]
    assert diag.key == "node_a_node_status_rate_slow"
    assert diag.description == "node_a node_status rate slow"
    assert diag.type == ErrorType.UNEXPECTED_RATE
    assert diag.level == ErrorLevel.OK
    assert diag.stamp == 1.0
    assert float(diag.value) == 0.0


def test_monitor_flags_silent_source():
    clock = ManualClock(0.0)
    monitor = StatusMonitor(clock=clock)
    monitor.update_stamp("node_a", 0.2)
    clock.advance(0.5)
    diag = monitor.monitor_status().status[0].status[0]
    assert diag.level == ErrorLevel.ERROR
    assert float(diag.value) == 0.5
    monitor.update_stamp("node_a", 0.2)
    assert monitor.monitor_status().status[0].status[0].level == ErrorLevel.OK


def test_monitor_orders_by_name():
    monitor = StatusMonitor(clock=ManualClock())
    for name in ("zeta", "alpha", "mid"):
        monitor.update_stamp(name, 1.0)
    keys = [arr.status[0].key for arr in monitor.monitor_status().status]
    assert keys == sorted(keys)
    assert len(keys) == 3