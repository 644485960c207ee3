import threading

import pytest

import topicbus
from topicbus.core.scheduler import ManualScheduler
from topicbus.deps import build_bus, get_bus, reset_bus
from topicbus.utils.settings import Settings


@pytest.fixture
def manual_bus(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("TOPICBUS_CONFIG_FILE", raising=False)
    monkeypatch.setenv("TOPICBUS_SCHEDULER", "manual")
    reset_bus()
    yield get_bus()
    reset_bus()


def test_default_bus_is_shared(manual_bus):
    assert get_bus() is manual_bus
    assert isinstance(manual_bus.scheduler, ManualScheduler)


def test_module_functions_use_default_bus(manual_bus):
    calls = []
    handle = topicbus.subscribe("/a/*", lambda *args: calls.append(args))
    topicbus.publish("/a/b", 1)
    manual_bus.scheduler.run_pending()
    assert calls == [(1, ["a", "b"])]

    topicbus.unsubscribe(handle)
    topicbus.publish("/a/b", 2)
    manual_bus.scheduler.run_pending()
    assert len(calls) == 1


def test_module_subscribe_validates():
    with pytest.raises(topicbus.InvalidChannel):
        topicbus.subscribe(123, print)


def test_reset_gives_fresh_registry(manual_bus):
    topicbus.subscribe("/a", print)
    reset_bus()
    assert get_bus() is not manual_bus
    assert get_bus().registry.count() == 0


def test_build_bus_from_settings():
    bus = build_bus(Settings(SCHEDULER="manual", ISOLATE_ERRORS=False))
    assert isinstance(bus.scheduler, ManualScheduler)
    assert bus.isolate_errors is False


def test_module_publish_works_without_event_loop(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("SCHEDULER", "CONFIG_FILE"):
        monkeypatch.delenv("TOPICBUS_" + name, raising=False)
    reset_bus()
    try:
        done = threading.Event()
        seen = []

        def on_event(*args):
            seen.append(args)
            done.set()

        topicbus.subscribe("/a", on_event)
        topicbus.publish("/a", 1)
        assert done.wait(timeout=2)
        assert seen == [(1, ["a"])]
        assert get_bus().status().published == 1
    finally:
        get_bus().scheduler.fallback.close(timeout=2)
        reset_bus()
