import threading
from concurrent.futures import wait

from common.background import BackgroundRunner


def test_callbacks_run_only_on_drain():
    runner = BackgroundRunner()
    results = []
    caller = threading.current_thread()
    threads = []

    def on_result(value):
        threads.append(threading.current_thread())
        results.append(value)

    runner.submit("answer", lambda: 42, on_result=on_result)
    runner.drain(wait=True, timeout=5)

    assert results == [42]
    assert threads == [caller]
    runner.shutdown()


def test_errors_route_to_error_callback():
    runner = BackgroundRunner()
    errors = []

    def boom():
        raise ValueError("nope")

    runner.submit("boom", boom, on_result=lambda _: None, on_error=errors.append)
    assert runner.drain(wait=True, timeout=5) == 1

    assert len(errors) == 1
    assert str(errors[0]) == "nope"
    runner.shutdown()


def test_results_wait_for_drain():
    runner = BackgroundRunner()
    gate = threading.Event()
    results = []

    runner.submit("slow", gate.wait, on_result=results.append)
    assert runner.pending() == 1
    assert runner.drain() == 0

    gate.set()
    runner.drain(wait=True, timeout=5)
    assert results == [True]
    runner.shutdown()


def test_shutdown_skips_delayed_work():
    runner = BackgroundRunner()
    calls = []
    future = runner.submit("later", lambda: calls.append(1), delay=30)

    runner.shutdown()
    wait([future], timeout=5)

    assert calls == []
