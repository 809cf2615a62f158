import threading
import time

from polling import Poller


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


def test_fires_immediately_then_on_interval():
    calls = []
    poller = Poller(0.02, lambda: calls.append(time.monotonic()), name="t")
    with poller:
        assert wait_for(lambda: len(calls) >= 3)
    assert not poller.running


def test_overlapping_tick_is_skipped():
    release = threading.Event()
    entered = threading.Event()

    def slow():
        entered.set()
        release.wait(2)

    poller = Poller(10, slow)
    worker = threading.Thread(target=poller.tick)
    worker.start()
    assert entered.wait(2)

    assert poller.tick() is False
    assert poller.skipped == 1

    release.set()
    worker.join(2)
    assert poller.runs == 1


def test_failure_does_not_stop_the_schedule():
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("backend down")

    with Poller(0.02, flaky):
        assert wait_for(lambda: len(calls) >= 3)


def test_stop_cancels_future_ticks():
    calls = []
    poller = Poller(0.02, lambda: calls.append(1)).start()
    assert wait_for(lambda: len(calls) >= 1)
    poller.stop(timeout=1)
    seen = len(calls)
    time.sleep(0.1)
    assert len(calls) == seen
