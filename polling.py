import threading
from typing import Callable, Optional


class Poller:
    """
    Calls ``fn`` now and then every ``interval`` seconds on a daemon thread.

    A tick that arrives while the previous call is still running is skipped,
    so two fetches never race to replace the same list. ``stop()`` cancels the
    schedule and waits for the thread; the poller is also a context manager.
    """

    def __init__(self, interval: float, fn: Callable[[], None], name: Optional[str] = None):
        self.interval = interval
        self.fn = fn
        self.name = name or getattr(fn, "__name__", "poll")
        self.skipped = 0
        self.runs = 0
        self._busy = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "Poller":
        if self.running:
            return self
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=f"poller-{self.name}", daemon=True)
        self._thread.start()
        return self

    def stop(self, timeout: Optional[float] = None):
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None

    def tick(self) -> bool:
        """Run once unless a run is already in flight. Returns whether it ran."""
        if not self._busy.acquire(blocking=False):
            self.skipped += 1
            print(f"[Poller] {self.name}: previous poll still running, skipping")
            return False
        try:
            self.fn()
            self.runs += 1
        except Exception as e:
            # a failed poll must not kill the schedule
            print(f"[Poller] {self.name}: poll failed: {e}")
        finally:
            self._busy.release()
        return True

    def _run(self):
        self.tick()
        while not self._stop.wait(self.interval):
            self.tick()

    def __enter__(self):
        return self.start()

    def __exit__(self, *exc):
        self.stop()
        return False
