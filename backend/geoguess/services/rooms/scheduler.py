import time
from typing import Callable


class TimerHandle:
    """A pending one-shot timer. Cancelling only flags it; the worker checks the flag."""

    def __init__(self, label: str, delay: float):
        self.label = label
        self.delay = delay
        self.deadline = time.time() + delay
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)


class TimerScheduler:
    """One-shot timers run as Socket.IO background tasks.

    - ``label`` only identifies the timer in logs, e.g. ``room=1234 kind=round``
    - The callback receives the handle so it can verify it is still current
    - Cancelled handles never invoke their callback
    """

    def __init__(self, socketio, logger, heartbeat_sec: int = 0, poll_sec: float = 0.5):
        self.socketio = socketio
        self.logger = logger
        self.heartbeat_sec = heartbeat_sec
        self.poll_sec = poll_sec

    def arm(self, label: str, delay: float, callback: Callable[[TimerHandle], None]) -> TimerHandle:
        handle = TimerHandle(label, delay)
        self.logger.info(f"[timer-set] {label} duration={delay}s deadline={handle.deadline}")
        self.socketio.start_background_task(self._worker, handle, callback)
        return handle

    def _worker(self, handle: TimerHandle, callback) -> None:
        hb = self.heartbeat_sec if self.heartbeat_sec and self.heartbeat_sec > 0 else 0
        # Sleep in short steps so a cancelled worker exits early
        interval = hb or self.poll_sec
        slept = 0
        while slept < handle.delay and not handle.cancelled:
            step = min(interval, handle.delay - slept)
            self.socketio.sleep(step)
            slept += step
            if hb:
                self.logger.info(f"[timer-heartbeat] {handle.label} remaining={max(0, handle.delay - slept)}s")

        if handle.cancelled:
            self.logger.info(f"[timer-abort] {handle.label} cancelled")
            return
        handle.fired = True
        self.logger.info(f"[timer-fire] {handle.label}")
        callback(handle)
