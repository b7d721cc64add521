"""Deferred work for rooms.

The only scheduled operation is the Game Master grace-period timer. The game
service takes any object with ``call_later(delay, callback, *args)`` that
returns a cancellable task, so tests can swap in a manual clock.
"""

import time


class ScheduledTask:
    """Handle for one deferred call. ``cancel()`` is idempotent."""

    def __init__(self, delay: float):
        self.deadline = time.time() + delay
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class SocketIOScheduler:
    """Runs deferred calls on Socket.IO background tasks."""

    def __init__(self, socketio, logger=None):
        self.socketio = socketio
        self.logger = logger

    def call_later(self, delay: float, callback, *args) -> ScheduledTask:
        task = ScheduledTask(delay)

        def _worker():
            self.socketio.sleep(max(0.0, task.deadline - time.time()))
            if task.cancelled:
                if self.logger:
                    self.logger.debug(f"[timer-abort] cancelled after {delay}s")
                return
            task.fired = True
            try:
                callback(*args)
            except Exception:
                if self.logger:
                    self.logger.exception(f"[timer-error] callback {getattr(callback, '__name__', callback)} failed")

        if self.logger:
            self.logger.debug(f"[timer-set] duration={delay}s deadline={task.deadline}")
        self.socketio.start_background_task(_worker)
        return task
