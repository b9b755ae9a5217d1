"""
Timer scheduling for the Color Rush game engine.
Provides cancellable repeating and one-shot tasks on the asyncio event loop.
"""
import asyncio
import logging
import time
from typing import Callable, Dict, Optional

# Set up logger for timer operations
logger = logging.getLogger(__name__)


class TimerLifecycleLogger:
    """Structured logging for timer lifecycle events."""

    @staticmethod
    def log_timer_created(name: str, delay: float, repeating: bool) -> None:
        """Log timer creation with structured data."""
        kind = "repeating" if repeating else "one-shot"
        logger.debug(
            f"Timer lifecycle: CREATED - {name} ({kind}, {delay:.3f}s)",
            extra={
                'event_type': 'timer_created',
                'timer_name': name,
                'delay': delay,
                'repeating': repeating,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_fired(name: str, fire_count: int) -> None:
        """Log timer firing (throttled to avoid spam)."""
        if fire_count == 1 or fire_count % 10 == 0:
            logger.debug(
                f"Timer lifecycle: FIRED - {name} (#{fire_count})",
                extra={
                    'event_type': 'timer_fired',
                    'timer_name': name,
                    'fire_count': fire_count,
                    'timestamp': time.time()
                }
            )

    @staticmethod
    def log_timer_cancelled(name: str, fire_count: int) -> None:
        """Log timer cancellation."""
        logger.debug(
            f"Timer lifecycle: CANCELLED - {name} after {fire_count} firings",
            extra={
                'event_type': 'timer_cancelled',
                'timer_name': name,
                'fire_count': fire_count,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_cleanup(cancelled_count: int) -> None:
        """Log a bulk cleanup of pending timers."""
        logger.info(
            f"Timer lifecycle: CLEANUP - {cancelled_count} pending timers cancelled",
            extra={
                'event_type': 'timer_cleanup',
                'cancelled_count': cancelled_count,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_error(name: str, error_type: str, error_message: str) -> None:
        """Log timer-related errors with context."""
        logger.error(
            f"Timer lifecycle: ERROR - {name}, Type {error_type}: {error_message}",
            extra={
                'event_type': 'timer_error',
                'timer_name': name,
                'error_type': error_type,
                'error_message': error_message,
                'timestamp': time.time()
            }
        )


class ScheduledTask:
    """A pending callback on the event loop, optionally repeating."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        name: str,
        delay: float,
        callback: Callable[[], None],
        repeating: bool = False,
        on_done: Optional[Callable[["ScheduledTask"], None]] = None
    ):
        self.name = name
        self._loop = loop
        self._delay = delay
        self._callback = callback
        self._repeating = repeating
        self._on_done = on_done
        self._is_cancelled = False
        self._fire_count = 0
        self._deadline = loop.time() + delay
        self._handle: Optional[asyncio.TimerHandle] = loop.call_at(self._deadline, self._run)

        TimerLifecycleLogger.log_timer_created(name, delay, repeating)

    def _run(self) -> None:
        self._handle = None
        if self._is_cancelled:
            return

        self._fire_count += 1
        if self._repeating:
            # Schedule against the previous deadline so ticks do not drift
            self._deadline += self._delay
            self._handle = self._loop.call_at(self._deadline, self._run)
        elif self._on_done:
            self._on_done(self)

        TimerLifecycleLogger.log_timer_fired(self.name, self._fire_count)
        try:
            self._callback()
        except Exception as e:
            TimerLifecycleLogger.log_timer_error(self.name, type(e).__name__, str(e))
            raise

    def cancel(self) -> None:
        """Cancel the task; its callback will not run again."""
        if self._is_cancelled:
            return
        self._is_cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._on_done:
            self._on_done(self)
        TimerLifecycleLogger.log_timer_cancelled(self.name, self._fire_count)

    @property
    def active(self) -> bool:
        """True while the callback may still run."""
        return not self._is_cancelled and self._handle is not None

    @property
    def is_cancelled(self) -> bool:
        return self._is_cancelled

    @property
    def fire_count(self) -> int:
        return self._fire_count


class GameScheduler:
    """
    Owns every timer of one game engine.

    All tasks are created on the running asyncio loop (or the loop passed
    in), so callbacks execute on the same thread as the host's own calls.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._tasks: Dict[int, ScheduledTask] = {}

    def call_every(self, interval: float, callback: Callable[[], None], name: str = "repeating") -> ScheduledTask:
        """
        Run callback every interval seconds until cancelled.

        Raises:
            ValueError: If interval is not positive
            RuntimeError: If no event loop is running and none was given
        """
        if interval <= 0:
            raise ValueError(f"Timer interval must be positive, got {interval}")
        return self._register(ScheduledTask(
            self._get_loop(), name, interval, callback, repeating=True, on_done=self._forget
        ))

    def call_later(self, delay: float, callback: Callable[[], None], name: str = "delayed") -> ScheduledTask:
        """
        Run callback once after delay seconds unless cancelled first.

        Raises:
            ValueError: If delay is negative
            RuntimeError: If no event loop is running and none was given
        """
        if delay < 0:
            raise ValueError(f"Timer delay cannot be negative, got {delay}")
        return self._register(ScheduledTask(
            self._get_loop(), name, delay, callback, repeating=False, on_done=self._forget
        ))

    def cancel_all(self) -> int:
        """
        Cancel every pending task.

        Returns:
            Number of tasks that were cancelled
        """
        pending = list(self._tasks.values())
        for task in pending:
            task.cancel()
        self._tasks.clear()
        if pending:
            TimerLifecycleLogger.log_timer_cleanup(len(pending))
        return len(pending)

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def _register(self, task: ScheduledTask) -> ScheduledTask:
        self._tasks[id(task)] = task
        return task

    def _forget(self, task: ScheduledTask) -> None:
        self._tasks.pop(id(task), None)
