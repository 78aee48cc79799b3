# core/scheduler.py
import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Optional, Protocol, Union

logger = logging.getLogger(__name__)

Callback = Callable[[], Union[Awaitable[None], None]]


class TimerHandle(Protocol):
    @property
    def cancelled(self) -> bool: ...

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Run `callback` once after `delay` seconds unless the handle is cancelled first."""

    def schedule(self, delay: float, callback: Callback) -> TimerHandle: ...

    async def aclose(self) -> None: ...


class AsyncioTimer:
    def __init__(
        self,
        callback: Callback,
        on_cancel: Optional[Callable[["AsyncioTimer"], None]] = None,
    ) -> None:
        self.callback = callback
        self._on_cancel = on_cancel
        self._handle: Optional[asyncio.TimerHandle] = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        # Stops a timer that has not fired; a callback already running is left to
        # finish and must check its own relevance before committing.
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
        if self._on_cancel is not None:
            self._on_cancel(self)


class AsyncioScheduler:
    """Timers on the running event loop; async callbacks run as tracked tasks."""

    def __init__(self) -> None:
        self._timers: set[AsyncioTimer] = set()
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._timers)

    def schedule(self, delay: float, callback: Callback) -> AsyncioTimer:
        loop = asyncio.get_running_loop()
        timer = AsyncioTimer(callback, on_cancel=self._timers.discard)
        timer._handle = loop.call_later(max(0.0, delay), self._fire, timer)
        self._timers.add(timer)
        return timer

    def _fire(self, timer: AsyncioTimer) -> None:
        self._timers.discard(timer)
        if timer.cancelled:
            return
        result = timer.callback()
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("scheduler.callback.error err=%s", type(exc).__name__, exc_info=exc)

    async def aclose(self) -> None:
        for timer in list(self._timers):
            timer.cancel()
        self._timers.clear()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
