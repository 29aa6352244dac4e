"""A ticking countdown clock, owned by a flow controller."""

from typing import Callable, Optional
import asyncio

from . import config, logging

logger = logging.getLogger(__name__)


class Countdown(object):
    """
    Counts down from ``window`` to zero, one tick per ``interval`` seconds.

    The clock owns no business state. Ticks are driven by a single
    :class:`asyncio.Task` between :meth:`start` and :meth:`stop`; the owning
    controller must call :meth:`stop` on teardown. :meth:`tick` can also be
    called directly, which is how the clock is stepped deterministically.
    """

    def __init__(self, window: int = config.CHALLENGE_WINDOW_SECONDS,
                 interval: float = config.TICK_INTERVAL,
                 on_tick: Optional[Callable[[int], None]] = None,
                 on_expire: Optional[Callable[[], None]] = None) -> None:
        self.window = window
        self.interval = interval
        self.remaining = window
        self._on_tick = on_tick
        self._on_expire = on_expire
        self._task: Optional[asyncio.Task] = None

    @property
    def expired(self) -> bool:
        """True once the countdown has reached zero."""
        return self.remaining == 0

    @property
    def running(self) -> bool:
        """True while the ticking task is alive."""
        return self._task is not None and not self._task.done()

    def tick(self) -> int:
        """Advance by one tick. Has no effect once expired."""
        if self.remaining == 0:
            return 0
        self.remaining -= 1
        if self._on_tick is not None:
            self._on_tick(self.remaining)
        if self.remaining == 0:
            logger.debug('Countdown of %s expired', self.window)
            if self._on_expire is not None:
                self._on_expire()
        return self.remaining

    async def _run(self) -> None:
        while self.remaining > 0:
            await asyncio.sleep(self.interval)
            self.tick()

    def start(self) -> None:
        """Start ticking. Must be called with a running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        """Stop ticking and release the task."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def restart(self) -> None:
        """Reset to the full window and start ticking again."""
        self.stop()
        self.remaining = self.window
        if self._on_tick is not None:
            self._on_tick(self.remaining)
        self.start()
