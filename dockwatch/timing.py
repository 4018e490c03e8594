"""Interval polling with a slow and a fast frequency.

The poller dispatches each tick as its own asyncio task and never waits for
it to finish, so a long-running tick cannot hold up the timer. Callers that
must not run concurrently are responsible for their own reentrancy guard.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

SLOW_POLLING_FREQUENCY = 10.0  # seconds

TickCallback = Callable[[], "Awaitable[None] | None"]


class IntervalPoller:
    """Call a function periodically at either a slower or a faster interval.

    If `run_immediately` is set, every `start()` dispatches a tick right away
    and then defers to the interval for subsequent ticks. Otherwise the first
    tick after a start happens once the first interval has passed.

    Switching frequency only changes the interval used for ticks scheduled
    after the switch; the sleep already in progress is left alone, so a switch
    never produces a duplicate or a skipped tick.
    """

    def __init__(
        self,
        name: str,
        callback: TickCallback,
        slow_frequency: float = SLOW_POLLING_FREQUENCY,
        fast_frequency: float | None = None,
        run_immediately: bool = False,
    ):
        if slow_frequency <= 0:
            raise ValueError("Slow frequency must be greater than zero")

        if fast_frequency is not None:
            if fast_frequency <= 0:
                raise ValueError("Fast frequency must be greater than zero")
            if slow_frequency <= fast_frequency:
                raise ValueError("Slow frequency must be greater than fast frequency")

        self.name = name
        self._callback = callback

        self.slow_frequency = slow_frequency
        self.fast_frequency = fast_frequency
        # set slow to start
        self.current_frequency = slow_frequency

        self.run_immediately = run_immediately

        self._timer_task: asyncio.Task | None = None
        self._tick_tasks: set[asyncio.Task] = set()

    def start(self) -> bool:
        """Start the poller. Returns True if this call actually started it."""
        if self.is_running():
            return False

        self._timer_task = asyncio.create_task(self._timer_loop(), name=f"{self.name}-timer")
        if self.run_immediately:
            logger.debug(f"{self.name}: calling callback function immediately")
            self._dispatch_tick()
        return True

    def stop(self) -> bool:
        """Stop the poller. Returns True if this call actually stopped it.

        Ticks already dispatched are left to finish on their own.
        """
        if not self.is_running():
            return False

        self._timer_task.cancel()
        self._timer_task = None
        return True

    def is_running(self) -> bool:
        """Is this poller currently running?"""
        return self._timer_task is not None and not self._timer_task.done()

    def use_fast_frequency(self) -> None:
        """Switch to the faster interval for subsequent ticks."""
        if self.fast_frequency is None:
            raise ValueError("Fast frequency is not set")
        if self.current_frequency != self.fast_frequency:
            logger.debug(
                f"{self.name}: using fast frequency polling interval",
                extra={"fast_frequency": self.fast_frequency, "slow_frequency": self.slow_frequency},
            )
            self.current_frequency = self.fast_frequency

    def use_slow_frequency(self) -> None:
        """Switch to the slower interval for subsequent ticks."""
        if self.current_frequency != self.slow_frequency:
            logger.debug(
                f"{self.name}: using slow frequency polling interval",
                extra={"fast_frequency": self.fast_frequency, "slow_frequency": self.slow_frequency},
            )
            self.current_frequency = self.slow_frequency

    async def _timer_loop(self) -> None:
        while True:
            await asyncio.sleep(self.current_frequency)
            self._dispatch_tick()

    def _dispatch_tick(self) -> None:
        task = asyncio.create_task(self._run_tick(), name=f"{self.name}-tick")
        # Hold a reference until the tick completes so it isn't garbage collected
        self._tick_tasks.add(task)
        task.add_done_callback(self._tick_tasks.discard)

    async def _run_tick(self) -> None:
        try:
            result = self._callback()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"{self.name}: error in poller callback: {e}")
