# petmatch/services/scheduler.py
import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class IntervalTrigger:
    """
    Calls an async job every `interval_seconds`.

    A failing tick is logged and the loop keeps going; the next tick starts
    from whatever is in the store. `sleep` is injectable so tests can drive
    the loop without waiting on the wall clock.
    """

    def __init__(self, interval_seconds: float, sleep=asyncio.sleep, run_at_start: bool = False):
        self.interval_seconds = interval_seconds
        self.run_at_start = run_at_start
        self._sleep = sleep

    async def run(self, job: Callable[[], Awaitable[None]], ticks: Optional[int] = None) -> None:
        done = 0
        first = True
        while ticks is None or done < ticks:
            if not (first and self.run_at_start):
                await self._sleep(self.interval_seconds)
            first = False
            try:
                await job()
            except Exception:
                logger.exception("Scheduled job %s failed", getattr(job, "__qualname__", job))
            done += 1


def start_scan_loop(trigger: IntervalTrigger, scanner) -> asyncio.Task:
    logger.info("Match scan scheduled every %ss", trigger.interval_seconds)
    return asyncio.create_task(trigger.run(scanner.scan), name="match-scan")
