from __future__ import annotations

import logging
import time as time_module
from datetime import datetime, time, timedelta
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_TRIGGER_HOUR = 10


def next_trigger(now: datetime, hour: int = DEFAULT_TRIGGER_HOUR) -> datetime:
    """Return ``hour``:00 local time on the day after ``now``."""
    tomorrow = now.date() + timedelta(days=1)
    return datetime.combine(tomorrow, time(hour=hour), tzinfo=now.tzinfo)


def run_loop(
    tick: Callable[[], object],
    loop: bool = True,
    hour: int = DEFAULT_TRIGGER_HOUR,
    now: Callable[[], datetime] = datetime.now,
    sleep: Callable[[float], None] = time_module.sleep,
    max_ticks: int | None = None,
) -> int:
    """Run ``tick`` now, then once a day at ``hour`` until the process is killed.

    A tick always finishes before the next trigger is computed. Missed
    triggers are not replayed. Returns the number of ticks executed, which
    only happens when ``loop`` is off or ``max_ticks`` is reached.
    """
    ticks = 0
    while True:
        started = now()
        logger.info("check start at %s", started.strftime("%Y-%m-%d %H:%M:%S"))
        tick()
        ticks += 1
        finished = now()
        logger.info(
            "check done at %s, cost %s",
            finished.strftime("%Y-%m-%d %H:%M:%S"),
            finished - started,
        )
        if not loop or (max_ticks is not None and ticks >= max_ticks):
            return ticks

        wake_at = next_trigger(finished, hour)
        logger.info("next check at %s", wake_at.strftime("%Y-%m-%d %H:%M:%S"))
        sleep(max(0.0, (wake_at - finished).total_seconds()))
