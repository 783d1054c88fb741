from __future__ import annotations

import asyncio
import datetime as dt
from collections.abc import Awaitable, Callable

from dailymail.core.config import ScheduleConfig
from dailymail.core.console import get_logger
from dailymail.core.dispatch import Dispatcher, DispatchOutcome

logger = get_logger(__name__)

Clock = Callable[[], dt.datetime]
Sleeper = Callable[[float], Awaitable[None]]


def should_dispatch(
    now: dt.datetime,
    send_hour: int,
    sent_today: bool,
    catch_up: bool = False,
) -> bool:
    """True when the clock is at the send hour and today has not been reported.

    With `catch_up`, any time after the send hour on the same day qualifies.
    """
    if sent_today:
        return False
    if catch_up:
        return now.hour >= send_hour
    return now.hour == send_hour


async def run_scheduler(
    dispatcher: Dispatcher,
    schedule: ScheduleConfig,
    *,
    clock: Clock = dt.datetime.now,
    sleep: Sleeper = asyncio.sleep,
    max_ticks: int | None = None,
) -> list[DispatchOutcome]:
    """Check the clock every poll interval and dispatch once per day.

    Runs until cancelled, or for `max_ticks` checks when given. Returns the
    outcomes of the dispatches it started.
    """
    outcomes: list[DispatchOutcome] = []
    attempted: dt.date | None = None
    ticks = 0

    logger.info(
        "Scheduler started: sending at %02d:00, checking every %.0fs",
        schedule.send_hour,
        schedule.poll_interval_seconds,
    )
    while max_ticks is None or ticks < max_ticks:
        ticks += 1
        now = clock()
        today = now.date()
        # One attempt per day; a failed send waits for tomorrow or a manual send.
        if attempted != today and should_dispatch(
            now, schedule.send_hour, dispatcher.ledger.was_sent(today), schedule.catch_up
        ):
            attempted = today
            try:
                outcomes.append(await dispatcher.dispatch(today, trigger="schedule"))
            except Exception:
                logger.exception("Scheduled dispatch for %s crashed", today)

        if max_ticks is None or ticks < max_ticks:
            await sleep(schedule.poll_interval_seconds)

    return outcomes
