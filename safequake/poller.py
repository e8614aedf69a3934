"""Event Poller - Runs proximity cycles at a fixed interval.

Cycles run sequentially in one process, so they never overlap. A failed
cycle is logged and the next tick tries again from scratch.
"""

import logging
import time
from typing import Callable

from safequake.orchestrator import Orchestrator, ProcessingResult


logger = logging.getLogger(__name__)


def run_cycle(orchestrator: Orchestrator) -> ProcessingResult | None:
    """Run one cycle, logging instead of raising.

    Returns:
        The cycle result, or None if the cycle raised
    """
    try:
        result = orchestrator.process()
    except Exception:
        logger.exception("Proximity cycle failed")
        return None

    if result.errors:
        for error in result.errors:
            logger.error("Error: %s", error)
    logger.info("Cycle completed: %s", result.summary)
    return result


def run_forever(
    orchestrator: Orchestrator,
    interval_seconds: float,
    max_cycles: int | None = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """Poll at a fixed interval.

    Ticks start every interval_seconds; the wait after a cycle is shortened
    by the time the cycle took. A cycle that overruns the interval is
    followed immediately by the next one. There is no backoff after
    failures.

    Args:
        orchestrator: Runs one cycle per tick
        interval_seconds: Wait between cycles
        max_cycles: Stop after this many cycles (None runs until interrupted)
        sleep: Function used to wait between cycles
        clock: Monotonic time source used to measure each cycle

    Returns:
        Number of cycles run
    """
    logger.info("Polling every %ss", interval_seconds)
    cycles = 0

    while max_cycles is None or cycles < max_cycles:
        started = clock()
        run_cycle(orchestrator)
        cycles += 1

        if max_cycles is not None and cycles >= max_cycles:
            break

        remaining = interval_seconds - (clock() - started)
        if remaining > 0:
            sleep(remaining)
        else:
            logger.warning("Cycle overran the %ss interval", interval_seconds)

    return cycles
