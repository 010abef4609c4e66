"""
Local clock precision (system rho, RFC 5905 section 7.3).

Reading the clock twice in immediate succession bounds its effective tick
granularity. Delay measurements are never trusted below this value.
"""

import logging
import math
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_REPEATS = 7


def measure_clock_precision(
    clock: Callable[[], int] = time.time_ns,
    repeats: int = DEFAULT_REPEATS
) -> float:
    """
    Measure the local clock precision.

    Args:
        clock: Clock source returning nanoseconds since the epoch
        repeats: Number of back-to-back read pairs

    Returns:
        Smallest positive difference between two consecutive reads, in
        seconds. Pairs that read the same value or step backwards are
        skipped; when no pair advanced the clock's advertised resolution
        is used instead.
    """
    min_precision: Optional[float] = None
    for _ in range(repeats):
        t1 = clock()
        t2 = clock()
        diff = t2 - t1
        if diff > 0:
            precision = diff / 1e9
            if min_precision is None or precision < min_precision:
                min_precision = precision

    if min_precision is None:
        resolution = time.get_clock_info('time').resolution
        logger.debug(
            f"Clock reads did not advance, using advertised resolution {resolution:.3e}s"
        )
        min_precision = resolution

    logger.debug(f"Clock precision: {min_precision * 1e6:.3f}us")
    return min_precision


def log2_precision(precision: float) -> int:
    """NTP-style precision exponent, e.g. 1us -> -19."""
    return math.ceil(math.log2(precision))
