"""
Clock adjustment interval.

The downstream clock-adjustment step (adjtime(2)/settimeofday(2), not
performed here) takes a struct timeval: whole seconds plus microseconds,
where the microseconds field must lie in [0, 1_000_000). Negative durations
therefore borrow a second:

    +1100 ms -> (seconds=1,  microseconds=100000)
     -900 ms -> (seconds=-1, microseconds=100000)
"""

from dataclasses import dataclass

MICROS_PER_SECOND = 1_000_000


@dataclass(frozen=True)
class AdjustmentInterval:
    """timeval-shaped adjustment: seconds + non-negative microseconds."""
    seconds: int
    microseconds: int

    def total_seconds(self) -> float:
        return self.seconds + self.microseconds / MICROS_PER_SECOND


def to_interval(duration_ns: int) -> AdjustmentInterval:
    """
    Split a signed duration into an AdjustmentInterval.

    Sub-microsecond remainders are truncated toward zero before the split,
    so -500ns becomes (0, 0) rather than (-1, 999999).
    """
    micros = abs(duration_ns) // 1000
    if duration_ns < 0:
        micros = -micros
    seconds, microseconds = divmod(micros, MICROS_PER_SECOND)
    return AdjustmentInterval(seconds, microseconds)
