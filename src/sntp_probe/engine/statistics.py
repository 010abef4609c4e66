"""
Sample reduction: minimum-delay selection and jitter.

The sample with the smallest round-trip delay has the tightest error bound
(the true offset lies within +/- delay/2 of the measured one), so its offset
is reported as the clock offset. Jitter is the RMS deviation of every
sample's offset from that best offset, with (n - 1) normalization.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List

import numpy as np


@dataclass(frozen=True)
class Sample:
    """One successful round trip, in ns."""
    offset: int
    delay: int


class SampleSet:
    """Append-only, ordered collection of samples (temporal order)."""

    def __init__(self, samples: Iterable[Sample] = ()):
        self._samples: List[Sample] = list(samples)

    def append(self, offset: int, delay: int) -> None:
        self._samples.append(Sample(offset, delay))

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self._samples)

    def __getitem__(self, index: int) -> Sample:
        return self._samples[index]

    def __repr__(self) -> str:
        return f"SampleSet({self._samples!r})"


class QueryStatistics:
    """
    Read-only statistics over a finalized sample set.

    Usage:
        stats = QueryStatistics(samples)
        stats.offset   # ns, from the minimum-delay sample
        stats.delay    # ns
        stats.jitter   # seconds
    """

    def __init__(self, samples: Iterable[Sample]):
        samples = tuple(samples)
        self.count = len(samples)
        self._offsets = np.array([s.offset for s in samples], dtype=np.int64)
        self._delays = np.array([s.delay for s in samples], dtype=np.int64)
        # argmin returns the first minimum on ties
        self._best = int(np.argmin(self._delays)) if self.count else None

    @property
    def offset(self) -> int:
        """Offset of the minimum-delay sample (ns), 0 if empty."""
        if self._best is None:
            return 0
        return int(self._offsets[self._best])

    @property
    def delay(self) -> int:
        """Smallest delay (ns), 0 if empty."""
        if self._best is None:
            return 0
        return int(self._delays[self._best])

    @property
    def jitter(self) -> float:
        """RMS offset deviation from the best offset, in seconds."""
        if self.count <= 1:
            return 0.0
        deviations = (self._offsets - self._offsets[self._best]).astype(np.float64)
        return float(np.sqrt(np.sum(deviations ** 2) / (self.count - 1)) / 1e9)

    def summary(self) -> Dict[str, Any]:
        return {
            'samples': self.count,
            'offset_ns': self.offset,
            'delay_ns': self.delay,
            'jitter_s': self.jitter,
        }
