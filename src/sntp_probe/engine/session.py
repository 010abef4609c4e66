"""
Sampling session: repeat round trips until enough samples are collected.

Attempts run strictly in sequence, each on a fresh socket. Failed attempts
are expected under packet loss; they are logged, recorded and skipped. Only
exhausting the attempt budget without reaching the target is fatal.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..errors import SNTPError, InsufficientSamples
from .sampler import RoundTripSampler, NTP_PORT
from .statistics import SampleSet

logger = logging.getLogger(__name__)

DEFAULT_TARGET_SAMPLES = 8
DEFAULT_MAX_ATTEMPTS = 24


@dataclass(frozen=True)
class AttemptFailure:
    """A discarded attempt (1-based index) and why."""
    attempt: int
    error: SNTPError


class SamplingSession:
    """
    Bounded multi-sample SNTP query.

    Usage:
        session = SamplingSession(RoundTripSampler(precision=rho))
        samples = session.run("time.example.org")
    """

    def __init__(
        self,
        sampler: RoundTripSampler,
        target_samples: int = DEFAULT_TARGET_SAMPLES,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        on_failure: Optional[Callable[[AttemptFailure], None]] = None
    ):
        """
        Initialize session.

        Args:
            sampler: Performs the individual exchanges
            target_samples: Stop once this many exchanges succeeded
            max_attempts: Upper bound on exchanges tried
            on_failure: Called for every discarded attempt
        """
        if target_samples < 1:
            raise ValueError(f"target_samples must be >= 1, got {target_samples}")
        if max_attempts < target_samples:
            raise ValueError(
                f"max_attempts ({max_attempts}) must be >= target_samples ({target_samples})"
            )
        self.sampler = sampler
        self.target_samples = target_samples
        self.max_attempts = max_attempts
        self.on_failure = on_failure

        self.attempts = 0
        self.failures: List[AttemptFailure] = []

    def run(self, host: str, port: int = NTP_PORT) -> SampleSet:
        """
        Gather samples from one server.

        Returns:
            SampleSet with exactly target_samples entries

        Raises:
            InsufficientSamples: budget exhausted first
        """
        samples = SampleSet()
        self.attempts = 0
        self.failures = []

        for attempt in range(1, self.max_attempts + 1):
            if len(samples) >= self.target_samples:
                break
            self.attempts = attempt

            outcome = self.sampler.try_sample(host, port)
            if not outcome.ok:
                failure = AttemptFailure(attempt, outcome.error)
                self.failures.append(failure)
                logger.warning(f"NTP query failed (attempt {attempt}): {outcome.error}")
                if self.on_failure:
                    self.on_failure(failure)
                continue

            record = outcome.record
            samples.append(record.offset, record.delay(self.sampler.precision))
            logger.debug(
                f"Attempt {attempt}: offset={record.offset / 1e6:+.3f}ms "
                f"delay={samples[-1].delay / 1e6:.3f}ms"
            )

        if len(samples) < self.target_samples:
            raise InsufficientSamples(len(samples), self.target_samples)

        logger.info(
            f"Collected {len(samples)} samples from {host}:{port} "
            f"in {self.attempts} attempts ({len(self.failures)} failed)"
        )
        return samples
