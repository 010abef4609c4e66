"""Measurement engine - round trips, sampling session, statistics, clock precision.

Contains:
- RoundTripSampler: one validated SNTP exchange
- SamplingSession: bounded repetition until enough samples are gathered
- QueryStatistics: minimum-delay selection and jitter
"""

from .precision import measure_clock_precision, log2_precision
from .sampler import RoundTripSampler, RoundTripRecord, Attempt, NTP_PORT
from .session import SamplingSession, AttemptFailure
from .statistics import Sample, SampleSet, QueryStatistics

__all__ = [
    'measure_clock_precision', 'log2_precision',
    'RoundTripSampler', 'RoundTripRecord', 'Attempt', 'NTP_PORT',
    'SamplingSession', 'AttemptFailure',
    'Sample', 'SampleSet', 'QueryStatistics',
]
