"""Output adapters - adjustment interval for the downstream clock step."""

from .adjustment import AdjustmentInterval, to_interval

__all__ = ['AdjustmentInterval', 'to_interval']
