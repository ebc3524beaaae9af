"""Utility exports."""

from cascade_decode.utils.concurrency import CancellationToken

__all__ = ["CancellationToken"]
