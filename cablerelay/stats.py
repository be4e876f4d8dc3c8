"""Duration statistics used by benchmarks."""

from __future__ import annotations

from datetime import timedelta

_HALF_MS = timedelta(microseconds=500)
_MS = timedelta(milliseconds=1)


def round_to_ms(duration: timedelta) -> int:
    """Return the duration as a whole number of milliseconds, rounded half up."""
    return (duration + _HALF_MS) // _MS


class ResAggregate:
    """A collection of duration samples with order statistics."""

    def __init__(self) -> None:
        self._samples: list[timedelta] = []
        self._sorted = True

    def add(self, rtt: timedelta) -> None:
        """Add a new sample."""
        self._samples.append(rtt)
        self._sorted = False

    def count(self) -> int:
        """Return the number of samples."""
        return len(self._samples)

    def min(self) -> timedelta:
        """Return the smallest sample, or zero when there are none."""
        if not self._samples:
            return timedelta(0)
        self._sort()
        return self._samples[0]

    def max(self) -> timedelta:
        """Return the largest sample, or zero when there are none."""
        if not self._samples:
            return timedelta(0)
        self._sort()
        return self._samples[-1]

    def percentile(self, p: int) -> timedelta:
        """Return the p-th percentile; p must lie strictly between 0 and 100."""
        if p <= 0:
            raise ValueError("p must be greater than 0")
        if p >= 100:
            raise ValueError("p must be less 100")

        if not self._samples:
            return timedelta(0)

        self._sort()
        rank = p * len(self._samples) // 100
        return self._samples[rank]

    def _sort(self) -> None:
        if not self._sorted:
            self._samples.sort()
            self._sorted = True