"""Windowed event-rate estimation."""
import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque


@dataclass
class EventCountSample:
    """Events counted during one closed bucket."""
    duration: float  # seconds
    count: int


class EventRateEstimator:
    """
    Publishes an average event rate over a trailing time window.

    Events are counted into buckets of ``bucket_duration`` seconds. Every time
    a bucket closes, the most recent buckets are summed backwards until they
    cover at least ``window_duration`` seconds (the bucket that crosses the
    threshold is included in full) and ``count / duration`` is published.
    The published value therefore updates once per bucket.
    """

    def __init__(self, bucket_duration: float = 0.5, window_duration: float = 2.0):
        """
        Initialize the estimator.

        Args:
            bucket_duration: Length of one sample bucket in seconds
            window_duration: Averaging window in seconds, at least one bucket long
        """
        if bucket_duration <= 0:
            raise ValueError("Bucket duration must be greater than zero.")
        if window_duration <= 0:
            raise ValueError("Window duration must be greater than zero.")
        if window_duration < bucket_duration:
            raise ValueError("Window duration must be greater than or equal to the bucket duration.")

        self.bucket_duration = bucket_duration
        self.window_duration = window_duration
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        self._current_count = 0
        self._time_since_last_sample = 0.0
        self._history: Deque[EventCountSample] = deque()
        self._rate = 0.0

    @property
    def rate(self) -> float:
        """Most recently published rate in events per second."""
        return self._rate

    @property
    def pending_count(self) -> int:
        """Events recorded in the bucket that is still open."""
        return self._current_count

    def record_event(self) -> None:
        """Count one event into the open bucket."""
        self._current_count += 1

    def step(self, dt: float) -> None:
        """Advance time, closing the open bucket when it is full."""
        if dt < 0:
            raise ValueError("Time step cannot be negative.")

        self._time_since_last_sample += dt
        if self._time_since_last_sample < self.bucket_duration:
            return

        self._history.append(EventCountSample(
            duration=self._time_since_last_sample,
            count=self._current_count
        ))

        # Walk back from the newest bucket until the window is covered
        accumulated_time = 0.0
        accumulated_count = 0
        samples_used = 0
        for sample in reversed(self._history):
            accumulated_time += sample.duration
            accumulated_count += sample.count
            samples_used += 1
            if accumulated_time >= self.window_duration:
                break

        if accumulated_time > 0:
            # Rounded to 12 decimal places to hide floating point noise
            self._rate = round(accumulated_count / accumulated_time, 12)
        else:
            self._rate = 0.0

        while len(self._history) > samples_used:
            self._history.popleft()

        self._current_count = 0
        self._time_since_last_sample = 0.0

    def reset(self) -> None:
        """Clear history and counters and publish zero."""
        self._current_count = 0
        self._time_since_last_sample = 0.0
        self._history.clear()
        self._rate = 0.0
        self.logger.debug("Event rate estimator reset")
