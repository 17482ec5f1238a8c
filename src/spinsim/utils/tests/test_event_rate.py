import unittest

from spinsim.utils.event_rate import EventRateEstimator


class TestEventRateEstimator(unittest.TestCase):

    def setUp(self):
        self.estimator = EventRateEstimator(bucket_duration=0.5, window_duration=2.0)

    def _fill_window(self, events_per_bucket, buckets=4):
        for _ in range(buckets):
            for _ in range(events_per_bucket):
                self.estimator.record_event()
            self.estimator.step(0.5)

    def test_invalid_durations(self):
        with self.assertRaises(ValueError):
            EventRateEstimator(bucket_duration=0.0)
        with self.assertRaises(ValueError):
            EventRateEstimator(bucket_duration=0.5, window_duration=-1.0)
        with self.assertRaises(ValueError):
            EventRateEstimator(bucket_duration=1.0, window_duration=0.5)

    def test_initial_rate_is_zero(self):
        self.assertEqual(self.estimator.rate, 0.0)
        self.assertEqual(self.estimator.pending_count, 0)

    def test_evenly_spaced_events_over_one_window(self):
        """N events spread across the window publish N / window."""
        self._fill_window(events_per_bucket=5)
        self.assertAlmostEqual(self.estimator.rate, 20 / 2.0, places=9)

    def test_rate_only_updates_when_bucket_closes(self):
        for _ in range(3):
            self.estimator.record_event()
        self.estimator.step(0.25)
        self.assertEqual(self.estimator.rate, 0.0)
        self.assertEqual(self.estimator.pending_count, 3)

        self.estimator.step(0.25)
        self.assertAlmostEqual(self.estimator.rate, 3 / 0.5, places=9)
        self.assertEqual(self.estimator.pending_count, 0)

    def test_old_buckets_age_out(self):
        self._fill_window(events_per_bucket=5)
        self._fill_window(events_per_bucket=0)
        self.assertEqual(self.estimator.rate, 0.0)

    def test_partially_aged_window(self):
        self._fill_window(events_per_bucket=4)
        self._fill_window(events_per_bucket=0, buckets=2)
        # Two full buckets and two empty buckets remain in the window
        self.assertAlmostEqual(self.estimator.rate, 8 / 2.0, places=9)

    def test_reset_publishes_exact_zero(self):
        self._fill_window(events_per_bucket=7)
        self.estimator.record_event()
        self.estimator.reset()
        self.assertEqual(self.estimator.rate, 0)
        self.assertEqual(self.estimator.pending_count, 0)

    def test_negative_step(self):
        with self.assertRaises(ValueError):
            self.estimator.step(-0.1)


if __name__ == '__main__':
    unittest.main()
