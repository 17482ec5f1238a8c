import math
import unittest
from unittest.mock import MagicMock

import numpy as np

from spinsim.apparatus.stern_gerlach import ProbabilityRangeError, SternGerlachApparatus
from spinsim.spin.spin_state import SpinState, Z_PLUS, Z_MINUS, X_PLUS, X_MINUS
from spinsim.utils.data_structures import ApparatusGeometry, BlockingMode, SpinDirection


class TestSternGerlachProbability(unittest.TestCase):

    def setUp(self):
        self.z_apparatus = SternGerlachApparatus((1.5, 0.0), is_z_oriented=True)
        self.x_apparatus = SternGerlachApparatus((1.5, 0.0), is_z_oriented=False)

    def test_z_apparatus_with_z_plus(self):
        self.assertEqual(self.z_apparatus.compute_up_probability(SpinState(0.0, 1.0)), 1.0)

    def test_x_apparatus_with_z_plus(self):
        self.assertEqual(self.x_apparatus.compute_up_probability(SpinState(0.0, 1.0)), 0.5)

    def test_probability_formula_over_unit_circle(self):
        for angle in np.linspace(0, 2 * math.pi, 73):
            state = SpinState(math.sin(angle), math.cos(angle))
            for apparatus in (self.z_apparatus, self.x_apparatus):
                probability = apparatus.compute_up_probability(state)
                expected = (np.dot(state.to_vector(), apparatus.axis_vector()) + 1) / 2
                self.assertGreaterEqual(probability, 0.0)
                self.assertLessEqual(probability, 1.0)
                self.assertAlmostEqual(probability, expected, places=12)

    def test_out_of_range_probability_raises(self):
        incoming = MagicMock()
        incoming.up_probability_along.return_value = 1.2
        with self.assertRaises(ProbabilityRangeError):
            self.z_apparatus.compute_up_probability(incoming)
        incoming.up_probability_along.return_value = -0.1
        with self.assertRaises(ValueError):
            self.z_apparatus.compute_up_probability(incoming)

    def test_prepare_publishes_probability(self):
        self.x_apparatus.prepare(X_PLUS)
        self.assertEqual(self.x_apparatus.up_probability, 1.0)
        self.assertEqual(self.x_apparatus.down_probability, 0.0)

    def test_outcome_spins(self):
        self.assertIs(self.z_apparatus.outcome_spin(True), Z_PLUS)
        self.assertIs(self.z_apparatus.outcome_spin(False), Z_MINUS)
        self.assertIs(self.x_apparatus.outcome_spin(True), X_PLUS)
        down = self.x_apparatus.outcome_spin(False)
        self.assertIs(down, X_MINUS)
        self.assertEqual(down.direction, SpinDirection.X_MINUS)

    def test_x_down_outcome_measured_again(self):
        """The X down state is a regular (-1, 0) vector for later measurements."""
        self.assertEqual(self.x_apparatus.compute_up_probability(X_MINUS), 0.0)
        self.assertEqual(self.z_apparatus.compute_up_probability(X_MINUS), 0.5)


class TestSternGerlachState(unittest.TestCase):

    def setUp(self):
        self.apparatus = SternGerlachApparatus((1.5, 0.0), is_z_oriented=True,
                                               bucket_duration=0.5, window_duration=1.0)

    def test_anchors_follow_position(self):
        geometry = ApparatusGeometry()
        self.apparatus.set_position((2.0, 1.0))
        np.testing.assert_allclose(self.apparatus.entrance_position, np.array([2.0, 1.0]) + geometry.entrance_offset)
        np.testing.assert_allclose(self.apparatus.top_exit_position, np.array([2.0, 1.0]) + geometry.top_exit_offset)
        np.testing.assert_allclose(self.apparatus.bottom_exit_position,
                                   np.array([2.0, 1.0]) + geometry.bottom_exit_offset)
        np.testing.assert_allclose(self.apparatus.exit_position(True), self.apparatus.top_exit_position)
        np.testing.assert_allclose(self.apparatus.measurement_position,
                                   self.apparatus.entrance_position + np.array([geometry.width, 0.0]))

    def test_blocking_mode(self):
        self.apparatus.set_blocking_mode(BlockingMode.BLOCK_UP_EXIT)
        self.assertTrue(self.apparatus.is_exit_blocked(True))
        self.assertFalse(self.apparatus.is_exit_blocked(False))
        with self.assertRaises(TypeError):
            self.apparatus.set_blocking_mode("blockingUp")

    def test_record_outcome_and_rates(self):
        for _ in range(3):
            self.apparatus.record_outcome(True)
        self.apparatus.record_outcome(False)
        self.apparatus.step(0.5)
        self.apparatus.step(0.5)
        statistics = self.apparatus.get_statistics()
        self.assertEqual(statistics["up_count"], 3)
        self.assertEqual(statistics["down_count"], 1)
        self.assertEqual(statistics["up_fraction"], 0.75)
        self.assertAlmostEqual(statistics["up_rate_hz"], 3.0)
        self.assertAlmostEqual(statistics["down_rate_hz"], 1.0)

    def test_reset_keeps_configuration(self):
        self.apparatus.set_orientation(False)
        self.apparatus.set_blocking_mode(BlockingMode.BLOCK_DOWN_EXIT)
        self.apparatus.record_outcome(True)
        self.apparatus.step(0.5)
        self.apparatus.reset()

        self.assertEqual(self.apparatus.up_count, 0)
        self.assertEqual(self.apparatus.up_rate.rate, 0)
        self.assertFalse(self.apparatus.is_z_oriented)
        self.assertEqual(self.apparatus.blocking_mode, BlockingMode.BLOCK_DOWN_EXIT)
        np.testing.assert_allclose(self.apparatus.position, [1.5, 0.0])

    def test_status(self):
        status = self.apparatus.get_status()
        self.assertEqual(status["apparatus_type"], "SternGerlachApparatus")
        self.assertEqual(status["axis"], (0.0, 1.0))
        self.assertEqual(status["blocking_mode"], "NONE")


if __name__ == '__main__':
    unittest.main()
