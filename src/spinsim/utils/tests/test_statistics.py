import unittest

from spinsim.apparatus.stern_gerlach import SternGerlachApparatus
from spinsim.spin.spin_state import Z_PLUS, X_PLUS
from spinsim.utils.statistics import calculate_up_fraction, expected_branch_fractions


def make_apparatuses(orientations):
    positions = [(1.5, 0.0), (3.2, 0.5), (3.2, -0.5)]
    return [SternGerlachApparatus(position, is_z_oriented=is_z)
            for position, is_z in zip(positions, orientations)]


class TestUpFraction(unittest.TestCase):

    def test_fraction(self):
        self.assertEqual(calculate_up_fraction([True, False, True, True]), 0.75)

    def test_empty(self):
        self.assertEqual(calculate_up_fraction([]), 0.0)


class TestExpectedBranchFractions(unittest.TestCase):

    def test_single_apparatus(self):
        apparatuses = make_apparatuses([True, True, True])
        fractions = expected_branch_fractions(apparatuses, Z_PLUS, uses_single_apparatus=True)
        self.assertEqual(fractions, {"up": 1.0, "down": 0.0})

    def test_z_then_x(self):
        apparatuses = make_apparatuses([True, False, False])
        fractions = expected_branch_fractions(apparatuses, Z_PLUS, uses_single_apparatus=False)
        self.assertAlmostEqual(fractions["up-up"], 0.5)
        self.assertAlmostEqual(fractions["up-down"], 0.5)
        self.assertAlmostEqual(fractions["down-up"], 0.0)
        self.assertAlmostEqual(fractions["down-down"], 0.0)

    def test_repeated_z_keeps_branches(self):
        apparatuses = make_apparatuses([True, True, True])
        fractions = expected_branch_fractions(apparatuses, X_PLUS, uses_single_apparatus=False)
        self.assertAlmostEqual(fractions["up-up"], 0.5)
        self.assertAlmostEqual(fractions["down-down"], 0.5)
        self.assertAlmostEqual(fractions["up-down"], 0.0)
        self.assertAlmostEqual(fractions["down-up"], 0.0)
        self.assertAlmostEqual(sum(fractions.values()), 1.0)


if __name__ == '__main__':
    unittest.main()
