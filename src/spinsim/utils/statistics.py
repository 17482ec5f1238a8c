"""Utility functions for statistics."""
import logging
from typing import Dict, Sequence

import numpy as np


def calculate_up_fraction(outcomes: Sequence[bool]) -> float:
    """
    Calculates the fraction of "up" outcomes.

    Args:
        outcomes: Measurement outcomes, True for up.

    Returns:
        The fraction of up outcomes, 0.0 when there are none.
    """
    if len(outcomes) == 0:
        return 0.0

    fraction = float(np.count_nonzero(outcomes)) / len(outcomes)
    logging.debug(f"Up fraction calculated: {fraction:.4f} over {len(outcomes)} outcomes")
    return fraction


def expected_branch_fractions(apparatuses, initial_spin, uses_single_apparatus: bool) -> Dict[str, float]:
    """
    Calculates the analytic fraction of particles leaving each final exit.

    Args:
        apparatuses: Ordered apparatus list (first stage, upper, lower).
        initial_spin: Prepared spin state of the source.
        uses_single_apparatus: Whether only the first apparatus is in use.

    Returns:
        Mapping of exit path ("up", "down" or "up-up", "up-down", ...) to probability.
    """
    first = apparatuses[0]
    p_up = first.compute_up_probability(initial_spin)
    if uses_single_apparatus:
        return {"up": p_up, "down": 1.0 - p_up}

    fractions = {}
    for first_up, branch_probability in ((True, p_up), (False, 1.0 - p_up)):
        second = apparatuses[1] if first_up else apparatuses[2]
        second_p_up = second.compute_up_probability(first.outcome_spin(first_up))
        prefix = "up" if first_up else "down"
        fractions[f"{prefix}-up"] = branch_probability * second_p_up
        fractions[f"{prefix}-down"] = branch_probability * (1.0 - second_p_up)

    logging.debug(f"Expected branch fractions: {fractions}")
    return fractions
