"""
Stern-Gerlach beam demo.

Runs a continuous beam through a preset experiment and compares the simulated
exit fractions against the analytic expectation.
"""
import argparse
import logging

from spinsim import SpinModel
from spinsim.experiment.experiment_configuration import SpinExperiment
from spinsim.utils.data_structures import BlockingMode, SimulationInfo, SourceMode, SpinDirection
from spinsim.utils.logging_setup import (
    DEBUG_L1, LEVEL_NAMES, configure_package_logging, parse_level, setup_logger
)

logger = setup_logger("Stern-Gerlach Demo", logging.INFO)

EXPERIMENTS = {str(index + 1): experiment for index, experiment in enumerate(SpinExperiment)
               if not experiment.is_custom}
DIRECTIONS = {str(direction): direction for direction in SpinDirection.preparable()}


def run_demo(args):
    config = SimulationInfo(seed=args.seed, beam_pool_size=args.pool_size)
    model = SpinModel(config)
    model.set_experiment(EXPERIMENTS[args.experiment])
    model.set_spin_direction(DIRECTIONS[args.spin])
    if args.block is not None:
        model.set_blocking_mode(0, BlockingMode.BLOCK_UP_EXIT if args.block == "up" else BlockingMode.BLOCK_DOWN_EXIT)

    model.set_source_mode(SourceMode.CONTINUOUS)
    model.set_particle_amount(args.amount)

    times = []
    up_rates = []
    down_rates = []
    steps = int(args.duration / args.dt)
    for step in range(steps):
        model.step(args.dt)
        times.append((step + 1) * args.dt)
        up_rates.append(model.apparatuses[0].up_rate.rate)
        down_rates.append(model.apparatuses[0].down_rate.rate)
        if step % int(1 / args.dt) == 0:
            logger.log(DEBUG_L1, f"t={times[-1]:.1f}s active={len(model.orchestrator.active_particles())}")

    report(model)

    if args.plot:
        plot_rates(times, up_rates, down_rates)


def report(model):
    """Log simulated exit fractions next to the analytic expectation."""
    status = model.get_status()
    logger.info(f"Experiment: {status['experiment']}, prepared spin: {status['prepared_spin']}")
    logger.info(f"Fully measured particles: {sum(model.final_outcomes.values())}")

    expected = model.expected_fractions()
    for label, simulated in model.simulated_fractions().items():
        logger.info(f"Exit {label:>9}: simulated {simulated:.3f}, expected {expected[label]:.3f}")
    logger.info(f"Blocked particles: {status['statistics']['particles_blocked']}")
    return status


def plot_rates(times, up_rates, down_rates):
    import matplotlib.pyplot as plt

    plt.figure(figsize=(8, 4))
    plt.plot(times, up_rates, label="up")
    plt.plot(times, down_rates, label="down")
    plt.xlabel("Time (s)")
    plt.ylabel("Rate (particles/s)")
    plt.title("First apparatus outcome rates")
    plt.legend()
    plt.grid(True)
    plt.tight_layout()
    plt.show()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Stern-Gerlach beam simulation demo")
    parser.add_argument("-e", "--experiment", choices=sorted(EXPERIMENTS), default="3",
                        help="Preset experiment number")
    parser.add_argument("-s", "--spin", choices=sorted(DIRECTIONS), default="+Z", help="Prepared spin direction")
    parser.add_argument("-a", "--amount", type=float, default=1.0, help="Beam amount between 0 and 1")
    parser.add_argument("-t", "--duration", type=float, default=30.0, help="Simulated time in seconds")
    parser.add_argument("--dt", type=float, default=1 / 60, help="Time step in seconds")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--pool-size", type=int, default=5000, help="Beam particle pool size")
    parser.add_argument("--block", choices=["up", "down"], default=None,
                        help="Block an exit of the first apparatus")
    parser.add_argument("--plot", action="store_true", help="Plot the outcome rates (needs matplotlib)")
    parser.add_argument("--log-level", choices=sorted(LEVEL_NAMES), default="warning",
                        help="Log level of the simulation components (debug_l3 traces every particle)")
    args = parser.parse_args()

    configure_package_logging(parse_level(args.log_level))
    if parse_level(args.log_level) < logging.INFO:
        logger.setLevel(DEBUG_L1)
    run_demo(args)
