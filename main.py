"""
Stock-and-Flow Simulation Engine
Demo entry point: runs the circular economy model in simulated real time
"""

import argparse

from stockflow.circular_economy import CircularEconomyModel
from stockflow.config import get_settings
from stockflow.models import ScenarioConfig, SimulationConfig
from stockflow.simulator import ModelSimulator
from stockflow.utils.logging_config import get_logger, setup_logging_from_settings

logger = get_logger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the circular economy demo model")
    parser.add_argument("--seconds", type=float, default=10.0, help="Wall-clock seconds to simulate")
    parser.add_argument("--frame-rate", type=float, default=30.0, help="Ticks per wall-clock second")
    parser.add_argument("--method", default=None, help="Integration method (euler or rk4)")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    settings = get_settings()

    setup_logging_from_settings(settings)
    args = parse_args(argv)

    scenario = ScenarioConfig(
        initial_stocks=dict(CircularEconomyModel.initial_stocks),
        initial_parameters=dict(CircularEconomyModel.default_parameters),
        simulation=SimulationConfig(
            step_size=settings.default_step_size,
            delta_per_second=settings.default_delta_per_second,
            method=args.method or settings.default_integration_method,
        ),
    )
    simulator = ModelSimulator.from_config(CircularEconomyModel(), scenario)

    logger.info(
        f"Environment: {settings.env}, "
        f"Method: {scenario.simulation.method}, "
        f"Format: {'JSON' if settings.log_format_json else 'Human-readable'}"
    )

    frame_seconds = 1.0 / args.frame_rate
    frames = int(args.seconds * args.frame_rate)
    for frame in range(frames):
        record = simulator.tick(frame_seconds)
        if (frame + 1) % max(1, int(args.frame_rate)) == 0:
            logger.info(
                f"t={record.t:.2f} "
                + ", ".join(f"{k}={v:.1f}" for k, v in record.stocks.items())
            )

    logger.info(f"Cache stats: {simulator.get_cache_stats()}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
