#!/usr/bin/env python3
"""
Example script demonstrating the usage of ArgBinder.

This script shows how to tag dataclass fields with ``cli`` options and bind
them from the command line, e.g.::

    python basic_example.py --name demo -t 30.5 --workers=8 -v
    python basic_example.py --config simulation.yaml --verbose=false
"""

import sys
from dataclasses import dataclass, field

from dataclass_argbinder import ArgBinder, ArgsError, UInt16, cli_field


@dataclass
class SimulationConfig:
    """Configuration for simulation parameters."""

    name: str = cli_field("name", help="Name of the simulation")
    temperature: float = cli_field(
        "temperature,short=t,default=27.0", help="Temperature in Celsius"
    )
    num_simulations: int = cli_field(
        "simulations,default=100", help="Number of simulations to run"
    )
    workers: UInt16 = cli_field("workers,default=4", help="Maximum number of worker processes")
    output_dir: str = cli_field(
        "output-dir,short=o,default=/tmp/output", help="Output directory path"
    )
    verbose: bool = field(default=False, metadata={"cli": "verbose,short=v", "help": "Enable verbose output"})


def main() -> int:
    """Main function demonstrating the binder."""
    binder = ArgBinder(SimulationConfig, config_flag="config")

    print("ArgBinder Example")
    print("=" * 50)
    print(binder.format_help())
    print()

    result = binder.safe_parse()
    if result.is_err():
        error: ArgsError = result.unwrap_err()
        print(f"error: {error}", file=sys.stderr)
        return 2

    config = result.unwrap()
    print("Parsed Configuration:")
    print("-" * 30)
    print(f"Simulation Name: {config.name}")
    print(f"Temperature: {config.temperature}°C")
    print(f"Number of Simulations: {config.num_simulations}")
    print(f"Workers: {config.workers}")
    print(f"Output Directory: {config.output_dir}")
    print(f"Verbose: {config.verbose}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
