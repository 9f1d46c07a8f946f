#!/usr/bin/env python3
"""
Basket Protocol Stress Testing - Main Entry Point

Command-line interface for running basket protocol scenarios, single runs or
Monte Carlo batches, with optional results storage.
"""

import argparse
import sys
import time
from typing import Dict, Optional

from pydantic import ValidationError

from .core.errors import BasketProtocolError
from .engine.config import ProtocolConfig, SimulationConfig
from .log import configure_logging
from .stress_testing.runner import StressTestRunner
from .stress_testing.scenarios import BasketStressTestSuite


def main(argv: Optional[list] = None) -> int:
    """Main entry point with command-line interface"""

    parser = argparse.ArgumentParser(
        description="Basket Protocol Stress Testing Framework",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  basket-sim --list-scenarios
  basket-sim --scenario Wrapped_Collateral_Default
  basket-sim --scenario Issuance_Surge --monte-carlo 50 --seed 7
  basket-sim --full-suite --monte-carlo 20 --no-save
  basket-sim --scenario Baseline --config deployment.json --log-format json --log-level INFO
        """
    )

    parser.add_argument('--list-scenarios', action='store_true',
                        help='List all available stress test scenarios')
    parser.add_argument('--scenario', type=str,
                        help='Run specific stress test scenario')
    parser.add_argument('--full-suite', action='store_true',
                        help='Run every scenario')

    parser.add_argument('--monte-carlo', type=int, default=1,
                        help='Number of Monte Carlo runs (default: 1, a single run)')
    parser.add_argument('--config', type=str,
                        help='Protocol deployment JSON file (default: built-in USD basket)')
    parser.add_argument('--seed', type=int,
                        help='Random seed for reproducibility')
    parser.add_argument('--issuers', type=int,
                        help='Number of issuer agents')
    parser.add_argument('--no-save', action='store_true',
                        help='Do not write results and charts')
    parser.add_argument('--results-dir', type=str, default='results',
                        help='Directory for saved results (default: results)')

    parser.add_argument('--log-format', choices=['text', 'json'], default=None,
                        help='Log output format (default: LOG_FORMAT env or text)')
    parser.add_argument('--log-level', type=str, default='WARNING',
                        help='Log level (default: WARNING)')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Verbose output')

    args = parser.parse_args(argv)

    if not any([args.list_scenarios, args.scenario, args.full_suite]):
        parser.print_help()
        return 1

    configure_logging(args.log_format, args.log_level)

    if args.list_scenarios:
        list_scenarios()
        return 0

    try:
        config = create_simulation_config(args)
    except (OSError, ValueError, ValidationError) as e:
        print(f"Invalid configuration: {e}")
        return 1

    runner = StressTestRunner(config, auto_save=not args.no_save, results_dir=args.results_dir)

    try:
        if args.scenario:
            print(f"Running Stress Test Scenario: {args.scenario}")
            print("=" * 60)
            return run_single_scenario(runner, args.scenario, args)

        print("Running Full Stress Test Suite")
        print("=" * 50)
        start_time = time.time()
        results = runner.run_full_stress_test_suite(args.monte_carlo)
        for scenario_name, scenario_results in results.items():
            display_monte_carlo_results(scenario_name, scenario_results, args.verbose)
        print(f"\nFull stress test suite completed in {time.time() - start_time:.1f}s")
        return 0

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 1
    except BasketProtocolError as e:
        print(f"Error: {e}")
        return 1


def create_simulation_config(args) -> SimulationConfig:
    """Create simulation configuration from command-line arguments"""
    overrides: Dict = {}
    if args.config:
        overrides["protocol"] = ProtocolConfig.from_json(args.config).model_dump()
    if args.seed is not None:
        overrides["random_seed"] = args.seed
    if args.issuers is not None:
        overrides["num_issuers"] = args.issuers
    return SimulationConfig().with_overrides(overrides)


def list_scenarios():
    """List all available stress test scenarios"""
    test_suite = BasketStressTestSuite()

    print("Available Stress Test Scenarios:")
    print("-" * 40)
    for i, scenario in enumerate(test_suite.scenarios, 1):
        print(f"{i:2d}. {scenario.name}")
        print(f"    {scenario.description}")
        print()


def run_single_scenario(runner: StressTestRunner, scenario_name: str, args) -> int:
    """Run a single stress test scenario"""
    if scenario_name not in runner.test_suite.get_scenario_names():
        print(f"Error: Scenario '{scenario_name}' not found")
        print("\nUse --list-scenarios to see available scenarios")
        return 1

    if args.monte_carlo > 1:
        print(f"Running Monte Carlo analysis ({args.monte_carlo} runs)")
        results = runner.run_monte_carlo_stress_test(scenario_name, args.monte_carlo)
        display_monte_carlo_results(scenario_name, results, args.verbose)
    else:
        results = runner.run_targeted_scenario(scenario_name)
        display_scenario_results(scenario_name, results, args.verbose)
    return 0


def display_scenario_results(scenario_name: str, results: Dict, verbose: bool = False):
    """Display single-run results"""
    summary = results["summary"]

    print(f"\nResults for {scenario_name}:")
    print("-" * 40)
    print(f"Final basket status: {summary['final_basket_status']}")
    print(f"Final supply: {summary['final_total_supply']:,.2f}")
    print(f"Baskets needed: {summary['final_baskets_needed']:,.2f}")
    print(f"Basket switches: {summary['basket_switches']}")
    print(f"Blocks not SOUND: {summary['blocks_not_sound']}")
    print(f"Max pending issuances: {summary['max_pending_issuances']}")
    print(f"Mean vesting delay: {summary['mean_vesting_delay_blocks']:.2f} blocks")
    print(f"Rejected actions: {summary['rejected_actions']}")

    if verbose:
        for switch in results["scenario_results"]["basket_switches"]:
            print(f"  nonce {switch['nonce']} at block {switch['block']}: {switch['erc20s']}")


def display_monte_carlo_results(scenario_name: str, results: Dict, verbose: bool = False):
    """Display Monte Carlo statistics"""
    print(f"\nMonte Carlo results for {scenario_name}:")
    print("-" * 40)
    print(f"Successful runs: {results['num_successful_runs']}/{results['num_runs']}")

    stats = results.get("statistics", {})
    keys = stats.keys() if verbose else [
        "final_total_supply", "basket_switches", "blocks_not_sound", "mean_vesting_delay_blocks"
    ]
    for key in keys:
        if key in stats:
            s = stats[key]
            print(f"{key}: mean {s['mean']:.3f}, std {s['std']:.3f}, range [{s['min']:.3f}, {s['max']:.3f}]")


if __name__ == "__main__":
    sys.exit(main())
