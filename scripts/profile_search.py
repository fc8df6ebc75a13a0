#!/usr/bin/env python3
"""Profile match search performance using comparison scenarios as workloads.

Usage (from the repository root):
    python scripts/profile_search.py profile                        # cProfile top 30 functions
    python scripts/profile_search.py profile --scenario tall_3x2x2
    python scripts/profile_search.py time                           # pruned vs brute-force timing
    python scripts/profile_search.py time --scale 4                 # volumes 4x larger per axis
    python scripts/profile_search.py dump-json -o scenarios.json   # generated inputs as JSON
"""

import argparse
import cProfile
import copy
import json
import logging
import pstats
import statistics
import sys
import time
from pathlib import Path

# Add the repository root to path so we can import findreplace
SCRIPT_DIR = Path(__file__).resolve().parent
ROOT_DIR = SCRIPT_DIR.parent
sys.path.insert(0, str(ROOT_DIR))

from findreplace.logging_config import setup_logging  # noqa: E402
from findreplace.matcher import find_matches  # noqa: E402
from findreplace_cmp.compare import (  # noqa: E402
    TEST_SCENARIOS,
    brute_force_matches,
    scenario_to_dict,
)


def _select_scenarios(args):
    """Filter and scale scenarios based on CLI args."""
    scenarios = list(TEST_SCENARIOS)
    if args.scenario:
        scenarios = [s for s in scenarios if s.name == args.scenario]
        if not scenarios:
            names = [s.name for s in TEST_SCENARIOS]
            print(f"Unknown scenario: {args.scenario}")
            print(f"Available: {', '.join(names)}")
            sys.exit(1)
    if args.scale > 1:
        scaled = []
        for s in scenarios:
            s = copy.copy(s)
            x, y, z = s.volume_size
            s.volume_size = (x * args.scale, y, z * args.scale)
            s.planted *= args.scale * args.scale
            s.scope = None
            scaled.append(s)
        scenarios = scaled
    return scenarios


def cmd_profile(args):
    """Run cProfile on the pruned search."""
    scenarios = _select_scenarios(args)
    top_n = args.top or 30

    profiler = cProfile.Profile()
    for scenario in scenarios:
        pattern, volume = scenario.make_inputs()
        print(f"Profiling: {scenario.name} ({len(volume)} cells)...")
        profiler.enable()
        find_matches(pattern, volume, scenario.scope, scenario.match_rotations)
        profiler.disable()

    print(f"\n{'=' * 70}")
    print(f"Top {top_n} functions by cumulative time")
    print(f"Scenarios: {', '.join(s.name for s in scenarios)}")
    print(f"{'=' * 70}\n")

    stats = pstats.Stats(profiler)
    stats.sort_stats("cumulative")
    stats.print_stats(top_n)

    if args.output:
        profiler.dump_stats(args.output)
        print(f"\nProfile data written to {args.output}")
        print("Visualize with: snakeviz " + args.output)


def _median_ms(fn, iterations):
    times = []
    for _ in range(iterations):
        start = time.perf_counter()
        fn()
        times.append((time.perf_counter() - start) * 1000)
    return statistics.median(times)


def cmd_time(args):
    """Time pruned vs brute-force search on each scenario."""
    scenarios = _select_scenarios(args)
    iterations = args.iterations or 3

    print(
        f"{'Scenario':<30} {'Cells':>8} {'Pruned (ms)':>12}"
        f" {'Brute (ms)':>12} {'Speedup':>10}"
    )
    print("-" * 76)

    for scenario in scenarios:
        pattern, volume = scenario.make_inputs()
        pruned_ms = _median_ms(
            lambda: find_matches(
                pattern, volume, scenario.scope, scenario.match_rotations
            ),
            iterations,
        )
        brute_ms = _median_ms(
            lambda: brute_force_matches(
                pattern, volume, scenario.scope, scenario.match_rotations
            ),
            iterations,
        )
        speedup = brute_ms / pruned_ms if pruned_ms > 0 else float("inf")
        print(
            f"{scenario.name:<30} {len(volume):>8} {pruned_ms:>12.2f}"
            f" {brute_ms:>12.2f} {speedup:>9.1f}x"
        )

    print(f"\n({iterations} iterations each, median reported)")


def cmd_dump_json(args):
    """Write each scenario's generated pattern and volume as JSON."""
    scenarios = _select_scenarios(args)
    payload = [scenario_to_dict(s) for s in scenarios]
    text = json.dumps(payload, indent=2)
    if args.output:
        Path(args.output).write_text(text)
        print(f"Wrote {len(payload)} scenario(s) to {args.output}")
    else:
        print(text)


def main():
    parser = argparse.ArgumentParser(
        description="Profile find & replace search performance"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Show engine debug logging"
    )
    sub = parser.add_subparsers(dest="command")

    # Common args added to each subparser
    def add_common(p):
        p.add_argument("--scenario", help="Run only this scenario (by name)")
        p.add_argument(
            "--scale",
            type=int,
            default=1,
            help="Grow each volume N times along x and z (default: 1)",
        )

    p_profile = sub.add_parser("profile", help="cProfile the pruned search")
    add_common(p_profile)
    p_profile.add_argument(
        "--top", type=int, help="Number of top functions to show (default: 30)"
    )
    p_profile.add_argument(
        "--output", "-o", help="Write cProfile binary data to file"
    )

    p_time = sub.add_parser("time", help="Time pruned vs brute-force search")
    add_common(p_time)
    p_time.add_argument(
        "--iterations",
        type=int,
        help="Iterations per scenario (default: 3)",
    )

    p_dump = sub.add_parser(
        "dump-json", help="Write generated scenario inputs as JSON"
    )
    add_common(p_dump)
    p_dump.add_argument("--output", "-o", help="Write JSON to file")

    args = parser.parse_args()
    setup_logging(logging.DEBUG if args.debug else logging.WARNING)

    if args.command == "profile":
        cmd_profile(args)
    elif args.command == "time":
        cmd_time(args)
    elif args.command == "dump-json":
        cmd_dump_json(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
