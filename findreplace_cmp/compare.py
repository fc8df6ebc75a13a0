"""Pruned search versus brute-force reference comparison.

Validates that the anchor-indexed matcher finds exactly the matches a scan
of every coordinate in scope finds, on seeded synthetic volumes.
"""

import copy
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np

# Add parent directory to path to import findreplace
sys.path.insert(0, str(Path(__file__).parent.parent))

from findreplace.matcher import find_matches
from findreplace.pattern import normalize
from findreplace.rotation import rotate
from findreplace.types import Bounds, Coord, Match, Pattern
from findreplace.volume import Volume, VolumeAccessor


def scan_bounds(
    volume: Volume, pattern: Pattern, scope: Optional[Bounds]
) -> Optional[Bounds]:
    """Every origin a match could possibly have.

    With a scope that is the scope itself. Otherwise it is the volume's box
    grown on the low side by the largest pattern extent, since a match
    origin can sit below and before every populated cell.
    """
    if scope is not None:
        return scope
    b = volume.bounds()
    if b is None:
        return None
    grow = max(pattern.width, pattern.depth) - 1
    return Bounds(
        (b.min[0] - grow, b.min[1] - pattern.height + 1, b.min[2] - grow),
        b.max,
    )


def brute_force_matches(
    pattern: Pattern,
    volume: VolumeAccessor,
    scope: Optional[Bounds] = None,
    match_rotations: bool = True,
) -> list[Match]:
    """Reference matcher: try every coordinate in scope as an origin.

    Each rotated copy is checked cell by cell against the volume with no
    index or anchor, so it shares nothing with the pruned search but
    ``rotate``.
    """
    if pattern.is_empty:
        return []
    assert isinstance(volume, Volume)
    box = scan_bounds(volume, pattern, scope)
    if box is None:
        return []
    rotations = range(4) if match_rotations else range(1)
    variants = [(r, rotate(pattern, r).cells) for r in rotations]
    accepted: list[Match] = []
    claimed: set[Coord] = set()
    for ox, oy, oz in box.coords():
        for r, cells in variants:
            placed = {
                (ox + x, oy + y, oz + z): t for (x, y, z), t in cells.items()
            }
            if any(c in claimed for c in placed):
                continue
            if all(volume.get(c) == t for c, t in placed.items()):
                accepted.append(Match((ox, oy, oz), r))
                claimed.update(placed)
                break
    return accepted


def overlapping_matches(pattern: Pattern, matches: list[Match]) -> list[str]:
    """Messages for every pair of matches sharing a cell."""
    diffs = []
    owner: dict[Coord, int] = {}
    for i, m in enumerate(matches):
        ox, oy, oz = m.origin
        for x, y, z in rotate(pattern, m.rotation).cells:
            c = (ox + x, oy + y, oz + z)
            if c in owner:
                diffs.append(
                    f"cell {c} claimed by match {owner[c]} and match {i}"
                )
            owner[c] = i
    return diffs


def compare_match_lists(
    pruned: list[Match], reference: list[Match]
) -> tuple[bool, list[str]]:
    """Ordered comparison of two match lists.

    Returns (match: bool, diffs: list of error messages).
    """
    diffs = []
    if len(pruned) != len(reference):
        diffs.append(
            f"Match count differs: pruned {len(pruned)}"
            f" vs brute force {len(reference)}"
        )
    for i, (a, b) in enumerate(zip(pruned, reference)):
        if a != b:
            diffs.append(
                f"match[{i}]: pruned {a.origin}@{a.rotation}"
                f" vs brute force {b.origin}@{b.rotation}"
            )
            if len(diffs) > 10:
                diffs.append("... (truncated)")
                break
    return len(diffs) == 0, diffs


# -- Scenario construction ------------------------------------------


def make_random_pattern(
    rng: np.random.Generator,
    size: Coord,
    num_types: int,
    fill: float = 0.6,
) -> Pattern:
    """Random sparse pattern inside a ``size`` box, never empty."""
    grid = rng.integers(1, num_types + 1, size=size)
    mask = rng.random(size) < fill
    if not mask.any():
        mask[0, 0, 0] = True
    cells = {
        (int(x), int(y), int(z)): int(grid[x, y, z])
        for x, y, z in np.argwhere(mask)
    }
    return normalize(cells, "random")


def make_volume(
    rng: np.random.Generator,
    size: Coord,
    num_types: int,
    density: float,
) -> Volume:
    """Random volume; each cell is filled with probability ``density``."""
    types = rng.integers(1, num_types + 1, size=size)
    types[rng.random(size) >= density] = 0
    return Volume.from_dense(types)


def plant_copies(
    rng: np.random.Generator,
    volume: Volume,
    pattern: Pattern,
    count: int,
    size: Coord,
    rotations: bool,
) -> None:
    """Stamp rotated copies of ``pattern`` at random spots (may overlap)."""
    for _ in range(count):
        r = int(rng.integers(0, 4)) if rotations else 0
        p = rotate(pattern, r)
        ox = int(rng.integers(0, max(1, size[0] - p.width + 1)))
        oy = int(rng.integers(0, max(1, size[1] - p.height + 1)))
        oz = int(rng.integers(0, max(1, size[2] - p.depth + 1)))
        for (x, y, z), t in p.cells.items():
            volume.set((ox + x, oy + y, oz + z), t)


@dataclass
class TestScenario:
    """One test scenario for comparison."""

    name: str
    seed: int
    volume_size: Coord = (12, 4, 12)
    pattern_size: Coord = (2, 1, 2)
    num_types: int = 3
    density: float = 0.4
    pattern_fill: float = 0.75
    planted: int = 6
    match_rotations: bool = True
    scope: Optional[Bounds] = None
    pattern: Optional[Pattern] = None

    def make_inputs(self) -> tuple[Pattern, Volume]:
        """Build the (find pattern, volume) pair for this scenario."""
        rng = np.random.default_rng(self.seed)
        pattern = self.pattern or make_random_pattern(
            rng, self.pattern_size, self.num_types, self.pattern_fill
        )
        volume = make_volume(rng, self.volume_size, self.num_types, self.density)
        plant_copies(
            rng,
            volume,
            pattern,
            self.planted,
            self.volume_size,
            self.match_rotations,
        )
        return pattern, volume


def scenario_to_dict(scenario: TestScenario) -> dict:
    """Self-contained JSON-ready dump of a scenario's generated inputs."""
    pattern, volume = scenario.make_inputs()
    grid, origin = volume.to_dense()
    return {
        "name": scenario.name,
        "match_rotations": scenario.match_rotations,
        "scope": scenario.scope.to_dict() if scenario.scope else None,
        "pattern": pattern.to_dict(),
        "volume": {"origin": list(origin), "types": grid.tolist()},
    }


def inputs_from_dict(d: dict) -> tuple[Pattern, Volume]:
    """Rebuild the (find pattern, volume) pair from ``scenario_to_dict``."""
    pattern = Pattern.from_dict(d["pattern"])
    vol = d["volume"]
    ox, oy, oz = vol["origin"]
    types = np.asarray(vol["types"], dtype=np.int64)
    if types.size == 0:
        return pattern, Volume()
    return pattern, Volume.from_dense(types, (ox, oy, oz))


TEST_SCENARIOS: list[TestScenario] = [
    TestScenario(
        name="single_cell",
        seed=1,
        pattern=normalize({(0, 0, 0): 2}),
        match_rotations=False,
    ),
    TestScenario(name="flat_2x2_rotations", seed=2),
    TestScenario(name="flat_2x2_fixed", seed=3, match_rotations=False),
    TestScenario(
        name="l_shape_distinct_types",
        seed=4,
        pattern=normalize({(0, 0, 0): 1, (1, 0, 0): 2, (0, 0, 1): 3}),
        num_types=4,
        density=0.3,
        planted=10,
    ),
    TestScenario(
        name="no_origin_cell",
        seed=5,
        pattern=normalize({(1, 0, 0): 1, (0, 0, 1): 1}),
        num_types=2,
        density=0.5,
    ),
    TestScenario(
        name="tall_3x2x2",
        seed=6,
        pattern_size=(3, 2, 2),
        volume_size=(14, 6, 14),
        num_types=2,
        density=0.5,
        planted=8,
    ),
    TestScenario(
        name="dense_single_type",
        seed=7,
        num_types=1,
        density=0.8,
        pattern_size=(2, 2, 1),
        pattern_fill=1.0,
    ),
    TestScenario(
        name="scoped_center",
        seed=8,
        volume_size=(16, 4, 16),
        scope=Bounds((4, 0, 4), (11, 3, 11)),
        planted=12,
    ),
    TestScenario(
        name="scoped_fixed_rotation",
        seed=9,
        volume_size=(16, 4, 16),
        scope=Bounds((0, 1, 0), (7, 2, 15)),
        match_rotations=False,
    ),
    TestScenario(
        name="sparse_many_types",
        seed=10,
        volume_size=(20, 3, 20),
        num_types=8,
        density=0.2,
        pattern_size=(3, 1, 2),
        planted=15,
    ),
]


@dataclass
class ComparisonTiming:
    """Timing breakdown for a single comparison run."""

    pruned_secs: float
    brute_secs: float

    @property
    def total_secs(self) -> float:
        return self.pruned_secs + self.brute_secs


def run_comparison(
    scenario: TestScenario,
    verbose: bool = False,
) -> tuple[bool, list[str], ComparisonTiming | None]:
    """Run both matchers on a scenario and compare results.

    Returns:
        (success: bool, diffs: list of error messages, timing or None on error)
    """
    diffs = []
    pattern, volume = scenario.make_inputs()

    try:
        t0 = time.perf_counter()
        pruned = find_matches(
            pattern, volume, scenario.scope, scenario.match_rotations
        )
        pruned_secs = time.perf_counter() - t0
    except Exception as e:
        diffs.append(f"Pruned search failed: {e}")
        return False, diffs, None

    t0 = time.perf_counter()
    reference = brute_force_matches(
        pattern, volume, scenario.scope, scenario.match_rotations
    )
    brute_secs = time.perf_counter() - t0

    timing = ComparisonTiming(pruned_secs=pruned_secs, brute_secs=brute_secs)

    match, compare_diffs = compare_match_lists(pruned, reference)
    if not match:
        diffs.extend(compare_diffs)
    diffs.extend(overlapping_matches(pattern, pruned))

    if verbose:
        print(
            f"\n  {scenario.name}: {len(volume)} cells,"
            f" {len(pattern.cells)}-cell pattern, {len(pruned)} match(es)"
        )
        if diffs:
            print("  Differences found:")
            for diff in diffs:
                print(f"    - {diff}")

    return len(diffs) == 0, diffs, timing


def _format_result(
    name: str,
    success: bool,
    diffs: list[str],
    timing: Optional[ComparisonTiming],
    verbose: bool,
) -> str:
    """Format a single scenario result as a printable string."""
    if timing:
        time_str = (
            f"  ({timing.total_secs:.3f}s,"
            f" pruned {timing.pruned_secs:.3f}s"
            f", brute {timing.brute_secs:.3f}s)"
        )
    else:
        time_str = ""

    if success:
        return f"✓ {name}{time_str}"
    lines = [f"✗ {name}{time_str}"]
    if verbose:
        for diff in diffs:
            lines.append(f"    {diff}")
    return "\n".join(lines)


def main():
    """CLI entry point with pytest-compatible exit codes."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Compare pruned and brute-force match search"
    )
    parser.add_argument(
        "--scenario",
        type=str,
        help="Run specific scenario by name",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Print detailed comparison output",
    )
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Stop on first failure",
    )
    parser.add_argument(
        "--seeds",
        type=int,
        default=1,
        metavar="N",
        help="Run each scenario with N consecutive seeds (e.g. 20 for thorough testing)",
    )

    args = parser.parse_args()

    scenarios = list(TEST_SCENARIOS)
    if args.scenario:
        scenarios = [s for s in scenarios if s.name == args.scenario]
        if not scenarios:
            print(f"Scenario '{args.scenario}' not found")
            return 1

    expanded = []
    for s in scenarios:
        for i in range(max(1, args.seeds)):
            variant = copy.copy(s)
            variant.seed = s.seed + i * 1000
            if args.seeds > 1:
                variant.name = f"{s.name}#{i}"
            expanded.append(variant)

    passed = 0
    failed = 0
    total_time = 0.0
    for scenario in expanded:
        success, diffs, timing = run_comparison(scenario, args.verbose)
        print(
            _format_result(
                scenario.name, success, diffs, timing, args.verbose
            )
        )
        if timing:
            total_time += timing.total_secs
        if success:
            passed += 1
        else:
            failed += 1
            if args.fail_fast:
                print(f"\n{passed} passed, {failed} failed (stopped early)")
                return 1

    print(f"\n{passed} passed, {failed} failed ({total_time:.2f}s total)")
    return 0 if failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
