"""Quarter-turn rotation of patterns about the vertical (y) axis.

One step turns a pattern 90 degrees clockwise seen from above:
``(x, y, z) -> (z, y, width - 1 - x)``. Height never changes; width and depth
swap each step. Orientation and shape tags ride along with their cell, keyed
by the cell's new coordinate, with their values unchanged.
"""

from __future__ import annotations

from .pattern import normalize
from .types import Coord, Pattern

ROTATION_COUNT = 4


def rotate_coord(c: Coord, width: int) -> Coord:
    x, y, z = c
    return (z, y, width - 1 - x)


def rotate(pattern: Pattern, times: int) -> Pattern:
    """Rotate ``pattern`` by ``times`` quarter turns; returns a new pattern."""
    times %= ROTATION_COUNT
    if times == 0:
        return pattern

    cells = dict(pattern.cells)
    orientations = dict(pattern.orientations)
    shapes = dict(pattern.shapes)
    width, depth = pattern.width, pattern.depth
    for _ in range(times):
        new_cells: dict[Coord, int] = {}
        new_orients: dict[Coord, int] = {}
        new_shapes: dict[Coord, str] = {}
        for c, type_id in cells.items():
            nc = rotate_coord(c, width)
            new_cells[nc] = type_id
            if c in orientations:
                new_orients[nc] = orientations[c]
            if c in shapes:
                new_shapes[nc] = shapes[c]
        cells, orientations, shapes = new_cells, new_orients, new_shapes
        width, depth = depth, width

    # Step output may be negative or off-origin; re-anchor.
    return normalize(cells, pattern.name, orientations, shapes)


def rotation_variants(
    pattern: Pattern, match_rotations: bool
) -> list[tuple[int, Pattern]]:
    """``(rotation_index, pattern)`` pairs in ascending rotation order."""
    indices = range(ROTATION_COUNT) if match_rotations else range(1)
    return [(r, rotate(pattern, r)) for r in indices]
