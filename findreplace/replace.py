"""The swap step: delete each match's footprint, insert a replacement.

For every match the executor picks a replacement pattern (the only one, or a
uniformly random one through ``PCG32`` when several are supplied) and a
rotation (the match's own, or a random quarter turn when requested). The
replacement is centered on the find pattern's bounding box at that match:
per axis the shift is ``(find_extent - 1)/2 - (replace_extent - 1)/2``
rounded half up.

The whole change is planned against the volume as it was before the swap
(``plan_replace``) and then applied in a single ``apply_delta`` call, so no
match ever sees another's edits and a raised error leaves the volume as it
was. Nothing is written to the undo log here; that happens when the
adjustment session is confirmed.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from .errors import (
    MissingCollaboratorError,
    NoMatchesError,
    NoReplacementPatternError,
)
from .prng import PCG32
from .rotation import ROTATION_COUNT, rotate
from .types import CellDelta, Coord, Match, Pattern, add_coords
from .volume import (
    CellValue,
    VolumeAccessor,
    read_cell,
    record_added,
    record_removed,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Placement:
    match: Match
    pattern_index: int
    rotation: int
    offset: Coord  # centering shift applied to the replacement


@dataclass
class ReplaceResult:
    placements: list[Placement] = field(default_factory=list)
    delta: CellDelta = field(default_factory=CellDelta)
    added_coords: list[Coord] = field(default_factory=list)
    # Cells deleted because they belonged to a matched find pattern.
    footprint: list[Coord] = field(default_factory=list)

    @property
    def replaced(self) -> int:
        return len(self.placements)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def center_offset(find: Pattern, replacement: Pattern) -> Coord:
    """Shift that aligns the replacement's box center with the find's."""
    fx, fy, fz = find.extents
    rx, ry, rz = replacement.extents
    return (
        _round_half_up((fx - 1) / 2 - (rx - 1) / 2),
        _round_half_up((fy - 1) / 2 - (ry - 1) / 2),
        _round_half_up((fz - 1) / 2 - (rz - 1) / 2),
    )


def _still_matches(
    volume: VolumeAccessor, find_rot: Pattern, origin: Coord
) -> bool:
    for c, type_id in find_rot.cells.items():
        if volume.get(add_coords(origin, c)) != type_id:
            return False
    return True


def plan_replace(
    volume: VolumeAccessor | None,
    matches: Sequence[Match],
    find_pattern: Pattern,
    replacement_patterns: Sequence[Pattern],
    random_rotation: bool = False,
    rng: PCG32 | None = None,
) -> ReplaceResult:
    """Compute the swap delta without touching the volume."""
    if volume is None:
        raise MissingCollaboratorError("No volume available to replace in")
    if not matches:
        raise NoMatchesError("No matches to replace")
    if not replacement_patterns:
        raise NoReplacementPatternError("No replacement pattern selected")
    if rng is None:
        rng = PCG32.from_optional_seed(None)

    rotated_find: dict[int, Pattern] = {}
    rotated_repl: dict[tuple[int, int], Pattern] = {}
    placements: list[Placement] = []
    footprint: dict[Coord, None] = {}
    additions: dict[Coord, CellValue] = {}

    for match in matches:
        if match.rotation not in rotated_find:
            rotated_find[match.rotation] = rotate(find_pattern, match.rotation)
        find_rot = rotated_find[match.rotation]
        if not _still_matches(volume, find_rot, match.origin):
            logger.warning(
                "Skipping stale match at %s: footprint changed", match.origin
            )
            continue

        if len(replacement_patterns) == 1:
            idx = 0
        else:
            idx = rng.next_index(len(replacement_patterns))
        if random_rotation:
            rot = rng.next_index(ROTATION_COUNT)
        else:
            rot = match.rotation

        if (idx, rot) not in rotated_repl:
            rotated_repl[(idx, rot)] = rotate(replacement_patterns[idx], rot)
        repl_rot = rotated_repl[(idx, rot)]

        offset = center_offset(find_rot, repl_rot)
        placements.append(Placement(match, idx, rot, offset))

        for c in find_rot.cells:
            footprint[add_coords(match.origin, c)] = None

        base = add_coords(match.origin, offset)
        for c, type_id in repl_rot.cells.items():
            additions[add_coords(base, c)] = (
                type_id,
                repl_rot.orientations.get(c, 0),
                repl_rot.shapes.get(c),
            )

    if not placements:
        raise NoMatchesError("None of the matches are still present")

    delta = CellDelta()
    for wc in footprint:
        value = read_cell(volume, wc)
        if value is not None:
            record_removed(delta, wc, value)
    for wc in additions:
        if wc in footprint:
            continue
        # A replacement landing on an unrelated cell overwrites it.
        value = read_cell(volume, wc)
        if value is not None:
            record_removed(delta, wc, value)
    for wc, value in additions.items():
        record_added(delta, wc, value)

    return ReplaceResult(
        placements=placements,
        delta=delta,
        added_coords=list(additions),
        footprint=list(footprint),
    )


def execute_replace(
    volume: VolumeAccessor | None,
    matches: Sequence[Match],
    find_pattern: Pattern,
    replacement_patterns: Sequence[Pattern],
    random_rotation: bool = False,
    rng: PCG32 | None = None,
) -> ReplaceResult:
    """Plan the swap and apply it to the volume in one step."""
    if volume is None:
        raise MissingCollaboratorError("No volume available to replace in")
    result = plan_replace(
        volume,
        matches,
        find_pattern,
        replacement_patterns,
        random_rotation=random_rotation,
        rng=rng,
    )
    volume.apply_delta(result.delta)
    logger.info(
        "Replaced %d match(es): %d cell(s) removed, %d added",
        result.replaced,
        len(result.delta.removed),
        len(result.delta.added),
    )
    return result
