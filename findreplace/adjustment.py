"""Post-swap adjustment: nudge the inserted cells, then commit or roll back.

State is an explicit tagged value, ``Idle`` or ``Adjusting(session)``. Each
transition takes the current state and returns the next one together with
the cell delta it applied, so a host can re-mesh exactly what changed:

  * ``begin_adjustment``: after a successful swap. The session keeps the
    pre-swap snapshot, the replacement cells as inserted at offset zero,
    and the find-pattern footprint that was deleted.
  * ``apply_offset``: move every inserted cell (with its tags) so the
    batch sits at ``new_offset`` from where the swap put it. A position
    the batch vacates gets back its pre-swap cell unless that cell was part
    of a find footprint, which stays deleted. The volume is therefore a pure
    function of the current offset, and successive nudges compose.
  * ``confirm``: diff the live volume against the snapshot and hand the
    non-empty diff to the undo sink as a single record.
  * ``cancel``: apply the snapshot's restore delta; the volume is back to
    its pre-swap state and no undo record is written.

Calling a session operation on ``Idle`` raises ``AdjustmentStateError``.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Protocol, Union

from .errors import AdjustmentStateError, MissingCollaboratorError
from .replace import ReplaceResult
from .types import CellDelta, Coord, Match, add_coords
from .volume import (
    CellValue,
    VolumeAccessor,
    VolumeSnapshot,
    read_cell,
    record_added,
    record_removed,
)

logger = logging.getLogger(__name__)

ZERO_OFFSET: Coord = (0, 0, 0)


class UndoSink(Protocol):
    def save_undo(self, delta: CellDelta) -> None: ...


@dataclass(frozen=True)
class AdjustmentSession:
    matches: list[Match]
    pre_swap: VolumeSnapshot
    inserted: dict[Coord, CellValue]  # replacement cells at zero offset
    removed: dict[Coord, int]
    footprint: frozenset[Coord]
    offset: Coord = ZERO_OFFSET

    @property
    def added_coords(self) -> list[Coord]:
        return [add_coords(c, self.offset) for c in self.inserted]

    @property
    def replaced(self) -> int:
        return len(self.matches)

    def cells_at(self, offset: Coord) -> dict[Coord, CellValue]:
        return {add_coords(c, offset): v for c, v in self.inserted.items()}

    def base_value(self, c: Coord) -> CellValue | None:
        """What a cell holds when no replacement cell covers it."""
        if c in self.footprint:
            return None
        return self.pre_swap.get(c)


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Adjusting:
    session: AdjustmentSession


AdjustmentState = Union[Idle, Adjusting]

IDLE = Idle()


def begin_adjustment(
    pre_swap: VolumeSnapshot,
    result: ReplaceResult,
    matches: list[Match],
) -> Adjusting:
    inserted: dict[Coord, CellValue] = {}
    d = result.delta
    for c in result.added_coords:
        inserted[c] = (
            d.added[c],
            d.added_orientations.get(c, 0),
            d.added_shapes.get(c),
        )
    session = AdjustmentSession(
        matches=list(matches),
        pre_swap=pre_swap,
        inserted=inserted,
        removed=dict(d.removed),
        footprint=frozenset(result.footprint),
    )
    logger.debug(
        "Adjustment started: %d inserted cell(s)", len(session.inserted)
    )
    return Adjusting(session)


def _require_session(state: AdjustmentState) -> AdjustmentSession:
    if not isinstance(state, Adjusting):
        raise AdjustmentStateError("No adjustment in progress")
    return state.session


def apply_offset(
    state: AdjustmentState, volume: VolumeAccessor, new_offset: Coord
) -> tuple[Adjusting, CellDelta]:
    """Translate the inserted batch to ``new_offset`` from its swap position."""
    session = _require_session(state)
    new_offset = (int(new_offset[0]), int(new_offset[1]), int(new_offset[2]))
    if new_offset == session.offset:
        return Adjusting(session), CellDelta()

    old_cells = session.cells_at(session.offset)
    new_cells = session.cells_at(new_offset)
    delta = CellDelta()
    for c, value in old_cells.items():
        if c in new_cells:
            continue
        record_removed(delta, c, value)
        base = session.base_value(c)
        if base is not None:
            record_added(delta, c, base)
    for c, value in new_cells.items():
        current = read_cell(volume, c)
        if current is not None:
            record_removed(delta, c, current)
        record_added(delta, c, value)
    volume.apply_delta(delta)

    logger.debug("Adjustment offset %s -> %s", session.offset, new_offset)
    return Adjusting(dataclasses.replace(session, offset=new_offset)), delta


def confirm(
    state: AdjustmentState,
    volume: VolumeAccessor,
    undo_sink: UndoSink | None,
) -> tuple[Idle, CellDelta]:
    """Commit the session as one undo record (skipped when nothing changed)."""
    session = _require_session(state)
    if undo_sink is None:
        raise MissingCollaboratorError("No undo sink to record the swap in")
    delta = session.pre_swap.diff(volume)
    if delta.is_empty:
        logger.info("Adjustment confirmed with no net change")
    else:
        undo_sink.save_undo(delta)
        logger.info(
            "Adjustment confirmed: %d added, %d removed",
            len(delta.added),
            len(delta.removed),
        )
    return IDLE, delta


def cancel(
    state: AdjustmentState, volume: VolumeAccessor
) -> tuple[Idle, CellDelta]:
    """Roll the volume back to the pre-swap snapshot."""
    session = _require_session(state)
    delta = session.pre_swap.restore_delta(volume)
    volume.apply_delta(delta)
    logger.info("Adjustment cancelled; restored %d cell(s)", len(delta.added))
    return IDLE, delta
