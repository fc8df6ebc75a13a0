"""Sparse voxel volume and the accessor interface the engine relies on.

The engine never owns the volume: the surrounding editor does, and hands the
engine something satisfying ``VolumeAccessor``. ``Volume`` is the in-memory
implementation used by tests, scripts, and simple hosts. It keeps three
parallel sparse maps keyed by coordinate:

  * **types**: coordinate -> cell type id. Absence means empty.
  * **orientations**: only cells whose orientation index is non-zero.
  * **shapes**: only cells with a non-default shape tag.

``VolumeSnapshot`` is a frozen copy taken through the accessor interface.
The adjustment phase diffs the live volume against one to produce minimal
undo records, or to restore the pre-swap state exactly.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Protocol

import numpy as np

from .types import Bounds, CellDelta, Coord

CellValue = tuple[int, int, str | None]  # (type_id, orientation, shape)


class VolumeAccessor(Protocol):
    def get(self, c: Coord) -> int | None: ...

    def orientation(self, c: Coord) -> int: ...

    def shape(self, c: Coord) -> str | None: ...

    def set(
        self,
        c: Coord,
        type_id: int,
        orientation: int = 0,
        shape: str | None = None,
    ) -> None: ...

    def delete(self, c: Coord) -> None: ...

    def items(self) -> Iterable[tuple[Coord, int]]: ...

    def apply_delta(self, delta: CellDelta) -> None: ...


class Volume:
    def __init__(
        self,
        cells: dict[Coord, int] | None = None,
        orientations: dict[Coord, int] | None = None,
        shapes: dict[Coord, str] | None = None,
    ) -> None:
        self._types: dict[Coord, int] = {}
        self._orientations: dict[Coord, int] = {}
        self._shapes: dict[Coord, str] = {}
        orientations = orientations or {}
        shapes = shapes or {}
        for c, t in (cells or {}).items():
            self.set(c, t, orientations.get(c, 0), shapes.get(c))

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, c: object) -> bool:
        return c in self._types

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Volume):
            return NotImplemented
        return (
            self._types == other._types
            and self._orientations == other._orientations
            and self._shapes == other._shapes
        )

    def __repr__(self) -> str:
        return f"Volume({len(self._types)} cells)"

    def get(self, c: Coord) -> int | None:
        return self._types.get(c)

    def orientation(self, c: Coord) -> int:
        return self._orientations.get(c, 0)

    def shape(self, c: Coord) -> str | None:
        return self._shapes.get(c)

    def set(
        self,
        c: Coord,
        type_id: int,
        orientation: int = 0,
        shape: str | None = None,
    ) -> None:
        self._types[c] = type_id
        if orientation:
            self._orientations[c] = orientation
        else:
            self._orientations.pop(c, None)
        if shape:
            self._shapes[c] = shape
        else:
            self._shapes.pop(c, None)

    def delete(self, c: Coord) -> None:
        self._types.pop(c, None)
        self._orientations.pop(c, None)
        self._shapes.pop(c, None)

    def items(self) -> Iterator[tuple[Coord, int]]:
        return iter(list(self._types.items()))

    def apply_delta(self, delta: CellDelta) -> None:
        for c in delta.removed:
            self.delete(c)
        for c, t in delta.added.items():
            self.set(
                c,
                t,
                delta.added_orientations.get(c, 0),
                delta.added_shapes.get(c),
            )

    def copy(self) -> Volume:
        return Volume(
            dict(self._types), dict(self._orientations), dict(self._shapes)
        )

    def bounds(self) -> Bounds | None:
        """Tight inclusive box around all populated cells."""
        if not self._types:
            return None
        xs = [c[0] for c in self._types]
        ys = [c[1] for c in self._types]
        zs = [c[2] for c in self._types]
        return Bounds((min(xs), min(ys), min(zs)), (max(xs), max(ys), max(zs)))

    @staticmethod
    def from_dense(array, origin: Coord = (0, 0, 0)) -> Volume:
        """Build a volume from a 3D integer grid indexed ``[x, y, z]``.

        Zero entries are empty cells.
        """
        arr = np.asarray(array)
        if arr.ndim != 3:
            raise ValueError(f"Expected a 3D grid, got {arr.ndim} dimensions")
        vol = Volume()
        ox, oy, oz = origin
        for x, y, z in np.argwhere(arr != 0):
            vol.set((ox + int(x), oy + int(y), oz + int(z)), int(arr[x, y, z]))
        return vol

    def to_dense(self) -> tuple[np.ndarray, Coord]:
        """Dense copy of the populated region and the grid's world origin."""
        b = self.bounds()
        if b is None:
            return np.zeros((0, 0, 0), dtype=np.int64), (0, 0, 0)
        shape = (
            b.max[0] - b.min[0] + 1,
            b.max[1] - b.min[1] + 1,
            b.max[2] - b.min[2] + 1,
        )
        arr = np.zeros(shape, dtype=np.int64)
        for (x, y, z), t in self._types.items():
            arr[x - b.min[0], y - b.min[1], z - b.min[2]] = t
        return arr, b.min


def read_cell(volume: VolumeAccessor, c: Coord) -> CellValue | None:
    t = volume.get(c)
    if t is None:
        return None
    return (t, volume.orientation(c), volume.shape(c))


def _record(
    delta_types: dict[Coord, int],
    delta_orients: dict[Coord, int],
    delta_shapes: dict[Coord, str],
    c: Coord,
    value: CellValue,
) -> None:
    t, o, s = value
    delta_types[c] = t
    if o:
        delta_orients[c] = o
    if s:
        delta_shapes[c] = s


def record_added(delta: CellDelta, c: Coord, value: CellValue) -> None:
    _record(delta.added, delta.added_orientations, delta.added_shapes, c, value)


def record_removed(delta: CellDelta, c: Coord, value: CellValue) -> None:
    _record(
        delta.removed, delta.removed_orientations, delta.removed_shapes, c, value
    )


@dataclass(frozen=True)
class VolumeSnapshot:
    cells: dict[Coord, CellValue] = field(default_factory=dict)

    @staticmethod
    def capture(volume: VolumeAccessor) -> VolumeSnapshot:
        return VolumeSnapshot(
            {
                c: (t, volume.orientation(c), volume.shape(c))
                for c, t in volume.items()
            }
        )

    def get(self, c: Coord) -> CellValue | None:
        return self.cells.get(c)

    def diff(self, volume: VolumeAccessor) -> CellDelta:
        """Minimal delta that turns this snapshot into ``volume``'s state."""
        current = VolumeSnapshot.capture(volume).cells
        delta = CellDelta()
        for c, value in current.items():
            if self.cells.get(c) != value:
                record_added(delta, c, value)
        for c, value in self.cells.items():
            if current.get(c) != value:
                record_removed(delta, c, value)
        return delta

    def restore_delta(self, volume: VolumeAccessor) -> CellDelta:
        """Delta that turns ``volume`` back into this snapshot."""
        return self.diff(volume).inverted()
