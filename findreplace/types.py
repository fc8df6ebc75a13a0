"""Data types for the find & replace engine.

Coordinates are plain ``(x, y, z)`` integer tuples. Anything that crosses the
engine boundary as JSON (component schematics, undo records) uses the
``"x,y,z"`` string key form instead; ``coord_key`` / ``parse_coord_key``
convert between the two.
"""

from __future__ import annotations

from dataclasses import dataclass, field

Coord = tuple[int, int, int]


def coord_key(c: Coord) -> str:
    return f"{c[0]},{c[1]},{c[2]}"


def parse_coord_key(key: str) -> Coord:
    x, y, z = (int(float(p)) for p in key.split(","))
    return (x, y, z)


def add_coords(a: Coord, b: Coord) -> Coord:
    return (a[0] + b[0], a[1] + b[1], a[2] + b[2])


def sub_coords(a: Coord, b: Coord) -> Coord:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


@dataclass(frozen=True)
class Bounds:
    """Inclusive axis-aligned box."""

    min: Coord
    max: Coord

    @staticmethod
    def from_corners(a: Coord, b: Coord) -> Bounds:
        return Bounds(
            min=(min(a[0], b[0]), min(a[1], b[1]), min(a[2], b[2])),
            max=(max(a[0], b[0]), max(a[1], b[1]), max(a[2], b[2])),
        )

    def contains(self, c: Coord) -> bool:
        return (
            self.min[0] <= c[0] <= self.max[0]
            and self.min[1] <= c[1] <= self.max[1]
            and self.min[2] <= c[2] <= self.max[2]
        )

    def coords(self):
        """Every coordinate in the box, in ascending (x, y, z) order."""
        for x in range(self.min[0], self.max[0] + 1):
            for y in range(self.min[1], self.max[1] + 1):
                for z in range(self.min[2], self.max[2] + 1):
                    yield (x, y, z)

    @staticmethod
    def from_dict(d: dict) -> Bounds:
        lo = d["min"]
        hi = d["max"]
        return Bounds.from_corners(
            (int(lo["x"]), int(lo["y"]), int(lo["z"])),
            (int(hi["x"]), int(hi["y"]), int(hi["z"])),
        )

    def to_dict(self) -> dict:
        return {
            "min": {"x": self.min[0], "y": self.min[1], "z": self.min[2]},
            "max": {"x": self.max[0], "y": self.max[1], "z": self.max[2]},
        }


@dataclass(frozen=True)
class Pattern:
    """A normalized, origin-anchored assembly of cells.

    ``orientations`` and ``shapes`` are sparse: only cells with a non-zero
    orientation index or a non-default shape tag appear in them.
    """

    cells: dict[Coord, int] = field(default_factory=dict)
    orientations: dict[Coord, int] = field(default_factory=dict)
    shapes: dict[Coord, str] = field(default_factory=dict)
    width: int = 0
    height: int = 0
    depth: int = 0
    name: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.cells

    @property
    def extents(self) -> Coord:
        return (self.width, self.height, self.depth)

    @staticmethod
    def from_dict(d: dict) -> Pattern:
        return Pattern(
            cells={parse_coord_key(k): int(v) for k, v in d["blocks"].items()},
            orientations={
                parse_coord_key(k): int(v)
                for k, v in d.get("rotations", {}).items()
            },
            shapes={
                parse_coord_key(k): v for k, v in d.get("shapes", {}).items()
            },
            width=d.get("width", 0),
            height=d.get("height", 0),
            depth=d.get("depth", 0),
            name=d.get("name"),
        )

    def to_dict(self) -> dict:
        d: dict = {
            "blocks": {coord_key(c): v for c, v in self.cells.items()},
            "rotations": {
                coord_key(c): v for c, v in self.orientations.items()
            },
            "shapes": {coord_key(c): v for c, v in self.shapes.items()},
            "width": self.width,
            "height": self.height,
            "depth": self.depth,
        }
        if self.name:
            d["name"] = self.name
        return d


@dataclass(frozen=True)
class Match:
    origin: Coord
    rotation: int  # 0..3, quarter turns

    def to_dict(self) -> dict:
        x, y, z = self.origin
        return {
            "position": {"x": x, "y": y, "z": z},
            "rotation": self.rotation,
        }


@dataclass
class CellDelta:
    """An additive/subtractive change set over volume cells.

    Applying it removes every ``removed`` coordinate first, then writes every
    ``added`` one, so a coordinate present in both ends up with its added
    value. This is also the payload of an undo record.
    """

    added: dict[Coord, int] = field(default_factory=dict)
    removed: dict[Coord, int] = field(default_factory=dict)
    added_orientations: dict[Coord, int] = field(default_factory=dict)
    removed_orientations: dict[Coord, int] = field(default_factory=dict)
    added_shapes: dict[Coord, str] = field(default_factory=dict)
    removed_shapes: dict[Coord, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.removed

    def inverted(self) -> CellDelta:
        return CellDelta(
            added=dict(self.removed),
            removed=dict(self.added),
            added_orientations=dict(self.removed_orientations),
            removed_orientations=dict(self.added_orientations),
            added_shapes=dict(self.removed_shapes),
            removed_shapes=dict(self.added_shapes),
        )

    def to_dict(self) -> dict:
        def keyed(m: dict) -> dict:
            return {coord_key(c): v for c, v in m.items()}

        return {
            "terrain": {
                "added": keyed(self.added),
                "removed": keyed(self.removed),
            },
            "rotations": {
                "added": keyed(self.added_orientations),
                "removed": keyed(self.removed_orientations),
            },
            "shapes": {
                "added": keyed(self.added_shapes),
                "removed": keyed(self.removed_shapes),
            },
        }


@dataclass(frozen=True)
class SearchProgress:
    match_count: int
    searching: bool
    progress: int  # 0..100
    cancelled: bool = False

    def to_dict(self) -> dict:
        d: dict = {
            "matches": self.match_count,
            "searching": self.searching,
            "progress": self.progress,
        }
        if self.cancelled:
            d["cancelled"] = True
        return d


@dataclass(frozen=True)
class AdjustmentEvent:
    active: bool
    replaced: int = 0
    confirmed: bool = False
    cancelled: bool = False


@dataclass(frozen=True)
class OffsetEvent:
    offset: Coord


DEFAULT_BATCH_SIZE = 1000


@dataclass
class FindReplaceSettings:
    scope: Bounds | None = None
    match_rotations: bool = True
    random_replacement_rotation: bool = False
    batch_size: int = DEFAULT_BATCH_SIZE
    seed: int | None = None

    @staticmethod
    def from_dict(d: dict) -> FindReplaceSettings:
        scope_d = d.get("selection_bounds")
        scope = None
        if d.get("scope", "entire_map") == "selection" and scope_d:
            scope = Bounds.from_dict(scope_d)
        return FindReplaceSettings(
            scope=scope,
            match_rotations=d.get("match_rotations", True),
            random_replacement_rotation=d.get(
                "random_replacement_rotation", False
            ),
            batch_size=d.get("batch_size", DEFAULT_BATCH_SIZE),
            seed=d.get("seed"),
        )

    def to_dict(self) -> dict:
        d: dict = {
            "scope": "selection" if self.scope else "entire_map",
            "match_rotations": self.match_rotations,
            "random_replacement_rotation": self.random_replacement_rotation,
            "batch_size": self.batch_size,
        }
        if self.scope:
            d["selection_bounds"] = self.scope.to_dict()
        if self.seed is not None:
            d["seed"] = self.seed
        return d
