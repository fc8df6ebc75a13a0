"""Pattern construction: normalization and the two pattern sources.

A pattern is always stored normalized: the per-axis minimum over its cells is
``(0, 0, 0)``. Patterns come from either a sampled sub-region of a volume
(``sample_region``) or an imported component schematic
(``pattern_from_component``); both funnel through ``normalize``.
"""

from __future__ import annotations

from collections.abc import Mapping

from .errors import EmptyPatternError
from .types import Bounds, Coord, Pattern
from .volume import VolumeAccessor


def normalize(
    cells: Mapping[Coord, int],
    name: str | None = None,
    orientations: Mapping[Coord, int] | None = None,
    shapes: Mapping[Coord, str] | None = None,
    strict: bool = False,
) -> Pattern:
    """Re-anchor ``cells`` (and their tags) so the minimum corner is the origin.

    An empty mapping yields a zero-extent pattern, or raises
    ``EmptyPatternError`` when ``strict`` is set.
    """
    if not cells:
        if strict:
            raise EmptyPatternError(f"Pattern {name or ''!r} has no cells")
        return Pattern(name=name)

    orientations = orientations or {}
    shapes = shapes or {}
    min_x = min(c[0] for c in cells)
    min_y = min(c[1] for c in cells)
    min_z = min(c[2] for c in cells)
    max_x = max(c[0] for c in cells)
    max_y = max(c[1] for c in cells)
    max_z = max(c[2] for c in cells)

    norm_cells: dict[Coord, int] = {}
    norm_orients: dict[Coord, int] = {}
    norm_shapes: dict[Coord, str] = {}
    for (x, y, z), type_id in cells.items():
        key = (x - min_x, y - min_y, z - min_z)
        norm_cells[key] = type_id
        orient = orientations.get((x, y, z))
        if orient:
            norm_orients[key] = orient
        shape = shapes.get((x, y, z))
        if shape:
            norm_shapes[key] = shape

    return Pattern(
        cells=norm_cells,
        orientations=norm_orients,
        shapes=norm_shapes,
        width=max_x - min_x + 1,
        height=max_y - min_y + 1,
        depth=max_z - min_z + 1,
        name=name,
    )


def sample_region(
    volume: VolumeAccessor, bounds: Bounds, name: str | None = None
) -> Pattern:
    """Build a pattern from every populated cell inside ``bounds``."""
    cells: dict[Coord, int] = {}
    orientations: dict[Coord, int] = {}
    shapes: dict[Coord, str] = {}
    for c in bounds.coords():
        t = volume.get(c)
        if t is None:
            continue
        cells[c] = t
        orient = volume.orientation(c)
        if orient:
            orientations[c] = orient
        shape = volume.shape(c)
        if shape:
            shapes[c] = shape
    return normalize(cells, name, orientations, shapes)


def pattern_from_component(component: dict) -> Pattern:
    """Import a named component schematic as a normalized pattern.

    Accepts ``{"name": ..., "schematic": {"blocks": {...}, "rotations": ...,
    "shapes": ...}}``, a component whose ``schematic`` is itself the
    ``{"x,y,z": type_id}`` block map, or a bare block map.
    """
    schematic = component.get("schematic", component)
    if "blocks" not in schematic:
        schematic = {"blocks": schematic}
    raw = Pattern.from_dict(schematic)
    name = component.get("name") or component.get("prompt") or "Component"
    return normalize(raw.cells, name, raw.orientations, raw.shapes)
