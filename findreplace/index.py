"""Type-id -> coordinates lookup over a volume, rebuilt per search."""

from __future__ import annotations

from .types import Coord
from .volume import VolumeAccessor


def build_index(volume: VolumeAccessor) -> dict[int, list[Coord]]:
    """Group every populated coordinate by its cell type id.

    One linear pass. No ordering guarantee within a type's list.
    """
    index: dict[int, list[Coord]] = {}
    for c, type_id in volume.items():
        index.setdefault(type_id, []).append(c)
    return index
