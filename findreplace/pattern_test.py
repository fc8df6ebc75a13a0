import pytest

from findreplace.errors import EmptyPatternError
from findreplace.pattern import normalize, pattern_from_component, sample_region
from findreplace.types import Bounds
from findreplace.volume import Volume

# -- Normalize ------------------------------------------------------


class TestNormalize:
    def test_reanchors_to_origin(self):
        p = normalize({(5, 2, 3): 1, (6, 2, 3): 2, (5, 4, 3): 3})
        assert p.cells == {(0, 0, 0): 1, (1, 0, 0): 2, (0, 2, 0): 3}
        assert p.extents == (2, 3, 1)

    def test_negative_coords(self):
        p = normalize({(-3, -1, -7): 4, (-1, -1, -7): 4})
        assert p.cells == {(0, 0, 0): 4, (2, 0, 0): 4}
        assert p.width == 3

    def test_tags_move_with_cells(self):
        p = normalize(
            {(10, 0, 10): 1, (11, 0, 10): 2},
            orientations={(11, 0, 10): 3},
            shapes={(10, 0, 10): "slab"},
        )
        assert p.orientations == {(1, 0, 0): 3}
        assert p.shapes == {(0, 0, 0): "slab"}

    def test_default_tags_dropped(self):
        """Zero orientations and empty shape tags are not stored."""
        p = normalize(
            {(0, 0, 0): 1, (1, 0, 0): 1},
            orientations={(0, 0, 0): 0, (1, 0, 0): 2},
            shapes={(0, 0, 0): ""},
        )
        assert p.orientations == {(1, 0, 0): 2}
        assert p.shapes == {}

    def test_tags_without_cells_ignored(self):
        p = normalize({(0, 0, 0): 1}, orientations={(5, 5, 5): 1})
        assert p.orientations == {}

    def test_idempotent(self):
        p = normalize(
            {(3, 1, 2): 1, (4, 1, 2): 2, (3, 2, 5): 3},
            "thing",
            {(4, 1, 2): 1},
            {(3, 2, 5): "stairs"},
        )
        again = normalize(p.cells, p.name, p.orientations, p.shapes)
        assert again == p

    def test_empty_is_zero_extent(self):
        p = normalize({}, "nothing")
        assert p.is_empty
        assert p.extents == (0, 0, 0)
        assert p.name == "nothing"

    def test_empty_strict_raises(self):
        with pytest.raises(EmptyPatternError):
            normalize({}, strict=True)

    def test_does_not_mutate_input(self):
        cells = {(2, 2, 2): 1}
        normalize(cells)
        assert cells == {(2, 2, 2): 1}


# -- Sources --------------------------------------------------------


class TestSampleRegion:
    def test_samples_inside_bounds_only(self):
        vol = Volume(
            {(0, 0, 0): 1, (1, 0, 0): 2, (5, 0, 0): 3},
            orientations={(1, 0, 0): 2},
            shapes={(0, 0, 0): "slab"},
        )
        p = sample_region(vol, Bounds((0, 0, 0), (2, 1, 1)), "sampled")
        assert p.cells == {(0, 0, 0): 1, (1, 0, 0): 2}
        assert p.orientations == {(1, 0, 0): 2}
        assert p.shapes == {(0, 0, 0): "slab"}
        assert p.name == "sampled"

    def test_sparse_region_normalized(self):
        """Empty space at the box's low corner is trimmed."""
        vol = Volume({(3, 1, 3): 9})
        p = sample_region(vol, Bounds((0, 0, 0), (4, 4, 4)))
        assert p.cells == {(0, 0, 0): 9}
        assert p.extents == (1, 1, 1)

    def test_empty_region(self):
        p = sample_region(Volume(), Bounds((0, 0, 0), (2, 2, 2)))
        assert p.is_empty


class TestPatternFromComponent:
    def test_full_schematic(self):
        p = pattern_from_component(
            {
                "name": "Door",
                "schematic": {
                    "blocks": {"4,0,4": 7, "4,1,4": 7},
                    "rotations": {"4,1,4": 1},
                    "shapes": {"4,0,4": "door_bottom"},
                },
            }
        )
        assert p.name == "Door"
        assert p.cells == {(0, 0, 0): 7, (0, 1, 0): 7}
        assert p.orientations == {(0, 1, 0): 1}
        assert p.shapes == {(0, 0, 0): "door_bottom"}

    def test_bare_block_map(self):
        p = pattern_from_component({"1,1,1": 3, "2,1,1": 3})
        assert p.cells == {(0, 0, 0): 3, (1, 0, 0): 3}
        assert p.name == "Component"

    def test_prompt_used_as_name(self):
        p = pattern_from_component(
            {"prompt": "a small tower", "schematic": {"0,0,0": 1}}
        )
        assert p.name == "a small tower"
        assert p.cells == {(0, 0, 0): 1}
