import numpy as np
import pytest

from findreplace.types import Bounds, CellDelta
from findreplace.volume import Volume, VolumeSnapshot, read_cell


class TestVolume:
    def test_absent_is_empty(self):
        vol = Volume({(0, 0, 0): 1})
        assert vol.get((0, 0, 0)) == 1
        assert vol.get((1, 0, 0)) is None
        assert (1, 0, 0) not in vol
        assert len(vol) == 1

    def test_set_and_delete_tags(self):
        vol = Volume()
        vol.set((1, 2, 3), 4, orientation=2, shape="slab")
        assert read_cell(vol, (1, 2, 3)) == (4, 2, "slab")
        vol.set((1, 2, 3), 4)
        assert read_cell(vol, (1, 2, 3)) == (4, 0, None)
        vol.delete((1, 2, 3))
        assert read_cell(vol, (1, 2, 3)) is None

    def test_delete_missing_is_noop(self):
        vol = Volume({(0, 0, 0): 1})
        vol.delete((9, 9, 9))
        assert len(vol) == 1

    def test_equality_includes_tags(self):
        a = Volume({(0, 0, 0): 1}, orientations={(0, 0, 0): 1})
        b = Volume({(0, 0, 0): 1})
        assert a != b
        b.set((0, 0, 0), 1, orientation=1)
        assert a == b

    def test_apply_delta_removes_then_adds(self):
        vol = Volume({(0, 0, 0): 1, (1, 0, 0): 2})
        delta = CellDelta(
            added={(0, 0, 0): 5, (2, 0, 0): 6},
            removed={(0, 0, 0): 1, (1, 0, 0): 2},
            added_orientations={(2, 0, 0): 3},
        )
        vol.apply_delta(delta)
        assert dict(vol.items()) == {(0, 0, 0): 5, (2, 0, 0): 6}
        assert vol.orientation((2, 0, 0)) == 3

    def test_items_safe_during_mutation(self):
        vol = Volume({(0, 0, 0): 1, (1, 0, 0): 1})
        for c, _ in vol.items():
            vol.delete(c)
        assert len(vol) == 0

    def test_copy_is_independent(self):
        vol = Volume({(0, 0, 0): 1})
        dup = vol.copy()
        dup.set((1, 0, 0), 2)
        assert len(vol) == 1
        assert dup != vol

    def test_bounds(self):
        vol = Volume({(1, 5, -2): 1, (3, 0, 4): 1})
        assert vol.bounds() == Bounds((1, 0, -2), (3, 5, 4))
        assert Volume().bounds() is None


class TestDense:
    def test_from_dense(self):
        grid = np.zeros((3, 2, 2), dtype=int)
        grid[0, 0, 0] = 4
        grid[2, 1, 1] = 7
        vol = Volume.from_dense(grid, origin=(10, 0, -5))
        assert dict(vol.items()) == {(10, 0, -5): 4, (12, 1, -4): 7}

    def test_round_trip_origin(self):
        vol = Volume({(-1, 0, 0): 2, (1, 2, 0): 3})
        arr, origin = vol.to_dense()
        assert origin == (-1, 0, 0)
        assert arr.shape == (3, 3, 1)
        assert Volume.from_dense(arr, origin) == vol

    def test_rejects_non_3d(self):
        with pytest.raises(ValueError):
            Volume.from_dense(np.zeros((2, 2)))

    def test_empty_to_dense(self):
        arr, origin = Volume().to_dense()
        assert arr.size == 0
        assert origin == (0, 0, 0)


class TestSnapshot:
    def test_diff_empty_when_unchanged(self):
        vol = Volume({(0, 0, 0): 1}, shapes={(0, 0, 0): "slab"})
        snap = VolumeSnapshot.capture(vol)
        assert snap.diff(vol).is_empty

    def test_diff_is_minimal(self):
        vol = Volume({(0, 0, 0): 1, (1, 0, 0): 2, (2, 0, 0): 3})
        snap = VolumeSnapshot.capture(vol)
        vol.delete((0, 0, 0))
        vol.set((1, 0, 0), 9)
        vol.set((5, 0, 0), 4)
        delta = snap.diff(vol)
        assert delta.added == {(1, 0, 0): 9, (5, 0, 0): 4}
        assert delta.removed == {(0, 0, 0): 1, (1, 0, 0): 2}

    def test_orientation_change_counts(self):
        vol = Volume({(0, 0, 0): 1})
        snap = VolumeSnapshot.capture(vol)
        vol.set((0, 0, 0), 1, orientation=3)
        delta = snap.diff(vol)
        assert delta.added == {(0, 0, 0): 1}
        assert delta.added_orientations == {(0, 0, 0): 3}
        assert delta.removed == {(0, 0, 0): 1}

    def test_restore_delta(self):
        vol = Volume(
            {(0, 0, 0): 1, (1, 0, 0): 2}, orientations={(1, 0, 0): 1}
        )
        before = vol.copy()
        snap = VolumeSnapshot.capture(vol)
        vol.delete((1, 0, 0))
        vol.set((0, 0, 0), 5, shape="stairs")
        vol.set((4, 4, 4), 6)
        vol.apply_delta(snap.restore_delta(vol))
        assert vol == before
