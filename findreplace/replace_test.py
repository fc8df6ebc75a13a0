import pytest

from findreplace.errors import (
    MissingCollaboratorError,
    NoMatchesError,
    NoReplacementPatternError,
)
from findreplace.matcher import find_matches
from findreplace.pattern import normalize
from findreplace.prng import PCG32
from findreplace.replace import center_offset, execute_replace, plan_replace
from findreplace.rotation import rotate
from findreplace.types import Match
from findreplace.volume import Volume


def _single(type_id):
    return normalize({(0, 0, 0): type_id})


def _column(type_id, height=2):
    return normalize({(0, y, 0): type_id for y in range(height)})


# -- Centering ------------------------------------------------------


class TestCenterOffset:
    def test_same_size(self):
        assert center_offset(_single(1), _single(2)) == (0, 0, 0)

    def test_wider_find(self):
        find = normalize({(x, 0, 0): 1 for x in range(3)})
        assert center_offset(find, _single(2)) == (1, 0, 0)

    def test_wider_replacement(self):
        repl = normalize({(x, 0, 0): 1 for x in range(3)})
        assert center_offset(_single(1), repl) == (-1, 0, 0)

    def test_half_cells_round_up(self):
        """-0.5 rounds to 0 and 0.5 rounds to 1."""
        assert center_offset(_single(1), _column(2, 2)) == (0, 0, 0)
        find = normalize({(x, 0, 0): 1 for x in range(2)})
        assert center_offset(find, _single(2)) == (1, 0, 0)


# -- Execute --------------------------------------------------------


class TestExecuteReplace:
    def test_swaps_every_match(self):
        vol = Volume({(0, 0, 0): 5, (3, 0, 0): 5})
        matches = find_matches(_single(5), vol, match_rotations=False)
        result = execute_replace(vol, matches, _single(5), [_column(7)])
        assert dict(vol.items()) == {
            (0, 0, 0): 7,
            (0, 1, 0): 7,
            (3, 0, 0): 7,
            (3, 1, 0): 7,
        }
        assert result.replaced == 2
        assert result.delta.removed == {(0, 0, 0): 5, (3, 0, 0): 5}
        assert set(result.added_coords) == {
            (0, 0, 0),
            (0, 1, 0),
            (3, 0, 0),
            (3, 1, 0),
        }

    def test_overwritten_cells_recorded(self):
        """A replacement landing on an unrelated cell records its removal."""
        vol = Volume({(0, 0, 0): 5, (0, 1, 0): 9})
        matches = [Match((0, 0, 0), 0)]
        result = execute_replace(vol, matches, _single(5), [_column(7)])
        assert result.delta.removed == {(0, 0, 0): 5, (0, 1, 0): 9}
        assert vol.get((0, 1, 0)) == 7

    def test_find_footprint_deleted_when_replacement_smaller(self):
        find = normalize({(x, 0, 0): 1 for x in range(3)})
        vol = Volume({(x, 0, 0): 1 for x in range(3)})
        matches = find_matches(find, vol, match_rotations=False)
        execute_replace(vol, matches, find, [_single(2)])
        assert dict(vol.items()) == {(1, 0, 0): 2}

    def test_uses_match_rotation(self):
        find = normalize({(0, 0, 0): 1, (1, 0, 0): 2})
        repl = normalize({(0, 0, 0): 3, (1, 0, 0): 4})
        vol = Volume()
        for c, t in rotate(find, 1).cells.items():
            vol.set(c, t)
        matches = find_matches(find, vol)
        assert matches[0].rotation == 1
        result = execute_replace(vol, matches, find, [repl])
        assert result.placements[0].rotation == 1
        expected = rotate(repl, 1).cells
        assert dict(vol.items()) == expected

    def test_replacement_tags_written(self):
        repl = normalize(
            {(0, 0, 0): 7}, orientations={(0, 0, 0): 2}, shapes={(0, 0, 0): "slab"}
        )
        vol = Volume({(2, 0, 2): 5})
        execute_replace(vol, [Match((2, 0, 2), 0)], _single(5), [repl])
        assert vol.orientation((2, 0, 2)) == 2
        assert vol.shape((2, 0, 2)) == "slab"

    def test_random_rotation_in_range(self):
        vol = Volume({(x * 3, 0, 0): 5 for x in range(20)})
        matches = find_matches(_single(5), vol)
        repl = normalize({(0, 0, 0): 7, (1, 0, 0): 8})
        result = execute_replace(
            vol,
            matches,
            _single(5),
            [repl],
            random_rotation=True,
            rng=PCG32(seed=3),
        )
        rotations = {p.rotation for p in result.placements}
        assert rotations <= {0, 1, 2, 3}
        assert len(rotations) > 1

    def test_multiple_replacements_seeded(self):
        matches = [Match((x * 2, 0, 0), 0) for x in range(30)]
        repls = [_single(7), _single(8), _single(9)]

        def run(seed):
            vol = Volume({m.origin: 5 for m in matches})
            result = execute_replace(
                vol, matches, _single(5), repls, rng=PCG32(seed=seed)
            )
            return [p.pattern_index for p in result.placements], vol

        idx_a, vol_a = run(11)
        idx_b, vol_b = run(11)
        assert idx_a == idx_b
        assert vol_a == vol_b
        assert set(idx_a) == {0, 1, 2}

    def test_single_replacement_used_everywhere(self):
        matches = [Match((x * 2, 0, 0), 0) for x in range(5)]
        vol = Volume({m.origin: 5 for m in matches})
        result = execute_replace(vol, matches, _single(5), [_single(7)])
        assert all(p.pattern_index == 0 for p in result.placements)


class TestReplaceErrors:
    def test_stale_match_skipped(self):
        """A match whose cells no longer hold the find types is left alone."""
        vol = Volume({(0, 0, 0): 5, (3, 0, 0): 7})
        matches = [Match((0, 0, 0), 0), Match((3, 0, 0), 0)]
        result = execute_replace(vol, matches, _single(5), [_single(8)])
        assert [p.match for p in result.placements] == [matches[0]]
        assert dict(vol.items()) == {(0, 0, 0): 8, (3, 0, 0): 7}

    def test_all_matches_stale(self):
        vol = Volume({(0, 0, 0): 7, (3, 0, 0): 7})
        matches = [Match((0, 0, 0), 0), Match((3, 0, 0), 0)]
        with pytest.raises(NoMatchesError):
            execute_replace(vol, matches, _single(5), [_single(8)])
        assert dict(vol.items()) == {(0, 0, 0): 7, (3, 0, 0): 7}

    def test_partial_footprint_is_stale(self):
        find = normalize({(0, 0, 0): 5, (1, 0, 0): 6})
        vol = Volume({(0, 0, 0): 5})
        with pytest.raises(NoMatchesError):
            execute_replace(vol, [Match((0, 0, 0), 0)], find, [_single(8)])
        assert dict(vol.items()) == {(0, 0, 0): 5}

    def test_no_matches(self):
        vol = Volume({(0, 0, 0): 5})
        with pytest.raises(NoMatchesError):
            execute_replace(vol, [], _single(5), [_single(7)])
        assert dict(vol.items()) == {(0, 0, 0): 5}

    def test_no_replacement(self):
        vol = Volume({(0, 0, 0): 5})
        with pytest.raises(NoReplacementPatternError):
            execute_replace(vol, [Match((0, 0, 0), 0)], _single(5), [])
        assert dict(vol.items()) == {(0, 0, 0): 5}

    def test_no_volume(self):
        with pytest.raises(MissingCollaboratorError):
            execute_replace(None, [Match((0, 0, 0), 0)], _single(5), [_single(7)])

    def test_plan_does_not_mutate(self):
        vol = Volume({(0, 0, 0): 5})
        before = vol.copy()
        plan_replace(vol, [Match((0, 0, 0), 0)], _single(5), [_column(7)])
        assert vol == before
