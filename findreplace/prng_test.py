import pytest

from findreplace.prng import PCG32


class TestPCG32:
    def test_deterministic_per_seed(self):
        a = PCG32(seed=42)
        b = PCG32(seed=42)
        assert [a.next_u32() for _ in range(10)] == [
            b.next_u32() for _ in range(10)
        ]

    def test_seeds_differ(self):
        a = PCG32(seed=1)
        b = PCG32(seed=2)
        assert [a.next_u32() for _ in range(5)] != [
            b.next_u32() for _ in range(5)
        ]

    def test_float_range(self):
        rng = PCG32(seed=7)
        for _ in range(1000):
            assert 0.0 <= rng.next_float() < 1.0

    def test_index_covers_range(self):
        rng = PCG32(seed=7)
        seen = {rng.next_index(4) for _ in range(200)}
        assert seen == {0, 1, 2, 3}

    def test_index_rejects_empty(self):
        with pytest.raises(ValueError):
            PCG32(seed=1).next_index(0)

    def test_optional_seed(self):
        a = PCG32.from_optional_seed(9)
        b = PCG32(seed=9)
        assert a.next_u32() == b.next_u32()
        PCG32.from_optional_seed(None).next_u32()
