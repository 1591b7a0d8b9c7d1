import numpy as np
import pytest
from localign.core.bitmask import ConsumptionMask
from localign.core.capacity import round_up_pow2, grow, CapacityError


class TestCapacity:
    def test_round_up_pow2(self):
        assert round_up_pow2(0) == 1
        assert round_up_pow2(1) == 1
        assert round_up_pow2(3) == 4
        assert round_up_pow2(256) == 256
        assert round_up_pow2(257) == 512

    def test_grow_preserves_prefix(self):
        arr = np.arange(4, dtype=np.int64)
        new = grow(arr, 8, fill=-1)
        np.testing.assert_array_equal(new, [0, 1, 2, 3, -1, -1, -1, -1])

    def test_grow_noop_when_large_enough(self):
        arr = np.arange(8)
        assert grow(arr, 4) is arr

    def test_capacity_error_is_memory_error(self):
        assert issubclass(CapacityError, MemoryError)


class TestConsumptionMask:
    def test_capacity_rounds_up(self):
        assert ConsumptionMask(100).capacity == 128
        assert len(ConsumptionMask(256)) == 256

    def test_reset_and_mark(self):
        mask = ConsumptionMask(128)
        mask.reset_all()
        assert mask.count() == 128
        mask.mark_used(0)
        mask.mark_used(63)
        mask.mark_used(64)
        assert not mask.is_available(0)
        assert not mask.is_available(63)
        assert not mask.is_available(64)
        assert mask.is_available(1)
        assert mask.is_available(65)
        assert mask.count() == 125
        mask.mark_available(63)
        assert mask.is_available(63)

    def test_count_prefix(self):
        mask = ConsumptionMask(256)
        mask.clear_all()
        for cell in (1, 5, 200):
            mask.mark_available(cell)
        assert mask.count() == 3
        assert mask.count(100) == 2

    def test_resize_preserves_bits_and_clears_new(self):
        mask = ConsumptionMask(64)
        mask.reset_all()
        mask.mark_used(10)
        mask.resize(1000)
        assert mask.capacity == 1024
        assert mask.is_available(9)
        assert not mask.is_available(10)
        assert not mask.is_available(500)

    def test_resize_never_shrinks(self):
        mask = ConsumptionMask(1024)
        mask.resize(10)
        assert mask.capacity == 1024

    def test_out_of_range(self):
        mask = ConsumptionMask(64)
        with pytest.raises(IndexError, match="out of range"):
            mask.is_available(64)
        with pytest.raises(IndexError):
            mask.mark_used(-1)
