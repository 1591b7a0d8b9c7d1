"""Resizable bit-per-cell mask tracking which score matrix cells are still available."""
import numpy as np

from localign.core.capacity import round_up_pow2, grow, allocate
from localign.utils.resources import jit


# Constants ------------------------------------------------------------------------------------------------------------
_WORD_BITS = 64
_FULL_WORD = np.iinfo(np.uint64).max


# Classes --------------------------------------------------------------------------------------------------------------
class ConsumptionMask:
    """
    A dynamic bit-set over score matrix cells where a set bit means the cell is still available.

    Bits are packed into uint64 words. Capacity is always a power of two and only ever grows, so repeated runs
    against matrices of varying size reuse the same storage.

    Examples:
        >>> mask = ConsumptionMask(100)
        >>> mask.capacity
        128
        >>> mask.reset_all()
        >>> mask.mark_used(5)
        >>> mask.is_available(5), mask.is_available(6)
        (False, True)
    """
    _MIN_CAPACITY = 256
    __slots__ = ('_words', '_capacity')

    def __init__(self, capacity: int = _MIN_CAPACITY):
        self._capacity = round_up_pow2(capacity)
        self._words = allocate(self._n_words(self._capacity), np.uint64)

    def __len__(self) -> int: return self._capacity
    def __repr__(self): return f"ConsumptionMask(capacity={self._capacity}, available={self.count()})"

    @property
    def capacity(self) -> int: return self._capacity

    @property
    def words(self) -> np.ndarray:
        """The packed words, as consumed by the traceback kernels."""
        return self._words

    @staticmethod
    def _n_words(capacity: int) -> int: return max(1, (capacity + _WORD_BITS - 1) // _WORD_BITS)

    def _check(self, cell: int):
        if not 0 <= cell < self._capacity: raise IndexError(f'Cell {cell} out of range for mask of {self._capacity}')

    def resize(self, capacity: int):
        """
        Grows the mask to hold at least `capacity` bits, rounded up to a power of two.
        Existing bits are preserved and new bits start cleared. Requests smaller than the current capacity are ignored.

        Raises:
            CapacityError: If the word buffer cannot be grown.
        """
        if capacity <= self._capacity: return
        new_capacity = round_up_pow2(capacity)
        self._words = grow(self._words, self._n_words(new_capacity))
        self._capacity = new_capacity

    def reset_all(self):
        """Marks every cell as available."""
        self._words.fill(_FULL_WORD)

    def clear_all(self):
        """Marks every cell as used."""
        self._words.fill(0)

    def is_available(self, cell: int) -> bool:
        self._check(cell)
        return bool(_test_bit(self._words, cell))

    def mark_used(self, cell: int):
        self._check(cell)
        _clear_bit(self._words, cell)

    def mark_available(self, cell: int):
        self._check(cell)
        _set_bit(self._words, cell)

    def count(self, n_cells: int = None) -> int:
        """Number of available cells among the first `n_cells` (defaults to the whole capacity)."""
        n_cells = self._capacity if n_cells is None else min(n_cells, self._capacity)
        bits = np.unpackbits(self._words.view(np.uint8), bitorder='little')
        return int(np.count_nonzero(bits[:n_cells]))


# Kernels --------------------------------------------------------------------------------------------------------------
@jit(nopython=True, cache=True, nogil=True)
def _test_bit(words, i):
    return (words[i >> 6] >> np.uint64(i & 63)) & np.uint64(1) != 0


@jit(nopython=True, cache=True, nogil=True)
def _clear_bit(words, i):
    words[i >> 6] = words[i >> 6] & ~(np.uint64(1) << np.uint64(i & 63))


@jit(nopython=True, cache=True, nogil=True)
def _set_bit(words, i):
    words[i >> 6] = words[i >> 6] | (np.uint64(1) << np.uint64(i & 63))
