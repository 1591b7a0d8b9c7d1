"""Sorted index of possible local alignment end points."""
from typing import Optional

import numpy as np

from localign.core.capacity import round_up_pow2, grow, allocate
from localign.utils.resources import jit


# Classes --------------------------------------------------------------------------------------------------------------
class CandidateIndex:
    """
    Cells of a match matrix with a positive score, in the order alignments are tried.

    The order is total: score descending, then column (position along the first sequence) ascending, then row
    ascending. The row key is the same as the row-major scan order, so re-running the same inputs always
    yields the same sequence of candidates.

    Examples:
        >>> index = CandidateIndex()
        >>> index.build(np.array([0, 2, 0, 3, 2, 0]), width=3)
        3
        >>> index.indices.tolist()
        [3, 1, 4]
    """
    _MIN_CAPACITY = 256
    __slots__ = ('_buffer', '_count', '_next_hit')

    def __init__(self, capacity: int = _MIN_CAPACITY):
        self._buffer = allocate(round_up_pow2(capacity), np.int64)
        self._count = 0
        self._next_hit = 0

    def __len__(self) -> int: return self._count
    def __repr__(self): return f"CandidateIndex(n={self._count}, next_hit={self._next_hit})"

    @property
    def capacity(self) -> int: return len(self._buffer)

    @property
    def next_hit(self) -> int: return self._next_hit

    @property
    def remaining(self) -> int: return self._count - self._next_hit

    @property
    def indices(self) -> np.ndarray:
        """Read-only view of the sorted candidate cells."""
        view = self._buffer[:self._count].view()
        view.flags.writeable = False
        return view

    def resize(self, capacity: int):
        """
        Grows the backing buffer to at least `capacity` cells, rounded up to a power of two.

        Raises:
            CapacityError: If the buffer cannot be grown.
        """
        if capacity <= len(self._buffer): return
        self._buffer = grow(self._buffer, round_up_pow2(capacity))

    def build(self, match: np.ndarray, width: int) -> int:
        """
        Rebuilds the index from a flat match matrix and resets the cursor.

        Args:
            match: Flat match scores, indexed ``y * width + x``.
            width: Row length of the matrix.

        Returns:
            The number of candidates.
        """
        self.resize(len(match))
        n = _collect_positive_kernel(match, self._buffer)
        cells = self._buffer[:n]
        if n > 1:
            # np.lexsort sorts by the last key first
            order = np.lexsort((cells // width, cells % width, -match[cells]))
            cells[:] = cells[order]
        self._count = n
        self._next_hit = 0
        return n

    def pop(self) -> Optional[int]:
        """Returns the next candidate cell and advances the cursor, or None once exhausted."""
        if self._next_hit >= self._count: return None
        cell = int(self._buffer[self._next_hit])
        self._next_hit += 1
        return cell

    def reset(self):
        """Empties the index."""
        self._count = 0
        self._next_hit = 0


# Kernels --------------------------------------------------------------------------------------------------------------
@jit(nopython=True, cache=True, nogil=True)
def _collect_positive_kernel(scores, out):
    n = 0
    for i in range(len(scores)):
        if scores[i] > 0:
            out[n] = i
            n += 1
    return n
