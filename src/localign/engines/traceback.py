"""
Two-pass traceback of local alignments through the match / gap-in-A / gap-in-B matrices.

The first pass walks back from an end cell, claiming cells in the consumption mask and counting alignment
columns. The second pass re-derives the identical path with the same deterministic step function and writes the
aligned characters, so no explicit path needs to be stored.
"""
from typing import Optional

from localign.core.alignment import Alignment, AlignmentBuffer
from localign.core.bitmask import ConsumptionMask, _test_bit, _clear_bit
from localign.engines.matrices import ScoreMatrices, TracebackError, _step_back, _MATCH, _GAP_A, _GAP_B, _INVALID
from localign.utils.resources import jit


# Constants ------------------------------------------------------------------------------------------------------------
_COLLISION = -1
_BROKEN = -2
_GAP_CODE = ord(Alignment.GAP)


# Classes --------------------------------------------------------------------------------------------------------------
class PathTracer:
    """
    Follows candidate end cells back to the start of their local alignment.

    A candidate whose path touches any cell already claimed by a previous alignment is rejected as a whole.
    Cells visited before the collision was detected stay claimed.
    """
    __slots__ = ('_matrices', '_mask')

    def __init__(self, matrices: ScoreMatrices, mask: ConsumptionMask):
        self._matrices = matrices
        self._mask = mask

    @property
    def matrices(self) -> ScoreMatrices: return self._matrices

    def measure(self, cell: int) -> Optional[int]:
        """
        Claims the path ending at `cell` and returns its number of alignment columns.

        Returns:
            The alignment length, or None if the path collides with a claimed cell.

        Raises:
            TracebackError: If the path cannot be followed.
        """
        length = _measure_path_kernel(cell, self._mask.words, *self._matrices.kernel_args)
        if length == _BROKEN: raise TracebackError(f'Traceback from cell {cell} failed')
        if length == _COLLISION: return None
        return int(length)

    def trace(self, cell: int, buffer: AlignmentBuffer = None) -> Optional[Alignment]:
        """
        Traces the alignment ending at `cell`.

        Args:
            cell: Flat index of the end cell in the match matrix.
            buffer: Character buffer to reconstruct the alignment into. A temporary one is used if not given.

        Returns:
            The alignment, or None if its path collides with a previously emitted alignment.

        Raises:
            TracebackError: If the path cannot be followed.
            CapacityError: If the buffer cannot be grown.
        """
        if (length := self.measure(cell)) is None: return None
        if buffer is None: buffer = AlignmentBuffer(length)
        else: buffer.ensure_capacity(length)

        out_a, out_b = buffer.arrays
        start_x, start_y = _materialize_path_kernel(cell, length, out_a, out_b, *self._matrices.kernel_args)
        if start_x < 0: raise TracebackError(f'Traceback from cell {cell} failed')

        m = self._matrices
        end_y, end_x = divmod(cell, m.width)
        aligned_a, aligned_b = buffer.decode(length)
        return Alignment(aligned_a, aligned_b, int(m.match[cell]), int(start_x), int(start_y), end_x, end_y)


# Kernels --------------------------------------------------------------------------------------------------------------
@jit(nopython=True, cache=True, nogil=True)
def _measure_path_kernel(cell, words, seq_a, seq_b, table, match, gap_a, gap_b, width, gap_open, gap_extend,
                         allow_gap_a, allow_gap_b):
    """
    Pass 1: claims every cell on the path, including the zero-score start.
    Returns the number of alignment columns, _COLLISION or _BROKEN.
    """
    kind = _MATCH
    score = match[cell]
    x = cell % width
    y = cell // width
    idx = cell
    length = 0
    while True:
        if not _test_bit(words, idx): return _COLLISION
        _clear_bit(words, idx)
        if score == 0: return length
        kind, score, x, y, idx = _step_back(kind, score, x, y, idx, seq_a, seq_b, table, match, gap_a, gap_b,
                                            width, gap_open, gap_extend, allow_gap_a, allow_gap_b)
        if kind == _INVALID: return _BROKEN
        length += 1


@jit(nopython=True, cache=True, nogil=True)
def _materialize_path_kernel(cell, length, out_a, out_b, seq_a, seq_b, table, match, gap_a, gap_b, width,
                             gap_open, gap_extend, allow_gap_a, allow_gap_b):
    """
    Pass 2: writes the aligned characters from the tail of the buffers towards the front.
    Returns the (x, y) of the zero-score start, or (-1, -1) if the path diverges from pass 1.
    """
    kind = _MATCH
    score = match[cell]
    x = cell % width
    y = cell // width
    idx = cell
    i = length - 1
    while score > 0:
        if i < 0: return -1, -1
        if kind == _MATCH:
            out_a[i] = seq_a[x - 1]
            out_b[i] = seq_b[y - 1]
        elif kind == _GAP_A:
            out_a[i] = _GAP_CODE
            out_b[i] = seq_b[y - 1]
        elif kind == _GAP_B:
            out_a[i] = seq_a[x - 1]
            out_b[i] = _GAP_CODE
        else:
            return -1, -1
        kind, score, x, y, idx = _step_back(kind, score, x, y, idx, seq_a, seq_b, table, match, gap_a, gap_b,
                                            width, gap_open, gap_extend, allow_gap_a, allow_gap_b)
        if kind == _INVALID: return -1, -1
        i -= 1
    if i != -1: return -1, -1
    return x, y
