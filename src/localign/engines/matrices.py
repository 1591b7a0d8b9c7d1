"""Affine-gap local alignment score matrices and single-step traceback."""
from typing import Union, NamedTuple
from enum import IntEnum

import numpy as np

from localign.core.scoring import Scoring
from localign.core.capacity import round_up_pow2, allocate
from localign.utils.resources import jit


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class TracebackError(RuntimeError):
    """Raised when a backward step has no consistent predecessor, which means the matrices are corrupt."""


# Constants ------------------------------------------------------------------------------------------------------------
class MatrixKind(IntEnum):
    """The score matrix a traversal state lives in."""
    MATCH = 0
    GAP_A = 1  # Gap in the first sequence, consumes the second
    GAP_B = 2  # Gap in the second sequence, consumes the first


_MATCH = int(MatrixKind.MATCH)
_GAP_A = int(MatrixKind.GAP_A)
_GAP_B = int(MatrixKind.GAP_B)
_INVALID = -1


# Classes --------------------------------------------------------------------------------------------------------------
class TraversalState(NamedTuple):
    """Position and matrix identity during backward reconstruction of an alignment path."""
    kind: MatrixKind
    score: int
    x: int
    y: int
    cell: int


class ScoreMatrices:
    """
    The three local alignment score matrices of one sequence pair, stored as flat arrays indexed by ``y * width + x``.

    `x` runs along the first sequence and `y` along the second, so ``width = len(a) + 1`` and
    ``height = len(b) + 1``. The arrays are read-only views into buffers owned by the `MatrixAligner`
    that computed them and are only valid until that aligner computes the next pair.
    """
    __slots__ = ('match', 'gap_a', 'gap_b', 'width', 'height', 'seq_a', 'seq_b', 'scoring')

    def __init__(self, match: np.ndarray, gap_a: np.ndarray, gap_b: np.ndarray, width: int, height: int,
                 seq_a: np.ndarray, seq_b: np.ndarray, scoring: Scoring):
        self.match = match
        self.gap_a = gap_a
        self.gap_b = gap_b
        self.width = width
        self.height = height
        self.seq_a = seq_a
        self.seq_b = seq_b
        self.scoring = scoring

    def __len__(self) -> int: return self.width * self.height
    def __repr__(self): return f"ScoreMatrices{self.shape}"

    @property
    def shape(self) -> tuple[int, int]: return self.height, self.width

    @property
    def size(self) -> int: return self.width * self.height

    @property
    def kernel_args(self) -> tuple:
        """Arguments shared by every traceback kernel, after the state."""
        s = self.scoring
        return (self.seq_a, self.seq_b, s.table, self.match, self.gap_a, self.gap_b, self.width,
                s.gap_open, s.gap_extend, not s.no_gaps_in_a, not s.no_gaps_in_b)

    def as_2d(self, kind: MatrixKind = MatrixKind.MATCH) -> np.ndarray:
        """Returns a (height, width) view of one matrix."""
        return (self.match, self.gap_a, self.gap_b)[kind].reshape(self.shape)

    def state_at(self, cell: int) -> TraversalState:
        """The state an alignment ending at `cell` starts its traceback from."""
        if not 0 <= cell < self.size: raise IndexError(f'Cell {cell} out of range for {self}')
        y, x = divmod(cell, self.width)
        return TraversalState(MatrixKind.MATCH, int(self.match[cell]), x, y, cell)

    def step_back(self, state: TraversalState) -> TraversalState:
        """
        Returns the unique predecessor of `state` under the affine-gap recurrence.

        Raises:
            TracebackError: If `state` has a zero score (the start of a local alignment) or no predecessor
                reproduces its score.
        """
        if state.score == 0: raise TracebackError(f'Cannot step back from zero-score state {state}')
        kind, score, x, y, cell = _step_back(int(state.kind), state.score, state.x, state.y, state.cell,
                                             *self.kernel_args)
        if kind == _INVALID: raise TracebackError(f'No predecessor reproduces the score of {state}')
        return TraversalState(MatrixKind(kind), int(score), int(x), int(y), int(cell))


class MatrixAligner:
    """
    Fills affine-gap local alignment matrices, reusing its buffers across sequence pairs.

    Examples:
        >>> aligner = MatrixAligner()
        >>> m = aligner.compute('ACGT', 'ACGT', Scoring())
        >>> int(m.match.max())
        4
    """
    _MIN_CAPACITY = 256
    __slots__ = ('_match', '_gap_a', '_gap_b')

    def __init__(self, capacity: int = _MIN_CAPACITY):
        capacity = round_up_pow2(capacity)
        self._match = allocate(capacity, np.int64)
        self._gap_a = allocate(capacity, np.int64)
        self._gap_b = allocate(capacity, np.int64)

    @property
    def capacity(self) -> int: return len(self._match)

    def _ensure_capacity(self, size: int):
        if size <= len(self._match): return
        capacity = round_up_pow2(size)
        self._match = allocate(capacity, np.int64)
        self._gap_a = allocate(capacity, np.int64)
        self._gap_b = allocate(capacity, np.int64)

    def compute(self, seq_a: Union[str, bytes], seq_b: Union[str, bytes], scoring: Scoring) -> ScoreMatrices:
        """
        Computes the match, gap-in-A and gap-in-B matrices for a sequence pair.

        Args:
            seq_a: First sequence (x axis).
            seq_b: Second sequence (y axis).
            scoring: The scoring scheme.

        Returns:
            ScoreMatrices viewing this aligner's buffers.

        Raises:
            ScoringError: If a sequence contains characters the scheme cannot score.
            CapacityError: If the buffers cannot be grown.
        """
        codes_a = scoring.encode(seq_a)
        codes_b = scoring.encode(seq_b)
        width, height = len(codes_a) + 1, len(codes_b) + 1
        size = width * height
        self._ensure_capacity(size)

        match, gap_a, gap_b = self._match[:size], self._gap_a[:size], self._gap_b[:size]
        _fill_kernel(codes_a, codes_b, scoring.table, scoring.gap_open, scoring.gap_extend,
                     not scoring.no_gaps_in_a, not scoring.no_gaps_in_b, match, gap_a, gap_b)

        views = []
        for arr in (match, gap_a, gap_b):
            view = arr.view()
            view.flags.writeable = False
            views.append(view)
        return ScoreMatrices(*views, width, height, codes_a, codes_b, scoring)


# Kernels --------------------------------------------------------------------------------------------------------------
@jit(nopython=True, cache=True, nogil=True)
def _fill_kernel(seq_a, seq_b, table, gap_open, gap_extend, allow_gap_a, allow_gap_b, match, gap_a, gap_b):
    width = len(seq_a) + 1
    height = len(seq_b) + 1
    open_penalty = gap_open + gap_extend

    # Local alignment: every boundary cell, and every cell of a disallowed gap matrix, is zero
    match[:] = 0
    gap_a[:] = 0
    gap_b[:] = 0

    for y in range(1, height):
        char_b = seq_b[y - 1]
        for x in range(1, width):
            idx = y * width + x
            diag = idx - width - 1
            best = max(match[diag], gap_a[diag], gap_b[diag]) + table[seq_a[x - 1], char_b]
            match[idx] = best if best > 0 else 0

            if allow_gap_a:
                up = idx - width
                best = max(match[up] + open_penalty, gap_a[up] + gap_extend, gap_b[up] + open_penalty)
                gap_a[idx] = best if best > 0 else 0

            if allow_gap_b:
                left = idx - 1
                best = max(match[left] + open_penalty, gap_a[left] + open_penalty, gap_b[left] + gap_extend)
                gap_b[idx] = best if best > 0 else 0


@jit(nopython=True, cache=True, nogil=True)
def _step_back(kind, score, x, y, idx, seq_a, seq_b, table, match, gap_a, gap_b, width, gap_open, gap_extend,
               allow_gap_a, allow_gap_b):
    """
    Moves one cell back from (kind, score, x, y, idx).
    Predecessors are tried in the fixed order GAP_A, GAP_B, MATCH so the path is deterministic.
    Returns kind == _INVALID if no predecessor reproduces the score.
    """
    open_penalty = gap_open + gap_extend
    if kind == _MATCH:
        if x == 0 or y == 0: return _INVALID, score, x, y, idx
        sub = table[seq_a[x - 1], seq_b[y - 1]]
        from_match = sub
        from_gap_a = sub
        from_gap_b = sub
        x -= 1
        y -= 1
        idx -= width + 1
    elif kind == _GAP_A:
        if y == 0: return _INVALID, score, x, y, idx
        from_match = open_penalty
        from_gap_a = gap_extend
        from_gap_b = open_penalty
        y -= 1
        idx -= width
    elif kind == _GAP_B:
        if x == 0: return _INVALID, score, x, y, idx
        from_match = open_penalty
        from_gap_a = open_penalty
        from_gap_b = gap_extend
        x -= 1
        idx -= 1
    else:
        return _INVALID, score, x, y, idx

    if allow_gap_a and gap_a[idx] + from_gap_a == score: return _GAP_A, gap_a[idx], x, y, idx
    if allow_gap_b and gap_b[idx] + from_gap_b == score: return _GAP_B, gap_b[idx], x, y, idx
    if match[idx] + from_match == score: return _MATCH, match[idx], x, y, idx
    return _INVALID, score, x, y, idx
