"""Smith-Waterman engine enumerating every non-overlapping local alignment, best first."""
from typing import Union, Optional, Generator

from localign.core.alignment import Alignment, AlignmentBuffer
from localign.core.bitmask import ConsumptionMask
from localign.core.capacity import CapacityError, round_up_pow2
from localign.core.scoring import Scoring
from localign.engines.candidates import CandidateIndex
from localign.engines.matrices import MatrixAligner, ScoreMatrices
from localign.engines.traceback import PathTracer


# Classes --------------------------------------------------------------------------------------------------------------
class SmithWaterman:
    """
    Local aligner that yields alignments in descending score order, never reusing a matrix cell.

    Each call to `align` computes the score matrices for a new sequence pair, resets the consumption mask and
    rebuilds the sorted candidate end points. `fetch` then pulls one alignment at a time. Equal scores are
    returned left to right along the first sequence.

    An engine holds mutable enumeration state and is not safe to share between threads; use one engine per thread.

    Examples:
        >>> sw = SmithWaterman()
        >>> _ = sw.align('ACGTTTACGT', 'ACGT', Scoring(match=2, mismatch=-1, gap_open=-2, gap_extend=-1))
        >>> [(h.aligned_a, h.start_a) for h in sw]
        [('ACGT', 0), ('ACGT', 6)]
    """
    _MIN_CAPACITY = 256
    __slots__ = ('_aligner', '_mask', '_candidates', '_buffer', '_tracer', '_capacity', '_failed')

    def __init__(self, capacity: int = _MIN_CAPACITY):
        self._failed = False
        self._release()
        self._allocate(capacity)

    def __repr__(self): return f"SmithWaterman(capacity={self._capacity}, remaining={self.remaining})"
    def __enter__(self): return self
    def __exit__(self, exc_type, exc_val, exc_tb): self.free()
    def __iter__(self) -> Generator[Alignment, None, None]: return self.hits()

    def _allocate(self, capacity: int):
        try:
            capacity = round_up_pow2(capacity)
            self._aligner = MatrixAligner(capacity)
            self._mask = ConsumptionMask(capacity)
            self._candidates = CandidateIndex(capacity)
            self._buffer = AlignmentBuffer()
        except CapacityError:
            self._failed = True
            raise
        self._capacity = capacity

    def _release(self):
        self._tracer = None
        self._aligner = self._mask = self._candidates = self._buffer = None
        self._capacity = 0

    @property
    def capacity(self) -> int:
        """Number of matrix cells the mask and candidate buffer can currently hold."""
        return self._capacity

    @property
    def matrices(self) -> Optional[ScoreMatrices]:
        """The score matrices of the current run, or None before `align`."""
        return self._tracer.matrices if self._tracer is not None else None

    @property
    def scoring(self) -> Optional[Scoring]:
        return self._tracer.matrices.scoring if self._tracer is not None else None

    @property
    def remaining(self) -> int:
        """Number of candidate end points not yet tried in the current run."""
        return self._candidates.remaining if self._tracer is not None else 0

    def _check_usable(self):
        if self._failed: raise CapacityError('Engine storage could not be allocated, call free() before reuse')

    def _ensure_capacity(self, cells: int):
        """
        Grows the consumption mask and candidate buffer together to hold `cells` cells.

        Raises:
            CapacityError: If either cannot be grown. The engine is unusable afterwards.
        """
        if cells <= self._capacity: return
        capacity = round_up_pow2(cells)
        try:
            self._mask.resize(capacity)
            self._candidates.resize(capacity)
        except CapacityError:
            self._failed = True
            self._tracer = None
            raise
        self._capacity = capacity

    def align(self, seq_a: Union[str, bytes], seq_b: Union[str, bytes], scoring: Scoring = None) -> 'SmithWaterman':
        """
        Starts a new alignment run for a sequence pair.

        Args:
            seq_a: First sequence. Alignment ties are broken left to right along this sequence.
            seq_b: Second sequence.
            scoring: Scoring scheme, defaults to `Scoring.default()`.

        Returns:
            The engine, ready for `fetch`.

        Raises:
            ScoringError: If a sequence contains characters the scheme cannot score.
            CapacityError: If storage cannot be grown.
        """
        self._check_usable()
        if scoring is None: scoring = Scoring.default()
        self._tracer = None
        if self._aligner is None: self._allocate(self._MIN_CAPACITY)
        try:
            matrices = self._aligner.compute(seq_a, seq_b, scoring)
        except CapacityError:
            self._failed = True
            raise
        self._ensure_capacity(matrices.size)
        # Availability is per run, so the mask is reset even when it did not grow
        self._mask.reset_all()
        self._candidates.build(matrices.match, matrices.width)
        self._tracer = PathTracer(matrices, self._mask)
        return self

    def fetch(self, buffer: AlignmentBuffer = None) -> Optional[Alignment]:
        """
        Returns the next best alignment that does not overlap any alignment returned before in this run.

        Args:
            buffer: Character buffer to reconstruct into, the engine's own buffer is used if not given.

        Returns:
            The alignment, or None once every candidate has been tried.

        Raises:
            RuntimeError: If `align` has not been called.
            TracebackError: If the score matrices are inconsistent.
            CapacityError: If the engine's storage could not be allocated.
        """
        self._check_usable()
        if self._tracer is None: raise RuntimeError('No alignment run, call align() first')
        if buffer is None: buffer = self._buffer
        candidates, mask, tracer = self._candidates, self._mask, self._tracer
        while (cell := candidates.pop()) is not None:
            if not mask.is_available(cell): continue
            if (alignment := tracer.trace(cell, buffer)) is not None: return alignment
        return None

    def hits(self, max_hits: int = None, min_score: int = None,
             min_length: int = None) -> Generator[Alignment, None, None]:
        """
        Yields the remaining alignments of the current run.

        Args:
            max_hits: Stop after this many alignments.
            min_score: Stop at the first alignment scoring below this.
            min_length: Skip alignments with fewer columns than this.

        Yields:
            Alignments in descending score order.
        """
        n = 0
        while max_hits is None or n < max_hits:
            if (alignment := self.fetch()) is None: return
            if min_score is not None and alignment.score < min_score: return
            if min_length is not None and len(alignment) < min_length: continue
            n += 1
            yield alignment

    def free(self):
        """Releases all buffers. The engine can be reused by calling `align` again."""
        self._failed = False
        self._release()
