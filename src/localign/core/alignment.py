"""
Module for alignment results and the reusable buffers they are built from.
"""
import numpy as np

from localign.core.capacity import round_up_pow2, allocate


# Classes --------------------------------------------------------------------------------------------------------------
class Alignment:
    """
    A local alignment between two sequences.

    Attributes:
        aligned_a (str): Aligned characters of the first sequence, '-' marks a gap.
        aligned_b (str): Aligned characters of the second sequence, same length as `aligned_a`.
        score (int): Alignment score.
        start_a (int): 0-based start offset in the first sequence.
        start_b (int): 0-based start offset in the second sequence.
        length_a (int): Number of characters consumed from the first sequence.
        length_b (int): Number of characters consumed from the second sequence.
    """
    GAP = '-'
    __slots__ = ('aligned_a', 'aligned_b', 'score', 'start_a', 'start_b', '_end_a', '_end_b')

    def __init__(self, aligned_a: str, aligned_b: str, score: int, start_a: int, start_b: int, end_a: int,
                 end_b: int):
        if len(aligned_a) != len(aligned_b): raise ValueError('Aligned strings must have the same length')
        self.aligned_a = aligned_a
        self.aligned_b = aligned_b
        self.score = score
        self.start_a = start_a
        self.start_b = start_b
        self._end_a = end_a
        self._end_b = end_b

    def __len__(self) -> int: return len(self.aligned_a)

    def __repr__(self):
        return (f"Alignment(score={self.score}, a={self.start_a}:{self.end_a}, b={self.start_b}:{self.end_b}, "
                f"{self.aligned_a!r}, {self.aligned_b!r})")

    def __eq__(self, other):
        if isinstance(other, self.__class__):
            return (self.aligned_a == other.aligned_a and self.aligned_b == other.aligned_b and
                    self.score == other.score and self.start_a == other.start_a and self.start_b == other.start_b)
        return False

    def __hash__(self): return hash((self.aligned_a, self.aligned_b, self.score, self.start_a, self.start_b))

    @property
    def end_a(self) -> int: return self._end_a
    @property
    def end_b(self) -> int: return self._end_b

    @property
    def length_a(self) -> int:
        """Number of characters consumed from the first sequence, derived from the end."""
        return self._end_a - self.start_a

    @property
    def length_b(self) -> int: return self._end_b - self.start_b

    @property
    def n_matches(self) -> int:
        """Number of columns where both sequences carry the same character."""
        return sum(a == b != self.GAP for a, b in zip(self.aligned_a, self.aligned_b))

    @property
    def identity(self) -> float:
        """Fraction of alignment columns that are identical."""
        return self.n_matches / len(self) if self.aligned_a else 0.0


class AlignmentBuffer:
    """
    A pair of character buffers that alignments are written into, back to front.

    The buffer grows to the next power of two when a longer alignment is traced and keeps its capacity afterwards,
    so one buffer can be handed to every fetch of an enumeration.

    Examples:
        >>> buffer = AlignmentBuffer()
        >>> buffer.ensure_capacity(100)
        >>> buffer.capacity
        128
    """
    _MIN_CAPACITY = 64
    __slots__ = ('_a', '_b')

    def __init__(self, capacity: int = _MIN_CAPACITY):
        capacity = round_up_pow2(capacity)
        self._a = allocate(capacity, np.uint8)
        self._b = allocate(capacity, np.uint8)

    def __repr__(self): return f"AlignmentBuffer(capacity={self.capacity})"

    @property
    def capacity(self) -> int: return len(self._a)

    @property
    def arrays(self) -> tuple[np.ndarray, np.ndarray]: return self._a, self._b

    def ensure_capacity(self, length: int):
        """
        Raises:
            CapacityError: If the buffers cannot be grown.
        """
        if length <= len(self._a): return
        capacity = round_up_pow2(length)
        # Contents never outlive a single trace, so there is nothing to preserve
        self._a = allocate(capacity, np.uint8)
        self._b = allocate(capacity, np.uint8)

    def decode(self, length: int) -> tuple[str, str]:
        """Returns the first `length` characters of both buffers as strings."""
        return self._a[:length].tobytes().decode('ascii'), self._b[:length].tobytes().decode('ascii')
