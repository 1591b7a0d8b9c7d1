"""
Scoring configuration for affine-gap local alignment.
"""
from typing import Union, Iterable, Mapping, Final
from warnings import warn

import numpy as np

from localign.utils.resources import ScoringWarning


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class ScoringError(ValueError):
    """Raised when a scoring configuration is invalid or a sequence contains a character it cannot score."""


# Classes --------------------------------------------------------------------------------------------------------------
Symbol = Union[str, bytes, int]


class Scoring:
    """
    Affine-gap scoring scheme with optional substitution scores and wildcards.

    Penalties are expressed as non-positive numbers. Opening a gap of length one costs ``gap_open + gap_extend``
    and each further position costs ``gap_extend``.

    The score of a character pair is resolved as follows (highest precedence first):
        1. If either character is a wildcard, the wildcard's score.
        2. If the pair has an explicit substitution score, that score.
        3. ``match`` if the characters are equal, otherwise ``mismatch``.

    With ``case_sensitive=False`` both characters are folded to upper case before the lookup.

    Attributes:
        match (int): Reward for identical characters.
        mismatch (int): Score for differing characters.
        gap_open (int): Penalty for opening a gap.
        gap_extend (int): Penalty for each gap position.

    Examples:
        >>> scoring = Scoring(match=2, mismatch=-1, gap_open=-2, gap_extend=-1)
        >>> scoring.score('A', 'A'), scoring.score('A', 'C')
        (2, -1)
    """
    SIZE: Final = 256
    ENCODING: Final = 'ascii'
    __slots__ = ('match', 'mismatch', 'gap_open', 'gap_extend', 'case_sensitive', 'use_match_mismatch',
                 'no_gaps_in_a', 'no_gaps_in_b', '_wildcards', '_substitutions', '_table', '_known')

    def __init__(self, match: int = 1, mismatch: int = -2, gap_open: int = -4, gap_extend: int = -1,
                 case_sensitive: bool = True, wildcards: Mapping[Symbol, int] = None,
                 substitutions: Mapping[tuple[Symbol, Symbol], int] = None, use_match_mismatch: bool = True,
                 no_gaps_in_a: bool = False, no_gaps_in_b: bool = False):
        """
        Initializes a Scoring scheme.

        Args:
            match: Reward for identical characters.
            mismatch: Score for differing characters.
            gap_open: Penalty for opening a gap (<= 0).
            gap_extend: Penalty for each gap position (<= 0).
            case_sensitive: If False, characters are compared case-insensitively.
            wildcards: Mapping of wildcard character to the score it gets against any character.
            substitutions: Mapping of (a, b) character pairs to scores.
            use_match_mismatch: If False, characters not covered by `substitutions` or `wildcards` are rejected.
            no_gaps_in_a: Disallow gaps in the first sequence.
            no_gaps_in_b: Disallow gaps in the second sequence.

        Raises:
            ScoringError: If a gap penalty is positive, or a symbol is not a single ASCII character.
        """
        if gap_open > 0 or gap_extend > 0:
            raise ScoringError(f'Gap penalties must be <= 0, got gap_open={gap_open}, gap_extend={gap_extend}')
        self.match = int(match)
        self.mismatch = int(mismatch)
        self.gap_open = int(gap_open)
        self.gap_extend = int(gap_extend)
        self.case_sensitive = case_sensitive
        self.use_match_mismatch = use_match_mismatch
        self.no_gaps_in_a = no_gaps_in_a
        self.no_gaps_in_b = no_gaps_in_b
        self._wildcards = {self._code(k): int(v) for k, v in (wildcards or {}).items()}
        self._substitutions = {(self._code(a), self._code(b)): int(v) for (a, b), v in (substitutions or {}).items()}
        self._table, self._known = self._build_tables()
        if self._table.max() <= 0:
            warn('No character pair scores above zero, no local alignment can be found', ScoringWarning)

    def __repr__(self):
        return (f"Scoring(match={self.match}, mismatch={self.mismatch}, gap_open={self.gap_open}, "
                f"gap_extend={self.gap_extend})")

    def __eq__(self, other):
        if isinstance(other, self.__class__):
            return (self.gap_open == other.gap_open and self.gap_extend == other.gap_extend and
                    self.no_gaps_in_a == other.no_gaps_in_a and self.no_gaps_in_b == other.no_gaps_in_b and
                    np.array_equal(self._known, other._known) and np.array_equal(self._table, other._table))
        return False

    @staticmethod
    def _code(symbol: Symbol) -> int:
        if isinstance(symbol, (int, np.integer)): code = int(symbol)
        elif len(symbol) == 1: code = ord(symbol)
        else: raise ScoringError(f'Expected a single character, got {symbol!r}')
        if not 0 <= code < 128: raise ScoringError(f'Symbol {symbol!r} is not an ASCII character')
        return code

    def _build_tables(self) -> tuple[np.ndarray, np.ndarray]:
        fold = np.arange(self.SIZE)
        if not self.case_sensitive: fold[ord('a'):ord('z') + 1] -= 32

        table = np.full((self.SIZE, self.SIZE), self.mismatch, dtype=np.int64)
        np.fill_diagonal(table, self.match)
        known = np.full(self.SIZE, self.use_match_mismatch, dtype=bool)

        for (a, b), score in self._substitutions.items():
            a, b = fold[a], fold[b]
            table[a, b] = score
            known[a] = known[b] = True

        for w, score in self._wildcards.items():
            w = fold[w]
            table[w, :] = score
            table[:, w] = score
            known[w] = True

        table = table[np.ix_(fold, fold)]
        known = known[fold]
        table.flags.writeable = False
        known.flags.writeable = False
        return table, known

    @property
    def table(self) -> np.ndarray:
        """Read-only 256x256 lookup of pair scores, indexed by byte value."""
        return self._table

    @property
    def gap_open_penalty(self) -> int:
        """Total cost of a gap of length one."""
        return self.gap_open + self.gap_extend

    def score(self, a: Symbol, b: Symbol) -> int:
        """Returns the score of aligning character `a` against character `b`."""
        return int(self._table[self._code(a), self._code(b)])

    def encode(self, seq: Union[str, bytes, bytearray, memoryview, np.ndarray]) -> np.ndarray:
        """
        Converts a sequence into the uint8 byte codes used by the alignment kernels.

        Raises:
            ValueError: If the sequence is not ASCII, whatever its type.
            ScoringError: If the sequence contains characters this scheme cannot score.
        """
        if isinstance(seq, str):
            if not seq.isascii(): raise ValueError('Sequences must be ASCII')
            seq = seq.encode(self.ENCODING)
        codes = seq if isinstance(seq, np.ndarray) else np.frombuffer(bytes(seq), dtype=np.uint8)
        # Range is checked before the cast so that wide integers cannot wrap into ASCII
        if codes.size and (codes.min() < 0 or codes.max() > 127): raise ValueError('Sequences must be ASCII')
        codes = np.ascontiguousarray(codes, dtype=np.uint8)
        self.check(codes)
        return codes

    def check(self, codes: np.ndarray):
        """
        Raises:
            ScoringError: If `codes` contains characters covered by neither substitutions nor wildcards
                (only when `use_match_mismatch` is False).
        """
        if len(codes) == 0 or self.use_match_mismatch: return
        unknown = ~self._known[codes]
        if unknown.any():
            bad = sorted(set(codes[unknown].tolist()))
            raise ScoringError(f"Cannot score characters: {', '.join(repr(chr(c)) for c in bad)}")

    # Presets ----------------------------------------------------------------------------------------------------------
    @classmethod
    def default(cls) -> 'Scoring':
        """Plain match/mismatch scoring: match 1, mismatch -2, gap open -4, gap extend -1."""
        return cls()

    @classmethod
    def from_matrix(cls, alphabet: Union[str, bytes], matrix: Union[np.ndarray, Iterable], gap_open: int = -10,
                    gap_extend: int = -1, case_sensitive: bool = False, **kwargs) -> 'Scoring':
        """
        Builds a scheme from a square substitution matrix whose rows and columns follow `alphabet`.

        Characters outside the alphabet are rejected unless `use_match_mismatch=True` is passed.

        Examples:
            >>> s = Scoring.from_matrix('AC', [[2, -1], [-1, 3]])
            >>> s.score('c', 'C')
            3
        """
        matrix = np.asarray(matrix, dtype=np.int64)
        n = len(alphabet)
        if matrix.shape != (n, n):
            raise ScoringError(f'Matrix shape {matrix.shape} does not match alphabet of {n} symbols')
        if isinstance(alphabet, bytes): alphabet = alphabet.decode(cls.ENCODING)
        substitutions = {(a, b): int(matrix[i, j]) for i, a in enumerate(alphabet) for j, b in enumerate(alphabet)}
        kwargs.setdefault('use_match_mismatch', False)
        return cls(gap_open=gap_open, gap_extend=gap_extend, case_sensitive=case_sensitive,
                   substitutions=substitutions, **kwargs)

    @classmethod
    def blosum62(cls, gap_open: int = -10, gap_extend: int = -1, **kwargs) -> 'Scoring':
        """Returns a case-insensitive BLOSUM62 scheme over the 20 standard amino acids."""
        return cls.from_matrix(_AMINO, _BLOSUM62, gap_open=gap_open, gap_extend=gap_extend, **kwargs)


# Constants ------------------------------------------------------------------------------------------------------------
_AMINO = 'ACDEFGHIKLMNPQRSTVWY'
_BLOSUM62 = np.reshape([
    4, 0, -2, -1, -2, 0, -2, -1, -1, -1, -1, -2, -1, -1, -1, 1, 0, 0, -3, -2,
    0, 9, -3, -4, -2, -3, -3, -1, -3, -1, -1, -3, -3, -3, -3, -1, -1, -1, -2, -2,
    -2, -3, 6, 2, -3, -1, -1, -3, -1, -4, -3, 1, -1, 0, -2, 0, -1, -3, -4, -3,
    -1, -4, 2, 5, -3, -2, 0, -3, 1, -3, -2, 0, -1, 2, 0, 0, -1, -2, -3, -2,
    -2, -2, -3, -3, 6, -3, -1, 0, -3, 0, 0, -3, -4, -3, -3, -2, -2, -1, 1, 3,
    0, -3, -1, -2, -3, 6, -2, -4, -2, -4, -3, 0, -2, -2, -2, 0, -2, -3, -2, -3,
    -2, -3, -1, 0, -1, -2, 8, -3, -1, -3, -2, 1, -2, 0, 0, -1, -2, -3, -2, 2,
    -1, -1, -3, -3, 0, -4, -3, 4, -3, 2, 1, -3, -3, -3, -3, -2, -1, 3, -3, -1,
    -1, -3, -1, 1, -3, -2, -1, -3, 5, -2, -3, 2, 0, -3, -3, 1, 0, -3, -1, 2,
    -1, -1, -4, -3, 0, -4, -3, 2, -2, 4, 2, -3, -3, -2, -2, -2, -1, 1, -2, -1,
    -1, -1, -3, -2, 0, -3, -2, 1, -3, 2, 5, -2, -2, 0, -1, -1, -1, 1, -1, -1,
    -2, -3, 1, 0, -3, 0, 1, -3, 2, -3, -2, 6, -2, -4, -4, -1, 0, -3, -1, -3,
    -1, -3, -1, -1, -4, -2, -2, -3, 0, -3, -2, -2, 7, -1, -2, -1, -1, -2, -4, -3,
    -1, -3, 0, 2, -3, -2, 0, -3, -3, -2, 0, -4, -1, 5, 1, 0, -1, -2, -2, -1,
    -1, -3, -2, 0, -3, -2, 0, -3, -3, -2, -1, -4, -2, 1, 5, -1, -1, -3, -3, -2,
    1, -1, 0, 0, -2, 0, -1, -2, 1, -2, -1, -1, -1, 0, -1, 4, 1, -2, -3, -2,
    0, -1, -1, -1, -2, -2, -2, -1, 0, -1, -1, 0, -1, -1, -1, 1, 5, 0, -2, -2,
    0, -1, -3, -2, -1, -3, -3, 3, -3, 1, 1, -3, -2, -2, -3, -2, 0, 4, -3, -1,
    -3, -2, -4, -3, 1, -2, -2, -3, -1, -2, -1, -1, -4, -2, -3, -3, -2, -3, 11, 2,
    -2, -2, -3, -2, 3, -3, 2, -1, 2, -1, -1, -3, -3, -1, -2, -2, -2, -1, 2, 7
], (20, 20))
