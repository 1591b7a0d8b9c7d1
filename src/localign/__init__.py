"""
Best-first enumeration of non-overlapping affine-gap local alignments.

Examples:
    >>> from localign import SmithWaterman, Scoring
    >>> with SmithWaterman() as sw:
    ...     hits = list(sw.align('AGCACACA', 'ACACACTA', Scoring(2, -1, -2, -1)))
    >>> hits[0].score
    10
"""
from localign.core.alignment import Alignment, AlignmentBuffer
from localign.core.capacity import CapacityError
from localign.core.scoring import Scoring, ScoringError
from localign.engines.matrices import MatrixAligner, MatrixKind, ScoreMatrices, TracebackError, TraversalState
from localign.engines.smith_waterman import SmithWaterman
from localign.utils.resources import RESOURCES, LocalignWarning, ScoringWarning

__all__ = [
    'Alignment', 'AlignmentBuffer', 'CapacityError', 'Scoring', 'ScoringError', 'MatrixAligner', 'MatrixKind',
    'ScoreMatrices', 'TracebackError', 'TraversalState', 'SmithWaterman', 'RESOURCES', 'LocalignWarning',
    'ScoringWarning'
]
