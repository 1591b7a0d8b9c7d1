import numpy as np
import pytest
from localign.core.alignment import Alignment, AlignmentBuffer
from localign.core.bitmask import ConsumptionMask
from localign.core.scoring import Scoring
from localign.engines.matrices import MatrixAligner, ScoreMatrices, TracebackError
from localign.engines.traceback import PathTracer


SCORING = Scoring(match=2, mismatch=-1, gap_open=-2, gap_extend=-1)


def make_tracer(seq_a, seq_b, scoring=SCORING):
    m = MatrixAligner().compute(seq_a, seq_b, scoring)
    mask = ConsumptionMask(m.size)
    mask.reset_all()
    return PathTracer(m, mask), m, mask


class TestPathTracer:
    def test_single_match(self):
        tracer, m, mask = make_tracer('A', 'A')
        hit = tracer.trace(3)
        assert (hit.aligned_a, hit.aligned_b) == ('A', 'A')
        assert (hit.score, hit.start_a, hit.start_b, hit.length_a, hit.length_b) == (2, 0, 0, 1, 1)
        assert not mask.is_available(3)
        assert not mask.is_available(0)

    def test_gap_in_a(self):
        tracer, m, _ = make_tracer('AAAACCCCCC', 'AAAAGCCCCCC', Scoring(2, -3, -2, -1))
        hit = tracer.trace(int(np.argmax(m.match)))
        assert hit.aligned_a == 'AAAA-CCCCCC'
        assert hit.aligned_b == 'AAAAGCCCCCC'
        assert hit.score == 17
        assert (hit.start_a, hit.start_b, hit.length_a, hit.length_b) == (0, 0, 10, 11)

    def test_gap_in_b(self):
        tracer, m, _ = make_tracer('AAAAGCCCCCC', 'AAAACCCCCC', Scoring(2, -3, -2, -1))
        hit = tracer.trace(int(np.argmax(m.match)))
        assert hit.aligned_a == 'AAAAGCCCCCC'
        assert hit.aligned_b == 'AAAA-CCCCCC'
        assert (hit.length_a, hit.length_b) == (11, 10)

    def test_preserves_case(self):
        tracer, m, _ = make_tracer('acgt', 'ACGT', Scoring(2, -1, -2, -1, case_sensitive=False))
        hit = tracer.trace(int(np.argmax(m.match)))
        assert hit.aligned_a == 'acgt'
        assert hit.aligned_b == 'ACGT'

    def test_measure_claims_path(self):
        tracer, m, mask = make_tracer('ACGT', 'ACGT')
        assert tracer.measure(24) == 4
        for cell in (24, 18, 12, 6, 0):
            assert not mask.is_available(cell)
        assert mask.count(m.size) == m.size - 5

    def test_collision_rejects_whole_candidate(self):
        tracer, m, mask = make_tracer('ACGT', 'ACGT')
        mask.mark_used(6)
        assert tracer.trace(24) is None
        # Cells visited before the collision stay claimed
        assert not mask.is_available(24)
        assert not mask.is_available(18)
        assert not mask.is_available(12)
        assert mask.is_available(0)

    def test_second_trace_of_same_cell_collides(self):
        tracer, _, _ = make_tracer('ACGT', 'ACGT')
        assert tracer.trace(24) is not None
        assert tracer.trace(24) is None

    def test_buffer_reused(self):
        tracer, m, _ = make_tracer('ACGTACGTAC', 'ACGTACGTAC')
        buffer = AlignmentBuffer(2)
        hit = tracer.trace(int(np.argmax(m.match)), buffer)
        assert len(hit) == 10
        assert buffer.capacity == 16

    def test_broken_path(self):
        seq = np.frombuffer(b'A', dtype=np.uint8)
        zeros = np.zeros(4, dtype=np.int64)
        m = ScoreMatrices(np.array([0, 0, 0, 5], dtype=np.int64), zeros, zeros, 2, 2, seq, seq, SCORING)
        mask = ConsumptionMask(4)
        mask.reset_all()
        with pytest.raises(TracebackError):
            PathTracer(m, mask).trace(3)


class TestAlignment:
    def test_derived_fields(self):
        hit = Alignment('AC-GT', 'ACTGA', 5, 3, 7, 7, 12)
        assert (hit.length_a, hit.length_b) == (4, 5)
        assert (hit.end_a, hit.end_b) == (7, 12)
        assert len(hit) == 5
        assert hit.n_matches == 3
        assert hit.identity == pytest.approx(0.6)

    def test_lengths_are_derived(self):
        hit = Alignment('AC-GT', 'ACTGA', 5, 3, 7, 7, 12)
        with pytest.raises(AttributeError):
            hit.length_a = 99
        with pytest.raises(AttributeError):
            hit.length_b = 99
        assert (hit.length_a, hit.end_a) == (4, 7)

    def test_length_mismatch(self):
        with pytest.raises(ValueError, match="same length"):
            Alignment('AC', 'A', 1, 0, 0, 2, 1)

    def test_equality(self):
        assert Alignment('A', 'A', 2, 0, 0, 1, 1) == Alignment('A', 'A', 2, 0, 0, 1, 1)
        assert Alignment('A', 'A', 2, 0, 0, 1, 1) != Alignment('A', 'A', 2, 1, 0, 2, 1)
        assert len({Alignment('A', 'A', 2, 0, 0, 1, 1), Alignment('A', 'A', 2, 0, 0, 1, 1)}) == 1

    def test_buffer_growth(self):
        buffer = AlignmentBuffer()
        assert buffer.capacity == 64
        buffer.ensure_capacity(65)
        assert buffer.capacity == 128
        buffer.ensure_capacity(10)
        assert buffer.capacity == 128
