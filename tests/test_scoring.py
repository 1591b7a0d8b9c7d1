import numpy as np
import pytest
from localign.core.scoring import Scoring, ScoringError
from localign.utils.resources import ScoringWarning


class TestScoringInit:
    def test_defaults(self):
        s = Scoring.default()
        assert (s.match, s.mismatch, s.gap_open, s.gap_extend) == (1, -2, -4, -1)
        assert s.gap_open_penalty == -5

    def test_positive_gap_penalty(self):
        with pytest.raises(ScoringError, match="Gap penalties"):
            Scoring(gap_open=1)
        with pytest.raises(ScoringError, match="Gap penalties"):
            Scoring(gap_extend=2)

    def test_no_positive_score_warns(self):
        with pytest.warns(ScoringWarning, match="above zero"):
            Scoring(match=0, mismatch=-1)

    def test_invalid_symbol(self):
        with pytest.raises(ScoringError, match="single character"):
            Scoring(wildcards={'NN': 0})
        with pytest.raises(ScoringError, match="ASCII"):
            Scoring(wildcards={'é': 0})

    def test_table_read_only(self):
        s = Scoring()
        assert s.table.shape == (256, 256)
        with pytest.raises(ValueError):
            s.table[0, 0] = 5

    def test_equality(self):
        assert Scoring(2, -1, -2, -1) == Scoring(2, -1, -2, -1)
        assert Scoring(2, -1, -2, -1) != Scoring(2, -1, -3, -1)


class TestScoringLookup:
    def test_match_mismatch(self):
        s = Scoring(match=2, mismatch=-1)
        assert s.score('A', 'A') == 2
        assert s.score('A', 'C') == -1
        assert s.score(b'G', b'G') == 2

    def test_case_sensitive(self):
        s = Scoring(match=2, mismatch=-1)
        assert s.score('a', 'A') == -1
        s = Scoring(match=2, mismatch=-1, case_sensitive=False)
        assert s.score('a', 'A') == 2
        assert s.score('a', 'c') == -1

    def test_substitutions(self):
        s = Scoring(match=2, mismatch=-1, substitutions={('A', 'G'): 1, ('G', 'A'): 1})
        assert s.score('A', 'G') == 1
        assert s.score('G', 'A') == 1
        assert s.score('A', 'C') == -1

    def test_wildcard_precedence(self):
        s = Scoring(match=2, mismatch=-1, wildcards={'N': 0}, substitutions={('N', 'A'): 5})
        assert s.score('N', 'A') == 0
        assert s.score('C', 'N') == 0
        assert s.score('N', 'N') == 0

    def test_case_insensitive_wildcard(self):
        s = Scoring(match=2, mismatch=-1, wildcards={'N': 1}, case_sensitive=False)
        assert s.score('n', 'A') == 1
        assert s.score('a', 'n') == 1


class TestScoringEncode:
    def test_encode_str_and_bytes(self):
        s = Scoring()
        np.testing.assert_array_equal(s.encode('AC'), [65, 67])
        np.testing.assert_array_equal(s.encode(b'AC'), [65, 67])
        assert s.encode('').dtype == np.uint8

    def test_encode_non_ascii(self):
        with pytest.raises(ValueError, match="ASCII"):
            Scoring().encode('ACé')

    def test_encode_non_ascii_bytes(self):
        with pytest.raises(ValueError, match="ASCII"):
            Scoring().encode(b'\xff')
        with pytest.raises(ValueError, match="ASCII"):
            Scoring().encode(bytearray(b'AC\x80'))

    def test_encode_array_out_of_range(self):
        s = Scoring()
        with pytest.raises(ValueError, match="ASCII"):
            s.encode(np.array([65, 321]))
        with pytest.raises(ValueError, match="ASCII"):
            s.encode(np.array([-1, 65]))
        np.testing.assert_array_equal(s.encode(np.array([65, 67], dtype=np.int64)), [65, 67])
        assert s.encode(np.array([65], dtype=np.int64)).dtype == np.uint8

    def test_unknown_characters_rejected(self):
        s = Scoring.from_matrix('AC', [[2, -1], [-1, 3]])
        s.encode('ACca')
        with pytest.raises(ScoringError, match="'G'"):
            s.encode('ACG')

    def test_wildcard_is_known(self):
        s = Scoring.from_matrix('AC', [[2, -1], [-1, 3]], wildcards={'X': 0})
        s.encode('AXC')


class TestScoringPresets:
    def test_from_matrix_shape(self):
        with pytest.raises(ScoringError, match="shape"):
            Scoring.from_matrix('ACG', [[1, 0], [0, 1]])

    def test_blosum62(self):
        s = Scoring.blosum62()
        assert s.score('W', 'W') == 11
        assert s.score('A', 'A') == 4
        assert s.score('a', 'S') == 1
        assert s.score('Y', 'F') == 3
        assert (s.gap_open, s.gap_extend) == (-10, -1)
        with pytest.raises(ScoringError):
            s.encode('ACDB')
