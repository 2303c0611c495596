"""
Tests for UID set encoding

Tests cover:
- Range compression and ordering
- Chunking under the length limit
- Decoding UID sets
"""
import pytest

from slashmail.core.search.uid_set import build_uid_set, parse_uid_set
from slashmail.utils.errors import ValidationError


class TestBuildUidSet:
    """Tests for encoding UIDs into UID set strings"""

    def test_empty_input(self):
        """Test no UIDs gives no chunks"""
        assert build_uid_set([]) == []

    def test_ranges_and_singletons(self):
        """Test consecutive runs collapse into ranges"""
        assert build_uid_set([1, 2, 3, 5, 7, 8, 9]) == ["1:3,5,7:9"]

    def test_input_order_does_not_matter(self):
        """Test unordered input is sorted first"""
        assert build_uid_set([5, 3, 1, 2, 4]) == ["1:5"]

    def test_duplicates_collapse(self):
        """Test duplicate UIDs appear once"""
        assert build_uid_set([4, 4, 2, 2, 3]) == ["2:4"]

    def test_single_uid(self):
        """Test a single UID is emitted bare"""
        assert build_uid_set([42]) == ["42"]

    def test_pair_becomes_range(self):
        """Test two consecutive UIDs form a range"""
        assert build_uid_set([10, 11]) == ["10:11"]

    def test_chunks_respect_limit(self):
        """Test many scattered UIDs split into bounded chunks"""
        uids = list(range(1, 40001, 2))  # 20000 singletons
        chunks = build_uid_set(uids)

        assert len(chunks) > 1
        assert all(len(chunk) <= 4000 for chunk in chunks)
        decoded = [uid for chunk in chunks for uid in parse_uid_set(chunk)]
        assert decoded == uids

    def test_custom_limit(self):
        """Test chunks break on entry boundaries"""
        assert build_uid_set([1, 3, 5, 7], max_len=3) == ["1,3", "5,7"]

    def test_runs_never_split_into_singletons(self):
        """Test a run of two or more never appears as separate entries"""
        uids = [1, 2, 5, 6, 7, 10, 20, 21]
        for chunk in build_uid_set(uids):
            entries = chunk.split(",")
            singles = [int(e) for e in entries if ":" not in e]
            for a, b in zip(singles, singles[1:]):
                assert b != a + 1

    def test_chunks_cover_input_exactly(self):
        """Test decoded chunks equal the deduplicated input"""
        uids = [9, 1, 2, 100, 3, 50, 51, 52, 2]
        decoded = set()
        for chunk in build_uid_set(uids, max_len=6):
            assert len(chunk) <= 6
            decoded.update(parse_uid_set(chunk))
        assert decoded == set(uids)


class TestParseUidSet:
    """Tests for decoding UID set strings"""

    def test_mixed_set(self):
        """Test ranges and singletons expand"""
        assert parse_uid_set("1:3,5,7:9") == [1, 2, 3, 5, 7, 8, 9]

    def test_reversed_range(self):
        """Test a high:low range is accepted"""
        assert parse_uid_set("5:3") == [3, 4, 5]

    @pytest.mark.parametrize("chunk", ["", "a", "1:", ":3", "1,,2", "1:*"])
    def test_invalid_sets_rejected(self, chunk):
        """Test malformed UID sets raise ValidationError"""
        with pytest.raises(ValidationError):
            parse_uid_set(chunk)
