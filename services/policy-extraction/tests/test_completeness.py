"""Tests for the three-state completeness classifier."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from completeness import classify, classify_missing
from models import COVERAGE_FIELDS, POLICY_FIELDS, TOTAL_FIELDS, ExtractionStatus

ORDER = {
    ExtractionStatus.COMPLETE: 0,
    ExtractionStatus.PARTIAL: 1,
    ExtractionStatus.FAILED: 2,
}


class TestClassify:
    def test_all_found_is_complete(self):
        assert classify(15, 0) is ExtractionStatus.COMPLETE

    def test_none_found_is_failed(self):
        assert classify(15, 15) is ExtractionStatus.FAILED

    def test_three_of_eleven_is_partial(self):
        # 3 < 5.5
        assert classify(11, 8) is ExtractionStatus.PARTIAL

    def test_nine_of_eleven_is_complete(self):
        assert classify(11, 2) is ExtractionStatus.COMPLETE

    def test_exact_half_is_complete(self):
        assert classify(10, 5) is ExtractionStatus.COMPLETE
        assert classify(10, 6) is ExtractionStatus.PARTIAL

    def test_custom_threshold(self):
        assert classify(10, 3, threshold=0.8) is ExtractionStatus.PARTIAL
        assert classify(10, 2, threshold=0.8) is ExtractionStatus.COMPLETE

    def test_missing_clamped(self):
        assert classify(15, 40) is ExtractionStatus.FAILED
        assert classify(15, -3) is ExtractionStatus.COMPLETE

    @pytest.mark.parametrize("total", [1, 2, 11, 15, 20])
    def test_monotonic_and_partitioned(self, total: int):
        statuses = [classify(total, missing) for missing in range(total + 1)]
        ranks = [ORDER[s] for s in statuses]
        assert ranks == sorted(ranks)
        assert statuses[0] is ExtractionStatus.COMPLETE
        assert statuses[-1] is ExtractionStatus.FAILED
        assert statuses.count(ExtractionStatus.FAILED) == 1


class TestClassifyMissing:
    def test_schema_has_fifteen_fields(self):
        assert TOTAL_FIELDS == 15
        assert len(POLICY_FIELDS) == 4
        assert len(COVERAGE_FIELDS) == 11

    def test_uses_schema_total(self):
        assert classify_missing(["carrier", "premium"]) is ExtractionStatus.COMPLETE
        assert classify_missing(list(POLICY_FIELDS + COVERAGE_FIELDS)) is ExtractionStatus.FAILED

    def test_duplicate_names_counted_once(self):
        assert classify_missing(["carrier"] * 15) is ExtractionStatus.COMPLETE
