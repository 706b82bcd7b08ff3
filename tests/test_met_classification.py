import numpy as np
import pandas as pd
import pytest

from met_classification import (
    ACQUISITION_RULES,
    OTHER,
    PHILANTHROPY,
    PURCHASE,
    acquisition_type_counts,
    classify_credit_line,
    classify_records,
    decade_of,
)
from met_cleaning import normalize_records


class TestClassifyCreditLine:

    @pytest.mark.parametrize("credit_line", [
        "Gift of Jane Doe, 1955",
        "Bequest of Benjamin Altman, 1913",
        "BEQUEST OF MARY STILLMAN HARKNESS",
        "Donation in memory of a friend",
        "Anonymous donor",
        "gift",
    ])
    def test_philanthropy(self, credit_line):
        assert classify_credit_line(credit_line) == PHILANTHROPY

    @pytest.mark.parametrize("credit_line", [
        "Purchase, Rogers Fund, 1962",
        "Museum Purchase",
        "purchased from the artist",
    ])
    def test_purchase(self, credit_line):
        assert classify_credit_line(credit_line) == PURCHASE

    @pytest.mark.parametrize("credit_line", [
        "Purchase, Gift of Irwin Untermyer, by exchange",
        "Gift and purchase from the estate",
        "purchase with funds from a bequest",
    ])
    def test_gift_wins_over_purchase(self, credit_line):
        assert classify_credit_line(credit_line) == PHILANTHROPY

    @pytest.mark.parametrize("credit_line", [
        "", "Rogers Fund, 1907", "Museum Accession", "Transferred from the Library", None, np.nan,
    ])
    def test_other(self, credit_line):
        assert classify_credit_line(credit_line) == OTHER

    def test_rules_are_ordered(self):
        assert [label for label, _ in ACQUISITION_RULES] == [PHILANTHROPY, PURCHASE]


class TestDecadeOf:

    @pytest.mark.parametrize("year, decade", [(1900, 1900), (1909, 1900), (1995, 1990), (2020, 2020)])
    def test_rounds_down(self, year, decade):
        assert decade_of(year) == decade

    def test_bucket_width_is_ten(self):
        for year in range(1890, 2031):
            if year % 10 == 9:
                assert decade_of(year) != decade_of(year + 1)
            else:
                assert decade_of(year) == decade_of(year + 1)


class TestClassifyRecords:

    def test_example_labels_and_decades(self, example_raw):
        classified = classify_records(normalize_records(example_raw))

        assert classified["acquisition_type"].tolist() == [PHILANTHROPY, PURCHASE, PHILANTHROPY]
        assert classified["decade"].tolist() == [1950, 1950, 1950]

    def test_returns_new_frame(self, example_raw):
        normalized = normalize_records(example_raw)
        before = normalized.copy()

        classified = classify_records(normalized)

        assert classified is not normalized
        pd.testing.assert_frame_equal(normalized, before)

    def test_type_counts_list_every_label(self, example_raw):
        counts = acquisition_type_counts(classify_records(normalize_records(example_raw)))

        assert counts.to_dict() == {PHILANTHROPY: 2, PURCHASE: 1, OTHER: 0}
