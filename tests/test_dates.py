from datetime import date, datetime, timezone

import pytest

from compass.normalization.dates import normalize_date


class TestNormalizeDate:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2024-05-01", "2024-05-01"),
            ("2024-5-1", "2024-05-01"),
            ("2024-05-01T09:30:00Z", "2024-05-01"),
            ("May 1, 2024", "2024-05-01"),
            ("Sept. 3 2024", "2024-09-03"),
            ("1 May 2024", "2024-05-01"),
            ("2024/05/01", "2024-05-01"),
            ("05/01/2024", "2024-05-01"),
            ("05/01/24", "2024-05-01"),
            ("12/31/99", "1999-12-31"),
        ],
    )
    def test_accepted_formats(self, value, expected):
        assert normalize_date(value) == expected

    @pytest.mark.parametrize("value", [None, "", "   ", "TBD", "2024-02-30", "13/45/2024", "1/2"])
    def test_unparseable_values_become_empty(self, value):
        assert normalize_date(value) == ""

    def test_date_and_datetime_objects(self):
        assert normalize_date(date(2024, 6, 3)) == "2024-06-03"
        assert normalize_date(datetime(2024, 6, 3, 23, 0, tzinfo=timezone.utc)) == "2024-06-03"

    def test_output_is_a_fixed_point(self):
        once = normalize_date("March 7, 2025")
        assert normalize_date(once) == once == "2025-03-07"
