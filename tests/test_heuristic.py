import pytest

from compass.extraction.heuristic import HeuristicExtractor

BID_TEXT = """
    Project: Riverside Tower
    Bid Due Date: 2024-05-01
    Scope of Work: Install wet and dry fire sprinkler system
    Trade: Fire Protection
"""


class TestHeuristicExtractor:
    def test_labeled_document_yields_one_matched_row(self):
        rows = HeuristicExtractor().extract(BID_TEXT, filename="riverside.pdf", document_id="doc_1")

        assert len(rows) == 1
        row = rows[0]
        assert row["project_name"] == "Riverside Tower"
        assert row["planned_finish"] == "2024-05-01"
        assert row["task_name"] == "Install wet and dry fire sprinkler system"
        assert row["trade"] == "fire protection"
        assert row["status"] == "not_started"
        assert row["source_page"] == 1
        assert row["confidence"] > 0.7

    def test_project_name_stops_at_next_label_on_one_line(self):
        text = "Project: Riverside Tower Bid Due Date: 2024-05-01 ..."

        row = HeuristicExtractor().extract(text, filename="x.pdf")[0]

        assert row["project_name"] == "Riverside Tower"
        assert row["planned_finish"] == "2024-05-01"

    def test_trade_keyword_and_unlabeled_date(self):
        text = "Electrical rough-in for level 3 to be complete by 06/15/2024."

        row = HeuristicExtractor().extract(text, filename="level3.pdf")[0]

        assert row["trade"] == "electrical"
        assert row["planned_finish"] == "06/15/2024"
        assert row["project_name"] == "level3"

    def test_empty_text_still_returns_a_default_row(self):
        rows = HeuristicExtractor().extract("", filename="Harbor Point.pdf")

        assert len(rows) == 1
        row = rows[0]
        assert row["project_name"] == "Harbor Point"
        assert row["task_name"] == "Harbor Point"
        assert row["trade"] == ""
        assert row["planned_finish"] == ""
        assert row["confidence"] == pytest.approx(0.48, abs=0.01)

    def test_unlabeled_text_becomes_the_task_name(self):
        text = "word " * 100

        row = HeuristicExtractor().extract(text, filename="notes.pdf")[0]

        assert len(row["task_name"]) <= 180
        assert row["task_name"].startswith("word word")
        assert row["source_snippet"] == row["task_name"]
