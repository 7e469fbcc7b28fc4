"""Regex-based task-row extraction.

Works on whitespace-normalised document text and looks for four things:

project  -- ``Project:`` / ``Project Name:`` / ``Job Title:`` / ``Subject:``
scope    -- ``Scope of Work:`` / ``Description:`` clause
trade    -- ``Trade:`` label, else the first known trade keyword
date     -- a date-like token after a bid/proposal/due-date label, else
            the first date-like token anywhere

The strategy is total: it always returns exactly one row.  Each pattern
carries a (matched, unmatched) confidence pair and the row confidence is
their mean, so a row built mostly from defaults lands well under the
usual review threshold.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path

from compass.extraction.base import ExtractionStrategy, RawRow
from compass.extraction.text import normalize_text

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

# Labels that end a free-text value such as a project name.
_NEXT_LABEL = (
    r"(?:bid\s+due|bid\s+date|proposal\s+due|due\s+date|scope|description|trade|"
    r"location|owner|architect|general\s+contractor|subcontractor|address)"
)

_MONTH = r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?"

_DATE_TOKEN = (
    r"(\d{4}-\d{1,2}-\d{1,2}"
    r"|\d{1,2}[/.-]\d{1,2}[/.-]\d{2,4}"
    rf"|{_MONTH}\s+\d{{1,2}},?\s+\d{{4}}"
    rf"|\d{{1,2}}\s+{_MONTH}\s+\d{{4}})"
)

PROJECT_RE = re.compile(
    r"(?:project\s*(?:name)?|job\s*(?:name|title)?|subject)\s*[:\-]\s*"
    r"([A-Za-z0-9 ,.&()/'-]{3,120}?)"
    rf"(?=\s+{_NEXT_LABEL}\b|\s*$)",
    re.IGNORECASE,
)

SCOPE_RE = re.compile(
    r"(?:scope(?:\s+of\s+work)?|work\s+description|description)\s*[:\-]\s*"
    r"(.{3,180}?)"
    rf"(?=\s+{_NEXT_LABEL}\b|\s*$)",
    re.IGNORECASE,
)

TRADE_LABEL_RE = re.compile(
    r"\btrade\s*[:\-]\s*([A-Za-z][A-Za-z &/-]{2,40}?)"
    rf"(?=\s+{_NEXT_LABEL}\b|[.,;]|\s*$)",
    re.IGNORECASE,
)

TRADE_KEYWORD_RE = re.compile(
    r"\b(fire\s+protection|electrical|plumbing|mechanical|hvac|concrete|masonry|"
    r"drywall|roofing|painting|flooring|glazing|structural\s+steel|steel|framing|"
    r"earthwork|sitework|landscaping|insulation|carpentry|demolition|excavation)\b",
    re.IGNORECASE,
)

LABELED_DATE_RE = re.compile(
    r"(?:bid\s+due\s+date|bid\s+date|proposal\s+due(?:\s+date)?|due\s+date)\s*[:\-]?\s*"
    + _DATE_TOKEN,
    re.IGNORECASE,
)

ANY_DATE_RE = re.compile(r"\b" + _DATE_TOKEN, re.IGNORECASE)

# (matched, unmatched)
CONFIDENCE_PROJECT = (0.76, 0.58)
CONFIDENCE_DATE = (0.74, 0.45)
CONFIDENCE_SCOPE = (0.67, 0.40)
CONFIDENCE_TRADE = (0.70, 0.50)

SNIPPET_CHARS = 180


def _first_group(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    if match is None:
        return None
    value = match.group(1).strip(" ,.;-")
    return value or None


class HeuristicExtractor(ExtractionStrategy):
    """Pattern-match one task row out of plain document text."""

    name = "heuristic"

    def extract(self, document_text: str, *, filename: str = "", document_id: str = "") -> list[RawRow]:
        text = normalize_text(document_text)
        stem = Path(filename).stem if filename else ""

        project = _first_group(PROJECT_RE, text)
        scope = _first_group(SCOPE_RE, text)
        trade = _first_group(TRADE_LABEL_RE, text) or _first_group(TRADE_KEYWORD_RE, text)
        due_date = _first_group(LABELED_DATE_RE, text) or _first_group(ANY_DATE_RE, text)

        scores = [
            CONFIDENCE_PROJECT[0] if project else CONFIDENCE_PROJECT[1],
            CONFIDENCE_DATE[0] if due_date else CONFIDENCE_DATE[1],
            CONFIDENCE_SCOPE[0] if scope else CONFIDENCE_SCOPE[1],
            CONFIDENCE_TRADE[0] if trade else CONFIDENCE_TRADE[1],
        ]
        confidence = round(sum(scores) / len(scores), 2)

        logger.debug(
            "Heuristic match for %s: project=%s scope=%s trade=%s date=%s",
            document_id or filename,
            project is not None,
            scope is not None,
            trade is not None,
            due_date is not None,
        )

        row: RawRow = {
            "project_name": project or stem,
            "task_name": scope or text[:SNIPPET_CHARS] or stem,
            "trade": (trade or "").lower(),
            "planned_finish": due_date or "",
            "status": "not_started",
            "dependency_type": "none",
            "constraint_type": "none",
            "confidence": confidence,
            "source_page": 1,
            "source_snippet": text[:SNIPPET_CHARS],
        }
        return [row]
