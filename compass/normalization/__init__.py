"""Normalization package.

``row_normalizer.normalize_row`` is the single place where a raw row from
either extraction strategy becomes a canonical ``ExtractedRow``: every
enum is inside its closed set, every percentage and score is clamped,
and every date is ``YYYY-MM-DD`` or empty.

All helpers are pure and never raise on bad input.
"""
