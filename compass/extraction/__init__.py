"""Task-row extraction.

Two strategies produce raw rows from document text:

- :class:`~compass.extraction.heuristic.HeuristicExtractor`: regex based,
  needs nothing external, always returns exactly one row.
- :class:`~compass.extraction.model_backed.ModelBackedExtractor`: asks an
  OpenAI-compatible chat endpoint for rows matching a fixed JSON schema.

:class:`~compass.extraction.extractor.Extractor` composes them: primary
first, heuristic on any failure or empty result.  Raw rows are untrusted
until they pass through ``compass.normalization``.
"""
