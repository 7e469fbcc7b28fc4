"""Strategy selection and the primary -> heuristic fallback combinator."""
from __future__ import annotations

import logging

from compass.core.settings import PipelineConfig
from compass.extraction.base import ExtractionError, ExtractionResult, ExtractionStrategy
from compass.extraction.heuristic import HeuristicExtractor
from compass.extraction.model_backed import ModelBackedExtractor

logger = logging.getLogger(__name__)

MODE_HEURISTIC = "heuristic"


class Extractor:
    """Try *primary*; use *fallback* when it is unavailable, fails, or is empty.

    The fallback must be total.  :meth:`extract` therefore never raises:
    the worst case is the heuristic's single default row.
    """

    def __init__(
        self,
        primary: ExtractionStrategy | None = None,
        fallback: ExtractionStrategy | None = None,
    ) -> None:
        self.primary = primary
        self.fallback = fallback or HeuristicExtractor()

    def extract(self, document_text: str, *, filename: str = "", document_id: str = "") -> ExtractionResult:
        attempted: list[str] = []
        reason: str | None = None

        if self.primary is None:
            reason = "no primary strategy"
        elif not self.primary.is_available():
            reason = f"{self.primary.name} strategy unavailable"
            logger.info("%s; using %s extraction", reason, self.fallback.name)
        else:
            attempted.append(self.primary.name)
            try:
                rows = self.primary.extract(document_text, filename=filename, document_id=document_id)
            except ExtractionError as exc:
                reason = f"{self.primary.name} strategy failed: {exc}"
                logger.warning("%s; falling back to %s", reason, self.fallback.name)
            except Exception as exc:
                reason = f"{self.primary.name} strategy raised {type(exc).__name__}: {exc}"
                logger.exception("Unexpected extraction error; falling back to %s", self.fallback.name)
            else:
                if rows:
                    return ExtractionResult(rows=rows, strategy=self.primary.name, attempted=attempted)
                reason = f"{self.primary.name} strategy returned no rows"
                logger.info("%s; falling back to %s", reason, self.fallback.name)

        attempted.append(self.fallback.name)
        rows = self.fallback.extract(document_text, filename=filename, document_id=document_id)
        return ExtractionResult(
            rows=rows,
            strategy=self.fallback.name,
            fallback_reason=reason,
            attempted=attempted,
        )


def build_extractor(config: PipelineConfig) -> Extractor:
    """Pick the strategy chain for *config*.

    ``extraction_mode == "heuristic"`` skips the model entirely; any other
    mode puts the model first (it reports itself unavailable when no
    credential is configured).
    """
    if config.extraction_mode == MODE_HEURISTIC:
        return Extractor(primary=None)
    return Extractor(primary=ModelBackedExtractor.from_config(config))
