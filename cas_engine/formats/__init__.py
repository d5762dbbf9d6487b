"""
Issuer-specific entity extractors and their dispatch.

Every supported FormatType maps to exactly one extractor class. The
registry is closed: adding a FormatType without registering an extractor
fails at import time.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Protocol, Tuple

from cas_engine.exceptions import CASEngineError, InternalExtractionError, UnsupportedFormat
from cas_engine.formats.cdsl import CDSLExtractor
from cas_engine.formats.common import require_investor
from cas_engine.formats.nsdl import NSDLExtractor
from cas_engine.formats.registrar import CAMSExtractor, KFintechExtractor
from cas_engine.models import (
    DematAccount,
    FormatType,
    Holding,
    InvestorInfo,
    MutualFundFolio,
    StatementPeriod,
)

logger = logging.getLogger(__name__)


class FormatExtractor(Protocol):
    """Operations every issuer extractor provides."""

    format_type: FormatType

    def extract_investor_info(self, text: str) -> InvestorInfo: ...

    def extract_accounts(self, text: str) -> list: ...

    def extract_holdings(self, text: str) -> list: ...

    def extract_funds(self, text: str) -> list: ...

    def extract_statement_period(self, text: str) -> StatementPeriod: ...


EXTRACTORS: Dict[FormatType, Callable[[], FormatExtractor]] = {
    FormatType.CDSL: CDSLExtractor,
    FormatType.NSDL: NSDLExtractor,
    FormatType.CAMS: CAMSExtractor,
    FormatType.KFINTECH: KFintechExtractor,
}

_missing = set(FormatType) - {FormatType.UNKNOWN} - set(EXTRACTORS)
if _missing:
    raise ImportError(
        f"No extractor registered for: {', '.join(sorted(f.value for f in _missing))}"
    )


@dataclass(frozen=True)
class ExtractedEntities:
    """Raw entities read from one statement, before aggregation."""
    investor: InvestorInfo
    accounts: Tuple[DematAccount, ...]
    holdings: Tuple[Holding, ...]
    funds: Tuple[MutualFundFolio, ...]
    statement_period: StatementPeriod


def get_extractor(format_type: FormatType) -> FormatExtractor:
    """
    Create the extractor for a detected format.

    Args:
        format_type: Detected statement format.

    Returns:
        A new extractor instance.

    Raises:
        UnsupportedFormat: If no extractor handles the format.
    """
    factory = EXTRACTORS.get(format_type)
    if factory is None:
        raise UnsupportedFormat(
            f"No extractor for format {getattr(format_type, 'value', format_type)}"
        )
    return factory()


def run_extraction(format_type: FormatType, text: str) -> ExtractedEntities:
    """
    Run every extraction step of a format over the statement text.

    Engine errors (such as ExtractionIncomplete) propagate unchanged. Any
    other exception is wrapped in InternalExtractionError naming the format
    and the step that failed.

    Args:
        format_type: Detected statement format.
        text: Statement text.

    Returns:
        ExtractedEntities for aggregation.
    """
    extractor = get_extractor(format_type)
    name = format_type.value

    def step(stage: str, func):
        try:
            return func(text)
        except CASEngineError:
            raise
        except Exception as e:
            logger.exception(f"{name} extractor failed during {stage}")
            raise InternalExtractionError(
                f"{name} extraction failed during {stage}: {e}",
                format_type=name,
                stage=stage,
            ) from e

    investor = require_investor(step("investor", extractor.extract_investor_info), name)
    entities = ExtractedEntities(
        investor=investor,
        accounts=tuple(step("accounts", extractor.extract_accounts)),
        holdings=tuple(step("holdings", extractor.extract_holdings)),
        funds=tuple(step("funds", extractor.extract_funds)),
        statement_period=step("statement_period", extractor.extract_statement_period),
    )
    logger.info(
        f"{name}: extracted {len(entities.accounts)} accounts, "
        f"{len(entities.holdings)} holdings, {len(entities.funds)} folios"
    )
    return entities


__all__ = [
    "EXTRACTORS",
    "ExtractedEntities",
    "FormatExtractor",
    "get_extractor",
    "run_extraction",
]
