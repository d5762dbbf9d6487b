"""
Consolidated Account Statement (CAS) extraction engine.

Turns CDSL, NSDL, CAMS and KFintech statement PDFs into an immutable
ParsedStatement holding investor details, demat accounts, holdings,
mutual fund folios and a portfolio summary.
"""

from cas_engine.config import EngineConfig
from cas_engine.exceptions import CASEngineError, ErrorKind
from cas_engine.models import (
    DematAccount,
    FormatType,
    Holding,
    InvestorInfo,
    MutualFundFolio,
    ParsedStatement,
    SchemeValuation,
    Summary,
)
from cas_engine.orchestrator import (
    CASParser,
    ParseFailure,
    ParseOutcome,
    ParseStage,
    parse_cas_bytes,
    parse_cas_pdf,
)

__version__ = "2.0.0"
__all__ = [
    "CASEngineError",
    "CASParser",
    "DematAccount",
    "EngineConfig",
    "ErrorKind",
    "FormatType",
    "Holding",
    "InvestorInfo",
    "MutualFundFolio",
    "ParseFailure",
    "ParseOutcome",
    "ParseStage",
    "ParsedStatement",
    "SchemeValuation",
    "Summary",
    "parse_cas_bytes",
    "parse_cas_pdf",
]
