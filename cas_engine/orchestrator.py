"""
Parse orchestration for the CAS extraction engine.

CASParser runs the pipeline for one document:

1. Extract text from the PDF bytes
2. Detect the issuer format
3. Run the format's entity extractor
4. Aggregate, validate and build the ParsedStatement

Every call returns a ParseOutcome. Engine errors, and any unexpected
exception, are turned into a ParseFailure; nothing escapes `parse`.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

from cas_engine.aggregator import aggregate
from cas_engine.config import EngineConfig
from cas_engine.detector import FormatDetector
from cas_engine.events import (
    PARSE_DETECTED,
    PARSE_FAILED,
    PARSE_STARTED,
    PARSE_SUCCEEDED,
    EventSink,
    LoggingEventSink,
)
from cas_engine.exceptions import (
    CASEngineError,
    ErrorKind,
    ExtractionIncomplete,
    IncorrectPassword,
    InternalExtractionError,
    ParseCancelled,
    PasswordRequired,
    UnreadableDocument,
    UnsupportedFormat,
)
from cas_engine.extractor import PDFExtractor
from cas_engine.formats import run_extraction
from cas_engine.models import FormatType, Metadata, ParsedStatement
from cas_engine.validator import validate_statement

logger = logging.getLogger(__name__)

TRACKING_ID_PREFIX = "CAS_"

_EXCEPTIONS_BY_KIND = {
    cls.kind: cls
    for cls in (
        UnreadableDocument,
        PasswordRequired,
        IncorrectPassword,
        UnsupportedFormat,
        ExtractionIncomplete,
        InternalExtractionError,
        ParseCancelled,
    )
}


class ParseStage(Enum):
    """Pipeline checkpoints, in order; FAILED is terminal."""
    START = "start"
    TEXT_EXTRACTED = "text_extracted"
    FORMAT_DETECTED = "format_detected"
    ENTITIES_EXTRACTED = "entities_extracted"
    AGGREGATED = "aggregated"
    FAILED = "failed"


@dataclass(frozen=True)
class ParseFailure:
    """
    Why a parse failed.

    Attributes:
        kind: Failure category
        message: Human-readable description
        tracking_id: Id of the failed parse
        stage: Last stage the parse completed before failing
    """
    kind: ErrorKind
    message: str
    tracking_id: str
    stage: ParseStage

    def to_exception(self) -> CASEngineError:
        return _EXCEPTIONS_BY_KIND.get(self.kind, InternalExtractionError)(self.message)


@dataclass(frozen=True)
class ParseOutcome:
    """
    Result of CASParser.parse.

    Exactly one of `statement` and `error` is set.
    """
    tracking_id: str
    stage: ParseStage
    statement: Optional[ParsedStatement] = None
    error: Optional[ParseFailure] = None

    @property
    def ok(self) -> bool:
        return self.statement is not None

    def unwrap(self) -> ParsedStatement:
        """
        Get the statement of a successful parse.

        Raises:
            CASEngineError: The typed error of a failed parse.
        """
        if self.statement is None:
            raise self.error.to_exception()
        return self.statement


def new_tracking_id() -> str:
    return f"{TRACKING_ID_PREFIX}{uuid.uuid4().hex}"


class CASParser:
    """
    Main parser class for Consolidated Account Statements.

    The parser holds only its collaborators, so one instance can serve
    any number of parses, including concurrent ones.

    Example:
        >>> parser = CASParser()
        >>> outcome = parser.parse(pdf_bytes, password="ABCDE1234F")
        >>> if outcome.ok:
        ...     print(outcome.statement.summary.total_value)
    """

    def __init__(
        self,
        event_sink: Optional[EventSink] = None,
        config: Optional[EngineConfig] = None,
        extractor: Optional[PDFExtractor] = None,
        detector: Optional[FormatDetector] = None,
    ):
        """
        Initialize the parser.

        Args:
            event_sink: Receives lifecycle events (default: LoggingEventSink).
            config: Engine settings (default: EngineConfig()).
            extractor: PDF text extractor (default: PDFExtractor(config)).
            detector: Format detector (default: FormatDetector()).
        """
        self.config = config or EngineConfig()
        self.event_sink = event_sink if event_sink is not None else LoggingEventSink()
        self.extractor = extractor or PDFExtractor(config=self.config)
        self.detector = detector or FormatDetector()

    def parse(
        self,
        data: bytes,
        password: Optional[str] = None,
        cancel: Optional[Any] = None,
    ) -> ParseOutcome:
        """
        Parse a statement PDF held in memory.

        Args:
            data: Raw PDF bytes.
            password: Password for encrypted PDFs. Used once, never retried.
            cancel: Optional object with an `is_set()` method, such as a
                threading.Event. Checked between stages.

        Returns:
            ParseOutcome with the statement or the failure.
        """
        tracking_id = new_tracking_id()
        stage = ParseStage.START
        size = len(data) if isinstance(data, (bytes, bytearray, memoryview)) else None

        logger.info(f"Starting CAS parse {tracking_id}")
        self._emit(PARSE_STARTED, {
            "trackingId": tracking_id,
            "size": size,
            "hasPassword": bool(password),
        })

        try:
            self._check_cancelled(cancel)
            document = self.extractor.extract(data, password=password)
            text = document.get_all_text()
            stage = ParseStage.TEXT_EXTRACTED
            logger.info(f"Extracted text from {document.total_pages} pages")

            format_type = self.detector.detect(text)
            if format_type is FormatType.UNKNOWN:
                raise UnsupportedFormat(
                    "Statement format not recognised; expected a CDSL, NSDL, "
                    "CAMS or KFintech consolidated account statement"
                )
            stage = ParseStage.FORMAT_DETECTED
            logger.info(f"Detected format: {format_type.value}")
            self._emit(PARSE_DETECTED, {
                "trackingId": tracking_id,
                "casType": format_type.value,
            })

            self._check_cancelled(cancel)
            entities = run_extraction(format_type, text)
            stage = ParseStage.ENTITIES_EXTRACTED

            self._check_cancelled(cancel)
            body, summary = aggregate(
                entities.investor,
                entities.accounts,
                entities.holdings,
                entities.funds,
                depository=format_type.value,
            )
            validation = validate_statement(body)
            for warning in validation.warnings:
                logger.warning(f"{tracking_id}: {warning}")

            statement = ParsedStatement(
                investor=body.investor,
                accounts=body.accounts,
                holdings=body.holdings,
                mutual_funds=body.mutual_funds,
                summary=summary,
                meta=Metadata(
                    cas_type=format_type,
                    tracking_id=tracking_id,
                    parser_version=self.config.parser_version,
                    parsed_at=datetime.now(timezone.utc),
                    statement_period=entities.statement_period,
                    warnings=tuple(validation.warnings),
                ),
            )
            stage = ParseStage.AGGREGATED

        except CASEngineError as e:
            return self._fail(tracking_id, stage, e)
        except Exception as e:
            logger.exception(f"Unexpected error in CAS parse {tracking_id}")
            return self._fail(
                tracking_id, stage, InternalExtractionError(f"Unexpected error: {e}")
            )

        logger.info(
            f"Parse {tracking_id} complete: {summary.holdings_count} holdings, "
            f"{summary.funds_count} folios, warnings={len(statement.meta.warnings)}"
        )
        self._emit(PARSE_SUCCEEDED, {
            "trackingId": tracking_id,
            "casType": format_type.value,
            "holdingsCount": summary.holdings_count,
            "fundsCount": summary.funds_count,
            "accountsCount": len(statement.accounts),
            "totalValue": float(summary.total_value),
            "warningsCount": len(statement.meta.warnings),
        })
        return ParseOutcome(tracking_id=tracking_id, stage=stage, statement=statement)

    def _fail(self, tracking_id: str, stage: ParseStage, error: CASEngineError) -> ParseOutcome:
        failure = ParseFailure(
            kind=error.kind,
            message=error.message,
            tracking_id=tracking_id,
            stage=stage,
        )
        logger.warning(f"Parse {tracking_id} failed at {stage.value}: {error.kind.value}")
        self._emit(PARSE_FAILED, {
            "trackingId": tracking_id,
            "kind": failure.kind.value,
            "message": failure.message,
            "stage": stage.value,
        })
        return ParseOutcome(tracking_id=tracking_id, stage=ParseStage.FAILED, error=failure)

    def _emit(self, event_name: str, fields: Dict[str, Any]) -> None:
        try:
            self.event_sink.emit(event_name, fields)
        except Exception as e:
            logger.debug(f"Event sink failed on {event_name}: {e!r}")

    @staticmethod
    def _check_cancelled(cancel: Optional[Any]) -> None:
        if cancel is not None and cancel.is_set():
            raise ParseCancelled("Parse was cancelled")


def parse_cas_bytes(data: bytes, password: Optional[str] = None, **kwargs) -> ParseOutcome:
    """
    Parse statement PDF bytes.

    Args:
        data: Raw PDF content.
        password: Optional password for encrypted PDFs.
        **kwargs: Passed to CASParser.

    Returns:
        ParseOutcome.
    """
    return CASParser(**kwargs).parse(data, password=password)


def parse_cas_pdf(
    pdf_path: Union[str, Path], password: Optional[str] = None, **kwargs
) -> ParseOutcome:
    """
    Read a statement PDF from disk and parse it.

    This is the main entry point for programmatic use.

    Args:
        pdf_path: Path to the CAS PDF file.
        password: Optional password for encrypted PDFs.
        **kwargs: Passed to CASParser.

    Returns:
        ParseOutcome.

    Raises:
        FileNotFoundError: If the PDF file doesn't exist.
    """
    path = Path(pdf_path)
    if not path.exists():
        raise FileNotFoundError(f"PDF file not found: {path}")
    return parse_cas_bytes(path.read_bytes(), password=password, **kwargs)
