"""
Statement format detection.

Classifies extracted statement text into one of the known issuer formats
using an ordered list of signature rules. The first rule that matches wins,
so the order below is the tie-break for documents that carry markers of more
than one issuer: depositories (CDSL, then NSDL) before registrars (CAMS,
then KFintech). Reordering the rules can reclassify ambiguous statements.

Rules are plain substring checks on lower-cased text, which keeps detection
linear in the text length.
"""

import logging
from dataclasses import dataclass
from typing import List, Tuple

from cas_engine.models import FormatType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignatureRule:
    """
    A detection rule for one issuer format.

    Attributes:
        format_type: Format returned when the rule matches
        markers: Lower-case substrings associated with the issuer
        min_matches: How many distinct markers must be present
        name: Label used in logs
    """
    format_type: FormatType
    markers: Tuple[str, ...]
    min_matches: int = 1
    name: str = ""

    def count_matches(self, lowered_text: str) -> int:
        return sum(1 for marker in self.markers if marker in lowered_text)

    def matches(self, lowered_text: str) -> bool:
        return self.count_matches(lowered_text) >= self.min_matches


# Priority order matters; see module docstring.
SIGNATURE_RULES: Tuple[SignatureRule, ...] = (
    SignatureRule(
        FormatType.CDSL,
        (
            "cdsl",
            "central depository services",
            "dp name",
            "dp id",
            "bo id",
        ),
        min_matches=2,
        name="cdsl",
    ),
    SignatureRule(
        FormatType.NSDL,
        (
            "nsdl",
            "national securities depository",
            "demat account statement",
        ),
        name="nsdl",
    ),
    SignatureRule(
        FormatType.CAMS,
        (
            "computer age management services",
            "cams",
            "mutual fund statement",
        ),
        name="cams",
    ),
    SignatureRule(
        FormatType.KFINTECH,
        (
            "kfintech",
            "karvy",
        ),
        name="kfintech",
    ),
    # Generic demat statements without an explicit depository name
    SignatureRule(
        FormatType.CDSL,
        (
            "demat",
            "account",
        ),
        min_matches=2,
        name="generic-demat",
    ),
)


class FormatDetector:
    """
    Detects the issuing format of a statement from its text.

    Example:
        >>> detector = FormatDetector()
        >>> detector.detect("CDSL ... DP ID: 12345678 ...")
        <FormatType.CDSL: 'CDSL'>
    """

    def __init__(self, rules: Tuple[SignatureRule, ...] = SIGNATURE_RULES):
        """
        Initialize the detector.

        Args:
            rules: Ordered signature rules (default: SIGNATURE_RULES).
        """
        self.rules = tuple(rules)

    def detect(self, text: str) -> FormatType:
        """
        Detect the statement format.

        Args:
            text: Full text content extracted from the PDF.

        Returns:
            The first matching FormatType, or FormatType.UNKNOWN.
        """
        if not text:
            return FormatType.UNKNOWN

        lowered = text.lower()

        for rule in self.rules:
            matched = rule.count_matches(lowered)
            logger.debug(
                f"Rule {rule.name or rule.format_type.value}: "
                f"{matched}/{len(rule.markers)} markers (need {rule.min_matches})"
            )
            if matched >= rule.min_matches:
                if rule.name == "generic-demat":
                    logger.warning(
                        "Fallback detection: generic demat statement, treating as CDSL"
                    )
                return rule.format_type

        return FormatType.UNKNOWN

    def supported_formats(self) -> List[FormatType]:
        """
        Get the formats this detector can return, in priority order.

        Returns:
            Unique list of FormatType values (UNKNOWN excluded).
        """
        formats: List[FormatType] = []
        for rule in self.rules:
            if rule.format_type not in formats:
                formats.append(rule.format_type)
        return formats


def detect_format(text: str) -> FormatType:
    """
    Convenience function to detect a statement's format.

    Args:
        text: Full statement text.

    Returns:
        Detected FormatType.
    """
    return FormatDetector().detect(text)
