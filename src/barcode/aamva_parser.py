"""Field parser for decoded ID barcode payloads.

Driver's license and ID card barcodes (PDF417) mostly follow the AAMVA
layout: a header starting with ``@`` and ``ANSI``, then one data element per
line, each line starting with a 3-letter element code (``DCS`` = last name,
``DAQ`` = license number, ...).

Parsing steps:
    1. Format detection: ``ANSI`` or ``@`` anywhere in the payload -> AAMVA,
       anything else -> generic
    2. AAMVA line pass: each line starting with a known code sets that field
       to the trimmed remainder of the line
    3. AAMVA regex pass: fields still missing are recovered with a
       non-greedy capture between the code and the next element code
       (known or not) or the end of the line (covers elements glued to the
       subfile header, e.g. ``DLDAQD1234567``)
    4. Generic payloads: loose label patterns (``DOB``, ``EXP``, ``DL#``)
    5. fullName is synthesized from the name parts when absent

The parser never raises: malformed payloads give a partial (possibly empty)
FieldSet.

Example:
    >>> parser = AAMVAFieldParser()
    >>> fields = parser.parse("@\\nANSI 636014080102DL00410278ZC03190024DLDAQD1234567\\nDCSSMITH\\n")
    >>> fields.value("idNumber")
    'D1234567'
"""

import logging
import re
from enum import Enum
from typing import Dict, Optional

from src.common.types import FieldKey, FieldSet

logger = logging.getLogger(__name__)

# AAMVA element code -> typed field
AAMVA_FIELD_CODES: Dict[str, FieldKey] = {
    "DAC": FieldKey.FIRST_NAME,
    "DAD": FieldKey.MIDDLE_NAME,
    "DCS": FieldKey.LAST_NAME,
    "DAQ": FieldKey.ID_NUMBER,
    "DBB": FieldKey.DATE_OF_BIRTH,
    "DBA": FieldKey.EXPIRATION_DATE,
    "DBD": FieldKey.ISSUE_DATE,
    "DAG": FieldKey.ADDRESS,
    "DAI": FieldKey.CITY,
    "DAJ": FieldKey.STATE,
    "DAK": FieldKey.ZIP_CODE,
    "DBC": FieldKey.SEX,
    "DAY": FieldKey.EYE_COLOR,
    "DAU": FieldKey.HEIGHT,
    "DAW": FieldKey.WEIGHT,
    "DCA": FieldKey.VEHICLE_CLASS,
    "DCB": FieldKey.RESTRICTIONS,
    "DCD": FieldKey.ENDORSEMENTS,
}

HEADER_MARKERS = ("ANSI", "@")

NAME_PARTS = (FieldKey.FIRST_NAME, FieldKey.MIDDLE_NAME, FieldKey.LAST_NAME)

# Loose label patterns for payloads without AAMVA structure
GENERIC_PATTERNS: Dict[FieldKey, re.Pattern] = {
    FieldKey.DATE_OF_BIRTH: re.compile(
        r"(?:DOB|Birth)[\s:]*(\d{2}[-/]\d{2}[-/]\d{4})", re.IGNORECASE
    ),
    FieldKey.EXPIRATION_DATE: re.compile(
        r"(?:EXP|Expires)[\s:]*(\d{2}[-/]\d{2}[-/]\d{4})", re.IGNORECASE
    ),
    FieldKey.ID_NUMBER: re.compile(
        r"(?:ID|DL|License)[\s:#]*([A-Z0-9]{6,})", re.IGNORECASE
    ),
}

_HEADER_RE = re.compile(r"ANSI ?(\d{6})(\d{2})(\d{2})?")
_ELEMENT_CODE = r"[DZ][A-Z]{2}"
_ELEMENT_LINE_RE = re.compile(rf"^({_ELEMENT_CODE})(.*)$")
_ELEMENT_CODE_RE = re.compile(_ELEMENT_CODE)


class PayloadFormat(Enum):
    """Detected layout of a barcode payload."""

    AAMVA = "aamva"
    GENERIC = "generic"


def detect_format(payload: str) -> PayloadFormat:
    """Classify a payload as AAMVA tag-line text or generic text."""
    if any(marker in payload for marker in HEADER_MARKERS):
        return PayloadFormat.AAMVA
    return PayloadFormat.GENERIC


def parse_generic(text: str) -> Dict[FieldKey, str]:
    """Extract fields with the loose label patterns.

    Args:
        text: Free text (generic barcode payload or OCR output)

    Returns:
        Mapping of matched fields to values
    """
    values: Dict[FieldKey, str] = {}
    for key, pattern in GENERIC_PATTERNS.items():
        match = pattern.search(text)
        if match and match.group(1):
            values[key] = match.group(1)
    return values


def synthesize_full_name(values: Dict[FieldKey, str]) -> Optional[str]:
    """Join the non-empty name parts with single spaces, or None."""
    parts = [values.get(k) for k in NAME_PARTS]
    joined = " ".join(p.strip() for p in parts if p and p.strip())
    return joined or None


class AAMVAFieldParser:
    """Parses decoded barcode text into a typed FieldSet.

    Args:
        field_codes: Element code table (default: AAMVA_FIELD_CODES)
    """

    def __init__(self, field_codes: Optional[Dict[str, FieldKey]] = None):
        self.field_codes = dict(field_codes or AAMVA_FIELD_CODES)
        codes = "|".join(re.escape(code) for code in self.field_codes)
        self._subfile_prefix = re.compile(rf"^(?:DL|ID)(?=(?:{codes}))")
        self._fallback_patterns = {
            code: re.compile(
                rf"{re.escape(code)}([^\n\r]*?)(?=(?:{codes})|{_ELEMENT_CODE}|$)",
                re.MULTILINE,
            )
            for code in self.field_codes
        }

    def parse(self, payload: Optional[str]) -> FieldSet:
        """Parse a decoded payload.

        Args:
            payload: Decoded symbol text

        Returns:
            FieldSet with every field that matched (possibly empty)
        """
        values: Dict[FieldKey, str] = {}
        unrecognized: Dict[str, str] = {}

        if not isinstance(payload, str) or not payload:
            logger.warning("Empty or non-text barcode payload, nothing to parse")
            return FieldSet()

        payload_format = detect_format(payload)
        logger.info(f"Parsing barcode payload as {payload_format.value}")

        try:
            if payload_format == PayloadFormat.AAMVA:
                self._parse_aamva(payload, values, unrecognized)
            else:
                values.update(parse_generic(payload))
        except Exception as e:
            # Keep whatever was collected before the failure
            logger.warning(f"Barcode payload parse error: {e}", exc_info=True)

        if not values.get(FieldKey.FULL_NAME):
            full_name = synthesize_full_name(values)
            if full_name:
                values[FieldKey.FULL_NAME] = full_name

        logger.info(f"Parsed {len(values)} fields from barcode payload")
        return FieldSet(entries=values, unrecognized=unrecognized)

    def _parse_aamva(
        self,
        payload: str,
        values: Dict[FieldKey, str],
        unrecognized: Dict[str, str],
    ) -> None:
        header = _HEADER_RE.search(payload)
        if header:
            unrecognized["issuerIdentificationNumber"] = header.group(1)
            unrecognized["aamvaVersion"] = header.group(2)
            if header.group(3):
                unrecognized["jurisdictionVersion"] = header.group(3)

        for line in re.split(r"[\n\r]+", payload):
            line = line.strip("\x1e\x1c\x1d ")
            # First element of a subfile follows its type, e.g. "DLDAQ..."
            unprefixed = self._subfile_prefix.sub("", line)
            glued = unprefixed != line
            line = unprefixed
            matched = False
            for code, key in self.field_codes.items():
                if line.startswith(code):
                    matched = True
                    value = line[len(code):]
                    if glued:
                        # Subfile lines may carry more elements after the first
                        next_code = _ELEMENT_CODE_RE.search(value)
                        if next_code:
                            value = value[: next_code.start()]
                    value = value.strip()
                    if value:
                        values[key] = value
                    break

            if not matched:
                element = _ELEMENT_LINE_RE.match(line)
                if element and element.group(2).strip():
                    unrecognized[element.group(1)] = element.group(2).strip()

        for code, key in self.field_codes.items():
            if values.get(key):
                continue
            match = self._fallback_patterns[code].search(payload)
            if match and match.group(1).strip():
                values[key] = match.group(1).strip()
