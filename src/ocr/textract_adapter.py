"""AWS Textract AnalyzeID adapter.

Sends the document photo to Textract's AnalyzeID API and maps the returned
identity-document fields onto the scanner's typed fields. Credentials are
resolved by boto3's default chain (environment, shared config, instance
role); none are configured here.

Example:
    >>> adapter = TextractAnalyzeIDAdapter(region="us-east-1")
    >>> extraction = adapter.extract(image)
    >>> extraction.fields.value("idNumber"), extraction.confidence
    ('D1234567', 97.4)
"""

import logging
from typing import Any, Dict, List, Optional

import cv2
import numpy as np

from src.common.exceptions import InvalidImage, OCRProviderError
from src.common.types import FieldKey, FieldSet, ImageBuffer

from .types import OCRExtraction

logger = logging.getLogger(__name__)

# AnalyzeID field type -> typed field (address and fullName are composed)
TEXTRACT_FIELD_TYPES: Dict[str, FieldKey] = {
    "FIRST_NAME": FieldKey.FIRST_NAME,
    "MIDDLE_NAME": FieldKey.MIDDLE_NAME,
    "LAST_NAME": FieldKey.LAST_NAME,
    "SUFFIX": FieldKey.SUFFIX,
    "DATE_OF_BIRTH": FieldKey.DATE_OF_BIRTH,
    "SEX": FieldKey.SEX,
    "DOCUMENT_NUMBER": FieldKey.ID_NUMBER,
    "ID_TYPE": FieldKey.ID_TYPE,
    "DATE_OF_ISSUE": FieldKey.ISSUE_DATE,
    "EXPIRATION_DATE": FieldKey.EXPIRATION_DATE,
    "CITY_IN_ADDRESS": FieldKey.CITY,
    "STATE_IN_ADDRESS": FieldKey.STATE,
    "ZIP_CODE_IN_ADDRESS": FieldKey.ZIP_CODE,
    "STATE_NAME": FieldKey.STATE_NAME,
    "CLASS": FieldKey.VEHICLE_CLASS,
    "RESTRICTIONS": FieldKey.RESTRICTIONS,
    "ENDORSEMENTS": FieldKey.ENDORSEMENTS,
    "HEIGHT": FieldKey.HEIGHT,
    "EYE_COLOR": FieldKey.EYE_COLOR,
}

FULL_NAME_PARTS = ("FIRST_NAME", "MIDDLE_NAME", "LAST_NAME", "SUFFIX")
ADDRESS_PARTS = ("ADDRESS", "CITY_IN_ADDRESS", "STATE_IN_ADDRESS", "ZIP_CODE_IN_ADDRESS")


def parse_analyze_id_response(response: Dict[str, Any]) -> OCRExtraction:
    """Map an AnalyzeID response onto typed fields.

    Only the first identity document is used. Confidence is the mean of the
    positive ``ValueDetection`` confidences (0-100), or 0 when none.

    Args:
        response: Raw ``analyze_id`` response

    Returns:
        OCRExtraction with the mapped fields
    """
    documents = response.get("IdentityDocuments") or []
    doc_fields: List[Dict[str, Any]] = (
        documents[0].get("IdentityDocumentFields") or [] if documents else []
    )

    raw: Dict[str, str] = {}
    confidences: List[float] = []
    for doc_field in doc_fields:
        field_type = (doc_field.get("Type") or {}).get("Text")
        detection = doc_field.get("ValueDetection") or {}
        conf = float(detection.get("Confidence") or 0)
        if conf > 0:
            confidences.append(conf)
        if field_type and field_type not in raw:
            raw[field_type] = (detection.get("Text") or "").strip()

    values: Dict[FieldKey, str] = {}
    for field_type, key in TEXTRACT_FIELD_TYPES.items():
        if raw.get(field_type):
            values[key] = raw[field_type]

    full_name = " ".join(raw[p] for p in FULL_NAME_PARTS if raw.get(p))
    if full_name:
        values[FieldKey.FULL_NAME] = full_name

    address = ", ".join(raw[p] for p in ADDRESS_PARTS if raw.get(p))
    if address:
        values[FieldKey.ADDRESS] = address

    unrecognized = {
        k: v for k, v in raw.items()
        if v and k not in TEXTRACT_FIELD_TYPES and k != "ADDRESS"
    }

    confidence = float(np.mean(confidences)) if confidences else 0.0

    return OCRExtraction(
        fields=FieldSet(entries=values, unrecognized=unrecognized),
        confidence=confidence,
        raw_response=response,
    )


class TextractAnalyzeIDAdapter:
    """OCR adapter backed by AWS Textract AnalyzeID.

    Args:
        region: AWS region of the Textract endpoint
        client: Pre-built boto3 Textract client (created lazily if None)
        jpeg_quality: JPEG quality used to encode the upload
        timeout_s: Connect/read timeout of the created client; a call that
            outlives it fails instead of retrying
    """

    name = "textract"

    def __init__(
        self,
        region: str = "us-east-1",
        client: Any = None,
        jpeg_quality: int = 95,
        timeout_s: Optional[float] = None,
    ):
        self.region = region
        self.jpeg_quality = jpeg_quality
        self.timeout_s = timeout_s
        self._client = client

    @property
    def client(self):
        """Lazy-create the boto3 Textract client.

        Raises:
            ImportError: If boto3 is not installed.
        """
        if self._client is None:
            try:
                import boto3
            except ImportError as e:
                raise ImportError("boto3 not available. Run: pip install boto3") from e

            if self.timeout_s is None:
                self._client = boto3.client("textract", region_name=self.region)
            else:
                from botocore.config import Config

                self._client = boto3.client(
                    "textract",
                    region_name=self.region,
                    config=Config(
                        connect_timeout=self.timeout_s,
                        read_timeout=self.timeout_s,
                        retries={"total_max_attempts": 1},
                    ),
                )
            logger.info(f"Textract client created: region={self.region}")
        return self._client

    def extract(self, image: ImageBuffer) -> OCRExtraction:
        """Run AnalyzeID on one image.

        Raises:
            OCRProviderError: If encoding, the API call or the response fails
        """
        image_bytes = self._encode_jpeg(image)
        logger.info(f"Calling Textract AnalyzeID ({len(image_bytes)} bytes)")

        try:
            response = self.client.analyze_id(DocumentPages=[{"Bytes": image_bytes}])
        except ImportError as e:
            raise OCRProviderError(str(e), component=self.name, original_error=e) from e
        except Exception as e:
            raise OCRProviderError(
                "Textract AnalyzeID call failed",
                component=self.name,
                original_error=e,
            ) from e

        extraction = parse_analyze_id_response(response)
        logger.debug(
            f"Textract returned {len(extraction.fields.filled())} fields, "
            f"confidence={extraction.confidence:.1f}"
        )
        return extraction

    def _encode_jpeg(self, image: ImageBuffer) -> bytes:
        data = image.data
        if data.ndim == 3 and data.shape[2] == 4:
            data = cv2.cvtColor(data, cv2.COLOR_RGBA2BGR)
        elif data.ndim == 3 and data.shape[2] == 3:
            data = cv2.cvtColor(data, cv2.COLOR_RGB2BGR)

        ok, encoded = cv2.imencode(
            ".jpg", data, [int(cv2.IMWRITE_JPEG_QUALITY), self.jpeg_quality]
        )
        if not ok:
            raise InvalidImage("Failed to JPEG-encode image", component=self.name)
        return encoded.tobytes()
