"""Simulated OCR engine for trade-finance documents.

No image is read: the document type is recognized from filename keywords,
the extracted text is rendered from a per-type text template and the
confidence is drawn from a narrow fixed range after a fixed delay.
"""

import asyncio
import random
from datetime import date, timedelta
from typing import Any

from tfgenie.utils.logger import get_logger
from tfgenie.workflow.models import OCRResult

logger = get_logger(__name__)

LETTER_OF_CREDIT = "Letter of Credit"
COMMERCIAL_INVOICE = "Commercial Invoice"
BILL_OF_LADING = "Bill of Lading"
PACKING_LIST = "Packing List"
CERTIFICATE_OF_ORIGIN = "Certificate of Origin"
UNKNOWN_DOCUMENT = "Unknown Document Type"

# Checked in order; the first category with a keyword in the filename wins.
_TYPE_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (("lc", "letter", "credit"), LETTER_OF_CREDIT),
    (("invoice",), COMMERCIAL_INVOICE),
    (("bl", "lading"), BILL_OF_LADING),
    (("packing",), PACKING_LIST),
    (("certificate",), CERTIFICATE_OF_ORIGIN),
]

CONFIDENCE_FLOOR = 0.85
CONFIDENCE_SPAN = 0.1

_STRUCTURED_SECTIONS: list[dict[str, Any]] = [
    {"name": "Header", "confidence": 0.92},
    {"name": "Parties", "confidence": 0.88},
    {"name": "Amount and Currency", "confidence": 0.95},
    {"name": "Terms and Conditions", "confidence": 0.83},
]

_LC_TEMPLATE = """IRREVOCABLE DOCUMENTARY CREDIT

LC Number: LC{lc_digits}
Issue Date: {issue_date}
Expiry Date: {expiry_date}
Amount: USD {amount:.2f}

Beneficiary: ABC Trading Company Limited
123 Business Street, Trade City, TC 12345

Applicant: XYZ Import Corporation
456 Commerce Avenue, Import Town, IT 67890

Description of Goods:
Electronic components and accessories as per proforma invoice PI-2024-001
Quantity: 1000 units
Unit Price: USD 50.00 per unit

Documents Required:
- Commercial Invoice in triplicate
- Packing List
- Bill of Lading
- Certificate of Origin
- Insurance Certificate

Terms and Conditions:
- Shipment from: Port of Shanghai
- Shipment to: Port of Los Angeles
- Latest shipment date: {latest_shipment}
- Presentation period: 21 days after shipment date

This credit is subject to UCP 600."""

_GENERIC_TEMPLATE = (
    "Trade Finance Document\n\n"
    "Document Number: DOC-{doc_digits}\n"
    "Date: {today}\n\n"
    "This document contains trade finance information related to "
    "international commerce transactions."
)

_DATE_FORMAT = "%m/%d/%Y"


def recognize_document_type(file_name: str) -> str:
    """Recognize the trade-finance document type from a filename.

    Matching is a case-insensitive substring check, so ``"bl"`` also hits
    names such as ``"table.pdf"``.
    """
    name = file_name.lower()
    for keywords, document_type in _TYPE_KEYWORDS:
        if any(k in name for k in keywords):
            return document_type
    return UNKNOWN_DOCUMENT


def _digits(rng: random.Random, count: int) -> str:
    return "".join(rng.choice("0123456789") for _ in range(count))


def generate_mock_extracted_text(
    file_name: str,
    rng: random.Random | None = None,
    today: date | None = None,
) -> str:
    """Render the text an OCR pass would have produced for ``file_name``.

    Letter of credit filenames get a full documentary credit; every other
    filename gets a short generic trade document.
    """
    rng = rng or random.Random()
    today = today or date.today()

    if recognize_document_type(file_name) == LETTER_OF_CREDIT:
        return _LC_TEMPLATE.format(
            lc_digits=_digits(rng, 8),
            issue_date=today.strftime(_DATE_FORMAT),
            expiry_date=(today + timedelta(days=180)).strftime(_DATE_FORMAT),
            amount=rng.random() * 100000 + 10000,
            latest_shipment=(today + timedelta(days=90)).strftime(_DATE_FORMAT),
        )

    return _GENERIC_TEMPLATE.format(
        doc_digits=_digits(rng, 8), today=today.strftime(_DATE_FORMAT)
    )


def generate_structured_data(rng: random.Random | None = None) -> dict[str, Any]:
    """Return the section layout reported alongside the extracted text."""
    rng = rng or random.Random()
    return {
        "sections": [dict(s) for s in _STRUCTURED_SECTIONS],
        "fields": rng.randint(5, 14),
        "pages": 1,
    }


class MockOCREngine:
    """OCR stand-in with a fixed processing delay.

    Args:
        delay_seconds: Simulated processing time per pass.
        rng: Random source for document numbers, amounts and confidence.
    """

    def __init__(
        self, delay_seconds: float = 3.0, rng: random.Random | None = None
    ) -> None:
        self.delay_seconds = delay_seconds
        self.rng = rng or random.Random()

    async def process(self, file_name: str, iteration: int = 1) -> OCRResult:
        """Run one simulated OCR pass.

        Args:
            file_name: Name of the uploaded file.
            iteration: Processing iteration, starting at 1.

        Returns:
            Synthetic OCR result for the document.
        """
        logger.info("Running OCR on %s (iteration %d)", file_name, iteration)
        await asyncio.sleep(self.delay_seconds)

        result = OCRResult(
            extracted_text=generate_mock_extracted_text(file_name, self.rng),
            confidence=CONFIDENCE_FLOOR + self.rng.random() * CONFIDENCE_SPAN,
            document_type=recognize_document_type(file_name),
            structured_data=generate_structured_data(self.rng),
            iteration_number=iteration,
        )
        logger.info(
            "OCR recognized %s as '%s' (confidence=%.2f)",
            file_name,
            result.document_type,
            result.confidence,
        )
        return result
