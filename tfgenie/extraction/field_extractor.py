"""Key/value field extraction from OCR text.

Turns ``Label: value`` lines of a recognized document into
:class:`FieldExtraction` records once the document is cataloged against
a template.
"""

import re

from tfgenie.utils.logger import get_logger
from tfgenie.workflow.models import FieldExtraction, FieldPosition

logger = get_logger(__name__)

_KEY_VALUE_PATTERN = re.compile(
    r"^[ \t]*(?:-[ \t]*)?([A-Za-z][A-Za-z0-9 .&/()]{0,40}?)[ \t]*:[ \t]*(\S.*?)[ \t]*$",
    re.MULTILINE,
)

# (data type, pattern) checked in order against the field value.
_DATA_TYPE_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("date", re.compile(r"^\d{1,2}/\d{1,2}/\d{2,4}$")),
    ("date", re.compile(r"^\d{4}-\d{1,2}-\d{1,2}$")),
    ("amount", re.compile(r"^(?:[A-Z]{3}\s+)?[\d,]+\.\d{2}\b")),
    ("number", re.compile(r"^\d+(?:\s+\w+)?$")),
]

_LINE_HEIGHT = 20
_CHAR_WIDTH = 8
_LEFT_MARGIN = 40


def infer_data_type(value: str) -> str:
    """Classify a field value as date, amount, number or text."""
    for data_type, pattern in _DATA_TYPE_PATTERNS:
        if pattern.match(value):
            return data_type
    return "text"


class FieldExtractor:
    """Extracts labelled fields from document text.

    Args:
        min_confidence: Fields are never reported below this confidence.
    """

    def __init__(self, min_confidence: float = 0.0) -> None:
        self.min_confidence = min_confidence

    def extract(
        self, text: str, document_id: str, confidence: float
    ) -> list[FieldExtraction]:
        """Extract every ``Label: value`` line from ``text``.

        Args:
            text: OCR text of the document.
            document_id: Owner document, used to build field ids.
            confidence: Confidence assigned to every field, normally the
                confidence of the cataloged template.

        Returns:
            Extracted fields in reading order.
        """
        fields: list[FieldExtraction] = []
        line_starts = [0] + [m.end() for m in re.finditer("\n", text)]

        for match in _KEY_VALUE_PATTERN.finditer(text):
            line_number = _line_of(line_starts, match.start())
            label, value = match.group(1).strip(), match.group(2)
            fields.append(
                FieldExtraction(
                    field_id=f"{document_id}_field_{len(fields) + 1}",
                    field_name=label,
                    field_value=value,
                    confidence=max(self.min_confidence, confidence),
                    position=FieldPosition(
                        x=_LEFT_MARGIN,
                        y=line_number * _LINE_HEIGHT,
                        width=len(match.group(0).strip()) * _CHAR_WIDTH,
                        height=_LINE_HEIGHT - 4,
                    ),
                    data_type=infer_data_type(value),
                )
            )

        logger.info("Extracted %d fields from document %s", len(fields), document_id)
        return fields


def _line_of(line_starts: list[int], offset: int) -> int:
    line = 0
    for i, start in enumerate(line_starts):
        if start > offset:
            break
        line = i
    return line
