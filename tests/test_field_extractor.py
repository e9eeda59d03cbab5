"""Tests for key/value field extraction."""

import random
from datetime import date

import pytest

from tfgenie.extraction.field_extractor import FieldExtractor, infer_data_type
from tfgenie.ocr.mock_engine import generate_mock_extracted_text


@pytest.fixture
def extractor() -> FieldExtractor:
    return FieldExtractor()


@pytest.fixture
def lc_text() -> str:
    return generate_mock_extracted_text(
        "lc_draft.pdf", random.Random(3), today=date(2024, 1, 15)
    )


class TestInferDataType:
    """Tests for value classification."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("01/15/2024", "date"),
            ("2024-01-15", "date"),
            ("USD 54321.00", "amount"),
            ("USD 50.00 per unit", "amount"),
            ("1,250.00", "amount"),
            ("1000 units", "number"),
            ("21", "number"),
            ("ABC Trading Company Limited", "text"),
            ("LC12345678", "text"),
        ],
    )
    def test_types(self, value: str, expected: str) -> None:
        assert infer_data_type(value) == expected


class TestFieldExtractor:
    """Tests for FieldExtractor.extract."""

    def test_letter_of_credit_fields(
        self, extractor: FieldExtractor, lc_text: str
    ) -> None:
        fields = extractor.extract(lc_text, "doc-1", 0.92)
        names = [f.field_name for f in fields]
        assert names == [
            "LC Number",
            "Issue Date",
            "Expiry Date",
            "Amount",
            "Beneficiary",
            "Applicant",
            "Quantity",
            "Unit Price",
            "Shipment from",
            "Shipment to",
            "Latest shipment date",
            "Presentation period",
        ]

    def test_field_attributes(self, extractor: FieldExtractor, lc_text: str) -> None:
        fields = {f.field_name: f for f in extractor.extract(lc_text, "doc-1", 0.92)}
        issue = fields["Issue Date"]
        assert issue.field_value == "01/15/2024"
        assert issue.data_type == "date"
        assert issue.confidence == 0.92
        assert issue.is_validated is False
        assert fields["Amount"].data_type == "amount"
        assert fields["Beneficiary"].field_value == "ABC Trading Company Limited"
        assert fields["LC Number"].field_id == "doc-1_field_1"

    def test_positions_follow_lines(self, extractor: FieldExtractor) -> None:
        fields = extractor.extract("A: 1\n\nBeta: two", "d", 0.5)
        assert fields[0].position.y == 0
        assert fields[1].position.y == 40
        assert fields[1].position.width == len("Beta: two") * 8

    def test_headings_without_value_are_skipped(
        self, extractor: FieldExtractor
    ) -> None:
        fields = extractor.extract("Documents Required:\n- Packing List\n", "d", 0.5)
        assert fields == []

    def test_generic_document(self, extractor: FieldExtractor) -> None:
        text = generate_mock_extracted_text("scan.pdf", random.Random(1))
        fields = extractor.extract(text, "doc-2", 0.8)
        assert [f.field_name for f in fields] == ["Document Number", "Date"]

    def test_min_confidence(self) -> None:
        extractor = FieldExtractor(min_confidence=0.7)
        fields = extractor.extract("Date: 01/02/2024", "d", 0.5)
        assert fields[0].confidence == 0.7

    def test_empty_text(self, extractor: FieldExtractor) -> None:
        assert extractor.extract("", "d", 0.9) == []
