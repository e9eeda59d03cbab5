"""Template comparison against the master/sub-document catalog.

The catalog holds 40 master and 192 sub-document templates. Comparison
is simulated: after a fixed delay, the document filename is checked
against keyword rules and the canned matches of the first rule that hits
are returned. Rules can be overridden from a YAML file.
"""

import asyncio
from pathlib import Path
from typing import Any

import yaml

from tfgenie.utils.logger import get_logger
from tfgenie.workflow.models import (
    Document,
    DocumentComparison,
    TemplateMatch,
    TemplateType,
)

logger = get_logger(__name__)

MASTER_TEMPLATE_COUNT = 40
SUB_TEMPLATE_COUNT = 192
TOTAL_TEMPLATES = MASTER_TEMPLATE_COUNT + SUB_TEMPLATE_COUNT

_DEFAULT_RULES: list[dict[str, Any]] = [
    {
        "name": "letter_of_credit",
        "keywords": ["lc", "letter", "credit"],
        "master": [
            {
                "id": "master_lc_001",
                "name": "Standard Letter of Credit",
                "confidence": 0.92,
                "matched_fields": 8,
                "total_fields": 10,
                "category": "Documentary Credit",
            },
            {
                "id": "master_lc_002",
                "name": "Irrevocable LC Template",
                "confidence": 0.85,
                "matched_fields": 7,
                "total_fields": 10,
                "category": "Documentary Credit",
            },
        ],
        "sub": [
            {
                "id": "sub_lc_001",
                "name": "Import LC - Electronics",
                "confidence": 0.88,
                "matched_fields": 9,
                "total_fields": 12,
                "category": "Import LC",
            },
            {
                "id": "sub_lc_002",
                "name": "Export LC - Manufacturing",
                "confidence": 0.82,
                "matched_fields": 8,
                "total_fields": 12,
                "category": "Export LC",
            },
        ],
    },
    {
        "name": "commercial_invoice",
        "keywords": ["invoice"],
        "master": [
            {
                "id": "master_inv_001",
                "name": "Standard Commercial Invoice",
                "confidence": 0.88,
                "matched_fields": 6,
                "total_fields": 8,
                "category": "Commercial Invoice",
            }
        ],
        "sub": [
            {
                "id": "sub_inv_001",
                "name": "Export Invoice - Goods",
                "confidence": 0.85,
                "matched_fields": 7,
                "total_fields": 9,
                "category": "Export Invoice",
            }
        ],
    },
    {
        "name": "bill_of_lading",
        "keywords": ["bl", "lading"],
        "master": [
            {
                "id": "master_bl_001",
                "name": "Ocean Bill of Lading",
                "confidence": 0.90,
                "matched_fields": 7,
                "total_fields": 8,
                "category": "Bill of Lading",
            }
        ],
        "sub": [],
    },
]


def confidence_band(confidence: float) -> str:
    """Bucket a match confidence into ``high``, ``medium`` or ``low``."""
    if confidence >= 0.8:
        return "high"
    if confidence >= 0.6:
        return "medium"
    return "low"


class TemplateComparator:
    """Compares documents against the template catalog.

    Args:
        templates_path: Optional YAML file with a ``rules`` list; the
            built-in catalog rules are used when it is missing or empty.
        delay_seconds: Simulated comparison time per document.
    """

    def __init__(
        self,
        templates_path: Path | None = None,
        delay_seconds: float = 2.0,
    ) -> None:
        self.delay_seconds = delay_seconds
        self.rules = self._load_rules(templates_path)

    def _load_rules(self, path: Path | None) -> list[dict[str, Any]]:
        """Load comparison rules from YAML, falling back to the defaults."""
        if path is not None and path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}
            rules = data.get("rules")
            if rules:
                logger.info("Loaded %d template rules from %s", len(rules), path)
                return rules
        logger.debug("Using built-in template rules")
        return _DEFAULT_RULES

    async def compare(self, document: Document | None) -> DocumentComparison:
        """Compare a document against all master and sub templates.

        Args:
            document: Document to compare; ``None`` yields an empty
                comparison flagged as a new document.

        Returns:
            Comparison result with the best match first among
            master matches, then sub matches.
        """
        await asyncio.sleep(self.delay_seconds)

        if document is None:
            return DocumentComparison(
                document_id="",
                master_matches=[],
                sub_matches=[],
                best_match=None,
                is_new_document=True,
                total_templates_checked=TOTAL_TEMPLATES,
            )

        master, sub = self.match_file_name(document.file_name)
        all_matches = master + sub
        comparison = DocumentComparison(
            document_id=document.id,
            master_matches=master,
            sub_matches=sub,
            best_match=all_matches[0] if all_matches else None,
            is_new_document=not all_matches,
            total_templates_checked=TOTAL_TEMPLATES,
        )
        logger.info(
            "Compared %s against %d templates: %d matches",
            document.file_name,
            TOTAL_TEMPLATES,
            len(all_matches),
        )
        return comparison

    def match_file_name(
        self, file_name: str
    ) -> tuple[list[TemplateMatch], list[TemplateMatch]]:
        """Return the (master, sub) matches of the first rule hit by a filename."""
        name = file_name.lower()
        for rule in self.rules:
            if any(k in name for k in rule.get("keywords", [])):
                master = [
                    self._build(m, TemplateType.MASTER) for m in rule.get("master", [])
                ]
                sub = [self._build(m, TemplateType.SUB) for m in rule.get("sub", [])]
                return master, sub
        return [], []

    def list_templates(self) -> list[TemplateMatch]:
        """All catalog templates named by the rules, masters first per rule."""
        templates: list[TemplateMatch] = []
        for rule in self.rules:
            templates.extend(
                self._build(m, TemplateType.MASTER) for m in rule.get("master", [])
            )
            templates.extend(
                self._build(m, TemplateType.SUB) for m in rule.get("sub", [])
            )
        return templates

    @staticmethod
    def _build(entry: dict[str, Any], template_type: TemplateType) -> TemplateMatch:
        return TemplateMatch(
            id=entry["id"],
            name=entry["name"],
            type=template_type,
            confidence=float(entry["confidence"]),
            matched_fields=int(entry["matched_fields"]),
            total_fields=int(entry["total_fields"]),
            category=entry["category"],
        )
