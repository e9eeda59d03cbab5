"""Validation of session metadata entered at session initialization.

Checks the customer CIF number, the LC reference number and the
documentary credit lifecycle, and generates session identifiers.
"""

import random
import re
import string
import time

from tfgenie.utils.logger import get_logger

logger = get_logger(__name__)

CIF_PATTERN = re.compile(r"^[A-Z0-9]{8,12}$")
LC_PATTERN = re.compile(r"^[A-Z0-9\-]{6,20}$")

LIFECYCLE_OPTIONS: tuple[str, ...] = (
    "Import LC",
    "Export LC",
    "Standby LC",
    "Documentary Collection",
    "Trade Finance",
    "Bank Guarantee",
    "Supply Chain Finance",
    "Letter of Credit Amendment",
    "LC Confirmation",
    "LC Negotiation",
)

_ID_ALPHABET = string.digits + string.ascii_lowercase


def normalize_reference(value: str) -> str:
    """Trim and upper-case a CIF or LC number."""
    return value.strip().upper()


def is_valid_cif(value: str) -> bool:
    """Return whether ``value`` is an acceptable CIF number."""
    return CIF_PATTERN.match(normalize_reference(value)) is not None


def is_valid_lc(value: str) -> bool:
    """Return whether ``value`` is an acceptable LC number."""
    return LC_PATTERN.match(normalize_reference(value)) is not None


def validate_session_metadata(
    cif_number: str, lc_number: str, lifecycle: str
) -> dict[str, str]:
    """Validate the session form.

    Args:
        cif_number: Customer Identification File number.
        lc_number: Letter of Credit reference number.
        lifecycle: Documentary credit lifecycle stage.

    Returns:
        Mapping of field name to error message; empty when all fields
        are valid.
    """
    errors: dict[str, str] = {}

    if not cif_number.strip():
        errors["cif_number"] = "CIF Number is required"
    elif not is_valid_cif(cif_number):
        errors["cif_number"] = "CIF Number must be 8-12 alphanumeric characters"

    if not lc_number.strip():
        errors["lc_number"] = "LC Number is required"
    elif not is_valid_lc(lc_number):
        errors["lc_number"] = (
            "LC Number must be 6-20 characters (letters, numbers, hyphens)"
        )

    if not lifecycle:
        errors["lifecycle"] = "Lifecycle selection is required"
    elif lifecycle not in LIFECYCLE_OPTIONS:
        errors["lifecycle"] = f"Unknown lifecycle: {lifecycle}"

    if errors:
        logger.debug("Session metadata rejected: %s", errors)
    return errors


def generate_session_id(rng: random.Random | None = None) -> str:
    """Build a session id of the form ``TF_<epoch-ms>_<9 base-36 chars>``."""
    rng = rng or random.Random()
    suffix = "".join(rng.choice(_ID_ALPHABET) for _ in range(9))
    return f"TF_{int(time.time() * 1000)}_{suffix}"
