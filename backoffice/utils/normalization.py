"""Normalization helpers for Japanese contact data."""

import re
import unicodedata

# Tried in order: a bare 7-digit run wins over a hyphenated code anywhere in the text.
# Digit runs that are part of a longer number (phone, 8+ digits) never match.
POSTAL_CODE_PATTERNS = (
    re.compile(r"(?<![\d-])(\d{3})(\d{4})(?![\d-])"),
    re.compile(r"(?<![\d-])(\d{3})-(\d{4})(?![\d-])"),
)


def to_halfwidth(value: str) -> str:
    """Convert full-width digits/hyphens to ASCII (０１２－ -> 012-)."""
    value = unicodedata.normalize("NFKC", value)
    return value.replace("ー", "-").replace("‐", "-").replace("−", "-")


def normalize_postal_code(value: str | None) -> str | None:
    """
    Normalize a postal code to 123-4567.

    Returns None for empty input.
    Raises ValueError when the value is not 7 digits.
    """
    if value is None:
        return None
    value = to_halfwidth(value).strip().lstrip("〒").strip()
    if not value:
        return None
    digits = re.sub(r"\D", "", value)
    if len(digits) != 7:
        raise ValueError("郵便番号は7桁で入力してください")
    return f"{digits[:3]}-{digits[3:]}"


def extract_postal_code(text: str | None) -> str | None:
    """Find the first 7-digit postal code in free text, formatted 123-4567."""
    if not text:
        return None
    text = to_halfwidth(text)
    for pattern in POSTAL_CODE_PATTERNS:
        match = pattern.search(text)
        if match:
            return f"{match.group(1)}-{match.group(2)}"
    return None


def normalize_phone(value: str | None) -> str | None:
    """Normalize phone/fax to half-width digits and hyphens; empty becomes None."""
    if value is None:
        return None
    value = to_halfwidth(value).strip()
    if not value:
        return None
    if not re.fullmatch(r"[\d\-+() ]+", value):
        raise ValueError("電話番号の形式が正しくありません")
    return value


def normalize_corporate_number(value: str | None) -> str | None:
    """法人番号 is exactly 13 digits."""
    if value is None:
        return None
    digits = re.sub(r"\D", "", to_halfwidth(value))
    if not digits:
        return None
    if len(digits) != 13:
        raise ValueError("法人番号は13桁で入力してください")
    return digits


def normalize_email(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


def blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None
