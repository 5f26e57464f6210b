"""Address and display-name formatting."""

from typing import Any

ADDRESS_FIELDS = ("prefecture", "city", "street", "building")


def _parts(record: Any) -> list[str]:
    return [getattr(record, field, None) or "" for field in ADDRESS_FIELDS]


def has_address(record: Any) -> bool:
    return bool(getattr(record, "postal_code", None) or getattr(record, "prefecture", None))


def format_full_address(record: Any) -> str:
    """〒123-4567 東京都 千代田区 丸の内1-1 ビル3F (present parts, space separated)."""
    pieces = []
    postal_code = getattr(record, "postal_code", None)
    if postal_code:
        pieces.append(f"〒{postal_code}")
    pieces.extend(p for p in _parts(record) if p)
    return " ".join(pieces)


def format_address_line(record: Any) -> str:
    """Address without postal code or separators, as printed on letters."""
    return "".join(_parts(record))


def format_postal_code(record: Any) -> str:
    postal_code = getattr(record, "postal_code", None)
    return f"〒{postal_code}" if postal_code else ""
