"""Japanese era (和暦) date formatting."""

from datetime import date

# (first day of era, era name), newest first
ERAS: list[tuple[date, str]] = [
    (date(2019, 5, 1), "令和"),
    (date(1989, 1, 8), "平成"),
    (date(1926, 12, 25), "昭和"),
]


def to_wareki(value: date) -> str:
    """
    Format a date as 和暦, e.g. 2025-04-01 -> 令和7年4月1日.

    Year 1 of an era is written 元年. Dates before 昭和 fall back to 西暦.
    """
    for start, name in ERAS:
        if value >= start:
            era_year = value.year - start.year + 1
            year_text = "元" if era_year == 1 else str(era_year)
            return f"{name}{year_text}年{value.month}月{value.day}日"
    return f"{value.year}年{value.month}月{value.day}日"
