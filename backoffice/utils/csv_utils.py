"""CSV writing/reading helpers (formula-injection safe, Excel friendly)."""

import csv
import io
from datetime import date, datetime
from typing import Any, Iterable, Sequence

CSV_DANGEROUS_PREFIXES = ("=", "+", "-", "@", "\t", "\r")
UTF8_BOM = "\ufeff"


def csv_safe(value: str) -> str:
    if value and value.startswith(CSV_DANGEROUS_PREFIXES):
        return f"'{value}"
    return value


def serialize_csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def write_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]], bom: bool = True) -> str:
    """Render rows to CSV text. The BOM lets Excel detect UTF-8."""
    output = io.StringIO()
    if bom:
        output.write(UTF8_BOM)
    writer = csv.writer(output, lineterminator="\r\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([csv_safe(serialize_csv_value(value)) for value in row])
    return output.getvalue()


def read_csv_rows(content: bytes | str) -> list[list[str]]:
    """Parse CSV content, tolerating a UTF-8 BOM and Shift_JIS from Excel."""
    if isinstance(content, bytes):
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            text = content.decode("cp932")
    else:
        text = content.lstrip(UTF8_BOM)
    return [row for row in csv.reader(io.StringIO(text))]
