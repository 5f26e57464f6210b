"""Project CSV export and import (Excel-compatible)."""

import logging
from datetime import date, datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from backoffice.db.enums import ProjectCategory, ProjectStatus
from backoffice.db.models import Contact, Project
from backoffice.services.project_service import code_exists, customer_name
from backoffice.utils.csv_utils import read_csv_rows, write_csv
from backoffice.utils.datetime_utils import local_today

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "業務コード",
    "カテゴリ",
    "業務名",
    "ステータス",
    "顧客",
    "担当者",
    "開始日",
    "終了日",
    "税抜報酬",
    "場所",
]

DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d")


def export_filename(today: date | None = None) -> str:
    return f"業務一覧_{(today or local_today()).isoformat()}.csv"


def export_projects_csv(db: Session) -> str:
    """All non-deleted projects as CSV text (with BOM), newest code first."""
    projects = db.query(Project).options(
        joinedload(Project.contact).joinedload(Contact.account),
        joinedload(Project.manager),
    ).filter(Project.deleted_at.is_(None)).order_by(Project.code.desc()).all()

    rows = []
    for p in projects:
        rows.append([
            p.code,
            ProjectCategory(p.category).label,
            p.name,
            p.status,
            customer_name(p.contact),
            p.manager.name if p.manager else None,
            p.start_date,
            p.end_date,
            p.fee_tax_excluded,
            p.location,
        ])
    return write_csv(CSV_HEADERS, rows)


def _cell(row: list[str], index: int) -> str:
    return row[index].strip() if index < len(row) and row[index] else ""


def _parse_date(value: str) -> date | None:
    if not value:
        return None
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"日付の形式が正しくありません: {value}")


def _parse_fee(value: str) -> int:
    if not value:
        return 0
    try:
        fee = int(value.replace(",", "").replace("¥", "").replace("円", ""))
    except ValueError:
        raise ValueError(f"税抜報酬が数値ではありません: {value}")
    if fee < 0:
        raise ValueError("税抜報酬は0以上で入力してください")
    return fee


def _row_to_project(row: list[str]) -> Project:
    code = _cell(row, 0).upper()
    category_raw = _cell(row, 1)
    name = _cell(row, 2)
    if not code or not category_raw or not name:
        raise ValueError("業務コード、カテゴリ、業務名は必須です")

    category = ProjectCategory.parse(category_raw)
    if category is None:
        raise ValueError(f"不明なカテゴリです: {category_raw}")

    status_raw = _cell(row, 3)
    if status_raw and not ProjectStatus.has_value(status_raw):
        raise ValueError(f"不明なステータスです: {status_raw}")

    start_date = _parse_date(_cell(row, 6))
    end_date = _parse_date(_cell(row, 7))
    if start_date and end_date and end_date < start_date:
        raise ValueError("終了日は開始日以降の日付を指定してください")

    # 顧客/担当者 columns are display-only on export and ignored here
    return Project(
        code=code,
        category=category.value,
        name=name,
        status=status_raw or ProjectStatus.RECEIVED.value,
        start_date=start_date,
        end_date=end_date,
        fee_tax_excluded=_parse_fee(_cell(row, 8)),
        location=_cell(row, 9) or None,
        details={},
        monthly_allocations={},
    )


def import_projects_csv(db: Session, content: bytes) -> dict:
    """
    Import projects from CSV. The first row is a header and is skipped.

    Valid rows are imported even when other rows fail; each failure is
    reported with its 1-based line number.
    """
    try:
        rows = read_csv_rows(content)
    except (UnicodeDecodeError, ValueError) as e:
        return {"success": False, "imported": 0, "errors": [{"row": 0, "message": f"CSVを読み込めません: {e}"}]}

    errors: list[dict] = []
    imported = 0
    seen_codes: set[str] = set()

    for line_no, row in enumerate(rows[1:], start=2):
        if not any(cell.strip() for cell in row):
            continue
        try:
            project = _row_to_project(row)
        except ValueError as e:
            errors.append({"row": line_no, "message": str(e)})
            continue

        if project.code in seen_codes or code_exists(db, project.code):
            errors.append({"row": line_no, "message": f"業務コード {project.code} は既に存在します"})
            continue

        db.add(project)
        seen_codes.add(project.code)
        imported += 1

    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Project CSV import failed")
        return {
            "success": False,
            "imported": 0,
            "errors": errors + [{"row": 0, "message": "データベースへの保存に失敗しました"}],
        }

    logger.info("Project CSV imported", extra={"imported": imported, "errors": len(errors)})
    return {"success": not errors, "imported": imported, "errors": errors}
