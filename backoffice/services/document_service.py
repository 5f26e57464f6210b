"""Document templates (.docx) and document generation with placeholder filling."""

import io
import logging
import os
import re
import zipfile
from datetime import date
from uuid import UUID

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.core.exceptions import StorageError
from backoffice.db.enums import RecipientType
from backoffice.db.models import Account, Contact, DocumentTemplate, Employee
from backoffice.schemas.document import DocumentTemplateUpdate
from backoffice.services import storage_service
from backoffice.utils.address import format_address_line, format_postal_code, has_address
from backoffice.utils.datetime_utils import local_today, utcnow
from backoffice.utils.japanese_date import to_wareki

logger = logging.getLogger(__name__)

DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOCX_ONLY_MESSAGE = "Wordファイル（.docx）のみアップロードできます"

# {{key}} or {key}; keys carry no braces or whitespace
PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([^{}\s]+)\s*\}\}|\{\s*([^{}\s]+)\s*\}")
UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.\-]+")


# =============================================================================
# Templates
# =============================================================================

def list_templates(db: Session) -> list[DocumentTemplate]:
    return db.query(DocumentTemplate).order_by(
        DocumentTemplate.sort_order, DocumentTemplate.created_at
    ).all()


def get_template(db: Session, template_id: UUID) -> DocumentTemplate | None:
    return db.query(DocumentTemplate).filter(DocumentTemplate.id == template_id).first()


def safe_filename(filename: str) -> str:
    base = os.path.basename(filename.replace("\\", "/"))
    return UNSAFE_FILENAME_CHARS.sub("_", base).strip("_") or "template.docx"


def upload_template(
    db: Session,
    filename: str,
    content: bytes,
    name: str | None = None,
    description: str | None = None,
    uploaded_by: UUID | None = None,
) -> DocumentTemplate:
    """Store a .docx template; the stored file is removed if the row cannot be saved."""
    if not filename.lower().endswith(".docx"):
        raise ValueError(DOCX_ONLY_MESSAGE)
    if not content:
        raise ValueError("ファイルが空です")
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise ValueError("ファイルサイズが上限を超えています")
    # A .docx is a zip package; anything else cannot be filled later
    if not zipfile.is_zipfile(io.BytesIO(content)):
        raise ValueError(DOCX_ONLY_MESSAGE)

    timestamp = int(utcnow().timestamp() * 1000)
    storage_path = f"templates/{timestamp}_{safe_filename(filename)}"
    storage_service.store_file(storage_path, content, DOCX_CONTENT_TYPE)

    count = db.query(func.count(DocumentTemplate.id)).scalar() or 0
    template = DocumentTemplate(
        name=(name or "").strip() or os.path.splitext(os.path.basename(filename))[0],
        description=description,
        file_name=os.path.basename(filename),
        storage_path=storage_path,
        file_size=len(content),
        sort_order=count,
        uploaded_by=uploaded_by,
    )
    db.add(template)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to save template; removing stored file")
        storage_service.delete_file(storage_path)
        raise
    db.refresh(template)
    logger.info("Template uploaded", extra={"template_id": str(template.id)})
    return template


def update_template(db: Session, template: DocumentTemplate, data: DocumentTemplateUpdate) -> DocumentTemplate:
    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("name") is not None:
        template.name = update_data["name"].strip()
    if "description" in update_data:
        template.description = update_data["description"]
    db.commit()
    db.refresh(template)
    return template


def reorder_templates(db: Session, ids: list[UUID]) -> list[DocumentTemplate]:
    templates = {t.id: t for t in db.query(DocumentTemplate).filter(DocumentTemplate.id.in_(ids)).all()}
    if len(templates) != len(set(ids)):
        raise ValueError("テンプレートが見つかりません")
    for index, template_id in enumerate(ids):
        templates[template_id].sort_order = index
    db.commit()
    return list_templates(db)


def delete_template(db: Session, template: DocumentTemplate) -> None:
    """Delete the row; a failure to remove the stored file is only logged."""
    storage_path = template.storage_path
    db.delete(template)
    db.commit()
    try:
        storage_service.delete_file(storage_path)
    except StorageError:
        logger.warning("Stored template file was not removed", extra={"storage_path": storage_path})


# =============================================================================
# Placeholder values
# =============================================================================

def _recipient_values(db: Session, recipient_type: RecipientType, recipient_id: UUID) -> dict[str, str]:
    if recipient_type == RecipientType.ACCOUNT:
        account = db.query(Account).filter(
            Account.id == recipient_id, Account.deleted_at.is_(None)
        ).first()
        if not account:
            raise ValueError("宛先が見つかりません")
        # Addressed to the company itself (御中), so no person name
        return {
            "宛先_会社名": account.company_name,
            "宛先_氏名": "",
            "宛先_郵便番号": format_postal_code(account),
            "宛先_住所": format_address_line(account),
        }

    contact = db.query(Contact).filter(
        Contact.id == recipient_id, Contact.deleted_at.is_(None)
    ).first()
    if not contact:
        raise ValueError("宛先が見つかりません")
    account = contact.account
    address_source = contact if has_address(contact) or account is None else account
    return {
        "宛先_会社名": account.company_name if account else "",
        "宛先_氏名": contact.full_name,
        "宛先_郵便番号": format_postal_code(address_source),
        "宛先_住所": format_address_line(address_source),
    }


def build_placeholder_values(
    db: Session,
    recipient_type: RecipientType,
    recipient_id: UUID,
    sender: Employee | None,
    document_date: date | None = None,
    today: date | None = None,
) -> dict[str, str]:
    today = today or local_today()
    values = _recipient_values(db, recipient_type, recipient_id)
    values.update({
        "差出人_氏名": sender.name if sender else "",
        "差出人_メール": sender.email if sender else "",
        "作成日": to_wareki(today),
        "指定日付": to_wareki(document_date) if document_date else "",
    })
    return values


# =============================================================================
# .docx filling
# =============================================================================

def fill_text(text: str, values: dict[str, str]) -> str:
    """Replace {key}/{{key}}; unknown keys become empty."""
    return PLACEHOLDER_PATTERN.sub(lambda m: values.get(m.group(1) or m.group(2), ""), text)


def _fill_paragraph(paragraph, values: dict[str, str]) -> None:
    runs = paragraph.runs
    if not runs:
        return
    full_text = "".join(run.text for run in runs)
    if "{" not in full_text:
        return
    filled = fill_text(full_text, values)
    if filled == full_text:
        return
    # Word splits text into runs arbitrarily; the first run keeps the formatting
    runs[0].text = filled
    for run in runs[1:]:
        run.text = ""


def _fill_container(container, values: dict[str, str]) -> None:
    for paragraph in container.paragraphs:
        _fill_paragraph(paragraph, values)
    for table in container.tables:
        for row in table.rows:
            for cell in row.cells:
                _fill_container(cell, values)


def fill_docx(content: bytes, values: dict[str, str]) -> bytes:
    try:
        document = Document(io.BytesIO(content))
    except (PackageNotFoundError, zipfile.BadZipFile, ValueError, KeyError) as e:
        raise ValueError("テンプレートファイルを読み込めません") from e

    _fill_container(document, values)
    for section in document.sections:
        for part in (
            section.header, section.footer,
            section.first_page_header, section.first_page_footer,
            section.even_page_header, section.even_page_footer,
        ):
            if not part.is_linked_to_previous:
                _fill_container(part, values)

    output = io.BytesIO()
    document.save(output)
    return output.getvalue()


def generate_document(
    db: Session,
    template: DocumentTemplate,
    recipient_type: RecipientType,
    recipient_id: UUID,
    sender: Employee | None,
    document_date: date | None = None,
) -> tuple[bytes, str]:
    """Fill a template for a recipient. Returns (docx bytes, download filename)."""
    today = local_today()
    values = build_placeholder_values(db, recipient_type, recipient_id, sender, document_date, today)
    content = storage_service.read_file(template.storage_path)
    filled = fill_docx(content, values)
    # Named after the day it was generated, not the date printed inside
    filename = f"{template.name}_{today.isoformat()}.docx"
    logger.info(
        "Document generated",
        extra={"template_id": str(template.id), "recipient_type": recipient_type.value},
    )
    return filled, filename
