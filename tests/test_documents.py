"""Tests for Word templates and document generation."""
import io
from datetime import date

import pytest
from docx import Document
from httpx import AsyncClient
from sqlalchemy.orm import Session

from backoffice.db.enums import RecipientType
from backoffice.schemas.customer import AccountCreate, ContactCreate, ContactInput
from backoffice.services import account_service, contact_service, document_service

DOCX_TYPE = document_service.DOCX_CONTENT_TYPE


def _template_bytes() -> bytes:
    document = Document()
    paragraph = document.add_paragraph()
    # Split across runs the way Word often saves it
    paragraph.add_run("{{宛先_")
    paragraph.add_run("会社名}} 御中")
    document.add_paragraph("{宛先_郵便番号} {宛先_住所}")
    table = document.add_table(rows=1, cols=1)
    table.rows[0].cells[0].text = "{{ 宛先_氏名 }} 様"
    document.add_paragraph("差出人: {{差出人_氏名}} / {{不明なキー}}")
    document.add_paragraph("日付: {{指定日付}}")
    document.sections[0].header.paragraphs[0].text = "作成日 {{作成日}}"

    output = io.BytesIO()
    document.save(output)
    return output.getvalue()


def _texts(content: bytes) -> list[str]:
    document = Document(io.BytesIO(content))
    texts = [p.text for p in document.paragraphs]
    texts += [cell.text for table in document.tables for row in table.rows for cell in row.cells]
    texts += [p.text for p in document.sections[0].header.paragraphs]
    return texts


def _account(db: Session):
    account, _ = account_service.create_account(
        db,
        AccountCreate(
            company_name="株式会社テスト",
            postal_code="100-0005",
            prefecture="東京都",
            city="千代田区",
            street="丸の内1-1",
            contacts=[ContactInput(last_name="山田", first_name="太郎", is_primary=True)],
        ),
    )
    return account


# =============================================================================
# Placeholders
# =============================================================================

def test_fill_text_supports_both_brace_styles():
    values = {"宛先_氏名": "山田 太郎"}
    assert document_service.fill_text("{{宛先_氏名}}様", values) == "山田 太郎様"
    assert document_service.fill_text("{ 宛先_氏名 }様", values) == "山田 太郎様"
    assert document_service.fill_text("{{未定義}}", values) == ""
    assert document_service.fill_text("括弧 { } はそのまま", values) == "括弧 { } はそのまま"


def test_placeholder_values_for_account(db: Session, admin):
    account = _account(db)
    values = document_service.build_placeholder_values(
        db,
        RecipientType.ACCOUNT,
        account.id,
        admin,
        document_date=date(2025, 4, 1),
        today=date(2019, 5, 1),
    )
    assert values["宛先_会社名"] == "株式会社テスト"
    # The account has a primary contact, but a company recipient carries no person name
    assert contact_service.get_account_contacts(db, account.id)[0].is_primary
    assert values["宛先_氏名"] == ""
    assert values["宛先_郵便番号"] == "〒100-0005"
    assert values["宛先_住所"] == "東京都千代田区丸の内1-1"
    assert values["差出人_氏名"] == "管理者"
    assert values["作成日"] == "令和元年5月1日"
    assert values["指定日付"] == "令和7年4月1日"


def test_contact_without_address_uses_account_address(db: Session):
    account = _account(db)
    contact = contact_service.get_account_contacts(db, account.id)[0]
    values = document_service.build_placeholder_values(db, RecipientType.CONTACT, contact.id, None)
    assert values["宛先_住所"] == "東京都千代田区丸の内1-1"
    assert values["差出人_氏名"] == ""

    individual = contact_service.create_contact(
        db, ContactCreate(last_name="田中", prefecture="大阪府", city="大阪市")
    )
    values = document_service.build_placeholder_values(db, RecipientType.CONTACT, individual.id, None)
    assert values["宛先_会社名"] == ""
    assert values["宛先_住所"] == "大阪府大阪市"


def test_unknown_recipient_is_rejected(db: Session):
    import uuid

    with pytest.raises(ValueError):
        document_service.build_placeholder_values(db, RecipientType.ACCOUNT, uuid.uuid4(), None)


def test_fill_docx_replaces_everywhere():
    values = {
        "宛先_会社名": "株式会社テスト",
        "宛先_郵便番号": "〒100-0005",
        "宛先_住所": "東京都千代田区",
        "宛先_氏名": "山田 太郎",
        "差出人_氏名": "管理者",
        "指定日付": "",
        "作成日": "令和7年4月1日",
    }
    texts = _texts(document_service.fill_docx(_template_bytes(), values))
    assert "株式会社テスト 御中" in texts
    assert "〒100-0005 東京都千代田区" in texts
    assert "山田 太郎 様" in texts
    assert "差出人: 管理者 / " in texts
    assert "作成日 令和7年4月1日" in texts


def test_fill_docx_rejects_non_docx():
    with pytest.raises(ValueError):
        document_service.fill_docx(b"plain text", {})


# =============================================================================
# Templates
# =============================================================================

def test_upload_validates_and_names_template(db: Session, local_storage):
    with pytest.raises(ValueError):
        document_service.upload_template(db, "letter.doc", b"data")
    with pytest.raises(ValueError):
        document_service.upload_template(db, "letter.docx", b"")
    with pytest.raises(ValueError, match="docx"):
        document_service.upload_template(db, "letter.docx", b"plain text renamed to docx")

    template = document_service.upload_template(db, "../送付状 v2.docx", _template_bytes())
    assert template.name == "送付状 v2"
    assert template.file_name == "送付状 v2.docx"
    assert ".." not in template.storage_path
    assert (local_storage / template.storage_path).exists()

    document_service.delete_template(db, template)
    assert not (local_storage / template.storage_path).exists()


def test_reorder_templates(db: Session):
    first = document_service.upload_template(db, "a.docx", _template_bytes(), name="送付状")
    second = document_service.upload_template(db, "b.docx", _template_bytes(), name="請求書")
    assert (first.sort_order, second.sort_order) == (0, 1)

    ordered = document_service.reorder_templates(db, [second.id, first.id])
    assert [t.name for t in ordered] == ["請求書", "送付状"]


def test_generated_filename_uses_generation_day(db: Session, local_storage, monkeypatch):
    account = _account(db)
    template = document_service.upload_template(db, "a.docx", _template_bytes(), name="送付状")
    monkeypatch.setattr(document_service, "local_today", lambda: date(2025, 6, 10))

    content, filename = document_service.generate_document(
        db, template, RecipientType.ACCOUNT, account.id, None, document_date=date(2025, 4, 1)
    )
    assert filename == "送付状_2025-06-10.docx"
    assert "日付: 令和7年4月1日" in _texts(content)


# =============================================================================
# API
# =============================================================================

@pytest.mark.asyncio
async def test_generate_document_api(authed_client: AsyncClient, db: Session):
    account = _account(db)

    response = await authed_client.post(
        "/documents/templates",
        files={"file": ("送付状.docx", _template_bytes(), DOCX_TYPE)},
        data={"name": "送付状", "description": "標準の送付状"},
    )
    assert response.status_code == 201
    template = response.json()
    assert template["file_size"] > 0

    response = await authed_client.post(
        f"/documents/templates/{template['id']}/generate",
        json={"recipient_type": "account", "recipient_id": str(account.id), "document_date": "2025-04-01"},
    )
    assert response.status_code == 200
    assert response.headers["content-type"] == DOCX_TYPE
    assert "filename*=UTF-8''" in response.headers["content-disposition"]

    texts = _texts(response.content)
    assert "株式会社テスト 御中" in texts
    assert "差出人: 管理者 / " in texts
    assert "日付: 令和7年4月1日" in texts


@pytest.mark.asyncio
async def test_generate_with_unknown_sender(authed_client: AsyncClient, db: Session):
    import uuid

    account = _account(db)
    template = (await authed_client.post(
        "/documents/templates",
        files={"file": ("送付状.docx", _template_bytes(), DOCX_TYPE)},
    )).json()

    response = await authed_client.post(
        f"/documents/templates/{template['id']}/generate",
        json={"recipient_type": "account", "recipient_id": str(account.id), "sender_id": str(uuid.uuid4())},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "差出人が見つかりません"


@pytest.mark.asyncio
async def test_staff_cannot_upload_templates(staff_client: AsyncClient):
    response = await staff_client.post(
        "/documents/templates",
        files={"file": ("送付状.docx", _template_bytes(), DOCX_TYPE)},
    )
    assert response.status_code == 403

    response = await staff_client.post(
        "/documents/templates",
        files={"file": ("送付状.docx", _template_bytes(), DOCX_TYPE)},
        headers={"X-Requested-With": ""},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_upload_rejects_renamed_non_docx(authed_client: AsyncClient, db: Session):
    response = await authed_client.post(
        "/documents/templates",
        files={"file": ("送付状.docx", b"not a word file", DOCX_TYPE)},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == document_service.DOCX_ONLY_MESSAGE
    assert document_service.list_templates(db) == []


@pytest.mark.asyncio
async def test_generate_from_unreadable_template(authed_client: AsyncClient, db: Session, local_storage):
    account = _account(db)
    template = document_service.upload_template(db, "a.docx", _template_bytes(), name="送付状")
    # Stored file replaced behind the app's back
    (local_storage / template.storage_path).write_bytes(b"plain text")

    response = await authed_client.post(
        f"/documents/templates/{template.id}/generate",
        json={"recipient_type": "account", "recipient_id": str(account.id)},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "テンプレートファイルを読み込めません"
