"""Postal code estimation from an address (AI provider or public lookup API)."""

import logging

import httpx

from backoffice.core.config import settings
from backoffice.db.enums import PostalCodeConfidence
from backoffice.services.ai_provider import ChatMessage, get_configured_provider
from backoffice.utils.normalization import extract_postal_code

logger = logging.getLogger(__name__)

MISSING_ADDRESS_MESSAGE = "都道府県と市区町村を入力してください"
NOT_FOUND_MESSAGE = "郵便番号を特定できませんでした"
LOOKUP_FAILED_MESSAGE = "郵便番号の検索に失敗しました"

SYSTEM_PROMPT = (
    "あなたは日本の郵便番号に詳しいアシスタントです。"
    "与えられた住所の郵便番号を「123-4567」の形式で1つだけ答えてください。"
    "分からない場合は「不明」と答えてください。"
)


def build_address(prefecture: str, city: str, street: str | None = None) -> str:
    return "".join(part.strip() for part in (prefecture, city, street or "") if part)


def _result(postal_code: str | None, confidence: PostalCodeConfidence, error: str | None = None) -> dict:
    return {"postal_code": postal_code, "confidence": confidence, "error": error}


async def _ask_ai(address: str, company_name: str | None) -> str:
    provider = get_configured_provider()
    prompt = f"住所: {address}"
    if company_name:
        prompt += f"\n会社名: {company_name}"
    response = await provider.chat([
        ChatMessage(role="system", content=SYSTEM_PROMPT),
        ChatMessage(role="user", content=prompt),
    ])
    return response.content


async def _query_lookup_api(address: str) -> str:
    async with httpx.AsyncClient(timeout=10.0) as client:
        response = await client.get(settings.POSTAL_CODE_LOOKUP_URL, params={"address": address})
        response.raise_for_status()
        return response.text


async def estimate_postal_code(
    prefecture: str,
    city: str,
    street: str | None = None,
    company_name: str | None = None,
) -> dict:
    """
    Estimate the postal code of an address.

    Returns {postal_code, confidence, error}. A code found in the reply is high
    confidence. Anything else, including a missing prefecture or city, comes
    back as low confidence with an error message.
    """
    if not (prefecture or "").strip() or not (city or "").strip():
        return _result(None, PostalCodeConfidence.LOW, MISSING_ADDRESS_MESSAGE)

    address = build_address(prefecture, city, street)
    use_ai = settings.ai_enabled
    try:
        if use_ai:
            reply = await _ask_ai(address, company_name)
        else:
            reply = await _query_lookup_api(address)
    except (httpx.HTTPError, KeyError, IndexError, ValueError):
        logger.warning("Postal code lookup failed", exc_info=True, extra={"ai": use_ai})
        return _result(None, PostalCodeConfidence.LOW, LOOKUP_FAILED_MESSAGE)

    postal_code = extract_postal_code(reply)
    if not postal_code:
        return _result(None, PostalCodeConfidence.LOW, NOT_FOUND_MESSAGE)
    return _result(postal_code, PostalCodeConfidence.HIGH)
