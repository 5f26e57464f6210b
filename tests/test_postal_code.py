"""Tests for postal code estimation and the AI provider clients."""
import json
from unittest.mock import AsyncMock

import httpx
import pytest
from httpx import AsyncClient

from backoffice.core.config import settings
from backoffice.db.enums import PostalCodeConfidence
from backoffice.services import ai_provider, postal_code_service
from backoffice.services.ai_provider import ChatMessage, GeminiProvider, OpenAIProvider


@pytest.fixture
def ai_enabled(monkeypatch):
    monkeypatch.setattr(settings, "AI_PROVIDER", "openai")
    monkeypatch.setattr(settings, "AI_API_KEY", "test-key")


def _mock_transport(monkeypatch, handler):
    """Route the provider's outbound httpx calls to handler."""
    real_client = httpx.AsyncClient

    def factory(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(handler)
        return real_client(*args, **kwargs)

    monkeypatch.setattr(ai_provider.httpx, "AsyncClient", factory)


# =============================================================================
# Estimation
# =============================================================================

@pytest.mark.asyncio
async def test_missing_prefecture_or_city_is_low_confidence(monkeypatch):
    lookup = AsyncMock(return_value="100-0005")
    monkeypatch.setattr(postal_code_service, "_query_lookup_api", lookup)

    result = await postal_code_service.estimate_postal_code("東京都", " ")
    assert result == {
        "postal_code": None,
        "confidence": PostalCodeConfidence.LOW,
        "error": postal_code_service.MISSING_ADDRESS_MESSAGE,
    }
    lookup.assert_not_awaited()


@pytest.mark.asyncio
async def test_lookup_api_result_is_high_confidence(monkeypatch):
    lookup = AsyncMock(return_value="100-0005")
    monkeypatch.setattr(postal_code_service, "_query_lookup_api", lookup)

    result = await postal_code_service.estimate_postal_code("東京都", "千代田区", "丸の内1-1")
    assert result == {"postal_code": "100-0005", "confidence": PostalCodeConfidence.HIGH, "error": None}
    lookup.assert_awaited_once_with("東京都千代田区丸の内1-1")


@pytest.mark.asyncio
async def test_lookup_failure_is_low_confidence(monkeypatch):
    request = httpx.Request("GET", settings.POSTAL_CODE_LOOKUP_URL)
    lookup = AsyncMock(side_effect=httpx.ConnectError("down", request=request))
    monkeypatch.setattr(postal_code_service, "_query_lookup_api", lookup)

    result = await postal_code_service.estimate_postal_code("東京都", "千代田区")
    assert result["postal_code"] is None
    assert result["confidence"] == PostalCodeConfidence.LOW
    assert result["error"] == postal_code_service.LOOKUP_FAILED_MESSAGE


@pytest.mark.asyncio
async def test_ai_answer_is_high_confidence(monkeypatch, ai_enabled):
    ask = AsyncMock(return_value="郵便番号は〒530-0001です。")
    monkeypatch.setattr(postal_code_service, "_ask_ai", ask)

    result = await postal_code_service.estimate_postal_code("大阪府", "大阪市北区", company_name="株式会社テスト")
    assert result["postal_code"] == "530-0001"
    assert result["confidence"] == PostalCodeConfidence.HIGH
    ask.assert_awaited_once_with("大阪府大阪市北区", "株式会社テスト")


@pytest.mark.asyncio
async def test_unusable_ai_answer_is_not_found(monkeypatch, ai_enabled):
    monkeypatch.setattr(postal_code_service, "_ask_ai", AsyncMock(return_value="不明"))

    result = await postal_code_service.estimate_postal_code("大阪府", "大阪市北区")
    assert result["postal_code"] is None
    assert result["error"] == postal_code_service.NOT_FOUND_MESSAGE


# =============================================================================
# Providers
# =============================================================================

@pytest.mark.asyncio
async def test_openai_provider_request(monkeypatch):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"choices": [{"message": {"content": "100-0005"}}], "usage": {"total_tokens": 12}},
        )

    _mock_transport(monkeypatch, handler)
    response = await OpenAIProvider("sk-test").chat([ChatMessage(role="user", content="住所")])

    assert response.content == "100-0005"
    assert response.total_tokens == 12
    assert seen["url"].endswith("/chat/completions")
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["messages"] == [{"role": "user", "content": "住所"}]


@pytest.mark.asyncio
async def test_gemini_provider_moves_system_prompt(monkeypatch):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        seen["key"] = request.url.params["key"]
        return httpx.Response(
            200,
            json={
                "candidates": [{"content": {"parts": [{"text": "530-"}, {"text": "0001"}]}}],
                "usageMetadata": {"totalTokenCount": 7},
            },
        )

    _mock_transport(monkeypatch, handler)
    response = await GeminiProvider("g-test").chat([
        ChatMessage(role="system", content="指示"),
        ChatMessage(role="user", content="住所"),
        ChatMessage(role="assistant", content="回答"),
    ])

    assert response.content == "530-0001"
    assert seen["key"] == "g-test"
    assert seen["body"]["systemInstruction"] == {"parts": [{"text": "指示"}]}
    assert [c["role"] for c in seen["body"]["contents"]] == ["user", "model"]


def test_get_provider_by_name():
    provider = ai_provider.get_provider(" Gemini ", "key")
    assert isinstance(provider, GeminiProvider)
    assert provider.model == GeminiProvider.default_model
    assert ai_provider.get_provider("openai", "key", model="gpt-4o").model == "gpt-4o"

    with pytest.raises(ValueError):
        ai_provider.get_provider("unknown", "key")
    assert ai_provider.get_configured_provider() is None


# =============================================================================
# API
# =============================================================================

@pytest.mark.asyncio
async def test_estimate_endpoint(authed_client: AsyncClient, monkeypatch):
    monkeypatch.setattr(postal_code_service, "_query_lookup_api", AsyncMock(return_value="1000005"))

    response = await authed_client.post(
        "/postal-code/estimate", json={"prefecture": "東京都", "city": "千代田区"}
    )
    assert response.status_code == 200
    assert response.json() == {"postal_code": "100-0005", "confidence": "high", "error": None}

    response = await authed_client.post("/postal-code/estimate", json={"prefecture": "東京都"})
    assert response.status_code == 200
    assert response.json() == {
        "postal_code": None,
        "confidence": "low",
        "error": "都道府県と市区町村を入力してください",
    }


@pytest.mark.asyncio
async def test_estimate_requires_login(client: AsyncClient):
    response = await client.post(
        "/postal-code/estimate",
        json={"prefecture": "東京都", "city": "千代田区"},
        headers={"X-Requested-With": "XMLHttpRequest"},
    )
    assert response.status_code == 401
