import base64
import pytest
from unittest.mock import patch, AsyncMock, MagicMock

from app.llm.gemini_client import GeminiError, generate_with_image
from app.settings import settings


def _resp(status=200, body=None, text=""):
    r = MagicMock()
    r.status_code = status
    r.text = text
    if isinstance(body, Exception):
        r.json.side_effect = body
    else:
        r.json.return_value = body
    return r


OK_BODY = {"candidates": [{"content": {"parts": [{"text": '{"verified": true}'}]}}]}


@pytest.mark.asyncio
@patch("app.llm.gemini_client._post", new_callable=AsyncMock)
async def test_request_carries_inline_image_and_schema(mock_post):
    mock_post.return_value = _resp(body=OK_BODY)
    image = bytes(range(256))

    with patch.object(settings, "GEMINI_API_KEY", "k"), patch.object(settings, "GEMINI_MODEL", "gemini-test"):
        out = await generate_with_image("prompt", image, "image/png", response_schema={"type": "OBJECT"})

    assert out == '{"verified": true}'
    assert mock_post.call_count == 1
    url, headers, body = mock_post.call_args.args
    assert url.endswith("/models/gemini-test:generateContent")
    assert headers["x-goog-api-key"] == "k"
    parts = body["contents"][0]["parts"]
    assert parts[0] == {"text": "prompt"}
    assert parts[1]["inlineData"]["mimeType"] == "image/png"
    # Encoding round-trips to the exact bytes
    assert base64.b64decode(parts[1]["inlineData"]["data"]) == image
    assert body["generationConfig"]["responseMimeType"] == "application/json"
    assert body["generationConfig"]["responseSchema"] == {"type": "OBJECT"}


@pytest.mark.asyncio
@patch("app.llm.gemini_client._post", new_callable=AsyncMock)
async def test_missing_key_fails_without_request(mock_post):
    with patch.object(settings, "GEMINI_API_KEY", ""):
        with pytest.raises(GeminiError, match="GEMINI_API_KEY"):
            await generate_with_image("p", b"x", "image/jpeg")
    assert not mock_post.called


@pytest.mark.asyncio
@patch("app.llm.gemini_client._post", new_callable=AsyncMock)
async def test_error_status_is_not_retried(mock_post):
    mock_post.return_value = _resp(status=503, text="overloaded")
    with patch.object(settings, "GEMINI_API_KEY", "k"):
        with pytest.raises(GeminiError, match="503"):
            await generate_with_image("p", b"x", "image/jpeg")
    assert mock_post.call_count == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {},
    {"candidates": []},
    {"candidates": [{"content": {"parts": [{"text": "   "}]}}]},
    ValueError("not json"),
])
@patch("app.llm.gemini_client._post", new_callable=AsyncMock)
async def test_unusable_body_raises(mock_post, body):
    mock_post.return_value = _resp(body=body)
    with patch.object(settings, "GEMINI_API_KEY", "k"):
        with pytest.raises(GeminiError):
            await generate_with_image("p", b"x", "image/jpeg")
