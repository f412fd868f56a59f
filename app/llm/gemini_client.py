import base64
from typing import Any, Dict, Optional

import httpx

from app.settings import settings
from app.verification.judgment import ClassifierError

# Gemini Developer API (REST)
# POST https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent
BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiError(ClassifierError):
    """Gemini returned an error status or an unusable body."""


async def _post(url: str, headers: dict, body: dict) -> httpx.Response:
    async with httpx.AsyncClient(timeout=settings.GEMINI_REQUEST_TIMEOUT_SEC) as client:
        return await client.post(url, headers=headers, json=body)


async def generate_with_image(
    prompt: str,
    image: bytes,
    mime_type: str,
    *,
    response_schema: Optional[Dict[str, Any]] = None,
    temperature: float = 0.0,
    max_tokens: int = 256,
) -> str:
    """Ask Gemini about one inline image and return the text of the first candidate.

    Exactly one HTTP request is made; a caller wanting another opinion
    submits again. Raises GeminiError on any non-2xx status or a body
    with no candidate text.
    """
    if not settings.GEMINI_API_KEY:
        raise GeminiError("GEMINI_API_KEY is not set")

    url = f"{BASE_URL}/models/{settings.GEMINI_MODEL}:generateContent"

    generation_config: Dict[str, Any] = {
        "temperature": float(temperature),
        "maxOutputTokens": int(max_tokens),
    }
    if response_schema is not None:
        generation_config["responseMimeType"] = "application/json"
        generation_config["responseSchema"] = response_schema

    body = {
        "contents": [{
            "role": "user",
            "parts": [
                {"text": prompt},
                {"inlineData": {"mimeType": mime_type, "data": base64.b64encode(image).decode("ascii")}},
            ],
        }],
        "generationConfig": generation_config,
    }

    headers = {
        "x-goog-api-key": settings.GEMINI_API_KEY,
        "Content-Type": "application/json",
    }

    resp = await _post(url, headers, body)

    if resp.status_code >= 400:
        raise GeminiError(f"Gemini API error: {resp.status_code} {resp.text}")

    try:
        data = resp.json()
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (ValueError, KeyError, IndexError, TypeError) as e:
        raise GeminiError(f"No response text from Gemini: {type(e).__name__}") from e

    if not isinstance(text, str) or not text.strip():
        raise GeminiError("No response text from Gemini")
    return text
